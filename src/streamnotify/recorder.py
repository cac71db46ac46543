"""
Stream recorder module for StreamNotify.
Runs yt-dlp per live channel and reports free disk space.
"""

import asyncio
import re
import shutil
import signal
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .logger import get_channel_logger, get_logger
from .models import FreeSpace, Recording


GB = 1024 ** 3

KEEP_PHRASES = (
    'error',
    'warning',
    'retry',
    'stream is offline',
    'http error',
    '[download] destination',
)


def should_log_ytdlp_line(line: str) -> bool:
    """Keep only useful yt-dlp output lines."""
    lower = line.lower()
    return any(p in lower for p in KEEP_PHRASES)


@dataclass
class _ActiveRecording:
    recording: Recording
    process: asyncio.subprocess.Process
    watcher: Optional[asyncio.Task] = None


class StreamRecorder:
    """
    Records live streams with yt-dlp.

    Features:
    - One subprocess per channel
    - Graceful stop (SIGINT, then SIGTERM, then SIGKILL)
    - Exited processes are dropped from the active list
    - Free space of the output volume
    """

    def __init__(self, output_dir: str = "./recordings", format_spec: str = "best"):
        """
        Initialize stream recorder.

        Args:
            output_dir: Directory for recordings.
            format_spec: yt-dlp format specification.
        """
        self.output_dir = Path(output_dir)
        self.format_spec = format_spec

        self._logger = get_logger('recorder')
        self._active: Dict[str, _ActiveRecording] = {}

        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_filename(self, login: str) -> str:
        """Output template for one recording: login_date.ext"""
        safe_login = re.sub(r'[<>:"/\\|?*\n\r]', '', login)
        date_str = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
        return f"{safe_login}_{date_str}.%(ext)s"

    def build_command(self, url: str, output_path: Path) -> List[str]:
        return [
            'yt-dlp',
            '--output', str(output_path),
            '--format', self.format_spec,
            '--retries', 'infinite',
            '--fragment-retries', 'infinite',
            '--socket-timeout', '120',
            '--no-mtime',
            '--no-part',
            '--hls-use-mpegts',
            url,
        ]

    async def start(self, url: str, login: str) -> bool:
        """
        Start recording a channel.

        Args:
            url: Stream URL passed to yt-dlp.
            login: Channel login, key of the recording.

        Returns:
            True if a process was started.
        """
        logger = get_channel_logger(login, 'recorder')

        if login in self._active:
            logger.info("Already recording, skip")
            return False

        output_path = self.output_dir / self.generate_filename(login)
        cmd = self.build_command(url, output_path)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT
            )
        except OSError as e:
            logger.error(f"Failed to start yt-dlp: {e}")
            return False

        active = _ActiveRecording(
            recording=Recording(
                login=login,
                url=url,
                output_path=str(output_path),
                started_at=datetime.now()
            ),
            process=process
        )
        self._active[login] = active
        active.watcher = asyncio.create_task(self._watch(login, process))

        logger.info(f"Starting recording: {output_path.name} (pid {process.pid})")
        return True

    async def _watch(self, login: str, process: asyncio.subprocess.Process) -> None:
        """Forward useful output to the log and forget the process once it exits."""
        logger = get_channel_logger(login, 'recorder')

        if process.stdout:
            async for raw in process.stdout:
                line = raw.decode('utf-8', errors='ignore').strip()
                if line and should_log_ytdlp_line(line):
                    logger.debug(f"yt-dlp: {line}")

        code = await process.wait()
        logger.info(f"yt-dlp exited with code {code}")

        active = self._active.get(login)
        if active and active.process is process:
            del self._active[login]

    async def stop(self, login: str) -> bool:
        """
        Stop an active recording.

        Args:
            login: Channel login.

        Returns:
            True if recording was stopped, False if not found.
        """
        active = self._active.pop(login, None)
        if active is None:
            return False

        logger = get_channel_logger(login, 'recorder')
        logger.info("Stopping recording...")
        process = active.process

        try:
            process.send_signal(signal.SIGINT)

            try:
                await asyncio.wait_for(process.wait(), timeout=10)
                logger.info("Recording stopped gracefully")
            except asyncio.TimeoutError:
                logger.warning("Timeout, sending SIGTERM...")
                process.terminate()

                try:
                    await asyncio.wait_for(process.wait(), timeout=5)
                except asyncio.TimeoutError:
                    logger.warning("Force killing process...")
                    process.kill()
                    await process.wait()
        except ProcessLookupError:
            # Process already dead
            pass

        return True

    async def stop_all(self) -> None:
        for login in list(self._active):
            await self.stop(login)

    def get_active_recordings(self) -> List[Recording]:
        """Recordings currently running, oldest first."""
        return sorted(
            (active.recording for active in self._active.values()),
            key=lambda rec: rec.started_at
        )

    async def get_free_space(self, path: Optional[str] = None) -> Optional[FreeSpace]:
        """Free space on the output volume (or `path`), None if it cannot be read."""
        try:
            usage = await asyncio.to_thread(shutil.disk_usage, path or self.output_dir)
        except OSError as e:
            self._logger.error(f"Failed to check disk space: {e}")
            return None

        return FreeSpace(free_gb=usage.free / GB, total_gb=usage.total / GB)
