"""
StreamNotify - Main Orchestrator.

Runs one tick per interval:
1. Ping the heartbeat URL
2. Poll live streams and reconcile with the previous snapshot
3. Notify the channel and refresh the pinned summary
4. Stop/start recordings
5. Check bans
6. Report disk space while recording
"""

import asyncio
import signal
import sys
from typing import Awaitable, List, Optional, Tuple

import aiohttp

from .bans import BanTracker
from .config import Config, load_config
from .disk_monitor import DiskMonitor
from .errors import ConfigurationError, NotModifiedError, PersistentEditError, TransientIOError
from .logger import get_logger, setup_logging
from .models import Notification, OnlineStream, Recording, ReconcileResult
from .reconciler import reconcile
from .recorder import StreamRecorder
from .store import Store
from .telegram import CommandHandler, TelegramBot
from .text import Texts, format_free_space, short_status, stream_link
from .twitch_api import TwitchAPI


class AppCommands(CommandHandler):
    """Bot commands routed into the app."""

    def __init__(self, app: 'StreamNotifyApp'):
        self._app = app
        self._logger = get_logger('commands')

    async def request_pin(self, chat_id: int, message_id: int) -> None:
        self._logger.info("get_pin: reset current state")
        self._app.request_reset()
        await self._app.store.set(Store.chat_key(chat_id), message_id)

    async def recordings_report(self) -> Tuple[str, List[Recording]]:
        self._logger.info("get_re")
        free_space = await self._app.recorder.get_free_space(self._app.config.disk_path)
        space = format_free_space(free_space) if free_space else "unknown"
        return f"**Disk space**: {space}", self._app.recorder.get_active_recordings()


class StreamNotifyApp:
    """
    Main application running the tick loop.

    Owns the observed state: only the loop replaces it. Commands may ask
    for a reset, which is applied at the start of the next tick.
    """

    def __init__(
        self,
        config: Config,
        twitch_api: Optional[TwitchAPI] = None,
        bot: Optional[TelegramBot] = None,
        recorder: Optional[StreamRecorder] = None,
        store: Optional[Store] = None,
        disk_monitor: Optional[DiskMonitor] = None
    ):
        """Initialize application with configuration and optional collaborators."""
        self.config = config
        self._logger = get_logger('app')

        self.twitch_api = twitch_api or TwitchAPI(
            client_id=config.twitch.client_id,
            client_secret=config.twitch.client_secret
        )
        self.bot = bot or TelegramBot(
            api_id=config.telegram.api_id,
            api_hash=config.telegram.api_hash,
            bot_token=config.telegram.bot_token,
            admin_id=config.telegram.admin_id,
            session_name=config.telegram.session_name,
            send_delay=config.telegram.send_delay
        )
        self.recorder = recorder or StreamRecorder(
            output_dir=config.recorder.output_dir,
            format_spec=config.recorder.format
        )
        self.store = store or Store(config.storage.db_file)
        self.disk_monitor = disk_monitor or DiskMonitor(
            low_space_gb=config.disk.low_space_gb,
            critical_interval=config.disk.critical_interval_minutes * 60,
            routine_interval=config.disk.routine_interval_minutes * 60
        )

        self.texts = Texts(config.channels, config.photos)
        self.bans = BanTracker(self.store, self.twitch_api, config.twitch.channels, self.texts)
        self.commands = AppCommands(self)

        # Runtime state
        self.state: List[OnlineStream] = []
        self._reset_requested = False
        self._http: Optional[aiohttp.ClientSession] = None

    def request_reset(self) -> None:
        """Forget the observed state on the next tick."""
        self._reset_requested = True

    def log_settings(self) -> None:
        self._logger.info(
            "== StreamNotify config ==\n"
            f"- channels Twitch: {self.config.twitch.channels}\n"
            f"- recorder: {self.config.recorder.channels}\n"
            f"- chatId: {self.config.telegram.chat_id}\n"
            f"- adminId: {self.config.telegram.admin_id}\n"
            f"- timeout: {self.config.timeout}\n"
            f"- heartbeat: {self.config.heartbeat_url}"
        )

    async def start(self) -> None:
        """Connect collaborators and run until SIGINT/SIGTERM."""
        self.log_settings()
        await self.store.init(self.config.twitch.channels)

        if not await self.twitch_api.connect():
            raise RuntimeError("Failed to connect to Twitch API")

        if not await self.bot.connect(self.commands):
            raise RuntimeError("Failed to connect to Telegram")

        self._http = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30))

        bot_task = asyncio.create_task(self.bot.run_until_disconnected())
        loop_task = asyncio.create_task(self.run_forever())

        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        try:
            await stop_event.wait()
        finally:
            self._logger.info("Shutdown signal received...")

            for task in (loop_task, bot_task):
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            await self._cleanup()

    async def _cleanup(self) -> None:
        await self.recorder.stop_all()
        await self.bot.disconnect()
        await self.twitch_api.disconnect()
        if self._http:
            await self._http.close()
            self._http = None
        self._logger.info("StreamNotify stopped")

    async def run_forever(self) -> None:
        """Tick, sleep, repeat."""
        while True:
            await self.tick()
            self._logger.debug("Tick: loop done")
            await asyncio.sleep(self.config.timeout)

    async def _guarded(self, step: str, coro: Awaitable) -> None:
        """Run one tick step; a failure is logged and the tick goes on."""
        try:
            await coro
        except TransientIOError as e:
            self._logger.warning(f"{step}: {e}")
        except Exception:
            self._logger.exception(f"{step}: unexpected error")

    async def tick(self) -> None:
        """One full pass: heartbeat, streams, bans, disk."""
        if self.config.heartbeat_url:
            self._logger.debug("Tick: heartbeat...")
            await self._guarded('heartbeat', self._heartbeat())

        self._logger.debug(f"Tick: check online, state: {len(self.state)}")
        await self._guarded('check online', self._check_online())

        self._logger.debug("Tick: check bans")
        await self._guarded('check bans', self._check_bans())

        if self.recorder.get_active_recordings():
            self._logger.debug("Tick: check disk state")
            await self._guarded('check disk', self._check_disk())

    async def _heartbeat(self) -> None:
        if not self._http:
            self._http = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30))
        try:
            async with self._http.get(self.config.heartbeat_url) as resp:
                if resp.status >= 400:
                    raise TransientIOError(f"Heartbeat returned {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientIOError(f"Heartbeat failed: {e}") from e

    async def _check_online(self) -> None:
        if self._reset_requested:
            self._reset_requested = False
            self.state = []
            self._logger.info("State reset on request")

        online = await self.twitch_api.get_live_streams(self.config.twitch.channels)

        result = reconcile(self.state, online, self.config.recorder.channels, self.texts)
        self.state = result.state

        if result.notifications:
            await self.bot.send_notifications(self.config.telegram.chat_id, result.notifications)
            await self._update_pins(result.state)

        await self._apply_recordings(result)

    def _pin_chats(self) -> List[int]:
        chats = [self.config.telegram.chat_id]
        if self.config.telegram.admin_id not in chats:
            chats.append(self.config.telegram.admin_id)
        return chats

    async def _update_pins(self, streams: List[OnlineStream]) -> None:
        """Refresh every stored pinned summary, dropping the dead ones."""
        text = short_status(streams)

        for chat_id in self._pin_chats():
            key = Store.chat_key(chat_id)
            msg_id = await self.store.get(key)
            if not msg_id:
                continue

            try:
                await self.bot.update_pin(chat_id, int(msg_id), text)
            except NotModifiedError:
                self._logger.debug("Update pin: same message, just ignore")
            except PersistentEditError as e:
                self._logger.error(f"Update pin: {e}")
                await self.store.delete(key)
                self._logger.info(f"Update pin: chatID = {chat_id} removed from DB")
            except TransientIOError as e:
                self._logger.warning(f"Update pin: {e}")

    async def _apply_recordings(self, result: ReconcileResult) -> None:
        """Stop ended recordings before starting new ones."""
        admin_id = self.config.telegram.admin_id

        if result.to_stop:
            self._logger.info(f"Stop queue -- {len(result.to_stop)}")
            notifications = []
            for directive in result.to_stop:
                await self.recorder.stop(directive.login)
                notifications.append(Notification(
                    message=f"🕵️ **Stop recording** -- {directive.login}",
                    trigger='recorder+stop',
                ))
            await self.bot.send_notifications(admin_id, notifications)

        if result.to_start:
            self._logger.info(f"Start queue -- {len(result.to_start)}")
            notifications = []
            for directive in result.to_start:
                await self.recorder.start(stream_link(directive.stream), directive.login)
                notifications.append(Notification(
                    message=f"🕵️ **Start recording** -- {directive.login}",
                    trigger='recorder+add',
                ))
            await self.bot.send_notifications(admin_id, notifications)

    async def _check_bans(self) -> None:
        notifications = await self.bans.check()
        if notifications:
            await self.bot.send_notifications(self.config.telegram.chat_id, notifications)

    async def _check_disk(self) -> None:
        free_space = await self.recorder.get_free_space(self.config.disk_path)
        notification = self.disk_monitor.check(free_space, self.recorder.get_active_recordings())
        if notification:
            await self.bot.send_notifications(self.config.telegram.admin_id, [notification])


async def main(config_path: Optional[str] = None) -> int:
    """Main entry point."""
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        max_size_mb=config.logging.max_size_mb,
        backup_count=config.logging.backup_count
    )

    app = StreamNotifyApp(config)

    try:
        await app.start()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        get_logger('app').error(f"Fatal error: {e}")
        raise

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None)))


if __name__ == '__main__':
    run()
