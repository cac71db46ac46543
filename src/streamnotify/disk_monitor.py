"""
Disk space alerts for StreamNotify.
Rate-limited reports about the recordings volume while recorders run.
"""

import time
from typing import Callable, List, Optional

from .logger import get_logger
from .models import FreeSpace, Notification, Recording
from .text import format_free_space, format_recordings


class DiskMonitor:
    """
    Emits at most one disk notification per check.

    - Poll failure: always reported.
    - Low space: reported at most every `critical_interval` seconds.
    - Otherwise a routine report every `routine_interval` seconds.
    Both reports reset the same timer.
    """

    def __init__(
        self,
        low_space_gb: float = 7.0,
        critical_interval: float = 15 * 60,
        routine_interval: float = 60 * 60,
        clock: Callable[[], float] = time.monotonic
    ):
        self.low_space_gb = low_space_gb
        self.critical_interval = critical_interval
        self.routine_interval = routine_interval
        self._clock = clock
        self._last_report: Optional[float] = None  # Never reported
        self._logger = get_logger('disk')

    def _elapsed(self) -> float:
        if self._last_report is None:
            return float('inf')
        return self._clock() - self._last_report

    def _mark_reported(self) -> None:
        self._last_report = self._clock()

    def check(
        self,
        free_space: Optional[FreeSpace],
        recordings: List[Recording]
    ) -> Optional[Notification]:
        """
        Decide whether to report.

        Args:
            free_space: Result of the space poll, None if it failed.
            recordings: Active recordings, listed in the report.

        Returns:
            Notification for the admin chat, or None.
        """
        if free_space is None:
            self._logger.error("Disk state: no response!")
            return Notification(
                message="🧯 **Disk state error!**",
                trigger="disk state ERR",
            )

        elapsed = self._elapsed()
        recordings_text = format_recordings(recordings)

        if elapsed > self.critical_interval and free_space.free_gb < self.low_space_gb:
            self._mark_reported()
            self._logger.warning(f"Low disk space: {free_space.free_gb:.1f}G")
            return Notification(
                message=f"🧯 **LOW DISK SPACE (<{self.low_space_gb:g})**: "
                        f"{format_free_space(free_space)}\n\n{recordings_text}",
                trigger=f"disk state <{self.low_space_gb:g}",
            )

        if elapsed > self.routine_interval:
            self._mark_reported()
            return Notification(
                message=f"💁 **Disk space state**: {format_free_space(free_space)}\n\n{recordings_text}",
                trigger="disk state OK",
            )

        return None
