"""
Data model for StreamNotify.
Snapshots of live streams, notifications and recorder directives.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional


class Platform(Enum):
    """Streaming platforms."""
    TWITCH = "twitch"


class EventType(Enum):
    """Event kinds that carry a photo in notifications."""
    LIVE = "live"
    OFF = "off"
    BANNED = "banned"
    UNBANNED = "unbanned"


class RecordingAction(Enum):
    """Recorder command verbs."""
    START = "start"
    STOP = "stop"


def normalize_login(name: str) -> str:
    """Normalize a channel login: case-folded, without '@' or '\\' prefix."""
    return name.strip().lstrip('@\\').casefold()


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as HH:MM."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    return f"{hours:02d}:{rest // 60:02d}"


@dataclass(frozen=True)
class OnlineStream:
    """One live stream as observed by a single poll."""
    login: str                # Normalized identity
    name: str                 # Login as reported by the platform
    title: str
    game: str
    duration: str = "00:00"   # Informational only
    hours: int = 0            # Informational only
    platform: Platform = Platform.TWITCH

    @classmethod
    def from_api(cls, data: dict, now: Optional[datetime] = None) -> 'OnlineStream':
        """Create from a Twitch Helix /streams entry."""
        now = now or datetime.now(timezone.utc)
        started_at = data.get('started_at')
        elapsed = 0.0
        if started_at:
            started = datetime.fromisoformat(started_at.replace('Z', '+00:00'))
            elapsed = (now - started).total_seconds()

        return cls(
            login=normalize_login(data['user_login']),
            name=data['user_login'],
            title=data.get('title', ''),
            game=data.get('game_name', ''),
            duration=format_duration(elapsed),
            hours=max(0, int(elapsed // 3600)),
            platform=Platform.TWITCH,
        )


@dataclass(frozen=True)
class UserInfo:
    """Account that still exists on the platform."""
    name: str
    display_name: str


@dataclass
class Notification:
    """Message ready for delivery."""
    message: str
    photo: Optional[str] = None
    trigger: str = ""         # Diagnostic only


@dataclass(frozen=True)
class RecordingDirective:
    """Start or stop recording one channel."""
    login: str
    action: RecordingAction
    stream: OnlineStream


@dataclass
class ReconcileResult:
    """Everything one reconciliation step derives."""
    notifications: List[Notification] = field(default_factory=list)
    state: List[OnlineStream] = field(default_factory=list)
    to_start: List[RecordingDirective] = field(default_factory=list)
    to_stop: List[RecordingDirective] = field(default_factory=list)


@dataclass(frozen=True)
class Recording:
    """Active recorder process."""
    login: str
    url: str
    output_path: str
    started_at: datetime


@dataclass(frozen=True)
class FreeSpace:
    """Disk space on the recordings volume, in GB."""
    free_gb: float
    total_gb: float
