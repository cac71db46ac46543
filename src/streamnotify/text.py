"""
Message rendering for StreamNotify.
Builds Telegram markdown for stream status, pinned summary and recorder reports.
"""

from datetime import datetime
from typing import Dict, List, Optional

from .config import ChannelConfig
from .models import EventType, FreeSpace, OnlineStream, Platform, Recording


PLATFORM_INFO = {
    Platform.TWITCH: {
        'emoji': '🔴',
        'label': 'Twitch',
        'base_url': 'https://twitch.tv',
    },
}

OFFLINE_EMOJI = '⚪️'


def stream_link(stream: OnlineStream) -> str:
    """Public URL of the stream."""
    return f"{PLATFORM_INFO[stream.platform]['base_url']}/{stream.name}"


def stream_markdown_link(stream: OnlineStream, text: str = '') -> str:
    return f"[{text or stream.name}]({stream_link(stream)})"


def short_status(streams: List[OnlineStream]) -> str:
    """Summary for the pinned message."""
    if not streams:
        return f"{OFFLINE_EMOJI} Everybody is offline"

    platforms = {stream.platform for stream in streams}
    message = ''.join(PLATFORM_INFO[p]['emoji'] for p in Platform if p in platforms)
    message += f" {len(streams)} online"

    for stream in streams:
        message += f"\n· {stream_markdown_link(stream)} **{stream.title}**"

    return message


def format_recordings(recordings: List[Recording], now: Optional[datetime] = None) -> str:
    """One line per active recording, empty string when there are none."""
    now = now or datetime.now()
    lines = []
    for rec in recordings:
        minutes = max(0, int((now - rec.started_at).total_seconds() // 60))
        lines.append(
            f"· **{rec.login}** -- {rec.started_at.strftime('%H:%M')} "
            f"({minutes // 60:02d}:{minutes % 60:02d})"
        )
    return '\n'.join(lines)


def format_free_space(free_space: FreeSpace) -> str:
    return f"{free_space.free_gb:.1f}G of {free_space.total_gb:.1f}G"


class Texts:
    """
    Channel-aware message builder.

    Holds the display name and photo tables from configuration; has no I/O,
    so the reconciler can use it while staying pure.
    """

    def __init__(
        self,
        channels: Optional[Dict[str, ChannelConfig]] = None,
        photos: Optional[Dict[EventType, str]] = None
    ):
        self.channels = channels or {}
        self.photos = photos or {}

    def display_name(self, login: str, fallback: Optional[str] = None) -> str:
        channel = self.channels.get(login)
        if channel and channel.display_name:
            return channel.display_name
        return fallback or login

    def photo(self, event_type: EventType, stream: Optional[OnlineStream] = None) -> Optional[str]:
        """Channel photo for live/off events, falling back to the event default."""
        if stream:
            channel = self.channels.get(stream.login)
            if channel:
                if event_type == EventType.LIVE and channel.photo_live:
                    return channel.photo_live
                if event_type == EventType.OFF and channel.photo_off:
                    return channel.photo_off
        return self.photos.get(event_type)

    def status(self, title: str, stream: OnlineStream, is_online: bool) -> str:
        """
        Full stream card.

        Args:
            title: Pre-formatted headline (title, optionally with prefix/game).
            stream: Snapshot the card describes.
            is_online: Live framing if True, "was live" framing otherwise.
        """
        info = PLATFORM_INFO[stream.platform]
        duration = '' if stream.duration.startswith('00:0') else f"for __{stream.duration}__ "
        name = self.display_name(stream.login, stream.name)
        emoji = info['emoji'] if is_online else OFFLINE_EMOJI
        link = stream_markdown_link(stream, f"Open stream on {info['label']} ↗")

        return (
            f"{name} {'is' if is_online else 'was'} live {duration}{emoji}\n"
            f"{title}\n\n"
            f"{link}"
        )
