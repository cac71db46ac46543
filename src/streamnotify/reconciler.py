"""
State reconciliation for StreamNotify.

Compares the previous observed snapshot with a fresh poll and derives the
notifications to send, the snapshot to keep and the recorder directives.
Pure: no I/O, never raises.
"""

from typing import Collection, Dict, List

from .logger import get_logger
from .models import (
    EventType,
    Notification,
    OnlineStream,
    ReconcileResult,
    RecordingAction,
    RecordingDirective,
)
from .text import Texts


_logger = get_logger('reconciler')


def index_by_login(streams: List[OnlineStream]) -> Dict[str, OnlineStream]:
    """
    Map login -> snapshot.

    Later duplicates overwrite earlier ones but keep the position of the
    first occurrence.
    """
    result: Dict[str, OnlineStream] = {}
    for stream in streams:
        if stream.login in result:
            _logger.warning(f"Duplicate stream in snapshot: {stream.login}, keeping the last one")
        result[stream.login] = stream
    return result


def reconcile(
    previous: List[OnlineStream],
    current: List[OnlineStream],
    record_channels: Collection[str],
    texts: Texts
) -> ReconcileResult:
    """
    Diff two snapshots.

    Args:
        previous: State kept from the last tick.
        current: Streams online right now, in poll order.
        record_channels: Logins that get recorded while live.
        texts: Message builder.

    Returns:
        ReconcileResult whose state holds exactly the logins of `current`.
    """
    result = ReconcileResult()
    previous_by_login = index_by_login(previous)
    current_by_login = index_by_login(current)

    for stream in current_by_login.values():
        old = previous_by_login.get(stream.login)

        if old is None:
            _logger.info(f"Notify {stream.login} (new)")
            result.notifications.append(Notification(
                message=texts.status(f"**{stream.title}**", stream, True),
                photo=texts.photo(EventType.LIVE, stream),
                trigger=f"new stream {stream.login}",
            ))

            if stream.login in record_channels:
                _logger.info(f"To start recording -- {stream.login}")
                result.to_start.append(RecordingDirective(stream.login, RecordingAction.START, stream))

        elif stream.title != old.title:
            _logger.info(f"Notify {stream.login} (title)")
            result.notifications.append(Notification(
                message=texts.status(f"💬 **{stream.title}**", stream, True),
                photo=texts.photo(EventType.LIVE, stream),
                trigger=f"title update: {stream.title} != {old.title}",
            ))

        elif stream.game != old.game:
            _logger.info(f"Notify {stream.login} (game)")
            result.notifications.append(Notification(
                message=texts.status(f"🎮 **{stream.title}** · {stream.game}", stream, True),
                photo=texts.photo(EventType.LIVE, stream),
                trigger=f"game update: {stream.game} != {old.game}",
            ))

        result.state.append(stream)

    for old in reversed(list(previous_by_login.values())):
        if old.login in current_by_login:
            continue

        _logger.info(f"Stream is dead -- {old.login}")
        result.notifications.append(Notification(
            message=texts.status(f"**{old.title}**", old, False),
            photo=texts.photo(EventType.OFF, old),
            trigger=f"notify {old.login} (dead)",
        ))

        if old.login in record_channels:
            _logger.info(f"To stop recording -- {old.login}")
            result.to_stop.append(RecordingDirective(old.login, RecordingAction.STOP, old))

    _logger.debug(
        f"Reconciled: {len(result.notifications)} notifications, "
        f"{len(result.to_start)} to start, {len(result.to_stop)} to stop"
    )
    return result
