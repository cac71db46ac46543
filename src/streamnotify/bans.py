"""
Ban tracking for StreamNotify.

An account missing from the "alive users" listing is treated as banned;
one that reappears is unbanned.
"""

from dataclasses import dataclass, field
from typing import Iterable, List

from .logger import get_logger
from .models import EventType, Notification, normalize_login
from .store import Store
from .text import Texts


@dataclass
class BanDiff:
    """Accounts whose ban status flipped since the last poll."""
    banned: List[str] = field(default_factory=list)
    unbanned: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.banned or self.unbanned)


def diff_bans(previous: Iterable[str], fresh: Iterable[str]) -> BanDiff:
    """
    Compare two name sets.

    Returns:
        BanDiff with `banned = previous - fresh` and `unbanned = fresh - previous`,
        both sorted.
    """
    previous_set = set(previous)
    fresh_set = set(fresh)
    return BanDiff(
        banned=sorted(previous_set - fresh_set),
        unbanned=sorted(fresh_set - previous_set),
    )


class BanTracker:
    """Polls alive accounts each tick and reports ban status changes."""

    def __init__(self, store: Store, api, channels: List[str], texts: Texts):
        """
        Args:
            store: Holds the ban set between ticks.
            api: Poller with `get_alive_users(logins)`.
            channels: Logins to watch.
            texts: Message builder.
        """
        self.store = store
        self.api = api
        self.channels = channels
        self.texts = texts
        self._logger = get_logger('bans')

    async def check(self) -> List[Notification]:
        """Poll, diff against the stored set and persist on change."""
        users_saved = await self.store.get(Store.USERS_KEY) or []
        users_fresh = await self.api.get_alive_users(self.channels)
        if users_fresh is None:
            self._logger.warning("No answer from API, skip")
            return []

        fresh_names = [user.name for user in users_fresh]
        diff = diff_bans(users_saved, fresh_names)

        self._logger.debug(f"Banned -- {diff.banned}")
        self._logger.debug(f"Unbanned -- {diff.unbanned}")

        notifications = []
        for user in diff.banned:
            notifications.append(Notification(
                message=f"**{self.texts.display_name(normalize_login(user), user)}** is banned!",
                photo=self.texts.photo(EventType.BANNED),
                trigger='banned (new)',
            ))

        for user in diff.unbanned:
            notifications.append(Notification(
                message=f"**{self.texts.display_name(normalize_login(user), user)}** is unbanned!",
                photo=self.texts.photo(EventType.UNBANNED),
                trigger='unbanned (new)',
            ))

        if diff.changed:
            await self.store.set(Store.USERS_KEY, sorted(set(fresh_names)))
            self._logger.info("Users list updated")

        return notifications
