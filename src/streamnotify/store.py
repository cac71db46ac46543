"""
Key-value store for StreamNotify.
JSON-file backed persistence for the ban set and pinned message ids.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import aiofiles

from .logger import get_logger


class Store:
    """
    Small persistent key-value store.

    Features:
    - JSON-based storage
    - Atomic writes through a temp file
    - Safe for concurrent callers with an asyncio lock
    """

    USERS_KEY = "users"

    def __init__(self, db_file: str = "./data/db.json"):
        """
        Initialize store.

        Args:
            db_file: Path to JSON database file.
        """
        self.db_file = Path(db_file)
        self._logger = get_logger('store')
        self._lock = asyncio.Lock()
        self._data: Dict[str, Any] = {}

        self.db_file.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def chat_key(chat_id: int) -> str:
        """Key holding the pinned message id of a chat."""
        return f"chat:{chat_id}"

    async def init(self, channels: Iterable[str]) -> None:
        """Load the file and seed the ban set with the configured channels."""
        await self.load()
        if await self.get(self.USERS_KEY) is None:
            await self.set(self.USERS_KEY, sorted(set(channels)))
            self._logger.info("Seeded users list from config")

    async def load(self) -> None:
        """Load data from file."""
        async with self._lock:
            if not self.db_file.exists():
                self._logger.info("No database file found, starting fresh")
                return

            try:
                async with aiofiles.open(self.db_file, 'r', encoding='utf-8') as f:
                    data = json.loads(await f.read())
                self._data = data.get('values', {})
                self._logger.info(f"Loaded database: {len(self._data)} keys")
            except (OSError, ValueError) as e:
                self._logger.error(f"Failed to load database: {e}")

    async def _save_unlocked(self) -> None:
        """Save data to file (caller must hold lock)."""
        data = {
            'values': self._data,
            'last_updated': datetime.now().isoformat()
        }

        tmp_file = self.db_file.with_suffix(self.db_file.suffix + ".tmp")

        try:
            async with aiofiles.open(tmp_file, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(data, indent=2, ensure_ascii=False))
            tmp_file.replace(self.db_file)
        except OSError as e:
            self._logger.error(f"Failed to save database: {e}")

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            self._data[key] = value
            await self._save_unlocked()

    async def delete(self, key: str) -> None:
        async with self._lock:
            if key in self._data:
                del self._data[key]
                await self._save_unlocked()
