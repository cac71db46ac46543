"""
Twitch Helix API client for StreamNotify.
Handles authentication, live stream polling and account listing.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import aiohttp

from .errors import TransientIOError
from .logger import get_logger
from .models import OnlineStream, UserInfo, normalize_login


BATCH_SIZE = 100  # Helix limit for user_login/login params


def chunks(items: List[str], size: int = BATCH_SIZE):
    for i in range(0, len(items), size):
        yield items[i:i + size]


class TwitchAPI:
    """
    Twitch Helix API client.

    Features:
    - Client Credentials authentication
    - Automatic token refresh
    - Batched live stream polling
    - Alive accounts listing for ban detection
    """

    BASE_URL = "https://api.twitch.tv/helix"
    AUTH_URL = "https://id.twitch.tv/oauth2/token"

    def __init__(self, client_id: str, client_secret: str, request_timeout: float = 30):
        """
        Initialize Twitch API client.

        Args:
            client_id: Twitch application Client ID.
            client_secret: Twitch application Client Secret.
            request_timeout: Total timeout per HTTP request, seconds.
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.request_timeout = request_timeout

        self._app_token: Optional[str] = None
        self._token_expires: Optional[datetime] = None
        self._session: Optional[aiohttp.ClientSession] = None
        self._logger = get_logger('twitch_api')

    async def connect(self) -> bool:
        """
        Initialize session and authenticate.

        Returns:
            True if connected successfully.
        """
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.request_timeout)
        )

        if not await self._refresh_token():
            return False

        self._logger.info(f"Connected to Twitch API, client id = [...{self.client_id[-5:]}]")
        return True

    async def disconnect(self) -> None:
        """Close session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _refresh_token(self) -> bool:
        """Get or refresh app access token."""
        try:
            async with self._session.post(
                self.AUTH_URL,
                params={
                    'client_id': self.client_id,
                    'client_secret': self.client_secret,
                    'grant_type': 'client_credentials'
                }
            ) as resp:
                if resp.status != 200:
                    self._logger.error(f"Auth failed: {resp.status}")
                    return False

                data = await resp.json()
                self._app_token = data['access_token']
                expires_in = data.get('expires_in', 3600)
                self._token_expires = datetime.now() + timedelta(seconds=expires_in - 60)

                self._logger.debug("Got new app access token")
                return True

        except (aiohttp.ClientError, asyncio.TimeoutError, KeyError, ValueError) as e:
            self._logger.error(f"Token refresh failed: {e}")
            return False

    async def _ensure_token(self) -> bool:
        """Ensure we have a valid token."""
        if not self._app_token or datetime.now() >= self._token_expires:
            return await self._refresh_token()
        return True

    def _headers(self) -> dict:
        return {
            'Client-ID': self.client_id,
            'Authorization': f'Bearer {self._app_token}'
        }

    async def _get(self, path: str, params: list) -> list:
        """
        GET a Helix endpoint and return its `data` list.

        Raises:
            TransientIOError: On auth, transport or HTTP failure.
        """
        if not self._session:
            raise TransientIOError("Twitch API is not connected")
        if not await self._ensure_token():
            raise TransientIOError("No Twitch app token")

        try:
            async with self._session.get(
                f"{self.BASE_URL}/{path}",
                headers=self._headers(),
                params=params
            ) as resp:
                if resp.status == 401:
                    # Token revoked early, next call gets a new one
                    self._app_token = None
                if resp.status != 200:
                    text = await resp.text()
                    raise TransientIOError(f"API error on /{path}: {resp.status} - {text}")

                data = await resp.json()
                return data.get('data', [])

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientIOError(f"Request to /{path} failed: {e}") from e

    async def get_live_streams(self, channels: List[str]) -> List[OnlineStream]:
        """
        Get live streams among the given channels.

        Offline channels are simply absent from the result.

        Args:
            channels: Channel logins.

        Returns:
            One OnlineStream per live channel, in API order.

        Raises:
            TransientIOError: If any batch could not be fetched.
        """
        now = datetime.now(timezone.utc)
        streams: List[OnlineStream] = []

        for batch in chunks(channels):
            params = [('user_login', ch) for ch in batch] + [('first', str(BATCH_SIZE))]
            for s in await self._get('streams', params):
                streams.append(OnlineStream.from_api(s, now))

        self._logger.debug(f"Live: {[s.login for s in streams]}")
        return streams

    async def get_alive_users(self, channels: List[str]) -> Optional[List[UserInfo]]:
        """
        Get accounts that still exist.

        Args:
            channels: Channel logins.

        Returns:
            Existing accounts, or None if the API gave no answer.
        """
        users: List[UserInfo] = []

        try:
            for batch in chunks(channels):
                for u in await self._get('users', [('login', ch) for ch in batch]):
                    users.append(UserInfo(
                        name=normalize_login(u['login']),
                        display_name=u.get('display_name', u['login']),
                    ))
        except TransientIOError as e:
            self._logger.error(f"Failed to get users: {e}")
            return None

        return users


async def main():
    """Test the Twitch API client."""
    import os
    from .logger import setup_logging

    setup_logging(level="DEBUG")

    api = TwitchAPI(
        client_id=os.getenv("TWITCH_CLIENT_ID", ""),
        client_secret=os.getenv("TWITCH_CLIENT_SECRET", "")
    )

    if await api.connect():
        for stream in await api.get_live_streams(["shroud", "pokimane"]):
            print(f"LIVE: {stream.name} - {stream.title} ({stream.game}, {stream.duration})")

        users = await api.get_alive_users(["shroud", "pokimane"])
        print(f"Alive: {[u.name for u in users or []]}")

    await api.disconnect()


if __name__ == '__main__':
    asyncio.run(main())
