"""
Telegram bot module for StreamNotify.
Sends notifications, keeps the pinned summary fresh and answers admin commands.
"""

import asyncio
from typing import List, Optional, Tuple

from telethon import TelegramClient, events
from telethon.errors import FloodWaitError, MessageNotModifiedError, RPCError

from .errors import NotModifiedError, PersistentEditError, TransientIOError
from .logger import get_logger
from .models import Notification, Recording
from .text import format_recordings


class CommandHandler:
    """
    What inbound commands may do to the running app.

    The bot only talks to the app through this object.
    """

    async def request_pin(self, chat_id: int, message_id: int) -> None:
        """Remember `message_id` as the pinned summary of `chat_id`."""
        raise NotImplementedError

    async def recordings_report(self) -> Tuple[str, List[Recording]]:
        """Disk state line and active recordings."""
        raise NotImplementedError


class TelegramBot:
    """
    Telegram bot client built on Telethon.

    Features:
    - Paced sequential delivery (photo with caption or plain text)
    - Pinned message edits with not-modified detection
    - Admin-only /get_pin and /get_re commands
    """

    def __init__(
        self,
        api_id: int,
        api_hash: str,
        bot_token: str,
        admin_id: int,
        session_name: str = "streamnotify",
        send_delay: float = 5.0
    ):
        """
        Initialize Telegram bot.

        Args:
            api_id: Telegram API ID.
            api_hash: Telegram API hash.
            bot_token: Token from @BotFather.
            admin_id: Only this chat may run commands.
            session_name: Session file name.
            send_delay: Seconds to wait after each sent message.
        """
        self._logger = get_logger('telegram')
        self.api_id = api_id
        self.api_hash = api_hash
        self.bot_token = bot_token
        self.admin_id = admin_id
        self.session_name = session_name
        self.send_delay = send_delay

        self._client: Optional[TelegramClient] = None
        self._handler: Optional[CommandHandler] = None

    async def connect(self, handler: CommandHandler) -> bool:
        """
        Log in as the bot and register command handlers.

        Returns:
            True if connected successfully.
        """
        self._handler = handler
        try:
            self._client = TelegramClient(self.session_name, self.api_id, self.api_hash)
            await self._client.start(bot_token=self.bot_token)

            me = await self._client.get_me()
            self._logger.info(f"Connected to Telegram as @{me.username}, token = [...{self.bot_token[-5:]}]")
        except (RPCError, ConnectionError, OSError) as e:
            self._logger.error(f"Failed to connect: {e}")
            return False

        self._client.add_event_handler(self._on_get_pin, events.NewMessage(pattern=r'^/get_pin\b'))
        self._client.add_event_handler(self._on_get_re, events.NewMessage(pattern=r'^/get_re\b'))
        return True

    async def disconnect(self) -> None:
        """Disconnect from Telegram."""
        if self._client:
            await self._client.disconnect()
            self._client = None

    async def run_until_disconnected(self) -> None:
        """Serve inbound commands until the client disconnects."""
        if self._client:
            await self._client.run_until_disconnected()
        self._logger.warning("Bot died somehow...")

    def _is_admin(self, event) -> bool:
        if event.chat_id != self.admin_id:
            self._logger.debug(f"Skip command from chat -- {event.chat_id}")
            return False
        return True

    async def _on_get_pin(self, event) -> None:
        if not self._is_admin(event):
            return

        msg = await event.respond("Loading messageID...", link_preview=False)
        await self._handler.request_pin(event.chat_id, msg.id)
        self._logger.info(f"get_pin: messageID -- {msg.id}")

        await asyncio.sleep(2)
        try:
            await self.update_pin(
                event.chat_id,
                msg.id,
                f"Now this message will be updated on every change ({msg.id})"
            )
        except NotModifiedError:
            self._logger.debug("get_pin: same message, just ignore")
        except (PersistentEditError, TransientIOError) as e:
            self._logger.warning(f"get_pin: first update failed: {e}")

    async def _on_get_re(self, event) -> None:
        if not self._is_admin(event):
            return

        state, recordings = await self._handler.recordings_report()
        message = format_recordings(recordings) or "There are no active recordings"
        await event.respond(f"{message}\n{state}", link_preview=False)

    async def send_notification(self, chat_id: int, notification: Notification) -> None:
        """
        Send one notification.

        Raises:
            TransientIOError: If Telegram rejected or failed the send.
        """
        if not self._client:
            raise TransientIOError("Telegram client is not connected")

        try:
            if notification.photo:
                await self._client.send_file(chat_id, notification.photo, caption=notification.message)
            else:
                await self._client.send_message(chat_id, notification.message, link_preview=False)
        except (RPCError, ConnectionError, OSError) as e:
            raise TransientIOError(f"Send to {chat_id} failed: {e}") from e

    async def send_notifications(self, chat_id: int, notifications: List[Notification]) -> None:
        """Send notifications in order, one at a time, pausing between them."""
        for notification in notifications:
            try:
                await self.send_notification(chat_id, notification)
                self._logger.info(f"Send -- {chat_id}, {notification.message!r}")
            except TransientIOError as e:
                self._logger.error(f"Send failed ({notification.trigger}): {e}")
            except Exception:
                # Telethon rejects unusable photos with TypeError/ValueError
                self._logger.exception(f"Send failed ({notification.trigger})")

            await asyncio.sleep(self.send_delay)

    async def update_pin(self, chat_id: int, msg_id: int, text: str) -> None:
        """
        Replace the text of the pinned summary message.

        Raises:
            NotModifiedError: Text is unchanged.
            PersistentEditError: Message cannot be edited any more.
            TransientIOError: Connection problem, worth retrying later.
        """
        if not self._client:
            raise TransientIOError("Telegram client is not connected")

        self._logger.debug(f"Update pin: try {chat_id}:{msg_id} -- {text!r}")
        try:
            await self._client.edit_message(chat_id, msg_id, text, link_preview=False)
        except MessageNotModifiedError as e:
            raise NotModifiedError(str(e)) from e
        except FloodWaitError as e:
            raise TransientIOError(f"Flood wait on edit: {e.seconds}s") from e
        except RPCError as e:
            raise PersistentEditError(f"Can't update message {chat_id}:{msg_id}: {e}") from e
        except (ConnectionError, OSError) as e:
            raise TransientIOError(f"Can't reach Telegram: {e}") from e

        self._logger.debug(f"Update pin: done {chat_id}:{msg_id}")
