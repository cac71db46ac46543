"""
Telegram Bot Tests

Error mapping and paced delivery against a fake Telethon client.
"""

import pytest
from telethon.errors import MessageIdInvalidError, MessageNotModifiedError

from streamnotify.errors import NotModifiedError, PersistentEditError, TransientIOError
from streamnotify.models import Notification
from streamnotify.telegram import TelegramBot


class FakeClient:
    def __init__(self, edit_error=None, fail_on=None, photo_error=None):
        self.edit_error = edit_error
        self.fail_on = fail_on
        self.photo_error = photo_error
        self.sent = []

    async def edit_message(self, chat_id, msg_id, text, link_preview=False):
        if self.edit_error:
            raise self.edit_error

    async def send_message(self, chat_id, text, link_preview=False):
        if text == self.fail_on:
            raise ConnectionError("connection lost")
        self.sent.append(('message', chat_id, text))

    async def send_file(self, chat_id, file, caption=None):
        if self.photo_error:
            raise self.photo_error
        self.sent.append(('photo', chat_id, file, caption))


@pytest.fixture
def bot():
    return TelegramBot(api_id=1, api_hash='hash', bot_token='123:token', admin_id=42, send_delay=0)


class TestUpdatePin:

    @pytest.mark.asyncio
    async def test_success(self, bot):
        bot._client = FakeClient()

        await bot.update_pin(-100, 10, 'text')

    @pytest.mark.asyncio
    async def test_not_modified(self, bot):
        bot._client = FakeClient(edit_error=MessageNotModifiedError(request=None))

        with pytest.raises(NotModifiedError):
            await bot.update_pin(-100, 10, 'text')

    @pytest.mark.asyncio
    async def test_invalid_message_is_persistent(self, bot):
        bot._client = FakeClient(edit_error=MessageIdInvalidError(request=None))

        with pytest.raises(PersistentEditError):
            await bot.update_pin(-100, 10, 'text')

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self, bot):
        bot._client = FakeClient(edit_error=ConnectionError("down"))

        with pytest.raises(TransientIOError):
            await bot.update_pin(-100, 10, 'text')

    @pytest.mark.asyncio
    async def test_not_connected(self, bot):
        with pytest.raises(TransientIOError):
            await bot.update_pin(-100, 10, 'text')


class TestSendNotifications:

    @pytest.mark.asyncio
    async def test_sends_in_order_with_photo(self, bot):
        bot._client = FakeClient()

        await bot.send_notifications(-100, [
            Notification('one', photo='p.jpg'),
            Notification('two'),
        ])

        assert bot._client.sent == [
            ('photo', -100, 'p.jpg', 'one'),
            ('message', -100, 'two'),
        ]

    @pytest.mark.asyncio
    async def test_failed_send_does_not_stop_the_rest(self, bot):
        bot._client = FakeClient(fail_on='two')

        await bot.send_notifications(-100, [
            Notification('one'),
            Notification('two'),
            Notification('three'),
        ])

        assert [item[2] for item in bot._client.sent] == ['one', 'three']

    @pytest.mark.asyncio
    async def test_rejected_photo_does_not_stop_the_rest(self, bot):
        bot._client = FakeClient(photo_error=ValueError("Cannot use 'x' as file"))

        await bot.send_notifications(-100, [
            Notification('one', photo='x'),
            Notification('two'),
        ])

        assert bot._client.sent == [('message', -100, 'two')]
