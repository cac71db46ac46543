"""
Twitch API Tests

Batching and failure handling against a stubbed Helix endpoint.
"""

from datetime import datetime, timezone

import pytest

from streamnotify.errors import TransientIOError
from streamnotify.models import OnlineStream
from streamnotify.twitch_api import BATCH_SIZE, TwitchAPI


class FakeHelix:
    """Stands in for TwitchAPI._get, answering from per-path handlers."""

    def __init__(self, fail_on_call=None):
        self.fail_on_call = fail_on_call
        self.calls = []

    async def __call__(self, path, params):
        self.calls.append((path, params))
        if self.fail_on_call == len(self.calls):
            raise TransientIOError("API error on /users: 503")

        if path == 'users':
            return [{'login': value, 'display_name': value.upper()} for key, value in params if key == 'login']
        return [
            {'user_login': value, 'title': 'T', 'game_name': 'G', 'started_at': '2026-01-01T10:00:00Z'}
            for key, value in params if key == 'user_login'
        ]


@pytest.fixture
def api():
    return TwitchAPI(client_id='client', client_secret='secret')


def logins(count):
    return [f'user{i}' for i in range(count)]


class TestAliveUsers:

    @pytest.mark.asyncio
    async def test_batches_of_one_hundred(self, api):
        api._get = helix = FakeHelix()

        users = await api.get_alive_users(logins(250))

        assert [len(params) for _, params in helix.calls] == [100, 100, 50]
        assert len(users) == 250
        assert users[0].name == 'user0'
        assert users[0].display_name == 'USER0'

    @pytest.mark.asyncio
    async def test_failed_batch_means_no_answer(self, api):
        api._get = FakeHelix(fail_on_call=2)

        assert await api.get_alive_users(logins(150)) is None

    @pytest.mark.asyncio
    async def test_no_channels(self, api):
        api._get = helix = FakeHelix()

        assert await api.get_alive_users([]) == []
        assert helix.calls == []


class TestLiveStreams:

    @pytest.mark.asyncio
    async def test_batches_and_page_size(self, api):
        api._get = helix = FakeHelix()

        streams = await api.get_live_streams(logins(101))

        assert len(helix.calls) == 2
        assert ('first', str(BATCH_SIZE)) in helix.calls[0][1]
        assert [s.login for s in streams] == logins(101)

    @pytest.mark.asyncio
    async def test_failed_batch_raises(self, api):
        api._get = FakeHelix(fail_on_call=2)

        with pytest.raises(TransientIOError):
            await api.get_live_streams(logins(150))

    @pytest.mark.asyncio
    async def test_not_connected(self, api):
        with pytest.raises(TransientIOError):
            await api.get_live_streams(['a'])


class TestFromApi:

    def test_field_mapping(self):
        now = datetime(2026, 1, 1, 12, 5, tzinfo=timezone.utc)

        stream = OnlineStream.from_api({
            'user_login': 'SomeOne',
            'title': 'Hello',
            'game_name': 'Chess',
            'started_at': '2026-01-01T10:00:00Z',
        }, now)

        assert stream.login == 'someone'
        assert stream.name == 'SomeOne'
        assert stream.title == 'Hello'
        assert stream.game == 'Chess'
        assert stream.duration == '02:05'
        assert stream.hours == 2

    def test_missing_start_time(self):
        stream = OnlineStream.from_api({'user_login': 'a'})

        assert stream.duration == '00:00'
        assert stream.hours == 0
        assert stream.title == ''
        assert stream.game == ''
