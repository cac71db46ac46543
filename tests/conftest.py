"""Shared fixtures for StreamNotify tests."""

import pytest

from streamnotify.config import ChannelConfig
from streamnotify.models import EventType, OnlineStream
from streamnotify.text import Texts


@pytest.fixture
def make_stream():
    def factory(login, title="Title", game="Game", duration="01:30"):
        return OnlineStream(
            login=login,
            name=login,
            title=title,
            game=game,
            duration=duration,
            hours=int(duration.split(':')[0]),
        )
    return factory


@pytest.fixture
def texts():
    return Texts(
        channels={'alpha': ChannelConfig(display_name='Alpha', photo_live='alpha_live.jpg')},
        photos={
            EventType.LIVE: 'live.jpg',
            EventType.OFF: 'off.jpg',
            EventType.BANNED: 'banned.jpg',
            EventType.UNBANNED: 'unbanned.jpg',
        },
    )


@pytest.fixture
def raw_config(tmp_path):
    """Minimal valid YAML data with every path under tmp_path."""
    return {
        'telegram': {
            'api_id': 12345,
            'api_hash': 'hash',
            'bot_token': '123:token',
            'chat_id': -100,
            'admin_id': 42,
            'send_delay': 0,
        },
        'twitch': {
            'client_id': 'client',
            'client_secret': 'secret',
            'channels': ['a', 'b', 'c'],
        },
        'recorder': {
            'channels': ['a', 'b'],
            'output_dir': str(tmp_path / 'recordings'),
        },
        'logging': {'file': str(tmp_path / 'logs' / 'info.log')},
        'storage': {'db_file': str(tmp_path / 'data' / 'db.json')},
        'timeout': 1,
    }
