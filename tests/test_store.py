"""
Store Tests
"""

import pytest

from streamnotify.store import Store


@pytest.fixture
def db_file(tmp_path):
    return str(tmp_path / 'data' / 'db.json')


class TestStore:

    @pytest.mark.asyncio
    async def test_values_survive_reload(self, db_file):
        store = Store(db_file)
        await store.set('users', ['a', 'b'])
        await store.set(Store.chat_key(-100), 555)

        reloaded = Store(db_file)
        await reloaded.load()

        assert await reloaded.get('users') == ['a', 'b']
        assert await reloaded.get('chat:-100') == 555

    @pytest.mark.asyncio
    async def test_delete(self, db_file):
        store = Store(db_file)
        await store.set('key', 'value')
        await store.delete('key')
        await store.delete('missing')

        reloaded = Store(db_file)
        await reloaded.load()

        assert await store.get('key') is None
        assert await reloaded.get('key') is None

    @pytest.mark.asyncio
    async def test_init_seeds_users_once(self, db_file):
        store = Store(db_file)
        await store.init(['b', 'a', 'b'])
        assert await store.get(Store.USERS_KEY) == ['a', 'b']

        await store.set(Store.USERS_KEY, ['a'])
        again = Store(db_file)
        await again.init(['a', 'b', 'c'])

        assert await again.get(Store.USERS_KEY) == ['a']

    @pytest.mark.asyncio
    async def test_corrupt_file_starts_empty(self, db_file, tmp_path):
        (tmp_path / 'data').mkdir(exist_ok=True)
        (tmp_path / 'data' / 'db.json').write_text('{not json', encoding='utf-8')

        store = Store(db_file)
        await store.load()

        assert await store.get('users') is None
