"""Тесты сессии на запрос: коммит, откат и колбэки после коммита."""
from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest

from presentation.dependencies import get_session


class FakeSession:
    def __init__(self, events: list[str]):
        self.events = events

    async def commit(self):
        self.events.append('commit')

    async def rollback(self):
        self.events.append('rollback')


class FakeDatabase:
    def __init__(self):
        self.events: list[str] = []

    @asynccontextmanager
    async def get_session(self):
        yield FakeSession(self.events)
        self.events.append('close')


def make_request(database: FakeDatabase):
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(database=database)), state=SimpleNamespace())


class TestGetSession:

    @pytest.mark.asyncio
    async def test_callbacks_run_after_commit(self):
        database = FakeDatabase()
        request = make_request(database)
        dependency = get_session(request)

        await dependency.__anext__()

        async def callback():
            database.events.append('callback')

        request.state.after_commit.append(callback)
        with pytest.raises(StopAsyncIteration):
            await dependency.__anext__()

        assert database.events == ['commit', 'close', 'callback']

    @pytest.mark.asyncio
    async def test_callbacks_skipped_on_rollback(self):
        database = FakeDatabase()
        request = make_request(database)
        dependency = get_session(request)

        await dependency.__anext__()

        async def callback():
            database.events.append('callback')

        request.state.after_commit.append(callback)
        with pytest.raises(RuntimeError):
            await dependency.athrow(RuntimeError('endpoint failed'))

        assert 'callback' not in database.events
        assert 'rollback' in database.events
