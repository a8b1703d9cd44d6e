import asyncio
from contextlib import asynccontextmanager, nullcontext
from uuid import uuid4

import asyncpg
import pytest

from social.core import db as db_module
from social.core.errors import IntegrityFault
from social.services import user_service


class FakePool:
    @asynccontextmanager
    async def acquire(self):
        yield object()


@pytest.mark.asyncio
async def test_concurrent_first_use_creates_one_pool(monkeypatch):
    created = []

    async def fake_init_db(database_url=None):
        await asyncio.sleep(0.01)
        created.append(FakePool())
        db_module.pool = created[-1]
        return db_module.pool

    monkeypatch.setattr(db_module, "pool", None)
    monkeypatch.setattr(db_module, "_pool_lock", asyncio.Lock())
    monkeypatch.setattr(db_module, "init_db", fake_init_db)

    async def borrow():
        async with db_module.get_connection() as connection:
            return connection

    await asyncio.gather(borrow(), borrow(), borrow())

    assert len(created) == 1


class DeadlockingConnection:
    def transaction(self):
        return nullcontext()

    async def execute(self, query, *args):
        raise asyncpg.exceptions.DeadlockDetectedError("deadlock detected")


@pytest.mark.asyncio
async def test_delete_user_rollback_is_an_integrity_fault(monkeypatch):
    @asynccontextmanager
    async def fake_get_connection():
        yield DeadlockingConnection()

    monkeypatch.setattr(user_service, "get_connection", fake_get_connection)

    with pytest.raises(IntegrityFault):
        await user_service.delete_user(uuid4())
