"""Shared fixtures: a fresh database file per test"""

import os
import tempfile

import pytest
import pytest_asyncio
from turso.aio import connect

from tablefs import StorageAdapter

TABLE = "files"
PREFIX = "/test/"


@pytest_asyncio.fixture
async def db():
    with tempfile.TemporaryDirectory() as tmpdir:
        conn = await connect(os.path.join(tmpdir, "test.db"))
        try:
            yield conn
        finally:
            await conn.close()


@pytest_asyncio.fixture
async def storage(db):
    return await StorageAdapter.from_database(db, table=TABLE, prefix=PREFIX)


@pytest.fixture
def table_contents(db, storage):
    """Async callable returning all rows with the prefix stripped, in insertion order"""

    async def _contents(with_timestamp=False):
        cursor = await db.execute(
            f"SELECT path, type, contents, size, mimetype, timestamp FROM {storage.table} ORDER BY id"
        )
        rows = await cursor.fetchall()
        result = []
        for path, type_, contents, size, mimetype, timestamp in rows:
            row = {
                "path": storage.remove_path_prefix(path),
                "type": type_,
                "contents": bytes(contents) if contents is not None else None,
                "size": int(size),
                "mimetype": mimetype,
            }
            if with_timestamp:
                row["timestamp"] = int(timestamp)
            result.append(row)
        return result

    return _contents
