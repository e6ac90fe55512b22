"""TableFS Integration Tests"""

import os
import tempfile

import pytest
from turso.aio import connect

from tablefs import InvalidConfiguration, StorageAdapter, TableFS, TableFSOptions


@pytest.mark.asyncio
class TestTableFSIntegration:
    """Integration tests for TableFS"""

    async def test_initialize_with_path(self):
        """Should initialize with explicit path"""
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = os.path.join(tmpdir, "data", "test.db")
            fs = await TableFS.open(TableFSOptions(path=db_path))
            assert isinstance(fs, TableFS)
            assert isinstance(fs.storage, StorageAdapter)
            await fs.close()
            assert os.path.exists(db_path)

    async def test_require_path(self):
        """Should require a database path"""
        with pytest.raises(InvalidConfiguration, match="requires 'path'"):
            await TableFS.open(TableFSOptions())

    async def test_invalid_table_name(self):
        """Should reject unsafe table names before touching the table"""
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = os.path.join(tmpdir, "test.db")
            with pytest.raises(InvalidConfiguration):
                await TableFS.open(TableFSOptions(path=db_path, table="files; DROP TABLE x"))

    async def test_persistence_across_reopen(self):
        """Should keep entries in the database file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = os.path.join(tmpdir, "test.db")
            options = TableFSOptions(path=db_path, table="documents", prefix="/tenant/")

            async with await TableFS.open(options) as fs:
                assert await fs.storage.write("notes/today.txt", "remember")

            async with await TableFS.open(options) as fs:
                assert await fs.storage.read("notes/today.txt") == b"remember"
                listing = await fs.storage.list_contents("notes")
                assert [m.path for m in listing] == ["notes/today.txt"]

    async def test_open_with_existing_connection(self):
        """Should reuse a connection and an existing table"""
        with tempfile.TemporaryDirectory() as tmpdir:
            db = await connect(os.path.join(tmpdir, "test.db"))
            await db.executescript("""
                CREATE TABLE files (
                    id INTEGER PRIMARY KEY,
                    path TEXT NOT NULL UNIQUE,
                    type TEXT NOT NULL,
                    contents BLOB,
                    size INTEGER NOT NULL DEFAULT 0,
                    mimetype TEXT,
                    timestamp INTEGER NOT NULL DEFAULT 0
                );
            """)
            await db.commit()

            fs = await TableFS.open_with(db, TableFSOptions(create_table=False))
            assert fs.get_database() is db
            assert await fs.storage.create_dir("foo")
            assert await fs.storage.has("foo")
            await fs.close()
