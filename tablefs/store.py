"""Data access for the flat entries table"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Tuple

from turso.aio import Connection

from .constants import LIKE_ESCAPE, PATH_SEPARATOR, TYPE_FILE
from .paths import validate_table_name
from .records import METADATA_COLUMNS, Row

logger = logging.getLogger(__name__)

_ESCAPE_CLAUSE = f"ESCAPE '{LIKE_ESCAPE}'"

# LIKE folds ASCII case, so the literal prefix is compared as well
_DESCENDANTS_CLAUSE = f"(path LIKE ? {_ESCAPE_CLAUSE} AND substr(path, 1, ?) = ?)"


def _descendant_params(path: str, pattern: str) -> Tuple[Any, ...]:
    prefix = path + PATH_SEPARATOR if path else ""
    return (pattern, len(prefix), prefix)


class EntryStore:
    """Point and prefix queries over one validated table

    All statements are parameterized; the table name is the only value
    interpolated into SQL and is validated on construction. Descendant
    queries take the parent's stored path together with the LIKE pattern
    built for it (see patterns.descendants_pattern).
    """

    def __init__(self, db: Connection, table: str):
        self._db = db
        self._table = validate_table_name(table)
        self._lock = asyncio.Lock()

    @property
    def table(self) -> str:
        return self._table

    async def ensure_schema(self) -> None:
        """Create the entries table if it doesn't exist (SQLite dialect)"""
        await self._db.executescript(f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                id INTEGER PRIMARY KEY,
                path TEXT NOT NULL UNIQUE,
                type TEXT NOT NULL,
                contents BLOB,
                size INTEGER NOT NULL DEFAULT 0,
                mimetype TEXT,
                timestamp INTEGER NOT NULL DEFAULT 0
            );
        """)
        await self._db.commit()

    async def fetch(self, path: str) -> Optional[Tuple[Any, ...]]:
        """Metadata row for an exact path, without the payload"""
        cursor = await self._db.execute(
            f"SELECT {METADATA_COLUMNS} FROM {self._table} WHERE path = ?",
            (path,),
        )
        return await cursor.fetchone()

    async def fetch_contents(self, path: str) -> Optional[bytes]:
        """Payload of an exact path; None when the row is missing"""
        cursor = await self._db.execute(
            f"SELECT contents FROM {self._table} WHERE path = ?",
            (path,),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return bytes(row[0]) if row[0] is not None else b""

    async def fetch_descendants(self, path: str, pattern: str) -> List[Tuple[Any, ...]]:
        """Metadata rows of every strict descendant, ordered by path"""
        cursor = await self._db.execute(
            f"""
            SELECT {METADATA_COLUMNS} FROM {self._table}
            WHERE {_DESCENDANTS_CLAUSE}
            ORDER BY path ASC
            """,
            _descendant_params(path, pattern),
        )
        return await cursor.fetchall()

    async def has_descendants(self, path: str, pattern: str) -> bool:
        cursor = await self._db.execute(
            f"SELECT 1 FROM {self._table} WHERE {_DESCENDANTS_CLAUSE} LIMIT 1",
            _descendant_params(path, pattern),
        )
        return await cursor.fetchone() is not None

    async def fetch_file_paths(self, paths: List[str]) -> List[str]:
        """Those of `paths` that are stored as files"""
        if not paths:
            return []
        placeholders = ", ".join("?" for _ in paths)
        cursor = await self._db.execute(
            f"""
            SELECT path FROM {self._table}
            WHERE type = ? AND path IN ({placeholders})
            ORDER BY path ASC
            """,
            (TYPE_FILE,) + tuple(paths),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def fetch_tree_paths(self, path: str, pattern: str) -> List[str]:
        """Paths of the exact row and of every strict descendant"""
        cursor = await self._db.execute(
            f"""
            SELECT path FROM {self._table}
            WHERE path = ? OR {_DESCENDANTS_CLAUSE}
            ORDER BY path ASC
            """,
            (path,) + _descendant_params(path, pattern),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def insert(self, row: Row) -> None:
        await self._db.execute(
            f"""
            INSERT INTO {self._table} (path, type, contents, size, mimetype, timestamp)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                row["path"],
                row["type"],
                row["contents"],
                row["size"],
                row["mimetype"],
                row["timestamp"],
            ),
        )
        logger.debug("Inserted %s row %s (%d bytes)", row["type"], row["path"], row["size"])

    async def update(self, row: Row) -> None:
        """Replace payload and metadata of an existing row; path and type stay"""
        await self._db.execute(
            f"""
            UPDATE {self._table}
            SET contents = ?, size = ?, mimetype = ?, timestamp = ?
            WHERE path = ?
            """,
            (row["contents"], row["size"], row["mimetype"], row["timestamp"], row["path"]),
        )
        logger.debug("Updated row %s (%d bytes)", row["path"], row["size"])

    async def delete(self, path: str) -> None:
        await self._db.execute(f"DELETE FROM {self._table} WHERE path = ?", (path,))
        logger.debug("Deleted row %s", path)

    async def rename_tree(self, old_path: str, new_path: str, pattern: str) -> None:
        """Move the exact row and every descendant in one statement

        Each matched path starts with `old_path`, which is swapped for
        `new_path` while the remainder is kept.
        """
        await self._db.execute(
            f"""
            UPDATE {self._table}
            SET path = ? || substr(path, ?)
            WHERE path = ? OR {_DESCENDANTS_CLAUSE}
            """,
            (new_path, len(old_path) + 1, old_path) + _descendant_params(old_path, pattern),
        )

    async def delete_tree(self, path: str, pattern: str) -> None:
        """Delete the exact row and every descendant in one statement"""
        await self._db.execute(
            f"""
            DELETE FROM {self._table}
            WHERE path = ? OR {_DESCENDANTS_CLAUSE}
            """,
            (path,) + _descendant_params(path, pattern),
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["EntryStore"]:
        """Commit on success; roll back and re-raise on failure

        Transactions on one store run one at a time, so a rollback never
        discards another task's uncommitted rows on the shared connection.
        """
        async with self._lock:
            try:
                yield self
            except BaseException:
                await self._db.rollback()
                raise
            else:
                await self._db.commit()
