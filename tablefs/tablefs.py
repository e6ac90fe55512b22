"""Main TableFS class"""

import os
from dataclasses import dataclass
from typing import Optional

from turso.aio import Connection, connect

from .adapter import StorageAdapter
from .constants import DEFAULT_TABLE
from .errors import create_storage_error
from .mimetype import MimetypeDetector


@dataclass
class TableFSOptions:
    """Configuration options for opening a TableFS instance

    Attributes:
        path: Path to the database file. Required by TableFS.open().
        table: Name of the entries table (letters, digits and underscores)
        prefix: Prefix prepended to every stored path, e.g. '/tenant-a/'
        create_table: Create the entries table if it is missing
        mimetype_detector: Callable (filename, sample) -> content type
    """

    path: Optional[str] = None
    table: str = DEFAULT_TABLE
    prefix: str = ""
    create_table: bool = True
    mimetype_detector: Optional[MimetypeDetector] = None


class TableFS:
    """TableFS - a hierarchical filesystem stored in one flat table

    Every file and directory is a row keyed by its full path.
    """

    def __init__(self, db: Connection, storage: StorageAdapter):
        """Private constructor - use TableFS.open() instead"""
        self._db = db
        self.storage = storage

    @staticmethod
    async def open(options: TableFSOptions) -> "TableFS":
        """Open a table filesystem backed by a database file

        Args:
            options: Configuration options (path required)

        Returns:
            Fully initialized TableFS instance

        Raises:
            InvalidConfiguration: If path is missing or the table name is invalid

        Example:
            >>> fs = await TableFS.open(TableFSOptions(path='./data/files.db'))
            >>> await fs.storage.write('docs/readme.txt', 'hello')
        """
        if not options.path:
            raise create_storage_error(
                code="INVALID_CONFIGURATION",
                operation="configure",
                message="TableFS.open() requires 'path'",
            )

        directory = os.path.dirname(options.path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory, exist_ok=True)

        db = await connect(options.path)
        try:
            return await TableFS.open_with(db, options)
        except Exception:
            await db.close()
            raise

    @staticmethod
    async def open_with(db: Connection, options: Optional[TableFSOptions] = None) -> "TableFS":
        """Open a TableFS instance with an existing database connection

        Args:
            db: An existing pyturso.aio Connection
            options: Table, prefix and detector settings; `path` is ignored

        Returns:
            Fully initialized TableFS instance
        """
        options = options or TableFSOptions()
        storage = await StorageAdapter.from_database(
            db,
            table=options.table,
            prefix=options.prefix,
            create_table=options.create_table,
            mimetype_detector=options.mimetype_detector,
        )
        return TableFS(db, storage)

    def get_database(self) -> Connection:
        """Get the underlying Database connection"""
        return self._db

    async def close(self) -> None:
        """Close the database connection"""
        await self._db.close()

    async def __aenter__(self) -> "TableFS":
        """Context manager entry"""
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        """Context manager exit"""
        await self.close()
