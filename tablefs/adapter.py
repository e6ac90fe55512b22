"""Storage adapter emulating a filesystem on a flat table"""

import logging
import time
from typing import Any, Awaitable, List, Optional, TypeVar, Union

from turso import IntegrityError
from turso.aio import Connection

from .constants import DEFAULT_TABLE, TYPE_DIR, VISIBILITY_PUBLIC
from .directory import DirectoryOps
from .errors import (
    AlreadyExists,
    DestinationConflict,
    InvalidPath,
    NotFound,
    SourceNotFound,
    StorageErrorCode,
    StorageOperation,
    create_storage_error,
)
from .mimetype import MimetypeDetector
from .paths import PathCodec
from .records import (
    BlobStream,
    FileEntry,
    Metadata,
    RecordMapper,
    WriteConfig,
    drain,
)
from .store import EntryStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Outcomes callers expect as ordinary results rather than faults
_EXPECTED_ERRORS = (InvalidPath, NotFound, AlreadyExists, DestinationConflict, SourceNotFound)


class StorageAdapter:
    """Filesystem operations over a table of path-keyed rows

    Public methods follow an error-tolerant contract: missing entries,
    occupied destinations and malformed paths yield False or None.
    Store failures and internal invariant violations propagate.
    """

    def __init__(
        self,
        db: Connection,
        table: str = DEFAULT_TABLE,
        prefix: Optional[str] = None,
        mimetype_detector: Optional[MimetypeDetector] = None,
    ):
        """Wire up the adapter

        Raises:
            InvalidConfiguration: If `table` is not a plain identifier
        """
        self._store = EntryStore(db, table)
        self._codec = PathCodec(prefix)
        self._mapper = RecordMapper(mimetype_detector)
        self._dirs = DirectoryOps(self._store, self._codec, self._mapper)

    @staticmethod
    async def from_database(
        db: Connection,
        table: str = DEFAULT_TABLE,
        prefix: Optional[str] = None,
        create_table: bool = True,
        mimetype_detector: Optional[MimetypeDetector] = None,
    ) -> "StorageAdapter":
        """Create a StorageAdapter from an existing database connection

        Args:
            db: An existing pyturso.aio Connection
            table: Name of the entries table
            prefix: Prefix prepended to every stored path
            create_table: Create the table when it is missing
            mimetype_detector: Replacement for detect_mimetype()

        Returns:
            Fully initialized StorageAdapter instance
        """
        adapter = StorageAdapter(db, table, prefix, mimetype_detector)
        if create_table:
            await adapter._store.ensure_schema()
        return adapter

    @property
    def table(self) -> str:
        return self._store.table

    def apply_path_prefix(self, path: str) -> str:
        """Stored form of a user path"""
        return self._codec.to_internal(path)

    def remove_path_prefix(self, path: str) -> str:
        """User form of a stored path"""
        return self._codec.to_external(path)

    async def _tolerate(
        self, operation: StorageOperation, call: Awaitable[T], default: Any
    ) -> Union[T, Any]:
        try:
            return await call
        except _EXPECTED_ERRORS as err:
            logger.debug("%s failed: %s", operation, err)
            return default

    async def _attempt(self, operation: StorageOperation, call: Awaitable[Any]) -> bool:
        try:
            await call
        except _EXPECTED_ERRORS as err:
            logger.debug("%s failed: %s", operation, err)
            return False
        return True

    # Lookups

    async def _require_file(self, path: str, operation: StorageOperation):
        internal = self._codec.to_internal(path, operation)
        row = await self._store.fetch(internal)
        if row is None or row[1] == TYPE_DIR:
            raise create_storage_error(
                code="NOT_FOUND",
                operation=operation,
                path=path,
                message="no such file" if row is None else "is a directory",
            )
        return internal, row

    async def _require_entry(self, path: str, operation: StorageOperation) -> Metadata:
        internal = self._codec.to_internal(path, operation)
        row = await self._store.fetch(internal)
        if row is None:
            raise create_storage_error(
                code="NOT_FOUND",
                operation=operation,
                path=path,
                message="no such file or directory",
            )
        return self._mapper.from_row(row, self._codec.to_external(internal))

    async def _load_contents(self, internal: str) -> bytes:
        contents = await self._store.fetch_contents(internal)
        if contents is None:
            raise create_storage_error(
                code="NOT_FOUND",
                operation="read",
                path=self._codec.to_external(internal),
                message="file disappeared before it was read",
            )
        return contents

    async def _has(self, path: str) -> bool:
        internal = self._codec.to_internal(path, "has")
        return await self._store.fetch(internal) is not None

    async def _read(self, path: str) -> bytes:
        internal, _ = await self._require_file(path, "read")
        return await self._load_contents(internal)

    async def _read_stream(self, path: str) -> BlobStream:
        internal, row = await self._require_file(path, "read")
        return BlobStream(lambda: self._load_contents(internal), size=row[2])

    # Mutations

    def _file_entry(self, internal: str, contents: bytes, config: WriteConfig) -> FileEntry:
        return FileEntry(
            path=internal,
            contents=contents,
            mimetype=self._mapper.resolve_mimetype(internal, contents, config),
            timestamp=config.timestamp if config.timestamp is not None else int(time.time()),
        )

    async def _assert_vacant(
        self, internal: str, path: str, operation: StorageOperation, code: StorageErrorCode
    ) -> None:
        """Ensure a new file may be placed at `internal`"""
        occupied = await self._store.fetch(internal) is not None
        if occupied or await self._dirs.is_implied_directory(internal):
            raise create_storage_error(
                code=code,
                operation=operation,
                path=path,
                message="path already exists",
            )
        await self._dirs.assert_placeable(internal, operation)

    async def _write(self, path: str, contents: bytes, config: Optional[WriteConfig]) -> None:
        internal = self._codec.to_internal(path, "write")
        await self._assert_vacant(internal, path, "write", "ALREADY_EXISTS")
        entry = self._file_entry(internal, contents, config or WriteConfig())
        try:
            async with self._store.transaction() as store:
                await store.insert(self._mapper.to_row(entry))
        except IntegrityError as err:
            # Another writer claimed the path after the vacancy check
            raise create_storage_error(
                code="ALREADY_EXISTS",
                operation="write",
                path=path,
                message="path already exists",
            ) from err

    async def _update(self, path: str, contents: bytes, config: Optional[WriteConfig]) -> None:
        internal, _ = await self._require_file(path, "update")
        entry = self._file_entry(internal, contents, config or WriteConfig())
        async with self._store.transaction() as store:
            await store.update(self._mapper.to_row(entry))

    async def _delete(self, path: str) -> None:
        internal, _ = await self._require_file(path, "delete")
        async with self._store.transaction() as store:
            await store.delete(internal)

    async def _copy(self, source: str, destination: str) -> None:
        source_internal, row = await self._require_file(source, "copy")
        destination_internal = self._codec.to_internal(destination, "copy")
        await self._assert_vacant(destination_internal, destination, "copy", "DESTINATION_CONFLICT")
        original = self._mapper.to_entry(row, await self._load_contents(source_internal))
        # Same payload and type, fresh timestamp
        entry = FileEntry(
            path=destination_internal,
            contents=original.contents,
            mimetype=original.mimetype,
            timestamp=int(time.time()),
        )
        try:
            async with self._store.transaction() as store:
                await store.insert(self._mapper.to_row(entry))
        except IntegrityError as err:
            raise create_storage_error(
                code="DESTINATION_CONFLICT",
                operation="copy",
                path=destination,
                message="destination already exists",
            ) from err

    async def _rename(self, source: str, destination: str) -> None:
        await self._dirs.rename(
            self._codec.to_internal(source, "rename"),
            self._codec.to_internal(destination, "rename"),
        )

    async def _create_dir(self, path: str, config: Optional[WriteConfig]) -> Metadata:
        return await self._dirs.create_directory(self._codec.to_internal(path, "createDir"), config)

    async def _delete_dir(self, path: str) -> None:
        await self._dirs.delete_directory(self._codec.to_internal(path, "deleteDir"))

    async def _list_contents(self, path: str, recursive: bool) -> List[Metadata]:
        return await self._dirs.list(self._codec.to_internal_dir(path, "listContents"), recursive)

    # Facade contract

    async def has(self, path: str) -> bool:
        """Check whether any entry exists at `path`"""
        return await self._tolerate("has", self._has(path), False)

    async def read(self, path: str, encoding: Optional[str] = None) -> Optional[Union[bytes, str]]:
        """Read a whole file

        Args:
            path: Path to the file
            encoding: Decode with this encoding; None returns bytes

        Returns:
            File content, or None if there is no file at `path`
        """
        contents = await self._tolerate("read", self._read(path), None)
        if contents is not None and encoding:
            return contents.decode(encoding)
        return contents

    async def read_stream(self, path: str) -> Optional[BlobStream]:
        """Open a lazy stream over a file's content, or None"""
        return await self._tolerate("read", self._read_stream(path), None)

    async def write(
        self,
        path: str,
        contents: Union[str, bytes],
        config: Optional[WriteConfig] = None,
        encoding: str = "utf-8",
    ) -> bool:
        """Create a new file; fails if anything already exists at `path`

        Example:
            >>> await storage.write('docs/readme.txt', 'hello')
            >>> await storage.write('a.bin', b'\\x00', WriteConfig(mimetype='application/x-raw'))
        """
        buffer = contents.encode(encoding) if isinstance(contents, str) else bytes(contents)
        return await self._attempt("write", self._write(path, buffer, config))

    async def write_stream(self, path: str, stream: Any, config: Optional[WriteConfig] = None) -> bool:
        """Create a new file from a readable stream or iterable of bytes"""
        return await self._attempt("write", self._write(path, await drain(stream), config))

    async def update(
        self,
        path: str,
        contents: Union[str, bytes],
        config: Optional[WriteConfig] = None,
        encoding: str = "utf-8",
    ) -> bool:
        """Replace the content of an existing file"""
        buffer = contents.encode(encoding) if isinstance(contents, str) else bytes(contents)
        return await self._attempt("update", self._update(path, buffer, config))

    async def update_stream(self, path: str, stream: Any, config: Optional[WriteConfig] = None) -> bool:
        """Replace the content of an existing file from a stream"""
        return await self._attempt("update", self._update(path, await drain(stream), config))

    async def rename(self, source: str, destination: str) -> bool:
        """Move a file or directory together with everything below it"""
        return await self._attempt("rename", self._rename(source, destination))

    async def copy(self, source: str, destination: str) -> bool:
        """Copy a file to a path that must not exist yet"""
        return await self._attempt("copy", self._copy(source, destination))

    async def delete(self, path: str) -> bool:
        """Delete a single file; directories need delete_dir()"""
        return await self._attempt("delete", self._delete(path))

    async def delete_dir(self, path: str) -> bool:
        """Delete a directory and all its descendants

        Succeeds when nothing exists at or below `path`.
        """
        return await self._attempt("deleteDir", self._delete_dir(path))

    async def create_dir(self, path: str, config: Optional[WriteConfig] = None) -> bool:
        """Create a directory; existing directories count as success"""
        return await self._attempt("createDir", self._create_dir(path, config))

    async def list_contents(self, path: str = "", recursive: bool = False) -> List[Metadata]:
        """List a directory

        Args:
            path: Directory to list; "" or "/" is the root
            recursive: Include every descendant instead of direct children

        Returns:
            Metadata ordered by path, directories implied by deeper paths
            included once
        """
        return await self._tolerate("listContents", self._list_contents(path, recursive), [])

    async def get_metadata(self, path: str) -> Optional[Metadata]:
        return await self._tolerate("getMetadata", self._require_entry(path, "getMetadata"), None)

    async def get_size(self, path: str) -> Optional[int]:
        metadata = await self.get_metadata(path)
        return metadata.size if metadata else None

    async def get_mimetype(self, path: str) -> Optional[str]:
        metadata = await self.get_metadata(path)
        return metadata.mimetype if metadata else None

    async def get_timestamp(self, path: str) -> Optional[int]:
        metadata = await self.get_metadata(path)
        return metadata.timestamp if metadata else None

    async def get_visibility(self, path: str) -> Optional[str]:
        """Entries are always public; None when nothing exists at `path`"""
        metadata = await self.get_metadata(path)
        return VISIBILITY_PUBLIC if metadata else None
