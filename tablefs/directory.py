"""Operations spanning a directory and its descendants"""

import logging
import time
from typing import Dict, List, Optional, Tuple

from turso import IntegrityError

from .constants import PATH_SEPARATOR, TYPE_DIR
from .errors import StorageOperation, create_storage_error
from .paths import PathCodec, split_path
from .patterns import descendants_pattern
from .records import DirectoryEntry, Metadata, RecordMapper, WriteConfig
from .store import EntryStore

logger = logging.getLogger(__name__)


def _sort_key(metadata: Metadata) -> Tuple[str, ...]:
    # Segment-wise order puts "a/b" before "a/b.txt"
    return tuple(split_path(metadata.path))


class DirectoryOps:
    """createDir, rename, deleteDir and listing over stored paths

    Every path argument is already in stored form (see PathCodec).
    """

    def __init__(self, store: EntryStore, codec: PathCodec, mapper: RecordMapper):
        self._store = store
        self._codec = codec
        self._mapper = mapper

    async def is_implied_directory(self, path: str) -> bool:
        """True when rows exist below `path`"""
        return await self._store.has_descendants(path, descendants_pattern(path))

    async def assert_placeable(self, path: str, operation: StorageOperation) -> None:
        """Ensure no ancestor of `path` is stored as a file

        Raises:
            DestinationConflict: If a file sits where a parent directory belongs
        """
        blocking = await self._store.fetch_file_paths(self._codec.ancestors(path))
        if blocking:
            raise create_storage_error(
                code="DESTINATION_CONFLICT",
                operation=operation,
                path=self._codec.to_external(path),
                message=f"parent '{self._codec.to_external(blocking[0])}' is a file",
            )

    async def create_directory(self, path: str, config: Optional[WriteConfig] = None) -> Metadata:
        """Insert a directory row unless an identical one exists

        Raises:
            DestinationConflict: If a file occupies the path
        """
        config = config or WriteConfig()
        existing = await self._store.fetch(path)
        external = self._codec.to_external(path)
        if existing is not None:
            if existing[1] != TYPE_DIR:
                raise create_storage_error(
                    code="DESTINATION_CONFLICT",
                    operation="createDir",
                    path=external,
                    message="a file already exists at this path",
                )
            return self._mapper.from_row(existing, external)

        await self.assert_placeable(path, "createDir")

        timestamp = config.timestamp if config.timestamp is not None else int(time.time())
        entry = DirectoryEntry(path=path, timestamp=timestamp)
        try:
            async with self._store.transaction() as store:
                await store.insert(self._mapper.to_row(entry))
        except IntegrityError:
            # Created concurrently; settle on whatever won
            winner = await self._store.fetch(path)
            if winner is None or winner[1] != TYPE_DIR:
                raise create_storage_error(
                    code="DESTINATION_CONFLICT",
                    operation="createDir",
                    path=external,
                    message="a file already exists at this path",
                )
            return self._mapper.from_row(winner, external)
        return Metadata(path=external, type=TYPE_DIR, timestamp=timestamp)

    async def rename(self, old_path: str, new_path: str) -> None:
        """Move an entry and all its descendants atomically

        Raises:
            SourceNotFound: If neither the entry nor any descendant exists
            DestinationConflict: If any computed destination is occupied
        """
        old_external = self._codec.to_external(old_path)
        new_external = self._codec.to_external(new_path)

        if old_path == new_path or new_path.startswith(old_path + PATH_SEPARATOR):
            raise create_storage_error(
                code="DESTINATION_CONFLICT",
                operation="rename",
                path=new_external,
                message="cannot move a directory into itself",
            )

        sources = await self._store.fetch_tree_paths(old_path, descendants_pattern(old_path))
        if not sources:
            raise create_storage_error(
                code="SOURCE_NOT_FOUND",
                operation="rename",
                path=old_external,
                message="no such file or directory",
            )

        # Any row at or below the destination is a conflict
        occupied = await self._store.fetch_tree_paths(new_path, descendants_pattern(new_path))
        if occupied:
            raise create_storage_error(
                code="DESTINATION_CONFLICT",
                operation="rename",
                path=self._codec.to_external(occupied[0]),
                message="destination already exists",
            )
        await self.assert_placeable(new_path, "rename")

        try:
            async with self._store.transaction() as store:
                await store.rename_tree(old_path, new_path, descendants_pattern(old_path))
        except IntegrityError as err:
            raise create_storage_error(
                code="DESTINATION_CONFLICT",
                operation="rename",
                path=new_external,
                message="destination already exists",
            ) from err
        except Exception:
            logger.error("Rename rolled back for %s -> %s", old_path, new_path, exc_info=True)
            raise
        logger.debug("Renamed %d rows from %s to %s", len(sources), old_path, new_path)

    async def delete_directory(self, path: str) -> None:
        """Delete a directory row and every descendant atomically

        Deleting a missing directory removes nothing and succeeds.

        Raises:
            NotFound: If the path is occupied by a file
        """
        existing = await self._store.fetch(path)
        if existing is not None and existing[1] != TYPE_DIR:
            raise create_storage_error(
                code="NOT_FOUND",
                operation="deleteDir",
                path=self._codec.to_external(path),
                message="not a directory",
            )

        pattern = descendants_pattern(path)
        try:
            async with self._store.transaction() as store:
                await store.delete_tree(path, pattern)
        except Exception:
            logger.error("Directory delete rolled back for %s", path, exc_info=True)
            raise
        logger.debug("Deleted tree under %s", path)

    async def list(self, path: str, recursive: bool = False) -> List[Metadata]:
        """List entries below a directory

        Non-recursive listings return direct children only. Directories
        implied by deeper paths are synthesised and reported once.
        """
        rows = await self._store.fetch_descendants(path, descendants_pattern(path))
        base = path + PATH_SEPARATOR if path else ""
        found: Dict[str, Metadata] = {}

        for row in rows:
            stored_path = row[0]
            segments = split_path(stored_path[len(base):])
            if not segments:
                continue

            # Ancestors between the listed directory and this row
            depth = len(segments) if recursive else 1
            for i in range(1, min(depth, len(segments) - 1) + 1):
                implied = base + PATH_SEPARATOR.join(segments[:i])
                if implied not in found:
                    found[implied] = self._mapper.implied_directory(
                        self._codec.to_external(implied)
                    )

            if recursive or len(segments) == 1:
                found[stored_path] = self._mapper.from_row(
                    row, self._codec.to_external(stored_path)
                )

        return sorted(found.values(), key=_sort_key)
