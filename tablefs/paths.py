"""Path normalization between user-facing and stored paths"""

import re
from typing import List, Optional, Tuple

from .constants import PATH_SEPARATOR
from .errors import StorageOperation, create_storage_error

_TABLE_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def validate_table_name(table: str) -> str:
    """Ensure a table name is safe to interpolate into SQL

    Raises:
        InvalidConfiguration: If the name contains anything but [A-Za-z0-9_]
    """
    if not isinstance(table, str) or not _TABLE_NAME_RE.match(table):
        raise create_storage_error(
            code="INVALID_CONFIGURATION",
            operation="configure",
            path=None,
            message=f"invalid table name {table!r}",
        )
    return table


def split_path(path: str) -> List[str]:
    """Split a path into its non-empty segments"""
    return [p for p in path.split(PATH_SEPARATOR) if p]


def split_parent(path: str) -> Tuple[str, str]:
    """Return (dirname, basename) of a relative path"""
    head, _, tail = path.rpartition(PATH_SEPARATOR)
    return head, tail


class PathCodec:
    """Maps user paths to stored paths and back

    Stored paths are the configured prefix followed by the normalized
    relative path. The prefix, when set, always ends with one separator.
    """

    def __init__(self, prefix: Optional[str] = None):
        prefix = prefix or ""
        if prefix:
            prefix = prefix.rstrip(PATH_SEPARATOR) + PATH_SEPARATOR
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def root(self) -> str:
        """Stored path of the root directory (never a row)"""
        return self._prefix.rstrip(PATH_SEPARATOR) if self._prefix else ""

    def normalize(self, path: str, operation: StorageOperation = "path") -> str:
        """Normalize a relative path, returning "" for the root

        Raises:
            InvalidPath: On control characters or '.'/'..' segments
        """
        if path is None:
            path = ""
        if _CONTROL_CHARS_RE.search(path):
            raise create_storage_error(
                code="INVALID_PATH",
                operation=operation,
                path=path,
                message="path contains control characters",
            )
        parts = split_path(path)
        for part in parts:
            if part in (".", ".."):
                raise create_storage_error(
                    code="INVALID_PATH",
                    operation=operation,
                    path=path,
                    message="relative segments are not allowed",
                )
        return PATH_SEPARATOR.join(parts)

    def to_internal(self, path: str, operation: StorageOperation = "path") -> str:
        """Convert a user path to its stored form

        Raises:
            InvalidPath: If the path is malformed or resolves to the root
        """
        relative = self.normalize(path, operation)
        if not relative:
            raise create_storage_error(
                code="INVALID_PATH",
                operation=operation,
                path=path,
                message="path resolves to the root",
            )
        return self._prefix + relative

    def to_internal_dir(self, path: str, operation: StorageOperation = "path") -> str:
        """Like to_internal(), but maps the root to root()"""
        relative = self.normalize(path, operation)
        if not relative:
            return self.root()
        return self._prefix + relative

    def to_external(self, path: str) -> str:
        """Strip the configured prefix from a stored path

        Raises:
            InvariantViolation: If the stored path lies outside the prefix
        """
        if not path.startswith(self._prefix):
            raise create_storage_error(
                code="INVARIANT_VIOLATION",
                operation="path",
                path=path,
                message=f"stored path is outside prefix {self._prefix!r}",
            )
        return path[len(self._prefix):]

    def ancestors(self, path: str) -> List[str]:
        """Stored paths of every directory between the root and `path`"""
        segments = split_path(self.to_external(path))
        return [
            self._prefix + PATH_SEPARATOR.join(segments[:i]) for i in range(1, len(segments))
        ]
