"""TableFS

A hierarchical filesystem emulated on a flat, path-keyed SQL table.
"""

from .adapter import StorageAdapter
from .errors import (
    AlreadyExists,
    DestinationConflict,
    InvalidConfiguration,
    InvalidPath,
    InvariantViolation,
    NotFound,
    SourceNotFound,
    StorageError,
    StorageErrorCode,
    StorageOperation,
    create_storage_error,
)
from .mimetype import detect_mimetype
from .paths import PathCodec
from .patterns import descendants_pattern, escape_like
from .records import BlobStream, DirectoryEntry, Entry, FileEntry, Metadata, WriteConfig
from .tablefs import TableFS, TableFSOptions

__version__ = "0.1.0"

__all__ = [
    "TableFS",
    "TableFSOptions",
    "StorageAdapter",
    "WriteConfig",
    "Metadata",
    "Entry",
    "FileEntry",
    "DirectoryEntry",
    "BlobStream",
    "PathCodec",
    "escape_like",
    "descendants_pattern",
    "detect_mimetype",
    "StorageError",
    "StorageErrorCode",
    "StorageOperation",
    "InvalidConfiguration",
    "InvalidPath",
    "NotFound",
    "AlreadyExists",
    "DestinationConflict",
    "SourceNotFound",
    "InvariantViolation",
    "create_storage_error",
]
