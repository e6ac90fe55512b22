"""Error types for storage operations"""

from typing import Dict, Literal, Optional, Type

StorageErrorCode = Literal[
    "INVALID_CONFIGURATION",  # Bad table identifier or options
    "INVALID_PATH",           # Malformed user path
    "NOT_FOUND",              # Missing entry or wrong entry type
    "ALREADY_EXISTS",         # Target path is occupied
    "DESTINATION_CONFLICT",   # Rename/copy destination collides
    "SOURCE_NOT_FOUND",       # Rename source has no entry and no descendants
    "INVARIANT_VIOLATION",    # Internal path outside the configured prefix
]

# Operation names for error reporting
StorageOperation = Literal[
    "configure",
    "has",
    "read",
    "write",
    "update",
    "delete",
    "rename",
    "copy",
    "createDir",
    "deleteDir",
    "listContents",
    "getMetadata",
    "path",
]


class StorageError(Exception):
    """Exception with code, operation and path attributes"""

    def __init__(
        self,
        message: str,
        code: Optional[StorageErrorCode] = None,
        operation: Optional[StorageOperation] = None,
        path: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.operation = operation
        self.path = path


class InvalidConfiguration(StorageError, ValueError):
    pass


class InvalidPath(StorageError, ValueError):
    pass


class NotFound(StorageError, FileNotFoundError):
    pass


class AlreadyExists(StorageError, FileExistsError):
    pass


class DestinationConflict(StorageError):
    pass


class SourceNotFound(StorageError, FileNotFoundError):
    pass


class InvariantViolation(StorageError, RuntimeError):
    pass


_ERROR_CLASSES: Dict[str, Type[StorageError]] = {
    "INVALID_CONFIGURATION": InvalidConfiguration,
    "INVALID_PATH": InvalidPath,
    "NOT_FOUND": NotFound,
    "ALREADY_EXISTS": AlreadyExists,
    "DESTINATION_CONFLICT": DestinationConflict,
    "SOURCE_NOT_FOUND": SourceNotFound,
    "INVARIANT_VIOLATION": InvariantViolation,
}


def create_storage_error(
    code: StorageErrorCode,
    operation: StorageOperation,
    path: Optional[str] = None,
    message: Optional[str] = None,
) -> StorageError:
    """Create a storage error with consistent formatting

    Args:
        code: Error code (e.g., 'NOT_FOUND')
        operation: Operation name (e.g., 'read')
        path: Optional path involved in the error
        message: Optional custom message (defaults to code)

    Returns:
        The StorageError subclass matching the code
    """
    base = message if message else code
    suffix = f" '{path}'" if path is not None else ""
    error_message = f"{code}: {base}, {operation}{suffix}"
    error_class = _ERROR_CLASSES.get(code, StorageError)
    return error_class(error_message, code=code, operation=operation, path=path)
