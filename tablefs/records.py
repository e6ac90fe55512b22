"""Entry types and row mapping"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from .constants import (
    DEFAULT_CHUNK_SIZE,
    MIMETYPE_SAMPLE_SIZE,
    TYPE_DIR,
    TYPE_FILE,
    VISIBILITY_PUBLIC,
)
from .mimetype import MimetypeDetector, detect_mimetype
from .paths import split_parent

# Column order used by every metadata SELECT
METADATA_COLUMNS = "path, type, size, mimetype, timestamp"

Row = Dict[str, Any]


@dataclass
class WriteConfig:
    """Per-call overrides for write, update and createDir

    Attributes:
        timestamp: Unix timestamp to store instead of the current time
        mimetype: Content type to store instead of the detected one
    """

    timestamp: Optional[int] = None
    mimetype: Optional[str] = None


@dataclass
class FileEntry:
    """A file row with its full payload"""

    path: str
    contents: bytes = b""
    mimetype: Optional[str] = None
    timestamp: int = 0


@dataclass
class DirectoryEntry:
    """A directory row; directories never carry contents or a mimetype"""

    path: str
    timestamp: int = 0


Entry = Union[FileEntry, DirectoryEntry]


@dataclass
class Metadata:
    """Entry metadata as returned to callers

    Attributes:
        path: User-facing path (prefix removed)
        type: 'file' or 'dir'
        size: Payload length in bytes (0 for directories)
        mimetype: Content type (files only)
        timestamp: Unix timestamp, None for directories implied by deeper paths
        visibility: Always 'public'
    """

    path: str
    type: str
    size: int = 0
    mimetype: Optional[str] = None
    timestamp: Optional[int] = None
    visibility: str = VISIBILITY_PUBLIC
    dirname: str = field(init=False)
    basename: str = field(init=False)
    filename: str = field(init=False)
    extension: Optional[str] = field(init=False)

    def __post_init__(self) -> None:
        self.dirname, self.basename = split_parent(self.path)
        stem, dot, ext = self.basename.rpartition(".")
        if dot:
            self.filename, self.extension = stem, ext
        else:
            self.filename, self.extension = self.basename, None

    def is_file(self) -> bool:
        """Check if this is a file"""
        return self.type == TYPE_FILE

    def is_directory(self) -> bool:
        """Check if this is a directory"""
        return self.type == TYPE_DIR

    def to_dict(self) -> Dict[str, Any]:
        """Flat dictionary without absent fields"""
        data: Dict[str, Any] = {
            "path": self.path,
            "type": self.type,
            "dirname": self.dirname,
            "basename": self.basename,
            "filename": self.filename,
            "visibility": self.visibility,
        }
        if self.is_file():
            data["size"] = self.size
            data["mimetype"] = self.mimetype
        for key in ("extension", "timestamp"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


class BlobStream:
    """Lazily loaded, read-only binary stream over one row's payload

    Nothing is fetched until the first read, so callers that only need
    metadata never pull the payload.
    """

    def __init__(self, loader: Callable[[], Awaitable[bytes]], size: Optional[int] = None):
        self._loader = loader
        self._buffer: Optional[bytes] = None
        self._offset = 0
        self._closed = False
        self.size = size

    async def _ensure_loaded(self) -> bytes:
        if self._closed:
            raise ValueError("I/O operation on closed stream")
        if self._buffer is None:
            self._buffer = await self._loader()
        return self._buffer

    async def read(self, size: int = -1) -> bytes:
        """Read up to `size` bytes, or everything left when size < 0"""
        buffer = await self._ensure_loaded()
        if size is None or size < 0:
            end = len(buffer)
        else:
            end = min(self._offset + size, len(buffer))
        chunk = buffer[self._offset:end]
        self._offset = end
        return chunk

    async def readall(self) -> bytes:
        return await self.read()

    def seek(self, offset: int) -> int:
        self._offset = max(0, offset)
        return self._offset

    def tell(self) -> int:
        return self._offset

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        self._buffer = None
        self._closed = True

    def __aiter__(self) -> "BlobStream":
        return self

    async def __anext__(self) -> bytes:
        chunk = await self.read(DEFAULT_CHUNK_SIZE)
        if not chunk:
            raise StopAsyncIteration
        return chunk

    async def __aenter__(self) -> "BlobStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _as_bytes(chunk: Union[str, bytes, bytearray, memoryview]) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


async def drain(stream: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """Read a caller-supplied stream to the end

    Accepts file objects with a sync or async `read`, async iterables and
    plain iterables of bytes.
    """
    buffer = bytearray()
    if hasattr(stream, "read"):
        while True:
            chunk = stream.read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                break
            buffer += _as_bytes(chunk)
    elif hasattr(stream, "__aiter__"):
        async for chunk in stream:
            buffer += _as_bytes(chunk)
    elif isinstance(stream, (bytes, bytearray, memoryview, str)):
        buffer += _as_bytes(stream)
    else:
        for chunk in stream:
            buffer += _as_bytes(chunk)
    return bytes(buffer)


class RecordMapper:
    """Converts between entries and flat table rows"""

    def __init__(self, mimetype_detector: Optional[MimetypeDetector] = None):
        self._detect = mimetype_detector or detect_mimetype

    def resolve_mimetype(self, path: str, contents: bytes, config: WriteConfig) -> str:
        """Explicit mimetype wins, otherwise detect from name and content"""
        if config.mimetype:
            return config.mimetype
        _, basename = split_parent(path)
        return self._detect(basename, contents[:MIMETYPE_SAMPLE_SIZE])

    def to_row(self, entry: Entry) -> Row:
        """Serialize an entry; the size column is always the payload length"""
        if isinstance(entry, FileEntry):
            return {
                "path": entry.path,
                "type": TYPE_FILE,
                "contents": entry.contents,
                "size": len(entry.contents),
                "mimetype": entry.mimetype,
                "timestamp": entry.timestamp,
            }
        return {
            "path": entry.path,
            "type": TYPE_DIR,
            "contents": None,
            "size": 0,
            "mimetype": None,
            "timestamp": entry.timestamp,
        }

    def from_row(self, row: Tuple[Any, ...], external_path: str) -> Metadata:
        """Deserialize a metadata row selected with METADATA_COLUMNS"""
        _, type_, size, mimetype, timestamp = row[:5]
        if type_ == TYPE_DIR:
            return Metadata(path=external_path, type=TYPE_DIR, timestamp=int(timestamp or 0))
        return Metadata(
            path=external_path,
            type=TYPE_FILE,
            size=int(size or 0),
            mimetype=mimetype,
            timestamp=int(timestamp or 0),
        )

    def to_entry(self, row: Tuple[Any, ...], contents: Optional[bytes]) -> Entry:
        """Build the entity form of a metadata row plus its payload"""
        path, type_, _, mimetype, timestamp = row[:5]
        if type_ == TYPE_DIR:
            return DirectoryEntry(path=path, timestamp=int(timestamp or 0))
        return FileEntry(
            path=path,
            contents=bytes(contents) if contents is not None else b"",
            mimetype=mimetype,
            timestamp=int(timestamp or 0),
        )

    def implied_directory(self, external_path: str) -> Metadata:
        """Metadata for a directory that only exists as a path segment"""
        return Metadata(path=external_path, type=TYPE_DIR)
