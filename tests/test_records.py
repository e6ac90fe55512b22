"""Entry mapping, metadata, mimetype and stream tests"""

import io

import pytest

from tablefs import (
    AlreadyExists,
    BlobStream,
    DestinationConflict,
    DirectoryEntry,
    FileEntry,
    Metadata,
    NotFound,
    StorageError,
    WriteConfig,
    create_storage_error,
    detect_mimetype,
)
from tablefs.records import RecordMapper, drain


class TestRecordMapper:
    """Row serialization"""

    def test_file_row_size_is_recomputed(self):
        row = RecordMapper().to_row(FileEntry(path="a.txt", contents=b"abcd", mimetype="text/plain"))
        assert row["type"] == "file"
        assert row["size"] == 4
        assert row["contents"] == b"abcd"

    def test_directory_row_has_no_payload(self):
        row = RecordMapper().to_row(DirectoryEntry(path="dir", timestamp=3))
        assert row == {
            "path": "dir",
            "type": "dir",
            "contents": None,
            "size": 0,
            "mimetype": None,
            "timestamp": 3,
        }

    def test_from_row(self):
        mapper = RecordMapper()
        metadata = mapper.from_row(("/p/a.txt", "file", 3, "text/plain", 10), "a.txt")
        assert metadata == Metadata(path="a.txt", type="file", size=3, mimetype="text/plain", timestamp=10)
        directory = mapper.from_row(("/p/d", "dir", 0, None, 11), "d")
        assert directory.is_directory()
        assert directory.size == 0

    def test_to_entry(self):
        mapper = RecordMapper()
        entry = mapper.to_entry(("a.txt", "file", 3, "text/plain", 10), b"abc")
        assert entry == FileEntry(path="a.txt", contents=b"abc", mimetype="text/plain", timestamp=10)
        assert mapper.to_entry(("d", "dir", 0, None, 1), None) == DirectoryEntry(path="d", timestamp=1)

    def test_resolve_mimetype(self):
        mapper = RecordMapper()
        assert mapper.resolve_mimetype("/p/a.txt", b"x", WriteConfig()) == "text/plain"
        assert mapper.resolve_mimetype("/p/a.txt", b"x", WriteConfig(mimetype="a/b")) == "a/b"


class TestMetadata:
    """Path information derived from the path"""

    def test_top_level_without_extension(self):
        metadata = Metadata(path="README", type="file")
        assert metadata.dirname == ""
        assert metadata.basename == "README"
        assert metadata.filename == "README"
        assert metadata.extension is None

    def test_nested_with_extension(self):
        metadata = Metadata(path="a/b/archive.tar.gz", type="file")
        assert metadata.dirname == "a/b"
        assert metadata.filename == "archive.tar"
        assert metadata.extension == "gz"


class TestDetectMimetype:
    """Default content type detection"""

    def test_by_extension(self):
        assert detect_mimetype("bar.txt", b"") == "text/plain"
        assert detect_mimetype("bar.jpg", b"abc") == "image/jpeg"
        assert detect_mimetype("bar.png", b"abc") == "image/png"

    def test_text_without_known_extension(self):
        assert detect_mimetype("NOTES", b"ala ma kota") == "text/plain"
        assert detect_mimetype("NOTES", "zażółć".encode("utf-8")) == "text/plain"

    def test_binary_without_known_extension(self):
        assert detect_mimetype("blob", b"\x00\x01\x02") == "application/octet-stream"
        assert detect_mimetype("blob", b"\xff\xfe\xfd\xfc\xfb\xfa") == "application/octet-stream"
        assert detect_mimetype("blob", b"") == "application/octet-stream"


class TestErrors:
    """Error taxonomy"""

    def test_factory_picks_subclass(self):
        error = create_storage_error("NOT_FOUND", "read", "a.txt", "no such file")
        assert isinstance(error, NotFound)
        assert isinstance(error, FileNotFoundError)
        assert str(error) == "NOT_FOUND: no such file, read 'a.txt'"
        assert error.path == "a.txt"

    def test_message_defaults_to_code(self):
        error = create_storage_error("ALREADY_EXISTS", "write")
        assert isinstance(error, AlreadyExists)
        assert str(error) == "ALREADY_EXISTS: ALREADY_EXISTS, write"

    def test_conflict_is_storage_error(self):
        error = create_storage_error("DESTINATION_CONFLICT", "rename", "b")
        assert isinstance(error, DestinationConflict)
        assert isinstance(error, StorageError)


@pytest.mark.asyncio
class TestStreams:
    """BlobStream and drain()"""

    async def test_blob_stream_loads_once_on_first_read(self):
        calls = []

        async def loader():
            calls.append(1)
            return b"0123456789"

        stream = BlobStream(loader, size=10)
        assert calls == []
        assert await stream.read(4) == b"0123"
        assert stream.tell() == 4
        assert await stream.read() == b"456789"
        stream.seek(0)
        assert await stream.readall() == b"0123456789"
        assert calls == [1]

    async def test_closed_stream(self):
        async def loader():
            return b"abc"

        async with BlobStream(loader) as stream:
            pass
        assert stream.closed
        with pytest.raises(ValueError):
            await stream.read()

    async def test_drain_sources(self):
        class AsyncReader:
            def __init__(self, data):
                self._data = io.BytesIO(data)

            async def read(self, size=-1):
                return self._data.read(size)

        big = b"x" * 10000
        assert await drain(io.BytesIO(big)) == big
        assert await drain(AsyncReader(big)) == big
        assert await drain([b"a", "b", bytearray(b"c")]) == b"abc"
        assert await drain(b"raw") == b"raw"
