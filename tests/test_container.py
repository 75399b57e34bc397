"""Tests for ziptree.container and its interoperability with zipfile."""

import io
import zipfile
from datetime import datetime

import pytest

from ziptree import (
    ArchiveError,
    ArchiveFormatError,
    ArchiveUnsupportedFeature,
    ContainerReader,
    ContainerWriter,
)
from ziptree.constants import MAX_FILE_SIZE


class TestContainerReader:
    """Reading archives produced by the standard library."""

    def test_entries_in_container_order(self, tmp_path):
        path = tmp_path / "in.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("z.txt", b"z")
            zf.writestr(zipfile.ZipInfo("dir/"), b"")
            zf.writestr("a.txt", b"a", compress_type=zipfile.ZIP_DEFLATED)

        with ContainerReader(path) as reader:
            assert reader.namelist() == ["z.txt", "dir/", "a.txt"]
            assert [entry.is_dir for entry in reader] == [False, True, False]
            assert len(reader) == 3

    def test_read_stored_and_deflated(self, tmp_path):
        path = tmp_path / "in.zip"
        payload = b"compressible " * 1000
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("stored.txt", payload, compress_type=zipfile.ZIP_STORED)
            zf.writestr("deflated.txt", payload, compress_type=zipfile.ZIP_DEFLATED)

        with ContainerReader(path) as reader:
            assert reader.read("stored.txt") == payload
            assert reader.read("deflated.txt") == payload

    def test_iter_content_yields_chunks(self, tmp_path):
        path = tmp_path / "in.zip"
        payload = bytes(range(256)) * 100
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("a.bin", payload, compress_type=zipfile.ZIP_STORED)

        with ContainerReader(path) as reader:
            chunks = list(reader.iter_content(reader.get_info("a.bin"), chunk_size=1000))

        assert len(chunks) > 1
        assert b"".join(chunks) == payload

    def test_metadata(self, tmp_path):
        path = tmp_path / "in.zip"
        with zipfile.ZipFile(path, "w") as zf:
            info = zipfile.ZipInfo("a.txt", date_time=(2021, 3, 4, 5, 6, 8))
            zf.writestr(info, b"hello")

        with ContainerReader(path) as reader:
            entry = reader.get_info("a.txt")

        assert entry.uncompressed_size == 5
        assert entry.date_time == datetime(2021, 3, 4, 5, 6, 8)

    def test_missing_entry(self, tmp_path):
        path = tmp_path / "in.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("a.txt", b"a")

        with ContainerReader(path) as reader:
            assert reader.get_info("b.txt") is None
            with pytest.raises(KeyError):
                reader.read("b.txt")

    def test_not_an_archive(self, tmp_path):
        path = tmp_path / "junk.zip"
        path.write_bytes(b"this is not a zip file" * 10)

        with pytest.raises(ArchiveFormatError):
            ContainerReader(path)

    def test_format_errors_are_os_errors(self, tmp_path):
        path = tmp_path / "junk.zip"
        path.write_bytes(b"")

        with pytest.raises(OSError):
            ContainerReader(path)
        assert issubclass(ArchiveError, OSError)

    def test_unsupported_method(self, tmp_path):
        path = tmp_path / "in.zip"
        with zipfile.ZipFile(path, "w", zipfile.ZIP_BZIP2) as zf:
            zf.writestr("a.txt", b"a" * 100)

        with ContainerReader(path) as reader:
            with pytest.raises(ArchiveUnsupportedFeature):
                reader.read("a.txt")

    def test_reads_from_file_object(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("a.txt", b"a")
        buffer.seek(0)

        with ContainerReader(buffer) as reader:
            assert reader.read("a.txt") == b"a"
        assert not buffer.closed


class TestContainerWriter:
    """Archives written by ContainerWriter, checked with zipfile."""

    def test_written_archive_is_valid(self, tmp_path):
        path = tmp_path / "out.zip"
        with ContainerWriter(path) as writer:
            writer.add_directory("docs")
            writer.add_stream("docs/readme.txt", io.BytesIO(b"read me"))
            writer.add_stream("raw.bin", io.BytesIO(b"\x00\x01"), compression="stored")

        with zipfile.ZipFile(path) as zf:
            assert zf.namelist() == ["docs/", "docs/readme.txt", "raw.bin"]
            assert zf.testzip() is None
            assert zf.getinfo("docs/").is_dir()
            assert zf.read("docs/readme.txt") == b"read me"
            assert zf.getinfo("raw.bin").compress_type == zipfile.ZIP_STORED

    def test_backslashes_are_normalized(self, tmp_path):
        path = tmp_path / "out.zip"
        with ContainerWriter(path) as writer:
            writer.add_stream("a\\b.txt", io.BytesIO(b"b"))

        with zipfile.ZipFile(path) as zf:
            assert zf.namelist() == ["a/b.txt"]

    def test_zip64_reserved_local_header(self, tmp_path):
        path = tmp_path / "out.zip"
        with ContainerWriter(path) as writer:
            writer.add_stream("small.txt", io.BytesIO(b"abc"), size_hint=MAX_FILE_SIZE)

        with zipfile.ZipFile(path) as zf:
            assert zf.read("small.txt") == b"abc"
        with ContainerReader(path) as reader:
            assert reader.read("small.txt") == b"abc"

    def test_unicode_names(self, tmp_path):
        path = tmp_path / "out.zip"
        with ContainerWriter(path) as writer:
            writer.add_stream("données/été.txt", io.BytesIO(b"x"))

        with zipfile.ZipFile(path) as zf:
            assert zf.namelist() == ["données/été.txt"]
        with ContainerReader(path) as reader:
            assert reader.namelist() == ["données/été.txt"]

    def test_unknown_compression(self, tmp_path):
        with ContainerWriter(tmp_path / "out.zip") as writer:
            with pytest.raises(ArchiveUnsupportedFeature):
                writer.add_stream("a.txt", io.BytesIO(b"a"), compression="lzma")

    def test_empty_name(self, tmp_path):
        with ContainerWriter(tmp_path / "out.zip") as writer:
            with pytest.raises(ArchiveFormatError):
                writer.add_stream("", io.BytesIO(b"a"))

    def test_closed_writer_rejects_entries(self, tmp_path):
        writer = ContainerWriter(tmp_path / "out.zip")
        writer.close()

        with pytest.raises(ArchiveFormatError):
            writer.add_directory("late/")

    def test_error_inside_block_skips_central_directory(self, tmp_path):
        path = tmp_path / "out.zip"
        with pytest.raises(RuntimeError):
            with ContainerWriter(path) as writer:
                writer.add_stream("a.txt", io.BytesIO(b"a"))
                raise RuntimeError("boom")

        assert path.exists()
        with pytest.raises(ArchiveFormatError):
            ContainerReader(path)
