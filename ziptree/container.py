"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
ZIP container reader and writer.

The tree walkers only need two things from the container: a way to iterate
entries in container order and stream each one's content, and a sink that
accepts directory markers and streamed file content. ``ContainerReader`` and
``ContainerWriter`` provide exactly that, supporting stored and deflate
entries with ZIP64 sizes and offsets.
"""

import io
import os
import time
import zlib
from datetime import datetime
from typing import BinaryIO, Iterator, Optional

from .constants import (
    CENTRAL_DIR_HEADER,
    COMP_DEFLATE,
    COMP_STORED,
    COMPRESSION_METHODS,
    COPY_BUFFER_SIZE,
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    END_OF_CENTRAL_DIR,
    FLAG_ENCRYPTED,
    FLAG_UTF8,
    LOCAL_FILE_HEADER,
    MAX_CD_OFFSET,
    MAX_CD_SIZE,
    MAX_ENTRIES,
    MAX_ENTRY_COUNT,
    MAX_EOCD_SCAN,
    MAX_FILE_SIZE,
    VERSION_DEFAULT,
    VERSION_MADE_BY_DEFAULT,
    VERSION_ZIP64,
    ZIP64_END_OF_CENTRAL_DIR,
    ZIP64_END_OF_CENTRAL_DIR_LOCATOR,
    ZIP64_LOCATOR_SIZE,
)
from .errors import (
    ArchiveCompressionError,
    ArchiveCrcError,
    ArchiveFormatError,
    ArchiveUnsupportedFeature,
)
from .structures import (
    CENTRAL_HEADER_STRUCT,
    EOCD_STRUCT,
    LOCAL_HEADER_STRUCT,
    ZIP64_EOCD_STRUCT,
    ZIP64_LOCATOR_STRUCT,
    ArchiveEntry,
    EndOfCentralDirectory,
    pack_zip64_extra,
    parse_central_directory_header,
    parse_eocd,
    parse_zip64_eocd,
    parse_zip64_locator,
    skip_local_file_header,
)
from .utils import timestamp_to_dos_datetime

# Offset of the CRC-32 field inside a local file header
_LOCAL_CRC_OFFSET = 14


def _open_file(file: str | os.PathLike | BinaryIO, mode: str, required: tuple[str, ...]):
    """Open a path or validate a caller-supplied binary file object.

    Returns:
        Tuple of (file_object, should_close).
    """
    if hasattr(file, "__fspath__"):
        file = os.fspath(file)

    if isinstance(file, str):
        return open(file, mode), True

    for method in required:
        if not hasattr(file, method):
            raise ArchiveFormatError(f"File-like object must have a {method}() method")
    return file, False


class ContainerReader:
    """Reader yielding archive entries in central directory order.

    Example:
        with ContainerReader("archive.zip") as reader:
            for entry in reader:
                print(entry.name, entry.is_dir)
    """

    def __init__(self, file: str | os.PathLike | BinaryIO):
        """Open an archive and parse its central directory.

        Args:
            file: Path to the archive or a seekable binary file object.

        Raises:
            FileNotFoundError: If ``file`` is a path that does not exist.
            ArchiveFormatError: If the archive structure is invalid.
            ArchiveUnsupportedFeature: If the archive spans several disks.
        """
        self._file, self._should_close = _open_file(file, "rb", ("read", "seek", "tell"))
        self._entries: list[ArchiveEntry] = []
        self._closed = False

        try:
            self._parse_central_directory(self._find_eocd())
        except BaseException:
            self.close()
            raise

    def _find_eocd(self) -> EndOfCentralDirectory:
        """Locate the end of central directory record, preferring its ZIP64 form."""
        self._file.seek(0, io.SEEK_END)
        file_size = self._file.tell()

        scan_start = max(0, file_size - MAX_EOCD_SCAN)
        self._file.seek(scan_start)
        tail = self._file.read()

        eocd_pos = tail.rfind(END_OF_CENTRAL_DIR.to_bytes(4, "little"))
        if eocd_pos == -1:
            raise ArchiveFormatError("End of central directory record not found")

        eocd = parse_eocd(tail, eocd_pos)

        locator_pos = scan_start + eocd_pos - ZIP64_LOCATOR_SIZE
        if locator_pos >= 0:
            self._file.seek(locator_pos)
            zip64_eocd_offset = parse_zip64_locator(self._file.read(ZIP64_LOCATOR_SIZE))
            if zip64_eocd_offset is not None:
                if zip64_eocd_offset >= file_size:
                    raise ArchiveFormatError(
                        f"Invalid ZIP64 EOCD offset: {zip64_eocd_offset} (file size: {file_size})"
                    )
                self._file.seek(zip64_eocd_offset)
                eocd = parse_zip64_eocd(self._file)

        if eocd.disk_num != 0 or eocd.cd_disk != 0:
            raise ArchiveUnsupportedFeature("Multi-disk archives are not supported")

        if eocd.cd_offset + eocd.cd_size > file_size:
            raise ArchiveFormatError(
                f"Central directory extends beyond file: offset {eocd.cd_offset}, "
                f"size {eocd.cd_size} (file size: {file_size})"
            )
        return eocd

    def _parse_central_directory(self, eocd: EndOfCentralDirectory) -> None:
        if eocd.cd_records_total > MAX_ENTRY_COUNT:
            raise ArchiveFormatError(
                f"Entry count too large: {eocd.cd_records_total} (max {MAX_ENTRY_COUNT:,})"
            )

        self._file.seek(eocd.cd_offset)
        for _ in range(eocd.cd_records_total):
            self._entries.append(parse_central_directory_header(self._file))

    def __iter__(self) -> Iterator[ArchiveEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def namelist(self) -> list[str]:
        """Entry names in container order."""
        return [entry.name for entry in self._entries]

    def get_info(self, name: str) -> Optional[ArchiveEntry]:
        """Return the first entry called ``name``, or None."""
        name = name.replace("\\", "/")
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    def iter_content(
        self, entry: ArchiveEntry, chunk_size: int = COPY_BUFFER_SIZE
    ) -> Iterator[bytes]:
        """Yield the decompressed content of ``entry`` in chunks.

        The CRC-32 and size are checked once the last chunk has been produced.

        Raises:
            ArchiveUnsupportedFeature: If the entry is encrypted or uses an
                unknown compression method.
            ArchiveCompressionError: If the deflate stream is corrupt.
            ArchiveCrcError: If the checksum does not match.
        """
        if self._closed:
            raise ArchiveFormatError("Archive is closed")
        if entry.is_dir:
            return
        if entry.flags & FLAG_ENCRYPTED:
            raise ArchiveUnsupportedFeature(f"Entry '{entry.name}' is encrypted")
        if entry.compression_method == COMP_DEFLATE:
            decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
        elif entry.compression_method == COMP_STORED:
            decompressor = None
        else:
            raise ArchiveUnsupportedFeature(
                f"Unsupported compression method {entry.compression_method} for '{entry.name}'"
            )

        self._file.seek(entry.local_header_offset)
        skip_local_file_header(self._file)
        position = self._file.tell()
        remaining = entry.compressed_size
        crc = 0
        size = 0

        try:
            while remaining > 0:
                # Callers may interleave reads of other entries between chunks
                self._file.seek(position)
                raw = self._file.read(min(chunk_size, remaining))
                if not raw:
                    raise ArchiveFormatError(
                        f"Unexpected end of file in entry '{entry.name}': "
                        f"{remaining} compressed bytes missing"
                    )
                position += len(raw)
                remaining -= len(raw)

                data = decompressor.decompress(raw) if decompressor else raw
                if data:
                    crc = zlib.crc32(data, crc)
                    size += len(data)
                    yield data

            if decompressor:
                data = decompressor.flush()
                if data:
                    crc = zlib.crc32(data, crc)
                    size += len(data)
                    yield data
                if not decompressor.eof or decompressor.unused_data:
                    raise ArchiveCompressionError(
                        f"Deflate stream of '{entry.name}' is truncated or has trailing data"
                    )
        except zlib.error as e:
            raise ArchiveCompressionError(
                f"Deflate decompression failed for '{entry.name}': {e}"
            ) from e

        if size != entry.uncompressed_size:
            raise ArchiveFormatError(
                f"Size mismatch for '{entry.name}': expected {entry.uncompressed_size}, got {size}"
            )
        if crc & 0xFFFFFFFF != entry.crc32:
            raise ArchiveCrcError(
                f"CRC32 mismatch for '{entry.name}': expected 0x{entry.crc32:08X}, got 0x{crc:08X}"
            )

    def copy_to(self, entry: ArchiveEntry, out: BinaryIO) -> int:
        """Write the content of ``entry`` into ``out``; return the byte count."""
        written = 0
        for chunk in self.iter_content(entry):
            out.write(chunk)
            written += len(chunk)
        return written

    def read(self, name: str) -> bytes:
        """Return the full content of the entry called ``name``.

        Raises:
            KeyError: If no such entry exists.
        """
        entry = self.get_info(name)
        if entry is None:
            raise KeyError(f"Entry not found: {name}")
        return b"".join(self.iter_content(entry))

    def close(self) -> None:
        """Close the archive file."""
        if self._closed:
            return
        self._closed = True
        if self._should_close and self._file:
            self._file.close()
        self._file = None

    def __enter__(self) -> "ContainerReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ContainerWriter:
    """Sink writing directory markers and streamed file entries to a ZIP archive.

    Entry content is compressed chunk by chunk; the local header's CRC-32 and
    sizes are patched in place once the entry is complete, so the output must
    be seekable. The central directory is written on ``close()``.

    Example:
        with ContainerWriter("archive.zip") as writer:
            writer.add_directory("docs/")
            with open("readme.txt", "rb") as f:
                writer.add_stream("docs/readme.txt", f)
    """

    def __init__(self, file: str | os.PathLike | BinaryIO):
        """Create the archive at ``file`` (path or seekable binary file object)."""
        self._file, self._should_close = _open_file(file, "wb", ("write", "seek", "tell"))
        self._entries: list[ArchiveEntry] = []
        self._offset = self._file.tell()
        self._closed = False

    @property
    def entries(self) -> list[ArchiveEntry]:
        """Entries written so far, in order."""
        return list(self._entries)

    def _check_open(self) -> None:
        if self._closed:
            raise ArchiveFormatError("Archive is closed")

    @staticmethod
    def _encode_name(name: str) -> bytes:
        if not name:
            raise ArchiveFormatError("Entry name cannot be empty")
        if "\x00" in name:
            raise ArchiveFormatError("Entry name cannot contain null bytes")
        name_bytes = name.encode("utf-8")
        if len(name_bytes) > 0xFFFF:
            raise ArchiveFormatError(f"Entry name too long: {len(name_bytes)} bytes")
        return name_bytes

    def _write(self, data: bytes) -> None:
        self._file.write(data)
        self._offset += len(data)

    def _write_local_header(self, entry: ArchiveEntry, name_bytes: bytes, zip64: bool) -> None:
        if zip64:
            extra = pack_zip64_extra(0, 0)
            sizes = MAX_FILE_SIZE
        else:
            extra = b""
            sizes = 0
        self._write(
            LOCAL_HEADER_STRUCT.pack(
                LOCAL_FILE_HEADER,
                VERSION_ZIP64 if zip64 else VERSION_DEFAULT,
                entry.flags,
                entry.compression_method,
                entry.mod_time,
                entry.mod_date,
                0,
                sizes,
                sizes,
                len(name_bytes),
                len(extra),
            )
        )
        self._write(name_bytes)
        self._write(extra)

    def _new_entry(self, name: str, is_dir: bool, method: int, mtime: Optional[float], mode: int) -> ArchiveEntry:
        dt = datetime.fromtimestamp(time.time() if mtime is None else mtime)
        mod_date, mod_time = timestamp_to_dos_datetime(dt)
        return ArchiveEntry(
            name=name,
            is_dir=is_dir,
            compression_method=method,
            flags=FLAG_UTF8,
            local_header_offset=self._offset,
            mod_date=mod_date,
            mod_time=mod_time,
            external_attrs=(mode & 0xFFFF) << 16 | (0x10 if is_dir else 0),
        )

    def add_directory(
        self, name: str, mtime: Optional[float] = None, mode: int = DEFAULT_DIR_MODE
    ) -> ArchiveEntry:
        """Add a directory marker. A trailing ``/`` is appended when missing."""
        self._check_open()
        name = name.replace("\\", "/")
        if not name.endswith("/"):
            name += "/"
        name_bytes = self._encode_name(name)

        entry = self._new_entry(name, True, COMP_STORED, mtime, mode)
        self._write_local_header(entry, name_bytes, zip64=False)
        self._entries.append(entry)
        return entry

    def add_stream(
        self,
        name: str,
        stream: BinaryIO,
        compression: str = "deflate",
        size_hint: Optional[int] = None,
        mtime: Optional[float] = None,
        mode: int = DEFAULT_FILE_MODE,
    ) -> ArchiveEntry:
        """Add a file entry whose content is read from ``stream`` until EOF.

        Args:
            name: Entry name (slash-separated path within the archive).
            stream: Binary file-like object to read from.
            compression: "deflate" or "stored".
            size_hint: Expected content size; entries that may reach 4 GiB
                reserve ZIP64 fields in their local header.
            mtime: Modification time as a POSIX timestamp (default: now).
            mode: Unix mode stored in the external attributes.

        Raises:
            ArchiveUnsupportedFeature: If the compression method is unknown.
            ArchiveFormatError: If the entry outgrew a header without ZIP64 fields.
        """
        self._check_open()
        if compression not in COMPRESSION_METHODS:
            raise ArchiveUnsupportedFeature(f"Unsupported compression method: {compression}")
        name = name.replace("\\", "/")
        name_bytes = self._encode_name(name)

        method = COMPRESSION_METHODS[compression]
        zip64 = size_hint is not None and size_hint * 1.05 >= MAX_FILE_SIZE
        entry = self._new_entry(name, False, method, mtime, mode)
        self._write_local_header(entry, name_bytes, zip64)

        compressor = None
        if method == COMP_DEFLATE:
            compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -zlib.MAX_WBITS)

        crc = 0
        size = 0
        compressed_size = 0
        try:
            while True:
                chunk = stream.read(COPY_BUFFER_SIZE)
                if not chunk:
                    break
                crc = zlib.crc32(chunk, crc)
                size += len(chunk)
                data = compressor.compress(chunk) if compressor else chunk
                compressed_size += len(data)
                self._write(data)
            if compressor:
                data = compressor.flush()
                compressed_size += len(data)
                self._write(data)
        except zlib.error as e:
            raise ArchiveCompressionError(f"Deflate compression failed for '{name}': {e}") from e

        if not zip64 and (size >= MAX_FILE_SIZE or compressed_size >= MAX_FILE_SIZE):
            raise ArchiveFormatError(
                f"Entry '{name}' exceeded 4 GiB; pass a size_hint so ZIP64 fields are reserved"
            )

        entry.crc32 = crc & 0xFFFFFFFF
        entry.uncompressed_size = size
        entry.compressed_size = compressed_size

        end = self._file.tell()
        self._file.seek(entry.local_header_offset + _LOCAL_CRC_OFFSET)
        if zip64:
            self._file.write(entry.crc32.to_bytes(4, "little"))
            self._file.seek(
                entry.local_header_offset + LOCAL_HEADER_STRUCT.size + len(name_bytes)
            )
            self._file.write(pack_zip64_extra(size, compressed_size))
        else:
            self._file.write(entry.crc32.to_bytes(4, "little"))
            self._file.write(compressed_size.to_bytes(4, "little"))
            self._file.write(size.to_bytes(4, "little"))
        self._file.seek(end)

        self._entries.append(entry)
        return entry

    def _write_central_directory(self) -> tuple[int, int]:
        cd_offset = self._offset
        for entry in self._entries:
            name_bytes = entry.name.encode("utf-8")
            saturated = [
                value
                for value in (entry.uncompressed_size, entry.compressed_size, entry.local_header_offset)
                if value >= MAX_FILE_SIZE
            ]
            extra = pack_zip64_extra(*saturated) if saturated else b""
            self._write(
                CENTRAL_HEADER_STRUCT.pack(
                    CENTRAL_DIR_HEADER,
                    VERSION_MADE_BY_DEFAULT,
                    VERSION_ZIP64 if extra else VERSION_DEFAULT,
                    entry.flags,
                    entry.compression_method,
                    entry.mod_time,
                    entry.mod_date,
                    entry.crc32,
                    min(entry.compressed_size, MAX_FILE_SIZE),
                    min(entry.uncompressed_size, MAX_FILE_SIZE),
                    len(name_bytes),
                    len(extra),
                    0,
                    0,
                    0,
                    entry.external_attrs,
                    min(entry.local_header_offset, MAX_FILE_SIZE),
                )
            )
            self._write(name_bytes)
            self._write(extra)
        return cd_offset, self._offset - cd_offset

    def _write_end_records(self, cd_offset: int, cd_size: int) -> None:
        count = len(self._entries)
        if count >= MAX_ENTRIES or cd_size >= MAX_CD_SIZE or cd_offset >= MAX_CD_OFFSET:
            zip64_eocd_offset = self._offset
            self._write(
                ZIP64_EOCD_STRUCT.pack(
                    ZIP64_END_OF_CENTRAL_DIR,
                    ZIP64_EOCD_STRUCT.size - 12,
                    VERSION_MADE_BY_DEFAULT,
                    VERSION_ZIP64,
                    0,
                    0,
                    count,
                    count,
                    cd_size,
                    cd_offset,
                )
            )
            self._write(
                ZIP64_LOCATOR_STRUCT.pack(ZIP64_END_OF_CENTRAL_DIR_LOCATOR, 0, zip64_eocd_offset, 1)
            )
        self._write(
            EOCD_STRUCT.pack(
                END_OF_CENTRAL_DIR,
                0,
                0,
                min(count, MAX_ENTRIES),
                min(count, MAX_ENTRIES),
                min(cd_size, MAX_CD_SIZE),
                min(cd_offset, MAX_CD_OFFSET),
                0,
            )
        )

    def close(self) -> None:
        """Write the central directory and end records, then close the archive."""
        if self._closed:
            return
        try:
            cd_offset, cd_size = self._write_central_directory()
            self._write_end_records(cd_offset, cd_size)
            self._file.flush()
        finally:
            self.abort()

    def abort(self) -> None:
        """Close the archive without writing the central directory."""
        self._closed = True
        if self._should_close and self._file:
            self._file.close()
        self._file = None

    def __enter__(self) -> "ContainerWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()
