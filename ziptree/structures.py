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
ZIP record layouts and the entry model.

This module defines the fixed-size record layouts used by the container
layer, the ``ArchiveEntry`` dataclass handed to the tree walkers, and the
parse/pack helpers for each record.
"""

import struct
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Optional

from .constants import (
    CENTRAL_DIR_HEADER,
    END_OF_CENTRAL_DIR,
    LOCAL_FILE_HEADER,
    MAX_FILE_SIZE,
    S_IFDIR,
    ZIP64_END_OF_CENTRAL_DIR,
    ZIP64_END_OF_CENTRAL_DIR_LOCATOR,
    ZIP64_EXTRA_FIELD_TAG,
    ZIP64_LOCATOR_SIZE,
)
from .errors import ArchiveFormatError
from .utils import dos_datetime_to_timestamp, read_exact

LOCAL_HEADER_STRUCT = struct.Struct("<IHHHHHIIIHH")
CENTRAL_HEADER_STRUCT = struct.Struct("<IHHHHHHIIIHHHHHII")
EOCD_STRUCT = struct.Struct("<IHHHHIIH")
ZIP64_EOCD_STRUCT = struct.Struct("<IQHHIIQQQQ")
ZIP64_LOCATOR_STRUCT = struct.Struct("<IIQI")
EXTRA_HEADER_STRUCT = struct.Struct("<HH")


@dataclass
class ArchiveEntry:
    """One record of an archive: a directory marker or a file.

    ``name`` is the slash-separated relative path exactly as stored (with
    backslashes normalized to ``/``). The remaining fields locate and
    describe the content within the container.
    """

    name: str
    is_dir: bool
    compression_method: int = 0
    flags: int = 0
    crc32: int = 0
    compressed_size: int = 0
    uncompressed_size: int = 0
    local_header_offset: int = 0
    mod_date: int = 0
    mod_time: int = 0
    external_attrs: int = 0

    @property
    def date_time(self) -> datetime:
        """Modification time as a datetime."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)


@dataclass
class EndOfCentralDirectory:
    """Location and size of the central directory."""

    disk_num: int
    cd_disk: int
    cd_records_total: int
    cd_size: int
    cd_offset: int


def _check_signature(found: int, expected: int, what: str) -> None:
    if found != expected:
        raise ArchiveFormatError(
            f"Invalid {what} signature: 0x{found:08X}, expected 0x{expected:08X}"
        )


def parse_zip64_extra(
    extra: bytes, uncompressed_size: int, compressed_size: int, offset: int
) -> tuple[int, int, int]:
    """Resolve 32-bit header fields against a ZIP64 extended information field.

    Only the fields whose 32-bit value is saturated (0xFFFFFFFF) are present
    in the extra field, in the order uncompressed size, compressed size,
    local header offset.

    Returns:
        Tuple of (uncompressed_size, compressed_size, local_header_offset).
    """
    pos = 0
    while pos + EXTRA_HEADER_STRUCT.size <= len(extra):
        tag, size = EXTRA_HEADER_STRUCT.unpack_from(extra, pos)
        pos += EXTRA_HEADER_STRUCT.size
        if pos + size > len(extra):
            break
        if tag == ZIP64_EXTRA_FIELD_TAG:
            data = extra[pos : pos + size]
            values = [uncompressed_size, compressed_size, offset]
            field_pos = 0
            for i, value in enumerate(values):
                if value != MAX_FILE_SIZE:
                    continue
                if field_pos + 8 > len(data):
                    raise ArchiveFormatError("Truncated ZIP64 extended information field")
                values[i] = struct.unpack_from("<Q", data, field_pos)[0]
                field_pos += 8
            return values[0], values[1], values[2]
        pos += size

    return uncompressed_size, compressed_size, offset


def pack_zip64_extra(*values: int) -> bytes:
    """Build a ZIP64 extended information field holding ``values`` in order."""
    body = struct.pack(f"<{len(values)}Q", *values)
    return EXTRA_HEADER_STRUCT.pack(ZIP64_EXTRA_FIELD_TAG, len(body)) + body


def parse_central_directory_header(f: BinaryIO) -> ArchiveEntry:
    """Parse one central directory header at the current position.

    Raises:
        ArchiveFormatError: If the signature is invalid or the record is truncated.
    """
    (
        signature,
        _version_made_by,
        _version,
        flags,
        compression_method,
        mod_time,
        mod_date,
        crc32,
        compressed_size,
        uncompressed_size,
        filename_len,
        extra_len,
        comment_len,
        _disk_start,
        _internal_attrs,
        external_attrs,
        local_header_offset,
    ) = CENTRAL_HEADER_STRUCT.unpack(read_exact(f, CENTRAL_HEADER_STRUCT.size))
    _check_signature(signature, CENTRAL_DIR_HEADER, "central directory header")

    raw_name = read_exact(f, filename_len)
    extra = read_exact(f, extra_len)
    read_exact(f, comment_len)

    # Non-UTF-8 names are decoded leniently; charset handling is best effort
    name = raw_name.decode("utf-8", errors="replace")
    if "\\" in name:
        name = name.replace("\\", "/")

    uncompressed_size, compressed_size, local_header_offset = parse_zip64_extra(
        extra, uncompressed_size, compressed_size, local_header_offset
    )

    is_dir = name.endswith("/") or bool((external_attrs >> 16) & S_IFDIR)

    return ArchiveEntry(
        name=name,
        is_dir=is_dir,
        compression_method=compression_method,
        flags=flags,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        local_header_offset=local_header_offset,
        mod_date=mod_date,
        mod_time=mod_time,
        external_attrs=external_attrs,
    )


def skip_local_file_header(f: BinaryIO) -> None:
    """Consume a local file header, leaving ``f`` at the start of the entry data.

    Sizes are taken from the central directory, so only the variable-length
    name and extra field lengths matter here.
    """
    fields = LOCAL_HEADER_STRUCT.unpack(read_exact(f, LOCAL_HEADER_STRUCT.size))
    _check_signature(fields[0], LOCAL_FILE_HEADER, "local file header")
    filename_len, extra_len = fields[9], fields[10]
    read_exact(f, filename_len + extra_len)


def parse_eocd(data: bytes, pos: int) -> EndOfCentralDirectory:
    """Parse an end of central directory record located at ``data[pos:]``."""
    if pos + EOCD_STRUCT.size > len(data):
        raise ArchiveFormatError("Truncated end of central directory record")
    (
        signature,
        disk_num,
        cd_disk,
        _records_on_disk,
        records_total,
        cd_size,
        cd_offset,
        _comment_len,
    ) = EOCD_STRUCT.unpack_from(data, pos)
    _check_signature(signature, END_OF_CENTRAL_DIR, "end of central directory")
    return EndOfCentralDirectory(disk_num, cd_disk, records_total, cd_size, cd_offset)


def parse_zip64_locator(data: bytes) -> Optional[int]:
    """Return the ZIP64 EOCD offset from a locator record, or None if absent."""
    if len(data) < ZIP64_LOCATOR_SIZE:
        return None
    signature, _disk, zip64_eocd_offset, _total_disks = ZIP64_LOCATOR_STRUCT.unpack(data)
    if signature != ZIP64_END_OF_CENTRAL_DIR_LOCATOR:
        return None
    return zip64_eocd_offset


def parse_zip64_eocd(f: BinaryIO) -> EndOfCentralDirectory:
    """Parse a ZIP64 end of central directory record at the current position."""
    (
        signature,
        _size,
        _version_made_by,
        _version_needed,
        disk_num,
        cd_disk,
        _records_on_disk,
        records_total,
        cd_size,
        cd_offset,
    ) = ZIP64_EOCD_STRUCT.unpack(read_exact(f, ZIP64_EOCD_STRUCT.size))
    _check_signature(signature, ZIP64_END_OF_CENTRAL_DIR, "ZIP64 end of central directory")
    return EndOfCentralDirectory(disk_num, cd_disk, records_total, cd_size, cd_offset)
