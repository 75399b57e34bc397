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
Helper functions shared by the container layer and the tree walkers.

This module covers DOS date/time conversion, short-read-safe binary reads,
and the mapping between host paths and slash-separated archive names.
"""

import os
from datetime import datetime
from typing import BinaryIO

from .errors import ArchiveFormatError, UnsafeEntryError


def dos_datetime_to_timestamp(dos_date: int, dos_time: int) -> datetime:
    """Convert DOS date and time fields to a datetime.

    DOS date format (16 bits):
        Bits 0-4: Day (1-31)
        Bits 5-8: Month (1-12)
        Bits 9-15: Year - 1980

    DOS time format (16 bits):
        Bits 0-4: Second / 2
        Bits 5-10: Minute
        Bits 11-15: Hour

    Args:
        dos_date: DOS date value.
        dos_time: DOS time value.

    Returns:
        The decoded datetime, or 1980-01-01 00:00:00 if the fields are invalid.
    """
    try:
        return datetime(
            ((dos_date >> 9) & 0x7F) + 1980,
            (dos_date >> 5) & 0x0F,
            dos_date & 0x1F,
            (dos_time >> 11) & 0x1F,
            (dos_time >> 5) & 0x3F,
            (dos_time & 0x1F) * 2,
        )
    except ValueError:
        return datetime(1980, 1, 1)


def timestamp_to_dos_datetime(dt: datetime) -> tuple[int, int]:
    """Convert a datetime to DOS (date, time) fields.

    Years outside 1980-2107 are clamped to the nearest representable year.
    """
    year = min(max(dt.year - 1980, 0), 127)
    dos_date = dt.day | (dt.month << 5) | (year << 9)
    dos_time = (dt.second // 2) | (dt.minute << 5) | (dt.hour << 11)
    return dos_date & 0xFFFF, dos_time & 0xFFFF


def read_exact(f: BinaryIO, size: int) -> bytes:
    """Read exactly ``size`` bytes from ``f``.

    Raises:
        ArchiveFormatError: If the stream ends early or ``size`` is negative.
    """
    if size < 0:
        raise ArchiveFormatError(f"Invalid read size: {size} (must be non-negative)")

    data = f.read(size)
    if len(data) != size:
        raise ArchiveFormatError(
            f"Unexpected end of file: expected {size} bytes, got {len(data)}"
        )
    return data


def to_archive_name(path: str, base_path: str, is_dir: bool) -> str:
    """Return the archive name of ``path`` relative to ``base_path``.

    The name always uses ``/`` as separator; directory names end with ``/``.
    """
    name = os.path.relpath(path, base_path)
    if os.sep != "/":
        name = name.replace(os.sep, "/")
    if os.altsep and os.altsep != "/":
        name = name.replace(os.altsep, "/")
    if is_dir:
        name += "/"
    return name


def strip_subdirectory(name: str, subdirectory: str) -> str | None:
    """Strip a subdirectory prefix from an entry name.

    The match is a plain string prefix test. After the prefix, a single
    leading ``/`` or ``\\`` is dropped.

    Returns:
        The remaining name, or None if ``name`` does not start with
        ``subdirectory``.
    """
    if not name.startswith(subdirectory):
        return None
    name = name[len(subdirectory):]
    if name.startswith("/") or name.startswith("\\"):
        name = name[1:]
    return name


def resolve_destination(root: str, name: str) -> str:
    """Join a slash-separated entry name onto the destination root.

    Args:
        root: Absolute destination directory.
        name: Slash-separated relative entry name.

    Returns:
        The host path for the entry.

    Raises:
        UnsafeEntryError: If the resulting path lies outside ``root``.
    """
    parts = [part for part in name.split("/") if part]
    target = os.path.normpath(os.path.join(root, *parts))
    if target != root and not target.startswith(root.rstrip(os.sep) + os.sep):
        raise UnsafeEntryError(f"Entry escapes destination directory: {name!r}")
    return target


def ensure_parent_directories(root: str, name: str) -> None:
    """Create every ancestor directory of a file entry under ``root``.

    Each ``/`` boundary before the final segment of ``name`` names one
    ancestor; they are created outermost first.
    """
    position = name.find("/")
    while position != -1:
        ancestor = name[:position]
        if ancestor:
            os.makedirs(resolve_destination(root, ancestor), exist_ok=True)
        position = name.find("/", position + 1)
