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
Exception classes for ziptree.

Every error raised by the archiver, the extractor or the container layer
derives from ``OSError``, so callers can treat any failure as a single I/O
failure kind. Plain filesystem errors are never wrapped.
"""


class ArchiveError(OSError):
    """Base exception class for all archive-related errors."""

    pass


class ArchiveFormatError(ArchiveError):
    """Raised when an archive has an invalid format or structure.

    This exception is raised when:
    - Required signatures are missing or incorrect
    - The archive is truncated
    - Offsets or sizes point outside the archive
    """

    pass


class ArchiveUnsupportedFeature(ArchiveError):
    """Raised when encountering an unsupported ZIP feature.

    This exception is raised when:
    - The compression method is neither stored nor deflate
    - An entry is encrypted
    - The archive spans several disks
    """

    pass


class ArchiveCrcError(ArchiveError):
    """Raised when the CRC-32 of an entry's content does not match the archive."""

    pass


class ArchiveCompressionError(ArchiveError):
    """Raised when a deflate stream cannot be compressed or decompressed."""

    pass


class UnsafeEntryError(ArchiveFormatError):
    """Raised when an entry name would be extracted outside the destination.

    Names such as ``../../etc/passwd`` are rejected before anything is
    written for the offending entry.
    """

    pass
