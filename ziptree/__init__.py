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
ZIPTREE - recursive directory archiving and extraction over ZIP.

This library compresses directory trees into ZIP archives and extracts them
back, with per-entry rename/skip callbacks, subdirectory-scoped extraction
and skip-if-exists semantics, using only Python standard library modules.
"""

from .archiver import archive
from .container import ContainerReader, ContainerWriter
from .errors import (
    ArchiveCompressionError,
    ArchiveCrcError,
    ArchiveError,
    ArchiveFormatError,
    ArchiveUnsupportedFeature,
    UnsafeEntryError,
)
from .extractor import extract, extract_subdirectory
from .structures import ArchiveEntry

__all__ = [
    "archive",
    "extract",
    "extract_subdirectory",
    "ArchiveEntry",
    "ContainerReader",
    "ContainerWriter",
    "ArchiveError",
    "ArchiveFormatError",
    "ArchiveUnsupportedFeature",
    "ArchiveCrcError",
    "ArchiveCompressionError",
    "UnsafeEntryError",
]

__version__ = "0.1.0"
