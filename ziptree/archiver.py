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
Directory-to-archive compression.

``archive()`` walks a file or directory depth-first and writes one entry per
visited node. Entry names are relative to a base path: the source itself
when it is a directory, or its parent when it is a single file, so archiving
``notes.txt`` and archiving a directory holding only ``notes.txt`` both
produce an entry named ``notes.txt``.

A remap callback sees every relative name before it is written. Returning a
string renames the entry; returning None skips it, and skipping a directory
skips everything beneath it.
"""

import logging
import os
from typing import Callable, Optional

from .constants import COMPRESSION_DEFLATE
from .container import ContainerWriter
from .utils import to_archive_name

logger = logging.getLogger(__name__)

RemapCallback = Callable[[str, bool], Optional[str]]


def archive(
    source: str | os.PathLike,
    destination: str | os.PathLike,
    remap: Optional[RemapCallback] = None,
    *,
    compression: str = COMPRESSION_DEFLATE,
    legacy_remap_flag: bool = False,
) -> int:
    """Compress a file or directory tree into a ZIP archive.

    Args:
        source: Directory to archive recursively, or a single file.
        destination: Path of the archive to create (overwritten if present).
        remap: Optional ``remap(name, is_dir)`` callback returning the name to
            store, or None to skip the node (and its subtree for directories).
        compression: "deflate" or "stored".
        legacy_remap_flag: Pass ``is_dir=True`` to ``remap`` for files as well
            as directories, for callbacks written against that behavior.

    Returns:
        Number of entries written.

    Raises:
        OSError: If a source file cannot be read or the archive cannot be
            written. The partially written archive is left in place.
    """
    source = os.path.abspath(os.fspath(source))
    if os.path.isdir(source):
        base_path = source
    else:
        base_path = os.path.dirname(source)

    walker = _TreeArchiver(base_path, remap, compression, legacy_remap_flag)
    with ContainerWriter(destination) as writer:
        walker.walk(source, writer)

    logger.info("Archived %s into %s (%d entries)", source, destination, walker.count)
    return walker.count


class _TreeArchiver:
    """Depth-first walk state shared across one ``archive()`` call."""

    def __init__(
        self,
        base_path: str,
        remap: Optional[RemapCallback],
        compression: str,
        legacy_remap_flag: bool,
    ):
        self.base_path = base_path
        self.remap = remap
        self.compression = compression
        self.legacy_remap_flag = legacy_remap_flag
        self.count = 0

    def _resolve_name(self, path: str, is_dir: bool) -> Optional[str]:
        name = to_archive_name(path, self.base_path, is_dir)
        if self.remap is None:
            return name
        return self.remap(name, True if self.legacy_remap_flag else is_dir)

    def _children(self, path: str) -> list[str]:
        if not os.path.isdir(path):
            return [path]
        try:
            with os.scandir(path) as it:
                return [entry.path for entry in it]
        except OSError as e:
            logger.warning("Cannot list %s, treating it as empty: %s", path, e)
            return []

    def walk(self, path: str, writer: ContainerWriter) -> None:
        for child in self._children(path):
            if os.path.isdir(child):
                name = self._resolve_name(child, is_dir=True)
                if name is None:
                    logger.debug("Skipping directory %s", child)
                    continue
                writer.add_directory(name, mtime=os.path.getmtime(child))
                self.count += 1
                logger.debug("Added directory %s", name)
                self.walk(child, writer)
            else:
                name = self._resolve_name(child, is_dir=False)
                if name is None:
                    logger.debug("Skipping file %s", child)
                    continue
                with open(child, "rb") as f:
                    st = os.fstat(f.fileno())
                    writer.add_stream(
                        name,
                        f,
                        self.compression,
                        size_hint=st.st_size,
                        mtime=st.st_mtime,
                        mode=st.st_mode,
                    )
                self.count += 1
                logger.debug("Added file %s", name)
