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
Archive-to-directory extraction.

Whole-archive and subdirectory-scoped extraction share one routine,
``extract()``. Entries are processed in container order; each file's
ancestor directories are created before its content is written, whether or
not the archive carries explicit directory entries for them.
"""

import logging
import os
from typing import Callable, Optional

from .container import ContainerReader
from .utils import ensure_parent_directories, resolve_destination, strip_subdirectory

logger = logging.getLogger(__name__)

EntryFilter = Callable[[str], bool]


def extract(
    archive_path: str | os.PathLike,
    destination: str | os.PathLike,
    subdirectory: Optional[str] = None,
    entry_filter: Optional[EntryFilter] = None,
    skip_existing: bool = True,
    *,
    missing_ok: bool = False,
) -> int:
    """Extract a ZIP archive, or one subdirectory of it, into ``destination``.

    Args:
        archive_path: Archive to read.
        destination: Directory to extract into; created if missing.
        subdirectory: Only extract entries whose name starts with this
            prefix, with the prefix and one following separator removed.
        entry_filter: Called with each entry's full name; returning False
            skips the entry.
        skip_existing: Leave files that already exist untouched instead of
            overwriting them.
        missing_ok: Treat a missing archive as empty instead of raising.

    Returns:
        Number of files written.

    Raises:
        FileNotFoundError: If the archive does not exist and ``missing_ok`` is False.
        UnsafeEntryError: If an entry would land outside ``destination``.
        OSError: On any other read or write failure. Files written before the
            failure are kept.
    """
    root = os.path.abspath(os.fspath(destination))
    os.makedirs(root, exist_ok=True)

    if missing_ok and not os.path.exists(archive_path):
        logger.info("Archive %s does not exist, nothing to extract", archive_path)
        return 0

    written = 0
    with ContainerReader(archive_path) as reader:
        for entry in reader:
            if entry_filter is not None and not entry_filter(entry.name):
                logger.debug("Filtered out %s", entry.name)
                continue

            if subdirectory is not None:
                name = strip_subdirectory(entry.name, subdirectory)
                if name is None:
                    continue
            else:
                name = entry.name

            target = resolve_destination(root, name)

            if entry.is_dir:
                os.makedirs(target, exist_ok=True)
                continue

            if not name.strip("/"):
                logger.debug("Skipping %s, nothing left of its name", entry.name)
                continue

            ensure_parent_directories(root, name)

            if skip_existing and os.path.exists(target):
                logger.debug("Keeping existing file %s", target)
                continue

            with open(target, "wb") as f:
                reader.copy_to(entry, f)
            written += 1
            logger.debug("Extracted %s to %s", entry.name, target)

    logger.info("Extracted %d files from %s into %s", written, archive_path, root)
    return written


def extract_subdirectory(
    archive_path: str | os.PathLike,
    destination: str | os.PathLike,
    subdirectory: str,
    skip_existing: bool = True,
    *,
    missing_ok: bool = False,
) -> int:
    """Extract only the entries under ``subdirectory``; see ``extract()``."""
    return extract(
        archive_path,
        destination,
        subdirectory=subdirectory,
        skip_existing=skip_existing,
        missing_ok=missing_ok,
    )
