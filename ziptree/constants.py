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
Constants for the ziptree container layer and tree walkers.
"""

# ZIP record signatures
LOCAL_FILE_HEADER = 0x04034B50  # "PK\x03\x04"
CENTRAL_DIR_HEADER = 0x02014B50  # "PK\x01\x02"
END_OF_CENTRAL_DIR = 0x06054B50  # "PK\x05\x06"
ZIP64_END_OF_CENTRAL_DIR = 0x06064B50  # "PK\x06\x06"
ZIP64_END_OF_CENTRAL_DIR_LOCATOR = 0x07064B50  # "PK\x06\x07"

# Compression methods
COMP_STORED = 0
COMP_DEFLATE = 8

COMPRESSION_STORED = "stored"
COMPRESSION_DEFLATE = "deflate"

COMPRESSION_METHODS = {
    COMPRESSION_STORED: COMP_STORED,
    COMPRESSION_DEFLATE: COMP_DEFLATE,
}

# General purpose bit flags
FLAG_ENCRYPTED = 0x0001
FLAG_UTF8 = 0x0800

# Version needed to extract / made by
VERSION_DEFAULT = 20
VERSION_ZIP64 = 45
VERSION_MADE_BY_DEFAULT = (3 << 8) | VERSION_ZIP64  # Unix, APPNOTE 4.5

# Classic ZIP limits; values at or above these go through ZIP64 records
MAX_FILE_SIZE = 0xFFFFFFFF
MAX_ENTRIES = 0xFFFF
MAX_CD_SIZE = 0xFFFFFFFF
MAX_CD_OFFSET = 0xFFFFFFFF

ZIP64_EXTRA_FIELD_TAG = 0x0001

# EOCD is 22 bytes followed by an optional comment of up to 65535 bytes
END_OF_CENTRAL_DIR_SIZE = 22
MAX_EOCD_SCAN = END_OF_CENTRAL_DIR_SIZE + 0xFFFF
ZIP64_LOCATOR_SIZE = 20

# Unix mode bits stored in the upper half of the external attributes
DEFAULT_FILE_MODE = 0o100644
DEFAULT_DIR_MODE = 0o040755
S_IFDIR = 0o040000

# Size of the buffer used to copy entry content between streams
COPY_BUFFER_SIZE = 64 * 1024

# Upper bound on central directory records accepted from an archive
MAX_ENTRY_COUNT = 10_000_000
