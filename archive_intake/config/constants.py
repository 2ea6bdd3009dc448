# Copyright 2026 Cisco Systems, Inc. and its affiliates
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""
Constants for Archive Intake.

These numbers are part of the public contract: clients size their uploads and
archives against them, so they must not drift.
"""

try:
    from .._version import __version__ as PACKAGE_VERSION
except Exception:  # pragma: no cover
    PACKAGE_VERSION = "0.0.0-dev"


class ArchiveIntakeConstants:
    """Constants used throughout the intake pipeline."""

    VERSION = PACKAGE_VERSION

    # Size and count limits
    MAX_UPLOAD_SIZE_BYTES = 50 * 1024 * 1024  # 50 MiB
    MAX_EXTRACTED_SIZE_BYTES = 100 * 1024 * 1024  # 100 MiB
    MAX_ARCHIVE_ENTRIES = 1000
    MAX_ENTRY_SIZE_BYTES = 10 * 1024 * 1024  # 10 MiB
    MAX_COMPRESSION_RATIO = 100.0  # zip bomb threshold

    # Entry policy
    ALLOWED_ENTRY_EXTENSIONS = frozenset({".js", ".ts", ".json", ".md", ".txt", ".yml", ".yaml", ".csv", ".xml"})
    ALLOWED_ARCHIVE_MEDIA_TYPES = ("application/zip", "application/x-zip-compressed")

    # Filename hazards checked against the uploaded file's basename
    DANGEROUS_FILENAME_PATTERNS = (
        r"\.\.",
        r"^/+",
        r"\\+",
        r"\x00",
        r"(?i)<script",
        r"(?i)javascript:",
    )

    # Path sanitization
    SANITIZE_PLACEHOLDER = "_"
    SANITIZE_FALLBACK_NAME = "sanitized_file"

    # Context metadata
    APPROVAL_REASON_KEY = "approval_reason"

    # Listing defaults
    DEFAULT_LIST_LIMIT = 20

    # Default locations (relative to the working directory)
    DEFAULT_DATA_DIR = "data"
    DEFAULT_LOG_DIR = "logs"
    DEFAULT_EXTRACT_TO = "extracted"
    CONTEXTS_FILE_NAME = "contexts.json"
    UPLOADS_DIR_NAME = "zips"
    SNAPSHOTS_DIR_NAME = "snapshots"
    LOG_FILE_NAME = "archive-intake.log"
