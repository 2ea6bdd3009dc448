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
File-level security gate for uploaded archives.

Runs before the upload is ever opened as an archive.  Checks, in order, and
stops at the first failure: existence, size, sniffed content type, filename
hazards.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from ..config.constants import ArchiveIntakeConstants
from .file_magic import MagicMatch, detect_magic
from .models import ValidationResult

logger = logging.getLogger(__name__)


class FileSecurityGate:
    """Validates an uploaded file as a whole."""

    def __init__(
        self,
        max_file_size: int = ArchiveIntakeConstants.MAX_UPLOAD_SIZE_BYTES,
        allowed_media_types: Iterable[str] = ArchiveIntakeConstants.ALLOWED_ARCHIVE_MEDIA_TYPES,
        dangerous_patterns: Iterable[str] = ArchiveIntakeConstants.DANGEROUS_FILENAME_PATTERNS,
    ):
        self.max_file_size = max_file_size
        self.allowed_media_types = tuple(allowed_media_types)
        self.dangerous_patterns = [re.compile(p) for p in dangerous_patterns]

    def validate_file(self, file_path: str | Path) -> ValidationResult:
        """
        Validate an uploaded file before it is treated as an archive.

        Args:
            file_path: Location of the upload on local storage

        Returns:
            ValidationResult; on failure ``reason`` is human readable and
            ``details`` carries the measured values
        """
        path = Path(file_path)

        if not path.is_file():
            return ValidationResult.fail("File does not exist", file_path=str(path))

        try:
            size = path.stat().st_size
        except OSError as e:
            logger.error("Security validation failed for %s: %s", path, e)
            return ValidationResult.fail("Security validation failed", error=str(e))

        if size > self.max_file_size:
            return ValidationResult.fail(
                f"File size exceeds maximum allowed size of {self.max_file_size} bytes",
                actual_size=size,
                max_size=self.max_file_size,
            )

        magic = detect_magic(path)
        if not self._is_allowed_type(magic):
            return ValidationResult.fail(
                "Invalid file type",
                detected_type=(magic.mime_type or magic.content_type) if magic else None,
                allowed_types=list(self.allowed_media_types),
            )

        hazard = self.find_filename_hazard(path.name)
        if hazard is not None:
            return ValidationResult.fail("Filename contains dangerous patterns", pattern=hazard)

        return ValidationResult.ok()

    def find_filename_hazard(self, file_name: str) -> str | None:
        """Return the first hazard pattern matching *file_name*, if any."""
        for pattern in self.dangerous_patterns:
            if pattern.search(file_name):
                return pattern.pattern
        return None

    def _is_allowed_type(self, magic: MagicMatch | None) -> bool:
        if magic is None:
            return False
        if magic.mime_type in self.allowed_media_types:
            return True
        # Magika reports plain zips with label "zip" even when the mime is absent
        return magic.content_family == "archive" and magic.label == "zip"
