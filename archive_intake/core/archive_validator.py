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
Structural validation of an opened archive.

``validate_contents`` judges the member list as a unit (count, aggregate
compression ratio, aggregate declared size).  ``validate_entry`` judges one
member (traversal signals, extension allowlist, per-entry size).  Both are
read-only; neither touches the filesystem.
"""

from __future__ import annotations

import posixpath
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..config.constants import ArchiveIntakeConstants
from .models import ArchiveEntry, ValidationResult


@dataclass
class ExtractionLimits:
    """Safety limits for archive extraction.

    All comparisons are strict: a value exactly at a limit passes.
    """

    max_total_size_bytes: int = ArchiveIntakeConstants.MAX_EXTRACTED_SIZE_BYTES
    max_file_count: int = ArchiveIntakeConstants.MAX_ARCHIVE_ENTRIES
    max_entry_size_bytes: int = ArchiveIntakeConstants.MAX_ENTRY_SIZE_BYTES
    max_compression_ratio: float = ArchiveIntakeConstants.MAX_COMPRESSION_RATIO  # Zip bomb threshold
    allowed_extensions: frozenset[str] = field(
        default_factory=lambda: ArchiveIntakeConstants.ALLOWED_ENTRY_EXTENSIONS
    )


def compression_ratio(uncompressed: int, compressed: int) -> float:
    """Aggregate expansion ratio; anything expanding from zero bytes is infinite."""
    if compressed > 0:
        return uncompressed / compressed
    return float("inf") if uncompressed > 0 else 0.0


class ArchiveStructuralValidator:
    """Validates archive members against :class:`ExtractionLimits`."""

    def __init__(self, limits: ExtractionLimits | None = None):
        self.limits = limits or ExtractionLimits()

    def validate_contents(self, entries: Sequence[ArchiveEntry]) -> ValidationResult:
        """
        Validate the archive's member list as a whole.

        A bomb shows up as an anomalous aggregate ratio, not as any single
        member, so sizes are summed across all file members first.

        Args:
            entries: Every member from the archive index, directories included

        Returns:
            ValidationResult; failures here are fatal for the whole archive
        """
        if not entries:
            return ValidationResult.fail("ZIP file is empty")

        if len(entries) > self.limits.max_file_count:
            return ValidationResult.fail(
                f"ZIP contains too many files (max: {self.limits.max_file_count})",
                file_count=len(entries),
                max_files=self.limits.max_file_count,
            )

        total_uncompressed = 0
        total_compressed = 0
        for entry in entries:
            if not entry.is_directory:
                total_uncompressed += entry.uncompressed_size
                total_compressed += entry.compressed_size

        ratio = compression_ratio(total_uncompressed, total_compressed)
        if ratio > self.limits.max_compression_ratio:
            return ValidationResult.fail(
                "Suspicious compression ratio (possible zip bomb)",
                ratio=ratio,
                max_ratio=self.limits.max_compression_ratio,
            )

        if total_uncompressed > self.limits.max_total_size_bytes:
            return ValidationResult.fail(
                f"Total uncompressed size exceeds limit ({self.limits.max_total_size_bytes} bytes)",
                total_size=total_uncompressed,
                max_size=self.limits.max_total_size_bytes,
            )

        return ValidationResult.ok()

    def validate_entry(self, entry: ArchiveEntry) -> ValidationResult:
        """
        Validate one member.  Failures are recoverable: the caller skips the
        member with a warning.
        """
        name = entry.name

        # Fast reject on the raw name, independent of sanitization
        if ".." in name or "\\" in name or name.startswith("/"):
            return ValidationResult.fail("Path traversal attempt detected", entry_name=name)

        if entry.is_symlink:
            return ValidationResult.fail("Symbolic link entries are not allowed", entry_name=name)

        ext = posixpath.splitext(name)[1].lower()
        if ext and ext not in self.limits.allowed_extensions:
            return ValidationResult.fail(f"File type not allowed: {ext}", extension=ext)

        if entry.uncompressed_size > self.limits.max_entry_size_bytes:
            return ValidationResult.fail(
                "File too large",
                size=entry.uncompressed_size,
                max_size=self.limits.max_entry_size_bytes,
            )

        return ValidationResult.ok()
