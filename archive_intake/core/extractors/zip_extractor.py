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
Bounded extraction of untrusted ZIP archives.

Runs the file-level security gate, then structural validation of the archive
index, then writes members one by one with per-entry policy checks and a
running byte budget (zip bomb detection, path traversal prevention, symlink
rejection, overwrite control).

Extraction is not transactional: when the running budget trips, files
written before that point stay on disk.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import time
import zipfile
import zlib
from pathlib import Path

from ..archive_validator import ArchiveStructuralValidator, ExtractionLimits
from ..exceptions import (
    BudgetExceededError,
    EntryRejectionError,
    SecurityRejectionError,
    StructuralRejectionError,
)
from ..fs_utils import is_within
from ..models import ArchiveEntry, ExtractionOutcome, ExtractOptions
from ..path_sanitizer import flatten_entry_path, sanitize_entry_path
from ..security_gate import FileSecurityGate

logger = logging.getLogger(__name__)

_COPY_CHUNK_SIZE = 64 * 1024


class ExtractionExecutor:
    """
    Extracts a ZIP upload under an extraction root.

    Fatal problems raise (:class:`SecurityRejectionError`,
    :class:`StructuralRejectionError`, :class:`BudgetExceededError`);
    problems with a single member become warnings on the outcome.
    """

    def __init__(
        self,
        limits: ExtractionLimits | None = None,
        security_gate: FileSecurityGate | None = None,
    ):
        self.limits = limits or ExtractionLimits()
        self.security_gate = security_gate or FileSecurityGate()
        self.validator = ArchiveStructuralValidator(self.limits)

    def extract(
        self,
        file_path: str | Path,
        extract_to: str | Path,
        options: ExtractOptions | None = None,
    ) -> ExtractionOutcome:
        """
        Validate and extract an archive.

        Args:
            file_path: Upload already placed on local storage by the caller
            extract_to: Extraction root; created if missing
            options: Overwrite and layout options

        Returns:
            ExtractionOutcome listing written files and skipped-entry warnings
        """
        options = options or ExtractOptions()
        started = time.monotonic()
        archive_path = Path(file_path)

        check = self.security_gate.validate_file(archive_path)
        if not check.is_valid:
            logger.warning("Security validation failed for %s: %s", archive_path, check.reason)
            raise SecurityRejectionError(f"Security validation failed: {check.reason}", check.details)

        try:
            with zipfile.ZipFile(archive_path, "r") as zf:
                infos = zf.infolist()
                entries = [ArchiveEntry.from_zipinfo(info) for info in infos]

                verdict = self.validator.validate_contents(entries)
                if not verdict.is_valid:
                    logger.warning("Archive %s rejected: %s", archive_path, verdict.reason)
                    raise StructuralRejectionError(verdict.reason or "Archive rejected", verdict.details)

                root = Path(extract_to).resolve()
                root.mkdir(parents=True, exist_ok=True)

                outcome = ExtractionOutcome(total_files=len(entries))
                for info, entry in zip(infos, entries):
                    if entry.is_directory:
                        continue
                    try:
                        relative, written = self._extract_entry(zf, info, entry, root, options)
                    except EntryRejectionError as e:
                        logger.debug("%s", e.message)
                        outcome.warnings.append(e.message)
                        continue

                    outcome.extracted_files.append(relative)
                    outcome.total_size_bytes += written
                    if outcome.total_size_bytes > self.limits.max_total_size_bytes:
                        outcome.duration_ms = _elapsed_ms(started)
                        logger.warning(
                            "Extraction of %s aborted after %d files: %d bytes written exceeds budget",
                            archive_path,
                            len(outcome.extracted_files),
                            outcome.total_size_bytes,
                        )
                        raise BudgetExceededError(
                            f"Total extracted size exceeds limit ({self.limits.max_total_size_bytes} bytes)",
                            outcome,
                            {"written": outcome.total_size_bytes, "max_size": self.limits.max_total_size_bytes},
                        )
        except zipfile.BadZipFile as e:
            raise StructuralRejectionError("Invalid ZIP archive", {"error": str(e)}) from e

        outcome.duration_ms = _elapsed_ms(started)
        logger.info(
            "Extracted %d/%d files (%d bytes) from %s, %d warnings",
            len(outcome.extracted_files),
            outcome.total_files,
            outcome.total_size_bytes,
            archive_path,
            len(outcome.warnings),
        )
        return outcome

    def _extract_entry(
        self,
        zf: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        entry: ArchiveEntry,
        root: Path,
        options: ExtractOptions,
    ) -> tuple[str, int]:
        """
        Write one member under *root*.

        Returns:
            Tuple of (path relative to root, bytes written)

        Raises:
            EntryRejectionError: If the member is skipped by policy or fails to write
        """
        verdict = self.validator.validate_entry(entry)
        if not verdict.is_valid:
            raise EntryRejectionError(f"Skipped {entry.name}: {verdict.reason}", verdict.details)

        relative = sanitize_entry_path(entry.name)
        if not options.preserve_structure:
            relative = flatten_entry_path(relative)

        destination = root / relative
        # Resolved path must stay under root even through symlinked parents
        if not is_within(destination, root):
            raise EntryRejectionError(f"Skipped {entry.name}: Path escapes extraction directory")

        if destination.is_symlink():
            raise EntryRejectionError(f"Skipped {entry.name}: Destination is a symbolic link")

        if destination.exists() and not options.overwrite:
            raise EntryRejectionError(f"Skipped {entry.name}: File already exists")

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            written = self._write_member(zf, info, destination)
        except (OSError, EOFError, zlib.error, zipfile.BadZipFile, NotImplementedError, RuntimeError) as e:
            # CRC mismatches surface as BadZipFile, encrypted members as RuntimeError
            raise EntryRejectionError(f"Failed to extract {entry.name}: {e}") from e

        return relative, written

    @staticmethod
    def _write_member(zf: zipfile.ZipFile, info: zipfile.ZipInfo, destination: Path) -> int:
        """Stream a member to disk and return the bytes actually written.

        The member is read into a temp file beside *destination*, which is
        only replaced once the whole member has been read and CRC-checked.
        """
        written = 0
        temp_path: Path | None = None
        try:
            with zf.open(info) as source, tempfile.NamedTemporaryFile(
                mode="wb",
                dir=destination.parent,
                prefix=f".{destination.name}.",
                suffix=".part",
                delete=False,
            ) as target:
                temp_path = Path(target.name)
                while chunk := source.read(_COPY_CHUNK_SIZE):
                    target.write(chunk)
                    written += len(chunk)
            os.replace(temp_path, destination)
        except BaseException:
            if temp_path is not None:
                with contextlib.suppress(FileNotFoundError):
                    temp_path.unlink()
            raise
        return written


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
