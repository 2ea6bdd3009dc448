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
Intake service: the boundary the HTTP API and CLI call into.

Every operation returns a :class:`ToolResult` and never raises for an
expected failure.  Core exceptions are converted here; ``error_type`` on
the result names the failure kind for callers that branch on it.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from ..config.config import Config
from ..config.constants import ArchiveIntakeConstants
from .context_store import ContextStore
from .exceptions import ArchiveIntakeError, BudgetExceededError, SecurityRejectionError
from .extractors.zip_extractor import ExtractionExecutor
from .fs_utils import count_files, directory_size, format_bytes, is_within
from .models import ContextStatus, ContextType, ExtractOptions, ToolResult
from .snapshot import SnapshotManager

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _failure(error: ArchiveIntakeError, started: float, data: dict[str, Any] | None = None) -> ToolResult:
    return ToolResult(
        success=False,
        message=error.message,
        data=data,
        duration_ms=_elapsed_ms(started),
        error_type=error.error_type,
    )


class IntakeService:
    """
    Extraction, approval and housekeeping operations over one data directory.

    Example:
        >>> service = IntakeService(Config(data_dir=Path("data")))
        >>> result = service.ingest("data/zips/upload.zip", original_name="upload.zip")
        >>> if result.success:
        ...     service.set_approval(result.data["context_id"], approved=True, reason="reviewed")
    """

    def __init__(
        self,
        config: Config | None = None,
        store: ContextStore | None = None,
        executor: ExtractionExecutor | None = None,
    ):
        self.config = config or Config()
        self.store = store or ContextStore(
            self.config.contexts_file,
            allow_redecision=self.config.allow_redecision,
            lock_timeout=self.config.store_lock_timeout,
        )
        self.executor = executor or ExtractionExecutor()
        self.snapshots = SnapshotManager(self.config, self.store)

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def resolve_extract_root(self, extract_to: str | Path) -> Path:
        """
        Resolve an extraction target beneath the data directory.

        Raises:
            SecurityRejectionError: If the target is the data directory itself
                or lies outside it
        """
        data_dir = self.config.data_dir.resolve()
        target = (data_dir / extract_to).resolve()
        if target == data_dir or not is_within(target, data_dir):
            raise SecurityRejectionError(
                f"Extraction target escapes data directory: {extract_to}",
                {"extract_to": str(extract_to)},
            )
        return target

    def extract_archive(
        self,
        file_path: str | Path,
        extract_to: str | Path = ArchiveIntakeConstants.DEFAULT_EXTRACT_TO,
        options: ExtractOptions | dict[str, Any] | None = None,
    ) -> ToolResult:
        """
        Validate and extract an archive already on local storage.

        On success ``data`` holds the extraction outcome.  When the running
        size budget trips, ``success`` is False but ``data`` still holds the
        partial outcome: those files remain on disk.
        """
        started = time.monotonic()
        if not isinstance(options, ExtractOptions):
            try:
                options = ExtractOptions.from_dict(options)
            except ValueError as e:
                return ToolResult(
                    success=False,
                    message=str(e),
                    duration_ms=_elapsed_ms(started),
                    error_type="invalid_options",
                )

        if not Path(file_path).is_file():
            return ToolResult(
                success=False,
                message=f"File not found: {file_path}",
                duration_ms=_elapsed_ms(started),
                error_type="not_found",
            )

        try:
            root = self.resolve_extract_root(extract_to)
            outcome = self.executor.extract(file_path, root, options)
        except BudgetExceededError as e:
            logger.warning("Extraction of %s stopped with partial output: %s", file_path, e.message)
            return _failure(e, started, data=e.outcome.to_dict())
        except ArchiveIntakeError as e:
            logger.warning("Extraction of %s rejected: %s", file_path, e.message)
            return _failure(e, started)
        except OSError as e:
            logger.error("Extraction of %s failed: %s", file_path, e)
            return ToolResult(
                success=False,
                message=f"Extraction failed: {e}",
                duration_ms=_elapsed_ms(started),
                error_type="io_error",
            )

        message = f"Successfully extracted {len(outcome.extracted_files)} files"
        logger.info("%s from %s into %s (%s)", message, file_path, root, format_bytes(outcome.total_size_bytes))
        return ToolResult(success=True, message=message, data=outcome.to_dict(), duration_ms=outcome.duration_ms)

    def ingest(
        self,
        file_path: str | Path,
        original_name: str | None = None,
        extract_to: str | Path = ArchiveIntakeConstants.DEFAULT_EXTRACT_TO,
        options: ExtractOptions | dict[str, Any] | None = None,
    ) -> ToolResult:
        """
        Extract an upload and, on success, record a pending ``zip`` context.

        The context ``size`` is the uploaded file's size and ``file_count``
        the number of files written.
        """
        started = time.monotonic()
        result = self.extract_archive(file_path, extract_to, options)
        if not result.success:
            return result

        data = dict(result.data or {})
        name = original_name or Path(file_path).name
        try:
            size = Path(file_path).stat().st_size
            context_id = self.store.create(
                name=name,
                type=ContextType.ZIP,
                size=size,
                file_count=len(data.get("extracted_files", [])),
            )
        except ArchiveIntakeError as e:
            logger.error("Extracted %s but failed to record context: %s", name, e.message)
            return ToolResult(
                success=False,
                message=f"Extraction succeeded but context could not be recorded: {e.message}",
                data=data,
                duration_ms=_elapsed_ms(started),
                error_type=e.error_type,
            )
        except OSError as e:
            logger.error("Extracted %s but failed to record context: %s", name, e)
            return ToolResult(
                success=False,
                message=f"Extraction succeeded but context could not be recorded: {e}",
                data=data,
                duration_ms=_elapsed_ms(started),
                error_type="io_error",
            )

        data["context_id"] = context_id
        return ToolResult(success=True, message=result.message, data=data, duration_ms=_elapsed_ms(started))

    # ------------------------------------------------------------------
    # Contexts
    # ------------------------------------------------------------------

    def set_approval(self, context_id: str, approved: bool, reason: str | None = None) -> ToolResult:
        """Approve or reject a context."""
        started = time.monotonic()
        try:
            record = self.store.approve(context_id, approved, reason)
        except ArchiveIntakeError as e:
            logger.warning("Approval of %s failed: %s", context_id, e.message)
            return _failure(e, started)

        verdict = "approved" if approved else "rejected"
        return ToolResult(
            success=True,
            message=f"Context {verdict} successfully",
            data={"context": record.to_dict()},
            duration_ms=_elapsed_ms(started),
        )

    def get_context(self, context_id: str) -> ToolResult:
        started = time.monotonic()
        try:
            record = self.store.get(context_id)
        except ArchiveIntakeError as e:
            return _failure(e, started)
        return ToolResult(
            success=True,
            message="Context found",
            data={"context": record.to_dict()},
            duration_ms=_elapsed_ms(started),
        )

    def list_contexts(
        self,
        status: str | None = None,
        type: str | None = None,
        search: str | None = None,
        limit: int | None = ArchiveIntakeConstants.DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> ToolResult:
        """List contexts; ``data`` is ``{"items": [...], "total": n}``."""
        started = time.monotonic()
        try:
            page = self.store.list(status=status, type=type, search=search, limit=limit, offset=offset)
        except ArchiveIntakeError as e:
            logger.error("Context query failed: %s", e.message)
            return _failure(e, started)
        return ToolResult(
            success=True,
            message=f"Found {page.total} contexts",
            data=page.to_dict(),
            duration_ms=_elapsed_ms(started),
        )

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def create_snapshot(
        self,
        include_logs: bool = True,
        include_context: bool = True,
        include_files: bool = False,
    ) -> ToolResult:
        started = time.monotonic()
        try:
            snapshot = self.snapshots.create_snapshot(
                include_logs=include_logs,
                include_context=include_context,
                include_files=include_files,
            )
        except ArchiveIntakeError as e:
            logger.error("Failed to create snapshot: %s", e.message)
            return _failure(e, started)
        except OSError as e:
            logger.error("Failed to create snapshot: %s", e)
            return ToolResult(
                success=False,
                message=f"Failed to create snapshot: {e}",
                duration_ms=_elapsed_ms(started),
                error_type="io_error",
            )
        return ToolResult(
            success=True,
            message="Snapshot created successfully",
            data=snapshot.to_dict(),
            duration_ms=snapshot.duration_ms,
        )

    def list_snapshots(self) -> ToolResult:
        started = time.monotonic()
        snapshots = self.snapshots.list_snapshots()
        return ToolResult(
            success=True,
            message=f"Found {len(snapshots)} snapshots",
            data={"snapshots": snapshots},
            duration_ms=_elapsed_ms(started),
        )

    def stats(self) -> ToolResult:
        """Context counts by status plus extraction directory usage."""
        started = time.monotonic()
        try:
            records = self.store.all_contexts()
        except ArchiveIntakeError as e:
            return _failure(e, started)

        extracted_dir = self.config.data_dir / ArchiveIntakeConstants.DEFAULT_EXTRACT_TO
        used = directory_size(extracted_dir)
        by_status = {status.value: 0 for status in ContextStatus}
        for record in records:
            by_status[record.status.value] += 1

        return ToolResult(
            success=True,
            message="Statistics collected",
            data={
                "total_contexts": len(records),
                "contexts_by_status": by_status,
                "extracted_files": count_files(extracted_dir),
                "disk_usage": {"used": used, "used_human": format_bytes(used)},
            },
            duration_ms=_elapsed_ms(started),
        )
