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
Diagnostic snapshots: a ZIP bundle of system info, logs, the context
listing and, optionally, extracted files.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import platform
import sys
import tempfile
import time
import uuid
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config.config import Config
from ..config.constants import ArchiveIntakeConstants
from .context_store import ContextStore
from .models import ContextPage, SnapshotResult

logger = logging.getLogger(__name__)


class SnapshotManager:
    """Writes and lists snapshot archives under ``Config.snapshots_dir``."""

    def __init__(self, config: Config, store: ContextStore):
        self.config = config
        self.store = store

    @property
    def snapshots_dir(self) -> Path:
        return self.config.snapshots_dir

    def create_snapshot(
        self,
        include_logs: bool = True,
        include_context: bool = True,
        include_files: bool = False,
    ) -> SnapshotResult:
        """
        Bundle a snapshot archive.

        Args:
            include_logs: Add every regular file in the log directory under ``logs/``
            include_context: Add the full context listing as ``contexts.json``
            include_files: Add the extraction directory under ``extracted/``

        Returns:
            SnapshotResult with per-section counts
        """
        started = time.monotonic()
        snapshot_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        timestamp = now.strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        snapshot_path = self.snapshots_dir / f"snapshot-{timestamp}-{snapshot_id[:8]}.zip"
        self.snapshots_dir.mkdir(parents=True, exist_ok=True)

        contents = {"logs": 0, "contexts": 0, "files": 0}
        options = {
            "include_logs": include_logs,
            "include_context": include_context,
            "include_files": include_files,
        }

        fd, temp_name = tempfile.mkstemp(dir=self.snapshots_dir, prefix=".snapshot-", suffix=".tmp")
        os.close(fd)
        temp_path = Path(temp_name)
        try:
            with zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                zf.writestr("system-info.json", json.dumps(self._system_info(snapshot_id, now, options), indent=2))

                if include_logs:
                    contents["logs"] = _add_tree(zf, self.config.log_dir, "logs", recursive=False)

                if include_context:
                    records = self.store.all_contexts()
                    listing = ContextPage(items=records, total=len(records))
                    zf.writestr("contexts.json", json.dumps(listing.to_dict(), indent=2))
                    contents["contexts"] = listing.total

                if include_files:
                    extracted_dir = self.config.data_dir / ArchiveIntakeConstants.DEFAULT_EXTRACT_TO
                    contents["files"] = _add_tree(zf, extracted_dir, "extracted", recursive=True)
            os.replace(temp_path, snapshot_path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                temp_path.unlink()
            raise

        result = SnapshotResult(
            snapshot_id=snapshot_id,
            file_path=str(snapshot_path),
            size=snapshot_path.stat().st_size,
            duration_ms=int((time.monotonic() - started) * 1000),
            contents=contents,
        )
        logger.info("Snapshot created: %s (%d bytes, %s)", snapshot_path, result.size, contents)
        return result

    def list_snapshots(self) -> list[dict[str, Any]]:
        """Describe existing snapshot archives, newest first."""
        if not self.snapshots_dir.is_dir():
            return []

        snapshots = []
        for path in self.snapshots_dir.glob("snapshot-*.zip"):
            if not path.is_file():
                continue
            st = path.stat()
            snapshots.append(
                {
                    "id": path.stem,
                    "name": path.name,
                    "created": datetime.fromtimestamp(st.st_mtime, timezone.utc).isoformat(),
                    "size": st.st_size,
                    "path": str(path),
                }
            )

        snapshots.sort(key=lambda s: s["created"], reverse=True)
        return snapshots

    @staticmethod
    def _system_info(snapshot_id: str, now: datetime, options: dict[str, bool]) -> dict[str, Any]:
        return {
            "timestamp": now.isoformat(),
            "snapshot_id": snapshot_id,
            "version": ArchiveIntakeConstants.VERSION,
            "python_version": sys.version.split()[0],
            "platform": sys.platform,
            "machine": platform.machine(),
            "pid": os.getpid(),
            "options": options,
        }


def _add_tree(zf: zipfile.ZipFile, source_dir: Path, arcname_root: str, *, recursive: bool) -> int:
    """Add regular files under *source_dir* to *zf*; returns the number added."""
    if not source_dir.is_dir():
        return 0

    added = 0
    candidates = source_dir.rglob("*") if recursive else source_dir.iterdir()
    for path in sorted(candidates):
        if path.is_symlink() or not path.is_file():
            continue
        zf.write(path, f"{arcname_root}/{path.relative_to(source_dir).as_posix()}")
        added += 1
    return added
