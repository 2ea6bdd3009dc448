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
Data models for archive intake: archive members, extraction outcomes,
approval contexts and tool results.
"""

from __future__ import annotations

import stat
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ContextType(str, Enum):
    """Kinds of ingested artifact."""

    ZIP = "zip"
    FILE = "file"
    DIRECTORY = "directory"


class ContextStatus(str, Enum):
    """Approval states of a context."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ContextStatus.PENDING


@dataclass
class ValidationResult:
    """Outcome of a single validation step."""

    is_valid: bool
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def fail(cls, reason: str, **details: Any) -> ValidationResult:
        return cls(is_valid=False, reason=reason, details=details)

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class ArchiveEntry:
    """Read-only view of one archive member, taken from the archive index.

    ``name`` is attacker-controlled and must never be joined to a path
    without sanitization.
    """

    name: str
    uncompressed_size: int
    compressed_size: int
    is_directory: bool = False
    is_symlink: bool = False

    @classmethod
    def from_zipinfo(cls, info: zipfile.ZipInfo) -> ArchiveEntry:
        # Unix mode bits live in the upper 16 bits of external_attr
        unix_mode = (info.external_attr >> 16) & 0xFFFF
        return cls(
            name=info.filename,
            uncompressed_size=info.file_size,
            compressed_size=info.compress_size,
            is_directory=info.is_dir(),
            is_symlink=unix_mode != 0 and stat.S_ISLNK(unix_mode),
        )


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def _option_flag(data: dict[str, Any], key: str, default: bool) -> bool:
    """Read a boolean option, accepting the usual form-field spellings."""
    value = data.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Invalid value for {key}: {value!r}")


@dataclass
class ExtractOptions:
    """Caller options for an extraction."""

    overwrite: bool = False
    preserve_structure: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ExtractOptions:
        data = data or {}
        return cls(
            overwrite=_option_flag(data, "overwrite", False),
            preserve_structure=_option_flag(data, "preserve_structure", True),
        )


@dataclass
class ExtractionOutcome:
    """What an extraction actually wrote.

    ``total_size_bytes`` counts bytes written to disk, never declared sizes.
    """

    extracted_files: list[str] = field(default_factory=list)
    total_files: int = 0
    total_size_bytes: int = 0
    warnings: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "extracted_files": list(self.extracted_files),
            "total_files": self.total_files,
            "total_size": self.total_size_bytes,
            "duration_ms": self.duration_ms,
        }
        if self.warnings:
            data["warnings"] = list(self.warnings)
        return data


@dataclass
class ContextRecord:
    """A persisted ingestion attempt and its approval status."""

    id: str
    name: str
    type: ContextType
    status: ContextStatus
    created: datetime
    updated: datetime
    size: int
    file_count: int | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def copy(self) -> ContextRecord:
        """Detached copy for readers outside the store."""
        return ContextRecord(
            id=self.id,
            name=self.name,
            type=self.type,
            status=self.status,
            created=self.created,
            updated=self.updated,
            size=self.size,
            file_count=self.file_count,
            metadata=dict(self.metadata),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "status": self.status.value,
            "created": self.created.isoformat(),
            "updated": self.updated.isoformat(),
            "size": self.size,
            "file_count": self.file_count,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextRecord:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            type=ContextType(data["type"]),
            status=ContextStatus(data["status"]),
            created=datetime.fromisoformat(data["created"]),
            updated=datetime.fromisoformat(data["updated"]),
            size=int(data.get("size", 0)),
            file_count=data.get("file_count"),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        )


@dataclass
class ContextPage:
    """One page of a filtered context listing."""

    items: list[ContextRecord] = field(default_factory=list)
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"items": [c.to_dict() for c in self.items], "total": self.total}


@dataclass
class SnapshotResult:
    """Result of bundling a snapshot archive."""

    snapshot_id: str
    file_path: str
    size: int
    duration_ms: int
    contents: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_id": self.snapshot_id,
            "file_path": self.file_path,
            "size": self.size,
            "duration_ms": self.duration_ms,
            "contents": dict(self.contents),
        }


@dataclass
class ToolResult:
    """Uniform result returned by every intake operation.

    Automation should branch on ``success`` and ``data``; ``message`` is for
    humans.
    """

    success: bool
    message: str
    data: dict[str, Any] | None = None
    duration_ms: int = 0
    error_type: str | None = None  # set on failure, e.g. "not_found"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success, "message": self.message, "duration_ms": self.duration_ms}
        if self.data is not None:
            result["data"] = self.data
        if self.error_type is not None:
            result["error_type"] = self.error_type
        return result
