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

"""Archive Intake exceptions.

All exceptions inherit from ArchiveIntakeError for easy catching.  Core
components raise them; :class:`archive_intake.core.service.IntakeService`
turns them into ``success: false`` results.

Example:
    >>> from archive_intake.core.extractors.zip_extractor import ExtractionExecutor
    >>> from archive_intake.core.exceptions import StructuralRejectionError
    >>>
    >>> executor = ExtractionExecutor()
    >>>
    >>> try:
    ...     outcome = executor.extract("upload.zip", "data/extracted")
    ... except StructuralRejectionError as e:
    ...     print(f"Archive rejected: {e}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ExtractionOutcome


class ArchiveIntakeError(Exception):
    """Base exception for all Archive Intake errors."""

    error_type = "intake_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SecurityRejectionError(ArchiveIntakeError):
    """Raised when the uploaded file fails the file-level security gate.

    The archive is never opened.  Causes include:
    - Missing file
    - Oversized upload
    - Sniffed content type outside the archive allowlist
    - Hazardous filename
    """

    error_type = "security_rejection"


class StructuralRejectionError(ArchiveIntakeError):
    """Raised when the archive as a whole is judged hostile or unusable.

    This indicates:
    - Empty archive or too many members
    - Suspicious aggregate compression ratio (zip bomb)
    - Aggregate declared size over budget
    - Corrupt archive index
    """

    error_type = "structural_rejection"


class EntryRejectionError(ArchiveIntakeError):
    """Raised for a single member that violates entry policy.

    Recoverable: the executor records a warning and moves on.
    """

    error_type = "entry_rejection"


class BudgetExceededError(ArchiveIntakeError):
    """Raised when bytes actually written pass the aggregate extraction budget.

    Files written before the budget tripped stay on disk; ``outcome`` holds
    what was extracted so far.
    """

    error_type = "budget_exceeded"

    def __init__(self, message: str, outcome: ExtractionOutcome, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.outcome = outcome


class ContextNotFoundError(ArchiveIntakeError):
    """Raised when a context id is unknown to the store."""

    error_type = "not_found"


class InvalidTransitionError(ArchiveIntakeError):
    """Raised when a decision is applied to an already-decided context and
    re-decisions are disabled."""

    error_type = "invalid_transition"


class PersistenceError(ArchiveIntakeError):
    """Raised when the context store cannot be read from or written to disk."""

    error_type = "persistence_failure"
