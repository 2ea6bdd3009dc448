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
Durable store of ingestion contexts and their approval state.

The whole collection lives in memory and is rewritten to a single JSON file
on every mutation.  Mutations are serialized twice over: a process-local
``RLock`` for threads sharing one store, and a :mod:`filelock` lock file for
processes sharing one data directory.  Inside the lock the store reloads the
file if another writer replaced it, so a read-modify-write never works from
a stale copy.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from filelock import FileLock, Timeout

from ..config.constants import ArchiveIntakeConstants
from .exceptions import ContextNotFoundError, InvalidTransitionError, PersistenceError
from .fs_utils import atomic_write_text
from .models import ContextPage, ContextRecord, ContextStatus, ContextType

logger = logging.getLogger(__name__)

# Filter value meaning "no filter"
_MATCH_ALL = "all"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _filter_value(value: str | None) -> str | None:
    if value is None:
        return None
    value = getattr(value, "value", value).lower()
    return None if value in ("", _MATCH_ALL) else value


class ContextStore:
    """
    Sole writer of :class:`ContextRecord` state.

    Readers always receive copies; mutating a returned record never changes
    the store.

    Args:
        contexts_file: JSON file backing the store
        allow_redecision: When False, approving or rejecting an already
            decided context raises :class:`InvalidTransitionError`
        lock_timeout: Seconds to wait for the cross-process lock
    """

    def __init__(self, contexts_file: str | Path, *, allow_redecision: bool = True, lock_timeout: float = 10.0):
        self.contexts_file = Path(contexts_file)
        self.allow_redecision = allow_redecision
        self._lock = threading.RLock()
        self._file_lock = FileLock(f"{self.contexts_file}.lock", timeout=lock_timeout)
        self._contexts: dict[str, ContextRecord] = {}
        self._stamp: tuple[int, int, int] | None = None

        try:
            with self._lock:
                self._refresh()
        except PersistenceError as e:
            logger.error("Failed to load contexts from %s: %s", self.contexts_file, e)

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        name: str,
        type: ContextType | str,
        size: int,
        file_count: int | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """
        Record a new ingestion in ``pending`` state.

        Returns:
            The new context id

        Raises:
            PersistenceError: If the store cannot be written
        """
        now = _utcnow()
        record = ContextRecord(
            id=str(uuid.uuid4()),
            name=name,
            type=ContextType(type),
            status=ContextStatus.PENDING,
            created=now,
            updated=now,
            size=size,
            file_count=file_count,
            metadata={str(k): str(v) for k, v in (metadata or {}).items()},
        )

        with self._exclusive():
            contexts = dict(self._contexts)
            contexts[record.id] = record
            self._save(contexts)

        logger.info("Context created: %s (%s, %s, %d bytes)", record.id, name, record.type.value, size)
        return record.id

    def approve(self, context_id: str, approved: bool, reason: str | None = None) -> ContextRecord:
        """
        Apply an approval decision to a context.

        Returns:
            Copy of the updated record

        Raises:
            ContextNotFoundError: If ``context_id`` is unknown
            InvalidTransitionError: If the context is already decided and
                re-decisions are disabled
            PersistenceError: If the store cannot be written
        """
        with self._exclusive():
            current = self._contexts.get(context_id)
            if current is None:
                raise ContextNotFoundError(f"Context not found: {context_id}", {"context_id": context_id})

            if current.status.is_terminal and not self.allow_redecision:
                raise InvalidTransitionError(
                    f"Context {context_id} is already {current.status.value}",
                    {"context_id": context_id, "status": current.status.value},
                )

            record = current.copy()
            record.status = ContextStatus.APPROVED if approved else ContextStatus.REJECTED
            record.updated = max(_utcnow(), record.created)
            if reason is not None:
                record.metadata[ArchiveIntakeConstants.APPROVAL_REASON_KEY] = reason

            contexts = dict(self._contexts)
            contexts[context_id] = record
            self._save(contexts)

        logger.info("Context %s %s", context_id, record.status.value)
        return record.copy()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, context_id: str) -> ContextRecord:
        """
        Look up one context.

        Raises:
            ContextNotFoundError: If ``context_id`` is unknown
        """
        with self._lock:
            self._refresh()
            record = self._contexts.get(context_id)
            if record is None:
                raise ContextNotFoundError(f"Context not found: {context_id}", {"context_id": context_id})
            return record.copy()

    def list(
        self,
        status: ContextStatus | str | None = None,
        type: ContextType | str | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> ContextPage:
        """
        Filter, sort and paginate contexts.

        Filters apply in order status, type, then case-insensitive name
        substring.  ``"all"`` disables a filter.  Results are newest first.
        ``total`` counts matches before pagination.
        """
        status_filter = _filter_value(status)
        type_filter = _filter_value(type)
        needle = search.lower() if search else None

        if limit is None or limit <= 0:
            limit = ArchiveIntakeConstants.DEFAULT_LIST_LIMIT
        offset = max(offset or 0, 0)

        with self._lock:
            self._refresh()
            matches = list(self._contexts.values())

        if status_filter is not None:
            matches = [c for c in matches if c.status.value == status_filter]
        if type_filter is not None:
            matches = [c for c in matches if c.type.value == type_filter]
        if needle:
            matches = [c for c in matches if needle in c.name.lower()]

        matches.sort(key=lambda c: c.created, reverse=True)
        return ContextPage(items=[c.copy() for c in matches[offset : offset + limit]], total=len(matches))

    def all_contexts(self) -> list[ContextRecord]:
        """Every context, newest first."""
        with self._lock:
            self._refresh()
            records = [c.copy() for c in self._contexts.values()]
        records.sort(key=lambda c: c.created, reverse=True)
        return records

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold both the thread lock and the cross-process file lock."""
        with self._lock:
            try:
                self._file_lock.acquire()
            except Timeout as e:
                raise PersistenceError(
                    f"Timed out waiting for context store lock: {self._file_lock.lock_file}",
                    {"timeout": self._file_lock.timeout},
                ) from e
            try:
                self._refresh()
                yield
            finally:
                self._file_lock.release()

    def _file_stamp(self) -> tuple[int, int, int] | None:
        try:
            st = self.contexts_file.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Cannot stat context store: {e}") from e
        # Every save is an os.replace, so a new inode means a new file
        return st.st_ino, st.st_mtime_ns, st.st_size

    def _refresh(self) -> None:
        """Reload from disk when the backing file changed since the last load or save."""
        stamp = self._file_stamp()
        if stamp == self._stamp:
            return
        self._contexts = self._load() if stamp is not None else {}
        self._stamp = stamp

    def _load(self) -> dict[str, ContextRecord]:
        try:
            with open(self.contexts_file, encoding="utf-8") as f:
                data = json.load(f)
            records = [ContextRecord.from_dict(item) for item in data["contexts"]]
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise PersistenceError(f"Cannot read context store: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceError(
                f"Corrupt context store {self.contexts_file}: {e}", {"file": str(self.contexts_file)}
            ) from e

        logger.debug("Loaded %d contexts from %s", len(records), self.contexts_file)
        return {record.id: record for record in records}

    def _save(self, contexts: dict[str, ContextRecord]) -> None:
        """Persist *contexts* and adopt it as the in-memory state only once it is on disk."""
        payload = {"contexts": [record.to_dict() for record in contexts.values()]}
        try:
            atomic_write_text(self.contexts_file, json.dumps(payload, indent=2))
        except OSError as e:
            raise PersistenceError(f"Cannot write context store: {e}", {"file": str(self.contexts_file)}) from e
        self._contexts = contexts
        self._stamp = self._file_stamp()
