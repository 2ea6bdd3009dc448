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
Archive entry name sanitization.

``sanitize_entry_path`` maps any entry name to a relative path that can be
joined under an extraction root.  It never raises and is idempotent.
"""

from __future__ import annotations

import re

from ..config.constants import ArchiveIntakeConstants

# Control characters plus characters that are illegal or hazardous in
# filenames on common filesystems.  The backslash is here so that Windows
# separators never survive as path separators.
_DISALLOWED_CHARS = re.compile(r'[\x00-\x1f\x7f<>:"|?*\\]')

_DROPPED_SEGMENTS = frozenset({"", ".", ".."})

# Most filesystems cap a single name at 255 bytes.
_MAX_SEGMENT_BYTES = 255


def _truncate_segment(segment: str) -> str:
    encoded = segment.encode("utf-8")
    if len(encoded) <= _MAX_SEGMENT_BYTES:
        return segment
    return encoded[:_MAX_SEGMENT_BYTES].decode("utf-8", errors="ignore")


def sanitize_segment(segment: str, placeholder: str = ArchiveIntakeConstants.SANITIZE_PLACEHOLDER) -> str:
    """Replace disallowed characters in a single path segment."""
    return _truncate_segment(_DISALLOWED_CHARS.sub(placeholder, segment))


def sanitize_entry_path(
    name: str,
    *,
    placeholder: str = ArchiveIntakeConstants.SANITIZE_PLACEHOLDER,
    fallback: str = ArchiveIntakeConstants.SANITIZE_FALLBACK_NAME,
) -> str:
    """
    Sanitize a raw archive entry name into a root-confined relative path.

    The name is split on ``/``; each segment has disallowed characters
    replaced by *placeholder*; empty, ``.`` and ``..`` segments are dropped.
    When nothing survives, *fallback* is returned.

    Args:
        name: Raw entry name from the archive index
        placeholder: Replacement for disallowed characters
        fallback: Name used when every segment is dropped

    Returns:
        A non-empty relative path with no absolute prefix, no backslashes,
        no null bytes and no ``.``/``..`` segments
    """
    segments = (sanitize_segment(part, placeholder) for part in name.split("/"))
    kept = [segment for segment in segments if segment not in _DROPPED_SEGMENTS]
    return "/".join(kept) or fallback


def flatten_entry_path(sanitized: str) -> str:
    """Keep only the final segment of an already sanitized path."""
    return sanitized.rsplit("/", 1)[-1]
