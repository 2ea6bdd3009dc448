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
Filesystem helpers: directory walks, atomic writes and path confinement.
"""

from __future__ import annotations

import contextlib
import os
import re
import tempfile
from pathlib import Path

_INVALID_NAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
_RESERVED_NAMES = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$", re.IGNORECASE)


def directory_size(dir_path: Path) -> int:
    """Total size in bytes of all regular files under *dir_path*."""
    if not dir_path.is_dir():
        return 0
    return sum(p.stat().st_size for p in dir_path.rglob("*") if p.is_file() and not p.is_symlink())


def count_files(dir_path: Path) -> int:
    """Number of regular files under *dir_path*."""
    if not dir_path.is_dir():
        return 0
    return sum(1 for p in dir_path.rglob("*") if p.is_file() and not p.is_symlink())


def format_bytes(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def is_valid_file_name(file_name: str) -> bool:
    """Check a single filename for illegal characters, reserved names and length."""
    if not file_name or len(file_name) > 255:
        return False
    if _INVALID_NAME_CHARS.search(file_name):
        return False
    return not _RESERVED_NAMES.match(file_name)


def is_within(path: Path, root: Path) -> bool:
    """True when the fully resolved *path* is *root* or lies beneath it."""
    resolved = path.resolve()
    root = root.resolve()
    return resolved == root or resolved.is_relative_to(root)


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """Write *text* to *path* via a temp file in the same directory and ``os.replace``.

    Readers see either the old file or the new one, never a truncated mix.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding=encoding,
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(text)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, path)
    except BaseException:
        if temp_path is not None:
            with contextlib.suppress(FileNotFoundError):
                temp_path.unlink()
        raise
