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
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest before running tests.
All fixtures defined here are available to every test module without
explicit imports.
"""

from __future__ import annotations

import stat
import zipfile
from pathlib import Path

import pytest
from dotenv import load_dotenv

from archive_intake.config.config import Config
from archive_intake.core.context_store import ContextStore
from archive_intake.core.extractors.zip_extractor import ExtractionExecutor
from archive_intake.core.service import IntakeService

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

project_root = Path(__file__).parent.parent
env_file = project_root / ".env"

if env_file.exists():
    load_dotenv(env_file)


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_zip(tmp_path: Path):
    """Factory fixture for writing ZIP archives.

    Usage::

        zip_path = make_zip({
            "notes.md": "# Notes",
            "../../etc/passwd": "root:x:0:0:",
        })
        zip_path = make_zip({"legit.txt": "hi"}, symlinks={"evil_link": "/etc/passwd"})

    Members are STORED by default so that ordinary fixtures never trip the
    compression ratio check; pass ``compression=zipfile.ZIP_DEFLATED`` for
    bomb tests.
    """

    def _make(
        files: dict[str, str | bytes],
        name: str = "archive.zip",
        compression: int = zipfile.ZIP_STORED,
        symlinks: dict[str, str] | None = None,
        directory: Path | None = None,
    ) -> Path:
        target_dir = directory or tmp_path / "uploads"
        target_dir.mkdir(parents=True, exist_ok=True)
        zip_path = target_dir / name

        with zipfile.ZipFile(zip_path, "w", compression=compression) as zf:
            for entry_name, content in files.items():
                zf.writestr(entry_name, content)
            for link_name, link_target in (symlinks or {}).items():
                info = zipfile.ZipInfo(link_name)
                info.create_system = 3  # Unix
                info.external_attr = (stat.S_IFLNK | 0o777) << 16
                zf.writestr(info, link_target)

        return zip_path

    return _make


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config rooted in a per-test temporary directory."""
    return Config(data_dir=tmp_path / "data", log_dir=tmp_path / "logs", allow_redecision=True)


@pytest.fixture
def store(config: Config) -> ContextStore:
    return ContextStore(config.contexts_file)


@pytest.fixture
def executor() -> ExtractionExecutor:
    return ExtractionExecutor()


@pytest.fixture
def service(config: Config) -> IntakeService:
    return IntakeService(config)
