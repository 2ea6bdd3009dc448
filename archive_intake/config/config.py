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
Configuration class for Archive Intake.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import ArchiveIntakeConstants


@dataclass
class Config:
    """
    Runtime configuration for Archive Intake.

    Explicit arguments win; anything left unset is read from the environment.
    """

    # Storage locations
    data_dir: Path | None = None
    log_dir: Path | None = None

    # Logging
    log_level: str = "INFO"

    # Context store
    allow_redecision: bool | None = None
    store_lock_timeout: float = 10.0

    # API server
    api_host: str = "localhost"
    api_port: int = 8000

    def __post_init__(self):
        """Load configuration from environment variables if not provided."""

        if self.data_dir is None:
            env_data = os.getenv("ARCHIVE_INTAKE_DATA_DIR")
            self.data_dir = Path(env_data) if env_data else Path.cwd() / ArchiveIntakeConstants.DEFAULT_DATA_DIR
        self.data_dir = Path(self.data_dir)

        if self.log_dir is None:
            env_logs = os.getenv("ARCHIVE_INTAKE_LOG_DIR")
            self.log_dir = Path(env_logs) if env_logs else Path.cwd() / ArchiveIntakeConstants.DEFAULT_LOG_DIR
        self.log_dir = Path(self.log_dir)

        # Log level from environment (only if still at default)
        if self.log_level == "INFO":
            if env_level := os.getenv("ARCHIVE_INTAKE_LOG_LEVEL"):
                self.log_level = env_level.upper()

        if self.allow_redecision is None:
            env_redecision = os.getenv("ARCHIVE_INTAKE_ALLOW_REDECISION", "")
            self.allow_redecision = env_redecision.lower() not in ("false", "0")

        if env_timeout := os.getenv("ARCHIVE_INTAKE_STORE_LOCK_TIMEOUT"):
            self.store_lock_timeout = float(env_timeout)

        if self.api_host == "localhost":
            if env_host := os.getenv("ARCHIVE_INTAKE_API_HOST"):
                self.api_host = env_host

        if self.api_port == 8000:
            if env_port := os.getenv("ARCHIVE_INTAKE_API_PORT"):
                self.api_port = int(env_port)

    @property
    def contexts_file(self) -> Path:
        return self.data_dir / ArchiveIntakeConstants.CONTEXTS_FILE_NAME

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / ArchiveIntakeConstants.UPLOADS_DIR_NAME

    @property
    def snapshots_dir(self) -> Path:
        return self.data_dir / ArchiveIntakeConstants.SNAPSHOTS_DIR_NAME

    @property
    def log_file(self) -> Path:
        return self.log_dir / ArchiveIntakeConstants.LOG_FILE_NAME

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create configuration from environment variables.

        Returns:
            Config instance with values from environment
        """
        return cls()

    @classmethod
    def from_file(cls, config_file: Path) -> "Config":
        """
        Load configuration from .env file.

        Args:
            config_file: Path to .env file

        Returns:
            Config instance
        """
        if config_file.exists():
            with open(config_file) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        os.environ[key.strip()] = value.strip()

        return cls.from_env()
