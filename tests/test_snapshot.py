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


"""Tests for diagnostic snapshots."""

import json
import re
import zipfile

from archive_intake.core.snapshot import SnapshotManager


class TestCreateSnapshot:
    def test_default_sections(self, service, config):
        config.log_dir.mkdir(parents=True)
        (config.log_dir / "archive-intake.log").write_text("INFO started\n")
        service.store.create("payload.zip", "zip", 10, 1)

        result = service.create_snapshot()

        assert result.success
        assert result.message == "Snapshot created successfully"
        data = result.data
        assert data["contents"] == {"logs": 1, "contexts": 1, "files": 0}
        assert re.fullmatch(r"snapshot-.+-[0-9a-f]{8}\.zip", data["file_path"].rsplit("/", 1)[-1])
        assert data["file_path"].endswith(f"{data['snapshot_id'][:8]}.zip")

        with zipfile.ZipFile(data["file_path"]) as zf:
            names = set(zf.namelist())
            info = json.loads(zf.read("system-info.json"))
            contexts = json.loads(zf.read("contexts.json"))

        assert names == {"system-info.json", "logs/archive-intake.log", "contexts.json"}
        assert info["snapshot_id"] == data["snapshot_id"]
        assert info["options"] == {"include_logs": True, "include_context": True, "include_files": False}
        assert contexts["total"] == 1
        assert contexts["items"][0]["name"] == "payload.zip"

    def test_include_files(self, service, make_zip):
        service.extract_archive(make_zip({"docs/notes.md": "# Notes", "a.txt": "a"}))

        result = service.create_snapshot(include_logs=False, include_context=False, include_files=True)

        assert result.data["contents"] == {"logs": 0, "contexts": 0, "files": 2}
        with zipfile.ZipFile(result.data["file_path"]) as zf:
            assert set(zf.namelist()) == {"system-info.json", "extracted/a.txt", "extracted/docs/notes.md"}

    def test_missing_directories_are_empty_sections(self, service):
        result = service.create_snapshot(include_files=True)
        assert result.data["contents"] == {"logs": 0, "contexts": 0, "files": 0}

    def test_no_temp_files_left_behind(self, service, config):
        service.create_snapshot()
        assert [p.name for p in config.snapshots_dir.iterdir() if p.name.endswith(".tmp")] == []


class TestListSnapshots:
    def test_empty_when_directory_missing(self, config, store):
        assert SnapshotManager(config, store).list_snapshots() == []

    def test_lists_created_snapshots(self, service):
        created = service.create_snapshot().data

        result = service.list_snapshots()

        assert result.success
        snapshots = result.data["snapshots"]
        assert len(snapshots) == 1
        assert snapshots[0]["path"] == created["file_path"]
        assert snapshots[0]["size"] == created["size"]
        assert snapshots[0]["name"].endswith(".zip")
        assert snapshots[0]["id"] == snapshots[0]["name"][:-4]
