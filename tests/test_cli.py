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
Tests for the command-line interface.
"""

import json
import logging
import subprocess
import sys

import pytest

from archive_intake.cli.cli import build_parser, main


@pytest.fixture(autouse=True)
def restore_root_logger():
    """The CLI attaches a file handler to the root logger; detach it after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def dirs(tmp_path):
    return ["--data-dir", str(tmp_path / "data"), "--log-dir", str(tmp_path / "logs")]


def _run(capsys, argv):
    code = main(argv)
    captured = capsys.readouterr()
    return code, captured


class TestCLIHelp:
    def test_main_help(self):
        result = subprocess.run(
            [sys.executable, "-m", "archive_intake.cli.cli", "--help"], capture_output=True, text=True
        )
        assert result.returncode == 0
        assert "extract" in result.stdout
        assert "list-contexts" in result.stdout

    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_parser_defaults(self):
        args = build_parser().parse_args(["list-contexts"])
        assert args.limit == 20
        assert args.offset == 0
        assert args.status is None


class TestExtractCommand:
    def test_extract_records_context(self, capsys, make_zip, dirs, tmp_path):
        zip_path = make_zip({"notes.md": "# Notes", "tool.exe": "MZ"})

        code, captured = _run(capsys, ["extract", str(zip_path), *dirs, "--compact"])

        assert code == 0
        result = json.loads(captured.out)
        assert result["success"] is True
        assert result["message"] == "Successfully extracted 1 files"
        assert result["data"]["warnings"] == ["Skipped tool.exe: File type not allowed: .exe"]
        assert "context_id" in result["data"]
        assert (tmp_path / "data" / "extracted" / "notes.md").exists()
        assert (tmp_path / "logs" / "archive-intake.log").exists()

    def test_extract_without_context(self, capsys, make_zip, dirs):
        zip_path = make_zip({"notes.md": "# Notes"})

        code, captured = _run(capsys, ["extract", str(zip_path), "--no-context", *dirs])

        assert code == 0
        assert "context_id" not in json.loads(captured.out)["data"]

    def test_extract_missing_file(self, capsys, dirs, tmp_path):
        code, captured = _run(capsys, ["extract", str(tmp_path / "missing.zip"), *dirs])
        assert code == 1
        assert "File does not exist" in captured.err

    def test_extract_rejected_archive(self, capsys, dirs, tmp_path):
        fake = tmp_path / "fake.zip"
        fake.write_text("just text")

        code, captured = _run(capsys, ["extract", str(fake), *dirs])

        assert code == 1
        assert json.loads(captured.err)["success"] is False


class TestContextCommands:
    def _ingest(self, capsys, make_zip, dirs) -> str:
        zip_path = make_zip({"notes.md": "# Notes"})
        _, captured = _run(capsys, ["extract", str(zip_path), *dirs])
        return json.loads(captured.out)["data"]["context_id"]

    def test_approve_and_show(self, capsys, make_zip, dirs):
        context_id = self._ingest(capsys, make_zip, dirs)

        code, captured = _run(capsys, ["approve", context_id, "--reason", "reviewed", *dirs])
        assert code == 0
        assert json.loads(captured.out)["message"] == "Context approved successfully"

        code, captured = _run(capsys, ["show-context", context_id, *dirs])
        assert code == 0
        context = json.loads(captured.out)["data"]["context"]
        assert context["status"] == "approved"
        assert context["metadata"]["approval_reason"] == "reviewed"

    def test_reject(self, capsys, make_zip, dirs):
        context_id = self._ingest(capsys, make_zip, dirs)
        code, captured = _run(capsys, ["approve", context_id, "--reject", *dirs])
        assert code == 0
        assert json.loads(captured.out)["data"]["context"]["status"] == "rejected"

    def test_list_contexts(self, capsys, make_zip, dirs):
        self._ingest(capsys, make_zip, dirs)

        code, captured = _run(capsys, ["list-contexts", "--status", "pending", *dirs])
        assert code == 0
        assert json.loads(captured.out)["data"]["total"] == 1

        code, captured = _run(capsys, ["list-contexts", "--status", "approved", *dirs])
        assert json.loads(captured.out)["data"]["total"] == 0

    def test_show_unknown_context(self, capsys, dirs):
        code, captured = _run(capsys, ["show-context", "missing", *dirs])
        assert code == 1
        assert json.loads(captured.err)["error_type"] == "not_found"


class TestHousekeepingCommands:
    def test_snapshot_and_list(self, capsys, dirs):
        code, captured = _run(capsys, ["snapshot", *dirs])
        assert code == 0
        snapshot = json.loads(captured.out)["data"]

        code, captured = _run(capsys, ["snapshot", "--list", *dirs])
        assert code == 0
        assert [s["path"] for s in json.loads(captured.out)["data"]["snapshots"]] == [snapshot["file_path"]]

    def test_stats(self, capsys, dirs):
        code, captured = _run(capsys, ["stats", *dirs])
        assert code == 0
        data = json.loads(captured.out)["data"]
        assert data["total_contexts"] == 0
        assert data["disk_usage"]["used"] == 0
