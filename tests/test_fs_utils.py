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


"""Tests for filesystem helpers."""

import os

import pytest

from archive_intake.core.fs_utils import (
    atomic_write_text,
    count_files,
    directory_size,
    format_bytes,
    is_valid_file_name,
    is_within,
)


class TestDirectoryWalk:
    def test_size_and_count(self, tmp_path):
        (tmp_path / "a.txt").write_bytes(b"x" * 10)
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.txt").write_bytes(b"y" * 5)

        assert directory_size(tmp_path) == 15
        assert count_files(tmp_path) == 2

    def test_symlinks_not_followed(self, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_bytes(b"z" * 100)
        root = tmp_path / "root"
        root.mkdir()
        os.symlink(outside, root / "link.txt")

        assert directory_size(root) == 0
        assert count_files(root) == 0

    def test_missing_directory(self, tmp_path):
        assert directory_size(tmp_path / "missing") == 0
        assert count_files(tmp_path / "missing") == 0


class TestFormatBytes:
    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 Bytes"),
            (512, "512 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (50 * 1024 * 1024, "50 MB"),
            (3 * 1024**4, "3 TB"),
        ],
    )
    def test_format(self, size, expected):
        assert format_bytes(size) == expected


class TestIsValidFileName:
    @pytest.mark.parametrize("name", ["payload.zip", "report-2026.zip", "a b.zip"])
    def test_valid(self, name):
        assert is_valid_file_name(name)

    @pytest.mark.parametrize("name", ["", "a<b.zip", "a:b.zip", "nul\x00.zip", "CON", "lpt1", "x" * 256])
    def test_invalid(self, name):
        assert not is_valid_file_name(name)


class TestIsWithin:
    def test_child(self, tmp_path):
        assert is_within(tmp_path / "a" / "b", tmp_path)

    def test_root_itself(self, tmp_path):
        assert is_within(tmp_path, tmp_path)

    def test_dotdot_escape(self, tmp_path):
        assert not is_within(tmp_path / "a" / ".." / "..", tmp_path)

    def test_sibling_with_common_prefix(self, tmp_path):
        assert not is_within(tmp_path / "data-evil", tmp_path / "data")


class TestAtomicWriteText:
    def test_writes_and_replaces(self, tmp_path):
        target = tmp_path / "nested" / "file.json"
        atomic_write_text(target, "first")
        atomic_write_text(target, "second")
        assert target.read_text() == "second"
        assert [p.name for p in target.parent.iterdir()] == ["file.json"]

    def test_failure_keeps_old_content(self, tmp_path, monkeypatch):
        target = tmp_path / "file.json"
        target.write_text("original")

        def boom(*args, **kwargs):
            raise OSError("replace failed")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(OSError, match="replace failed"):
            atomic_write_text(target, "new")

        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]
