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
Tests for upload content type detection (Magika with a signature fallback).
"""

import zipfile
from unittest.mock import patch

from archive_intake.core.file_magic import MagicMatch, _match_magic_bytes, detect_magic

# ── MagicMatch ──────────────────────────────────────────────────────────


class TestMagicMatch:
    """Verify MagicMatch NamedTuple fields and defaults."""

    def test_defaults(self):
        m = MagicMatch("archive/zip", "archive", "ZIP archive")
        assert m.score == 1.0
        assert m.mime_type == ""

    def test_label(self):
        assert MagicMatch("archive/zip", "archive", "ZIP archive").label == "zip"
        assert MagicMatch("unknown", "unknown", "?").label == "unknown"


# ── signatures ─────────────────────────────────────────────────────────


class TestMagicBytes:
    """Classic signature matching used when Magika is unavailable or unsure."""

    def test_zip_local_header(self):
        m = _match_magic_bytes(b"PK\x03\x04" + b"\x00" * 40)
        assert m is not None
        assert m.mime_type == "application/zip"

    def test_empty_zip_end_record(self):
        m = _match_magic_bytes(b"PK\x05\x06" + b"\x00" * 18)
        assert m is not None
        assert m.label == "zip"

    def test_gzip_is_not_zip(self):
        m = _match_magic_bytes(b"\x1f\x8b\x08\x00" + b"\x00" * 20)
        assert m is not None
        assert m.mime_type == "application/gzip"

    def test_tar_offset_signature(self):
        header = b"\x00" * 257 + b"ustar" + b"\x00" * 10
        m = _match_magic_bytes(header)
        assert m is not None
        assert m.label == "tar"

    def test_office_document_is_not_zip(self):
        m = _match_magic_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 32)
        assert m is not None
        assert m.content_family == "document"

    def test_unknown_bytes(self):
        assert _match_magic_bytes(b"hello world") is None


# ── detect_magic ────────────────────────────────────────────────────────


class TestDetectMagic:
    """Test content type detection from files on disk."""

    def test_real_zip_detected_as_zip(self, tmp_path):
        f = tmp_path / "upload.zip"
        with zipfile.ZipFile(f, "w") as zf:
            zf.writestr("notes.md", "# Notes\n\nSome content for the archive.\n")
        result = detect_magic(f)
        assert result is not None
        assert result.label == "zip"

    def test_falls_back_to_signatures_when_magika_fails(self, tmp_path):
        f = tmp_path / "upload.zip"
        f.write_bytes(b"PK\x03\x04" + b"\x00" * 100)
        with patch("archive_intake.core.file_magic._get_magika", side_effect=RuntimeError("no model")):
            result = detect_magic(f)
        assert result is not None
        assert result.mime_type == "application/zip"
        assert result.score == 1.0

    def test_missing_file_returns_none_without_magika(self, tmp_path):
        with patch("archive_intake.core.file_magic._get_magika", side_effect=RuntimeError("no model")):
            assert detect_magic(tmp_path / "missing.zip") is None

    def test_renamed_pdf_is_not_zip(self, tmp_path):
        f = tmp_path / "report.zip"
        f.write_bytes(b"%PDF-1.4\n" + b"1 0 obj\n<< /Type /Catalog >>\nendobj\n" * 5)
        result = detect_magic(f)
        assert result is not None
        assert result.label != "zip"
