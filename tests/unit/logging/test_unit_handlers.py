# tests/unit/logging/test_unit_handlers.py — v1
"""Tests for logging/handlers.py — file rotation handler."""

from __future__ import annotations

import pytest

from orgnet.logging.handlers import _parse_size, create_rotating_handler


class TestParseSize:
    def test_mb(self):
        assert _parse_size("10MB") == 10 * 1024 * 1024

    def test_kb(self):
        assert _parse_size("512KB") == 512 * 1024

    def test_gb(self):
        assert _parse_size("1GB") == 1024 * 1024 * 1024

    def test_bare_bytes(self):
        assert _parse_size("4096") == 4096
        assert _parse_size("100B") == 100

    def test_case_and_spaces(self):
        assert _parse_size(" 10 mb ") == 10 * 1024 * 1024

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid size"):
            _parse_size("10bytes")

    def test_empty_string(self):
        with pytest.raises(ValueError):
            _parse_size("")


class TestCreateRotatingHandler:
    def test_creates_handler(self, tmp_path):
        handler = create_rotating_handler(tmp_path / "orgnet.log", rotation="1MB", retention=5)
        try:
            assert handler.maxBytes == 1024 * 1024
            assert handler.backupCount == 5
        finally:
            handler.close()

    def test_creates_parent_dirs_but_not_file(self, tmp_path):
        log_file = tmp_path / "subdir" / "deep" / "orgnet.log"
        handler = create_rotating_handler(str(log_file))
        try:
            assert log_file.parent.exists()
            assert not log_file.exists()
        finally:
            handler.close()

    def test_negative_retention(self, tmp_path):
        with pytest.raises(ValueError, match="retention"):
            create_rotating_handler(tmp_path / "x.log", retention=-1)
