# tests/unit/test_main.py — v1
"""Tests for main.py — CLI argument parsing and error exits."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from orgnet.main import _build_parser, main
from orgnet.version import __version__


@pytest.fixture(autouse=True)
def _reset_logging(monkeypatch):
    monkeypatch.delenv("LOG_FILE", raising=False)
    yield
    logging.getLogger("orgnet").handlers.clear()


class TestParser:
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_analyze_defaults(self):
        args = _build_parser().parse_args(["analyze", "events.json", "--org", "acme"])
        assert args.file == Path("events.json")
        assert args.org == "acme"
        assert args.types == "full"
        assert args.min_communications is None
        assert args.timeframe_days is None
        assert args.insights_db is None
        assert args.output is None
        assert args.verbose is False

    def test_analyze_options(self):
        args = _build_parser().parse_args([
            "-v", "analyze", "events.json", "--org", "acme",
            "--types", "network,community", "--min-communications", "3",
            "--timeframe-days", "30", "-o", "out.json",
        ])
        assert args.verbose is True
        assert args.types == "network,community"
        assert args.min_communications == 3
        assert args.timeframe_days == 30
        assert args.output == Path("out.json")

    def test_org_required(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["analyze", "events.json"])


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        assert main(["analyze", str(tmp_path / "absent.json"), "--org", "acme"]) == 1

    def test_invalid_type_is_fatal(self, tmp_path):
        data = tmp_path / "events.json"
        data.write_text('{"events": [], "people": []}', encoding="utf-8")
        assert main(["analyze", str(data), "--org", "acme", "--types", "astrology"]) == 1
