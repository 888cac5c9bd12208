"""Tests for CLI commands and configuration loading."""

from __future__ import annotations

import json
from io import StringIO
from pathlib import Path
from unittest.mock import patch

import pytest

import pollchannel
from pollchannel.cli import main
from pollchannel.config import DEFAULTS, load_config
from pollchannel.errors import ValidationError


def _write_config(tmp_path: Path, **overrides) -> Path:
    data = {"base_dir": str(tmp_path / "vfs"), "navigator": "log"}
    data.update(overrides)
    path = tmp_path / "config.yaml"
    lines = [f"{key}: {json.dumps(value)}" for key, value in data.items()]
    path.write_text("\n".join(lines) + "\n")
    return path


def _run(argv: list[str]) -> str:
    out = StringIO()
    with patch("sys.stdout", out):
        main(argv)
    return out.getvalue()


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "nope.yaml"))
        assert config == DEFAULTS

    def test_overrides_and_unknown_keys(self, tmp_path):
        path = _write_config(tmp_path, poll_interval=2, bogus=True)
        config = load_config(str(path))
        assert config["poll_interval"] == 2
        assert config["navigator"] == "log"
        assert "bogus" not in config
        assert config["debounce_delay"] == DEFAULTS["debounce_delay"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == DEFAULTS

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_non_mapping_config_exits_cleanly(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        err = StringIO()
        with patch("sys.stderr", err), pytest.raises(SystemExit) as exc_info:
            main(["ls", "--config", str(path)])
        assert exc_info.value.code == 1
        assert err.getvalue().startswith("Error: ")
        assert "must contain a mapping" in err.getvalue()

    def test_bundled_default_config_matches_defaults(self):
        config = load_config()
        assert config["channel_path"] == "/easyrpg/Save/Text/current_action.txt"
        assert config["counter_ids"] == DEFAULTS["counter_ids"]


class TestSendCommand:
    def test_send_raw_text(self, tmp_path):
        cfg = _write_config(tmp_path)
        output = _run(["send", "somethingElse", "--config", str(cfg)])

        channel = tmp_path / "vfs" / "easyrpg" / "Save" / "Text" / "current_action.txt"
        assert channel.read_text() == "somethingElse"
        assert "somethingElse" in output

    def test_send_url_wraps_command(self, tmp_path):
        cfg = _write_config(tmp_path)
        _run(["send", "--url", "https://example.com", "--config", str(cfg)])

        channel = tmp_path / "vfs" / "easyrpg" / "Save" / "Text" / "current_action.txt"
        assert channel.read_text() == "gotoURL https://example.com"

    def test_send_invalid_url_exits(self, tmp_path):
        cfg = _write_config(tmp_path)
        err = StringIO()
        with patch("sys.stderr", err), pytest.raises(SystemExit) as exc_info:
            main(["send", "--url", "not a url", "--config", str(cfg)])
        assert exc_info.value.code == 1
        assert "Invalid URL" in err.getvalue()


class TestFileCommands:
    def test_ls_and_cat(self, tmp_path):
        cfg = _write_config(tmp_path)
        (tmp_path / "vfs" / "docs" / "sub").mkdir(parents=True)
        (tmp_path / "vfs" / "docs" / "a.txt").write_text("hello")

        listing = _run(["ls", "/docs", "--config", str(cfg)])
        assert "file" in listing and "a.txt" in listing
        assert "directory" in listing and "sub" in listing

        as_json = json.loads(_run(["ls", "docs", "--json", "--config", str(cfg)]))
        assert {"name": "a.txt", "type": "file"} in as_json

        assert _run(["cat", "docs/a.txt", "--config", str(cfg)]) == "hello"

    def test_cat_missing_file_exits(self, tmp_path):
        cfg = _write_config(tmp_path)
        err = StringIO()
        with patch("sys.stderr", err), pytest.raises(SystemExit):
            main(["cat", "/missing.txt", "--config", str(cfg)])
        assert "does not exist" in err.getvalue()


class TestStartCommand:
    def test_start_clears_leftover_and_handles_command(self, tmp_path):
        cfg = _write_config(tmp_path, poll_interval=0.01, debounce_delay=0.01, settle_delay=0.01)
        channel = tmp_path / "vfs" / "easyrpg" / "Save" / "Text" / "current_action.txt"
        channel.parent.mkdir(parents=True)
        channel.write_text("gotoURL https://stale.example")

        output = _run(["start", "--duration", "0.1", "--config", str(cfg)])

        assert "watching" in output
        assert channel.read_text() == ""

    def test_start_refreshes_counters(self, tmp_path):
        cfg = _write_config(tmp_path, counter_ids=["yume"], settle_delay=0.01)
        with patch("pollchannel.counters.CounterClient.fetch_count", return_value=9):
            _run(["start", "--duration", "0.05", "--refresh-counters", "--config", str(cfg)])

        counters = tmp_path / "vfs" / "easyrpg" / "Save" / "Text" / "players_counter.json"
        assert json.loads(counters.read_text()) == {"yume": 9}


class TestCountersCommand:
    def test_counters_prints_and_writes(self, tmp_path):
        cfg = _write_config(tmp_path, counter_ids=["yume", "2kki"])
        with patch("pollchannel.counters.CounterClient.fetch_count", return_value=5):
            output = _run(["counters", "--config", str(cfg)])

        assert "yume" in output and "2kki" in output
        counters = tmp_path / "vfs" / "easyrpg" / "Save" / "Text" / "players_counter.json"
        assert json.loads(counters.read_text()) == {"yume": 5, "2kki": 5}


class TestVersionCommand:
    def test_version(self):
        output = _run(["version"])
        assert "pollchannel" in output
        assert pollchannel.__version__ in output
