"""Tests for the player counter collaborator."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from pollchannel.counters import (
    DEFAULT_COUNTERS_PATH,
    DEFAULT_GAME_IDS,
    CounterClient,
    CounterError,
    initial_stats,
    write_counts,
)
from pollchannel.vfs import MemoryFilesystem, VirtualFilesystem


def _mock_response(body: dict | str, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status = status
    raw = body if isinstance(body, str) else json.dumps(body)
    resp.read.return_value = raw.encode("utf-8")
    resp.__enter__.return_value = resp
    resp.__exit__ = MagicMock(return_value=False)
    return resp


class TestBuildUrl:
    def test_target_is_url_encoded_behind_proxy(self):
        url = CounterClient().build_url("2kki")
        assert url == (
            "https://api.allorigins.win/get?url="
            "https%3A%2F%2Fconnect.ynoproject.net%2F2kki%2Fapi%2Fplayers"
        )


class TestFetchCount:
    def test_parses_contents(self):
        with patch("urllib.request.urlopen", return_value=_mock_response({"contents": "42"})):
            assert CounterClient().fetch_count("yume") == 42

    def test_non_numeric_contents(self):
        with patch("urllib.request.urlopen", return_value=_mock_response({"contents": "oops"})):
            with pytest.raises(CounterError, match="Invalid player count"):
                CounterClient().fetch_count("yume")

    def test_http_error_status(self):
        with patch("urllib.request.urlopen", return_value=_mock_response({}, status=503)):
            with pytest.raises(CounterError, match="503"):
                CounterClient().fetch_count("yume")

    def test_network_failure_wrapped(self):
        with patch("urllib.request.urlopen", side_effect=OSError("unreachable")):
            with pytest.raises(CounterError, match="unreachable"):
                CounterClient().fetch_count("yume")

    def test_timeout_passed_through(self):
        with patch("urllib.request.urlopen", return_value=_mock_response({"contents": "1"})) as mock_open:
            CounterClient(timeout=3).fetch_count("yume")
        assert mock_open.call_args.kwargs["timeout"] == 3


class TestUpdateAll:
    def test_failures_isolated_per_id(self):
        client = CounterClient()

        def fake_fetch(game_id):
            if game_id == "flow":
                raise CounterError("down")
            return len(game_id)

        client.fetch_count = fake_fetch
        stats = client.update_all({"yume": 0, "flow": 7, "2kki": 0})
        assert stats == {"yume": 4, "flow": 7, "2kki": 4}

    def test_initial_stats_defaults(self):
        stats = initial_stats()
        assert list(stats) == DEFAULT_GAME_IDS
        assert set(stats.values()) == {0}
        assert initial_stats(["a"]) == {"a": 0}


class TestWriteCounts:
    def test_writes_json_and_creates_directories(self):
        fs = VirtualFilesystem(MemoryFilesystem())
        write_counts(fs, {"yume": 3, "2kki": 12})

        data = json.loads(fs.read_file(DEFAULT_COUNTERS_PATH))
        assert data == {"yume": 3, "2kki": 12}
        assert fs.read_file(DEFAULT_COUNTERS_PATH).startswith("{\n  ")
