"""Player counters written next to the channel for the sandboxed app to read."""

from __future__ import annotations

import json
import logging
import urllib.parse
import urllib.request
from typing import Any

from pollchannel.errors import ChannelError
from pollchannel.vfs import VirtualFilesystem

logger = logging.getLogger(__name__)

DEFAULT_PROXY_URL = "https://api.allorigins.win/get?url="
DEFAULT_API_URL = "https://connect.ynoproject.net/{game_id}/api/players"
DEFAULT_COUNTERS_PATH = "/easyrpg/Save/Text/players_counter.json"

DEFAULT_GAME_IDS = [
    "yume", "2kki", "flow", "unevendream", "deepdreams", "prayers", "someday",
    "amillusion", "braingirl", "muma", "genie", "mikan", "ultraviolet",
    "sheawaits", "oversomnia", "tsushin", "nostalgic", "oneshot", "if",
    "unaccomplished",
]


class CounterError(ChannelError):
    """A counter could not be fetched or parsed."""


class CounterClient:
    """Fetches per-game player counts through a JSON-wrapping proxy."""

    def __init__(
        self,
        proxy_url: str = DEFAULT_PROXY_URL,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
    ) -> None:
        self.proxy_url = proxy_url
        self.api_url = api_url
        self.timeout = timeout

    def build_url(self, game_id: str) -> str:
        target = self.api_url.format(game_id=game_id)
        return f"{self.proxy_url}{urllib.parse.quote(target, safe='')}"

    def fetch_count(self, game_id: str) -> int:
        url = self.build_url(game_id)
        try:
            req = urllib.request.Request(url, headers={"Accept": "application/json"})
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                if resp.status != 200:
                    raise CounterError(f"HTTP error! Status: {resp.status}")
                data = json.loads(resp.read().decode("utf-8"))
        except CounterError:
            raise
        except Exception as exc:
            raise CounterError(f"Request for {game_id} failed: {exc}") from exc

        return _parse_count(data)

    def update_all(self, stats: dict[str, int]) -> dict[str, int]:
        """Refresh every id in ``stats`` in place. Failed ids keep their old value."""
        for game_id in list(stats):
            try:
                stats[game_id] = self.fetch_count(game_id)
                logger.info("Updated %s: %d", game_id, stats[game_id])
            except CounterError as exc:
                logger.error("Error updating %s: %s", game_id, exc)
        logger.debug("Final counters: %s", stats)
        return stats


def _parse_count(data: Any) -> int:
    contents = data.get("contents") if isinstance(data, dict) else None
    try:
        return int(str(contents).strip())
    except (TypeError, ValueError):
        raise CounterError(f"Invalid player count received: {contents!r}") from None


def initial_stats(game_ids: list[str] | None = None) -> dict[str, int]:
    return {game_id: 0 for game_id in (game_ids or DEFAULT_GAME_IDS)}


def write_counts(fs: VirtualFilesystem, stats: dict[str, int], path: str = DEFAULT_COUNTERS_PATH) -> None:
    fs.write_file(path, json.dumps(stats, indent=2))
    logger.info("Wrote %d counters to %s", len(stats), path)
