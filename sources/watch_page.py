"""Watch / embed page fetching and the structured values embedded in them."""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urljoin

from core import InfoOptions, PageBundle
from processing.structured_data import (
    Balanced,
    Between,
    extract,
    format_changed,
    parse_structured,
    try_extract,
)
from storage.cache import BaseCache
from storage.debug_store import Persist
from utils.retry import retry

from .transport import Transport


logger = logging.getLogger(__name__)

BASE_URL = "https://www.youtube.com/watch?v="
EMBED_URL = "https://www.youtube.com/embed/"

PLAYER_RESPONSE_STRATEGIES = (
    Between("var ytInitialPlayerResponse = ", "}};", append="}}"),
    Between("var ytInitialPlayerResponse = ", ";var"),
    Between("var ytInitialPlayerResponse = ", ";</script>"),
    Balanced(re.compile(r"\bytInitialPlayerResponse\s*=\s*\{", re.IGNORECASE), prepend="{"),
)

PLAYER_CONFIG_STRATEGIES = (
    Balanced(re.compile(r"\bytplayer\.config\s*=\s*\{"), prepend="{"),
)

INITIAL_DATA_STRATEGIES = (
    Between("var ytInitialData = ", "}};", append="}}"),
    Between("var ytInitialData = ", ";</script>"),
    Between('window["ytInitialData"] = ', "}};", append="}}"),
    Between('window["ytInitialData"] = ', ";</script>"),
    Balanced(re.compile(r"\bytInitialData(\"\])?\s*=\s*\{", re.IGNORECASE), prepend="{"),
)

_PLAYER_SCRIPT_RE = re.compile(
    r'<script\s+src="([^"]+)"(?:\s+type="text/javascript")?\s+name="player_ias/base"\s*>|"jsUrl":"([^"]+)"'
)


def watch_url(video_id: str, lang: str = "en") -> str:
    return f"{BASE_URL}{video_id}&hl={lang or 'en'}&bpctr={math.ceil(time.time())}&has_verified=1"


def embed_url(video_id: str, lang: str = "en") -> str:
    return f"{EMBED_URL}{video_id}?hl={lang or 'en'}"


def find_player_script(body: str) -> Optional[str]:
    """Absolute URL of the player script referenced by a page, if any."""
    match = _PLAYER_SCRIPT_RE.search(body or "")
    if match is None:
        return None
    ref = match.group(1) or match.group(2)
    return urljoin(BASE_URL, ref) if ref else None


def player_response_from_config(config: Any) -> Optional[Dict[str, Any]]:
    """The player response nested in a legacy ``ytplayer.config`` object."""
    if not isinstance(config, dict):
        return None
    args = config.get("args") or {}
    value = (
        args.get("player_response")
        or config.get("player_response")
        or config.get("playerResponse")
        or config.get("embedded_player_response")
    )
    if isinstance(value, str):
        try:
            value = parse_structured(value)
        except ValueError:
            return None
    return value if isinstance(value, dict) else None


def parse_watch_page(body: str, *, persist: Optional[Persist] = None) -> PageBundle:
    """
    Lift the player response, initial data and player script out of a
    watch page. Raises UpstreamFormatChanged when a value is missing.
    """
    player_response = try_extract(body, PLAYER_RESPONSE_STRATEGIES, name="player_response")
    if player_response is None:
        config = try_extract(body, PLAYER_CONFIG_STRATEGIES, name="ytplayer.config")
        player_response = player_response_from_config(config)
    if not isinstance(player_response, dict):
        raise format_changed(body, name="player_response", source="watch.html", persist=persist)

    initial_data = extract(
        body,
        INITIAL_DATA_STRATEGIES,
        name="response",
        source="watch.html",
        persist=persist,
    )
    return PageBundle(
        player_response=player_response,
        initial_data=initial_data if isinstance(initial_data, dict) else {},
        player_script_url=find_player_script(body),
    )


class WatchPageClient:
    """Fetches watch / embed pages; watch bodies are memoized per (id, lang)."""

    def __init__(
        self,
        transport: Transport,
        *,
        page_cache: Optional[BaseCache] = None,
        persist: Optional[Persist] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._page_cache = page_cache
        self._persist = persist
        self._sleep = sleep

    async def fetch_watch_body(self, video_id: str, options: InfoOptions) -> str:
        async def _load() -> str:
            return await self._transport.request(watch_url(video_id, options.lang))

        if self._page_cache is None:
            return await _load()
        key = self._page_cache.make_key("watch", video_id, options.lang)
        return await self._page_cache.get_or_set(key, _load)

    async def fetch_embed_body(self, video_id: str, options: InfoOptions) -> str:
        return await self._transport.request(embed_url(video_id, options.lang))

    async def _load_bundle(self, video_id: str, options: InfoOptions) -> PageBundle:
        body = await self.fetch_watch_body(video_id, options)
        return parse_watch_page(body, persist=self._persist)

    async def fetch_bundle(self, video_id: str, options: InfoOptions) -> PageBundle:
        return await retry(self._load_bundle, video_id, options, policy=options.retry_policy(), sleep=self._sleep)

    async def find_player_script(self, video_id: str, options: InfoOptions) -> Optional[str]:
        """Player script from the watch page, falling back to the embed page."""
        script = find_player_script(await self.fetch_watch_body(video_id, options))
        if script:
            return script
        logger.info(f"No player script on watch page of {video_id}, trying embed page")
        return find_player_script(await self.fetch_embed_body(video_id, options))
