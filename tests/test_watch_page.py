from __future__ import annotations

import json

import pytest

from core import InfoOptions
from sources.watch_page import (
    WatchPageClient,
    embed_url,
    find_player_script,
    parse_watch_page,
    player_response_from_config,
    watch_url,
)
from storage.cache import MemoryCache
from utils.exceptions import TransientTransportError, UpstreamFormatChanged

from fakes import PLAYER_SCRIPT_URL, VIDEO_ID, FakeTransport, muxed, no_sleep, player_response, watch_page


def test_urls_carry_language() -> None:
    assert watch_url(VIDEO_ID, "de").startswith(f"https://www.youtube.com/watch?v={VIDEO_ID}&hl=de&bpctr=")
    assert watch_url(VIDEO_ID, "de").endswith("&has_verified=1")
    assert embed_url(VIDEO_ID, "") == f"https://www.youtube.com/embed/{VIDEO_ID}?hl=en"


def test_find_player_script_resolves_relative_refs() -> None:
    tag = '<script src="/s/player/abc123/player_ias.vflset/en_US/base.js" name="player_ias/base"></script>'
    assert find_player_script(tag) == PLAYER_SCRIPT_URL
    assert find_player_script('{"jsUrl":"/s/player/abc123/player_ias.vflset/en_US/base.js"}') == PLAYER_SCRIPT_URL
    assert find_player_script("<html></html>") is None


def test_parse_watch_page_extracts_bundle() -> None:
    response = player_response(formats=[muxed(18, "https://web/18")])
    bundle = parse_watch_page(watch_page(response, {"contents": {"x": [1, 2]}}))

    assert bundle.player_response == response
    assert bundle.initial_data == {"contents": {"x": [1, 2]}}
    assert bundle.player_script_url == PLAYER_SCRIPT_URL


def test_parse_watch_page_falls_back_to_player_config() -> None:
    response = player_response()
    config = {"args": {"player_response": json.dumps(response)}}
    body = (
        f"<script>var ytplayer = ytplayer || {{}};ytplayer.config = {json.dumps(config)};</script>"
        '<script>var ytInitialData = {"a": 1};</script>'
    )
    bundle = parse_watch_page(body)
    assert bundle.player_response == response
    assert player_response_from_config({"playerResponse": {"x": 1}}) == {"x": 1}
    assert player_response_from_config("nope") is None


def test_parse_watch_page_without_player_response_reports_format_change() -> None:
    saved = []

    def _persist(name, content):
        saved.append(name)
        return f"/debug/{name}"

    with pytest.raises(UpstreamFormatChanged) as excinfo:
        parse_watch_page("<html>consent wall</html>", persist=_persist)
    assert saved == ["watch.html"]
    assert excinfo.value.document == "<html>consent wall</html>"


@pytest.mark.asyncio
async def test_watch_body_is_cached_per_video_and_language() -> None:
    body = watch_page(player_response())
    transport = FakeTransport(routes={"https://www.youtube.com/watch?v=": body})
    client = WatchPageClient(transport, page_cache=MemoryCache(ttl=60), sleep=no_sleep)

    await client.fetch_bundle(VIDEO_ID, InfoOptions(lang="en"))
    await client.fetch_bundle(VIDEO_ID, InfoOptions(lang="en"))
    await client.fetch_bundle(VIDEO_ID, InfoOptions(lang="de"))

    assert transport.count("https://www.youtube.com/watch?v=") == 2


@pytest.mark.asyncio
async def test_watch_page_fetch_retries_server_errors() -> None:
    replies = [TransientTransportError("Status code: 500", status=500), watch_page(player_response())]

    transport = FakeTransport(routes={"https://www.youtube.com/watch?v=": lambda url: replies.pop(0)})
    client = WatchPageClient(transport, sleep=no_sleep)

    bundle = await client.fetch_bundle(VIDEO_ID, InfoOptions(max_retries=2))
    assert bundle.player_response["videoDetails"]["videoId"] == VIDEO_ID


@pytest.mark.asyncio
async def test_player_script_falls_back_to_embed_page() -> None:
    transport = FakeTransport(
        routes={
            "https://www.youtube.com/watch?v=": watch_page(player_response(), script_path=None),
            "https://www.youtube.com/embed/": '<script>{"jsUrl":"/s/player/abc123/player_ias.vflset/en_US/base.js"}</script>',
        }
    )
    client = WatchPageClient(transport, sleep=no_sleep)

    assert await client.find_player_script(VIDEO_ID, InfoOptions()) == PLAYER_SCRIPT_URL
    assert transport.count("https://www.youtube.com/embed/") == 1
