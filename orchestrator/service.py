"""Video info service: basic info from the watch page, full info with resolved formats."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from aggregator.format_ranker import finalize_formats
from aggregator.format_reconciler import reconcile
from config.settings import Settings, get_settings
from core import InfoOptions, PlayerResponse, VideoIdentifier, VideoInfo
from processing.descrambler import Descrambler, PassthroughDescrambler
from processing.format_meta import Comparator, annotate, compare_formats, estimate_audio_bitrate
from sources.manifests import ManifestResolver
from sources.persona_gateway import GatewayContext, PersonaGateway
from sources.personas import PRIMARY_PERSONA
from sources.transport import HttpTransport, Transport
from sources.watch_page import BASE_URL, WatchPageClient
from storage.cache import BaseCache, MemoryCache
from storage.debug_store import DebugFileStore, Persist
from utils.exceptions import MissingPlayerScript, NoPlayableFormats


logger = logging.getLogger(__name__)

OptionsLike = Union[InfoOptions, Dict[str, Any], None]


class VideoInfoService:
    """
    Entry point for ``get_basic_info`` / ``get_info``.

    Both results are memoized per (video id, lang) and concurrent callers
    for the same key share one computation. Cached entities are never
    mutated; the full result is a copy of the basic one.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        transport: Optional[Transport] = None,
        cache: Optional[BaseCache] = None,
        page_cache: Optional[BaseCache] = None,
        descrambler: Optional[Descrambler] = None,
        persist: Optional[Persist] = None,
        annotator: Callable = annotate,
        audio_bitrate_estimator: Callable = estimate_audio_bitrate,
        compare: Comparator = compare_formats,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        storage = self._settings.storage
        self._transport = transport
        self._cache = cache or MemoryCache(ttl=storage.cache_ttl, max_size=storage.cache_max_size)
        self._page_cache = page_cache or MemoryCache(ttl=storage.page_cache_ttl, max_size=storage.cache_max_size)
        self._descrambler = descrambler or PassthroughDescrambler()
        self._persist = persist or DebugFileStore(storage.debug_dir).persist
        self._annotator = annotator
        self._audio_bitrate_estimator = audio_bitrate_estimator
        self._compare = compare
        self._sleep = sleep

    @property
    def cache(self) -> BaseCache:
        return self._cache

    def resolve_options(self, options: OptionsLike = None) -> InfoOptions:
        if isinstance(options, InfoOptions):
            return options
        return InfoOptions.from_settings(self._settings, **(options or {}))

    async def _with_transport(self, options: InfoOptions, func, *args):
        if self._transport is not None:
            return await func(self._transport, *args)
        async with HttpTransport.from_options(options, self._settings.network) as transport:
            return await func(transport, *args)

    def _pages(self, transport: Transport) -> WatchPageClient:
        return WatchPageClient(transport, page_cache=self._page_cache, persist=self._persist, sleep=self._sleep)

    async def get_basic_info(self, video_id: str, options: OptionsLike = None) -> VideoInfo:
        """Player response, initial data and player script from the watch page."""
        video_id = str(VideoIdentifier(value=video_id))
        options = self.resolve_options(options)
        key = self._cache.make_key("getBasicInfo", video_id, options.lang)
        return await self._cache.get_or_set(
            key, lambda: self._with_transport(options, self._basic_info, video_id, options)
        )

    async def get_info(self, video_id: str, options: OptionsLike = None) -> VideoInfo:
        """Basic info plus every playable format, ranked, with the best one picked."""
        video_id = str(VideoIdentifier(value=video_id))
        options = self.resolve_options(options)
        key = self._cache.make_key("getInfo", video_id, options.lang)
        return await self._cache.get_or_set(
            key, lambda: self._with_transport(options, self._full_info, video_id, options)
        )

    async def _basic_info(self, transport: Transport, video_id: str, options: InfoOptions) -> VideoInfo:
        bundle = await self._pages(transport).fetch_bundle(video_id, options)
        error = PlayerResponse.from_payload(bundle.player_response, PRIMARY_PERSONA).playability_error(video_id)
        if error is not None:
            raise error

        logger.info(f"Loaded basic info for {video_id}")
        return VideoInfo(
            video_id=video_id,
            watch_url=f"{BASE_URL}{video_id}",
            lang=options.lang,
            player_response=bundle.player_response,
            initial_data=bundle.initial_data,
            player_script_url=bundle.player_script_url,
        )

    async def _full_info(self, transport: Transport, video_id: str, options: InfoOptions) -> VideoInfo:
        basic_key = self._cache.make_key("getBasicInfo", video_id, options.lang)
        info: VideoInfo = await self._cache.get_or_set(
            basic_key, lambda: self._basic_info(transport, video_id, options)
        )

        player_script_url = info.player_script_url
        if not player_script_url:
            player_script_url = await self._pages(transport).find_player_script(video_id, options)
        if not player_script_url:
            raise MissingPlayerScript(video_id)

        gateway = PersonaGateway(transport, ManifestResolver(transport, sleep=self._sleep), sleep=self._sleep)
        collection = await gateway.collect_sources(
            video_id,
            GatewayContext(
                player_script_url=player_script_url,
                player_response=info.player_response,
                initial_data=info.initial_data,
                options=options,
            ),
        )
        if collection.degraded:
            logger.warning(f"Persona fan-out for {video_id} failed, formats come from the watch page only")

        candidates = reconcile(collection.sources)
        if not candidates:
            raise NoPlayableFormats("Failed to find any playable formats", video_id=video_id, excluded=collection.excluded)

        resolved = await self._descrambler.resolve(candidates, player_script_url, options)
        try:
            ranked = finalize_formats(
                resolved,
                annotator=self._annotator,
                audio_bitrate_estimator=self._audio_bitrate_estimator,
                compare=self._compare,
                video_id=video_id,
            )
        except NoPlayableFormats as exc:
            raise NoPlayableFormats(exc.message, video_id=video_id, excluded=collection.excluded) from exc

        logger.info(
            f"Resolved {len(ranked.formats)} formats for {video_id} "
            f"({len(collection.excluded)} sources excluded), best itag={ranked.best.itag}"
        )
        return info.model_copy(
            update={
                "player_script_url": player_script_url,
                "formats": ranked.formats,
                "best_format": ranked.best,
                "selected_format": ranked.best,
                "video_url": ranked.best.url,
                "full": True,
            }
        )


_DEFAULT_SERVICE: Optional[VideoInfoService] = None


def get_default_service() -> VideoInfoService:
    global _DEFAULT_SERVICE
    if _DEFAULT_SERVICE is None:
        _DEFAULT_SERVICE = VideoInfoService()
    return _DEFAULT_SERVICE


async def get_basic_info(video_id: str, options: OptionsLike = None) -> VideoInfo:
    return await get_default_service().get_basic_info(video_id, options)


async def get_info(video_id: str, options: OptionsLike = None) -> VideoInfo:
    return await get_default_service().get_info(video_id, options)
