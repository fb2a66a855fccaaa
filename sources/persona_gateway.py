"""
Persona Gateway
Concurrent player API calls across client personas.

Every branch settles on its own: a failing persona or manifest is left out
of the result and never cancels its siblings. Results are collected first
and merged afterwards in enable order, so completion order has no effect.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional

from aggregator.format_reconciler import FormatSource, response_records
from core import ClientPersona, InfoOptions, PlayerResponse
from utils.exceptions import MalformedUpstreamResponse
from utils.retry import retry

from .manifests import ManifestResolver
from .personas import (
    PLAYER_API_URL,
    PRIMARY_PERSONA,
    alternate_personas,
    build_headers,
    build_payload,
    build_query,
)
from .transport import Transport


logger = logging.getLogger(__name__)

_SIGNATURE_TIMESTAMP_RE = re.compile(r"(signatureTimestamp|sts):(\d+)")


@dataclass
class GatewayContext:
    """What the basic-info path already knows about the video."""

    player_script_url: str
    player_response: Dict[str, Any] = field(default_factory=dict)
    initial_data: Dict[str, Any] = field(default_factory=dict)
    options: InfoOptions = field(default_factory=InfoOptions)


@dataclass
class PersonaOutcome:
    """Settled result of one persona branch."""

    persona: str
    response: Optional[PlayerResponse] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.response is not None and self.error is None


@dataclass
class SourceCollection:
    sources: List[FormatSource] = field(default_factory=list)
    excluded: Dict[str, str] = field(default_factory=dict)
    degraded: bool = False


def find_visitor_id(*containers: Any) -> Optional[str]:
    """``visitor_data`` tracking param of the first container that has one."""
    for container in containers:
        if not isinstance(container, dict):
            continue
        tracking = (container.get("responseContext") or {}).get("serviceTrackingParams") or []
        for service in tracking:
            if not isinstance(service, dict) or service.get("service") != "GFEEDBACK":
                continue
            for param in service.get("params") or []:
                if isinstance(param, dict) and param.get("key") == "visitor_data" and param.get("value"):
                    return str(param["value"])
    return None


def validate_response(response: PlayerResponse, video_id: str) -> PlayerResponse:
    """Reject unplayable answers and answers about another video."""
    error = response.playability_error(video_id)
    if error is not None:
        raise error
    if response.video_details_id != video_id:
        raise MalformedUpstreamResponse(
            video_id, response.persona, response.video_details_id, response=response.raw
        )
    return response


class PersonaGateway:
    """Issues player API calls for every enabled persona."""

    def __init__(
        self,
        transport: Transport,
        manifests: Optional[ManifestResolver] = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._manifests = manifests or ManifestResolver(transport, sleep=sleep)
        self._sleep = sleep

    async def fetch_playback_context(self, player_script_url: str, options: InfoOptions) -> Dict[str, Any]:
        body = await retry(
            self._transport.request,
            player_script_url,
            policy=options.retry_policy(),
            sleep=self._sleep,
        )
        match = _SIGNATURE_TIMESTAMP_RE.search(body or "")
        return {
            "contentPlaybackContext": {
                "html5Preference": "HTML5_PREF_WANTS",
                "signatureTimestamp": match.group(2) if match else None,
            }
        }

    async def _call_persona(
        self,
        persona: ClientPersona,
        video_id: str,
        context: GatewayContext,
        playback_context: Callable[[], Awaitable[Dict[str, Any]]],
        visitor_id: Optional[str],
    ) -> PlayerResponse:
        shared = await playback_context() if persona.needs_playback_context else None
        payload = build_payload(persona, video_id, playback_context=shared)
        headers = build_headers(persona, visitor_id=visitor_id if persona.needs_visitor_id else None)
        raw = await retry(
            self._transport.request_json,
            PLAYER_API_URL,
            method="POST",
            params=build_query(video_id),
            headers=headers,
            json_body=payload,
            policy=context.options.retry_policy(),
            sleep=self._sleep,
        )
        return validate_response(PlayerResponse.from_payload(raw, persona.name), video_id)

    async def fetch_outcomes(
        self,
        video_id: str,
        context: GatewayContext,
        enabled: Optional[List[str]] = None,
    ) -> List[PersonaOutcome]:
        """Settled outcome of every enabled non-primary persona, in enable order."""
        enabled = context.options.player_clients if enabled is None else enabled
        personas = alternate_personas(enabled)
        if not personas:
            return []

        shared: Dict[str, asyncio.Future] = {}

        def playback_context() -> Awaitable[Dict[str, Any]]:
            # one script probe per call, shared by every persona that needs it
            if "future" not in shared:
                shared["future"] = asyncio.ensure_future(
                    self.fetch_playback_context(context.player_script_url, context.options)
                )
            return shared["future"]

        visitor_id = None
        if any(persona.needs_visitor_id for persona in personas):
            visitor_id = find_visitor_id(context.player_response, context.initial_data)

        results = await asyncio.gather(
            *[
                self._call_persona(persona, video_id, context, playback_context, visitor_id)
                for persona in personas
            ],
            return_exceptions=True,
        )

        outcomes: List[PersonaOutcome] = []
        for persona, result in zip(personas, results):
            if isinstance(result, Exception):
                logger.warning(f"[{persona.name}] Player request for {video_id} failed: {result}")
                outcomes.append(PersonaOutcome(persona=persona.name, error=result))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(PersonaOutcome(persona=persona.name, response=result))
        return outcomes

    async def fetch_formats(
        self,
        video_id: str,
        context: GatewayContext,
        enabled: Optional[List[str]] = None,
    ) -> List[PlayerResponse]:
        """Accepted responses of the enabled alternate personas."""
        outcomes = await self.fetch_outcomes(video_id, context, enabled)
        return [outcome.response for outcome in outcomes if outcome.ok]

    async def _responses(
        self,
        video_id: str,
        context: GatewayContext,
        primary: PlayerResponse,
        excluded: Dict[str, str],
    ) -> List[PlayerResponse]:
        responses: List[PlayerResponse] = []
        if PRIMARY_PERSONA in context.options.player_clients:
            responses.append(primary)
        for outcome in await self.fetch_outcomes(video_id, context):
            if outcome.ok:
                responses.append(outcome.response)
            else:
                excluded[outcome.persona] = str(outcome.error)
        return responses

    async def collect_sources(self, video_id: str, context: GatewayContext) -> SourceCollection:
        """
        Format sources from the personas and the manifests they reference.

        Order is primary persona, alternates in enable order, then the
        manifests of each of those. If the fan-out itself breaks, only the
        primary persona's response is used.
        """
        primary = PlayerResponse.from_payload(context.player_response, PRIMARY_PERSONA)
        collection = SourceCollection()
        try:
            responses = await self._responses(video_id, context, primary, collection.excluded)
        except Exception as exc:
            logger.error(f"Error fetching formats for {video_id}, using primary response only: {exc}")
            responses = [primary]
            collection.degraded = True
            collection.excluded["fan-out"] = str(exc)

        collection.sources = [
            FormatSource(name=response.persona, records=response_records(response))
            for response in responses
        ]
        collection.sources.extend(await self._manifest_sources(responses, context.options, collection.excluded))
        return collection

    async def _manifest_sources(
        self,
        responses: List[PlayerResponse],
        options: InfoOptions,
        excluded: Dict[str, str],
    ) -> List[FormatSource]:
        jobs = [(response.persona, ref) for response in responses for ref in response.manifest_refs]
        if not jobs:
            return []

        results = await asyncio.gather(
            *[self._manifests.resolve(ref, options) for _, ref in jobs],
            return_exceptions=True,
        )

        sources: List[FormatSource] = []
        for (persona, ref), result in zip(jobs, results):
            name = f"{persona}:{ref.kind}"
            if isinstance(result, Exception):
                logger.warning(f"[{persona}] {ref.kind} manifest failed: {result}")
                excluded[name] = str(result)
                continue
            if isinstance(result, BaseException):
                raise result
            sources.append(FormatSource(name=name, records=result, kind=ref.kind))
        return sources
