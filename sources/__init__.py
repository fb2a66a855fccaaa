"""Upstream sources: transport, watch page, personas and manifests."""

from .transport import HttpTransport, Transport, random_ipv6
from .watch_page import (
    BASE_URL,
    WatchPageClient,
    embed_url,
    find_player_script,
    parse_watch_page,
    watch_url,
)
from .personas import PERSONAS, PRIMARY_PERSONA, build_payload, generate_nonce
from .manifests import ManifestResolver, parse_dash_manifest, parse_hls_playlist
from .persona_gateway import (
    GatewayContext,
    PersonaGateway,
    PersonaOutcome,
    SourceCollection,
    find_visitor_id,
    validate_response,
)

__all__ = [
    "HttpTransport",
    "Transport",
    "random_ipv6",
    "BASE_URL",
    "WatchPageClient",
    "embed_url",
    "find_player_script",
    "parse_watch_page",
    "watch_url",
    "PERSONAS",
    "PRIMARY_PERSONA",
    "build_payload",
    "generate_nonce",
    "ManifestResolver",
    "parse_dash_manifest",
    "parse_hls_playlist",
    "GatewayContext",
    "PersonaGateway",
    "PersonaOutcome",
    "SourceCollection",
    "find_visitor_id",
    "validate_response",
]
