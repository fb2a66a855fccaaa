"""Canonical data contracts for format resolution."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from utils.exceptions import ConfigurationError, UpstreamPlaybackError
from utils.retry import RetryPolicy


PERSONA_NAMES = ("WEB", "WEB_EMBEDDED", "TV", "IOS", "ANDROID")

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def lenient_int(value: Any) -> Optional[int]:
    """Integer prefix of ``value`` (``"30000/1001"`` -> 30000), else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else None


class VideoIdentifier(BaseModel):
    """Validated, immutable video key."""

    model_config = ConfigDict(frozen=True)

    value: str

    @field_validator("value", mode="before")
    @classmethod
    def _valid_id(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not _VIDEO_ID_RE.match(text):
            raise ValueError(f"Invalid video id: {text!r}")
        return text

    def __str__(self) -> str:
        return self.value


class ClientPersona(BaseModel):
    """Declared client identity used against the player API."""

    model_config = ConfigDict(frozen=True)

    name: str
    request_template: Dict[str, Any] = Field(default_factory=dict)
    version: str = ""
    user_agent: Optional[str] = None
    needs_playback_context: bool = False
    needs_visitor_id: bool = False
    sends_cpn: bool = False


class ManifestRef(BaseModel):
    """Auxiliary manifest referenced by a player response."""

    kind: Literal["dash", "hls"]
    url: str


class PlayerResponse(BaseModel):
    """The subset of a player API answer the resolver consumes."""

    persona: str
    status: Optional[str] = None
    reason: Optional[str] = None
    formats: List[Dict[str, Any]] = Field(default_factory=list)
    adaptive_formats: List[Dict[str, Any]] = Field(default_factory=list)
    manifest_refs: List[ManifestRef] = Field(default_factory=list)
    video_details_id: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], persona: str) -> "PlayerResponse":
        payload = payload if isinstance(payload, dict) else {}
        playability = payload.get("playabilityStatus") or {}
        streaming = payload.get("streamingData") or {}
        details = payload.get("videoDetails") or {}

        refs: List[ManifestRef] = []
        if streaming.get("dashManifestUrl"):
            refs.append(ManifestRef(kind="dash", url=str(streaming["dashManifestUrl"])))
        if streaming.get("hlsManifestUrl"):
            refs.append(ManifestRef(kind="hls", url=str(streaming["hlsManifestUrl"])))

        reason = playability.get("reason")
        if not reason:
            messages = playability.get("messages") or []
            reason = messages[0] if messages else None

        return cls(
            persona=persona,
            status=playability.get("status"),
            reason=reason,
            formats=[item for item in streaming.get("formats") or [] if isinstance(item, dict)],
            adaptive_formats=[item for item in streaming.get("adaptiveFormats") or [] if isinstance(item, dict)],
            manifest_refs=refs,
            video_details_id=details.get("videoId"),
            raw=payload,
        )

    @property
    def all_formats(self) -> List[Dict[str, Any]]:
        return list(self.formats) + list(self.adaptive_formats)

    def playability_error(self, video_id: Optional[str] = None) -> Optional[UpstreamPlaybackError]:
        """Error for statuses that mean the video cannot be played, else None."""
        status = str(self.status or "")
        if status in ("ERROR", "LOGIN_REQUIRED"):
            reason = self.reason or "This video is unavailable."
        elif status == "LIVE_STREAM_OFFLINE":
            reason = self.reason or "The live stream is offline."
        elif status == "UNPLAYABLE":
            reason = self.reason or "This video is unavailable."
        else:
            return None
        return UpstreamPlaybackError(str(reason), status=status, video_id=video_id, persona=self.persona)


class FormatRecord(BaseModel):
    """
    One playable (or soon playable) encoding.

    Accepts the upstream camelCase keys; fields the resolver does not
    consume are kept untouched in ``model_extra``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    itag: Optional[int] = None
    url: Optional[str] = None
    signature_cipher: Optional[str] = None
    cipher: Optional[str] = None
    scrambled_ref: Optional[str] = None
    mime_type: Optional[str] = None
    bitrate: Optional[int] = None
    average_bitrate: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[int] = None
    audio_sample_rate: Optional[int] = None
    audio_channels: Optional[int] = None
    content_length: Optional[int] = None
    approx_duration_ms: Optional[int] = None
    quality: Optional[str] = None
    quality_label: Optional[str] = None
    audio_quality: Optional[str] = None
    audio_bitrate: Optional[int] = None

    # filled in by enrichment
    container: Optional[str] = None
    codecs: Optional[str] = None
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    has_video: bool = False
    has_audio: bool = False
    is_live: bool = False
    is_hls: bool = False
    is_dash_mpd: bool = False

    @field_validator(
        "itag",
        "bitrate",
        "average_bitrate",
        "width",
        "height",
        "fps",
        "audio_sample_rate",
        "audio_channels",
        "content_length",
        "approx_duration_ms",
        "audio_bitrate",
        mode="before",
    )
    @classmethod
    def _numeric(cls, value: Any) -> Optional[int]:
        return lenient_int(value)

    @property
    def merge_key(self) -> Optional[Union[int, str]]:
        """itag when known, else the URL."""
        if self.itag is not None:
            return self.itag
        return self.url

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PageBundle(BaseModel):
    """Structured values lifted from the watch page."""

    player_response: Dict[str, Any] = Field(default_factory=dict)
    initial_data: Dict[str, Any] = Field(default_factory=dict)
    player_script_url: Optional[str] = None


class VideoInfo(BaseModel):
    """Result of get_basic_info / get_info."""

    video_id: str
    watch_url: str
    lang: str = "en"
    player_response: Dict[str, Any] = Field(default_factory=dict, repr=False)
    initial_data: Dict[str, Any] = Field(default_factory=dict, repr=False)
    player_script_url: Optional[str] = None
    formats: List[FormatRecord] = Field(default_factory=list)
    best_format: Optional[FormatRecord] = None
    selected_format: Optional[FormatRecord] = None
    video_url: Optional[str] = None
    full: bool = False


class InfoOptions(BaseModel):
    """Per-call configuration bag."""

    lang: str = "en"
    player_clients: List[str] = Field(default_factory=lambda: ["WEB_EMBEDDED", "IOS", "ANDROID", "TV"])
    max_retries: int = 3
    backoff_inc_ms: int = 500
    backoff_max_ms: int = 5000
    headers: Dict[str, str] = Field(default_factory=dict)
    ipv6_block: Optional[str] = None
    local_address: Optional[str] = None
    proxy: Optional[str] = None
    cookies: Optional[str] = None

    @field_validator("lang", mode="before")
    @classmethod
    def _lang(cls, value: Any) -> str:
        return str(value or "").strip() or "en"

    @field_validator("player_clients", mode="before")
    @classmethod
    def _known_personas(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = value.split(",")
        names: List[str] = []
        for item in list(value or []):
            name = str(item or "").strip().upper()
            if not name:
                continue
            if name not in PERSONA_NAMES:
                raise ConfigurationError(f"Unknown player client: {name}", {"known": sorted(PERSONA_NAMES)})
            if name not in names:
                names.append(name)
        return names

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> "InfoOptions":
        resolver = settings.resolver
        network = settings.network
        values: Dict[str, Any] = {
            "lang": resolver.lang,
            "player_clients": list(resolver.player_clients),
            "max_retries": resolver.max_retries,
            "backoff_inc_ms": resolver.backoff_inc_ms,
            "backoff_max_ms": resolver.backoff_max_ms,
            "ipv6_block": network.ipv6_block,
            "local_address": network.local_address,
            "proxy": network.proxy,
            "cookies": network.cookies,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            backoff_inc_ms=self.backoff_inc_ms,
            backoff_max_ms=self.backoff_max_ms,
        )
