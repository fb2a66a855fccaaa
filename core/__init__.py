"""Core contracts and shared types."""

from .contracts import (
    PERSONA_NAMES,
    ClientPersona,
    FormatRecord,
    InfoOptions,
    ManifestRef,
    PageBundle,
    PlayerResponse,
    VideoIdentifier,
    VideoInfo,
)

__all__ = [
    "PERSONA_NAMES",
    "ClientPersona",
    "FormatRecord",
    "InfoOptions",
    "ManifestRef",
    "PageBundle",
    "PlayerResponse",
    "VideoIdentifier",
    "VideoInfo",
]
