"""
Format enrichment and default ordering.

``annotate`` classifies a record (container, codecs, audio/video flags),
``estimate_audio_bitrate`` guesses a missing audio bitrate and
``compare_formats`` is the default best-first sort policy.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional

from core import FormatRecord


Comparator = Callable[[FormatRecord, FormatRecord], int]

HLS_MIME_MARKERS = ("hls", "x-mpegURL", "application/vnd.apple.mpegurl")

# itag -> (mime type, quality label, video bitrate, audio bitrate)
KNOWN_ITAGS: Dict[int, tuple] = {
    5: ("video/flv", "240p", 250000, 64),
    17: ("video/3gp", "144p", 50000, 24),
    18: ("video/mp4", "360p", 500000, 96),
    22: ("video/mp4", "720p", 2000000, 192),
    36: ("video/3gp", "240p", 175000, 32),
    37: ("video/mp4", "1080p", 3000000, 192),
    43: ("video/webm", "360p", 500000, 128),
    91: ("video/ts", "144p", 100000, 48),
    92: ("video/ts", "240p", 150000, 48),
    93: ("video/ts", "360p", 500000, 128),
    94: ("video/ts", "480p", 800000, 128),
    95: ("video/ts", "720p", 1500000, 256),
    96: ("video/ts", "1080p", 2500000, 256),
    133: ("video/mp4", "240p", 200000, None),
    134: ("video/mp4", "360p", 300000, None),
    135: ("video/mp4", "480p", 500000, None),
    136: ("video/mp4", "720p", 1000000, None),
    137: ("video/mp4", "1080p", 2500000, None),
    138: ("video/mp4", "4320p", 13500000, None),
    139: ("audio/mp4", None, None, 48),
    140: ("audio/mp4", None, None, 128),
    141: ("audio/mp4", None, None, 256),
    160: ("video/mp4", "144p", 100000, None),
    171: ("audio/webm", None, None, 128),
    242: ("video/webm", "240p", 100000, None),
    243: ("video/webm", "360p", 250000, None),
    244: ("video/webm", "480p", 500000, None),
    247: ("video/webm", "720p", 700000, None),
    248: ("video/webm", "1080p", 1500000, None),
    249: ("audio/webm", None, None, 48),
    250: ("audio/webm", None, None, 64),
    251: ("audio/webm", None, None, 160),
    264: ("video/mp4", "1440p", 4000000, None),
    266: ("video/mp4", "2160p", 12500000, None),
    271: ("video/webm", "1440p", 9000000, None),
    278: ("video/webm", "144p", 80000, None),
    298: ("video/mp4", "720p60", 3000000, None),
    299: ("video/mp4", "1080p60", 5500000, None),
    302: ("video/webm", "720p60", 2500000, None),
    303: ("video/webm", "1080p60", 5000000, None),
    313: ("video/webm", "2160p", 13000000, None),
    394: ("video/mp4", "144p", 80000, None),
    395: ("video/mp4", "240p", 180000, None),
    396: ("video/mp4", "360p", 350000, None),
    397: ("video/mp4", "480p", 700000, None),
    398: ("video/mp4", "720p", 1300000, None),
    399: ("video/mp4", "1080p", 2500000, None),
}

_VIDEO_CODEC_PREFIXES = ("avc1", "avc3", "av01", "vp8", "vp9", "vp09", "hev1", "hvc1", "mp4v", "h264")
_AUDIO_CODEC_PREFIXES = ("mp4a", "opus", "vorbis", "ac-3", "ec-3", "flac")

# higher is better
VIDEO_ENCODING_RANK = ["mp4v", "avc1", "vp8", "vp9", "vp09", "hev1", "av01"]
AUDIO_ENCODING_RANK = ["mp4a", "mp3", "vorbis", "aac", "opus", "flac"]

_MIME_RE = re.compile(r'^\s*(\w+)/([\w.+-]+)(?:;\s*codecs="([^"]*)")?', re.IGNORECASE)


def _split_codecs(codecs: str) -> List[str]:
    return [item.strip() for item in str(codecs or "").split(",") if item.strip()]


def _is_video_codec(codec: str) -> bool:
    return codec.lower().startswith(_VIDEO_CODEC_PREFIXES)


def _is_audio_codec(codec: str) -> bool:
    return codec.lower().startswith(_AUDIO_CODEC_PREFIXES)


def is_hls_mime(mime_type: Optional[str]) -> bool:
    text = str(mime_type or "")
    return any(marker in text for marker in HLS_MIME_MARKERS)


def annotate(record: FormatRecord) -> FormatRecord:
    """Classify ``record`` in place and return it."""
    known = KNOWN_ITAGS.get(record.itag) if record.itag is not None else None
    if known:
        known_mime, known_label, known_bitrate, known_audio = known
        if not record.mime_type:
            record.mime_type = known_mime
        if not record.quality_label and known_label:
            record.quality_label = known_label
        if not record.bitrate and known_bitrate:
            record.bitrate = known_bitrate
        if not record.audio_bitrate and known_audio:
            record.audio_bitrate = known_audio

    match = _MIME_RE.match(record.mime_type or "")
    kind = ""
    if match:
        kind = match.group(1).lower()
        record.container = match.group(2).lower()
        record.codecs = match.group(3) or None

    codecs = _split_codecs(record.codecs or "")
    video_codecs = [codec for codec in codecs if _is_video_codec(codec)]
    audio_codecs = [codec for codec in codecs if _is_audio_codec(codec)]
    if kind == "audio" and codecs and not audio_codecs:
        audio_codecs = codecs[:1]
    if kind == "video" and codecs and not video_codecs and not audio_codecs:
        video_codecs = codecs[:1]

    record.video_codec = video_codecs[0] if video_codecs else None
    record.audio_codec = audio_codecs[0] if audio_codecs else None

    record.has_video = bool(record.quality_label or record.height or record.video_codec)
    if kind == "audio":
        record.has_video = False
    record.has_audio = bool(
        record.audio_bitrate
        or record.audio_quality
        or record.audio_sample_rate
        or record.audio_codec
        or kind == "audio"
    )

    url = record.url or ""
    record.is_live = "/source/yt_live_broadcast/" in url
    record.is_hls = record.is_hls or "/manifest/hls_" in url
    record.is_dash_mpd = "/manifest/dash/" in url
    return record


def estimate_audio_bitrate(record: FormatRecord) -> int:
    """Best guess at kbps for an audio-carrying record without one."""
    quality = str(record.audio_quality or "").upper()
    if quality.endswith("_LOW"):
        return 48
    if quality.endswith("_MEDIUM"):
        return 128
    if quality.endswith("_HIGH"):
        return 256

    codec = str(record.audio_codec or "").lower()
    if codec.startswith("opus"):
        return 160
    if codec.startswith("mp4a"):
        return 128

    rate = record.audio_sample_rate or 0
    if rate >= 48000:
        return 160
    if rate >= 44100:
        return 128
    return 64


def _quality_number(record: FormatRecord) -> int:
    match = re.match(r"(\d+)", str(record.quality_label or ""))
    return int(match.group(1)) if match else 0


def _encoding_rank(ranking: List[str], codec: Optional[str]) -> int:
    if not codec:
        return -1
    lowered = codec.lower()
    for index, name in enumerate(ranking):
        if lowered.startswith(name.lower()):
            return index
    return -1


_SORT_KEYS: List[Callable[[FormatRecord], Any]] = [
    lambda f: int(bool(f.is_hls)),
    lambda f: int(bool(f.is_dash_mpd)),
    lambda f: int((f.content_length or 0) > 0),
    lambda f: int(f.has_video and f.has_audio),
    lambda f: int(f.has_video),
    _quality_number,
    lambda f: (f.bitrate or 0) if f.has_video else 0,
    lambda f: f.audio_bitrate or 0,
    lambda f: _encoding_rank(VIDEO_ENCODING_RANK, f.video_codec),
    lambda f: _encoding_rank(AUDIO_ENCODING_RANK, f.audio_codec),
]


def compare_formats(a: FormatRecord, b: FormatRecord) -> int:
    """Negative when ``a`` should come first."""
    for key in _SORT_KEYS:
        left, right = key(a), key(b)
        if left != right:
            return -1 if left > right else 1
    return 0
