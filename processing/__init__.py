"""
Processing Module
Embedded-data extraction, format enrichment and descrambling boundary
"""
from .structured_data import (
    Between,
    Balanced,
    cut_after_balanced,
    extract,
    find_between,
    parse_structured,
    try_extract,
)
from .format_meta import (
    HLS_MIME_MARKERS,
    annotate,
    compare_formats,
    estimate_audio_bitrate,
    is_hls_mime,
)
from .descrambler import Descrambler, PassthroughDescrambler, unpack_cipher

__all__ = [
    # Structured data
    "Between",
    "Balanced",
    "cut_after_balanced",
    "extract",
    "find_between",
    "parse_structured",
    "try_extract",
    # Format meta
    "HLS_MIME_MARKERS",
    "annotate",
    "compare_formats",
    "estimate_audio_bitrate",
    "is_hls_mime",
    # Descrambling
    "Descrambler",
    "PassthroughDescrambler",
    "unpack_cipher",
]
