"""Enrich, filter, order and pick the best of the resolved formats."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from core import FormatRecord
from processing.format_meta import (
    Comparator,
    annotate,
    compare_formats,
    estimate_audio_bitrate,
    is_hls_mime,
)
from utils.exceptions import NoPlayableFormats


logger = logging.getLogger(__name__)


@dataclass
class RankedFormats:
    formats: List[FormatRecord]
    best: FormatRecord


def select_best(formats: List[FormatRecord]) -> Optional[FormatRecord]:
    """Audio+video, then video only, then audio only, then the first one."""
    for wanted in (
        lambda f: f.has_video and f.has_audio,
        lambda f: f.has_video,
        lambda f: f.has_audio,
    ):
        for record in formats:
            if wanted(record):
                return record
    return formats[0] if formats else None


def finalize_formats(
    records: Union[Dict, Iterable[FormatRecord]],
    *,
    annotator: Callable[[FormatRecord], FormatRecord] = annotate,
    audio_bitrate_estimator: Callable[[FormatRecord], int] = estimate_audio_bitrate,
    compare: Comparator = compare_formats,
    video_id: Optional[str] = None,
) -> RankedFormats:
    """
    Keep records with a URL and MIME type, enrich them, sort them with
    ``compare`` and pick the best one. Raises NoPlayableFormats when
    nothing is left.
    """
    values = records.values() if isinstance(records, dict) else records
    playable = [record for record in values if record is not None and record.url and record.mime_type]
    if not playable:
        raise NoPlayableFormats("No playable formats found", video_id=video_id)

    enriched: List[FormatRecord] = []
    for record in playable:
        record = annotator(record)
        if not record.audio_bitrate and record.has_audio:
            record.audio_bitrate = audio_bitrate_estimator(record)
        if not record.is_hls and is_hls_mime(record.mime_type):
            record.is_hls = True
        enriched.append(record)

    enriched.sort(key=cmp_to_key(compare))
    best = select_best(enriched)
    logger.debug(f"Ranked {len(enriched)} formats, best itag={best.itag}")
    return RankedFormats(formats=enriched, best=best)
