"""Merge format records from every source into one candidate set."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, Union

from pydantic import ValidationError

from core import FormatRecord, PlayerResponse


logger = logging.getLogger(__name__)

MergeKey = Union[int, str]


@dataclass
class FormatSource:
    """Records produced by one persona response or one manifest."""

    name: str
    records: Dict[MergeKey, FormatRecord] = field(default_factory=dict)
    kind: str = "persona"


def response_records(response: PlayerResponse) -> Dict[MergeKey, FormatRecord]:
    """Muxed and adaptive formats of a response, keyed by itag (or URL)."""
    records: Dict[MergeKey, FormatRecord] = {}
    for raw in response.all_formats:
        try:
            record = FormatRecord.model_validate(raw)
        except ValidationError as exc:
            logger.debug(f"[{response.persona}] Skipping unreadable format: {exc}")
            continue
        key = record.merge_key
        if key is None:
            continue
        records[key] = record
    return records


def is_resolvable(record: FormatRecord) -> bool:
    """Has a MIME type and either a URL or a scrambled reference to one."""
    has_location = bool(record.url or record.signature_cipher or record.cipher)
    return bool(record.mime_type) and has_location


def drop_unresolvable(records: Dict[MergeKey, FormatRecord]) -> Dict[MergeKey, FormatRecord]:
    return {key: record for key, record in records.items() if is_resolvable(record)}


def reconcile(sources: Iterable[FormatSource]) -> Dict[MergeKey, FormatRecord]:
    """
    Flatten ``sources`` in order into one mapping.

    A key seen again replaces the earlier record as a whole. Records that
    can never become playable are dropped afterwards.
    """
    merged: Dict[MergeKey, FormatRecord] = {}
    for source in sources:
        merged.update(source.records)
    candidates = drop_unresolvable(merged)
    logger.debug(f"Reconciled {len(merged)} records into {len(candidates)} candidates")
    return candidates
