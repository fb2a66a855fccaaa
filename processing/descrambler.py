"""Boundary to the URL descrambling step."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Union
from urllib.parse import parse_qs

from core import FormatRecord, InfoOptions


logger = logging.getLogger(__name__)

MergeKey = Union[int, str]


class Descrambler(Protocol):
    async def resolve(
        self,
        records: Dict[MergeKey, FormatRecord],
        player_script_url: str,
        options: InfoOptions,
    ) -> Dict[MergeKey, FormatRecord]:
        ...


def unpack_cipher(record: FormatRecord) -> Dict[str, Any]:
    """Split a ``signatureCipher`` / ``cipher`` query string into its parts."""
    raw = record.signature_cipher or record.cipher or ""
    parsed = parse_qs(raw)
    return {key: values[0] for key, values in parsed.items() if values}


class PassthroughDescrambler:
    """
    Keeps records that already carry a direct URL.

    Scrambled records get their reference recorded in ``scrambled_ref``
    and stay without a URL, so the finalizer drops them.
    """

    async def resolve(
        self,
        records: Dict[MergeKey, FormatRecord],
        player_script_url: str,
        options: Optional[InfoOptions] = None,
    ) -> Dict[MergeKey, FormatRecord]:
        resolved: Dict[MergeKey, FormatRecord] = {}
        for key, record in records.items():
            if not record.url and (record.signature_cipher or record.cipher):
                parts = unpack_cipher(record)
                record.scrambled_ref = parts.get("url")
                logger.debug(f"Format {key} needs descrambling with {player_script_url}")
            resolved[key] = record
        return resolved
