"""
Manifest Resolvers
Turn DASH manifests and HLS playlists into format records.

DASH records are keyed by representation id (itag); HLS records are keyed
by their URL because one playlist may list the same itag several times.
"""
from __future__ import annotations

import asyncio
import logging
import re
import xml.etree.ElementTree as ET
from typing import Awaitable, Callable, Dict, Iterator, Optional, Tuple
from urllib.parse import urljoin

from core import FormatRecord, InfoOptions, ManifestRef
from core.contracts import lenient_int
from utils.retry import retry

from .transport import Transport
from .watch_page import BASE_URL


logger = logging.getLogger(__name__)

_ABSOLUTE_URL_RE = re.compile(r"^https?://")
_ITAG_SEGMENT_RE = re.compile(r"/itag/(\d+)/")

# bytes of manifest text handed to the pull parser per step
FEED_CHUNK_SIZE = 64 * 1024


def _local_name(name: str) -> str:
    return name.rsplit("}", 1)[-1].lower()


def _attributes(element: ET.Element) -> Dict[str, str]:
    return {_local_name(key): value for key, value in element.attrib.items()}


def _iter_start_tags(document: str) -> Iterator[Tuple[str, Dict[str, str]]]:
    parser = ET.XMLPullParser(events=("start",))
    for offset in range(0, len(document), FEED_CHUNK_SIZE):
        parser.feed(document[offset:offset + FEED_CHUNK_SIZE])
        for _event, element in parser.read_events():
            yield _local_name(element.tag), _attributes(element)
    parser.close()
    for _event, element in parser.read_events():
        yield _local_name(element.tag), _attributes(element)


def parse_dash_manifest(document: str, manifest_url: str = "") -> Dict[int, FormatRecord]:
    """
    Records for every representation with a numeric id.

    The MIME type comes from the enclosing adaptation set; video
    representations (those with a height) carry width/height/fps, the
    others an audio sample rate. Parse errors propagate and nothing is
    returned for a partially read document.
    """
    formats: Dict[int, FormatRecord] = {}
    adaptation_set: Dict[str, str] = {}

    for tag, attrs in _iter_start_tags(document):
        if tag == "adaptationset":
            adaptation_set = attrs
            continue
        if tag != "representation":
            continue

        itag = lenient_int(attrs.get("id"))
        if itag is None:
            continue

        mime = adaptation_set.get("mimetype") or attrs.get("mimetype") or ""
        values = {
            "itag": itag,
            "url": manifest_url or None,
            "bitrate": attrs.get("bandwidth"),
            "mime_type": f'{mime}; codecs="{attrs.get("codecs", "")}"',
        }
        if attrs.get("height"):
            values.update(
                width=attrs.get("width"),
                height=attrs.get("height"),
                fps=attrs.get("framerate"),
            )
        else:
            values["audio_sample_rate"] = attrs.get("audiosamplingrate")
        formats[itag] = FormatRecord(**values)

    return formats


def parse_hls_playlist(document: str) -> Dict[str, FormatRecord]:
    """One record per absolute URL line, keyed by that URL."""
    formats: Dict[str, FormatRecord] = {}
    for raw_line in str(document or "").split("\n"):
        line = raw_line.strip()
        if not _ABSOLUTE_URL_RE.match(line):
            continue
        match = _ITAG_SEGMENT_RE.search(line)
        formats[line] = FormatRecord(itag=int(match.group(1)) if match else None, url=line)
    return formats


class ManifestResolver:
    """Fetches a referenced manifest and parses it by kind."""

    def __init__(
        self,
        transport: Transport,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._sleep = sleep

    async def _fetch(self, url: str, options: Optional[InfoOptions]) -> str:
        if options is None:
            return await self._transport.request(url)
        return await retry(self._transport.request, url, policy=options.retry_policy(), sleep=self._sleep)

    async def resolve(self, ref: ManifestRef, options: Optional[InfoOptions] = None) -> Dict:
        url = urljoin(BASE_URL, ref.url)
        body = await self._fetch(url, options)
        if ref.kind == "dash":
            formats = parse_dash_manifest(body, url)
        else:
            formats = parse_hls_playlist(body)
        logger.debug(f"{ref.kind} manifest yielded {len(formats)} formats")
        return formats
