from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

from utils.exceptions import PermanentTransportError


VIDEO_ID = "dQw4w9WgXcQ"
PLAYER_SCRIPT_PATH = "/s/player/abc123/player_ias.vflset/en_US/base.js"
PLAYER_SCRIPT_URL = f"https://www.youtube.com{PLAYER_SCRIPT_PATH}"
VISITOR_ID = "CgtWaXNpdG9yMTIz"


class FakeTransport:
    """In-memory stand-in for HttpTransport."""

    def __init__(
        self,
        routes: Optional[Dict[str, Any]] = None,
        player_api: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.routes = dict(routes or {})
        self.player_api = player_api
        self.calls: List[Dict[str, Any]] = []

    def count(self, prefix: str) -> int:
        return sum(1 for call in self.calls if call["url"].startswith(prefix))

    async def request(self, url, *, method="GET", params=None, headers=None, json_body=None) -> str:
        self.calls.append({"url": url, "method": method, "params": params, "headers": headers, "json": json_body})
        for prefix, value in self.routes.items():
            if not url.startswith(prefix):
                continue
            if callable(value):
                value = value(url)
            if isinstance(value, BaseException):
                raise value
            return value
        raise PermanentTransportError("no route", status=404, url=url)

    async def request_json(self, url, *, method="GET", params=None, headers=None, json_body=None) -> Any:
        self.calls.append({"url": url, "method": method, "params": params, "headers": headers, "json": json_body})
        if self.player_api is None:
            raise PermanentTransportError("no player api", status=404, url=url)
        result = self.player_api(url=url, params=params, headers=headers, json_body=json_body)
        if isinstance(result, BaseException):
            raise result
        return result


async def no_sleep(_seconds: float) -> None:
    return None


def player_response(
    video_id: str = VIDEO_ID,
    *,
    status: str = "OK",
    formats: Optional[List[Dict[str, Any]]] = None,
    adaptive_formats: Optional[List[Dict[str, Any]]] = None,
    dash_url: Optional[str] = None,
    hls_url: Optional[str] = None,
    visitor_id: Optional[str] = None,
    **playability: Any,
) -> Dict[str, Any]:
    streaming: Dict[str, Any] = {}
    if formats is not None:
        streaming["formats"] = formats
    if adaptive_formats is not None:
        streaming["adaptiveFormats"] = adaptive_formats
    if dash_url:
        streaming["dashManifestUrl"] = dash_url
    if hls_url:
        streaming["hlsManifestUrl"] = hls_url

    payload: Dict[str, Any] = {
        "playabilityStatus": {"status": status, **playability},
        "videoDetails": {"videoId": video_id, "title": "Test video"},
    }
    if streaming:
        payload["streamingData"] = streaming
    if visitor_id:
        payload["responseContext"] = {
            "serviceTrackingParams": [
                {"service": "CSI", "params": [{"key": "c", "value": "WEB"}]},
                {"service": "GFEEDBACK", "params": [{"key": "visitor_data", "value": visitor_id}]},
            ]
        }
    return payload


def watch_page(
    response: Dict[str, Any],
    initial_data: Optional[Dict[str, Any]] = None,
    *,
    script_path: Optional[str] = PLAYER_SCRIPT_PATH,
) -> str:
    initial_data = initial_data if initial_data is not None else {"contents": {"twoColumnWatchNextResults": {}}}
    script_tag = ""
    if script_path:
        script_tag = f'<script src="{script_path}" name="player_ias/base"></script>'
    return (
        "<html><head>"
        f"{script_tag}"
        "</head><body>"
        f"<script>var ytInitialPlayerResponse = {json.dumps(response)};var meta = document.createElement('meta');</script>"
        f"<script>var ytInitialData = {json.dumps(initial_data)};</script>"
        "</body></html>"
    )


def muxed(itag: int, url: str, **extra: Any) -> Dict[str, Any]:
    return {
        "itag": itag,
        "url": url,
        "mimeType": 'video/mp4; codecs="avc1.42001E, mp4a.40.2"',
        "qualityLabel": "360p",
        "bitrate": 500000,
        "audioQuality": "AUDIO_QUALITY_LOW",
        **extra,
    }


def video_only(itag: int, url: str, label: str = "1080p", **extra: Any) -> Dict[str, Any]:
    return {
        "itag": itag,
        "url": url,
        "mimeType": 'video/mp4; codecs="avc1.640028"',
        "qualityLabel": label,
        "bitrate": 4000000,
        "width": 1920,
        "height": 1080,
        **extra,
    }


def audio_only(itag: int, url: str, **extra: Any) -> Dict[str, Any]:
    return {
        "itag": itag,
        "url": url,
        "mimeType": 'audio/mp4; codecs="mp4a.40.2"',
        "bitrate": 130000,
        "audioQuality": "AUDIO_QUALITY_MEDIUM",
        "audioSampleRate": "44100",
        **extra,
    }
