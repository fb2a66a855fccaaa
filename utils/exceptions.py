"""
Custom Exceptions
Error taxonomy for format resolution.
"""
import json
from typing import Any, Optional


EXCERPT_LIMIT = 500


class StreamResolverError(Exception):
    """Base error for the resolver."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(StreamResolverError, ValueError):
    """Invalid configuration; a ValueError so validators can raise it"""
    pass


def payload_excerpt(payload: Any, limit: int = EXCERPT_LIMIT) -> Optional[str]:
    """Compact JSON text of an upstream payload, cut to ``limit`` characters."""
    if payload is None:
        return None
    text = json.dumps(payload, ensure_ascii=False, default=str, separators=(",", ":"))
    return text if len(text) <= limit else text[:limit] + "..."


class TransportError(StreamResolverError):
    """Network request failed"""

    def __init__(self, message: str, status: Optional[int] = None, url: str = None, **kwargs):
        super().__init__(message, {"status": status, "url": url, **kwargs})
        self.status = status
        self.url = url


class TransientTransportError(TransportError):
    """Upstream answered with a 5xx status"""
    pass


class PermanentTransportError(TransportError):
    """Upstream answered with a status below 500, or never answered"""
    pass


def transport_error_for(status: Optional[int], url: str = None, message: str = None) -> TransportError:
    """Pick the transport error class for an HTTP status."""
    text = message or f"Status code: {status}"
    if status is not None and status >= 500:
        return TransientTransportError(text, status=status, url=url)
    return PermanentTransportError(text, status=status, url=url)


class UpstreamFormatChanged(StreamResolverError):
    """Embedded data could not be located or parsed"""

    def __init__(self, message: str, snapshot: Optional[str] = None, document: str = "", **kwargs):
        super().__init__(message, {"snapshot": snapshot, **kwargs})
        self.snapshot = snapshot
        self.document = document


class UpstreamPlaybackError(StreamResolverError):
    """The platform reports the video as not playable"""

    def __init__(
        self,
        reason: str,
        status: Optional[str] = None,
        video_id: Optional[str] = None,
        persona: Optional[str] = None,
    ):
        super().__init__(reason, {"status": status, "video_id": video_id, "persona": persona})
        self.reason = reason
        self.status = status
        self.video_id = video_id
        self.persona = persona


class MalformedUpstreamResponse(StreamResolverError):
    """A player response does not describe the requested video"""

    def __init__(
        self,
        video_id: str,
        persona: str,
        received_id: Optional[str] = None,
        response: Any = None,
    ):
        super().__init__(
            "Malformed response from YouTube",
            {
                "video_id": video_id,
                "persona": persona,
                "received_id": received_id,
                "response": payload_excerpt(response),
            },
        )
        self.response = response
        self.video_id = video_id
        self.persona = persona
        self.received_id = received_id


class NoPlayableFormats(StreamResolverError):
    """No valid format survived aggregation"""

    def __init__(self, message: str, video_id: Optional[str] = None, excluded: dict = None):
        super().__init__(message, {"video_id": video_id, "excluded": dict(excluded or {})})
        self.video_id = video_id
        self.excluded = dict(excluded or {})


class MissingPlayerScript(StreamResolverError):
    """Player script reference not found in any page"""

    def __init__(self, video_id: str):
        super().__init__("Unable to find html5player file", {"video_id": video_id})
        self.video_id = video_id


def is_caller_retryable(error: BaseException) -> bool:
    """
    Whether retrying later may help.

    Playback restrictions and transient upstream failures are caller
    problems; schema changes need a library update.
    """
    if isinstance(error, (UpstreamPlaybackError, TransientTransportError)):
        return True
    return False
