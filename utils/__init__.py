"""
Utils Module
Shared helpers: logging, errors, retry
"""
from .logger import setup_logger, setup_logging
from .retry import RetryPolicy, retry, is_transient
from .exceptions import (
    StreamResolverError,
    ConfigurationError,
    TransportError,
    TransientTransportError,
    PermanentTransportError,
    UpstreamFormatChanged,
    UpstreamPlaybackError,
    MalformedUpstreamResponse,
    NoPlayableFormats,
    MissingPlayerScript,
    transport_error_for,
    is_caller_retryable,
)

__all__ = [
    "setup_logger",
    "setup_logging",
    "RetryPolicy",
    "retry",
    "is_transient",
    "StreamResolverError",
    "ConfigurationError",
    "TransportError",
    "TransientTransportError",
    "PermanentTransportError",
    "UpstreamFormatChanged",
    "UpstreamPlaybackError",
    "MalformedUpstreamResponse",
    "NoPlayableFormats",
    "MissingPlayerScript",
    "transport_error_for",
    "is_caller_retryable",
]
