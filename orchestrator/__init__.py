"""Video info service and its module-level entry points."""

from .service import (
    VideoInfoService,
    get_basic_info,
    get_default_service,
    get_info,
)

__all__ = [
    "VideoInfoService",
    "get_basic_info",
    "get_default_service",
    "get_info",
]
