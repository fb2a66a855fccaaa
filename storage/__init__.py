"""
Storage Module
Result cache and diagnostic snapshots
"""
from .cache import BaseCache, MemoryCache
from .debug_store import DebugFileStore, safe_persist

__all__ = [
    "BaseCache",
    "MemoryCache",
    "DebugFileStore",
    "safe_persist",
]
