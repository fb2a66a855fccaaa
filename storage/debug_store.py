"""Diagnostic snapshots of upstream documents that failed to parse."""

from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import re
from typing import Callable, Optional


logger = logging.getLogger(__name__)

Persist = Callable[[str, str], str]


class DebugFileStore:
    """Writes snapshots to ``<directory>/<timestamp>-<name>``."""

    def __init__(self, directory: str | Path = "./data/debug") -> None:
        self.directory = Path(directory)

    @staticmethod
    def _safe_name(name: str) -> str:
        cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", str(name or "").strip())
        return cleaned or "snapshot.txt"

    def persist(self, name: str, content: str) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        path = self.directory / f"{stamp}-{self._safe_name(name)}"
        path.write_text(str(content or ""), encoding="utf-8")
        logger.info(f"Saved diagnostic snapshot to {path}")
        return str(path)


def safe_persist(persist: Optional[Persist], name: str, content: str) -> Optional[str]:
    """Run ``persist`` and return its reference, or None if it failed."""
    if persist is None:
        return None
    try:
        return persist(name, content)
    except Exception as exc:
        logger.error(f"Failed to save diagnostic snapshot {name}: {exc}")
        return None
