"""Locate and parse JSON values embedded in HTML / JavaScript documents."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import re
from typing import Any, Callable, Iterable, Optional, Pattern, Sequence, Union

from storage.debug_store import Persist, safe_persist
from utils.exceptions import UpstreamFormatChanged


logger = logging.getLogger(__name__)

# leftovers of the enclosing statement in front of the value
_STATEMENT_CLOSING_RE = re.compile(r"^[)\]}'\s]+")

_OPENERS = {"{": "}", "[": "]"}
_QUOTES = {'"', "'", "`"}

Delimiter = Union[str, Pattern[str]]
Strategy = Callable[[str], Optional[str]]


def find_between(document: str, left: Delimiter, right: str) -> str:
    """Text between the first ``left`` and the next ``right``, or ``""``."""
    if isinstance(left, str):
        pos = document.find(left)
        if pos < 0:
            return ""
        start = pos + len(left)
    else:
        match = left.search(document)
        if match is None:
            return ""
        start = match.end()
    end = document.find(right, start)
    if end < 0:
        return ""
    return document[start:end]


def cut_after_balanced(text: str) -> Optional[str]:
    """
    Return the leading ``{...}`` / ``[...]`` value of ``text``.

    Brackets inside string literals (and escaped quotes within them)
    are ignored. None when ``text`` does not start with an opener or the
    value never closes.
    """
    if not text or text[0] not in _OPENERS:
        return None

    stack = []
    quote = None
    escape = False
    for index, ch in enumerate(text):
        if quote is not None:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == quote:
                quote = None
            continue

        if ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in ("}", "]"):
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return text[: index + 1]
    return None


@dataclass(frozen=True)
class Between:
    """Fixed delimiter strategy: ``prepend + <left ... right> + append``."""

    left: Delimiter
    right: str
    prepend: str = ""
    append: str = ""

    def __call__(self, document: str) -> Optional[str]:
        found = find_between(document, self.left, self.right)
        if not found:
            return None
        return f"{self.prepend}{found}{self.append}"


@dataclass(frozen=True)
class Balanced:
    """Bracket-balancing strategy: value starting right after ``left``."""

    left: Delimiter
    prepend: str = ""

    def __call__(self, document: str) -> Optional[str]:
        if isinstance(self.left, str):
            pos = document.find(self.left)
            if pos < 0:
                return None
            start = pos + len(self.left)
        else:
            match = self.left.search(document)
            if match is None:
                return None
            start = match.end()
        return cut_after_balanced(f"{self.prepend}{document[start:].lstrip()}")


def parse_structured(text: str) -> Any:
    """Parse a JSON value after dropping statement leftovers in front of it."""
    cleaned = _STATEMENT_CLOSING_RE.sub("", text)
    value = json.loads(cleaned)
    if not isinstance(value, (dict, list)):
        raise ValueError(f"expected object or array, got {type(value).__name__}")
    return value


def try_extract(document: str, strategies: Iterable[Strategy], *, name: str = "value") -> Optional[Any]:
    """First successfully parsed strategy result, or None."""
    for index, strategy in enumerate(strategies):
        candidate = strategy(document)
        if not candidate:
            continue
        try:
            return parse_structured(candidate)
        except ValueError as exc:
            logger.debug(f"Strategy {index} for {name} produced invalid JSON: {exc}")
    return None


def extract(
    document: str,
    strategies: Sequence[Strategy],
    *,
    name: str = "value",
    source: str = "document",
    persist: Optional[Persist] = None,
) -> Any:
    """
    Parse the value named ``name`` out of ``document``.

    Strategies are tried in order and the first one whose substring parses
    wins. When all fail the document is handed to ``persist`` and
    UpstreamFormatChanged is raised.
    """
    value = try_extract(document, strategies, name=name)
    if value is not None:
        return value
    raise format_changed(document, name=name, source=source, persist=persist)


def format_changed(
    document: str,
    *,
    name: str,
    source: str,
    persist: Optional[Persist] = None,
) -> UpstreamFormatChanged:
    """Snapshot ``document`` and build the error for a failed extraction of ``name``."""
    snapshot = safe_persist(persist, source, document)
    message = f"Error when parsing {name} in {source}, maybe YouTube made a change."
    if snapshot:
        message += f' Please report this issue with the "{snapshot}" file.'
    return UpstreamFormatChanged(message, snapshot=snapshot, document=document, name=name, source=source)
