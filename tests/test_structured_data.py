from __future__ import annotations

import re

import pytest

from processing.structured_data import (
    Balanced,
    Between,
    cut_after_balanced,
    extract,
    find_between,
    parse_structured,
    try_extract,
)
from utils.exceptions import UpstreamFormatChanged


class _SpyStrategy:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def __call__(self, document: str):
        self.calls += 1
        return self.result


def test_find_between_returns_empty_when_missing() -> None:
    assert find_between("a = {1};", "a = ", ";") == "{1}"
    assert find_between("a = {1}", "b = ", ";") == ""
    assert find_between("a = {1}", "a = ", ";") == ""


def test_cut_after_balanced_ignores_brackets_inside_strings() -> None:
    text = '{"title": "a};b", "nested": {"list": [1, "]", 3]}, "q": "say \\"}\\""};var next = 1;'
    assert cut_after_balanced(text) == text[: text.index(";var")]


def test_cut_after_balanced_rejects_unbalanced_and_non_openers() -> None:
    assert cut_after_balanced('{"a": [1, 2}') is None
    assert cut_after_balanced('{"a": 1') is None
    assert cut_after_balanced('"a"') is None
    assert cut_after_balanced("") is None


def test_parse_structured_strips_statement_leftovers() -> None:
    assert parse_structured(")]}'\n{\"ok\": true}") == {"ok": True}
    assert parse_structured("[1, 2]") == [1, 2]
    with pytest.raises(ValueError):
        parse_structured('"just a string"')
    with pytest.raises(ValueError):
        parse_structured("{broken")


def test_first_successful_strategy_wins_and_later_ones_are_not_run() -> None:
    first = _SpyStrategy(None)
    second = _SpyStrategy("{not json")
    third = _SpyStrategy('{"winner": 3}')
    fourth = _SpyStrategy('{"winner": 4}')

    value = extract("irrelevant", [first, second, third, fourth], name="value")

    assert value == {"winner": 3}
    assert [s.calls for s in (first, second, third, fourth)] == [1, 1, 1, 0]


def test_balanced_scan_recovers_when_fixed_delimiters_cut_too_early() -> None:
    document = (
        '<script>var ytInitialPlayerResponse = {"title": "a};b", "n": {"x": [1, 2]}};'
        "var other = {};</script>"
    )
    strategies = [
        Between("var ytInitialPlayerResponse = ", "};"),
        Balanced(re.compile(r"\bytInitialPlayerResponse\s*=\s*\{"), prepend="{"),
    ]
    assert extract(document, strategies, name="player_response") == {"title": "a};b", "n": {"x": [1, 2]}}


def test_between_appends_closing_text() -> None:
    document = 'var ytInitialData = {"a": {"b": 1}};</script>'
    strategy = Between("var ytInitialData = ", "}};", append="}}")
    assert try_extract(document, [strategy]) == {"a": {"b": 1}}


def test_all_strategies_failing_persists_document_and_raises() -> None:
    saved = []

    def _persist(name: str, content: str) -> str:
        saved.append((name, content))
        return f"/tmp/debug/{name}"

    document = "<html>nothing useful</html>"
    with pytest.raises(UpstreamFormatChanged) as excinfo:
        extract(document, [Between("x = ", ";")], name="player_response", source="watch.html", persist=_persist)

    error = excinfo.value
    assert saved == [("watch.html", document)]
    assert error.document == document
    assert error.snapshot == "/tmp/debug/watch.html"
    assert "/tmp/debug/watch.html" in error.message
    assert "player_response" in error.message


def test_failing_persist_does_not_mask_format_change() -> None:
    def _persist(name: str, content: str) -> str:
        raise OSError("disk full")

    with pytest.raises(UpstreamFormatChanged) as excinfo:
        extract("<html/>", [Between("x = ", ";")], name="response", persist=_persist)

    assert excinfo.value.snapshot is None
    assert excinfo.value.document == "<html/>"
