"""Lexical helpers shared by the recognizer and the completion matchers.

Only the pieces of Python lexing that decide whether a character is code:
comments, string literals (any prefix, single or triple quoted) and bracket
nesting. Nothing here raises on malformed input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_STRING_START = re.compile(r"(?i)(?P<prefix>rb|br|fr|rf|r|b|f|u)?(?P<quote>'''|\"\"\"|'|\")")
_OPENERS = "([{"
_CLOSERS = ")]}"


@dataclass(frozen=True)
class StringToken:
    end: int
    terminated: bool


def scan_string(text: str, position: int) -> StringToken | None:
    """Return the extent of a string literal starting at ``position``."""
    match = _STRING_START.match(text, position)
    if match is None:
        return None
    if match.group("prefix") and position > 0 and is_word_char(text[position - 1]):
        return None
    quote = match.group("quote")
    cursor = match.end()
    limit = len(text)
    while cursor < limit:
        char = text[cursor]
        if char == "\\":
            cursor += 2
            continue
        if text.startswith(quote, cursor):
            return StringToken(end=cursor + len(quote), terminated=True)
        if char == "\n" and len(quote) == 1:
            return StringToken(end=cursor, terminated=False)
        cursor += 1
    return StringToken(end=limit, terminated=False)


def comment_end(text: str, position: int) -> int | None:
    if not text.startswith("#", position):
        return None
    newline = text.find("\n", position)
    return len(text) if newline < 0 else newline


def balanced_end(text: str, open_position: int) -> int | None:
    """Return the offset just past the bracket closing ``open_position``."""
    depth = 0
    cursor = open_position
    limit = len(text)
    while cursor < limit:
        char = text[cursor]
        end = comment_end(text, cursor)
        if end is not None:
            cursor = end
            continue
        token = scan_string(text, cursor)
        if token is not None:
            if not token.terminated:
                return None
            cursor = token.end
            continue
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
            if depth == 0:
                return cursor + 1
            if depth < 0:
                return None
        cursor += 1
    return None


def ends_in_code(window: str) -> bool:
    """True when the end of ``window`` is outside comments and strings."""
    cursor = 0
    limit = len(window)
    while cursor < limit:
        if comment_end(window, cursor) is not None:
            return False
        token = scan_string(window, cursor)
        if token is not None:
            if not token.terminated:
                return False
            cursor = token.end
            continue
        cursor += 1
    return True


def bracket_delta(char: str) -> int:
    if char in _OPENERS:
        return 1
    if char in _CLOSERS:
        return -1
    return 0


def is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"
