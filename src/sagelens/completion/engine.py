from __future__ import annotations

import logging
from dataclasses import replace
from typing import Sequence

from sagelens.completion.catalog import PartialMatch, PartialMatcher, default_catalog
from sagelens.completion.model import CompletionContext, CompletionResult
from sagelens.mapping.lexer import comment_end, ends_in_code, scan_string
from sagelens.mapping.model import TextRange

logger = logging.getLogger(__name__)

WINDOW_LIMIT = 256


def _statement_start(line: str) -> int:
    """Offset just past the last top-level ``;`` of ``line``."""
    start = 0
    cursor = 0
    while cursor < len(line):
        if comment_end(line, cursor) is not None:
            break
        token = scan_string(line, cursor)
        if token is not None:
            cursor = token.end
            continue
        if line[cursor] == ";":
            start = cursor + 1
        cursor += 1
    return start


def completion_window(text: str, cursor_offset: int) -> str | None:
    """Text of the current statement before the cursor, or None in a comment or string."""
    line_start = text.rfind("\n", 0, cursor_offset) + 1
    line = text[line_start:cursor_offset]
    if not ends_in_code(line):
        return None
    start = max(_statement_start(line), len(line) - WINDOW_LIMIT)
    return line[start:]


class CompletionRecognizer:
    def __init__(
        self,
        catalog: Sequence[PartialMatcher] | None = None,
        *,
        auto_insert: bool = True,
    ) -> None:
        self.catalog = tuple(catalog) if catalog is not None else default_catalog()
        self.auto_insert = auto_insert

    def complete(self, text: str, cursor_offset: int) -> CompletionResult:
        if cursor_offset < 0 or cursor_offset > len(text):
            raise ValueError(f"cursor offset {cursor_offset} outside text of length {len(text)}")
        window = completion_window(text, cursor_offset)
        if window is None:
            return CompletionResult(CompletionContext(cursor_offset, ""))

        hits: list[tuple[int, PartialMatcher, PartialMatch]] = []
        for order, matcher in enumerate(self.catalog):
            found = matcher.match(window)
            if found is not None and found.candidates:
                hits.append((order, matcher, found))
        if not hits:
            return CompletionResult(CompletionContext(cursor_offset, window))

        ranked = []
        for order, matcher, found in hits:
            for position, candidate in enumerate(found.candidates):
                key = (-found.length, matcher.priority, candidate.label, order, position)
                ranked.append((key, candidate))
        ranked.sort(key=lambda item: item[0])
        candidates = tuple(
            replace(candidate, sort_rank=rank) for rank, (_, candidate) in enumerate(ranked)
        )

        _, best_matcher, best = min(
            hits, key=lambda hit: (-hit[2].length, hit[1].priority, hit[0])
        )
        context = CompletionContext(
            cursor_offset=cursor_offset,
            text_window=window,
            matched_pattern_kind=best_matcher.pattern,
            match_span=TextRange(cursor_offset - best.length, cursor_offset),
        )

        auto_insertion = None
        if self.auto_insert and len(hits) == 1:
            flagged = [candidate for candidate in best.candidates if candidate.auto_insert]
            if len(best.candidates) == 1 and len(flagged) == 1:
                auto_insertion = flagged[0].insert_text
        logger.debug(
            "completion at %d: %s with %d candidates",
            cursor_offset,
            best_matcher.pattern.value,
            len(candidates),
        )
        return CompletionResult(context, candidates, auto_insertion)


_DEFAULT = CompletionRecognizer()


def get_completions(text: str, cursor_offset: int) -> CompletionResult:
    return _DEFAULT.complete(text, cursor_offset)
