"""Bidirectional offset translation between Sage and rewritten Python text."""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from typing import Callable, Sequence

from sagelens.invariants import never
from sagelens.mapping.model import (
    Bias,
    ExpansionPayload,
    Space,
    SpanKind,
    TextRange,
    TransformationSpan,
)
from sagelens.mapping.recognizer import Recognition, Recognizer, recognize
from sagelens.mapping.span_index import SpanIndex

logger = logging.getLogger(__name__)

_OTHER = {Space.ORIGINAL: Space.REWRITTEN, Space.REWRITTEN: Space.ORIGINAL}
_CLAMPED_KINDS = frozenset({SpanKind.DECLARATIVE_EXPANSION, SpanKind.INSERTION})


def _interpolate(span: TransformationSpan, offset: int, source: Space) -> int:
    source_range = span.range_in(source)
    target_range = span.range_in(_OTHER[source])
    step = offset - source_range.start
    return target_range.start + min(step, max(target_range.length - 1, 0))


def _expansion_forward(span: TransformationSpan, offset: int, source: Space) -> int:
    payload = span.payload
    if not isinstance(payload, ExpansionPayload):
        never("expansion span without payload", start=span.original.start)
    statement = payload.statement_for_original(offset)
    if statement is None:
        return span.rewritten.start
    return statement.rewritten.start


def _expansion_reverse(span: TransformationSpan, offset: int, source: Space) -> int:
    payload = span.payload
    if not isinstance(payload, ExpansionPayload):
        never("expansion span without payload", start=span.original.start)
    segment = payload.segment_at_rewritten(offset)
    if segment is None:
        # Generated-only text anchors at the declaration site.
        return span.original.start
    step = offset - segment.rewritten.start
    return segment.original.start + min(step, max(segment.original.length - 1, 0))


def _insertion_anchor(span: TransformationSpan, offset: int, source: Space) -> int:
    return span.original.start


_PointRule = Callable[[TransformationSpan, int, Space], int]

_FORWARD: dict[SpanKind, _PointRule] = {
    SpanKind.PASSTHROUGH: _interpolate,
    SpanKind.OPERATOR_SUBSTITUTION: _interpolate,
    SpanKind.RATIONAL_LITERAL: _interpolate,
    SpanKind.DECLARATIVE_EXPANSION: _expansion_forward,
    SpanKind.INSERTION: _interpolate,
}

_REVERSE: dict[SpanKind, _PointRule] = {
    SpanKind.PASSTHROUGH: _interpolate,
    SpanKind.OPERATOR_SUBSTITUTION: _interpolate,
    SpanKind.RATIONAL_LITERAL: _interpolate,
    SpanKind.DECLARATIVE_EXPANSION: _expansion_reverse,
    SpanKind.INSERTION: _insertion_anchor,
}

_POINT_RULES = {Space.ORIGINAL: _FORWARD, Space.REWRITTEN: _REVERSE}


class SourceMap:
    """Immutable correspondence between an original and a rewritten text.

    Offsets are codepoint offsets. A point on a span boundary belongs to the
    span starting there; the end of a range belongs to the span ending there.
    """

    def __init__(
        self,
        original_text: str,
        rewritten_text: str,
        spans: Sequence[TransformationSpan],
    ) -> None:
        self.original_text = original_text
        self.rewritten_text = rewritten_text
        self.index = SpanIndex(spans)
        self._validate()

    @classmethod
    def from_recognition(cls, recognition: Recognition) -> SourceMap:
        return cls(recognition.original_text, recognition.rewritten_text, recognition.spans)

    @property
    def spans(self) -> tuple[TransformationSpan, ...]:
        return self.index.spans

    def _length(self, space: Space) -> int:
        if space is Space.ORIGINAL:
            return len(self.original_text)
        return len(self.rewritten_text)

    def _validate(self) -> None:
        original_cursor = 0
        rewritten_cursor = 0
        for span in self.index:
            if span.original.start != original_cursor or span.rewritten.start != rewritten_cursor:
                never(
                    "source map spans leave a gap",
                    original_start=span.original.start,
                    expected_original=original_cursor,
                    rewritten_start=span.rewritten.start,
                    expected_rewritten=rewritten_cursor,
                )
            if span.rewritten.is_empty:
                never("span with empty rewritten range", start=span.original.start)
            if span.original.is_empty and not span.is_synthetic:
                never("empty original range outside an insertion", kind=span.kind.value)
            if span.is_synthetic and not span.original.is_empty:
                never("insertion span with original text", start=span.original.start)
            if span.kind is SpanKind.PASSTHROUGH and (
                span.original.slice(self.original_text) != span.rewritten.slice(self.rewritten_text)
            ):
                never("passthrough span changes text", start=span.original.start)
            original_cursor = span.original.end
            rewritten_cursor = span.rewritten.end
        if original_cursor != len(self.original_text) or rewritten_cursor != len(self.rewritten_text):
            never(
                "source map does not cover both texts",
                original_end=original_cursor,
                original_length=len(self.original_text),
                rewritten_end=rewritten_cursor,
                rewritten_length=len(self.rewritten_text),
            )

    def _check(self, offset: int, space: Space) -> None:
        if offset < 0 or offset > self._length(space):
            raise ValueError(
                f"{space.value} offset {offset} outside text of length {self._length(space)}"
            )

    def span_at(self, space: Space, offset: int, bias: Bias = Bias.LEFT) -> TransformationSpan | None:
        return self.index.at(space, offset, bias)

    def _point(self, offset: int, source: Space) -> int:
        self._check(offset, source)
        span = self.index.at(source, offset)
        if span is None:
            # Empty source text; only an insertion can exist.
            return self._length(_OTHER[source])
        if offset == span.range_in(source).end:
            return span.range_in(_OTHER[source]).end
        return _POINT_RULES[source][span.kind](span, offset, source)

    def _range(self, query: TextRange, source: Space) -> TextRange:
        self._check(query.end, source)
        if query.is_empty:
            point = self._point(query.start, source)
            return TextRange(point, point)
        first = self.index.at(source, query.start, Bias.LEFT)
        last = self.index.at(source, query.end, Bias.RIGHT)
        if first is None or last is None:
            return TextRange.empty(self._length(_OTHER[source]))
        target = _OTHER[source]
        if first is last and isinstance(first.payload, ExpansionPayload):
            segment = first.payload.segment_covering(source, query)
            if segment is not None and segment.preserves_length:
                delta = segment.range_in(target).start - segment.range_in(source).start
                return query.shifted(delta)
        start = self._range_start(first, query.start, source)
        end = self._range_end(last, query.end, source)
        return TextRange(start, max(start, end))

    @staticmethod
    def _range_start(span: TransformationSpan, offset: int, source: Space) -> int:
        target = span.range_in(_OTHER[source])
        if span.kind in _CLAMPED_KINDS or not span.preserves_length:
            return target.start
        return target.start + (offset - span.range_in(source).start)

    @staticmethod
    def _range_end(span: TransformationSpan, offset: int, source: Space) -> int:
        target = span.range_in(_OTHER[source])
        if span.kind in _CLAMPED_KINDS or not span.preserves_length:
            return target.end
        return target.start + (offset - span.range_in(source).start)

    def translate(self, original_offset: int) -> int:
        return self._point(original_offset, Space.ORIGINAL)

    def translate_reverse(self, rewritten_offset: int) -> int:
        return self._point(rewritten_offset, Space.REWRITTEN)

    def translate_range(self, original_range: TextRange) -> TextRange:
        return self._range(original_range, Space.ORIGINAL)

    def translate_range_reverse(self, rewritten_range: TextRange) -> TextRange:
        return self._range(rewritten_range, Space.REWRITTEN)

    def generated_only(self, rewritten_range: TextRange) -> TransformationSpan | None:
        """Return the span whose generated-only text contains ``rewritten_range``."""
        span = self.index.containing(Space.REWRITTEN, rewritten_range)
        if span is None:
            return None
        if span.is_synthetic:
            return span
        if isinstance(span.payload, ExpansionPayload) and span.payload.is_generated_only(rewritten_range):
            return span
        return None


def build_source_map(original_text: str, *, preamble: str = "") -> tuple[str, SourceMap]:
    recognition = recognize(original_text, preamble=preamble)
    source_map = SourceMap.from_recognition(recognition)
    logger.debug(
        "built source map: %d spans, %d -> %d characters",
        len(source_map.spans),
        len(original_text),
        len(recognition.rewritten_text),
    )
    return recognition.rewritten_text, source_map


class SourceMapCache:
    """LRU of source maps keyed by a content hash of the original text.

    Entries are pure functions of the key and are never mutated.
    """

    def __init__(self, recognizer: Recognizer | None = None, *, max_entries: int = 64) -> None:
        self.recognizer = recognizer or Recognizer()
        self.max_entries = max_entries
        self._entries: OrderedDict[str, SourceMap] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def _key(self, text: str) -> str:
        digest = hashlib.sha256()
        digest.update(self.recognizer.preamble.encode("utf-8"))
        digest.update(b"\0")
        digest.update(text.encode("utf-8", "surrogatepass"))
        return digest.hexdigest()

    def get(self, original_text: str) -> SourceMap:
        key = self._key(original_text)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            self.hits += 1
            return cached
        self.misses += 1
        source_map = SourceMap.from_recognition(self.recognizer.recognize(original_text))
        self._entries[key] = source_map
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return source_map

    def __len__(self) -> int:
        return len(self._entries)
