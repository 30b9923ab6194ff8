"""Ordered span collection with logarithmic point and overlap queries."""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Iterator, Sequence

from sagelens.invariants import never
from sagelens.mapping.model import Bias, Space, TextRange, TransformationSpan


class _Axis:
    """Sorted starts/ends of the spans that are non-empty in one space."""

    def __init__(self, spans: Sequence[TransformationSpan], space: Space) -> None:
        self.members: list[TransformationSpan] = []
        self.starts: list[int] = []
        self.ends: list[int] = []
        for span in spans:
            span_range = span.range_in(space)
            if span_range.is_empty:
                continue
            if self.ends and span_range.start < self.ends[-1]:
                never(
                    "spans overlap or are out of order",
                    space=space.value,
                    start=span_range.start,
                    previous_end=self.ends[-1],
                )
            self.members.append(span)
            self.starts.append(span_range.start)
            self.ends.append(span_range.end)

    def left(self, offset: int) -> TransformationSpan | None:
        position = bisect_right(self.starts, offset) - 1
        if position >= 0 and offset < self.ends[position]:
            return self.members[position]
        return None

    def right(self, offset: int) -> TransformationSpan | None:
        position = bisect_left(self.starts, offset) - 1
        if position >= 0 and offset <= self.ends[position]:
            return self.members[position]
        return None


class SpanIndex:
    def __init__(self, spans: Sequence[TransformationSpan]) -> None:
        self._spans = tuple(spans)
        self._axes = {
            Space.ORIGINAL: _Axis(self._spans, Space.ORIGINAL),
            Space.REWRITTEN: _Axis(self._spans, Space.REWRITTEN),
        }

    def __len__(self) -> int:
        return len(self._spans)

    def __iter__(self) -> Iterator[TransformationSpan]:
        return iter(self._spans)

    def __getitem__(self, position: int) -> TransformationSpan:
        return self._spans[position]

    @property
    def spans(self) -> tuple[TransformationSpan, ...]:
        return self._spans

    def extent(self, space: Space) -> int:
        axis = self._axes[space]
        return axis.ends[-1] if axis.ends else 0

    def at(
        self,
        space: Space,
        offset: int,
        bias: Bias = Bias.LEFT,
    ) -> TransformationSpan | None:
        """Return the span covering ``offset``.

        With ``Bias.LEFT`` an offset on a boundary belongs to the span that
        starts there; with ``Bias.RIGHT`` to the span that ends there. The
        outermost boundaries fall back to the only span that touches them.
        Spans that are empty in ``space`` are never returned.
        """
        axis = self._axes[space]
        if bias is Bias.LEFT:
            return axis.left(offset) or axis.right(offset)
        return axis.right(offset) or axis.left(offset)

    def overlapping(self, space: Space, query: TextRange) -> tuple[TransformationSpan, ...]:
        if query.is_empty:
            span = self.at(space, query.start)
            return (span,) if span is not None else ()
        axis = self._axes[space]
        position = max(bisect_right(axis.starts, query.start) - 1, 0)
        found: list[TransformationSpan] = []
        while position < len(axis.members) and axis.starts[position] < query.end:
            if axis.ends[position] > query.start:
                found.append(axis.members[position])
            position += 1
        return tuple(found)

    def containing(self, space: Space, query: TextRange) -> TransformationSpan | None:
        """Return the single span that covers all of ``query``, if any."""
        candidates = self.overlapping(space, query)
        if len(candidates) != 1:
            return None
        span = candidates[0]
        if span.range_in(space).covers(query):
            return span
        return None
