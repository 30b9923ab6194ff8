from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from sagelens.invariants import never


class SpanKind(StrEnum):
    PASSTHROUGH = "passthrough"
    OPERATOR_SUBSTITUTION = "operator_substitution"
    RATIONAL_LITERAL = "rational_literal"
    DECLARATIVE_EXPANSION = "declarative_expansion"
    INSERTION = "insertion"


class Space(StrEnum):
    ORIGINAL = "original"
    REWRITTEN = "rewritten"


class Bias(StrEnum):
    LEFT = "left"
    RIGHT = "right"


class StatementRole(StrEnum):
    ASSIGNMENT = "assignment"
    GENERATOR_BINDING = "generator_binding"


@dataclass(frozen=True, order=True)
class TextRange:
    """Half-open ``[start, end)`` range of codepoint offsets."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            never("invalid text range", start=self.start, end=self.end)

    @classmethod
    def empty(cls, offset: int) -> TextRange:
        return cls(offset, offset)

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def covers(self, other: TextRange) -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: TextRange) -> bool:
        return self.start < other.end and other.start < self.end

    def shifted(self, delta: int) -> TextRange:
        return TextRange(self.start + delta, self.end + delta)

    def slice(self, text: str) -> str:
        return text[self.start : self.end]


@dataclass(frozen=True)
class GeneratedStatement:
    role: StatementRole
    rewritten: TextRange
    sources: tuple[TextRange, ...]

    def covers_original(self, offset: int) -> bool:
        return any(source.contains(offset) for source in self.sources)


@dataclass(frozen=True)
class CarriedSegment:
    """Original text carried into an expansion, possibly operator-rewritten."""

    original: TextRange
    rewritten: TextRange

    def range_in(self, space: Space) -> TextRange:
        if space is Space.ORIGINAL:
            return self.original
        return self.rewritten

    @property
    def preserves_length(self) -> bool:
        return self.original.length == self.rewritten.length


@dataclass(frozen=True)
class Generator:
    name: str
    original: TextRange


@dataclass(frozen=True)
class ExpansionPayload:
    name: str
    name_range: TextRange
    constructor: str
    generators: tuple[Generator, ...]
    statements: tuple[GeneratedStatement, ...]
    segments: tuple[CarriedSegment, ...]

    def statement_for_original(self, offset: int) -> GeneratedStatement | None:
        for statement in self.statements:
            if statement.covers_original(offset):
                return statement
        return None

    def segment_at_rewritten(self, offset: int) -> CarriedSegment | None:
        for segment in self.segments:
            if segment.rewritten.contains(offset):
                return segment
        return None

    def segment_covering(self, space: Space, query: TextRange) -> CarriedSegment | None:
        for segment in self.segments:
            if segment.range_in(space).covers(query):
                return segment
        return None

    def is_generated_only(self, rewritten: TextRange) -> bool:
        if rewritten.is_empty:
            return self.segment_at_rewritten(rewritten.start) is None
        return not any(segment.rewritten.overlaps(rewritten) for segment in self.segments)


@dataclass(frozen=True)
class OperatorPayload:
    operator: str
    replacement: str


@dataclass(frozen=True)
class RationalPayload:
    numerator: int
    denominator: int


SpanPayload = ExpansionPayload | OperatorPayload | RationalPayload | None


@dataclass(frozen=True)
class TransformationSpan:
    original: TextRange
    rewritten: TextRange
    kind: SpanKind
    payload: SpanPayload = field(default=None, compare=False)

    def range_in(self, space: Space) -> TextRange:
        if space is Space.ORIGINAL:
            return self.original
        return self.rewritten

    @property
    def is_synthetic(self) -> bool:
        return self.kind is SpanKind.INSERTION

    @property
    def preserves_length(self) -> bool:
        return self.original.length == self.rewritten.length
