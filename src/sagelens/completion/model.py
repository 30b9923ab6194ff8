from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from sagelens.mapping.model import TextRange


class PatternKind(StrEnum):
    POWER_OPERATOR = "power_operator"
    GENERATOR_LIST = "generator_list"
    CONSTRUCTOR_NAME = "constructor_name"
    CONSTRUCTOR_ARGUMENT = "constructor_argument"
    LIBRARY_FUNCTION = "library_function"


class CandidateKind(StrEnum):
    OPERATOR = "operator"
    CONSTRUCTOR = "constructor"
    VALUE = "value"
    FUNCTION = "function"


@dataclass(frozen=True)
class CompletionCandidate:
    """One completion; ``insert_text`` goes in at the cursor."""

    label: str
    insert_text: str
    kind: CandidateKind
    pattern: PatternKind
    detail: str = ""
    sort_rank: int = 0
    auto_insert: bool = False


@dataclass(frozen=True)
class CompletionContext:
    cursor_offset: int
    text_window: str
    matched_pattern_kind: PatternKind | None = None
    match_span: TextRange | None = None

    @property
    def matched(self) -> bool:
        return self.matched_pattern_kind is not None


@dataclass(frozen=True)
class CompletionResult:
    context: CompletionContext
    candidates: tuple[CompletionCandidate, ...] = ()
    auto_insertion: str | None = None
