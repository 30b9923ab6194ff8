"""Completion of Sage constructs from the text before the cursor."""

from sagelens.completion.catalog import default_catalog
from sagelens.completion.engine import CompletionRecognizer, get_completions
from sagelens.completion.model import (
    CandidateKind,
    CompletionCandidate,
    CompletionContext,
    CompletionResult,
    PatternKind,
)

__all__ = [
    "CandidateKind",
    "CompletionCandidate",
    "CompletionContext",
    "CompletionRecognizer",
    "CompletionResult",
    "PatternKind",
    "default_catalog",
    "get_completions",
]
