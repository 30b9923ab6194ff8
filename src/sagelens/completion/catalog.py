"""Partial-pattern matchers for Sage constructs still being typed.

Each matcher looks only at the window of text before the cursor and either
claims a suffix of it or stays silent. Matchers are independent; the engine
ranks whatever they produce.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

from sagelens.completion.model import CandidateKind, CompletionCandidate, PatternKind
from sagelens.library import (
    BASE_RINGS,
    CONSTRUCTORS,
    FUNCTIONS,
    ConstructorInfo,
    FunctionInfo,
)


@dataclass(frozen=True)
class PartialMatch:
    """A matcher's claim on the last ``length`` characters of the window."""

    length: int
    candidates: tuple[CompletionCandidate, ...]


class PartialMatcher(Protocol):
    pattern: PatternKind
    priority: int

    def match(self, window: str) -> PartialMatch | None: ...


_OPERAND_END = re.compile(r"(?:[\w)\]}]|\.)[ \t]*\*$")
_IMPORT_STAR = re.compile(r"\bimport[ \t]*\*$")


@dataclass(frozen=True)
class PowerOperatorMatcher:
    """``2*`` -> offer the second ``*`` of ``**``."""

    pattern: PatternKind = PatternKind.POWER_OPERATOR
    priority: int = 10

    def match(self, window: str) -> PartialMatch | None:
        if not window.endswith("*") or window.endswith("**"):
            return None
        if _OPERAND_END.search(window) is None or _IMPORT_STAR.search(window):
            return None
        candidate = CompletionCandidate(
            label="** (power operator)",
            insert_text="*",
            kind=CandidateKind.OPERATOR,
            pattern=self.pattern,
            detail="Exponentiation; Sage also accepts ^",
            auto_insert=True,
        )
        return PartialMatch(length=1, candidates=(candidate,))


_GENERATOR_LIST = re.compile(r"^[ \t]*(?P<head>[A-Za-z_]\w*\.<(?P<generators>[^<>=]*))$")


@dataclass(frozen=True)
class GeneratorListMatcher:
    """``P.<`` or ``P.<x, y`` -> close the list and pick a constructor."""

    constructors: tuple[ConstructorInfo, ...] = CONSTRUCTORS
    pattern: PatternKind = PatternKind.GENERATOR_LIST
    priority: int = 30

    def match(self, window: str) -> PartialMatch | None:
        found = _GENERATOR_LIST.search(window)
        if found is None:
            return None
        typed = found.group("generators")
        name = found.group("head").split(".", 1)[0]
        candidates = []
        for constructor in self.constructors:
            if typed.strip():
                insert_text = f"> = {constructor.call}"
                label = f"{name}.<{typed.strip()}> = {constructor.call}"
            else:
                generators = ", ".join(constructor.default_generators)
                insert_text = f"{generators}> = {constructor.call}"
                label = f"{name}.<{generators}> = {constructor.call}"
            candidates.append(
                CompletionCandidate(
                    label=label,
                    insert_text=insert_text,
                    kind=CandidateKind.CONSTRUCTOR,
                    pattern=self.pattern,
                    detail=constructor.description,
                )
            )
        return PartialMatch(length=len(found.group("head")), candidates=tuple(candidates))


_CONSTRUCTOR_NAME = re.compile(
    r"^[ \t]*(?P<head>[A-Za-z_]\w*\.<[^<>\n]*>[ \t]*=[ \t]*(?P<prefix>[A-Za-z_]\w*)?)$"
)


@dataclass(frozen=True)
class ConstructorNameMatcher:
    """``P.<x> = Pol`` -> ``PolynomialRing(QQ)``."""

    constructors: tuple[ConstructorInfo, ...] = CONSTRUCTORS
    pattern: PatternKind = PatternKind.CONSTRUCTOR_NAME
    priority: int = 20

    def match(self, window: str) -> PartialMatch | None:
        found = _CONSTRUCTOR_NAME.search(window)
        if found is None:
            return None
        prefix = found.group("prefix") or ""
        candidates = tuple(
            CompletionCandidate(
                label=constructor.call,
                insert_text=constructor.call[len(prefix) :],
                kind=CandidateKind.CONSTRUCTOR,
                pattern=self.pattern,
                detail=constructor.description,
                auto_insert=True,
            )
            for constructor in self.constructors
            if constructor.name.startswith(prefix)
        )
        if not candidates:
            return None
        return PartialMatch(length=len(found.group("head")), candidates=candidates)


@dataclass(frozen=True)
class ConstructorArgumentMatcher:
    """``PolynomialRing(Q`` -> ``QQ)``."""

    constructors: tuple[ConstructorInfo, ...] = CONSTRUCTORS
    base_rings: tuple[tuple[str, str], ...] = BASE_RINGS
    pattern: PatternKind = PatternKind.CONSTRUCTOR_ARGUMENT
    priority: int = 20

    def _regex(self) -> re.Pattern[str]:
        names = "|".join(
            re.escape(constructor.name)
            for constructor in self.constructors
            if constructor.takes_base_ring
        )
        return re.compile(rf"(?<![\w.])(?P<head>(?:{names})\([ \t]*(?P<prefix>[\w(]*))$")

    def match(self, window: str) -> PartialMatch | None:
        found = self._regex().search(window)
        if found is None:
            return None
        prefix = found.group("prefix")
        candidates = tuple(
            CompletionCandidate(
                label=ring,
                insert_text=ring[len(prefix) :] + ")",
                kind=CandidateKind.VALUE,
                pattern=self.pattern,
                detail=description,
                auto_insert=True,
            )
            for ring, description in self.base_rings
            if ring.startswith(prefix)
        )
        if not candidates:
            return None
        return PartialMatch(length=len(found.group("head")), candidates=candidates)


_IDENTIFIER_TAIL = re.compile(r"(?<![\w.])(?P<prefix>[A-Za-z_]\w*)$")
_CONSTRUCTOR_NAMES = frozenset(constructor.name for constructor in CONSTRUCTORS)
LIBRARY_FUNCTIONS: tuple[FunctionInfo, ...] = tuple(
    info for info in FUNCTIONS if info.name not in _CONSTRUCTOR_NAMES
)


@dataclass(frozen=True)
class LibraryFunctionMatcher:
    """``fac`` -> ``factor(``; only in catalogs that ask for it."""

    functions: tuple[FunctionInfo, ...] = LIBRARY_FUNCTIONS
    pattern: PatternKind = PatternKind.LIBRARY_FUNCTION
    priority: int = 50

    def match(self, window: str) -> PartialMatch | None:
        found = _IDENTIFIER_TAIL.search(window)
        if found is None:
            return None
        prefix = found.group("prefix")
        candidates = tuple(
            CompletionCandidate(
                label=info.signature,
                insert_text=info.name[len(prefix) :] + "(",
                kind=CandidateKind.FUNCTION,
                pattern=self.pattern,
                detail=info.description,
            )
            for info in self.functions
            if info.name.startswith(prefix) and info.name != prefix
        )
        if not candidates:
            return None
        return PartialMatch(length=len(prefix), candidates=candidates)


def default_catalog(*, library_functions: bool = False) -> tuple[PartialMatcher, ...]:
    """Matchers in declaration order; that order breaks the last ranking tie."""
    catalog: list[PartialMatcher] = [
        PowerOperatorMatcher(),
        GeneratorListMatcher(),
        ConstructorNameMatcher(),
        ConstructorArgumentMatcher(),
    ]
    if library_functions:
        catalog.append(LibraryFunctionMatcher())
    return tuple(catalog)
