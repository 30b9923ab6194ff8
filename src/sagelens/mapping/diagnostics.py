"""Translate analyzer diagnostics from rewritten to original coordinates."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Iterable

from sagelens.invariants import never, strict_mode
from sagelens.mapping.model import TextRange
from sagelens.mapping.source_map import SourceMap

logger = logging.getLogger(__name__)


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"


class Origin(StrEnum):
    SOURCE = "source"
    GENERATED = "generated"


@dataclass(frozen=True)
class Diagnostic:
    range: TextRange
    severity: Severity
    message: str
    code: str | None = None
    source: str = "sagelens"
    origin: Origin = Origin.SOURCE


def _map_one(diagnostic: Diagnostic, source_map: SourceMap) -> Diagnostic:
    generated = source_map.generated_only(diagnostic.range)
    if generated is not None:
        if generated.is_synthetic:
            anchor = generated.original.start
            target = TextRange(anchor, anchor)
        else:
            target = generated.original
        return replace(diagnostic, range=target, origin=Origin.GENERATED)
    return replace(
        diagnostic,
        range=source_map.translate_range_reverse(diagnostic.range),
        origin=Origin.SOURCE,
    )


def map_diagnostics(
    diagnostics: Iterable[Diagnostic],
    source_map: SourceMap,
    *,
    strict: bool | None = None,
) -> list[Diagnostic]:
    """Return ``diagnostics`` with ranges in the original text.

    A range reaching past the rewritten text is an internal fault: it raises
    in strict mode and is dropped with a warning otherwise.
    """
    if strict is None:
        strict = strict_mode()
    limit = len(source_map.rewritten_text)
    mapped: list[Diagnostic] = []
    for diagnostic in diagnostics:
        if diagnostic.range.end > limit:
            if strict:
                never(
                    "diagnostic outside rewritten text",
                    start=diagnostic.range.start,
                    end=diagnostic.range.end,
                    length=limit,
                )
            logger.warning(
                "dropping diagnostic %s at [%d, %d): rewritten text has %d characters",
                diagnostic.code or "-",
                diagnostic.range.start,
                diagnostic.range.end,
                limit,
            )
            continue
        mapped.append(_map_one(diagnostic, source_map))
    return mapped
