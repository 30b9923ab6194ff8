from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel

from sagelens.completion.model import CompletionResult
from sagelens.mapping.diagnostics import Diagnostic
from sagelens.mapping.lines import LineIndex
from sagelens.mapping.model import SpanKind, TransformationSpan
from sagelens.mapping.source_map import SourceMap


class PositionDTO(BaseModel):
    line: int
    character: int


class RangeDTO(BaseModel):
    start: int
    end: int


class SpanDTO(BaseModel):
    kind: str
    original: RangeDTO
    rewritten: RangeDTO
    original_text: str
    rewritten_text: str


class SourceMapRequest(BaseModel):
    uri: Optional[str] = None
    text: Optional[str] = None
    include_passthrough: bool = False


class SourceMapResponse(BaseModel):
    rewritten: str = ""
    spans: List[SpanDTO] = []
    errors: List[str] = []


class TranslateRequest(BaseModel):
    uri: Optional[str] = None
    text: Optional[str] = None
    direction: Literal["forward", "reverse"] = "forward"
    start: int
    end: Optional[int] = None


class TranslateResponse(BaseModel):
    start: Optional[int] = None
    end: Optional[int] = None
    errors: List[str] = []


class DiagnosticDTO(BaseModel):
    start: PositionDTO
    end: PositionDTO
    severity: str
    code: Optional[str] = None
    message: str
    source: str
    origin: str


class CompletionCandidateDTO(BaseModel):
    label: str
    insert_text: str
    kind: str
    pattern: str
    detail: str = ""
    sort_rank: int


class CompletionResponse(BaseModel):
    pattern: Optional[str] = None
    match_start: Optional[int] = None
    match_end: Optional[int] = None
    candidates: List[CompletionCandidateDTO] = []
    auto_insertion: Optional[str] = None


def span_dto(span: TransformationSpan, source_map: SourceMap) -> SpanDTO:
    return SpanDTO(
        kind=span.kind.value,
        original=RangeDTO(start=span.original.start, end=span.original.end),
        rewritten=RangeDTO(start=span.rewritten.start, end=span.rewritten.end),
        original_text=span.original.slice(source_map.original_text),
        rewritten_text=span.rewritten.slice(source_map.rewritten_text),
    )


def source_map_response(source_map: SourceMap, *, include_passthrough: bool = False) -> SourceMapResponse:
    spans = [
        span_dto(span, source_map)
        for span in source_map.spans
        if include_passthrough or span.kind is not SpanKind.PASSTHROUGH
    ]
    return SourceMapResponse(rewritten=source_map.rewritten_text, spans=spans)


def diagnostic_dto(diagnostic: Diagnostic, lines: LineIndex) -> DiagnosticDTO:
    start, end = lines.range_positions(diagnostic.range)
    return DiagnosticDTO(
        start=PositionDTO(line=start.line, character=start.character),
        end=PositionDTO(line=end.line, character=end.character),
        severity=diagnostic.severity.value,
        code=diagnostic.code,
        message=diagnostic.message,
        source=diagnostic.source,
        origin=diagnostic.origin.value,
    )


def completion_response(result: CompletionResult) -> CompletionResponse:
    span = result.context.match_span
    return CompletionResponse(
        pattern=(
            result.context.matched_pattern_kind.value
            if result.context.matched_pattern_kind is not None
            else None
        ),
        match_start=span.start if span is not None else None,
        match_end=span.end if span is not None else None,
        candidates=[
            CompletionCandidateDTO(
                label=candidate.label,
                insert_text=candidate.insert_text,
                kind=candidate.kind.value,
                pattern=candidate.pattern.value,
                detail=candidate.detail,
                sort_rank=candidate.sort_rank,
            )
            for candidate in result.candidates
        ],
        auto_insertion=result.auto_insertion,
    )
