"""Sage-to-Python rewriting and the source map that relates the two texts."""

from sagelens.mapping.diagnostics import Diagnostic, Origin, Severity, map_diagnostics
from sagelens.mapping.lines import LineIndex, LinePosition
from sagelens.mapping.model import (
    Bias,
    Space,
    SpanKind,
    TextRange,
    TransformationSpan,
)
from sagelens.mapping.recognizer import Recognition, Recognizer, recognize
from sagelens.mapping.source_map import SourceMap, SourceMapCache, build_source_map
from sagelens.mapping.span_index import SpanIndex

__all__ = [
    "Bias",
    "Diagnostic",
    "LineIndex",
    "LinePosition",
    "Origin",
    "Recognition",
    "Recognizer",
    "Severity",
    "SourceMap",
    "SourceMapCache",
    "Space",
    "SpanIndex",
    "SpanKind",
    "TextRange",
    "TransformationSpan",
    "build_source_map",
    "map_diagnostics",
    "recognize",
]
