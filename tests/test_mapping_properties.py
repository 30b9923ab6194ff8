from __future__ import annotations

import pytest

from sagelens.mapping.diagnostics import Diagnostic, Severity, map_diagnostics
from sagelens.mapping.model import Space, SpanKind, TextRange
from sagelens.mapping.source_map import build_source_map

from tests.samples import SAMPLES

PREAMBLES = ["", "from sage.all import *"]


def _maps():
    for text in SAMPLES:
        for preamble in PREAMBLES:
            yield text, preamble


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_spans_tile_both_texts(text: str, preamble: str) -> None:
    rewritten, source_map = build_source_map(text, preamble=preamble)
    assert "".join(span.original.slice(text) for span in source_map.spans) == text
    assert "".join(span.rewritten.slice(rewritten) for span in source_map.spans) == rewritten


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_rebuilding_is_deterministic(text: str, preamble: str) -> None:
    first_text, first = build_source_map(text, preamble=preamble)
    second_text, second = build_source_map(text, preamble=preamble)
    assert first_text == second_text
    assert first.spans == second.spans
    assert [span.payload for span in first.spans] == [span.payload for span in second.spans]


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_text_ends_map_to_each_other(text: str, preamble: str) -> None:
    rewritten, source_map = build_source_map(text, preamble=preamble)
    assert source_map.translate(len(text)) == len(rewritten)
    if text:
        assert source_map.translate_reverse(len(rewritten)) == len(text)


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_length_preserving_spans_round_trip(text: str, preamble: str) -> None:
    _, source_map = build_source_map(text, preamble=preamble)
    for span in source_map.spans:
        if span.kind in (SpanKind.DECLARATIVE_EXPANSION, SpanKind.INSERTION):
            continue
        offsets = range(span.original.start, span.original.end) if span.preserves_length else [span.original.start]
        for offset in offsets:
            assert source_map.translate_reverse(source_map.translate(offset)) == offset


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_reverse_points_stay_in_their_span(text: str, preamble: str) -> None:
    rewritten, source_map = build_source_map(text, preamble=preamble)
    for offset in range(len(rewritten)):
        span = source_map.span_at(Space.REWRITTEN, offset)
        assert span is not None
        back = source_map.translate_reverse(offset)
        assert span.original.start <= back <= span.original.end
        if span.kind is SpanKind.INSERTION:
            assert back == span.original.start


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_ranges_are_never_inverted(text: str, preamble: str) -> None:
    rewritten, source_map = build_source_map(text, preamble=preamble)
    for start in range(len(rewritten) + 1):
        for end in range(start, min(start + 12, len(rewritten)) + 1):
            mapped = source_map.translate_range_reverse(TextRange(start, end))
            assert 0 <= mapped.start <= mapped.end <= len(text)
    for start in range(len(text) + 1):
        for end in range(start, min(start + 12, len(text)) + 1):
            mapped = source_map.translate_range(TextRange(start, end))
            assert 0 <= mapped.start <= mapped.end <= len(rewritten)


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_every_mapped_diagnostic_lands_in_the_original(text: str, preamble: str) -> None:
    rewritten, source_map = build_source_map(text, preamble=preamble)
    diagnostics = [
        Diagnostic(TextRange(offset, min(offset + 3, len(rewritten))), Severity.WARNING, "w")
        for offset in range(len(rewritten) + 1)
    ]
    mapped = map_diagnostics(diagnostics, source_map, strict=True)
    assert len(mapped) == len(diagnostics)
    for diagnostic in mapped:
        assert diagnostic.range.end <= len(text)


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_translation_inverse_law(text: str, preamble: str) -> None:
    _, source_map = build_source_map(text, preamble=preamble)
    for span in source_map.spans:
        if span.kind is SpanKind.INSERTION:
            continue
        for offset in range(span.original.start, span.original.end):
            back = source_map.translate_reverse(source_map.translate(offset))
            assert span.original.start <= back < span.original.end


@pytest.mark.parametrize(("text", "preamble"), list(_maps()))
def test_generated_only_text_anchors_at_declaration(text: str, preamble: str) -> None:
    _, source_map = build_source_map(text, preamble=preamble)
    for span in source_map.spans:
        if span.kind is not SpanKind.DECLARATIVE_EXPANSION:
            continue
        payload = span.payload
        for offset in range(span.rewritten.start, span.rewritten.end):
            if payload.segment_at_rewritten(offset) is None:
                assert source_map.translate_reverse(offset) == span.original.start
