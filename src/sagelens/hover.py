from __future__ import annotations

import re
from dataclasses import dataclass

from sagelens.library import constructor_info, function_info
from sagelens.mapping.lexer import is_word_char
from sagelens.mapping.model import (
    ExpansionPayload,
    OperatorPayload,
    RationalPayload,
    Space,
    SpanKind,
    TextRange,
    TransformationSpan,
)
from sagelens.mapping.source_map import SourceMap
from sagelens.symbols import SymbolKind, document_symbols


@dataclass(frozen=True)
class Hover:
    range: TextRange
    markdown: str


_CALLEE = re.compile(r"([^\W\d]\w*)[ \t]*\(")
_OPERATOR_NOTES = {
    "^": "exponentiation",
    "^^": "bitwise exclusive or",
}


def word_at(text: str, offset: int) -> TextRange | None:
    start = offset
    while start > 0 and is_word_char(text[start - 1]):
        start -= 1
    end = offset
    while end < len(text) and is_word_char(text[end]):
        end += 1
    if start == end or text[start].isdigit():
        return None
    return TextRange(start, end)


def _library_hover(name: str, word: TextRange) -> Hover | None:
    info = function_info(name)
    if info is not None:
        lines = [f"```python\n{info.signature}\n```", info.description]
        if info.examples:
            lines.append("**Examples**")
            lines.append("```python\n" + "\n".join(info.examples) + "\n```")
        return Hover(word, "\n\n".join(lines))
    constructor = constructor_info(name)
    if constructor is not None:
        return Hover(
            word,
            f"```python\n{constructor.call}\n```\n\n{constructor.description}",
        )
    return None


def _operator_hover(span: TransformationSpan, payload: OperatorPayload) -> Hover:
    note = _OPERATOR_NOTES.get(payload.operator, "operator")
    return Hover(
        span.original,
        f"`{payload.operator}` is Sage {note}; analyzed as Python `{payload.replacement}`.",
    )


def _rational_hover(span: TransformationSpan, payload: RationalPayload) -> Hover:
    return Hover(
        span.original,
        f"`{payload.numerator}/{payload.denominator}` is an exact rational number "
        "in Sage, not a floating-point division.",
    )


def _variable_hover(source_map: SourceMap, name: str, word: TextRange) -> Hover | None:
    assignments = [
        symbol
        for symbol in document_symbols(source_map)
        if symbol.kind is SymbolKind.VARIABLE and symbol.name == name
    ]
    if not assignments:
        return None
    earlier = [symbol for symbol in assignments if symbol.range.start <= word.start]
    symbol = earlier[-1] if earlier else assignments[0]
    line = source_map.original_text.count("\n", 0, symbol.range.start) + 1
    lines = [f"```python\n{name} = {symbol.detail}\n```" if symbol.detail else f"`{name}`"]
    head = _CALLEE.match(symbol.detail)
    if head is not None and (constructor_info(head.group(1)) or function_info(head.group(1))):
        lines.append(f"Variable holding a `{head.group(1)}` value, assigned on line {line}.")
    else:
        lines.append(f"Variable assigned on line {line}.")
    return Hover(word, "\n\n".join(lines))


def _expansion_hover(
    source_map: SourceMap,
    span: TransformationSpan,
    payload: ExpansionPayload,
    offset: int,
) -> Hover | None:
    for position, generator in enumerate(payload.generators):
        if generator.original.contains(offset) or generator.original.end == offset:
            return Hover(
                generator.original,
                f"`{generator.name}`: generator {position} of `{payload.name}` "
                f"(`{payload.constructor}`)",
            )
    word = word_at(source_map.original_text, offset)
    if word is not None and word.slice(source_map.original_text) == payload.constructor:
        found = _library_hover(payload.constructor, word)
        if found is not None:
            return found
    block = span.rewritten.slice(source_map.rewritten_text)
    return Hover(span.original, f"Declares `{payload.name}`; analyzed as\n\n```python\n{block}\n```")


def hover_at(source_map: SourceMap, offset: int) -> Hover | None:
    """Markdown describing the Sage construct under ``offset``, if any."""
    if offset < 0 or offset > len(source_map.original_text):
        raise ValueError(f"offset {offset} outside text of length {len(source_map.original_text)}")
    span = source_map.span_at(Space.ORIGINAL, offset)
    if span is not None:
        payload = span.payload
        if span.kind is SpanKind.OPERATOR_SUBSTITUTION and isinstance(payload, OperatorPayload):
            return _operator_hover(span, payload)
        if span.kind is SpanKind.RATIONAL_LITERAL and isinstance(payload, RationalPayload):
            return _rational_hover(span, payload)
        if isinstance(payload, ExpansionPayload):
            return _expansion_hover(source_map, span, payload, offset)
    word = word_at(source_map.original_text, offset)
    if word is None:
        return None
    name = word.slice(source_map.original_text)
    return _variable_hover(source_map, name, word) or _library_hover(name, word)
