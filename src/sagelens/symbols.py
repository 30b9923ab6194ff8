"""Document outline: generator declarations plus top-level Python statements.

Declarations come from the expansion spans. Everything else is read from the
rewritten text with :mod:`ast` and mapped back through the source map, so an
outline is still produced when the analyzer is unavailable. Rewritten text
that does not parse yields the declarations alone.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterator

from sagelens.mapping.lines import LineIndex
from sagelens.mapping.model import ExpansionPayload, Space, SpanKind, TextRange
from sagelens.mapping.source_map import SourceMap

logger = logging.getLogger(__name__)


class SymbolKind(StrEnum):
    STRUCTURE = "structure"
    GENERATOR = "generator"
    VARIABLE = "variable"
    FUNCTION = "function"
    CLASS = "class"


@dataclass(frozen=True)
class Symbol:
    name: str
    kind: SymbolKind
    range: TextRange
    selection_range: TextRange
    detail: str = ""
    children: tuple[Symbol, ...] = ()


def _declaration_symbols(source_map: SourceMap) -> Iterator[Symbol]:
    for span in source_map.spans:
        payload = span.payload
        if not isinstance(payload, ExpansionPayload):
            continue
        children = tuple(
            Symbol(
                name=generator.name,
                kind=SymbolKind.GENERATOR,
                range=generator.original,
                selection_range=generator.original,
                detail=f"generator of {payload.name}",
            )
            for generator in payload.generators
        )
        yield Symbol(
            name=payload.name,
            kind=SymbolKind.STRUCTURE,
            range=span.original,
            selection_range=payload.name_range,
            detail=payload.constructor,
            children=children,
        )


class _Locator:
    """Maps ``ast`` node positions (UTF-8 byte columns) to original ranges."""

    def __init__(self, source_map: SourceMap) -> None:
        self.source_map = source_map
        self.lines = LineIndex(source_map.rewritten_text)

    def _offset(self, lineno: int, byte_column: int) -> int:
        line = lineno - 1
        start = self.lines.line_starts[line]
        encoded = self.lines.text[start : self.lines.line_end(line)].encode("utf-8")
        return start + len(encoded[:byte_column].decode("utf-8", errors="ignore"))

    def rewritten(self, node: ast.AST) -> TextRange:
        start = self._offset(node.lineno, node.col_offset)
        if node.end_lineno is None or node.end_col_offset is None:
            return TextRange(start, start)
        end = self._offset(node.end_lineno, node.end_col_offset)
        return TextRange(start, max(start, end))

    def original(self, node: ast.AST) -> TextRange:
        return self.source_map.translate_range_reverse(self.rewritten(node))

    def is_generated(self, node: ast.AST) -> bool:
        span = self.source_map.span_at(Space.REWRITTEN, self.rewritten(node).start)
        return span is not None and span.kind in (SpanKind.DECLARATIVE_EXPANSION, SpanKind.INSERTION)

    def definition_name(self, node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef) -> TextRange:
        statement = self.original(node)
        pattern = re.compile(rf"\b(?:def|class)[ \t]+({re.escape(node.name)})\b")
        found = pattern.search(self.source_map.original_text, statement.start, statement.end)
        if found is None:
            return statement
        return TextRange(found.start(1), found.end(1))


def _target_names(target: ast.expr) -> Iterator[ast.Name]:
    if isinstance(target, ast.Name):
        yield target
    elif isinstance(target, (ast.Tuple, ast.List)):
        for element in target.elts:
            yield from _target_names(element)
    elif isinstance(target, ast.Starred):
        yield from _target_names(target.value)


def _first_line(text: str) -> str:
    return text.strip().split("\n", 1)[0].strip()


def _statement_symbols(locator: _Locator, node: ast.stmt) -> Iterator[Symbol]:
    if isinstance(node, (ast.Assign, ast.AnnAssign)):
        targets = node.targets if isinstance(node, ast.Assign) else [node.target]
        detail = ""
        if node.value is not None:
            detail = _first_line(locator.original(node.value).slice(locator.source_map.original_text))
        statement = locator.original(node)
        for target in targets:
            for name in _target_names(target):
                yield Symbol(
                    name=name.id,
                    kind=SymbolKind.VARIABLE,
                    range=statement,
                    selection_range=locator.original(name),
                    detail=detail,
                )
    elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
        kind = SymbolKind.CLASS if isinstance(node, ast.ClassDef) else SymbolKind.FUNCTION
        yield Symbol(
            name=node.name,
            kind=kind,
            range=locator.original(node),
            selection_range=locator.definition_name(node),
        )
    elif isinstance(node, ast.Expr) and isinstance(node.value, ast.Call):
        func = node.value.func
        if isinstance(func, ast.Name):
            yield Symbol(
                name=f"{func.id}()",
                kind=SymbolKind.FUNCTION,
                range=locator.original(node),
                selection_range=locator.original(func),
                detail="call",
            )


def _python_symbols(source_map: SourceMap) -> Iterator[Symbol]:
    try:
        module = ast.parse(source_map.rewritten_text)
    except (SyntaxError, ValueError) as exc:
        logger.debug("outline limited to declarations: %s", exc)
        return
    locator = _Locator(source_map)
    for node in module.body:
        if locator.is_generated(node):
            continue
        yield from _statement_symbols(locator, node)


def document_symbols(source_map: SourceMap) -> list[Symbol]:
    """Declarations with their generators as children, then plain statements, in text order."""
    symbols = [*_declaration_symbols(source_map), *_python_symbols(source_map)]
    return sorted(symbols, key=lambda symbol: (symbol.range.start, symbol.range.end))
