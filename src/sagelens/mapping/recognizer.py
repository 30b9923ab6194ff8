"""Rewrite of the Sage dialect into plain Python, recording every change.

The recognizer walks the text once. Comments and string literals are copied
verbatim; everywhere else the rules of :data:`DEFAULT_RULES` are tried in
order and the first match wins. Text no rule claims becomes passthrough.
"""

from __future__ import annotations

import keyword
import logging
import re
from dataclasses import dataclass
from typing import Protocol, Sequence

from sagelens.mapping.lexer import (
    balanced_end,
    bracket_delta,
    comment_end,
    is_word_char,
    scan_string,
)
from sagelens.mapping.model import (
    CarriedSegment,
    ExpansionPayload,
    GeneratedStatement,
    Generator,
    OperatorPayload,
    RationalPayload,
    SpanKind,
    SpanPayload,
    StatementRole,
    TextRange,
    TransformationSpan,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleMatch:
    original: TextRange
    replacement: str
    kind: SpanKind
    payload: SpanPayload = None


class RewriteRule(Protocol):
    name: str
    statement_start_only: bool

    def match(
        self,
        text: str,
        position: int,
        rewritten_at: int,
        recognizer: Recognizer,
    ) -> RuleMatch | None: ...


@dataclass(frozen=True)
class OperatorRule:
    operator: str
    replacement: str
    name: str = "operator"
    statement_start_only: bool = False

    def match(
        self,
        text: str,
        position: int,
        rewritten_at: int,
        recognizer: Recognizer,
    ) -> RuleMatch | None:
        if not text.startswith(self.operator, position):
            return None
        return RuleMatch(
            original=TextRange(position, position + len(self.operator)),
            replacement=self.replacement,
            kind=SpanKind.OPERATOR_SUBSTITUTION,
            payload=OperatorPayload(self.operator, self.replacement),
        )


_RATIONAL = re.compile(r"(?P<numerator>\d+)/(?P<denominator>\d+)")
_BINDS_TIGHTER = ("^", "**")


def _previous_code_char(text: str, position: int) -> str:
    cursor = position - 1
    while cursor >= 0 and text[cursor] in " \t":
        cursor -= 1
    return text[cursor] if cursor >= 0 else ""


def _next_code_text(text: str, position: int) -> str:
    cursor = position
    while cursor < len(text) and text[cursor] in " \t":
        cursor += 1
    return text[cursor : cursor + 2]


@dataclass(frozen=True)
class RationalLiteralRule:
    """``1/3`` stays textually identical but denotes an exact rational."""

    name: str = "rational_literal"
    statement_start_only: bool = False

    def match(
        self,
        text: str,
        position: int,
        rewritten_at: int,
        recognizer: Recognizer,
    ) -> RuleMatch | None:
        if position > 0 and (is_word_char(text[position - 1]) or text[position - 1] in ".)]"):
            return None
        if _previous_code_char(text, position) in ("^", "*", "/"):
            return None
        found = _RATIONAL.match(text, position)
        if found is None:
            return None
        end = found.end()
        if end < len(text) and (is_word_char(text[end]) or text[end] in ".(["):
            return None
        if _next_code_text(text, end).startswith(_BINDS_TIGHTER):
            return None
        return RuleMatch(
            original=TextRange(position, end),
            replacement=found.group(),
            kind=SpanKind.RATIONAL_LITERAL,
            payload=RationalPayload(
                numerator=int(found.group("numerator")),
                denominator=int(found.group("denominator")),
            ),
        )


_DECLARATION_HEAD = re.compile(
    r"(?P<name>[^\W\d]\w*)\.<(?P<generators>[^<>\n]*)>"
    r"(?P<assign>[ \t]*=(?!=)[ \t]*)"
    r"(?P<constructor>[^\W\d][\w.]*)[ \t]*\("
)
_MALFORMED_HEAD = re.compile(r"[^\W\d]\w*\.<[^<>\n]*>?")
_IDENTIFIER = re.compile(r"[^\W\d]\w*")
_COMPOUND_HEADER = re.compile(
    r"(?:async[ \t]+)?(?:if|elif|else|for|while|try|except|finally|with|def|class)\b"
)


def _parse_generators(raw: str, offset: int) -> tuple[Generator, ...] | None:
    generators: list[Generator] = []
    seen: set[str] = set()
    cursor = 0
    for part in raw.split(","):
        stripped = part.strip()
        start = offset + cursor + (len(part) - len(part.lstrip()))
        cursor += len(part) + 1
        if not stripped or _IDENTIFIER.fullmatch(stripped) is None:
            return None
        if keyword.iskeyword(stripped) or stripped in seen:
            return None
        seen.add(stripped)
        generators.append(Generator(stripped, TextRange(start, start + len(stripped))))
    return tuple(generators)


def _statement_tail_ok(text: str, position: int) -> bool:
    cursor = position
    while cursor < len(text) and text[cursor] in " \t":
        cursor += 1
    return cursor == len(text) or text[cursor] in "\n#;\r"


def _binding_separator(text: str, position: int) -> str:
    """New line at the declaration's indentation, or ``"; "`` mid-line."""
    line_start = text.rfind("\n", 0, position) + 1
    indent = text[line_start:position]
    if indent.strip(" \t"):
        return "; "
    return "\n" + indent


@dataclass(frozen=True)
class GeneratorDeclarationRule:
    """``P.<x, y> = Ctor(args)`` -> assignment plus ``_first_ngens`` binding."""

    name: str = "generator_declaration"
    statement_start_only: bool = True

    def match(
        self,
        text: str,
        position: int,
        rewritten_at: int,
        recognizer: Recognizer,
    ) -> RuleMatch | None:
        head = _DECLARATION_HEAD.match(text, position)
        if head is None:
            return self._degraded(text, position)
        generators = _parse_generators(head.group("generators"), head.start("generators"))
        open_paren = head.end() - 1
        close = balanced_end(text, open_paren)
        if generators is None or close is None or not _statement_tail_ok(text, close):
            return self._degraded(text, position)

        name = head.group("name")
        name_range = TextRange(head.start("name"), head.end("name"))
        header_end = head.end("generators") + 1
        carried = TextRange(header_end, close - 1)

        segments: list[CarriedSegment] = []
        cursor = rewritten_at
        segments.append(CarriedSegment(name_range, TextRange(cursor, cursor + len(name))))
        parts = [name]
        cursor += len(name)
        for original, replacement in recognizer.rewrite_inline(text, carried.start, carried.end):
            segments.append(CarriedSegment(original, TextRange(cursor, cursor + len(replacement))))
            parts.append(replacement)
            cursor += len(replacement)

        names = ", ".join(repr(generator.name) for generator in generators) + ","
        arguments = text[open_paren + 1 : close - 1]
        if not arguments.strip():
            keyword_text = f"names=({names})"
        elif arguments.rstrip().endswith(","):
            keyword_text = f" names=({names})"
        else:
            keyword_text = f", names=({names})"
        parts.append(keyword_text)
        cursor += len(keyword_text)
        segments.append(CarriedSegment(TextRange(close - 1, close), TextRange(cursor, cursor + 1)))
        parts.append(")")
        cursor += 1
        assignment = GeneratedStatement(
            role=StatementRole.ASSIGNMENT,
            rewritten=TextRange(rewritten_at, cursor),
            sources=(name_range, TextRange(header_end, close)),
        )

        separator = _binding_separator(text, position)
        parts.append(separator)
        cursor += len(separator)
        targets = ", ".join(generator.name for generator in generators) + ","
        binding_text = f"({targets}) = {name}._first_ngens({len(generators)})"
        parts.append(binding_text)
        binding = GeneratedStatement(
            role=StatementRole.GENERATOR_BINDING,
            rewritten=TextRange(cursor, cursor + len(binding_text)),
            sources=(TextRange(name_range.end, header_end),),
        )

        return RuleMatch(
            original=TextRange(position, close),
            replacement="".join(parts),
            kind=SpanKind.DECLARATIVE_EXPANSION,
            payload=ExpansionPayload(
                name=name,
                name_range=name_range,
                constructor=head.group("constructor"),
                generators=generators,
                statements=(assignment, binding),
                segments=tuple(segments),
            ),
        )

    def _degraded(self, text: str, position: int) -> RuleMatch | None:
        malformed = _MALFORMED_HEAD.match(text, position)
        if malformed is None:
            return None
        logger.debug("malformed generator declaration at offset %d", position)
        return RuleMatch(
            original=TextRange(position, malformed.end()),
            replacement=malformed.group(),
            kind=SpanKind.PASSTHROUGH,
        )


DEFAULT_RULES: tuple[RewriteRule, ...] = (
    GeneratorDeclarationRule(),
    OperatorRule("^^", "^", name="xor_operator"),
    OperatorRule("^", "**", name="power_operator"),
    RationalLiteralRule(),
)


@dataclass(frozen=True)
class Recognition:
    original_text: str
    rewritten_text: str
    spans: tuple[TransformationSpan, ...]


class _Assembler:
    def __init__(self, text: str, rewritten_start: int = 0) -> None:
        self.text = text
        self.parts: list[str] = []
        self.spans: list[TransformationSpan] = []
        self.rewritten_length = rewritten_start
        self.pending: int | None = None

    def rewritten_at(self, position: int) -> int:
        if self.pending is None:
            return self.rewritten_length
        return self.rewritten_length + (position - self.pending)

    def keep(self, start: int) -> None:
        if self.pending is None:
            self.pending = start

    def flush(self, position: int) -> None:
        if self.pending is None or self.pending >= position:
            self.pending = None
            return
        chunk = self.text[self.pending : position]
        self.emit(TextRange(self.pending, position), chunk, SpanKind.PASSTHROUGH)
        self.pending = None

    def emit(
        self,
        original: TextRange,
        replacement: str,
        kind: SpanKind,
        payload: SpanPayload = None,
    ) -> None:
        rewritten = TextRange(self.rewritten_length, self.rewritten_length + len(replacement))
        self.spans.append(TransformationSpan(original, rewritten, kind, payload))
        self.parts.append(replacement)
        self.rewritten_length = rewritten.end


class Recognizer:
    def __init__(
        self,
        rules: Sequence[RewriteRule] = DEFAULT_RULES,
        *,
        preamble: str = "",
    ) -> None:
        self.rules = tuple(rules)
        self.inline_rules = tuple(rule for rule in self.rules if not rule.statement_start_only)
        if preamble and not preamble.endswith("\n"):
            preamble += "\n"
        self.preamble = preamble

    def recognize(self, text: str) -> Recognition:
        assembler = _Assembler(text)
        if self.preamble:
            assembler.emit(TextRange.empty(0), self.preamble, SpanKind.INSERTION)
        self._scan(text, 0, len(text), assembler, self.rules)
        return Recognition(
            original_text=text,
            rewritten_text="".join(assembler.parts),
            spans=tuple(assembler.spans),
        )

    def rewrite_inline(self, text: str, start: int, end: int) -> list[tuple[TextRange, str]]:
        """Apply the inline rules to ``text[start:end]`` only."""
        assembler = _Assembler(text)
        self._scan(text, start, end, assembler, self.inline_rules)
        return [
            (span.original, span.rewritten.slice("".join(assembler.parts)))
            for span in assembler.spans
        ]

    def _scan(
        self,
        text: str,
        start: int,
        end: int,
        assembler: _Assembler,
        rules: Sequence[RewriteRule],
    ) -> None:
        position = start
        depth = 0
        statement_start = True
        continued = False
        header = start
        while position < end:
            char = text[position]
            if statement_start and char not in " \t\n\r":
                header = position
                found = self._apply(rules, text, position, end, assembler, statement_only=True)
                if found is not None:
                    position = found
                    statement_start = False
                    continue

            stop = comment_end(text, position)
            if stop is None:
                token = scan_string(text, position)
                stop = min(token.end, end) if token is not None else None
            if stop is not None:
                assembler.keep(position)
                position = max(min(stop, end), position + 1)
                statement_start = False
                continue

            found = self._apply(rules, text, position, end, assembler, statement_only=False)
            if found is not None:
                position = found
                statement_start = False
                continue

            assembler.keep(position)
            if char == "\n":
                statement_start = depth == 0 and not continued
                continued = False
            elif char == ";" and depth == 0:
                statement_start = True
            elif char == ":" and depth == 0 and _COMPOUND_HEADER.match(text, header):
                # one-line suite: ``if c: P.<x> = ...``
                statement_start = True
            elif char not in " \t\r":
                depth = max(depth + bracket_delta(char), 0)
                continued = char == "\\"
                statement_start = False
            position += 1
        assembler.flush(end)

    def _apply(
        self,
        rules: Sequence[RewriteRule],
        text: str,
        position: int,
        end: int,
        assembler: _Assembler,
        *,
        statement_only: bool,
    ) -> int | None:
        for rule in rules:
            if rule.statement_start_only != statement_only:
                continue
            found = rule.match(text, position, assembler.rewritten_at(position), self)
            if found is None or found.original.end > end:
                continue
            if found.kind is SpanKind.PASSTHROUGH:
                assembler.keep(position)
                return found.original.end
            assembler.flush(position)
            assembler.emit(found.original, found.replacement, found.kind, found.payload)
            return found.original.end
        return None


_DEFAULT_RECOGNIZER = Recognizer()


def recognize(text: str, *, preamble: str = "") -> Recognition:
    recognizer = Recognizer(preamble=preamble) if preamble else _DEFAULT_RECOGNIZER
    return recognizer.recognize(text)
