from __future__ import annotations

import ast

import pytest

from sagelens.mapping.model import (
    ExpansionPayload,
    OperatorPayload,
    RationalPayload,
    SpanKind,
    StatementRole,
    TextRange,
)
from sagelens.mapping.recognizer import (
    OperatorRule,
    Recognizer,
    recognize,
)


def _kinds(text: str) -> list[SpanKind]:
    return [span.kind for span in recognize(text).spans]


def test_power_operator_is_rewritten() -> None:
    result = recognize("x = 2^3")
    assert result.rewritten_text == "x = 2**3"
    assert _kinds("x = 2^3") == [
        SpanKind.PASSTHROUGH,
        SpanKind.OPERATOR_SUBSTITUTION,
        SpanKind.PASSTHROUGH,
    ]
    operator = result.spans[1]
    assert operator.original == TextRange(5, 6)
    assert operator.rewritten == TextRange(5, 7)
    assert operator.payload == OperatorPayload("^", "**")


def test_xor_and_compound_assignment() -> None:
    assert recognize("a ^^ b").rewritten_text == "a ^ b"
    assert recognize("x ^= 2").rewritten_text == "x **= 2"


def test_rational_literal_is_tagged_but_unchanged() -> None:
    result = recognize("y = 1/3")
    assert result.rewritten_text == "y = 1/3"
    rational = result.spans[1]
    assert rational.kind is SpanKind.RATIONAL_LITERAL
    assert rational.original == TextRange(4, 7)
    assert rational.payload == RationalPayload(1, 3)


@pytest.mark.parametrize(
    "text",
    [
        "x1/2",
        "a.b/2",
        "f(x)/2",
        "1/2.5",
        "1/2^3",
        "2^1/3",
        "1/2x",
    ],
)
def test_rational_literal_requires_standalone_operands(text: str) -> None:
    assert SpanKind.RATIONAL_LITERAL not in _kinds(text)


def test_rational_literal_inside_brackets() -> None:
    kinds = _kinds("m = [[1/2, 0], [0, 1/3]]")
    assert kinds.count(SpanKind.RATIONAL_LITERAL) == 2


def test_strings_and_comments_are_never_rewritten() -> None:
    text = "s = 'a^b'  # 2^3\nt = \"\"\"\n2^3\n\"\"\"\nu = rb'^'\n"
    assert recognize(text).rewritten_text == text
    assert _kinds(text) == [SpanKind.PASSTHROUGH]


def test_generator_declaration_expands_to_two_statements() -> None:
    text = "P.<x> = Con(QQ)"
    result = recognize(text)
    assert result.rewritten_text == "P = Con(QQ, names=('x',))\n(x,) = P._first_ngens(1)"
    [span] = result.spans
    assert span.kind is SpanKind.DECLARATIVE_EXPANSION
    assert span.original == TextRange(0, 15)
    assert span.rewritten == TextRange(0, 50)
    payload = span.payload
    assert isinstance(payload, ExpansionPayload)
    assert payload.name == "P"
    assert payload.constructor == "Con"
    assert [generator.name for generator in payload.generators] == ["x"]
    assert payload.generators[0].original == TextRange(3, 4)
    assignment, binding = payload.statements
    assert assignment.role is StatementRole.ASSIGNMENT
    assert assignment.rewritten == TextRange(0, 25)
    assert binding.role is StatementRole.GENERATOR_BINDING
    assert binding.rewritten == TextRange(26, 50)
    assert binding.sources == (TextRange(1, 5),)


def test_declaration_rewrites_operators_inside_arguments() -> None:
    text = "P.<x, y> = PolynomialRing(GF(2^8))\nf = x^2\n"
    result = recognize(text)
    assert result.rewritten_text == (
        "P = PolynomialRing(GF(2**8), names=('x', 'y',))\n"
        "(x, y,) = P._first_ngens(2)\n"
        "f = x**2\n"
    )
    payload = result.spans[0].payload
    assert isinstance(payload, ExpansionPayload)
    carried = [
        (segment.original.slice(text), segment.rewritten.slice(result.rewritten_text))
        for segment in payload.segments
    ]
    assert ("^", "**") in carried
    assert carried[0] == ("P", "P")
    assert carried[-1] == (")", ")")


def test_declaration_keyword_argument_forms() -> None:
    assert recognize("G.<a> = Ctor()").rewritten_text.startswith("G = Ctor(names=('a',))")
    assert recognize("G.<a> = Ctor(4,)").rewritten_text.startswith("G = Ctor(4, names=('a',))")


def test_declaration_keeps_indentation_of_binding() -> None:
    text = "def f():\n    R.<t> = PowerSeriesRing(QQ)\n    return t\n"
    rewritten = recognize(text).rewritten_text
    assert "    R = PowerSeriesRing(QQ, names=('t',))\n    (t,) = R._first_ngens(1)\n" in rewritten


def test_declaration_after_semicolon_and_before_comment() -> None:
    result = recognize("a = 1; K.<a> = NumberField(x^2 + 1)  # field\n")
    assert SpanKind.DECLARATIVE_EXPANSION in [span.kind for span in result.spans]
    assert "names=('a',)" in result.rewritten_text


@pytest.mark.parametrize(
    "text",
    [
        "P.<> = PolynomialRing(QQ)",
        "P.<x, x> = PolynomialRing(QQ)",
        "P.<1x> = PolynomialRing(QQ)",
        "P.<for> = PolynomialRing(QQ)",
        "P.<x> = PolynomialRing(QQ",
        "P.<x> = PolynomialRing(QQ) + 1",
    ],
)
def test_malformed_declarations_degrade_to_passthrough(text: str) -> None:
    result = recognize(text)
    assert SpanKind.DECLARATIVE_EXPANSION not in [span.kind for span in result.spans]
    assert "names=" not in result.rewritten_text


def test_malformed_declaration_does_not_stop_scanning() -> None:
    result = recognize("P.<> = PolynomialRing(QQ)\ny = 2^3\n")
    assert result.rewritten_text == "P.<> = PolynomialRing(QQ)\ny = 2**3\n"


def test_declaration_is_only_recognized_at_statement_start() -> None:
    text = "f(P.<x> = PolynomialRing(QQ))"
    assert SpanKind.DECLARATIVE_EXPANSION not in _kinds(text)


def test_preamble_is_an_insertion_at_offset_zero() -> None:
    result = Recognizer(preamble="from sage.all import *").recognize("x = 2^3\n")
    assert result.rewritten_text == "from sage.all import *\nx = 2**3\n"
    insertion = result.spans[0]
    assert insertion.kind is SpanKind.INSERTION
    assert insertion.original == TextRange(0, 0)
    assert insertion.rewritten == TextRange(0, 23)


def test_custom_rule_registry() -> None:
    recognizer = Recognizer(rules=(OperatorRule("**", "^", name="reverse"),))
    assert recognizer.recognize("2**3").rewritten_text == "2^3"


def test_spans_reconstruct_both_texts() -> None:
    text = "P.<x> = PolynomialRing(QQ)\nf = x^2 + 1/2\n# 3^3\n"
    result = recognize(text)
    assert "".join(span.original.slice(text) for span in result.spans) == text
    assert (
        "".join(span.rewritten.slice(result.rewritten_text) for span in result.spans)
        == result.rewritten_text
    )


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (
            "if c: a = 1; P.<x> = PolynomialRing(QQ)\nelse:\n    pass\n",
            "if c: a = 1; P = PolynomialRing(QQ, names=('x',)); (x,) = P._first_ngens(1)\nelse:\n    pass\n",
        ),
        (
            "if c: P.<x> = PolynomialRing(QQ)\n",
            "if c: P = PolynomialRing(QQ, names=('x',)); (x,) = P._first_ngens(1)\n",
        ),
        (
            "for k in range(3): R.<t> = PowerSeriesRing(QQ); s = t^k\n",
            "for k in range(3): R = PowerSeriesRing(QQ, names=('t',)); (t,) = R._first_ngens(1); s = t**k\n",
        ),
        (
            "def f(): K.<a> = GF(4); return a\n",
            "def f(): K = GF(4, names=('a',)); (a,) = K._first_ngens(1); return a\n",
        ),
    ],
)
def test_declaration_inside_one_line_suite_stays_in_the_suite(text: str, expected: str) -> None:
    result = recognize(text)
    assert result.rewritten_text == expected
    assert SpanKind.DECLARATIVE_EXPANSION in [span.kind for span in result.spans]
    ast.parse(result.rewritten_text)


def test_mid_line_declaration_keeps_following_suite_parseable() -> None:
    text = "while n:\n    n -= 1; Q.<y> = PolynomialRing(QQ)\nelse:\n    pass\n"
    rewritten = recognize(text).rewritten_text
    assert rewritten == (
        "while n:\n    n -= 1; Q = PolynomialRing(QQ, names=('y',)); (y,) = Q._first_ngens(1)\n"
        "else:\n    pass\n"
    )
    ast.parse(rewritten)


@pytest.mark.parametrize("text", ["d = {1: P}\n", "f = lambda y: y^2\n", "x: int = 1/2\n"])
def test_colons_outside_compound_headers_are_not_statement_starts(text: str) -> None:
    result = recognize(text)
    assert SpanKind.DECLARATIVE_EXPANSION not in [span.kind for span in result.spans]
    ast.parse(result.rewritten_text)


def test_declaration_accepts_unicode_identifiers() -> None:
    result = recognize("Ω.<é, ß> = PolynomialRing(QQ)\n")
    assert result.rewritten_text == "Ω = PolynomialRing(QQ, names=('é', 'ß',))\n(é, ß,) = Ω._first_ngens(2)\n"
    payload = result.spans[0].payload
    assert isinstance(payload, ExpansionPayload)
    assert [generator.name for generator in payload.generators] == ["é", "ß"]
    assert payload.generators[0].original == TextRange(3, 4)
    ast.parse(result.rewritten_text)
