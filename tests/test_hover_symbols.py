from __future__ import annotations

import pytest

from sagelens.hover import hover_at, word_at
from sagelens.mapping.model import TextRange
from sagelens.symbols import SymbolKind, document_symbols


def test_word_at() -> None:
    assert word_at("x = factor(6)", 6) == TextRange(4, 10)
    assert word_at("x = factor(6)", 10) == TextRange(4, 10)
    assert word_at("x = 12", 5) is None
    assert word_at("x =  ", 4) is None


def test_operator_hovers(source_map_of) -> None:
    source_map = source_map_of("a = 2^3 ^^ 1")
    power = hover_at(source_map, 5)
    assert power.range == TextRange(5, 6)
    assert "exponentiation" in power.markdown
    assert "`**`" in power.markdown
    xor = hover_at(source_map, 8)
    assert xor.range == TextRange(8, 10)
    assert "bitwise exclusive or" in xor.markdown


def test_rational_hover(source_map_of) -> None:
    found = hover_at(source_map_of("y = 1/3"), 5)
    assert found.range == TextRange(4, 7)
    assert "exact rational" in found.markdown


def test_library_function_hover(source_map_of) -> None:
    found = hover_at(source_map_of("f = factor(60)"), 6)
    assert found.range == TextRange(4, 10)
    assert "factor(n)" in found.markdown
    assert "**Examples**" in found.markdown


def test_generator_hover(source_map_of) -> None:
    found = hover_at(source_map_of("P.<x, y> = PolynomialRing(QQ)"), 6)
    assert found.range == TextRange(6, 7)
    assert found.markdown == "`y`: generator 1 of `P` (`PolynomialRing`)"


def test_constructor_hover_inside_declaration(source_map_of) -> None:
    found = hover_at(source_map_of("K.<a> = GF(4)"), 9)
    assert found.range == TextRange(8, 10)
    assert "GF(4)" in found.markdown


def test_declaration_hover_shows_generated_code(source_map_of) -> None:
    found = hover_at(source_map_of("P.<x> = Con(QQ)"), 0)
    assert found.range == TextRange(0, 15)
    assert "Declares `P`" in found.markdown
    assert "(x,) = P._first_ngens(1)" in found.markdown


def test_no_hover_on_unknown_names(source_map_of) -> None:
    assert hover_at(source_map_of("value = other"), 9) is None


def test_hover_out_of_range(source_map_of) -> None:
    with pytest.raises(ValueError):
        hover_at(source_map_of("x"), 2)


def test_document_symbols(source_map_of) -> None:
    text = "P.<x, y> = PolynomialRing(QQ)\nz = 1\n    K.<a> = GF(4)\n"
    first, second = document_symbols(source_map_of(text))
    assert first.name == "P"
    assert first.kind is SymbolKind.STRUCTURE
    assert first.range == TextRange(0, 29)
    assert first.selection_range == TextRange(0, 1)
    assert first.detail == "PolynomialRing"
    assert [child.name for child in first.children] == ["x", "y"]
    assert all(child.kind is SymbolKind.GENERATOR for child in first.children)
    assert second.name == "K"
    assert second.children[0].detail == "generator of K"


def test_outline_falls_back_to_declarations_when_rewrite_does_not_parse(source_map_of) -> None:
    text = "P.<x> = Con(QQ)\nz = 1\n    K.<a> = GF(4)\n"
    assert [symbol.name for symbol in document_symbols(source_map_of(text))] == ["P", "K"]


def test_plain_assignment_is_a_variable_symbol(source_map_of) -> None:
    [symbol] = document_symbols(source_map_of("x = 2^3"))
    assert symbol.name == "x"
    assert symbol.kind is SymbolKind.VARIABLE
    assert symbol.range == TextRange(0, 7)
    assert symbol.selection_range == TextRange(0, 1)
    assert symbol.detail == "2^3"


def test_outline_lists_statements_in_original_coordinates(source_map_of) -> None:
    text = (
        "P.<x> = PolynomialRing(QQ)\n"
        "f = x^2 + 1\n"
        "\n"
        "def g(n):\n"
        "    return n\n"
        "\n"
        "print(f)\n"
        "class A:\n"
        "    pass\n"
    )
    found = document_symbols(source_map_of(text, preamble="from sage.all import *"))
    assert [(symbol.name, symbol.kind) for symbol in found] == [
        ("P", SymbolKind.STRUCTURE),
        ("f", SymbolKind.VARIABLE),
        ("g", SymbolKind.FUNCTION),
        ("print()", SymbolKind.FUNCTION),
        ("A", SymbolKind.CLASS),
    ]
    variable = found[1]
    assert variable.range == TextRange(27, 38)
    assert variable.selection_range == TextRange(27, 28)
    assert variable.detail == "x^2 + 1"
    assert found[2].range == TextRange(40, 62)
    assert found[2].selection_range == TextRange(44, 45)
    assert found[3].range == TextRange(64, 72)
    assert found[3].selection_range == TextRange(64, 69)
    assert found[4].selection_range == TextRange(79, 80)


def test_outline_columns_are_codepoints(source_map_of) -> None:
    first, second = document_symbols(source_map_of("é = 1\nω = é^2\n"))
    assert (first.name, first.range) == ("é", TextRange(0, 5))
    assert (second.name, second.range, second.selection_range) == ("ω", TextRange(6, 13), TextRange(6, 7))
    assert second.detail == "é^2"


def test_unpacked_targets_each_get_a_symbol(source_map_of) -> None:
    found = document_symbols(source_map_of("a, (b, *c) = 1, (2, 3)\n"))
    assert [symbol.name for symbol in found] == ["a", "b", "c"]
    assert found[1].selection_range == TextRange(4, 5)


def test_variable_hover_reports_assigned_value(source_map_of) -> None:
    found = hover_at(source_map_of("M = matrix([[1, 2], [3, 4]])\nN = M^2\n"), 33)
    assert found is not None
    assert found.range == TextRange(33, 34)
    assert "M = matrix([[1, 2], [3, 4]])" in found.markdown
    assert "Variable holding a `matrix` value, assigned on line 1." in found.markdown


def test_variable_hover_on_plain_value(source_map_of) -> None:
    found = hover_at(source_map_of("value = other"), 2)
    assert found is not None
    assert found.range == TextRange(0, 5)
    assert found.markdown == "```python\nvalue = other\n```\n\nVariable assigned on line 1."
