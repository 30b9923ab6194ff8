from __future__ import annotations

import pytest

from sagelens.mapping.lexer import balanced_end, comment_end, ends_in_code, scan_string


@pytest.mark.parametrize(
    ("text", "end", "terminated"),
    [
        ("'a^b' + 1", 5, True),
        ('"a\\"b"', 6, True),
        ("'''x\n'y'\n''' + 1", 12, True),
        ("rb'^' ", 5, True),
        ("'open\nnext", 5, False),
        ('"""never closed', 15, False),
    ],
)
def test_scan_string(text: str, end: int, terminated: bool) -> None:
    token = scan_string(text, 0)
    assert token is not None
    assert (token.end, token.terminated) == (end, terminated)


def test_prefix_inside_identifier_is_not_a_string() -> None:
    assert scan_string("bar'x'", 2) is None
    assert scan_string("x = 1", 0) is None


def test_comment_end() -> None:
    assert comment_end("# a\nb", 0) == 3
    assert comment_end("# a", 0) == 3
    assert comment_end("a # b", 0) is None


def test_balanced_end_skips_strings_and_comments() -> None:
    text = "f(g(1), ')', # )\n 2)"
    assert balanced_end(text, 1) == len(text)
    assert balanced_end("f(1", 1) is None
    assert balanced_end("f('x", 1) is None


def test_ends_in_code() -> None:
    assert ends_in_code("x = 2*")
    assert ends_in_code("s = 'a' + ")
    assert not ends_in_code("s = 'a")
    assert not ends_in_code("x = 1  # 2^")
