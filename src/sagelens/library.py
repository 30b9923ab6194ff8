"""Static facts about the Sage names the editor features know about."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FunctionInfo:
    name: str
    signature: str
    description: str
    examples: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConstructorInfo:
    name: str
    default_argument: str
    default_generators: tuple[str, ...]
    description: str
    takes_base_ring: bool = True

    @property
    def call(self) -> str:
        return f"{self.name}({self.default_argument})"


CONSTRUCTORS: tuple[ConstructorInfo, ...] = (
    ConstructorInfo("PolynomialRing", "QQ", ("x",), "Polynomial ring over a base ring"),
    ConstructorInfo("LaurentPolynomialRing", "QQ", ("x",), "Laurent polynomial ring"),
    ConstructorInfo("PowerSeriesRing", "QQ", ("t",), "Power series ring"),
    ConstructorInfo("GF", "4", ("a",), "Finite field with a named generator", takes_base_ring=False),
    ConstructorInfo(
        "NumberField",
        "x^2 + 1",
        ("a",),
        "Number field defined by a polynomial",
        takes_base_ring=False,
    ),
    ConstructorInfo("FunctionField", "QQ", ("x",), "Rational function field"),
)

BASE_RINGS: tuple[tuple[str, str], ...] = (
    ("QQ", "Rational numbers"),
    ("ZZ", "Integers"),
    ("RR", "Real numbers (53-bit precision)"),
    ("CC", "Complex numbers (53-bit precision)"),
    ("GF(2)", "Finite field with two elements"),
)

FUNCTIONS: tuple[FunctionInfo, ...] = (
    FunctionInfo(
        "factor",
        "factor(n)",
        "Factor an integer or polynomial into irreducible factors.",
        ("factor(60)  # 2^2 * 3 * 5", "factor(x^2 - 1)  # (x - 1) * (x + 1)"),
    ),
    FunctionInfo(
        "gcd",
        "gcd(a, b, ...)",
        "Compute the greatest common divisor of two or more integers.",
        ("gcd(12, 18)  # 6", "gcd(24, 36, 48)  # 12"),
    ),
    FunctionInfo(
        "lcm",
        "lcm(a, b, ...)",
        "Compute the least common multiple of two or more integers.",
        ("lcm(12, 18)  # 36", "lcm(4, 6, 8)  # 24"),
    ),
    FunctionInfo(
        "is_prime",
        "is_prime(n)",
        "Test whether an integer is prime.",
        ("is_prime(17)  # True", "is_prime(15)  # False"),
    ),
    FunctionInfo(
        "matrix",
        "matrix(entries)",
        "Create a matrix from a list of lists.",
        ("matrix([[1, 2], [3, 4]])", "matrix(QQ, [[1/2, 0], [0, 1/3]])"),
    ),
    FunctionInfo(
        "vector",
        "vector(entries)",
        "Create a vector from a list.",
        ("vector([1, 2, 3])", "vector(QQ, [1/2, 1/3, 1/4])"),
    ),
    FunctionInfo("Matrix", "Matrix(entries)", "Create a matrix (alias of matrix)."),
    FunctionInfo("Vector", "Vector(entries)", "Create a vector (alias of vector)."),
    FunctionInfo(
        "PolynomialRing",
        "PolynomialRing(base_ring, names)",
        "Create a polynomial ring over a base ring.",
        ("PolynomialRing(QQ, 'x')", "PolynomialRing(ZZ, ['x', 'y'])"),
    ),
)

_FUNCTIONS_BY_NAME = {info.name: info for info in FUNCTIONS}
_CONSTRUCTORS_BY_NAME = {info.name: info for info in CONSTRUCTORS}


def function_info(name: str) -> FunctionInfo | None:
    return _FUNCTIONS_BY_NAME.get(name)


def constructor_info(name: str) -> ConstructorInfo | None:
    return _CONSTRUCTORS_BY_NAME.get(name)
