"""Sage snippets exercising every rewrite rule, shared by property tests."""

SAMPLES = [
    "",
    "x = 2^3\n",
    "y = 1/3\n",
    "P.<x> = Con(QQ)",
    "P.<x, y> = PolynomialRing(GF(2^8))\nf = x^2 + y^^3  # x^2\n",
    "def f(n):\n    R.<t> = PowerSeriesRing(QQ)\n    return t^n\n",
    "s = 'a^b'; t = \"\"\"\n2^3\n\"\"\"\nu = 3^2\n",
    "P.<> = PolynomialRing(QQ)\nQ.<x, x> = GF(4)\nz = 1/2 + 3/4^2\n",
    "v = matrix(QQ, [[1/2, 0], [0, 1/3]])\nw = v^-1\n",
    "K.<a> = NumberField(x^2 + 1); b = a^3\n",
    "if c: a = 1; P.<x> = PolynomialRing(QQ)\nelse:\n    pass\n",
    "Ω.<é> = GF(2^4); w = é^2\n",
]
