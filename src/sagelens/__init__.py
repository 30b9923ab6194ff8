"""Sagelens package root."""

from sagelens.exceptions import NeverRaise, NeverThrown
from sagelens.invariants import never

__all__ = ["__version__", "NeverRaise", "NeverThrown", "never"]

__version__ = "0.1.0"
