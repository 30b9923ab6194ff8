"""Adapters for the external converter and analyzer processes."""

from sagelens.backends.analyzer import Analyzer, RuffAnalyzer, make_analyzer, parse_ruff_json
from sagelens.backends.converter import (
    BuiltinConverter,
    Converter,
    SagePreparseConverter,
    make_converter,
)
from sagelens.backends.process import ProcessResult, ProcessRunner, run_process

__all__ = [
    "Analyzer",
    "BuiltinConverter",
    "Converter",
    "ProcessResult",
    "ProcessRunner",
    "RuffAnalyzer",
    "SagePreparseConverter",
    "make_analyzer",
    "make_converter",
    "parse_ruff_json",
    "run_process",
]
