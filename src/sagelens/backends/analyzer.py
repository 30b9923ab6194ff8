from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol, Sequence

from sagelens.backends.process import ProcessRunner, run_process
from sagelens.config import AnalyzerSettings
from sagelens.exceptions import AnalyzerUnavailable
from sagelens.mapping.diagnostics import Diagnostic, Severity
from sagelens.mapping.lines import LineIndex
from sagelens.mapping.model import TextRange

logger = logging.getLogger(__name__)

# ruff: 0 = clean, 1 = violations found.
_SUCCESS_CODES = frozenset({0, 1})


class Analyzer(Protocol):
    async def analyze(self, text: str, *, filename: str = "untitled.py") -> list[Diagnostic]: ...


def python_filename(filename: str) -> str:
    path = Path(filename)
    if path.suffix == ".sage":
        path = path.with_suffix(".py")
    elif path.suffix != ".py":
        path = path.with_name(path.name + ".py")
    return path.name


def _row_column(entry: dict, key: str) -> tuple[int, int]:
    location = entry.get(key)
    if not isinstance(location, dict):
        raise AnalyzerUnavailable(f"analyzer entry without {key}")
    row = location.get("row")
    column = location.get("column")
    if not isinstance(row, int) or not isinstance(column, int):
        raise AnalyzerUnavailable(f"analyzer entry with malformed {key}")
    return max(row - 1, 0), max(column - 1, 0)


def parse_ruff_json(output: str, text: str) -> list[Diagnostic]:
    """Diagnostics, in offsets of ``text``, from ``ruff --output-format json``."""
    try:
        entries = json.loads(output or "[]")
    except json.JSONDecodeError as exc:
        raise AnalyzerUnavailable("analyzer produced malformed JSON", detail=str(exc)) from exc
    if not isinstance(entries, list):
        raise AnalyzerUnavailable("analyzer JSON is not a list")
    lines = LineIndex(text)
    diagnostics: list[Diagnostic] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise AnalyzerUnavailable("analyzer JSON entry is not an object")
        start_line, start_column = _row_column(entry, "location")
        end_line, end_column = _row_column(entry, "end_location")
        start = lines.offset(start_line, start_column)
        end = max(lines.offset(end_line, end_column), start)
        code = entry.get("code")
        diagnostics.append(
            Diagnostic(
                range=TextRange(start, end),
                severity=Severity.ERROR if code is None else Severity.WARNING,
                message=str(entry.get("message", "")),
                code=str(code) if code is not None else None,
                source="ruff",
            )
        )
    return diagnostics


class RuffAnalyzer:
    def __init__(
        self,
        command: str = "ruff",
        args: Sequence[str] = (),
        *,
        timeout: float = 10.0,
        cwd: Path | None = None,
        runner: ProcessRunner = run_process,
    ) -> None:
        self.command = command
        self.args = tuple(args)
        self.timeout = timeout
        self.cwd = cwd
        self.runner = runner

    def argv(self, filename: str) -> list[str]:
        return [
            self.command,
            "check",
            "--output-format",
            "json",
            "--no-fix",
            *self.args,
            "--stdin-filename",
            python_filename(filename),
            "-",
        ]

    async def analyze(self, text: str, *, filename: str = "untitled.py") -> list[Diagnostic]:
        argv = self.argv(filename)
        try:
            result = await self.runner(argv, input_text=text, timeout=self.timeout, cwd=self.cwd)
        except OSError as exc:
            raise AnalyzerUnavailable(f"cannot start {self.command}", detail=str(exc)) from exc
        except asyncio.TimeoutError as exc:
            raise AnalyzerUnavailable(f"{self.command} timed out after {self.timeout:g}s") from exc
        if result.returncode not in _SUCCESS_CODES:
            raise AnalyzerUnavailable(
                f"{self.command} exited with status {result.returncode}",
                detail=result.stderr,
            )
        diagnostics = parse_ruff_json(result.stdout, text)
        logger.debug("%s reported %d diagnostics", self.command, len(diagnostics))
        return diagnostics


def make_analyzer(
    settings: AnalyzerSettings,
    *,
    cwd: Path | None = None,
    runner: ProcessRunner = run_process,
) -> RuffAnalyzer:
    return RuffAnalyzer(
        settings.command,
        settings.args,
        timeout=settings.timeout_seconds,
        cwd=cwd,
        runner=runner,
    )
