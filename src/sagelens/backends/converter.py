"""Dialect converters.

The pipeline uses a converter as a gate: if the converter rejects a version,
analysis for that version is unavailable. Mapping always runs on the
recognizer's own rewrite, whose spans are known.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from sagelens.backends.process import ProcessRunner, run_process
from sagelens.config import ConverterSettings
from sagelens.exceptions import ConverterUnavailable
from sagelens.mapping.recognizer import Recognizer

logger = logging.getLogger(__name__)


class Converter(Protocol):
    name: str

    async def convert(self, text: str, *, filename: str = "untitled.sage") -> str: ...


class BuiltinConverter:
    name = "builtin"

    def __init__(self, recognizer: Recognizer | None = None) -> None:
        self.recognizer = recognizer or Recognizer()

    async def convert(self, text: str, *, filename: str = "untitled.sage") -> str:
        return self.recognizer.recognize(text).rewritten_text


class SagePreparseConverter:
    """``sage --preparse`` on a scratch copy of the document."""

    name = "sage"

    def __init__(
        self,
        executable: str = "sage",
        *,
        timeout: float = 30.0,
        runner: ProcessRunner = run_process,
    ) -> None:
        self.executable = executable
        self.timeout = timeout
        self.runner = runner

    async def _run(self, argv: list[str], cwd: Path | None = None) -> str:
        try:
            result = await self.runner(argv, timeout=self.timeout, cwd=cwd)
        except OSError as exc:
            raise ConverterUnavailable(f"cannot start {self.executable}", detail=str(exc)) from exc
        except asyncio.TimeoutError as exc:
            raise ConverterUnavailable(
                f"{self.executable} timed out after {self.timeout:g}s"
            ) from exc
        if result.returncode != 0:
            raise ConverterUnavailable(
                f"{self.executable} exited with status {result.returncode}",
                detail=result.stderr,
            )
        return result.stdout

    async def probe(self) -> str:
        output = await self._run([self.executable, "--version"])
        return output.strip()

    async def convert(self, text: str, *, filename: str = "untitled.sage") -> str:
        stem = Path(filename).stem or "untitled"
        scratch = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="sagelens-"))
        try:
            source = scratch / f"{stem}.sage"
            await asyncio.to_thread(source.write_text, text, encoding="utf-8")
            await self._run([self.executable, "--preparse", str(source)], cwd=scratch)
            target = scratch / f"{stem}.sage.py"
            try:
                converted = await asyncio.to_thread(target.read_text, encoding="utf-8")
            except OSError as exc:
                raise ConverterUnavailable(
                    f"{self.executable} --preparse produced no output", detail=str(exc)
                ) from exc
        finally:
            await asyncio.to_thread(shutil.rmtree, scratch, ignore_errors=True)
        logger.debug("sage --preparse produced %d characters", len(converted))
        return converted


def make_converter(
    settings: ConverterSettings,
    *,
    recognizer: Recognizer | None = None,
    runner: ProcessRunner = run_process,
) -> Converter:
    if settings.backend == "sage":
        return SagePreparseConverter(
            settings.sage_executable,
            timeout=settings.timeout_seconds,
            runner=runner,
        )
    return BuiltinConverter(recognizer)
