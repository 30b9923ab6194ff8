from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from sagelens.backends.analyzer import make_analyzer
from sagelens.backends.converter import SagePreparseConverter, make_converter
from sagelens.backends.process import ProcessRunner, run_process
from sagelens.completion.catalog import default_catalog
from sagelens.completion.engine import CompletionRecognizer
from sagelens.config import Settings, load_settings
from sagelens.documents import UNAVAILABLE_CODE, AnalysisPipeline, Document, DocumentStore
from sagelens.exceptions import ConverterUnavailable
from sagelens.mapping.diagnostics import Diagnostic, Origin
from sagelens.mapping.lines import LineIndex
from sagelens.mapping.recognizer import Recognizer
from sagelens.mapping.source_map import SourceMapCache
from sagelens.schema import completion_response, diagnostic_dto, source_map_response

app = typer.Typer(add_completion=False)
DEFAULT_RUNNER: ProcessRunner = run_process

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Send sagelens logs to stderr; stdout carries the LSP stream."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"unknown log level: {level}")
    root = logging.getLogger("sagelens")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level for stderr."),
) -> None:
    configure_logging(log_level)


def _read_source(path: Path) -> str:
    if str(path) == "-":
        return sys.stdin.read()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        typer.echo(f"cannot read {path}: {exc}", err=True)
        raise typer.Exit(code=2)


def _settings(root: Path, config: Optional[Path]) -> Settings:
    return load_settings(root=root, config_path=config)


def _store(settings: Settings) -> DocumentStore:
    return DocumentStore(SourceMapCache(Recognizer(preamble=settings.preamble)))


@app.command("lsp")
def lsp() -> None:
    """Run the language server over stdio."""
    from sagelens.server import start

    start()


@app.command("map")
def map_source(
    path: Path = typer.Argument(..., help="Sage file, or - for stdin."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    rewritten: bool = typer.Option(False, "--rewritten", help="Print only the rewritten text."),
    include_passthrough: bool = typer.Option(False, "--all-spans"),
) -> None:
    """Print the Python rewrite of a Sage file and its source map."""
    settings = _settings(root, config)
    source_map = _store(settings).maps.get(_read_source(path))
    if rewritten:
        typer.echo(source_map.rewritten_text, nl=False)
        return
    response = source_map_response(source_map, include_passthrough=include_passthrough)
    typer.echo(response.model_dump_json(indent=2))


def _format_diagnostic(path: Path, document: Document, diagnostic: Diagnostic) -> str:
    position = document.lines.position(diagnostic.range.start)
    code = f"{diagnostic.code} " if diagnostic.code else ""
    suffix = " [generated]" if diagnostic.origin is Origin.GENERATED else ""
    return (
        f"{path}:{position.line + 1}:{position.character + 1}: "
        f"{code}{diagnostic.message}{suffix}"
    )


async def _check_all(
    paths: List[Path], settings: Settings, root: Path
) -> list[tuple[Path, Document, list[Diagnostic]]]:
    store = _store(settings)
    recognizer = store.maps.recognizer
    pipeline = AnalysisPipeline(
        store,
        make_converter(settings.converter, recognizer=recognizer, runner=DEFAULT_RUNNER),
        (
            make_analyzer(settings.analyzer, cwd=root, runner=DEFAULT_RUNNER)
            if settings.analyzer.enabled
            else None
        ),
        report_generated=settings.report_generated,
    )
    results = []
    for path in paths:
        document = store.open(path.resolve().as_uri(), _read_source(path), 0)
        diagnostics = await pipeline.analyze(document)
        results.append((path, document, diagnostics or []))
    return results


@app.command("check")
def check(
    paths: List[Path] = typer.Argument(..., help="Sage files to analyze."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    output_json: bool = typer.Option(False, "--json"),
) -> None:
    """Analyze Sage files and report diagnostics in Sage coordinates.

    Exit codes: 0 clean, 1 findings, 2 analysis unavailable.
    """
    settings = _settings(root, config)
    results = asyncio.run(_check_all(paths, settings, root))
    unavailable = False
    findings = False
    payload = {}
    for path, document, diagnostics in results:
        for diagnostic in diagnostics:
            if diagnostic.code == UNAVAILABLE_CODE:
                unavailable = True
            else:
                findings = True
        if output_json:
            payload[str(path)] = [
                diagnostic_dto(item, document.lines).model_dump() for item in diagnostics
            ]
        else:
            for diagnostic in diagnostics:
                typer.echo(_format_diagnostic(path, document, diagnostic))
    if output_json:
        typer.echo(json.dumps(payload, indent=2))
    if unavailable:
        raise typer.Exit(code=2)
    if findings:
        raise typer.Exit(code=1)


@app.command("complete")
def complete(
    path: Path = typer.Argument(..., help="Sage file, or - for stdin."),
    line: int = typer.Option(..., "--line", min=0, help="Zero-based line."),
    character: int = typer.Option(..., "--character", min=0, help="Zero-based column."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Print completion candidates for a cursor position."""
    settings = _settings(root, config)
    text = _read_source(path)
    completer = CompletionRecognizer(
        default_catalog(library_functions=settings.library_functions),
        auto_insert=settings.auto_insert,
    )
    result = completer.complete(text, LineIndex(text).offset(line, character))
    typer.echo(completion_response(result).model_dump_json(indent=2))


@app.command("check-sage")
def check_sage(
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Check that the configured Sage executable can be started."""
    settings = _settings(root, config)
    converter = SagePreparseConverter(
        settings.converter.sage_executable,
        timeout=settings.converter.timeout_seconds,
        runner=DEFAULT_RUNNER,
    )
    try:
        version = asyncio.run(converter.probe())
    except ConverterUnavailable as exc:
        typer.echo(f"sage unavailable: {exc.describe()}", err=True)
        raise typer.Exit(code=1)
    typer.echo(version)


if __name__ == "__main__":  # pragma: no cover
    app()  # pragma: no cover
