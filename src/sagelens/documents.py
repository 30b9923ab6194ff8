"""Open documents, their per-version snapshots and the analysis pipeline."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import PurePosixPath
from typing import Awaitable, Callable
from urllib.parse import unquote, urlparse

from sagelens.backends.analyzer import Analyzer
from sagelens.backends.converter import Converter
from sagelens.exceptions import BackendUnavailable
from sagelens.mapping.diagnostics import Diagnostic, Origin, Severity, map_diagnostics
from sagelens.mapping.lines import LineIndex
from sagelens.mapping.model import TextRange
from sagelens.mapping.source_map import SourceMap, SourceMapCache

logger = logging.getLogger(__name__)


def _filename(uri: str) -> str:
    parsed = urlparse(uri)
    name = PurePosixPath(unquote(parsed.path)).name
    return name or "untitled.sage"


@dataclass(frozen=True)
class Document:
    """Immutable snapshot of one version of a document."""

    uri: str
    version: int
    text: str
    maps: SourceMapCache = field(default_factory=SourceMapCache, compare=False, repr=False)

    @cached_property
    def source_map(self) -> SourceMap:
        return self.maps.get(self.text)

    @cached_property
    def lines(self) -> LineIndex:
        return LineIndex(self.text)

    @property
    def filename(self) -> str:
        return _filename(self.uri)


class DocumentStore:
    def __init__(self, maps: SourceMapCache | None = None) -> None:
        self.maps = maps or SourceMapCache()
        self._documents: dict[str, Document] = {}
        self._diagnostics: dict[str, tuple[int, tuple[Diagnostic, ...]]] = {}

    def __contains__(self, uri: str) -> bool:
        return uri in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def get(self, uri: str) -> Document | None:
        return self._documents.get(uri)

    def open(self, uri: str, text: str, version: int | None = None) -> Document:
        document = Document(uri, version if version is not None else 0, text, self.maps)
        self._documents[uri] = document
        self._diagnostics.pop(uri, None)
        return document

    def update(self, uri: str, text: str, version: int | None = None) -> Document:
        """Replace ``uri`` with a new snapshot; versions only move forward."""
        current = self._documents.get(uri)
        if current is None:
            return self.open(uri, text, version)
        next_version = current.version + 1
        if version is not None and version > next_version:
            next_version = version
        document = Document(uri, next_version, text, self.maps)
        self._documents[uri] = document
        self._diagnostics.pop(uri, None)
        return document

    def close(self, uri: str) -> None:
        self._documents.pop(uri, None)
        self._diagnostics.pop(uri, None)

    def is_current(self, uri: str, version: int) -> bool:
        document = self._documents.get(uri)
        return document is not None and document.version == version

    def store_diagnostics(self, document: Document, diagnostics: list[Diagnostic]) -> bool:
        if not self.is_current(document.uri, document.version):
            return False
        self._diagnostics[document.uri] = (document.version, tuple(diagnostics))
        return True

    def diagnostics(self, uri: str) -> tuple[Diagnostic, ...] | None:
        entry = self._diagnostics.get(uri)
        if entry is None:
            return None
        version, diagnostics = entry
        if not self.is_current(uri, version):
            return None
        return diagnostics


UNAVAILABLE_CODE = "analysis-unavailable"


def unavailable_diagnostic(exc: BackendUnavailable) -> Diagnostic:
    return Diagnostic(
        range=TextRange(0, 0),
        severity=Severity.INFORMATION,
        code=UNAVAILABLE_CODE,
        message=f"Sage analysis unavailable ({exc.backend}): {exc.describe()}",
        source="sagelens",
    )


Publisher = Callable[[Document, list[Diagnostic]], None]


class AnalysisPipeline:
    """Converter gate, analyzer and mapping for one document version at a time.

    A newer version cancels the task of an older one; a result that finishes
    for a superseded version is dropped.
    """

    def __init__(
        self,
        store: DocumentStore,
        converter: Converter,
        analyzer: Analyzer | None,
        *,
        report_generated: bool = True,
        publish: Publisher | None = None,
    ) -> None:
        self.store = store
        self.converter = converter
        self.analyzer = analyzer
        self.report_generated = report_generated
        self.publish = publish
        self._tasks: dict[str, asyncio.Task[list[Diagnostic] | None]] = {}

    async def _diagnose(self, document: Document) -> list[Diagnostic]:
        if self.analyzer is None:
            return []
        try:
            await self.converter.convert(document.text, filename=document.filename)
            source_map = document.source_map
            found = await self.analyzer.analyze(
                source_map.rewritten_text, filename=document.filename
            )
        except BackendUnavailable as exc:
            logger.info(
                "analysis unavailable for %s v%d: %s",
                document.uri,
                document.version,
                exc.describe(),
            )
            return [unavailable_diagnostic(exc)]
        mapped = map_diagnostics(found, source_map)
        if not self.report_generated:
            mapped = [item for item in mapped if item.origin is not Origin.GENERATED]
        return mapped

    async def analyze(self, document: Document) -> list[Diagnostic] | None:
        """Diagnostics for ``document``, or None once it is no longer current."""
        diagnostics = await self._diagnose(document)
        if not self.store.store_diagnostics(document, diagnostics):
            logger.debug("dropping stale results for %s v%d", document.uri, document.version)
            return None
        return diagnostics

    async def _run(self, document: Document) -> list[Diagnostic] | None:
        diagnostics = await self.analyze(document)
        if diagnostics is not None and self.publish is not None:
            self.publish(document, diagnostics)
        return diagnostics

    def schedule(self, document: Document) -> asyncio.Task[list[Diagnostic] | None]:
        self.cancel(document.uri)
        task = asyncio.ensure_future(self._run(document))
        self._tasks[document.uri] = task
        task.add_done_callback(lambda done: self._forget(document.uri, done))
        return task

    def _forget(self, uri: str, task: asyncio.Task[list[Diagnostic] | None]) -> None:
        if self._tasks.get(uri) is task:
            del self._tasks[uri]
        if not task.cancelled() and task.exception() is not None:
            logger.error("analysis of %s failed", uri, exc_info=task.exception())

    def cancel(self, uri: str) -> None:
        task = self._tasks.pop(uri, None)
        if task is not None and not task.done():
            task.cancel()

    def pending(self, uri: str) -> Awaitable[list[Diagnostic] | None] | None:
        return self._tasks.get(uri)

    async def drain(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
