from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from lsprotocol import types as lsp
from pydantic import ValidationError
from pygls.lsp.server import LanguageServer

from sagelens import __version__
from sagelens.backends.analyzer import make_analyzer
from sagelens.backends.converter import make_converter
from sagelens.completion.catalog import default_catalog
from sagelens.completion.engine import CompletionRecognizer
from sagelens.completion.model import CandidateKind
from sagelens.config import Settings, load_settings
from sagelens.documents import AnalysisPipeline, Document, DocumentStore
from sagelens.hover import hover_at
from sagelens.invariants import never
from sagelens.mapping.diagnostics import Diagnostic, Origin, Severity
from sagelens.mapping.model import TextRange
from sagelens.mapping.recognizer import Recognizer
from sagelens.mapping.source_map import SourceMap, SourceMapCache
from sagelens.schema import (
    SourceMapRequest,
    SourceMapResponse,
    TranslateRequest,
    TranslateResponse,
    source_map_response,
)
from sagelens.symbols import Symbol, SymbolKind, document_symbols

logger = logging.getLogger(__name__)

SOURCE_MAP_COMMAND = "sagelens.sourceMap"
TRANSLATE_COMMAND = "sagelens.translate"
TRIGGER_CHARACTERS = ["*", "<", "=", "("]

_SEVERITIES = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.INFORMATION: lsp.DiagnosticSeverity.Information,
    Severity.HINT: lsp.DiagnosticSeverity.Hint,
}
_COMPLETION_KINDS = {
    CandidateKind.OPERATOR: lsp.CompletionItemKind.Operator,
    CandidateKind.CONSTRUCTOR: lsp.CompletionItemKind.Constructor,
    CandidateKind.VALUE: lsp.CompletionItemKind.Value,
    CandidateKind.FUNCTION: lsp.CompletionItemKind.Function,
}
_SYMBOL_KINDS = {
    SymbolKind.STRUCTURE: lsp.SymbolKind.Struct,
    SymbolKind.GENERATOR: lsp.SymbolKind.Variable,
    SymbolKind.VARIABLE: lsp.SymbolKind.Variable,
    SymbolKind.FUNCTION: lsp.SymbolKind.Function,
    SymbolKind.CLASS: lsp.SymbolKind.Class,
}


class SagelensServer(LanguageServer):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.configure(Settings())

    def configure(self, settings: Settings, root: Path | None = None) -> None:
        self.settings = settings
        recognizer = Recognizer(preamble=settings.preamble)
        self.store = DocumentStore(SourceMapCache(recognizer))
        self.completer = CompletionRecognizer(
            default_catalog(library_functions=settings.library_functions),
            auto_insert=settings.auto_insert,
        )
        self.pipeline = AnalysisPipeline(
            self.store,
            make_converter(settings.converter, recognizer=recognizer),
            make_analyzer(settings.analyzer, cwd=root) if settings.analyzer.enabled else None,
            report_generated=settings.report_generated,
            publish=lambda document, diagnostics: publish(self, document, diagnostics),
        )


server = SagelensServer("sagelens", __version__)


def _require_payload(payload: object, *, command: str) -> dict[str, object]:
    if payload is None:
        never("missing command payload", command=command)
    if not isinstance(payload, dict):
        never(
            "invalid command payload type",
            command=command,
            payload_type=type(payload).__name__,
        )
    return payload


def _lines(document: Document) -> list[str]:
    return document.text.splitlines(keepends=True)


def to_offset(ls: SagelensServer, document: Document, position: lsp.Position) -> int:
    local = ls.workspace.position_codec.position_from_client_units(_lines(document), position)
    return document.lines.offset(local.line, local.character)


def to_lsp_range(ls: SagelensServer, document: Document, text_range: TextRange) -> lsp.Range:
    start, end = document.lines.range_positions(text_range)
    local = lsp.Range(
        start=lsp.Position(line=start.line, character=start.character),
        end=lsp.Position(line=end.line, character=end.character),
    )
    return ls.workspace.position_codec.range_to_client_units(_lines(document), local)


def to_lsp_diagnostic(
    ls: SagelensServer, document: Document, diagnostic: Diagnostic
) -> lsp.Diagnostic:
    message = diagnostic.message
    if diagnostic.origin is Origin.GENERATED:
        message = f"{message} (in code generated for this line)"
    return lsp.Diagnostic(
        range=to_lsp_range(ls, document, diagnostic.range),
        message=message,
        severity=_SEVERITIES[diagnostic.severity],
        code=diagnostic.code,
        source=diagnostic.source,
        data={"origin": diagnostic.origin.value},
    )


def publish(ls: SagelensServer, document: Document, diagnostics: list[Diagnostic]) -> None:
    ls.text_document_publish_diagnostics(
        lsp.PublishDiagnosticsParams(
            uri=document.uri,
            version=document.version,
            diagnostics=[to_lsp_diagnostic(ls, document, item) for item in diagnostics],
        )
    )


@server.feature(lsp.INITIALIZE)
def initialize(ls: SagelensServer, params: lsp.InitializeParams) -> None:
    root = Path(ls.workspace.root_path) if ls.workspace.root_path else None
    options = params.initialization_options
    overrides = options if isinstance(options, dict) else None
    ls.configure(load_settings(root=root, overrides=overrides), root)
    logger.info(
        "sagelens %s: converter=%s analyzer=%s",
        __version__,
        ls.settings.converter.backend,
        ls.settings.analyzer.command if ls.settings.analyzer.enabled else "disabled",
    )


def _refresh(ls: SagelensServer, uri: str, version: int | None) -> Document:
    text = ls.workspace.get_text_document(uri).source
    document = ls.store.update(uri, text, version)
    ls.pipeline.schedule(document)
    return document


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
async def did_open(ls: SagelensServer, params: lsp.DidOpenTextDocumentParams) -> None:
    ls.store.close(params.text_document.uri)
    _refresh(ls, params.text_document.uri, params.text_document.version)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
async def did_change(ls: SagelensServer, params: lsp.DidChangeTextDocumentParams) -> None:
    _refresh(ls, params.text_document.uri, params.text_document.version)


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: SagelensServer, params: lsp.DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    ls.pipeline.cancel(uri)
    ls.store.close(uri)
    ls.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(uri=uri, diagnostics=[]))


def _document(ls: SagelensServer, uri: str) -> Document | None:
    document = ls.store.get(uri)
    if document is None:
        logger.debug("request for unknown document %s", uri)
    return document


@server.feature(
    lsp.TEXT_DOCUMENT_COMPLETION,
    lsp.CompletionOptions(trigger_characters=TRIGGER_CHARACTERS),
)
def completion(ls: SagelensServer, params: lsp.CompletionParams) -> lsp.CompletionList:
    document = _document(ls, params.text_document.uri)
    if document is None:
        return lsp.CompletionList(is_incomplete=False, items=[])
    offset = to_offset(ls, document, params.position)
    result = ls.completer.complete(document.text, offset)
    cursor = lsp.Range(start=params.position, end=params.position)
    items = [
        lsp.CompletionItem(
            label=candidate.label,
            kind=_COMPLETION_KINDS[candidate.kind],
            detail=candidate.detail or None,
            sort_text=f"{candidate.sort_rank:04d}",
            filter_text=candidate.label,
            text_edit=lsp.TextEdit(range=cursor, new_text=candidate.insert_text),
            preselect=True if result.auto_insertion == candidate.insert_text else None,
            data={"pattern": candidate.pattern.value, "auto_insertion": result.auto_insertion},
        )
        for candidate in result.candidates
    ]
    return lsp.CompletionList(is_incomplete=False, items=items)


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(ls: SagelensServer, params: lsp.HoverParams) -> lsp.Hover | None:
    document = _document(ls, params.text_document.uri)
    if document is None:
        return None
    found = hover_at(document.source_map, to_offset(ls, document, params.position))
    if found is None:
        return None
    return lsp.Hover(
        contents=lsp.MarkupContent(kind=lsp.MarkupKind.Markdown, value=found.markdown),
        range=to_lsp_range(ls, document, found.range),
    )


def _lsp_symbol(ls: SagelensServer, document: Document, symbol: Symbol) -> lsp.DocumentSymbol:
    return lsp.DocumentSymbol(
        name=symbol.name,
        kind=_SYMBOL_KINDS[symbol.kind],
        range=to_lsp_range(ls, document, symbol.range),
        selection_range=to_lsp_range(ls, document, symbol.selection_range),
        detail=symbol.detail or None,
        children=[_lsp_symbol(ls, document, child) for child in symbol.children],
    )


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def symbols(ls: SagelensServer, params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    document = _document(ls, params.text_document.uri)
    if document is None:
        return []
    return [_lsp_symbol(ls, document, symbol) for symbol in document_symbols(document.source_map)]


def _source_map_for(ls: SagelensServer, uri: str | None, text: str | None) -> SourceMap:
    if text is not None:
        return ls.store.maps.get(text)
    if uri is None:
        raise ValueError("either uri or text is required")
    document = ls.store.get(uri)
    if document is None:
        raise ValueError(f"document is not open: {uri}")
    return document.source_map


@server.command(SOURCE_MAP_COMMAND)
def execute_source_map(ls: SagelensServer, payload: dict | None = None) -> dict:
    payload = _require_payload(payload, command=SOURCE_MAP_COMMAND)
    try:
        request = SourceMapRequest.model_validate(payload)
    except ValidationError as exc:
        return SourceMapResponse(errors=[str(exc)]).model_dump()
    try:
        source_map = _source_map_for(ls, request.uri, request.text)
    except ValueError as exc:
        return SourceMapResponse(errors=[str(exc)]).model_dump()
    return source_map_response(
        source_map, include_passthrough=request.include_passthrough
    ).model_dump()


@server.command(TRANSLATE_COMMAND)
def execute_translate(ls: SagelensServer, payload: dict | None = None) -> dict:
    payload = _require_payload(payload, command=TRANSLATE_COMMAND)
    try:
        request = TranslateRequest.model_validate(payload)
    except ValidationError as exc:
        return TranslateResponse(errors=[str(exc)]).model_dump()
    if request.start < 0 or (request.end is not None and request.end < request.start):
        return TranslateResponse(errors=["invalid offsets"]).model_dump()
    try:
        source_map = _source_map_for(ls, request.uri, request.text)
        if request.end is None:
            translate = (
                source_map.translate
                if request.direction == "forward"
                else source_map.translate_reverse
            )
            offset = translate(request.start)
            return TranslateResponse(start=offset, end=offset).model_dump()
        query = TextRange(request.start, max(request.start, request.end))
        translated = (
            source_map.translate_range(query)
            if request.direction == "forward"
            else source_map.translate_range_reverse(query)
        )
    except ValueError as exc:
        return TranslateResponse(errors=[str(exc)]).model_dump()
    return TranslateResponse(start=translated.start, end=translated.end).model_dump()


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server on stdio."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
