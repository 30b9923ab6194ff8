"""Exception types raised across sagelens."""

from __future__ import annotations


class NeverRaise(RuntimeError):
    """Sentinel exception for code paths that must be unreachable.

    Raising this exception means an internal-consistency invariant was
    violated (for example a source map whose spans leave a gap). It is a
    programming defect, never a runtime condition callers recover from.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        if env:
            details = ", ".join(f"{key}={value!r}" for key, value in env.items())
            message = f"{message} ({details})"
        super().__init__(message)


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""


class BackendUnavailable(RuntimeError):
    """An external collaborator could not produce a result for this version."""

    backend = "backend"

    def __init__(self, message: str, *, detail: str = "") -> None:
        super().__init__(message)
        self.detail = detail

    def describe(self) -> str:
        text = str(self)
        if self.detail:
            text = f"{text}: {self.detail.strip()}"
        return text


class ConverterUnavailable(BackendUnavailable):
    backend = "converter"


class AnalyzerUnavailable(BackendUnavailable):
    backend = "analyzer"
