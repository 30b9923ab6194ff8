"""Invariant markers for sagelens."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import NoReturn

from sagelens.exceptions import NeverThrown

_STRICT_MODE_OVERRIDE: ContextVar[bool | None] = ContextVar(
    "sagelens_strict_mode_override",
    default=None,
)


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The optional env payload is appended to the exception message for
    debugging; it is not evaluated.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)


def strict_mode() -> bool:
    override = _STRICT_MODE_OVERRIDE.get()
    return bool(override)


@contextmanager
def strict_mode_scope(enabled: bool):
    token = _STRICT_MODE_OVERRIDE.set(bool(enabled))
    try:
        yield
    finally:
        _STRICT_MODE_OVERRIDE.reset(token)
