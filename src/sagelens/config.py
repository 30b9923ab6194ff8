from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias
import logging
import tomllib

DEFAULT_CONFIG_NAME = "sagelens.toml"
DEFAULT_PREAMBLE = "from sage.all import *"
DEFAULT_ANALYZER_COMMAND = "ruff"
# Star-import warnings are an artifact of the preamble.
DEFAULT_ANALYZER_ARGS = ("--ignore", "F403,F405")

TomlScalar: TypeAlias = str | int | float | bool | None
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

logger = logging.getLogger(__name__)


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        logger.warning("cannot read %s: %s", path, exc)
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("ignoring malformed %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = value.split()
    elif isinstance(value, (list, tuple)):
        items = [item for item in value if isinstance(item, str)]
    return [item for item in items if item]


def _as_bool(value: TomlValue, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _as_seconds(value: TomlValue, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return default
    try:
        seconds = float(value)
    except ValueError:
        return default
    return seconds if seconds > 0 else default


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


@dataclass(frozen=True)
class ConverterSettings:
    backend: str = "builtin"
    sage_executable: str = "sage"
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class AnalyzerSettings:
    command: str = DEFAULT_ANALYZER_COMMAND
    args: tuple[str, ...] = DEFAULT_ANALYZER_ARGS
    timeout_seconds: float = 10.0
    enabled: bool = True


@dataclass(frozen=True)
class Settings:
    converter: ConverterSettings = field(default_factory=ConverterSettings)
    analyzer: AnalyzerSettings = field(default_factory=AnalyzerSettings)
    preamble: str = DEFAULT_PREAMBLE
    report_generated: bool = True
    library_functions: bool = False
    auto_insert: bool = True


def settings_from_tables(
    converter: TomlTable,
    analyzer: TomlTable,
    recognizer: TomlTable,
    diagnostics: TomlTable,
    completion: TomlTable,
) -> Settings:
    backend = converter.get("backend")
    if backend not in (None, "builtin", "sage"):
        logger.warning("unknown converter backend %r; using builtin", backend)
        backend = None
    preamble = recognizer.get("preamble")
    analyzer_args = analyzer.get("args")
    return Settings(
        converter=ConverterSettings(
            backend=str(backend or "builtin"),
            sage_executable=str(converter.get("sage_executable") or "sage"),
            timeout_seconds=_as_seconds(converter.get("timeout_seconds"), 30.0),
        ),
        analyzer=AnalyzerSettings(
            command=str(analyzer.get("command") or DEFAULT_ANALYZER_COMMAND),
            args=(
                tuple(_normalize_name_list(analyzer_args))
                if analyzer_args is not None
                else DEFAULT_ANALYZER_ARGS
            ),
            timeout_seconds=_as_seconds(analyzer.get("timeout_seconds"), 10.0),
            enabled=_as_bool(analyzer.get("enabled"), True),
        ),
        preamble=preamble if isinstance(preamble, str) else DEFAULT_PREAMBLE,
        report_generated=_as_bool(diagnostics.get("report_generated"), True),
        library_functions=_as_bool(completion.get("library_functions"), False),
        auto_insert=_as_bool(completion.get("auto_insert"), True),
    )


def load_settings(
    root: Path | None = None,
    config_path: Path | None = None,
    overrides: TomlTable | None = None,
) -> Settings:
    """Settings from ``sagelens.toml``; ``overrides`` are per-section tables."""
    data = load_config(root=root, config_path=config_path)
    overrides = overrides or {}
    tables = []
    for name in ("converter", "analyzer", "recognizer", "diagnostics", "completion"):
        tables.append(merge_payload(_section(overrides, name), _section(data, name)))
    return settings_from_tables(*tables)
