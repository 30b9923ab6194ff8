from __future__ import annotations

import logging
from pathlib import Path

from sagelens.config import (
    DEFAULT_ANALYZER_ARGS,
    DEFAULT_PREAMBLE,
    Settings,
    load_config,
    load_settings,
    merge_payload,
)


def _write(root: Path, body: str) -> Path:
    path = root / "sagelens.toml"
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_config_file(tmp_path: Path) -> None:
    settings = load_settings(root=tmp_path)
    assert settings == Settings()
    assert settings.preamble == DEFAULT_PREAMBLE
    assert settings.analyzer.args == DEFAULT_ANALYZER_ARGS
    assert settings.converter.backend == "builtin"


def test_sections_are_read_from_root(tmp_path: Path) -> None:
    _write(
        tmp_path,
        """
[converter]
backend = "sage"
sage_executable = "/opt/sage/sage"
timeout_seconds = 45

[analyzer]
command = "ruff"
args = ["--select", "F,E"]
enabled = true

[recognizer]
preamble = ""

[diagnostics]
report_generated = false

[completion]
library_functions = "yes"
auto_insert = 0
""",
    )
    settings = load_settings(root=tmp_path)
    assert settings.converter.backend == "sage"
    assert settings.converter.sage_executable == "/opt/sage/sage"
    assert settings.converter.timeout_seconds == 45.0
    assert settings.analyzer.args == ("--select", "F,E")
    assert settings.preamble == ""
    assert settings.report_generated is False
    assert settings.library_functions is True
    assert settings.auto_insert is False


def test_explicit_config_path_wins(tmp_path: Path) -> None:
    _write(tmp_path, '[converter]\nbackend = "sage"\n')
    other = tmp_path / "other.toml"
    other.write_text('[analyzer]\nargs = "--select F"\n', encoding="utf-8")
    settings = load_settings(root=tmp_path, config_path=other)
    assert settings.converter.backend == "builtin"
    assert settings.analyzer.args == ("--select", "F")


def test_malformed_file_falls_back_to_defaults(tmp_path: Path, caplog) -> None:
    _write(tmp_path, "[converter\nbackend = ")
    with caplog.at_level(logging.WARNING, logger="sagelens.config"):
        settings = load_settings(root=tmp_path)
    assert settings == Settings()
    assert "ignoring malformed" in caplog.text


def test_invalid_values_fall_back(tmp_path: Path, caplog) -> None:
    _write(
        tmp_path,
        '[converter]\nbackend = "jython"\ntimeout_seconds = -3\n'
        '[analyzer]\ntimeout_seconds = "soon"\n'
        "[recognizer]\npreamble = 7\n"
        '[completion]\n"auto_insert" = [1]\n',
    )
    with caplog.at_level(logging.WARNING, logger="sagelens.config"):
        settings = load_settings(root=tmp_path)
    assert settings.converter.backend == "builtin"
    assert settings.converter.timeout_seconds == 30.0
    assert settings.analyzer.timeout_seconds == 10.0
    assert settings.preamble == DEFAULT_PREAMBLE
    assert settings.auto_insert is True
    assert "unknown converter backend" in caplog.text


def test_overrides_take_precedence_over_file(tmp_path: Path) -> None:
    _write(tmp_path, '[converter]\nbackend = "sage"\n[analyzer]\nenabled = true\n')
    settings = load_settings(
        root=tmp_path,
        overrides={
            "converter": {"backend": None, "timeout_seconds": 5},
            "analyzer": {"enabled": False},
            "recognizer": "not a table",
        },
    )
    assert settings.converter.backend == "sage"
    assert settings.converter.timeout_seconds == 5.0
    assert settings.analyzer.enabled is False
    assert settings.preamble == DEFAULT_PREAMBLE


def test_load_config_missing_file(tmp_path: Path) -> None:
    assert load_config(root=tmp_path) == {}
    assert load_config(config_path=tmp_path / "absent.toml") == {}


def test_merge_payload_skips_none() -> None:
    assert merge_payload({"a": None, "b": 2}, {"a": 1, "c": 3}) == {"a": 1, "b": 2, "c": 3}
