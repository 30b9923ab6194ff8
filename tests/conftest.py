from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest

from sagelens.invariants import strict_mode_scope
from sagelens.mapping.source_map import SourceMap, build_source_map


@pytest.fixture
def source_map_of() -> Callable[..., SourceMap]:
    def _build(text: str, *, preamble: str = "") -> SourceMap:
        _, source_map = build_source_map(text, preamble=preamble)
        return source_map

    return _build


@pytest.fixture
def strict():
    with strict_mode_scope(True):
        yield
