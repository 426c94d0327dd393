"""
Global Pytest Configuration and Fixtures.

Makes the top-level modules importable when the project is not installed and
provides helpers for laying out small input trees on disk.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable, Dict

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_ROOT_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _ROOT_PATH not in sys.path:
    sys.path.insert(0, _ROOT_PATH)

from page_template import PageTemplate  # noqa: E402

# content|backlinks|friends, easy to assert on
FLAT_TEMPLATE = (
    "{{ content }}"
    "|{% for b in backlinks %}{{ b.href }}={{ b.name }};{% endfor %}"
    "|{% for f in friends %}{{ f.href }}={{ f.name }};{% endfor %}"
)


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def write_tree(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Return a function writing ``{relative path: text}`` under ``tmp_path/in``."""

    def _write(files: Dict[str, str]) -> Path:
        root = tmp_path / "in"
        root.mkdir(exist_ok=True)
        for rel, text in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root

    return _write


@pytest.fixture
def out_root(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def flat_template() -> PageTemplate:
    return PageTemplate(FLAT_TEMPLATE)


@pytest.fixture
def flat_template_source() -> str:
    return FLAT_TEMPLATE
