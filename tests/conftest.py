"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Callable

import pytest

from ctxrules.registry import RuleRegistry, load_registry

BASIC_REGISTRY = """
registry_id = "test/basic"
version = 1

[[rules]]
id = "x"
suffixes = [{ pattern = ".x", score = 10 }]
manifests = [{ file = "package.json", dependency = "xlib", score = 9 }]
keywords = [{ pattern = "ex", score = 3 }]

[[rules]]
id = "react"
suffixes = [".tsx", ".jsx"]
manifests = ["package.json:react"]
keywords = ["react"]
required = ["ui-base"]

[[rules]]
id = "vue"
suffixes = [".vue"]
manifests = ["package.json:vue"]
required = ["ui-base"]

[[rules]]
id = "ui-base"

[[rules]]
id = "python"
suffixes = [".py"]
manifests = ["requirements*.txt", "pyproject.toml"]

[[rules]]
id = "security"
keywords = ["security", "auth"]
"""


@pytest.fixture
def make_registry(tmp_path: Path) -> Callable[[str], RuleRegistry]:
    """Write registry TOML to a temp file and load it."""
    counter = [0]

    def _make(text: str) -> RuleRegistry:
        counter[0] += 1
        path = tmp_path / f"registry_{counter[0]}.toml"
        path.write_text(text, encoding="utf-8")
        return load_registry(path)

    return _make


@pytest.fixture
def basic_registry(make_registry) -> RuleRegistry:
    return make_registry(BASIC_REGISTRY)
