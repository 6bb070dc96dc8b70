"""Rule definitions and the immutable registry built from them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from functools import cached_property
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Mapping

from ..config import EngineConfig
from ..models import RuleID
from .graph import RuleDependencyGraph


def _is_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in "*?[")


@dataclass(frozen=True)
class SuffixMatch:
    """File-type applicability: `.tsx`, `.blade.php`, or a glob like `Dockerfile*`."""

    pattern: str
    score: int

    def matches(self, file_id: str) -> bool:
        name = PurePosixPath(file_id.replace("\\", "/")).name.lower()
        pattern = self.pattern.lower()
        if _is_glob(pattern):
            return fnmatchcase(name, pattern)
        return name.endswith(pattern)


@dataclass(frozen=True)
class ManifestMatch:
    """Declaration-file applicability.

    With no `dependency` the presence of a file matching `file` is enough.
    """

    file: str
    score: int
    dependency: str | None = None

    def matches_file(self, path: str) -> bool:
        path = path.replace("\\", "/").lower()
        pattern = self.file.lower()
        if "/" in pattern:
            return fnmatchcase(path, pattern)
        return fnmatchcase(PurePosixPath(path).name, pattern)

    def matches_dependency(self, name: str) -> bool:
        if self.dependency is None:
            return False
        return fnmatchcase(name.lower(), self.dependency.lower())


@dataclass(frozen=True)
class KeywordMatch:
    """Request-text applicability; `re:` prefix means a raw regex."""

    pattern: str
    score: int

    @cached_property
    def regex(self) -> re.Pattern[str]:
        if self.pattern.startswith("re:"):
            return re.compile(self.pattern[3:], re.IGNORECASE)
        words = [re.escape(w) for w in self.pattern.split()]
        return re.compile(r"(?<!\w)" + r"\s+".join(words) + r"(?!\w)", re.IGNORECASE)

    def matches(self, text: str) -> bool:
        return self.regex.search(text) is not None


@dataclass(frozen=True)
class RuleDef:
    id: RuleID
    description: str | None = None
    suffixes: tuple[SuffixMatch, ...] = ()
    manifests: tuple[ManifestMatch, ...] = ()
    keywords: tuple[KeywordMatch, ...] = ()
    required: tuple[RuleID, ...] = ()
    optional: tuple[RuleID, ...] = ()
    path: str | None = None  # where the definition came from


@dataclass(frozen=True)
class RuleRegistry:
    """Immutable rule metadata loaded once at startup.

    Construction validates the dependency graph, so a registry that exists
    is always safe to resolve against.
    """

    registry_id: str
    version: int
    rules: Mapping[RuleID, RuleDef] = field(default_factory=dict)
    config: EngineConfig = field(default_factory=EngineConfig)
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))
        graph = RuleDependencyGraph.from_rules(self.rules.values())
        graph.validate()
        object.__setattr__(self, "_graph", graph)

    @property
    def graph(self) -> RuleDependencyGraph:
        return self._graph  # type: ignore[attr-defined]

    def get(self, rule_id: RuleID) -> RuleDef | None:
        return self.rules.get(rule_id)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self.rules

    def __len__(self) -> int:
        return len(self.rules)
