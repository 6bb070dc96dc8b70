"""Data models for rule discovery runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .errors import LimitExceededWarning

RuleID = str


class Scope(str, Enum):
    """Task-size category that bounds how many rules are loaded."""

    SINGLE_FILE_EDIT = "single_file_edit"
    FEATURE_BUILD = "feature_build"
    MULTI_FILE_TASK = "multi_file_task"
    ARCHITECTURE_REVIEW = "architecture_review"


class Source(str, Enum):
    """Signal scanner that proposed a candidate."""

    FILE_TYPE = "file_type"
    MANIFEST = "manifest"
    KEYWORD = "keyword"

    @property
    def priority(self) -> int:
        """Lower is stronger: file_type > manifest > keyword."""
        return _SOURCE_PRIORITY[self]


_SOURCE_PRIORITY = {
    Source.FILE_TYPE: 0,
    Source.MANIFEST: 1,
    Source.KEYWORD: 2,
}


class Provenance(str, Enum):
    """Why an entry is part of a resolved list."""

    DIRECT = "directly_matched"
    REQUIRED = "required_dependency"
    OPTIONAL = "optional_dependency"


@dataclass(frozen=True)
class ManifestFile:
    """A project dependency-declaration file as supplied by the host.

    `text` is None when the host could not read the file.
    """

    path: str  # relative to the project root, forward slashes
    text: str | None

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name


@dataclass(frozen=True)
class DiscoveryContext:
    """Snapshot of the project state for one discovery call."""

    session_key: str
    active_file: str | None = None
    open_files: tuple[str, ...] = ()
    manifests: tuple[ManifestFile, ...] = ()
    request: str = ""

    @property
    def files(self) -> tuple[str, ...]:
        """Active file first, then other open files, without duplicates."""
        seen: list[str] = []
        for f in ((self.active_file,) if self.active_file else ()) + tuple(self.open_files):
            if f not in seen:
                seen.append(f)
        return tuple(seen)

    @property
    def file_types(self) -> frozenset[str]:
        """One key per open file: its lower-cased suffix, or its name if it has none.

        `app.tsx` gives ".tsx" and `Dockerfile` gives "dockerfile".
        """
        out = set()
        for f in self.files:
            path = PurePosixPath(f.replace("\\", "/"))
            out.add(path.suffix.lower() or path.name.lower())
        out.discard("")
        return frozenset(out)


@dataclass(frozen=True)
class Candidate:
    """A merged candidate: best score and who proposed it."""

    rule_id: RuleID
    score: int
    sources: frozenset[Source]
    best_source: Source
    source_scores: tuple[tuple[Source, int], ...] = ()

    def sort_key(self) -> tuple[int, int, str]:
        return (-self.score, self.best_source.priority, self.rule_id)


@dataclass(frozen=True)
class ResolvedEntry:
    """One rule in a resolved list."""

    rule_id: RuleID
    score: int
    provenance: Provenance
    sources: frozenset[Source] = frozenset()
    required_by: tuple[RuleID, ...] = ()
    depth: int = 0

    @property
    def is_required(self) -> bool:
        """Some other rule in the list requires it."""
        return self.provenance == Provenance.REQUIRED or bool(self.required_by)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "rule_id": self.rule_id,
            "score": self.score,
            "provenance": self.provenance.value,
            "sources": sorted(s.value for s in self.sources),
            "depth": self.depth,
        }
        if self.required_by:
            d["required_by"] = list(self.required_by)
        return d


@dataclass(frozen=True)
class ResolvedRuleList:
    """Final decision of one discovery run."""

    entries: tuple[ResolvedEntry, ...] = ()
    scope: Scope | None = None
    warning: LimitExceededWarning | None = None
    from_cache: bool = field(default=False, compare=False)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def rule_ids(self) -> list[RuleID]:
        return [e.rule_id for e in self.entries]

    def get(self, rule_id: RuleID) -> ResolvedEntry | None:
        for entry in self.entries:
            if entry.rule_id == rule_id:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "scope": self.scope.value if self.scope else None,
            "rules": [e.to_dict() for e in self.entries],
        }
        if self.warning is not None:
            d["warning"] = self.warning.to_dict()
        return d


@dataclass
class PartialCandidates:
    """Output of one scanner: rule id -> score for a single source."""

    source: Source
    scores: dict[RuleID, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def propose(self, rule_id: RuleID, score: int) -> None:
        """Record a proposal, keeping the best score within this source."""
        if score < 0:
            raise ValueError(f"negative score for {rule_id}: {score}")
        current = self.scores.get(rule_id)
        if current is None or score > current:
            self.scores[rule_id] = score
