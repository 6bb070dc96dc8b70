"""Expansion of ranked candidates along the rule dependency graph."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from .config import EngineConfig
from .errors import DependencyGraphCycleError
from .models import Candidate, Provenance, ResolvedEntry, RuleID, Source
from .registry.graph import RuleDependencyGraph

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    rule_id: RuleID
    score: int
    provenance: Provenance
    sources: frozenset[Source]
    depth: int
    required_by: list[RuleID] = field(default_factory=list)

    def freeze(self) -> ResolvedEntry:
        return ResolvedEntry(
            rule_id=self.rule_id,
            score=self.score,
            provenance=self.provenance,
            sources=self.sources,
            required_by=tuple(self.required_by),
            depth=self.depth,
        )


class _Resolution:
    def __init__(self, candidates: dict[RuleID, Candidate], graph: RuleDependencyGraph, config: EngineConfig):
        self.candidates = candidates
        self.graph = graph
        self.config = config
        self.slots: dict[RuleID, _Slot] = {}
        self.order: list[RuleID] = []
        # best (depth, score) each rule has been expanded with
        self.expanded: dict[RuleID, tuple[int, int]] = {}

    def place(self, rule_id: RuleID, *, score: int, provenance: Provenance, depth: int) -> None:
        candidate = self.candidates.get(rule_id)
        if candidate is not None:
            provenance = Provenance.DIRECT
            score = max(score, candidate.score)

        slot = self.slots.get(rule_id)
        if slot is None:
            self.slots[rule_id] = _Slot(
                rule_id=rule_id,
                score=score,
                provenance=provenance,
                sources=candidate.sources if candidate else frozenset(),
                depth=depth,
            )
            self.order.append(rule_id)
            return

        slot.score = max(slot.score, score)
        slot.depth = min(slot.depth, depth)
        if slot.provenance == Provenance.OPTIONAL and provenance == Provenance.REQUIRED:
            slot.provenance = Provenance.REQUIRED

    def require(self, rule_id: RuleID, requirer: RuleID) -> None:
        slot = self.slots[rule_id]
        if requirer not in slot.required_by:
            slot.required_by.append(requirer)

    def _should_expand(self, rule_id: RuleID, depth: int, score: int) -> bool:
        seen = self.expanded.get(rule_id)
        if seen is not None and seen[0] <= depth and seen[1] >= score:
            return False
        self.expanded[rule_id] = (
            depth if seen is None else min(seen[0], depth),
            score if seen is None else max(seen[1], score),
        )
        return True

    def expand(self, root: Candidate) -> None:
        """Breadth-first walk from one directly-matched candidate."""
        self.place(root.rule_id, score=root.score, provenance=Provenance.DIRECT, depth=0)

        queue: deque[tuple[RuleID, int, int, tuple[RuleID, ...]]] = deque()
        queue.append((root.rule_id, 0, root.score, ()))

        while queue:
            rule_id, depth, score, chain = queue.popleft()
            if not self._should_expand(rule_id, depth, score):
                continue
            path = chain + (rule_id,)

            for dep in self.graph.required_of(rule_id):
                if dep in path:
                    # validated at load time; reaching this means the graph was mutated
                    raise DependencyGraphCycleError([list(path[path.index(dep):]) + [dep]])
                self.place(dep, score=score, provenance=Provenance.REQUIRED, depth=depth + 1)
                self.require(dep, rule_id)
                queue.append((dep, depth + 1, self.slots[dep].score, path))

            if depth + 1 > self.config.max_optional_depth:
                continue

            for dep in self.graph.optional_of(rule_id):
                candidate = self.candidates.get(dep)
                dep_score = candidate.score if candidate else score - self.config.optional_decay
                if dep_score <= self.config.optional_threshold:
                    logger.debug("optional %s -> %s below threshold (%d)", rule_id, dep, dep_score)
                    continue
                self.place(dep, score=dep_score, provenance=Provenance.OPTIONAL, depth=depth + 1)
                # optional edges may form cycles; the depth bound ends them
                queue.append((dep, depth + 1, dep_score, ()))


def resolve_dependencies(
    ranked: Iterable[Candidate],
    graph: RuleDependencyGraph,
    config: EngineConfig | None = None,
) -> list[ResolvedEntry]:
    """Expand a ranked candidate list into a dependency-closed list.

    Each candidate is followed by the rules its expansion introduced. Required
    edges always materialize; optional edges need a score above the
    threshold and must stay within `max_optional_depth` hops of a directly
    matched rule.
    """
    ranked = list(ranked)
    resolution = _Resolution({c.rule_id: c for c in ranked}, graph, config or EngineConfig())
    for candidate in ranked:
        resolution.expand(candidate)
    return [resolution.slots[rule_id].freeze() for rule_id in resolution.order]
