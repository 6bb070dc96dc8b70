"""Rule dependency graph with cycle detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from ..errors import DependencyGraphCycleError

if TYPE_CHECKING:
    from .schema import RuleDef


@dataclass
class RuleDependencyGraph:
    """Required and optional edges between rules.

    Edge lists keep declaration order; the resolver relies on it.
    """

    nodes: set[str] = field(default_factory=set)
    required: dict[str, tuple[str, ...]] = field(default_factory=dict)
    optional: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_rules(cls, rules: Iterable["RuleDef"]) -> "RuleDependencyGraph":
        graph = cls()
        for rule in rules:
            graph.nodes.add(rule.id)
            graph.required[rule.id] = tuple(dict.fromkeys(rule.required))
            graph.optional[rule.id] = tuple(dict.fromkeys(rule.optional))
        return graph

    def required_of(self, rule_id: str) -> tuple[str, ...]:
        return self.required.get(rule_id, ())

    def optional_of(self, rule_id: str) -> tuple[str, ...]:
        return self.optional.get(rule_id, ())

    def dangling(self) -> list[tuple[str, str]]:
        """(rule, target) pairs whose target is not a known rule."""
        out = []
        for src in sorted(self.nodes):
            for dst in self.required_of(src) + self.optional_of(src):
                if dst not in self.nodes:
                    out.append((src, dst))
        return out

    def required_closure(self, start: str) -> set[str]:
        """All rules reachable from start over required edges, start included."""
        visited = set()
        stack = [start]

        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            for dep in self.required_of(current):
                if dep not in visited:
                    stack.append(dep)

        return visited

    def find_cycles(self) -> list[list[str]]:
        """Required cycles as closed paths A -> B -> ... -> A.

        One depth-first walk; every edge back onto the current path yields a
        cycle, rotated to start at its smallest rule id. A self-loop is [A, A].
        """
        finished: set[str] = set()
        cycles: dict[tuple[str, ...], None] = {}

        for start in sorted(self.nodes):
            if start in finished:
                continue
            path = [start]
            on_path = {start}
            pending = [iter(self.required_of(start))]

            while pending:
                dep = next(pending[-1], None)
                if dep is None:
                    node = path.pop()
                    on_path.discard(node)
                    finished.add(node)
                    pending.pop()
                    continue
                if dep not in self.nodes or dep in finished:
                    continue
                if dep in on_path:
                    body = path[path.index(dep):]
                    pivot = body.index(min(body))
                    cycles.setdefault(tuple(body[pivot:] + body[:pivot]), None)
                    continue
                path.append(dep)
                on_path.add(dep)
                pending.append(iter(self.required_of(dep)))

        return [list(cycle) + [cycle[0]] for cycle in cycles]

    def validate(self) -> None:
        """Raise DependencyGraphCycleError if required edges are not a DAG."""
        cycles = self.find_cycles()
        if cycles:
            raise DependencyGraphCycleError(cycles)
