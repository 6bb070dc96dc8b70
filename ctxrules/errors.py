"""Error taxonomy for rule discovery."""

from __future__ import annotations

from typing import Any


class RuleDiscoveryError(Exception):
    """Base class for errors raised by ctxrules."""


class RegistryError(RuleDiscoveryError, ValueError):
    """A rule registry file is malformed."""


class SourceScanError(RuleDiscoveryError):
    """A scanner could not read or parse one input item.

    Recovered inside the scanner; the item contributes nothing.
    """

    def __init__(self, source: str, item: str, reason: str):
        super().__init__(f"{source}: cannot scan {item}: {reason}")
        self.source = source
        self.item = item
        self.reason = reason


class DependencyGraphCycleError(RuleDiscoveryError):
    """Required edges of the dependency graph contain a cycle."""

    def __init__(self, cycles: list[list[str]]):
        self.cycles = cycles
        rendered = "; ".join(" -> ".join(c) for c in cycles)
        super().__init__(f"required dependency cycle: {rendered}")


class LimitExceededWarning(UserWarning):
    """One required chain, a rule plus what it needs, exceeds the load limit.

    Attached to the result; never raised by the pipeline.
    """

    def __init__(self, limit: int, required_count: int, dropped: int):
        super().__init__(
            f"required chain of {required_count} rules exceeds load limit {limit}; dropped {dropped}"
        )
        self.limit = limit
        self.required_count = required_count
        self.dropped = dropped

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LimitExceededWarning):
            return NotImplemented
        return (self.limit, self.required_count, self.dropped) == (
            other.limit,
            other.required_count,
            other.dropped,
        )

    def __hash__(self) -> int:
        return hash((self.limit, self.required_count, self.dropped))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "limit_exceeded",
            "limit": self.limit,
            "required_count": self.required_count,
            "dropped": self.dropped,
        }
