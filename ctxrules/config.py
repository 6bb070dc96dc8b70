"""Engine tuning knobs (threshold, decay, depth, limits, weights)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import RegistryError
from .models import Scope, Source

DEFAULT_LIMITS: dict[Scope, int] = {
    Scope.SINGLE_FILE_EDIT: 5,
    Scope.FEATURE_BUILD: 7,
    Scope.MULTI_FILE_TASK: 9,
    Scope.ARCHITECTURE_REVIEW: 12,
}

DEFAULT_WEIGHTS: dict[Source, int] = {
    Source.FILE_TYPE: 10,
    Source.MANIFEST: 8,
    Source.KEYWORD: 4,
}


@dataclass(frozen=True)
class EngineConfig:
    optional_threshold: int = 5
    optional_decay: int = 2
    max_optional_depth: int = 2
    limits: dict[Scope, int] = field(default_factory=lambda: dict(DEFAULT_LIMITS))
    weights: dict[Source, int] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))

    def limit_for(self, scope: Scope | str) -> int:
        return self.limits[Scope(scope)]

    def weight_for(self, source: Source) -> int:
        return self.weights[source]

    @classmethod
    def from_tables(cls, engine: dict[str, Any], weights: dict[str, Any]) -> "EngineConfig":
        """Build from the `[engine]` and `[weights]` tables of a registry."""
        limits = dict(DEFAULT_LIMITS)
        raw_limits = engine.get("limits", {})
        if not isinstance(raw_limits, dict):
            raise RegistryError("[engine.limits] must be a table")
        for key, value in raw_limits.items():
            try:
                scope = Scope(key)
            except ValueError:
                raise RegistryError(f"unknown scope in [engine.limits]: {key}") from None
            limits[scope] = _positive_int(value, f"engine.limits.{key}")

        resolved_weights = dict(DEFAULT_WEIGHTS)
        for key, value in weights.items():
            try:
                source = Source(key)
            except ValueError:
                raise RegistryError(f"unknown source in [weights]: {key}") from None
            resolved_weights[source] = _non_negative_int(value, f"weights.{key}")

        defaults = cls()
        return cls(
            optional_threshold=_non_negative_int(
                engine.get("optional_threshold", defaults.optional_threshold), "engine.optional_threshold"
            ),
            optional_decay=_non_negative_int(
                engine.get("optional_decay", defaults.optional_decay), "engine.optional_decay"
            ),
            max_optional_depth=_non_negative_int(
                engine.get("max_optional_depth", defaults.max_optional_depth), "engine.max_optional_depth"
            ),
            limits=limits,
            weights=resolved_weights,
        )


def _non_negative_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RegistryError(f"{name} must be a non-negative integer")
    return value


def _positive_int(value: Any, name: str) -> int:
    value = _non_negative_int(value, name)
    if value == 0:
        raise RegistryError(f"{name} must be a positive integer")
    return value
