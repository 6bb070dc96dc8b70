"""File-type scanner: open file names against rule suffix patterns."""

from __future__ import annotations

from typing import Iterable

from ..models import DiscoveryContext, PartialCandidates, Source
from ..registry.schema import RuleRegistry


def scan_file_types(files: Iterable[str], registry: RuleRegistry) -> PartialCandidates:
    """Propose rules whose suffix patterns match any open file.

    Unknown suffixes contribute nothing.
    """
    partial = PartialCandidates(source=Source.FILE_TYPE)
    files = [f for f in files if f]
    if not files:
        return partial

    for rule in registry.rules.values():
        for match in rule.suffixes:
            if any(match.matches(f) for f in files):
                partial.propose(rule.id, match.score)
    return partial


def scan_context(context: DiscoveryContext, registry: RuleRegistry) -> PartialCandidates:
    return scan_file_types(context.files, registry)
