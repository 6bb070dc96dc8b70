"""Keyword scanner over the free-text request."""

from __future__ import annotations

from ..models import DiscoveryContext, PartialCandidates, Source
from ..registry.schema import RuleRegistry


def scan_keywords(text: str, registry: RuleRegistry) -> PartialCandidates:
    """Propose rules whose keyword patterns occur in the request text."""
    partial = PartialCandidates(source=Source.KEYWORD)
    if not text or not text.strip():
        return partial

    for rule in registry.rules.values():
        for match in rule.keywords:
            if match.matches(text):
                partial.propose(rule.id, match.score)
    return partial


def scan_context(context: DiscoveryContext, registry: RuleRegistry) -> PartialCandidates:
    return scan_keywords(context.request, registry)
