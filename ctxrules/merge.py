"""Candidate merging and ranking."""

from __future__ import annotations

from typing import Iterable

from .models import Candidate, PartialCandidates, RuleID, Source


def merge_candidates(partials: Iterable[PartialCandidates]) -> dict[RuleID, Candidate]:
    """Join scanner outputs into one candidate set.

    The merged score is the maximum proposed score, never a sum. The best
    source is the strongest-priority source among those that proposed it.
    """
    per_rule: dict[RuleID, dict[Source, int]] = {}
    for partial in partials:
        for rule_id, score in partial.scores.items():
            by_source = per_rule.setdefault(rule_id, {})
            if score > by_source.get(partial.source, -1):
                by_source[partial.source] = score

    merged: dict[RuleID, Candidate] = {}
    for rule_id, by_source in per_rule.items():
        score = max(by_source.values())
        best = min((s for s, v in by_source.items() if v == score), key=lambda s: s.priority)
        merged[rule_id] = Candidate(
            rule_id=rule_id,
            score=score,
            sources=frozenset(by_source),
            best_source=best,
            source_scores=tuple(sorted(by_source.items(), key=lambda item: item[0].priority)),
        )
    return merged


def rank_candidates(candidates: dict[RuleID, Candidate] | Iterable[Candidate]) -> list[Candidate]:
    """Order by score desc, best-source priority, then rule id."""
    values = candidates.values() if isinstance(candidates, dict) else candidates
    return sorted(values, key=Candidate.sort_key)
