from __future__ import annotations

import pytest

from ctxrules.config import DEFAULT_LIMITS, EngineConfig
from ctxrules.errors import LimitExceededWarning
from ctxrules.limits import required_chain, select_within_limit
from ctxrules.merge import merge_candidates, rank_candidates
from ctxrules.models import PartialCandidates, Provenance, ResolvedEntry, Scope, Source
from ctxrules.registry.graph import RuleDependencyGraph
from ctxrules.resolver import resolve_dependencies


def _direct(rule_id: str, score: int) -> ResolvedEntry:
    return ResolvedEntry(rule_id=rule_id, score=score, provenance=Provenance.DIRECT)


def _required(rule_id: str, score: int, *by: str) -> ResolvedEntry:
    return ResolvedEntry(rule_id=rule_id, score=score, provenance=Provenance.REQUIRED, required_by=by, depth=1)


def _resolved(required: dict[str, tuple[str, ...]], **scores: int) -> list[ResolvedEntry]:
    ranked = rank_candidates(merge_candidates([PartialCandidates(source=Source.FILE_TYPE, scores=dict(scores))]))
    graph = RuleDependencyGraph(nodes=set(scores) | set(required), required=required, optional={})
    return resolve_dependencies(ranked, graph)


def _ids(entries) -> list[str]:
    return [e.rule_id for e in entries]


# -----------------------------------------------------------------------------
# Plain truncation
# -----------------------------------------------------------------------------


def test_under_limit_is_untouched() -> None:
    entries = [_direct("a", 3), _direct("b", 2)]
    kept, warning = select_within_limit(entries, Scope.SINGLE_FILE_EDIT)
    assert kept == entries
    assert warning is None


def test_top_five_by_score_for_single_file_edit() -> None:
    entries = [
        _direct("a", 10),
        _direct("b", 10),
        _direct("c", 9),
        _direct("d", 8),
        _direct("e", 8),
        _direct("f", 7),
        _direct("g", 5),
        _direct("h", 4),
    ]
    kept, warning = select_within_limit(entries, "single_file_edit")
    assert _ids(kept) == ["a", "b", "c", "d", "e"]
    assert warning is None


def test_lowest_scores_dropped_first_and_order_kept() -> None:
    entries = [_direct("low", 1), _direct("high", 9), _direct("mid", 5), _direct("top", 10), _direct("min", 0), _direct("x", 6)]
    kept, _ = select_within_limit(entries, Scope.SINGLE_FILE_EDIT)
    assert _ids(kept) == ["low", "high", "mid", "top", "x"]


def test_custom_limits() -> None:
    config = EngineConfig(limits={**DEFAULT_LIMITS, Scope.FEATURE_BUILD: 2})
    kept, _ = select_within_limit([_direct("a", 1), _direct("b", 2), _direct("c", 3)], Scope.FEATURE_BUILD, config)
    assert _ids(kept) == ["b", "c"]


# -----------------------------------------------------------------------------
# Required chains
# -----------------------------------------------------------------------------


def test_required_chain_is_breadth_first() -> None:
    needs = {"a": ["b", "c"], "b": ["d"], "c": ["d"]}
    assert required_chain("a", needs) == ["a", "b", "c", "d"]
    assert required_chain("d", needs) == ["d"]


def test_requirement_travels_with_its_requirer() -> None:
    entries = _resolved({"a": ("r",)}, a=10, b=9, c=8, d=7, e=6, f=5)
    kept, warning = select_within_limit(entries, Scope.SINGLE_FILE_EDIT)
    assert _ids(kept) == ["a", "r", "b", "c", "d"]
    assert kept[1].provenance == Provenance.REQUIRED
    assert warning is None


def test_requirements_of_a_dropped_rule_are_dropped_with_it() -> None:
    entries = _resolved({"low": ("low-dep",)}, a=10, b=10, c=10, d=10, e=10, low=4)
    assert _ids(entries)[-2:] == ["low", "low-dep"]

    kept, warning = select_within_limit(entries, Scope.SINGLE_FILE_EDIT)
    assert _ids(kept) == ["a", "b", "c", "d", "e"]
    assert warning is None


def test_chain_that_does_not_fit_leaves_room_for_smaller_ones() -> None:
    entries = _resolved({"big": ("big-1", "big-2")}, a=10, b=10, c=10, d=10, big=9, small=8)
    kept, warning = select_within_limit(entries, Scope.SINGLE_FILE_EDIT)
    assert _ids(kept) == ["a", "b", "c", "d", "small"]
    assert warning is None


def test_shared_requirement_stays_while_any_requirer_is_kept() -> None:
    entries = [
        _direct("a", 10),
        _required("base", 10, "a", "z"),
        _direct("b", 9),
        _direct("c", 8),
        _direct("d", 7),
        _direct("e", 6),
        _direct("z", 1),
    ]
    kept, _ = select_within_limit(entries, Scope.SINGLE_FILE_EDIT)
    assert _ids(kept) == ["a", "base", "b", "c", "d"]


def test_oversized_chain_keeps_its_root_and_warns() -> None:
    entries = _resolved({"root": tuple(f"r{i}" for i in range(1, 7))}, root=10, other=3)
    assert len(entries) == 8

    kept, warning = select_within_limit(entries, Scope.SINGLE_FILE_EDIT)
    assert _ids(kept) == ["root", "r1", "r2", "r3", "r4"]
    assert isinstance(warning, LimitExceededWarning)
    assert warning.limit == 5
    assert warning.required_count == 7
    assert warning.dropped == 3
    assert warning.to_dict()["dropped"] == 3
    assert "required chain of 7 rules" in str(warning)


@pytest.mark.parametrize("scope", list(Scope))
def test_kept_requirements_always_have_a_kept_requirer(scope: Scope) -> None:
    required = {f"d{i}": (f"r{i}",) for i in range(0, 10, 3)}
    entries = _resolved(required, **{f"d{i}": i % 4 for i in range(10)})
    kept, warning = select_within_limit(entries, scope)

    kept_ids = set(_ids(kept))
    assert len(kept) <= DEFAULT_LIMITS[scope]
    assert warning is None
    for entry in kept:
        if entry.provenance == Provenance.REQUIRED:
            assert kept_ids & set(entry.required_by)
