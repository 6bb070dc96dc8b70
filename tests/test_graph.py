import pytest

from ctxrules.errors import DependencyGraphCycleError
from ctxrules.registry.graph import RuleDependencyGraph


def _graph(required: dict[str, tuple[str, ...]], optional: dict[str, tuple[str, ...]] | None = None) -> RuleDependencyGraph:
    nodes = set(required) | set(optional or {})
    return RuleDependencyGraph(nodes=nodes, required=dict(required), optional=dict(optional or {}))


def test_dag_has_no_cycles() -> None:
    graph = _graph({"a": ("b", "c"), "b": ("c",), "c": ()})
    assert graph.find_cycles() == []
    graph.validate()


def test_required_closure() -> None:
    graph = _graph({"a": ("b",), "b": ("c",), "c": (), "d": ("a",)})
    assert graph.required_closure("a") == {"a", "b", "c"}
    assert graph.required_closure("d") == {"a", "b", "c", "d"}


def test_optional_edges_do_not_count_as_cycles() -> None:
    graph = _graph({"a": (), "b": ()}, {"a": ("b",), "b": ("a",)})
    assert graph.find_cycles() == []


def test_cycle_reported_as_path() -> None:
    graph = _graph({"a": ("b",), "b": ("c",), "c": ("a",), "d": ("a",)})
    assert graph.find_cycles() == [["a", "b", "c", "a"]]
    with pytest.raises(DependencyGraphCycleError):
        graph.validate()


def test_external_targets_are_ignored_for_cycles() -> None:
    graph = _graph({"a": ("outside",)})
    assert graph.find_cycles() == []
    assert graph.dangling() == [("a", "outside")]


def test_each_cycle_reported_once_from_its_smallest_rule() -> None:
    graph = _graph({"m": ("z",), "z": ("m",), "q": ("q", "m")})
    assert graph.find_cycles() == [["m", "z", "m"], ["q", "q"]]
    with pytest.raises(DependencyGraphCycleError) as excinfo:
        graph.validate()
    assert excinfo.value.cycles == [["m", "z", "m"], ["q", "q"]]
