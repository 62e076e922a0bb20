"""Tests for the curve dependency graph."""
import pytest

from ficcrisk.errors import CyclicDependencyError
from ficcrisk.pricing import PricerEvaluator
from ficcrisk.schema.enums import BumpFlags, BumpTarget
from ficcrisk.sensitivity import DependencyGraph, build_curve_graph

from .conftest import ZeroRatePricer


class Node:
    def __init__(self, name, *parents):
        self.name = name
        self.parents = list(parents)

    def __repr__(self):
        return self.name


def build(*roots):
    return DependencyGraph.build(roots, lambda n: n.parents)


class TestDependencyGraph:
    """Topological ordering, cycles and dependents."""

    def test_parents_before_children(self):
        a = Node("a")
        b = Node("b", a)
        c = Node("c", b, a)
        graph = build(c)
        assert graph.ordered == [a, b, c]
        assert graph.reverse_ordered() == [c, b, a]

    def test_duplicate_roots_collapse(self):
        a = Node("a")
        b = Node("b", a)
        graph = build(b, a, b)
        assert len(graph) == 2

    def test_nodes_compared_by_identity(self):
        graph = build(Node("x"), Node("x"))
        assert len(graph) == 2

    def test_cycle_detected(self):
        a = Node("a")
        b = Node("b", a)
        a.parents.append(b)
        with pytest.raises(CyclicDependencyError, match="a -> b -> a") as info:
            build(a)
        assert [n.name for n in info.value.cycle] == ["a", "b", "a"]

    def test_self_cycle(self):
        a = Node("a")
        a.parents.append(a)
        with pytest.raises(CyclicDependencyError):
            build(a)

    def test_dependents(self):
        a = Node("a")
        b = Node("b", a)
        c = Node("c", b)
        d = Node("d")
        graph = build(c, d)
        assert graph.dependents([a]) == [a, b, c]
        assert graph.dependents([b]) == [b, c]
        assert graph.dependents([d]) == [d]

    def test_membership_and_parents(self):
        a = Node("a")
        b = Node("b", a)
        graph = build(b)
        assert a in graph
        assert Node("a") not in graph
        assert graph.parents(b) == [a]
        assert graph.index(b) == 1


class TestCurveGraph:
    """Graphs built from pricer evaluators."""

    def test_basis_curve_after_base(self, basis_curves, basis_swap):
        base, basis = basis_curves
        graph = build_curve_graph([PricerEvaluator(basis_swap)], BumpTarget.INTEREST_RATES)
        assert graph.ordered == [base, basis]
        assert graph.calibrated() == [base, basis]

    def test_prerequisites_pulled_in(self, basis_curves):
        base, basis = basis_curves
        graph = build_curve_graph([PricerEvaluator(ZeroRatePricer(basis, 2.0))],
                                  BumpTarget.INTEREST_RATES)
        assert graph.ordered == [base, basis]

    def test_target_without_curves(self, basis_swap):
        graph = build_curve_graph([PricerEvaluator(basis_swap)], BumpTarget.CREDIT_QUOTES,
                                  BumpFlags.NONE)
        assert len(graph) == 0
