"""
Dependency graph of curves: every curve after the curves it is derived from.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Sequence

from ficcrisk.errors import CyclicDependencyError
from ficcrisk.schema.enums import BumpFlags, BumpTarget

logger = logging.getLogger(__name__)

_VISITING = 1
_DONE = 2


class DependencyGraph:
    """Curves in topological order.

    Built once per sensitivity run. Nodes are compared by identity, so two
    equal-looking curves are still distinct nodes.
    """

    def __init__(self, ordered: Sequence, parents: Dict[int, list]):
        self._ordered = list(ordered)
        self._parents = parents
        self._index = {id(node): i for i, node in enumerate(self._ordered)}

    @classmethod
    def build(cls, roots: Iterable, get_parents: Callable[[object], Iterable]) -> "DependencyGraph":
        """
        Collect ``roots`` and everything they depend on, parents first.

        Args:
            roots: Starting nodes; duplicates are ignored
            get_parents: Direct prerequisites of a node

        Returns:
            DependencyGraph with nodes in depth-first post-order

        Raises:
            CyclicDependencyError: If a node depends on itself transitively
        """
        state: Dict[int, int] = {}
        parents: Dict[int, list] = {}
        ordered: List = []

        def visit(node, path: List) -> None:
            key = id(node)
            status = state.get(key)
            if status == _DONE:
                return
            if status == _VISITING:
                start = next(i for i, n in enumerate(path) if n is node)
                raise CyclicDependencyError(path[start:] + [node])

            state[key] = _VISITING
            path.append(node)
            node_parents = [p for p in get_parents(node) if p is not None]
            parents[key] = node_parents
            for parent in node_parents:
                visit(parent, path)
            path.pop()
            state[key] = _DONE
            ordered.append(node)

        for root in roots:
            if root is not None:
                visit(root, [])

        logger.debug("Dependency graph built with %d nodes", len(ordered))
        return cls(ordered, parents)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    @property
    def ordered(self) -> List:
        return list(self._ordered)

    def reverse_ordered(self) -> List:
        """Most dependent nodes first."""
        return list(reversed(self._ordered))

    def __iter__(self) -> Iterator:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, node) -> bool:
        return id(node) in self._index

    def index(self, node) -> int:
        return self._index[id(node)]

    def parents(self, node) -> list:
        return list(self._parents.get(id(node), []))

    def calibrated(self) -> List:
        """Nodes that can be refit."""
        return [n for n in self._ordered if getattr(n, "calibrator", None) is not None]

    def dependents(self, nodes: Iterable) -> List:
        """
        The given nodes plus every graph node that depends on them.

        Args:
            nodes: Starting nodes

        Returns:
            Nodes in dependency order
        """
        affected = {id(n) for n in nodes}
        result = []
        for node in self._ordered:
            if id(node) in affected or any(id(p) in affected for p in self._parents.get(id(node), [])):
                affected.add(id(node))
                result.append(node)
        return result

    def __repr__(self) -> str:
        names = [getattr(n, "name", repr(n)) for n in self._ordered]
        return f"DependencyGraph({names})"


def build_curve_graph(
    evaluators: Iterable,
    target: BumpTarget,
    flags: BumpFlags = BumpFlags.NONE,
) -> DependencyGraph:
    """
    Build the curve graph for a set of pricer evaluators.

    Args:
        evaluators: Pricer evaluators
        target: Quote types being bumped
        flags: RECALIBRATE_SURVIVAL also pulls in credit curves so they are
            refit after rate bumps

    Returns:
        DependencyGraph of the evaluators' curves and their prerequisites
    """
    curve_target = target
    if flags & BumpFlags.RECALIBRATE_SURVIVAL:
        curve_target |= BumpTarget.CREDIT_QUOTES

    roots = []
    for evaluator in evaluators:
        roots.extend(evaluator.curves_for_target(curve_target))
    return DependencyGraph.build(roots, lambda curve: curve.prerequisite_curves())
