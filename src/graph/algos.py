"""Graph algorithms over symbol reference edges."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


def symbol_key(file_path: str, symbol: str) -> str:
    """Qualified graph node for a declaration: ``path#Symbol``."""
    return f"{file_path}#{symbol}"


def build_reference_graph(
    references: Mapping[str, Iterable[str]],
) -> dict[str, set[str]]:
    """Build a directed graph from qualified symbol references.

    Args:
        references: Mapping of qualified symbol to the qualified symbols
            its declaration refers to directly

    Returns:
        Dictionary where every symbol (referencing or referenced) is a key
        and values are the sets of symbols it depends on
    """
    graph: dict[str, set[str]] = defaultdict(set)

    for source, targets in references.items():
        graph[source].update(targets)
        for target in targets:
            graph.setdefault(target, set())

    return dict(graph)


class _TarjanState:
    """Mutable state container for Tarjan's SCC algorithm."""

    def __init__(self) -> None:
        self.index = 0
        self.indices: dict[str, int] = {}
        self.low_link: dict[str, int] = {}
        self.on_stack: set[str] = set()
        self.stack: list[str] = []
        self.sccs: list[list[str]] = []


def _pop_component(state: _TarjanState, root: str) -> list[str]:
    component: list[str] = []
    while state.stack:
        member = state.stack.pop()
        state.on_stack.discard(member)
        component.append(member)
        if member == root:
            return component
    msg = f"Tarjan invariant violated: {root!r} missing from the stack"
    raise RuntimeError(msg)


def _visit(node: str, graph: Mapping[str, set[str]], state: _TarjanState) -> None:
    state.indices[node] = state.low_link[node] = state.index
    state.index += 1
    state.stack.append(node)
    state.on_stack.add(node)

    for neighbor in sorted(graph.get(node, set())):
        if neighbor not in state.indices:
            _visit(neighbor, graph, state)
            state.low_link[node] = min(state.low_link[node], state.low_link[neighbor])
        elif neighbor in state.on_stack:
            state.low_link[node] = min(state.low_link[node], state.indices[neighbor])

    if state.low_link[node] == state.indices[node]:
        component = _pop_component(state, node)
        if len(component) > 1 or node in graph.get(node, set()):
            state.sccs.append(sorted(component))


def find_cycles(graph: Mapping[str, set[str]]) -> list[list[str]]:
    """Find mutually recursive groups using Tarjan's algorithm.

    Self-referencing symbols form a group of one. Each group is sorted and
    the groups are returned in sorted order.
    """
    state = _TarjanState()

    for node in sorted(graph):
        if node not in state.indices:
            _visit(node, graph, state)

    return sorted(state.sccs)


__all__ = ["build_reference_graph", "find_cycles", "symbol_key"]
