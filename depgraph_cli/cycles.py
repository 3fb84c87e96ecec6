"""Cycle detection over a :class:`DependencyGraph`.

Three-colour depth-first search driven by an explicit stack, so arbitrarily
deep import chains cannot exhaust the interpreter's recursion limit. Each
back edge (an edge into a node that is still on the current path) yields
one cycle, which guarantees at least one reported cycle for every
strongly-connected component that contains a cycle. This is not an
enumeration of all simple cycles.
"""

from __future__ import annotations

from typing import Dict, List, Set, Tuple

from .models import Cycle, DependencyGraph

WHITE, GRAY, BLACK = 0, 1, 2


def detect_cycles(graph: DependencyGraph) -> List[Cycle]:
    """Return the cycles found by DFS, in deterministic discovery order."""
    color: Dict[str, int] = {node: WHITE for node in graph.nodes}
    cycles: List[Cycle] = []
    seen: Set[Tuple[str, ...]] = set()

    for root in graph.nodes:
        if color[root] != WHITE:
            continue

        # Each frame is (node, successors, index of next successor).
        path: List[str] = [root]
        position: Dict[str, int] = {root: 0}
        stack: List[Tuple[str, List[str], int]] = [(root, graph.successors(root), 0)]
        color[root] = GRAY

        while stack:
            node, successors, index = stack[-1]
            if index == len(successors):
                stack.pop()
                path.pop()
                del position[node]
                color[node] = BLACK
                continue

            stack[-1] = (node, successors, index + 1)
            nxt = successors[index]
            state = color.get(nxt, WHITE)
            if state == GRAY:
                nodes = path[position[nxt]:] + [nxt]
                key = _canonical(nodes)
                if key not in seen:
                    seen.add(key)
                    cycles.append(Cycle(nodes))
            elif state == WHITE:
                color[nxt] = GRAY
                position[nxt] = len(path)
                path.append(nxt)
                stack.append((nxt, graph.successors(nxt), 0))

    return cycles


def _canonical(nodes: List[str]) -> Tuple[str, ...]:
    """Rotation-independent key for a closed node sequence."""
    ring = nodes[:-1]
    pivot = ring.index(min(ring))
    return tuple(ring[pivot:] + ring[:pivot])


def cycle_edges(cycles: List[Cycle]) -> Set[Tuple[str, str]]:
    """All (src, dst) edges that take part in at least one cycle."""
    edges: Set[Tuple[str, str]] = set()
    for cycle in cycles:
        edges.update(zip(cycle.nodes, cycle.nodes[1:]))
    return edges
