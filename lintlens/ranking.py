"""Deterministic topological ranking of diagnostic identities."""

from __future__ import annotations

import heapq
import logging
from typing import Dict, Iterable, List, Set

from .models import DependencyEdge, RankMap

logger = logging.getLogger(__name__)


def topological_rank(identities: Iterable[str], edges: Iterable[DependencyEdge]) -> RankMap:
    """Assign each distinct identity its position in a topological order.

    Ready nodes are taken smallest identity first, so equal inputs always
    give equal ranks.  Edges touching unknown identities are ignored.  Nodes
    left over by a cycle are appended in input order, so every identity gets
    a unique rank.

    Returns:
        Dense 0-based ranks keyed by identity.
    """
    nodes: List[str] = list(dict.fromkeys(identities))
    known = set(nodes)

    successors: Dict[str, Set[str]] = {node: set() for node in nodes}
    in_degree: Dict[str, int] = {node: 0 for node in nodes}
    for edge in edges:
        if edge.source not in known or edge.target not in known:
            continue
        if edge.target in successors[edge.source]:
            continue
        successors[edge.source].add(edge.target)
        in_degree[edge.target] += 1

    ready = [node for node in nodes if in_degree[node] == 0]
    heapq.heapify(ready)

    order: List[str] = []
    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for succ in successors[node]:
            in_degree[succ] -= 1
            if in_degree[succ] == 0:
                heapq.heappush(ready, succ)

    if len(order) < len(nodes):
        placed = set(order)
        leftovers = [node for node in nodes if node not in placed]
        logger.debug("Dependency cycle among %d diagnostics", len(leftovers))
        order.extend(leftovers)

    return {node: rank for rank, node in enumerate(order)}
