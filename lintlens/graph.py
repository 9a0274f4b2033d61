"""Dependency edges between diagnostics.

An edge ``A -> B`` means "show A before B".  Two kinds are produced:

* symbol edges, from a diagnostic inside a declaration to a diagnostic on a
  use of that declaration;
* import edges, from the first diagnostic of an imported module to every
  diagnostic of the importing module.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .models import DependencyEdge, DiagnosticRecord, diagnostic_identity
from .resolver import DiagnosticPositionResolver
from .semantic import SemanticModel

logger = logging.getLogger(__name__)


def group_by_file(diagnostics: Sequence[DiagnosticRecord]) -> Dict[str, List[DiagnosticRecord]]:
    """Group diagnostics by absolute file path, keeping input order."""
    groups: Dict[str, List[DiagnosticRecord]] = {}
    for record in diagnostics:
        groups.setdefault(os.path.abspath(record.file_path), []).append(record)
    return groups


class _EdgeSet:
    """Ordered, de-duplicated edge list that refuses self edges."""

    def __init__(self) -> None:
        self.edges: List[DependencyEdge] = []
        self._seen: Set[Tuple[str, str]] = set()

    def add(self, source: str, target: str) -> None:
        if source == target or (source, target) in self._seen:
            return
        self._seen.add((source, target))
        self.edges.append(DependencyEdge(source=source, target=target))


def build_edges(
    diagnostics: Sequence[DiagnosticRecord],
    model: SemanticModel,
) -> List[DependencyEdge]:
    """Derive ordering edges for *diagnostics* from the semantic *model*.

    Args:
        diagnostics: Records in input order.
        model: Program model used to resolve positions and imports.

    Returns:
        Edges in discovery order: all symbol edges first, then import edges.
    """
    by_file = group_by_file(diagnostics)
    resolver = DiagnosticPositionResolver(model)
    edges = _EdgeSet()

    spans: Dict[str, Optional[Tuple[int, int]]] = {}
    for record in diagnostics:
        key = diagnostic_identity(record)
        if key not in spans:
            spans[key] = resolver.span_of(record)

    # declaration diagnostic -> usage diagnostic
    for usage in diagnostics:
        usage_id = diagnostic_identity(usage)
        for symbol in resolver.resolve(usage):
            for decl in model.declaration_span_of(symbol):
                for candidate in by_file.get(os.path.abspath(decl.file_path), []):
                    candidate_id = diagnostic_identity(candidate)
                    if candidate_id == usage_id:
                        continue
                    span = spans[candidate_id]
                    if span is None:
                        continue
                    if span[0] >= decl.start_offset and span[1] <= decl.end_offset:
                        edges.add(candidate_id, usage_id)
                        break

    symbol_edge_count = len(edges.edges)

    # imported module's first diagnostic -> every importer diagnostic
    for file_path, records in by_file.items():
        if not model.has_file(file_path):
            continue
        for target in model.import_targets(file_path):
            target_records = by_file.get(os.path.abspath(target))
            if not target_records:
                continue
            first_id = diagnostic_identity(target_records[0])
            for record in records:
                edges.add(first_id, diagnostic_identity(record))

    logger.debug(
        "Built %d symbol edges and %d import edges over %d diagnostics",
        symbol_edge_count,
        len(edges.edges) - symbol_edge_count,
        len(diagnostics),
    )
    return edges.edges
