"""Final presentation order of diagnostics."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .graph import build_edges
from .models import DiagnosticRecord, RankMap, diagnostic_identity
from .ranking import topological_rank
from .semantic import SemanticModel

logger = logging.getLogger(__name__)


def sort_diagnostics(
    diagnostics: Sequence[DiagnosticRecord],
    rank_map: Optional[RankMap] = None,
) -> List[DiagnosticRecord]:
    """Sort by rank, then severity (descending), file, line and column.

    Without *rank_map* the rank component is skipped.  The sort is stable.
    """
    if rank_map is None:
        return sorted(
            diagnostics,
            key=lambda d: (-d.severity, d.file_path, d.line, d.column),
        )
    fallback = len(rank_map)
    return sorted(
        diagnostics,
        key=lambda d: (
            rank_map.get(diagnostic_identity(d), fallback),
            -d.severity,
            d.file_path,
            d.line,
            d.column,
        ),
    )


def order_diagnostics(
    diagnostics: Sequence[DiagnosticRecord],
    model: Optional[SemanticModel] = None,
) -> List[DiagnosticRecord]:
    """Order *diagnostics* so that root causes come before their fallout.

    When no semantic model is available (or there is nothing to relate)
    the ranking step is skipped and only the tie-break order applies.
    """
    if model is None or len(diagnostics) < 2:
        if model is None:
            logger.debug("No semantic model, using tie-break order only")
        return sort_diagnostics(diagnostics)

    edges = build_edges(diagnostics, model)
    rank_map = topological_rank((diagnostic_identity(d) for d in diagnostics), edges)
    return sort_diagnostics(diagnostics, rank_map)
