"""Map diagnostic positions onto symbols of a semantic model."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .models import DiagnosticRecord
from .semantic import SemanticModel, Symbol

logger = logging.getLogger(__name__)


class DiagnosticPositionResolver:
    """Resolve diagnostics to the symbols referenced at their position.

    The model does the syntax work (smallest node, identifier widening,
    alias following); this class adapts ``DiagnosticRecord`` coordinates to
    it and hides files the model does not know about.
    """

    def __init__(self, model: SemanticModel) -> None:
        self.model = model

    def resolve(self, record: DiagnosticRecord) -> List[Symbol]:
        if not self.model.has_file(record.file_path):
            return []
        symbols = self.model.resolve_symbols_at(
            record.file_path,
            record.line,
            record.column,
            record.end_line,
            record.end_column,
        )
        if symbols:
            logger.debug(
                "%s resolved to %s", record, ", ".join(s.qualname for s in symbols)
            )
        return symbols

    def span_of(self, record: DiagnosticRecord) -> Optional[Tuple[int, int]]:
        """Character span covered by *record* inside its file.

        The span collapses to the start offset unless the record carries
        both an end line and an end column.
        """
        start = self.model.offset_of(record.file_path, record.line, record.column)
        if start is None:
            return None
        end = start
        if record.end_line is not None and record.end_column is not None:
            end_offset = self.model.offset_of(record.file_path, record.end_line, record.end_column)
            if end_offset is not None:
                end = max(start, end_offset)
        return start, end
