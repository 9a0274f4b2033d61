"""Tests for dependency edge construction."""

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from lintlens.graph import build_edges, group_by_file
from lintlens.models import DependencyEdge, DiagnosticSource, Severity, diagnostic_identity
from lintlens.resolver import DiagnosticPositionResolver
from lintlens.semantic import DeclarationSpan, PythonSemanticModel, Symbol


class FakeModel:
    """Semantic model with hand-written answers; offsets are ``line * 100 + column``."""

    def __init__(
        self,
        symbols: Optional[Dict[Tuple[str, int, int], List[Symbol]]] = None,
        imports: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        self.symbols = symbols or {}
        self.imports = imports or {}

    def has_file(self, path):
        return True

    def offset_of(self, path, line, column):
        return line * 100 + column

    def resolve_symbols_at(self, path, line, column, end_line=None, end_column=None):
        return self.symbols.get((os.path.abspath(path), line, column), [])

    def declaration_span_of(self, symbol):
        return list(symbol.declarations)

    def import_targets(self, path):
        return self.imports.get(os.path.abspath(path), [])


def _symbol(path: str, start: int, end: int, name: str = "thing") -> Symbol:
    path = os.path.abspath(path)
    return Symbol(name, name, "function", path, (DeclarationSpan(path, start, end),))


def test_group_by_file_keeps_input_order(make_diagnostic):
    a1 = make_diagnostic("a.py", 5)
    b1 = make_diagnostic("b.py", 1)
    a2 = make_diagnostic("a.py", 2)
    groups = group_by_file([a1, b1, a2])
    assert list(groups) == [os.path.abspath("a.py"), os.path.abspath("b.py")]
    assert groups[os.path.abspath("a.py")] == [a1, a2]


class TestSymbolEdges:
    """Declaration diagnostic -> usage diagnostic edges."""

    def test_declaration_before_usage(self, make_diagnostic):
        decl = make_diagnostic("a.py", line=3, column=5, rule="F821")
        usage = make_diagnostic("b.py", line=10, column=1, rule="reportCallIssue", source=DiagnosticSource.PYRIGHT)
        model = FakeModel(symbols={
            (os.path.abspath("b.py"), 10, 1): [_symbol("a.py", 300, 400)],
        })

        edges = build_edges([usage, decl], model)

        assert edges == [DependencyEdge(diagnostic_identity(decl), diagnostic_identity(usage))]

    def test_no_edge_outside_declaration(self, make_diagnostic):
        other = make_diagnostic("a.py", line=9, column=1)
        usage = make_diagnostic("b.py", line=10, column=1)
        model = FakeModel(symbols={
            (os.path.abspath("b.py"), 10, 1): [_symbol("a.py", 300, 400)],
        })
        assert build_edges([usage, other], model) == []

    def test_range_must_be_fully_contained(self, make_diagnostic):
        """A diagnostic whose end runs past the declaration is not inside it."""
        spill = make_diagnostic("a.py", line=3, column=5, end_line=5, end_column=1)
        usage = make_diagnostic("b.py", line=10, column=1)
        model = FakeModel(symbols={
            (os.path.abspath("b.py"), 10, 1): [_symbol("a.py", 300, 400)],
        })
        assert build_edges([usage, spill], model) == []

    def test_usage_never_points_at_itself(self, make_diagnostic):
        """A diagnostic inside the declaration it references produces no self edge."""
        usage = make_diagnostic("a.py", line=3, column=5)
        model = FakeModel(symbols={
            (os.path.abspath("a.py"), 3, 5): [_symbol("a.py", 300, 400)],
        })
        assert build_edges([usage], model) == []

    def test_first_contained_diagnostic_is_used(self, make_diagnostic):
        """Only the first other diagnostic inside a declaration becomes a source."""
        first = make_diagnostic("a.py", line=3, column=1, rule="E1")
        second = make_diagnostic("a.py", line=3, column=9, rule="E2")
        usage = make_diagnostic("b.py", line=10, column=1)
        model = FakeModel(symbols={
            (os.path.abspath("b.py"), 10, 1): [_symbol("a.py", 300, 400)],
        })
        edges = build_edges([first, second, usage], model)
        assert edges == [DependencyEdge(diagnostic_identity(first), diagnostic_identity(usage))]

    def test_duplicate_records_do_not_duplicate_edges(self, make_diagnostic):
        decl = make_diagnostic("a.py", line=3, column=5)
        usage = make_diagnostic("b.py", line=10, column=1)
        model = FakeModel(symbols={
            (os.path.abspath("b.py"), 10, 1): [_symbol("a.py", 300, 400)],
        })
        edges = build_edges([usage, usage, decl, decl], model)
        assert len(edges) == 1


class TestImportEdges:
    """Imported module's first diagnostic -> every importer diagnostic."""

    def test_import_fallback(self, make_diagnostic):
        b1 = make_diagnostic("b.py", line=1)
        b2 = make_diagnostic("b.py", line=7)
        a1 = make_diagnostic("a.py", line=2)
        a2 = make_diagnostic("a.py", line=4)
        model = FakeModel(imports={os.path.abspath("a.py"): [os.path.abspath("b.py")]})

        edges = build_edges([b1, b2, a1, a2], model)

        assert edges == [
            DependencyEdge(diagnostic_identity(b1), diagnostic_identity(a1)),
            DependencyEdge(diagnostic_identity(b1), diagnostic_identity(a2)),
        ]

    def test_import_without_diagnostics(self, make_diagnostic):
        a1 = make_diagnostic("a.py", line=2)
        model = FakeModel(imports={os.path.abspath("a.py"): [os.path.abspath("clean.py")]})
        assert build_edges([a1], model) == []

    def test_symbol_edges_come_first(self, make_diagnostic):
        decl = make_diagnostic("b.py", line=3, column=1)
        first_b = make_diagnostic("b.py", line=1, column=1)
        usage = make_diagnostic("a.py", line=10, column=1)
        model = FakeModel(
            symbols={(os.path.abspath("a.py"), 10, 1): [_symbol("b.py", 300, 400)]},
            imports={os.path.abspath("a.py"): [os.path.abspath("b.py")]},
        )
        edges = build_edges([first_b, decl, usage], model)
        assert edges[0] == DependencyEdge(diagnostic_identity(decl), diagnostic_identity(usage))
        assert edges[1] == DependencyEdge(diagnostic_identity(first_b), diagnostic_identity(usage))


class TestResolver:
    """Tests for DiagnosticPositionResolver."""

    def test_span_collapses_without_end(self, make_diagnostic):
        resolver = DiagnosticPositionResolver(FakeModel())
        assert resolver.span_of(make_diagnostic(line=2, column=3)) == (203, 203)
        assert resolver.span_of(make_diagnostic(line=2, column=3, end_line=2)) == (203, 203)

    def test_span_with_end(self, make_diagnostic):
        resolver = DiagnosticPositionResolver(FakeModel())
        assert resolver.span_of(make_diagnostic(line=2, column=3, end_line=4, end_column=1)) == (203, 401)

    def test_unknown_file(self, sample_project: Path, make_diagnostic):
        resolver = DiagnosticPositionResolver(PythonSemanticModel.from_project(sample_project))
        record = make_diagnostic(str(sample_project / "elsewhere.py"), line=1)
        assert resolver.resolve(record) == []
        assert resolver.span_of(record) is None


def test_sample_project_edges(sample_project: Path, make_diagnostic):
    """The undefined name in ``make_config`` comes before the broken call in ``service``."""
    model = PythonSemanticModel.from_project(sample_project)
    decl = make_diagnostic(
        sample_project / "models.py", line=18, column=19,
        severity=Severity.WARNING, message="Undefined name `nmae`",
    )
    usage = make_diagnostic(
        sample_project / "service.py", line=7, column=14,
        rule="reportCallIssue", source=DiagnosticSource.PYRIGHT,
    )

    edges = build_edges([usage, decl], model)

    assert edges == [DependencyEdge(diagnostic_identity(decl), diagnostic_identity(usage))]
