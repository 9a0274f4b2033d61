"""Semantic program model used to resolve diagnostic positions to symbols.

The ordering engine only needs a narrow capability: "which symbol is
referenced at this position, and where is it declared".  ``SemanticModel``
describes that contract; ``PythonSemanticModel`` implements it for Python
projects with the built-in ``ast`` module.

The model is built once per run.  Resolution is intentionally shallow:
function, class and module scopes, attribute access on classes, modules and
``self``/``cls``, and import aliases followed to the symbol they re-export.
"""

from __future__ import annotations

import ast
import logging
import os
import tokenize
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from .columns import real_column_from_visual

logger = logging.getLogger(__name__)

SKIP_DIRS: Set[str] = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs",
    "egg-info",
}

# Nodes a position is widened to before asking for a symbol.
_IDENTIFIER_NODES = (ast.Name, ast.Attribute, ast.Subscript, ast.alias)
_FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)
_ASSIGN_NODES = (ast.Assign, ast.AnnAssign, ast.AugAssign)


# ===================================================================
# Public contract
# ===================================================================

@dataclass(frozen=True)
class DeclarationSpan:
    """Character offsets ``[start_offset, end_offset]`` of a declaration."""

    file_path: str
    start_offset: int
    end_offset: int


@dataclass(frozen=True)
class Symbol:
    """A named program entity together with every place it is declared."""

    name: str
    qualname: str
    kind: str
    file_path: str
    declarations: Tuple[DeclarationSpan, ...]


class SemanticModel(Protocol):
    """Capability consumed by the dependency graph builder."""

    def has_file(self, path: str) -> bool:
        ...

    def offset_of(self, path: str, line: int, column: int) -> Optional[int]:
        ...

    def resolve_symbols_at(
        self,
        path: str,
        line: int,
        column: int,
        end_line: Optional[int] = None,
        end_column: Optional[int] = None,
    ) -> List[Symbol]:
        ...

    def declaration_span_of(self, symbol: Symbol) -> List[DeclarationSpan]:
        ...

    def import_targets(self, path: str) -> List[str]:
        ...


def normalize_path(path: str) -> str:
    return os.path.abspath(path)


# ===================================================================
# Index structures
# ===================================================================

@dataclass
class _Binding:
    name: str
    kind: str
    node: ast.AST
    module: Optional[str] = None
    attr: Optional[str] = None


class _Scope:
    __slots__ = ("qualname", "kind", "bindings")

    def __init__(self, qualname: str, kind: str) -> None:
        self.qualname = qualname
        self.kind = kind
        self.bindings: Dict[str, List[_Binding]] = {}

    def bind(self, binding: _Binding) -> None:
        self.bindings.setdefault(binding.name, []).append(binding)


class _SourceFile:
    """Parsed source file with offset helpers and scope tables."""

    def __init__(self, path: str, module_name: str, text: str, tree: ast.Module) -> None:
        self.path = path
        self.module_name = module_name
        self.text = text
        self.lines = text.split("\n")
        self.tree = tree
        self.line_starts: List[int] = []
        offset = 0
        for line in self.lines:
            self.line_starts.append(offset)
            offset += len(line) + 1

        self.parents: Dict[ast.AST, ast.AST] = {}
        for parent in ast.walk(tree):
            for child in ast.iter_child_nodes(parent):
                self.parents[child] = parent

        self.module_scope = _Scope(module_name, "module")
        self.scopes: Dict[ast.AST, _Scope] = {tree: self.module_scope}
        self.import_modules: List[str] = []

    @property
    def is_package(self) -> bool:
        return os.path.basename(self.path) == "__init__.py"

    # -- offsets ---------------------------------------------------------

    def line_text(self, line: int) -> str:
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""

    def offset(self, line: int, char_col: int) -> int:
        if line > len(self.lines):
            return len(self.text)
        line = max(line, 1)
        return self.line_starts[line - 1] + min(char_col, len(self.lines[line - 1]))

    def _char_col(self, line: int, byte_col: int) -> int:
        # ast columns are UTF-8 byte offsets
        encoded = self.line_text(line).encode("utf-8")
        return len(encoded[:byte_col].decode("utf-8", errors="ignore"))

    def span(self, node: ast.AST) -> Optional[Tuple[int, int]]:
        lineno = getattr(node, "lineno", None)
        if lineno is None:
            return None
        start_line, start_col = lineno, node.col_offset
        for decorator in getattr(node, "decorator_list", ()):
            if (decorator.lineno, decorator.col_offset) < (start_line, start_col):
                start_line, start_col = decorator.lineno, max(decorator.col_offset - 1, 0)
        end_line = getattr(node, "end_lineno", None) or lineno
        end_col = getattr(node, "end_col_offset", None)
        start = self.offset(start_line, self._char_col(start_line, start_col))
        if end_col is None:
            end = self.offset(end_line, len(self.line_text(end_line)))
        else:
            end = self.offset(end_line, self._char_col(end_line, end_col))
        return start, end

    def declaration(self, node: ast.AST) -> Optional[DeclarationSpan]:
        span = self.span(node)
        if span is None:
            return None
        return DeclarationSpan(self.path, span[0], span[1])

    # -- node lookup -----------------------------------------------------

    def node_at(self, pos: int) -> ast.AST:
        """Return the smallest positioned node whose span contains *pos*."""
        best: ast.AST = self.tree
        best_size = len(self.text) + 1
        stack: List[ast.AST] = [self.tree]
        while stack:
            node = stack.pop()
            for child in ast.iter_child_nodes(node):
                span = self.span(child)
                if span is None:
                    stack.append(child)
                elif span[0] <= pos < span[1]:
                    if span[1] - span[0] <= best_size:
                        best, best_size = child, span[1] - span[0]
                    stack.append(child)
        return best

    def widen(self, node: Optional[ast.AST]) -> Optional[ast.AST]:
        while node is not None and not isinstance(node, _IDENTIFIER_NODES):
            node = self.parents.get(node)
        return node

    def scopes_for(self, node: ast.AST) -> List[_Scope]:
        """Scopes visible from *node*, innermost first."""
        found: List[_Scope] = []
        child = node
        parent = self.parents.get(node)
        while parent is not None:
            if isinstance(parent, _FUNCTION_NODES):
                if child in parent.body or child is parent.args:
                    found.append(self.scopes[parent])
            elif isinstance(parent, ast.ClassDef):
                if not found and child in parent.body:
                    found.append(self.scopes[parent])
            child, parent = parent, self.parents.get(parent)
        found.append(self.module_scope)
        return found

    def enclosing_class(self, node: ast.AST, receiver: str) -> Optional[ast.ClassDef]:
        """Class whose method binds *receiver* as its first parameter."""
        parent = self.parents.get(node)
        while parent is not None:
            if isinstance(parent, _FUNCTION_NODES):
                owner = self.parents.get(parent)
                params = parent.args.posonlyargs + parent.args.args
                if isinstance(owner, ast.ClassDef) and params and params[0].arg == receiver:
                    return owner
                return None
            parent = self.parents.get(parent)
        return None


class _ScopeCollector(ast.NodeVisitor):
    """Walks a module and records which names each scope binds."""

    def __init__(self, source: _SourceFile, package: str) -> None:
        self.source = source
        self.package = package
        self.stack: List[_Scope] = [source.module_scope]

    def _bind(self, name: str, kind: str, node: ast.AST, **extra: Optional[str]) -> None:
        self.stack[-1].bind(_Binding(name=name, kind=kind, node=node, **extra))

    def _push(self, node: ast.AST, name: str, kind: str) -> _Scope:
        scope = _Scope(f"{self.stack[-1].qualname}.{name}", kind)
        self.source.scopes[node] = scope
        return scope

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._bind(node.name, "class", node)
        for expr in node.decorator_list + node.bases:
            self.visit(expr)
        self.stack.append(self._push(node, node.name, "class"))
        for stmt in node.body:
            self.visit(stmt)
        self.stack.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_function(node)

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        self._bind(node.name, "function", node)
        for expr in node.decorator_list:
            self.visit(expr)
        scope = self._push(node, node.name, "function")
        args = node.args
        for arg in args.posonlyargs + args.args + args.kwonlyargs + [args.vararg, args.kwarg]:
            if arg is not None:
                scope.bind(_Binding(name=arg.arg, kind="parameter", node=arg))
        self.stack.append(scope)
        for stmt in node.body:
            self.visit(stmt)
        self.stack.pop()

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Store):
            self._bind(node.id, "variable", self._declaring_node(node))

    def _declaring_node(self, node: ast.AST) -> ast.AST:
        parent = self.source.parents.get(node)
        while parent is not None and not isinstance(parent, ast.stmt):
            parent = self.source.parents.get(parent)
        if isinstance(parent, _ASSIGN_NODES):
            return parent
        return node

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            decl = alias if hasattr(alias, "lineno") else node
            if alias.asname:
                self._bind(alias.asname, "import", decl, module=alias.name)
            else:
                head = alias.name.split(".")[0]
                self._bind(head, "import", decl, module=head)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        module = self.absolute_module(node.module, node.level)
        for alias in node.names:
            if alias.name == "*":
                continue
            decl = alias if hasattr(alias, "lineno") else node
            self._bind(alias.asname or alias.name, "import", decl, module=module, attr=alias.name)

    def absolute_module(self, module: Optional[str], level: int) -> Optional[str]:
        if level == 0:
            return module
        parts = self.package.split(".") if self.package else []
        if level - 1 > len(parts):
            return None
        base = parts[: len(parts) - (level - 1)]
        if module:
            base.append(module)
        return ".".join(base)


# ===================================================================
# Python implementation
# ===================================================================

class PythonSemanticModel:
    """``SemanticModel`` for a tree of Python source files."""

    def __init__(self, project_root: Path, files: Iterable[Path]) -> None:
        self.project_root = Path(os.path.abspath(project_root))
        self._files: Dict[str, _SourceFile] = {}
        self._modules: Dict[str, _SourceFile] = {}
        self._class_scopes: Dict[str, Tuple[_SourceFile, _Scope]] = {}
        self._import_targets: Dict[str, List[str]] = {}

        for file_path in files:
            self._add_file(Path(file_path))
        for source in self._files.values():
            self._import_targets[source.path] = self._resolve_import_targets(source)

    @classmethod
    def from_project(cls, project_root: Path) -> "PythonSemanticModel":
        root = Path(project_root)
        files = [
            fp for fp in sorted(root.rglob("*.py"))
            if not any(
                part in SKIP_DIRS or part.endswith(".egg-info")
                for part in fp.relative_to(root).parts
            )
        ]
        return cls(project_root, files)

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def _source_roots(self) -> List[Path]:
        src = self.project_root / "src"
        return [src, self.project_root] if src.is_dir() else [self.project_root]

    def _module_names(self, path: Path) -> List[str]:
        names: List[str] = []
        for root in self._source_roots():
            try:
                rel = path.relative_to(root)
            except ValueError:
                continue
            parts = list(rel.with_suffix("").parts)
            if parts and parts[-1] == "__init__":
                parts.pop()
            names.append(".".join(parts))
        return names

    def _add_file(self, file_path: Path) -> None:
        path = normalize_path(str(file_path))
        try:
            with tokenize.open(path) as fh:
                raw = fh.read()
        except (OSError, SyntaxError, UnicodeDecodeError) as exc:
            logger.warning("Cannot read %s: %s", path, exc)
            return
        text = raw.replace("\r\n", "\n").replace("\r", "\n")
        try:
            tree = ast.parse(text, filename=path)
        except (SyntaxError, ValueError) as exc:
            logger.warning("SyntaxError in %s: %s", path, exc)
            return

        names = self._module_names(Path(path)) or [Path(path).stem]
        source = _SourceFile(path, names[0], text, tree)
        package = source.module_name if source.is_package else source.module_name.rpartition(".")[0]
        collector = _ScopeCollector(source, package)
        collector.visit(tree)

        for stmt in tree.body:
            if isinstance(stmt, ast.Import):
                source.import_modules.extend(alias.name for alias in stmt.names)
            elif isinstance(stmt, ast.ImportFrom):
                module = collector.absolute_module(stmt.module, stmt.level)
                if module is None:
                    continue
                if module:
                    source.import_modules.append(module)
                prefix = f"{module}." if module else ""
                source.import_modules.extend(
                    prefix + alias.name for alias in stmt.names if alias.name != "*"
                )

        self._files[path] = source
        for name in names:
            self._modules.setdefault(name, source)
        for node, scope in source.scopes.items():
            if isinstance(node, ast.ClassDef):
                self._class_scopes[scope.qualname] = (source, scope)

    def _resolve_import_targets(self, source: _SourceFile) -> List[str]:
        targets: List[str] = []
        for module in source.import_modules:
            target = self._modules.get(module)
            if target is None or target.path == source.path or target.path in targets:
                continue
            targets.append(target.path)
        return targets

    # ------------------------------------------------------------------
    # SemanticModel contract
    # ------------------------------------------------------------------

    @property
    def files(self) -> List[str]:
        return list(self._files)

    def has_file(self, path: str) -> bool:
        return normalize_path(path) in self._files

    def offset_of(self, path: str, line: int, column: int) -> Optional[int]:
        source = self._files.get(normalize_path(path))
        if source is None:
            return None
        real = real_column_from_visual(source.line_text(line), max(0, column - 1))
        return source.offset(line, real)

    def resolve_symbols_at(
        self,
        path: str,
        line: int,
        column: int,
        end_line: Optional[int] = None,
        end_column: Optional[int] = None,
    ) -> List[Symbol]:
        """Return the symbols referenced at a 1-based line and visual column.

        Only the start position selects the node; the end position is
        accepted for parity with range-reporting tools.
        """
        source = self._files.get(normalize_path(path))
        if source is None:
            return []
        pos = self.offset_of(path, line, column)
        node = source.widen(source.node_at(pos))
        if node is None:
            return []
        symbol = self._symbol_for_node(source, node)
        return [symbol] if symbol is not None else []

    def declaration_span_of(self, symbol: Symbol) -> List[DeclarationSpan]:
        return list(symbol.declarations)

    def import_targets(self, path: str) -> List[str]:
        return list(self._import_targets.get(normalize_path(path), []))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _symbol_for_node(self, source: _SourceFile, node: ast.AST) -> Optional[Symbol]:
        if isinstance(node, ast.alias):
            name = node.asname or node.name.split(".")[0]
            return self._lookup_name(source, name, node)
        if isinstance(node, ast.Subscript):
            key = node.slice
            if isinstance(key, ast.Constant) and isinstance(key.value, str):
                owner = self._symbol_for_expr(source, node.value)
                return self._member(owner, key.value) if owner is not None else None
            return self._symbol_for_expr(source, key)
        return self._symbol_for_expr(source, node)

    def _symbol_for_expr(self, source: _SourceFile, expr: ast.AST) -> Optional[Symbol]:
        if isinstance(expr, ast.Name):
            return self._lookup_name(source, expr.id, expr)
        if isinstance(expr, ast.Attribute):
            receiver = expr.value
            if isinstance(receiver, ast.Name) and receiver.id in ("self", "cls"):
                klass = source.enclosing_class(expr, receiver.id)
                if klass is not None:
                    return self._lookup_in_scope(source, source.scopes[klass], expr.attr, set())
            owner = self._symbol_for_expr(source, receiver)
            return self._member(owner, expr.attr) if owner is not None else None
        return None

    def _lookup_name(self, source: _SourceFile, name: str, node: ast.AST) -> Optional[Symbol]:
        for scope in source.scopes_for(node):
            if name in scope.bindings:
                return self._lookup_in_scope(source, scope, name, set())
        return None

    def _lookup_in_scope(
        self,
        source: _SourceFile,
        scope: _Scope,
        name: str,
        visited: Set[Tuple[Optional[str], Optional[str]]],
    ) -> Optional[Symbol]:
        bindings = scope.bindings.get(name)
        if not bindings:
            return None

        imports = [b for b in bindings if b.kind == "import"]
        if imports:
            target = self._follow_import(imports[-1], visited)
            if target is not None:
                return target

        declarations = tuple(
            decl for decl in (source.declaration(b.node) for b in bindings) if decl is not None
        )
        kind = next((b.kind for b in bindings if b.kind != "import"), bindings[-1].kind)
        return Symbol(
            name=name,
            qualname=f"{scope.qualname}.{name}",
            kind=kind,
            file_path=source.path,
            declarations=declarations,
        )

    def _follow_import(
        self,
        binding: _Binding,
        visited: Set[Tuple[Optional[str], Optional[str]]],
    ) -> Optional[Symbol]:
        key = (binding.module, binding.attr)
        if binding.module is None or key in visited:
            return None
        visited.add(key)

        if binding.attr is None:
            return self._module_symbol(binding.module)

        target = self._modules.get(binding.module)
        if target is not None and binding.attr in target.module_scope.bindings:
            return self._lookup_in_scope(target, target.module_scope, binding.attr, visited)
        submodule = f"{binding.module}.{binding.attr}" if binding.module else binding.attr
        return self._module_symbol(submodule)

    def _module_symbol(self, module: str) -> Optional[Symbol]:
        source = self._modules.get(module)
        if source is None:
            return None
        return Symbol(
            name=module.rpartition(".")[2],
            qualname=source.module_name,
            kind="module",
            file_path=source.path,
            declarations=(DeclarationSpan(source.path, 0, len(source.text)),),
        )

    def _member(self, owner: Symbol, attr: str) -> Optional[Symbol]:
        if owner.kind == "class":
            entry = self._class_scopes.get(owner.qualname)
            if entry is not None:
                return self._lookup_in_scope(entry[0], entry[1], attr, set())
            return None
        if owner.kind == "module":
            return self._follow_import(
                _Binding(name=attr, kind="import", node=ast.Pass(), module=owner.qualname, attr=attr),
                set(),
            )
        return None


def build_semantic_model(project_root: Path) -> Optional[PythonSemanticModel]:
    """Build the program model for *project_root*, or ``None`` if unavailable."""
    root = Path(project_root)
    if not root.is_dir():
        logger.warning("Semantic model unavailable: %s is not a directory", root)
        return None
    model = PythonSemanticModel.from_project(root)
    if not model.files:
        logger.info("Semantic model unavailable: no Python sources under %s", root)
        return None
    logger.debug("Semantic model indexed %d files", len(model.files))
    return model
