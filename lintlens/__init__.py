"""lintlens: dependency-aware presentation of lint and type-check diagnostics."""

__version__ = "0.3.0"
