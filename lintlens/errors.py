"""Error hierarchy for lintlens.

Every error carries typed fields, supports ``to_dict()`` for JSON output,
and has a readable ``__str__`` for logging.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LintLensError(Exception):
    """Base error for all lintlens failures."""

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "message": self.message, **self.detail}

    def __str__(self) -> str:
        return self.message


class InvalidArgumentError(LintLensError, ValueError):
    """A caller passed a value outside the documented domain."""

    def __init__(self, argument: str, value: Any, requirement: str) -> None:
        self.argument = argument
        self.value = value
        super().__init__(
            f"{argument} must be {requirement}, received {value!r}",
            detail={"argument": argument, "value": value},
        )


class ParseError(LintLensError):
    """Tool output could not be parsed into diagnostics."""

    def __init__(self, raw_output: str, parser_name: str) -> None:
        self.raw_output = raw_output
        self.parser_name = parser_name
        super().__init__(
            f"Parser '{parser_name}' failed to parse output ({len(raw_output)} chars)",
            detail={"parser_name": parser_name, "raw_output_length": len(raw_output)},
        )


class ConfigError(LintLensError):
    """The configuration file exists but cannot be used."""

    def __init__(self, path: Any, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(
            f"Invalid configuration in '{self.path}': {reason}",
            detail={"path": self.path, "reason": reason},
        )
