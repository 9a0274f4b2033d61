"""Project configuration for lintlens, read from TOML files."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

from .columns import TAB_WIDTH
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LINTLENS_CONFIG"
CONFIG_FILE_NAME = ".lintlens.toml"
PYPROJECT_TABLE = ("tool", "lintlens")

DEFAULT_TOOLS = ["pycodestyle", "ruff", "pyright"]


@dataclass
class LintLensConfig:
    """Settings shared by the ``check`` and ``order`` commands."""

    tab_width: int = TAB_WIDTH
    max_messages: int = 15
    diff_context: int = 3
    upstream: Optional[str] = None
    tools: List[str] = field(default_factory=lambda: list(DEFAULT_TOOLS))
    semantic_ordering: bool = True
    show_blame: bool = True
    history_limit: int = 3
    source: Optional[Path] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[Path] = None) -> "LintLensConfig":
        known = {f.name for f in fields(cls)} - {"source"}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown lintlens settings: %s", ", ".join(unknown))
        config = cls(**{k: v for k, v in data.items() if k in known}, source=source)
        config.validate()
        return config

    def validate(self) -> None:
        where = self.source or Path("<defaults>")
        if not isinstance(self.tab_width, int) or self.tab_width < 1:
            raise ConfigError(where, f"tab_width must be a positive integer, got {self.tab_width!r}")
        if not isinstance(self.max_messages, int) or self.max_messages < 0:
            raise ConfigError(where, f"max_messages must be >= 0, got {self.max_messages!r}")
        if not isinstance(self.diff_context, int) or self.diff_context < 0:
            raise ConfigError(where, f"diff_context must be >= 0, got {self.diff_context!r}")
        if not isinstance(self.history_limit, int) or self.history_limit < 0:
            raise ConfigError(where, f"history_limit must be >= 0, got {self.history_limit!r}")
        bad_tools = [t for t in self.tools if t not in DEFAULT_TOOLS]
        if bad_tools:
            raise ConfigError(where, f"unknown tools: {', '.join(bad_tools)}")

    def merged(self, **overrides: Any) -> "LintLensConfig":
        """Copy with every non-``None`` override applied."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update({k: v for k, v in overrides.items() if v is not None})
        config = LintLensConfig(**data)
        config.validate()
        return config


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as exc:
        raise ConfigError(path, f"invalid TOML: {exc}") from exc
    except OSError as exc:
        raise ConfigError(path, str(exc)) from exc


def find_config_file(project_root: Path) -> Optional[Path]:
    """Locate the configuration file for *project_root*.

    Order: ``$LINTLENS_CONFIG``, ``.lintlens.toml``, then a ``pyproject.toml``
    that has a ``[tool.lintlens]`` table.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()

    candidate = project_root / CONFIG_FILE_NAME
    if candidate.is_file():
        return candidate

    pyproject = project_root / "pyproject.toml"
    if pyproject.is_file():
        table = _read_toml(pyproject)
        for key in PYPROJECT_TABLE:
            table = table.get(key, {})
        if table:
            return pyproject
    return None


def load_config(project_root: Path, path: Optional[Path] = None) -> LintLensConfig:
    """Load settings for *project_root*, falling back to defaults.

    Raises:
        ConfigError: The selected file cannot be read or holds invalid values.
    """
    config_path = path or find_config_file(project_root)
    if config_path is None:
        logger.debug("No lintlens configuration found under %s", project_root)
        return LintLensConfig()
    if not config_path.is_file():
        raise ConfigError(config_path, "file does not exist")

    data = _read_toml(config_path)
    if config_path.name == "pyproject.toml":
        for key in PYPROJECT_TABLE:
            data = data.get(key, {})
    logger.debug("Loaded lintlens configuration from %s", config_path)
    return LintLensConfig.from_dict(data, source=config_path)
