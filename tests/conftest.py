"""Pytest configuration and fixtures for lintlens tests."""

import shutil
import tempfile
import textwrap
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import pytest

from lintlens.models import DiagnosticRecord, DiagnosticSource, Severity


MODELS_PY = '''"""Shared models."""

DEFAULT_TIMEOUT = 30


class Config:
    def __init__(self, name):
        self.name = name

    def describe(self):
        return self.name.upper()

    def summary(self):
        return self.describe()


def make_config(name):
    return Config(nmae)
'''

SERVICE_PY = '''"""Service layer."""

from models import Config, make_config


def build(name):
    config = make_config(name)
    return config.describe()


def label(config: Config):
    return config.name
'''

SAMPLE_DIFF = textwrap.dedent("""\
    diff --git a/service.py b/service.py
    index 1111111..2222222 100644
    --- a/service.py
    +++ b/service.py
    @@ -1,3 +10,3 @@
     a
    -b
    +c
     d
    """)


@pytest.fixture(autouse=True)
def _isolate_config_env(monkeypatch):
    """Keep a developer's LINTLENS_CONFIG from leaking into tests."""
    monkeypatch.delenv("LINTLENS_CONFIG", raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project(temp_dir: Path) -> Path:
    """Two-module project where ``service`` uses a broken ``models`` function."""
    (temp_dir / "models.py").write_text(MODELS_PY)
    (temp_dir / "service.py").write_text(SERVICE_PY)
    return temp_dir


@pytest.fixture
def sample_diff() -> str:
    """Single hunk declared ``@@ -1,3 +10,3 @@``."""
    return SAMPLE_DIFF


@pytest.fixture
def make_diagnostic() -> Callable[..., DiagnosticRecord]:
    """Factory for ``DiagnosticRecord`` with sensible defaults."""

    def _make(
        file_path: str = "a.py",
        line: int = 1,
        column: int = 1,
        severity: Severity = Severity.ERROR,
        message: str = "problem",
        rule: Optional[str] = "F821",
        source: DiagnosticSource = DiagnosticSource.RUFF,
        **kwargs,
    ) -> DiagnosticRecord:
        return DiagnosticRecord(
            file_path=str(file_path),
            line=line,
            column=column,
            severity=severity,
            message=message,
            rule=rule,
            source=source,
            **kwargs,
        )

    return _make


class FakeGitRunner:
    """Records git invocations and replays canned output by argument prefix."""

    def __init__(self, responses: Optional[Dict[tuple, str]] = None) -> None:
        self.responses = dict(responses or {})
        self.calls: List[List[str]] = []

    def __call__(self, args, *, cwd):
        args = list(args)
        self.calls.append(args)
        for prefix, output in self.responses.items():
            if tuple(args[: len(prefix)]) == prefix:
                if isinstance(output, BaseException):
                    raise output
                return output
        return ""


@pytest.fixture
def fake_git() -> FakeGitRunner:
    """Git runner that answers nothing until responses are registered."""
    return FakeGitRunner()
