"""Git access for diff excerpts, blame lines and line history.

Every git call goes through an injectable *runner* so tests can substitute
canned output.  Git problems never raise: a failing command simply yields no
diff, blame or history.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from .columns import TAB_WIDTH
from .diff_parser import pick_snippet_for_line
from .highlight import build_diff_block
from .models import DiagnosticRecord, DiffBlock

logger = logging.getLogger(__name__)

Runner = Callable[..., str]

_ZERO_HASH_RE = re.compile(r"^0+$")
_SUMMARY_WIDTH = 100


@dataclass(frozen=True)
class DiffRange:
    """Revision argument passed to ``git diff`` and its display label."""

    diff_arg: str
    label: str


@dataclass(frozen=True)
class BlameInfo:
    """Last commit that touched one line."""

    commit_hash: str
    author: str
    date: str
    summary: str
    line: int
    code: str

    @property
    def short_hash(self) -> str:
        return self.commit_hash[:12]

    @property
    def committed(self) -> bool:
        return not _ZERO_HASH_RE.match(self.commit_hash)


@dataclass(frozen=True)
class HistoryEntry:
    """One commit from the history of a single line."""

    commit_hash: str
    author: str
    date: str
    summary: str
    patch: Tuple[str, ...] = ()

    @property
    def short_hash(self) -> str:
        return self.commit_hash[:12]


@dataclass(frozen=True)
class LineHistory:
    entries: Tuple[HistoryEntry, ...]
    total_commits: int


def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
    completed = subprocess.run(
        list(args),
        cwd=str(cwd),
        check=False,
        text=True,
        capture_output=True,
    )
    # git diff exits non-zero with --exit-code style flags but still prints
    if completed.returncode != 0 and not completed.stdout:
        raise subprocess.CalledProcessError(
            completed.returncode, completed.args, completed.stdout, completed.stderr
        )
    return completed.stdout


class GitClient:
    """Thin wrapper over the ``git`` executable rooted at *cwd*."""

    def __init__(self, cwd: Path, runner: Optional[Runner] = None) -> None:
        self.cwd = Path(cwd)
        self._runner = runner or _default_runner

    def _run(self, args: List[str]) -> str:
        try:
            return self._runner(args, cwd=self.cwd)
        except (subprocess.CalledProcessError, OSError) as exc:
            logger.debug("git command failed (%s): %s", " ".join(args), exc)
            return ""

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------

    def resolve_diff_range(self, explicit: Optional[str] = None) -> DiffRange:
        """Explicit revision, else ``<upstream>...HEAD``, else ``HEAD``."""
        if explicit:
            return DiffRange(diff_arg=explicit, label=explicit)
        upstream = self._run(
            ["git", "rev-parse", "--abbrev-ref", "--symbolic-full-name", "HEAD@{upstream}"]
        ).strip()
        if upstream:
            return DiffRange(diff_arg=f"{upstream}...HEAD", label=f"{upstream}...HEAD")
        return DiffRange(diff_arg="HEAD", label="HEAD")

    def _diff_attempts(
        self, file_path: str, diff_range: DiffRange, context_lines: int
    ) -> List[Tuple[str, List[str]]]:
        unified = f"--unified={context_lines}"
        return [
            (diff_range.label, ["git", "diff", unified, diff_range.diff_arg, "--", file_path]),
            ("workspace", ["git", "diff", unified, "--", file_path]),
            ("index", ["git", "diff", "--cached", unified, "--", file_path]),
        ]

    def diff_candidates(
        self, file_path: str, diff_range: DiffRange, context_lines: int = 3
    ) -> Iterator[Tuple[str, str]]:
        """Non-empty ``(descriptor, diff_text)`` pairs in priority order.

        Diffs are fetched lazily, one git call per pair consumed.
        """
        for descriptor, args in self._diff_attempts(file_path, diff_range, context_lines):
            output = self._run(args)
            if output.strip():
                yield descriptor, output

    def diff_block_for(
        self,
        record: DiagnosticRecord,
        diff_range: DiffRange,
        context_lines: int = 3,
        tab_width: int = TAB_WIDTH,
    ) -> Optional[DiffBlock]:
        """Diff excerpt showing *record*'s line, or ``None``.

        Later candidates are only requested when the earlier ones do not
        contain the line.
        """
        context = context_lines if context_lines > 0 else 3
        descriptors: List[str] = []
        outputs: List[str] = []
        for descriptor, output in self.diff_candidates(record.file_path, diff_range, context):
            descriptors.append(descriptor)
            outputs.append(output)
            pick = pick_snippet_for_line(outputs, record.line)
            if pick is not None:
                return build_diff_block(
                    record, pick.snippet, descriptors[pick.index], context, tab_width
                )
        return None

    # ------------------------------------------------------------------
    # Blame
    # ------------------------------------------------------------------

    def blame_line(self, file_path: str, line: int) -> Optional[BlameInfo]:
        output = self._run(
            ["git", "blame", "--line-porcelain", "-L", f"{line},{line}", "--", file_path]
        ).strip()
        if not output:
            return None
        return parse_line_porcelain(output, line)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def line_history(self, file_path: str, line: int, limit: int = 3) -> Optional[LineHistory]:
        """Most recent commits that changed *line*, newest first.

        Runs ``git log -L``.  At most *limit* commits are kept, while
        ``total_commits`` counts every commit git reported.
        """
        if limit <= 0:
            return None
        output = self._run(
            ["git", "log", "--no-color", "--date=short", "-L", f"{line},{line}:{file_path}"]
        )
        segments = split_log_segments(output)
        entries = [e for e in (parse_log_segment(s) for s in segments[:limit]) if e is not None]
        if not entries:
            return None
        return LineHistory(entries=tuple(entries), total_commits=len(segments))


def parse_line_porcelain(output: str, line: int) -> Optional[BlameInfo]:
    """Parse the first entry of ``git blame --line-porcelain`` output."""
    rows = re.split(r"\r?\n", output.strip())
    if not rows or not rows[0]:
        return None
    commit_hash = rows[0].split(" ")[0]

    def field(prefix: str) -> Optional[str]:
        for row in rows:
            if row.startswith(prefix):
                return row[len(prefix):].strip()
        return None

    date = "unknown-date"
    author_time = field("author-time ")
    if author_time and author_time.isdigit():
        date = datetime.fromtimestamp(int(author_time), tz=timezone.utc).strftime("%Y-%m-%d")
    code = next((row[1:] for row in rows if row.startswith("\t")), "")

    return BlameInfo(
        commit_hash=commit_hash,
        author=field("author ") or "unknown",
        date=date,
        summary=field("summary ") or "(no summary)",
        line=line,
        code=code,
    )


def split_log_segments(output: str) -> List[str]:
    """Split ``git log`` output into one chunk per ``commit`` header."""
    segments: List[str] = []
    current: List[str] = []
    for row in re.split(r"\r?\n", output):
        if row.startswith("commit ") and current:
            segments.append("\n".join(current).rstrip())
            current = []
        current.append(row)
    if "\n".join(current).strip():
        segments.append("\n".join(current).rstrip())
    return segments


def parse_log_segment(segment: str) -> Optional[HistoryEntry]:
    """Parse one ``git log -L`` segment; ``None`` without a commit header."""
    rows = segment.split("\n")
    header = next((row for row in rows if row.startswith("commit ")), None)
    if header is None:
        return None
    words = header[len("commit "):].split()
    if not words:
        return None
    commit_hash = words[0]

    author = "unknown"
    date = "unknown-date"
    summary = "(no subject)"
    patch: List[str] = []
    in_patch = False
    for row in rows[rows.index(header) + 1:]:
        if in_patch:
            patch.append(row)
        elif row.startswith("Author:"):
            author = row[len("Author:"):].split("<")[0].strip() or "unknown"
        elif row.startswith("Date:"):
            date = (row[len("Date:"):].split() or ["unknown-date"])[0]
        elif row.startswith("    ") and summary == "(no subject)" and row.strip():
            summary = row.strip()
        elif row.startswith("@@"):
            in_patch = True
            patch.append(row)

    if len(summary) > _SUMMARY_WIDTH:
        summary = summary[: _SUMMARY_WIDTH - 3] + "..."
    while patch and not patch[-1].strip():
        patch.pop()
    return HistoryEntry(
        commit_hash=commit_hash,
        author=author,
        date=date,
        summary=summary,
        patch=tuple(patch),
    )
