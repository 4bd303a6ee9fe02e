"""Project discovery, session listing, and project-name decoding."""

import functools
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

import numpy as np

from .errors import ParserNotInitializedError
from .models import Message, Project, ProjectStats, SessionSummary

logger = logging.getLogger(__name__)

CLAUDE_DIR = Path.home() / ".claude"
PROJECTS_DIR = CLAUDE_DIR / "projects"

SESSION_EXT = ".jsonl"
NAME_PROBE_LIMIT = 10

# Directory names that usually sit right above a project checkout.
KNOWN_BASE_DIRS = (
    "Projects", "projects", "Documents", "Desktop", "code", "src",
    "repos", "dev", "workspace", "git", "GitHub",
)


# ── Parser bundle ──────────────────────────────────────────


@dataclass
class SessionParser:
    """The two parser operations the core consumes."""
    get_session_summary: Callable[[str], SessionSummary]
    parse_claude_session: Callable[[str], list[Message]]


def require_parser(parser: SessionParser | None) -> SessionParser:
    if parser is None:
        raise ParserNotInitializedError()
    return parser


# ── Name decoding ──────────────────────────────────────────


def decode_project_path(encoded: str) -> str:
    """Turn ``-Users-alice-proj`` back into ``/Users/alice/proj``.

    Claude Code writes every ``/`` of the working directory as ``-``, so a
    hyphen inside a real directory name decodes as a separator too. Names
    without the leading marker are returned unchanged.
    """
    if encoded.startswith("-"):
        return "/" + encoded[1:].replace("-", "/")
    return encoded


def guess_project_name(encoded: str) -> str:
    """Best-effort short label that keeps hyphenated project names intact.

    Looks for the last segment that is a common base directory and treats
    everything after it as the project name: ``-Users-alice-code-my-app``
    gives ``my-app``. Without a base directory the last segment is used.
    """
    parts = [p for p in encoded.split("-") if p]
    if not parts:
        return encoded
    for i in range(len(parts) - 1, -1, -1):
        if parts[i] in KNOWN_BASE_DIRS and i < len(parts) - 1:
            return "-".join(parts[i + 1:])
    return parts[-1]


def shorten_path(path: str) -> str:
    home = str(Path.home())
    if path.startswith(home):
        return "~" + path[len(home):]
    return path


# ── Time helpers ───────────────────────────────────────────


def parse_timestamp(ts: str | None) -> float | None:
    if not ts:
        return None
    try:
        return datetime.fromisoformat(ts.replace("Z", "+00:00")).timestamp()
    except (ValueError, TypeError):
        return None


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n != 1 else ''}"


def relative_time(mtime: float) -> str:
    delta = int(time.time() - mtime)
    if delta < 60:
        return "just now"

    minutes = delta // 60
    hours = delta // 3600
    days = delta // 86400

    if delta < 3600:
        return f"{_plural(minutes, 'minute')} ago"
    elif delta < 86400:
        return f"{_plural(hours, 'hour')} ago"
    return f"{_plural(days, 'day')} ago"


# ── Discovery ──────────────────────────────────────────────


def _session_files(directory: Path) -> list[Path]:
    """Session files in enumeration order. Raises OSError if unreadable."""
    return [p for p in directory.iterdir() if p.name.endswith(SESSION_EXT)]


def _by_recency(session_files: list[Path]) -> list[Path]:
    """Newest mtime first; files that vanished since listing are dropped."""
    stamped = []
    for p in session_files:
        try:
            stamped.append((p.stat().st_mtime, p))
        except OSError as e:
            logger.warning("Skipping %s while naming project: %s", p, e)
    stamped.sort(key=lambda item: item[0], reverse=True)
    return [p for _, p in stamped]


def _cwd_label(cwd) -> str | None:
    if not isinstance(cwd, str) or not cwd:
        return None
    return Path(cwd.rstrip("/\\")).name or cwd


def _name_from_sessions(session_files: list[Path], parser: SessionParser) -> str | None:
    """Check the most recently modified sessions for a recorded cwd."""
    for session_file in _by_recency(session_files)[:NAME_PROBE_LIMIT]:
        try:
            label = _cwd_label(parser.get_session_summary(str(session_file)).cwd)
        except Exception as e:
            logger.warning("Skipping %s while naming project: %s", session_file, e)
            continue
        if label:
            return label
    return None


def list_projects(parser: SessionParser | None = None,
                  root: Path | None = None) -> list[Project]:
    """Every project directory under the root, in enumeration order.

    A missing root means no projects. When a parser is given, the display
    name comes from the working directory recorded in a recent session.
    """
    root = Path(root) if root is not None else PROJECTS_DIR
    if not root.exists():
        return []

    projects = []
    for project_dir in root.iterdir():
        if not project_dir.is_dir():
            continue
        session_files = _session_files(project_dir)
        name = decode_project_path(project_dir.name)
        if parser is not None and session_files:
            name = _name_from_sessions(session_files, parser) or name
        projects.append(Project(
            name=name,
            path=str(project_dir),
            session_count=len(session_files),
        ))
    return projects


def _compare_recency(a: SessionSummary, b: SessionSummary) -> int:
    ta = parse_timestamp(a.last_timestamp)
    tb = parse_timestamp(b.last_timestamp)
    if ta is None or tb is None:
        return 0
    return (tb > ta) - (tb < ta)


def sort_sessions(sessions: list[SessionSummary]) -> list[SessionSummary]:
    """Newest ``last_timestamp`` first.

    A session without a timestamp compares equal to everything, so it keeps
    whatever position the stable sort leaves it in.
    """
    return sorted(sessions, key=functools.cmp_to_key(_compare_recency))


def list_sessions(project_path: str | Path,
                  parser: SessionParser | None) -> list[SessionSummary]:
    parser = require_parser(parser)
    sessions = []
    for session_file in _session_files(Path(project_path)):
        try:
            sessions.append(parser.get_session_summary(str(session_file)))
        except Exception as e:
            logger.warning("Error reading session %s: %s", session_file.name, e)
    return sort_sessions(sessions)


def parse_session(file_path: str | Path, parser: SessionParser | None) -> list[Message]:
    return require_parser(parser).parse_claude_session(str(file_path))


def get_session_summary(file_path: str | Path,
                        parser: SessionParser | None) -> SessionSummary:
    return require_parser(parser).get_session_summary(str(file_path))


# ── Aggregation ────────────────────────────────────────────


def project_stats(sessions: list[SessionSummary]) -> ProjectStats:
    counts = np.array([s.message_count for s in sessions], dtype=float)
    firsts = [s.first_timestamp for s in sessions if parse_timestamp(s.first_timestamp) is not None]
    lasts = [s.last_timestamp for s in sessions if parse_timestamp(s.last_timestamp) is not None]

    return ProjectStats(
        session_count=len(sessions),
        total_messages=int(counts.sum()),
        mean_messages=round(float(np.mean(counts)), 1) if counts.size else 0.0,
        median_messages=float(np.median(counts)) if counts.size else 0.0,
        total_input_tokens=sum(s.total_input_tokens or 0 for s in sessions),
        total_output_tokens=sum(s.total_output_tokens or 0 for s in sessions),
        first_timestamp=min(firsts, key=parse_timestamp) if firsts else None,
        last_timestamp=max(lasts, key=parse_timestamp) if lasts else None,
    )
