"""claude-history — browse Claude Code conversation logs."""

from .bridge import Bridge, ParserGate
from .errors import (
    HistoryError,
    ParserNotInitializedError,
    SessionParseError,
    UnknownChannelError,
)
from .models import Message, Project, ProjectStats, SessionSummary
from .sessions import (
    SessionParser,
    decode_project_path,
    get_session_summary,
    guess_project_name,
    list_projects,
    list_sessions,
    parse_session,
    project_stats,
    relative_time,
    shorten_path,
    sort_sessions,
)
from .ui import HistoryBrowserApp

__all__ = [
    "Bridge",
    "HistoryBrowserApp",
    "HistoryError",
    "Message",
    "ParserGate",
    "ParserNotInitializedError",
    "Project",
    "ProjectStats",
    "SessionParseError",
    "SessionParser",
    "SessionSummary",
    "UnknownChannelError",
    "decode_project_path",
    "get_session_summary",
    "guess_project_name",
    "list_projects",
    "list_sessions",
    "parse_session",
    "project_stats",
    "relative_time",
    "shorten_path",
    "sort_sessions",
]
