"""Async request/response boundary between the TUI and the history core.

The TUI never touches the filesystem or the parser directly. It calls
``Bridge.invoke(channel, *args)`` with one of four channel names and awaits
the result, or the exception that caused the request to fail.
"""

import asyncio
import importlib
import logging
from pathlib import Path
from typing import Callable

from . import sessions
from .errors import UnknownChannelError
from .sessions import SessionParser

logger = logging.getLogger(__name__)

PARSER_MODULE = "claude_history.parser"

GET_ALL_PROJECTS = "get-all-projects"
GET_PROJECT_SESSIONS = "get-project-sessions"
PARSE_SESSION = "parse-session"
GET_SESSION_SUMMARY = "get-session-summary"


def load_default_parser() -> SessionParser:
    module = importlib.import_module(PARSER_MODULE)
    return SessionParser(
        get_session_summary=module.get_session_summary,
        parse_claude_session=module.parse_claude_session,
    )


class ParserGate:
    """Holds the session parser once it has been loaded.

    Until ``load()`` completes, ``parser`` is None and every session
    operation rejects with ``ParserNotInitializedError``.
    """

    def __init__(self, loader: Callable[[], SessionParser] = load_default_parser):
        self._loader = loader
        self.parser: SessionParser | None = None

    @property
    def ready(self) -> bool:
        return self.parser is not None

    async def load(self) -> SessionParser:
        if self.parser is None:
            self.parser = await asyncio.to_thread(self._loader)
            logger.info("Session parser loaded")
        return self.parser

    def require(self) -> SessionParser:
        return sessions.require_parser(self.parser)


class Bridge:
    def __init__(self, gate: ParserGate, root: Path | None = None):
        self.gate = gate
        self.root = root
        self._handlers = {
            GET_ALL_PROJECTS: self._get_all_projects,
            GET_PROJECT_SESSIONS: self._get_project_sessions,
            PARSE_SESSION: self._parse_session,
            GET_SESSION_SUMMARY: self._get_session_summary,
        }

    @property
    def channels(self) -> list[str]:
        return list(self._handlers)

    async def invoke(self, channel: str, *args):
        handler = self._handlers.get(channel)
        if handler is None:
            raise UnknownChannelError(f"No handler registered for '{channel}'")
        try:
            return await handler(*args)
        except Exception as e:
            logger.error("Error handling %s: %s", channel, e)
            raise

    # ── Handlers ───────────────────────────────────────────

    async def _get_all_projects(self):
        parser = self.gate.require()
        return await asyncio.to_thread(sessions.list_projects, parser, self.root)

    async def _get_project_sessions(self, project_path: str):
        parser = self.gate.require()
        return await asyncio.to_thread(sessions.list_sessions, project_path, parser)

    async def _parse_session(self, file_path: str):
        parser = self.gate.require()
        return await asyncio.to_thread(sessions.parse_session, file_path, parser)

    async def _get_session_summary(self, file_path: str):
        parser = self.gate.require()
        return await asyncio.to_thread(sessions.get_session_summary, file_path, parser)
