"""Command-line entry point: launches the TUI or prints listings."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from . import bridge as channels
from .bridge import Bridge, ParserGate
from .sessions import CLAUDE_DIR, PROJECTS_DIR, relative_time, parse_timestamp

logger = logging.getLogger("claude_history")

DEFAULT_LOG_FILE = CLAUDE_DIR / "claude-history.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "WARNING", log_file: Path | None = None) -> logging.Handler:
    """Install one handler on the package logger and return it."""
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    return handler


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="claude-history",
        description="Browse Claude Code conversation history.",
    )
    p.add_argument("--projects-dir", type=Path, default=None,
                   help=f"Projects root (default: {PROJECTS_DIR})")
    p.add_argument("--log-level", default="WARNING",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--log-file", type=Path, default=None,
                   help=f"Write logs here (the TUI defaults to {DEFAULT_LOG_FILE})")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--list", action="store_true", help="Print all projects and exit")
    mode.add_argument("--sessions", metavar="PROJECT_DIR",
                      help="Print the sessions of one project directory, newest first")
    mode.add_argument("--show", metavar="SESSION_FILE",
                      help="Print the transcript of one session file")
    p.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    return p


def _print_projects(projects, as_json: bool):
    if as_json:
        print(json.dumps([p.to_dict() for p in projects], indent=2))
        return
    for p in projects:
        print(f"{p.session_count:5d}  {p.name}  ({p.path})")


def _print_sessions(sessions, as_json: bool):
    if as_json:
        print(json.dumps([s.to_dict() for s in sessions], indent=2))
        return
    for s in sessions:
        ts = parse_timestamp(s.last_timestamp)
        age = relative_time(ts) if ts is not None else "unknown"
        print(f"{s.session_id}  {s.message_count:5d} msgs  {age}")


def _print_transcript(messages, as_json: bool):
    if as_json:
        print(json.dumps([m.to_dict() for m in messages], indent=2))
        return
    for m in messages:
        print(f"── {m.role} ({m.timestamp})")
        print(m.content)
        print()


async def run_listing(args, bridge: Bridge) -> None:
    await bridge.gate.load()
    if args.list:
        _print_projects(await bridge.invoke(channels.GET_ALL_PROJECTS), args.json)
    elif args.sessions:
        _print_sessions(await bridge.invoke(channels.GET_PROJECT_SESSIONS, args.sessions), args.json)
    elif args.show:
        _print_transcript(await bridge.invoke(channels.PARSE_SESSION, args.show), args.json)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    listing = args.list or args.sessions or args.show
    log_file = args.log_file if (args.log_file or listing) else DEFAULT_LOG_FILE
    configure_logging(args.log_level, log_file)

    bridge = Bridge(ParserGate(), root=args.projects_dir)

    if listing:
        try:
            asyncio.run(run_listing(args, bridge))
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return 0

    from .ui import HistoryBrowserApp

    HistoryBrowserApp(bridge).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
