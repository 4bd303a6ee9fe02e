"""Shared fixtures: sample session logs and a scripted parser."""

import json
import os
from pathlib import Path

import pytest

from claude_history.models import SessionSummary
from claude_history.sessions import SessionParser


def user_entry(text, ts, session_id="sess-1", cwd="/Users/alice/proj", uuid="u1"):
    return {
        "type": "user",
        "uuid": uuid,
        "sessionId": session_id,
        "timestamp": ts,
        "cwd": cwd,
        "message": {"role": "user", "content": text},
    }


def assistant_entry(content, ts, session_id="sess-1", uuid="a1", usage=None):
    message = {"role": "assistant", "content": content, "model": "claude-test"}
    if usage is not None:
        message["usage"] = usage
    return {
        "type": "assistant",
        "uuid": uuid,
        "parentUuid": "u1",
        "sessionId": session_id,
        "timestamp": ts,
        "message": message,
    }


def write_jsonl(path: Path, entries, extra_lines=()):
    lines = [json.dumps(e) for e in entries] + list(extra_lines)
    path.write_text("\n".join(lines) + "\n")
    return path


def set_mtime(path: Path, mtime: float):
    os.utime(path, (mtime, mtime))


def make_parser(summaries: dict | None = None, failing: set | None = None, calls: list | None = None):
    """Parser keyed on file name. Names in ``failing`` raise."""
    summaries = summaries or {}
    failing = failing or set()

    def get_session_summary(file_path):
        name = Path(file_path).name
        if calls is not None:
            calls.append(name)
        if name in failing:
            raise ValueError(f"bad session {name}")
        return summaries.get(name) or SessionSummary(session_id=Path(name).stem, file_path=file_path)

    def parse_claude_session(file_path):
        if Path(file_path).name in failing:
            raise ValueError("bad session")
        return []

    return SessionParser(get_session_summary=get_session_summary,
                         parse_claude_session=parse_claude_session)


@pytest.fixture
def projects_root(tmp_path):
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def sample_session(tmp_path):
    """A realistic session: two user turns, two assistant turns, noise lines."""
    entries = [
        {"type": "summary", "summary": "Fix the parser", "leafUuid": "x"},
        user_entry("Fix the failing test", "2024-01-01T10:00:00Z", uuid="u1"),
        assistant_entry(
            [{"type": "thinking", "thinking": "Look at the test first"},
             {"type": "text", "text": "Reading the test."},
             {"type": "tool_use", "id": "t1", "name": "Read", "input": {"file_path": "a.py"}}],
            "2024-01-01T10:00:05Z", uuid="a1",
            usage={"input_tokens": 100, "output_tokens": 20},
        ),
        user_entry("thanks", "2024-01-01T10:05:00Z", uuid="u2"),
        assistant_entry(
            [{"type": "text", "text": "Done."}],
            "2024-01-01T10:05:03Z", uuid="a2",
            usage={"input_tokens": 50, "output_tokens": 5},
        ),
    ]
    return write_jsonl(tmp_path / "sess-1.jsonl", entries, extra_lines=["{not json", ""])
