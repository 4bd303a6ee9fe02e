"""JSONL reader for Claude Code session logs.

This module is the session parser the rest of the package talks to through
``SessionParser``. It is imported lazily by ``bridge.ParserGate`` and only
two functions form its public surface:

    get_session_summary(file_path)  -> SessionSummary
    parse_claude_session(file_path) -> list[Message]

Both raise ``SessionParseError`` when the file cannot be opened. A line
that is not JSON, or whose fields have the wrong types, is skipped. The
summary also skips lines that are not valid UTF-8; the transcript treats
them as a read error.
"""

import json
import logging
from pathlib import Path

from .errors import SessionParseError
from .models import Message, SessionSummary

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = ("user", "assistant")

_STR_FIELDS = ("type", "uuid", "parentUuid", "sessionId", "timestamp",
               "summary", "leafUuid", "userType", "cwd", "version")
_MESSAGE_STR_FIELDS = ("model", "id", "stop_reason")
_ITEM_STR_FIELDS = {"text": ("text",), "thinking": ("thinking",),
                    "tool_use": ("id", "name"), "tool_result": ("tool_use_id",)}


class _BadEntry(ValueError):
    pass


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_str(obj: dict, keys) -> None:
    for key in keys:
        value = obj.get(key)
        if value is not None and not isinstance(value, str):
            raise _BadEntry(f"'{key}' is not a string")


def _check_usage(usage) -> None:
    if usage is None:
        return
    if not isinstance(usage, dict):
        raise _BadEntry("'usage' is not an object")
    for key in ("input_tokens", "output_tokens"):
        if not _is_int(usage.get(key)):
            raise _BadEntry(f"'{key}' is not an integer")
    for key in ("cache_creation_input_tokens", "cache_read_input_tokens"):
        value = usage.get(key)
        if value is not None and not _is_int(value):
            raise _BadEntry(f"'{key}' is not an integer")


def _check_message(message) -> None:
    if not isinstance(message, dict):
        raise _BadEntry("'message' is not an object")
    if not isinstance(message.get("role"), str):
        raise _BadEntry("'role' is not a string")
    _check_str(message, _MESSAGE_STR_FIELDS)
    content = message.get("content")
    if isinstance(content, list):
        for item in content:
            if not isinstance(item, dict):
                raise _BadEntry("content item is not an object")
            kind = item.get("type")
            fields = _ITEM_STR_FIELDS.get(kind, ())
            for key in fields:
                if not isinstance(item.get(key), str):
                    raise _BadEntry(f"{kind} item '{key}' is not a string")
    elif not isinstance(content, str):
        raise _BadEntry("'content' must be a string or a list")
    _check_usage(message.get("usage"))


def _load_entry(line: str) -> dict:
    """Decode and type-check one log line. Raises ValueError if unusable."""
    obj = json.loads(line)
    if not isinstance(obj, dict):
        raise _BadEntry("entry is not an object")
    _check_str(obj, _STR_FIELDS)
    sidechain = obj.get("isSidechain")
    if sidechain is not None and not isinstance(sidechain, bool):
        raise _BadEntry("'isSidechain' is not a boolean")
    if obj.get("message") is not None:
        _check_message(obj["message"])
    return obj


def _read_text_lines(file_path: str | Path) -> list[str]:
    try:
        with open(file_path, encoding="utf-8") as fh:
            return fh.readlines()
    except (OSError, UnicodeDecodeError) as e:
        raise SessionParseError(f"Cannot open file: {e}") from e


def _read_raw_lines(file_path: str | Path) -> list[bytes]:
    try:
        with open(file_path, "rb") as fh:
            return fh.readlines()
    except OSError as e:
        raise SessionParseError(f"Cannot open file: {e}") from e


def _content_items(message: dict) -> list:
    """Normalize message content: user text arrives as a bare string."""
    content = message.get("content")
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return list(content)


def _has_type(items: list, kind: str) -> bool:
    return any(c.get("type") == kind for c in items)


def _extract_text(items: list) -> str:
    parts = []
    for c in items:
        if c.get("type") == "text":
            parts.append(c["text"])
        elif c.get("type") == "thinking":
            parts.append(f"[Thinking]\n{c['thinking']}")
    return "\n\n".join(parts)


def _entry_to_message(obj: dict) -> Message | None:
    if obj.get("type") not in _MESSAGE_TYPES:
        return None
    message = obj.get("message")
    if message is None:
        return None

    items = _content_items(message)
    usage = message.get("usage") or {}

    return Message(
        message_id=obj.get("uuid") or "unknown",
        session_id=obj.get("sessionId") or "unknown",
        role=message["role"],
        content=_extract_text(items),
        timestamp=obj.get("timestamp") or "unknown",
        raw_content=json.dumps(items),
        has_thinking=_has_type(items, "thinking"),
        has_tool_use=_has_type(items, "tool_use"),
        has_images=_has_type(items, "image"),
        parent_id=obj.get("parentUuid"),
        model=message.get("model"),
        stop_reason=message.get("stop_reason"),
        input_tokens=usage.get("input_tokens"),
        output_tokens=usage.get("output_tokens"),
        cache_creation_tokens=usage.get("cache_creation_input_tokens"),
        cache_read_tokens=usage.get("cache_read_input_tokens"),
        is_sidechain=obj.get("isSidechain"),
        user_type=obj.get("userType"),
    )


def parse_claude_session(file_path: str | Path) -> list[Message]:
    """Return every user/assistant message in the session, in file order."""
    messages = []
    for line_num, line in enumerate(_read_text_lines(file_path), start=1):
        if not line.strip():
            continue
        try:
            obj = _load_entry(line)
        except ValueError as e:
            logger.debug("Parse error at %s:%d: %s (%.100s)", file_path, line_num, e, line)
            continue
        msg = _entry_to_message(obj)
        if msg is not None:
            messages.append(msg)
    return messages


def get_session_summary(file_path: str | Path) -> SessionSummary:
    """Single pass over the file collecting counts, timestamps and cwd."""
    summary = SessionSummary(session_id="unknown", file_path=str(file_path))
    input_tokens = 0
    output_tokens = 0

    for raw in _read_raw_lines(file_path):
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError:
            continue
        if not line.strip():
            continue
        try:
            obj = _load_entry(line)
        except ValueError:
            continue

        if obj.get("sessionId"):
            summary.session_id = obj["sessionId"]
        if summary.cwd is None and obj.get("cwd"):
            summary.cwd = obj["cwd"]

        entry_type = obj.get("type", "")
        if entry_type == "user":
            summary.user_message_count += 1
            summary.message_count += 1
        elif entry_type == "assistant":
            summary.assistant_message_count += 1
            summary.message_count += 1
            message = obj.get("message")
            if message is not None:
                usage = message.get("usage") or {}
                input_tokens += usage.get("input_tokens", 0)
                output_tokens += usage.get("output_tokens", 0)
                items = _content_items(message)
                if _has_type(items, "thinking"):
                    summary.has_thinking = True
                if _has_type(items, "tool_use"):
                    summary.has_tool_use = True

        ts = obj.get("timestamp")
        if ts:
            if summary.first_timestamp is None:
                summary.first_timestamp = ts
            summary.last_timestamp = ts

    summary.total_input_tokens = input_tokens if input_tokens > 0 else None
    summary.total_output_tokens = output_tokens if output_tokens > 0 else None
    return summary
