"""Tests for the JSONL session parser."""

import json

import pytest

from claude_history.errors import SessionParseError
from claude_history.parser import get_session_summary, parse_claude_session

from conftest import assistant_entry, user_entry, write_jsonl


def test_summary_counts_and_timestamps(sample_session):
    summary = get_session_summary(sample_session)

    assert summary.session_id == "sess-1"
    assert summary.file_path == str(sample_session)
    assert summary.message_count == 4
    assert summary.user_message_count == 2
    assert summary.assistant_message_count == 2
    assert summary.first_timestamp == "2024-01-01T10:00:00Z"
    assert summary.last_timestamp == "2024-01-01T10:05:03Z"


def test_summary_enhanced_fields(sample_session):
    summary = get_session_summary(sample_session)

    assert summary.cwd == "/Users/alice/proj"
    assert summary.total_input_tokens == 150
    assert summary.total_output_tokens == 25
    assert summary.has_thinking is True
    assert summary.has_tool_use is True


def test_summary_without_usage_reports_no_tokens(tmp_path):
    path = write_jsonl(tmp_path / "s.jsonl", [
        user_entry("hi", "2024-01-01T00:00:00Z", cwd=None),
        assistant_entry([{"type": "text", "text": "hello"}], "2024-01-01T00:00:01Z"),
    ])

    summary = get_session_summary(path)

    assert summary.total_input_tokens is None
    assert summary.total_output_tokens is None
    assert summary.cwd is None
    assert summary.has_thinking is False


def test_summary_empty_file(tmp_path):
    path = tmp_path / "empty.jsonl"
    path.write_text("")

    summary = get_session_summary(path)

    assert summary.session_id == "unknown"
    assert summary.message_count == 0
    assert summary.last_timestamp is None


def test_summary_missing_file_raises(tmp_path):
    with pytest.raises(SessionParseError, match="Cannot open file"):
        get_session_summary(tmp_path / "missing.jsonl")


def test_parse_messages_in_order(sample_session):
    messages = parse_claude_session(sample_session)

    assert [m.role for m in messages] == ["user", "assistant", "user", "assistant"]
    assert messages[0].content == "Fix the failing test"
    assert messages[0].message_id == "u1"
    assert messages[0].session_id == "sess-1"


def test_parse_merges_text_and_thinking(sample_session):
    first_reply = parse_claude_session(sample_session)[1]

    assert first_reply.content == "[Thinking]\nLook at the test first\n\nReading the test."
    assert first_reply.has_thinking is True
    assert first_reply.has_tool_use is True
    assert first_reply.has_images is False
    assert first_reply.model == "claude-test"
    assert first_reply.parent_id == "u1"
    assert first_reply.input_tokens == 100
    assert first_reply.output_tokens == 20
    assert [c["type"] for c in json.loads(first_reply.raw_content)] == ["thinking", "text", "tool_use"]


def test_parse_defaults_for_missing_ids(tmp_path):
    path = write_jsonl(tmp_path / "s.jsonl", [
        {"type": "user", "message": {"role": "user", "content": "hi"}},
    ])

    (msg,) = parse_claude_session(path)

    assert msg.message_id == "unknown"
    assert msg.session_id == "unknown"
    assert msg.timestamp == "unknown"
    assert json.loads(msg.raw_content) == [{"type": "text", "text": "hi"}]


def test_parse_skips_non_message_entries_and_bad_lines(tmp_path):
    path = write_jsonl(
        tmp_path / "s.jsonl",
        [
            {"type": "summary", "summary": "x"},
            {"type": "system", "timestamp": "2024-01-01T00:00:00Z"},
            {"type": "assistant", "timestamp": "2024-01-01T00:00:00Z"},
            user_entry("kept", "2024-01-01T00:00:01Z"),
        ],
        extra_lines=["[1, 2]", "{broken"],
    )

    messages = parse_claude_session(path)

    assert [m.content for m in messages] == ["kept"]


def test_parse_image_flag(tmp_path):
    path = write_jsonl(tmp_path / "s.jsonl", [
        {"type": "user", "uuid": "u", "message": {"role": "user", "content": [
            {"type": "image", "source": {"type": "base64", "media_type": "image/png", "data": "AA=="}},
            {"type": "text", "text": "what is this"},
        ]}},
    ])

    (msg,) = parse_claude_session(path)

    assert msg.has_images is True
    assert msg.content == "what is this"


def test_parse_missing_file_raises(tmp_path):
    with pytest.raises(SessionParseError):
        parse_claude_session(tmp_path / "missing.jsonl")


def test_summary_skips_undecodable_line(tmp_path):
    path = tmp_path / "s.jsonl"
    good = json.dumps(user_entry("hi", "2024-01-01T00:00:00Z"))
    path.write_bytes(good.encode() + b"\n\xff\xfe junk\n")

    summary = get_session_summary(path)

    assert summary.message_count == 1
    assert summary.last_timestamp == "2024-01-01T00:00:00Z"


def test_transcript_rejects_undecodable_file(tmp_path):
    path = tmp_path / "s.jsonl"
    path.write_bytes(b"\xff\xfe junk\n")

    with pytest.raises(SessionParseError):
        parse_claude_session(path)


@pytest.mark.parametrize("bad_entry", [
    assistant_entry([{"type": "text", "text": "x"}], "2024-01-01T00:00:09Z", usage=[1]),
    assistant_entry([{"type": "text", "text": "x"}], "2024-01-01T00:00:09Z",
                    usage={"input_tokens": "many", "output_tokens": 1}),
    assistant_entry([{"type": "text", "text": None}], "2024-01-01T00:00:09Z"),
    assistant_entry([{"type": "thinking", "thinking": 3}], "2024-01-01T00:00:09Z"),
    assistant_entry(["just a string"], "2024-01-01T00:00:09Z"),
    assistant_entry({"type": "text"}, "2024-01-01T00:00:09Z"),
    {"type": "user", "cwd": 5, "timestamp": "2024-01-01T00:00:09Z"},
    {"type": "user", "timestamp": 12345},
    {"type": "user", "message": "hello", "timestamp": "2024-01-01T00:00:09Z"},
    {"type": 7},
], ids=["usage-list", "usage-str-tokens", "text-null", "thinking-int", "item-str",
        "content-dict", "cwd-int", "timestamp-int", "message-str", "type-int"])
def test_mistyped_line_is_skipped(tmp_path, bad_entry):
    path = write_jsonl(tmp_path / "s.jsonl", [
        user_entry("first", "2024-01-01T00:00:00Z", cwd="/Users/alice/proj"),
        bad_entry,
        assistant_entry([{"type": "text", "text": "reply"}], "2024-01-01T00:00:05Z",
                        usage={"input_tokens": 10, "output_tokens": 2}),
    ])

    summary = get_session_summary(path)
    messages = parse_claude_session(path)

    assert summary.message_count == 2
    assert summary.cwd == "/Users/alice/proj"
    assert summary.last_timestamp == "2024-01-01T00:00:05Z"
    assert summary.total_input_tokens == 10
    assert [m.content for m in messages] == ["first", "reply"]


def test_mistyped_cwd_does_not_replace_later_cwd(tmp_path):
    path = write_jsonl(tmp_path / "s.jsonl", [
        {"type": "user", "cwd": 5},
        user_entry("hi", "2024-01-01T00:00:00Z", cwd="/srv/app"),
    ])

    assert get_session_summary(path).cwd == "/srv/app"
