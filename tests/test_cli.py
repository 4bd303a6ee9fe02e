"""Tests for the non-interactive CLI modes."""

import json
import logging

import pytest

from claude_history.cli import build_parser, configure_logging, main


@pytest.fixture(autouse=True)
def reset_package_logger():
    pkg_logger = logging.getLogger("claude_history")
    level = pkg_logger.level
    yield
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.setLevel(level)


def _populate(projects_root, sample_session):
    project = projects_root / "-Users-alice-proj"
    project.mkdir()
    return sample_session.rename(project / sample_session.name)


def test_list_json(projects_root, sample_session, capsys):
    _populate(projects_root, sample_session)

    code = main(["--projects-dir", str(projects_root), "--list", "--json"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data == [{
        "name": "proj",
        "path": str(projects_root / "-Users-alice-proj"),
        "sessionCount": 1,
    }]


def test_sessions_text(projects_root, sample_session, capsys):
    _populate(projects_root, sample_session)

    code = main(["--projects-dir", str(projects_root),
                 "--sessions", str(projects_root / "-Users-alice-proj")])

    assert code == 0
    out = capsys.readouterr().out
    assert out.startswith("sess-1")
    assert "4 msgs" in out


def test_show_transcript(projects_root, sample_session, capsys):
    session_file = _populate(projects_root, sample_session)

    code = main(["--show", str(session_file)])

    assert code == 0
    out = capsys.readouterr().out
    assert "── user" in out
    assert "Fix the failing test" in out


def test_errors_exit_nonzero(tmp_path, capsys):
    code = main(["--sessions", str(tmp_path / "missing")])

    assert code == 1
    assert "Error:" in capsys.readouterr().err


def test_list_modes_are_exclusive(capsys):
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(["--list", "--show", "x.jsonl"])

    assert exc.value.code == 2
    assert "not allowed with" in capsys.readouterr().err


def test_configure_logging_to_file(tmp_path):
    log_file = tmp_path / "logs" / "history.log"
    handler = configure_logging("info", log_file)

    logging.getLogger("claude_history.sessions").info("hello from test")
    handler.flush()

    assert "hello from test" in log_file.read_text()
