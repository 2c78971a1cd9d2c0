"""Tests for the eventline CLI.

Tests all commands: render, tokens, emit.
Uses typer.testing.CliRunner for isolated CLI testing.
"""

from __future__ import annotations

import json
import logging

import pytest
import structlog
from typer.testing import CliRunner

from eventline.cli import app
from eventline.logging import shutdown_logging

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    """Default logging config, and no handlers left pointing at closed streams."""
    for name in ("EVENTLINE_LOG_FORMATTER", "EVENTLINE_LOG_DESTINATION", "EVENTLINE_TYPE_TAG_KEY"):
        monkeypatch.delenv(name, raising=False)
    level = logging.getLogger().level
    yield
    shutdown_logging()
    structlog.reset_defaults()
    logging.getLogger().setLevel(level)


def _events(output: str) -> list[dict]:
    """Encoded events printed by the command, skipping eventline's own diagnostics."""
    events = []
    for line in output.splitlines():
        if not line.startswith('{"time":'):
            continue
        parsed = json.loads(line)
        if not parsed["message"].startswith("Skipping line"):
            events.append(parsed)
    return events


# =========================================================================
# App structure
# =========================================================================


class TestAppStructure:
    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("render", "tokens", "emit"):
            assert command in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "Usage" in result.output


# =========================================================================
# emit
# =========================================================================


class TestEmit:
    def test_formatted_property(self):
        result = runner.invoke(app, ["emit", "Retry {Count:000}", "-p", "Count=5", "-l", "Warning"])
        assert result.exit_code == 0
        (event,) = _events(result.output)
        assert event["message"] == "Retry {Count:000}"
        assert event["renderings"] == ["005"]
        assert event["loglevel"] == "WARNING"
        assert event["Count"] == 5

    def test_non_json_value_is_string(self):
        result = runner.invoke(app, ["emit", "Hi {Name}", "-p", "Name=ada"])
        (event,) = _events(result.output)
        assert event["Name"] == "ada"
        assert "loglevel" not in event

    def test_at_prefixed_name_doubled(self):
        result = runner.invoke(app, ["emit", "x", "-p", "@Raw=42"])
        assert '"@@Raw":42' in result.output

    def test_destructured_json_object(self):
        result = runner.invoke(app, ["emit", "Got {@Order}", "-p", 'Order={"Id": 1}'])
        (event,) = _events(result.output)
        assert event["Order"] == {"Id": 1}

    def test_unknown_level(self):
        result = runner.invoke(app, ["emit", "x", "-l", "loud"])
        assert result.exit_code == 1
        assert "Unknown level" in result.output

    def test_malformed_property(self):
        result = runner.invoke(app, ["emit", "x", "-p", "novalue"])
        assert result.exit_code == 1
        assert "Expected Name=value" in result.output


# =========================================================================
# tokens
# =========================================================================


class TestTokens:
    def test_text_and_property(self):
        result = runner.invoke(app, ["tokens", "Hello {Name,-5:l}"])
        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "text      'Hello '",
            "property  name=Name align=left:5 format='l'",
        ]

    def test_hint_shown(self):
        result = runner.invoke(app, ["tokens", "{@User}"])
        assert "property  name=User hint=@" in result.output

    def test_malformed_is_text_by_default(self):
        result = runner.invoke(app, ["tokens", "{bad name}"])
        assert result.exit_code == 0
        assert "text      '{bad name}'" in result.output

    def test_strict_rejects_malformed(self):
        result = runner.invoke(app, ["tokens", "--strict", "{bad name}"])
        assert result.exit_code == 1
        assert "Malformed property token" in result.output


# =========================================================================
# render
# =========================================================================


class TestRender:
    def test_file_input(self, tmp_path):
        source = tmp_path / "events.jsonl"
        source.write_text(
            '{"time": "2024-01-02T03:04:05Z", "template": "Signed in {@User}",'
            ' "properties": {"User": {"$type": "User", "Name": "ada"}}}\n'
            "\n"
            '{"template": "Job failed", "level": "Error",'
            ' "exception": {"message": "boom", "stacktrace": "at A\\n  at B"}}\n',
            encoding="utf-8",
        )
        result = runner.invoke(app, ["render", str(source)])
        assert result.exit_code == 0
        lines = [line for line in result.output.splitlines() if line.startswith("{")]
        assert lines[0] == (
            '{"time":"2024-01-02T03:04:05.0000000Z","message":"Signed in {@User}",'
            '"User":{"Name":"ada","$type":"User"}}'
        )
        second = json.loads(lines[1])
        assert second["loglevel"] == "ERROR"
        assert second["exception"] == "boom"
        assert second["stacktrace"] == "at A  at B"

    def test_stdin_input(self):
        result = runner.invoke(
            app, ["render"], input='{"template": "Hi {Name}", "properties": {"Name": "ada"}}\n'
        )
        assert result.exit_code == 0
        (event,) = _events(result.output)
        assert event["Name"] == "ada"

    def test_type_tag_key_disabled(self, tmp_path):
        source = tmp_path / "events.jsonl"
        source.write_text(
            '{"template": "x", "properties": {"User": {"$type": "User", "Name": "ada"}}}\n',
            encoding="utf-8",
        )
        result = runner.invoke(app, ["render", "--type-tag-key", "", str(source)])
        assert '"User":{"$type":"User","Name":"ada"}' in result.output

    def test_malformed_line_skipped(self, tmp_path):
        source = tmp_path / "events.jsonl"
        source.write_text(
            '{"template": "first"}\nnot json\n{"template": "third"}\n', encoding="utf-8"
        )
        result = runner.invoke(app, ["render", str(source)])
        assert result.exit_code == 0
        assert [e["message"] for e in _events(result.output)] == ["first", "third"]
        assert "Skipping line" in result.output

    def test_missing_template_skipped(self, tmp_path):
        source = tmp_path / "events.jsonl"
        source.write_text('{"properties": {}}\n{"template": "ok"}\n', encoding="utf-8")
        result = runner.invoke(app, ["render", str(source)])
        assert [e["message"] for e in _events(result.output)] == ["ok"]

    def test_strict_fails_on_malformed_line(self, tmp_path):
        source = tmp_path / "events.jsonl"
        source.write_text('{"template": "first"}\n[1, 2]\n', encoding="utf-8")
        result = runner.invoke(app, ["render", "--strict", str(source)])
        assert result.exit_code == 1
        assert "line 2" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["render", str(tmp_path / "absent.jsonl")])
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_line_separator_inside_string_stays_in_event(self):
        result = runner.invoke(
            app,
            ["render", "--strict"],
            input='{"template": "Note {Text}", "properties": {"Text": "a\u2028b"}}\n',
        )
        assert result.exit_code == 0
        assert '"Text":"a\u2028b"' in result.output
        assert "Skipping line" not in result.output

    def test_paragraph_separator_in_file_input(self, tmp_path):
        source = tmp_path / "events.jsonl"
        source.write_text(
            '{"template": "Note {Text}", "properties": {"Text": "a\u2029b"}}\n'
            '{"template": "second"}\n',
            encoding="utf-8",
        )
        result = runner.invoke(app, ["render", "--strict", str(source)])
        assert result.exit_code == 0
        assert '"Text":"a\u2029b"' in result.output
        assert '"message":"second"' in result.output
