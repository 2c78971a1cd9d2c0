"""eventline CLI -- typer-based command interface.

Commands:
    eventline render [PATH]          Encode JSON event descriptions as eventline NDJSON
    eventline tokens TEMPLATE        Show how a message template is tokenized
    eventline emit TEMPLATE -p K=V   Encode a single event built from the command line
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

import typer

from eventline.cli._errors import exits_on, handle_error
from eventline.cli._events import event_from_json
from eventline.config import EventLineConfig
from eventline.encoder import EventEncoder
from eventline.errors import TemplateSyntaxError
from eventline.events import Level, LogEvent, TextToken, capture_properties
from eventline.json_values import DEFAULT_TYPE_TAG_KEY, JsonValueFormatter
from eventline.logging import get_logger, setup_logging
from eventline.parsing import parse_template, parse_template_strict

app = typer.Typer(
    name="eventline",
    help="Encode structured log events as newline-delimited JSON.",
    no_args_is_help=True,
)


@app.callback()
def _configure(
    log_level: str = typer.Option(
        "WARNING", "--log-level", help="Level for eventline's own diagnostics (stderr)."
    ),
) -> None:
    setup_logging(EventLineConfig(log_destination="stderr", log_level=log_level))


@app.command()
def render(
    path: str = typer.Argument("-", help="File of JSON event descriptions, or - for stdin"),
    type_tag_key: str = typer.Option(
        DEFAULT_TYPE_TAG_KEY, "--type-tag-key", help="Type tag member name; empty disables tags"
    ),
    strict: bool = typer.Option(False, "--strict", help="Fail on the first malformed line"),
) -> None:
    """Read one JSON event description per line and print one encoded event per line."""
    tag_key = type_tag_key or None

    if path == "-":
        _render_lines(sys.stdin, tag_key, strict)
        return

    source = Path(path)
    if not source.exists():
        handle_error(f"File not found: {source}")
    with source.open(encoding="utf-8") as lines:
        _render_lines(lines, tag_key, strict)


def _render_lines(lines: Iterable[str], tag_key: str | None, strict: bool) -> None:
    # Line ends only; U+2028/U+2029 may appear unescaped inside JSON strings.
    encoder = EventEncoder(JsonValueFormatter(type_tag_key=tag_key))
    log = get_logger("eventline.cli")

    for lineno, raw in enumerate(lines, start=1):
        if not raw.strip():
            continue
        try:
            event = event_from_json(json.loads(raw), tag_key)
        except (ValueError, TypeError) as err:
            if strict:
                handle_error(f"line {lineno}: {err}")
            log.warning(
                "Skipping line {LineNumber}: {Reason:l}", LineNumber=lineno, Reason=str(err)
            )
            continue
        typer.echo(encoder.to_line(event))


@app.command()
@exits_on(TemplateSyntaxError)
def tokens(
    template: str = typer.Argument(..., help="Message template text"),
    strict: bool = typer.Option(False, "--strict", help="Reject malformed property tokens"),
) -> None:
    """Print the tokens of a message template, one per line."""
    parsed = parse_template_strict(template) if strict else parse_template(template)

    for token in parsed.tokens:
        if isinstance(token, TextToken):
            typer.echo(f"text      {token.text!r}")
            continue
        details = [f"name={token.property_name}"]
        if token.hint:
            details.append(f"hint={token.hint.value}")
        if token.alignment is not None:
            details.append(f"align={token.alignment.direction.value}:{token.alignment.width}")
        if token.format is not None:
            details.append(f"format={token.format!r}")
        typer.echo(f"property  {' '.join(details)}")


@app.command()
@exits_on(ValueError)
def emit(
    template: str = typer.Argument(..., help="Message template text"),
    prop: list[str] = typer.Option(
        None, "--prop", "-p", help="Property as Name=value; value parsed as JSON if possible"
    ),
    level: str = typer.Option("Information", "--level", "-l", help="Event level"),
) -> None:
    """Encode one event built from the command line."""
    event_level = Level.parse(level)

    values: dict[str, object] = {}
    for item in prop or []:
        name, sep, text = item.partition("=")
        if not sep or not name:
            handle_error(f"Expected Name=value, got {item!r}")
        try:
            values[name] = json.loads(text)
        except ValueError:
            values[name] = text

    parsed = parse_template(template)
    event = LogEvent(
        timestamp=datetime.now(timezone.utc),
        template=parsed,
        level=event_level,
        properties=capture_properties(parsed, values),
    )
    typer.echo(EventEncoder().to_line(event))


def main() -> None:
    """Entry point for the eventline CLI."""
    app()
