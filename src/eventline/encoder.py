"""Encode one LogEvent as one line of JSON.

Members are written in a fixed order that consumers rely on:

    time, message, [renderings], [loglevel], [exception, stacktrace], properties...

Example:
    {"time":"2024-01-02T03:04:05.1234560Z","message":"Retry {Count:000}",
     "renderings":["005"],"loglevel":"WARNING","Count":5}

`message` is the raw template text, never the rendered message. Property
names beginning with `@` gain a second `@` so they can't be mistaken for
capture markers downstream.

encode() writes the object only. encode_line() and EventEncoder.format()
also write the newline that separates events in an NDJSON stream. Nothing
here buffers: if the value formatter raises midway, the sink keeps the
partial object.
"""

from __future__ import annotations

import io
import re

from eventline.errors import InvalidArgumentError
from eventline.events import BASELINE_LEVEL, LogEvent, PropertyToken
from eventline.formatting import format_utc_timestamp
from eventline.json_values import (
    JsonValueFormatter,
    TextSink,
    ValueFormatter,
    write_quoted_json_string,
)
from eventline.rendering import render_token_text

_STACK_TRACE_WHITESPACE = re.compile(r"[\t\n\r]")


def encode(event: LogEvent, output: TextSink, value_formatter: ValueFormatter) -> None:
    """Write `event` to `output` as a single JSON object, without a newline.

    Raises:
        InvalidArgumentError: If any argument is None. Nothing is written.
        FormattingError: Propagated from value_formatter.
    """
    if event is None:
        raise InvalidArgumentError("event")
    if output is None:
        raise InvalidArgumentError("output")
    if value_formatter is None:
        raise InvalidArgumentError("value_formatter")

    output.write('{"time":"')
    output.write(format_utc_timestamp(event.timestamp))
    output.write('","message":')
    write_quoted_json_string(event.template.text, output)

    formatted_tokens = [
        token
        for token in event.template.tokens
        if isinstance(token, PropertyToken) and token.format
    ]
    if formatted_tokens:
        output.write(',"renderings":[')
        delim = ""
        for token in formatted_tokens:
            output.write(delim)
            delim = ","
            write_quoted_json_string(render_token_text(token, event.properties), output)
        output.write("]")

    if event.level != BASELINE_LEVEL:
        output.write(',"loglevel":"')
        output.write(event.level.name.upper())
        output.write('"')

    if event.exception is not None:
        output.write(',"exception":')
        write_quoted_json_string(event.exception.message, output)
        output.write(',"stacktrace":')
        write_quoted_json_string(
            _STACK_TRACE_WHITESPACE.sub("", event.exception.stack_trace), output
        )

    for name, value in event.properties.items():
        if name.startswith("@"):
            name = "@" + name
        output.write(",")
        write_quoted_json_string(name, output)
        output.write(":")
        value_formatter.format(value, output)

    output.write("}")


def encode_line(event: LogEvent, output: TextSink, value_formatter: ValueFormatter) -> None:
    """encode(), followed by the newline that delimits events."""
    encode(event, output, value_formatter)
    output.write("\n")


class EventEncoder:
    """Newline-delimited JSON encoder bound to one value formatter.

    Safe to share between threads as long as its value formatter is; the
    default JsonValueFormatter is.
    """

    def __init__(self, value_formatter: ValueFormatter | None = None) -> None:
        self._value_formatter = (
            JsonValueFormatter() if value_formatter is None else value_formatter
        )

    @property
    def value_formatter(self) -> ValueFormatter:
        return self._value_formatter

    def format(self, event: LogEvent, output: TextSink) -> None:
        """Write `event` followed by a newline."""
        encode_line(event, output, self._value_formatter)

    def to_line(self, event: LogEvent) -> str:
        """Return the encoded object as a string, without the newline."""
        buf = io.StringIO()
        encode(event, buf, self._value_formatter)
        return buf.getvalue()
