"""Render property values and template tokens as human-readable text.

Rendering is what fills a template hole: `{Count:000}` with Count=5 renders
as `005`. The encoder uses render_token() for the `renderings` array; the
console log renderer uses render_message() for whole messages.

Strings render quoted (`"Alice"`) unless the format contains `l` (literal).
A format containing `j` renders the value as JSON instead.
"""

from __future__ import annotations

import io
from collections.abc import Mapping

from eventline.events import (
    AlignmentDirection,
    MessageTemplate,
    PropertyToken,
    TextToken,
)
from eventline.formatting import format_scalar
from eventline.json_values import JsonValueFormatter, TextSink
from eventline.values import (
    DictionaryValue,
    PropertyValue,
    ScalarValue,
    SequenceValue,
    StructureValue,
)

_JSON = JsonValueFormatter()


def render_value(value: PropertyValue, output: TextSink, format: str | None = None) -> None:
    """Write the display text of `value`."""
    if format and "j" in format:
        _JSON.format(value, output)
        return

    if isinstance(value, ScalarValue):
        _render_scalar(value, output, format)
    elif isinstance(value, SequenceValue):
        output.write("[")
        delim = ""
        for element in value.elements:
            output.write(delim)
            delim = ", "
            render_value(element, output, format)
        output.write("]")
    elif isinstance(value, StructureValue):
        if value.type_tag is not None:
            output.write(value.type_tag)
            output.write(" ")
        output.write("{ ")
        delim = ""
        for name, member in value.properties:
            output.write(delim)
            delim = ", "
            output.write(name)
            output.write(": ")
            render_value(member, output, format)
        output.write(" }")
    elif isinstance(value, DictionaryValue):
        output.write("[")
        delim = "("
        for key, member in value.elements:
            output.write(delim)
            delim = ", ("
            _render_scalar(key, output, None)
            output.write(": ")
            render_value(member, output, format)
            output.write(")")
        output.write("]")
    else:
        output.write(str(value))


def _render_scalar(value: ScalarValue, output: TextSink, format: str | None) -> None:
    raw = value.value
    if raw is None:
        output.write("null")
    elif isinstance(raw, str):
        if format and "l" in format:
            output.write(raw)
        else:
            output.write('"')
            output.write(raw.replace('"', '\\"'))
            output.write('"')
    else:
        output.write(format_scalar(raw, format))


def render_token(
    token: PropertyToken,
    properties: Mapping[str, PropertyValue],
    output: TextSink,
) -> None:
    """Render one property token. Unknown properties render as the raw token text."""
    value = properties.get(token.property_name)
    if value is None:
        output.write(token.raw_text)
        return

    if token.alignment is None:
        render_value(value, output, token.format)
        return

    buf = io.StringIO()
    render_value(value, buf, token.format)
    text = buf.getvalue()
    width = token.alignment.width
    if token.alignment.direction == AlignmentDirection.LEFT:
        output.write(text.ljust(width))
    else:
        output.write(text.rjust(width))


def render_token_text(token: PropertyToken, properties: Mapping[str, PropertyValue]) -> str:
    buf = io.StringIO()
    render_token(token, properties, buf)
    return buf.getvalue()


def render_message(template: MessageTemplate, properties: Mapping[str, PropertyValue]) -> str:
    """Render the full message: literal text plus every rendered property token."""
    buf = io.StringIO()
    for token in template.tokens:
        if isinstance(token, TextToken):
            buf.write(token.text)
        else:
            render_token(token, properties, buf)
    return buf.getvalue()
