"""JSON encoding of property values and strings.

JsonValueFormatter writes the closed PropertyValue union as compact JSON.
It holds no per-call state, so one instance can be shared across threads.
"""

from __future__ import annotations

import datetime as dt
import io
import math
import re
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from eventline.errors import FormattingError
from eventline.values import (
    DictionaryValue,
    PropertyValue,
    ScalarValue,
    SequenceValue,
    StructureValue,
)

DEFAULT_TYPE_TAG_KEY = "$type"

_NEEDS_ESCAPE = re.compile(r'["\\\x00-\x1f]')
_SHORT_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


@runtime_checkable
class TextSink(Protocol):
    """Anything that accepts sequential text writes (StringIO, a stream, a file)."""

    def write(self, s: str, /) -> Any: ...


@runtime_checkable
class ValueFormatter(Protocol):
    """Writes one property value to a sink as JSON."""

    def format(self, value: PropertyValue, output: TextSink) -> None: ...


# =============================================================================
# Strings
# =============================================================================


def write_quoted_json_string(text: str, output: TextSink) -> None:
    """Write `text` as a double-quoted JSON string.

    Quote and backslash get backslash escapes, as do \\b \\f \\n \\r \\t.
    Other control characters below U+0020 become \\u00XX. Everything else,
    non-ASCII included, is written as-is. Unescaped runs go out in one write.
    """
    output.write('"')
    start = 0
    for match in _NEEDS_ESCAPE.finditer(text):
        pos = match.start()
        if pos > start:
            output.write(text[start:pos])
        char = match.group()
        output.write(_SHORT_ESCAPES.get(char) or f"\\u{ord(char):04X}")
        start = pos + 1
    if start < len(text):
        output.write(text[start:])
    output.write('"')


def quote_json_string(text: str) -> str:
    buf = io.StringIO()
    write_quoted_json_string(text, buf)
    return buf.getvalue()


# =============================================================================
# Values
# =============================================================================


class JsonValueFormatter:
    """Encode PropertyValues as JSON.

    Structures carrying a type tag get an extra member named `type_tag_key`
    (default "$type") after their fields. Pass type_tag_key=None to omit it.

    Non-finite floats are written as the strings "NaN", "Infinity" and
    "-Infinity" so the output stays valid JSON.
    """

    def __init__(self, type_tag_key: str | None = DEFAULT_TYPE_TAG_KEY) -> None:
        self._type_tag_key = type_tag_key

    @property
    def type_tag_key(self) -> str | None:
        return self._type_tag_key

    def format(self, value: PropertyValue, output: TextSink) -> None:
        """Write `value` to `output`.

        Raises:
            FormattingError: If value is not a PropertyValue or holds an
                unsupported scalar type.
        """
        if isinstance(value, ScalarValue):
            self._write_scalar(value.value, output)
        elif isinstance(value, SequenceValue):
            self._write_sequence(value, output)
        elif isinstance(value, StructureValue):
            self._write_structure(value, output)
        elif isinstance(value, DictionaryValue):
            self._write_dictionary(value, output)
        else:
            raise FormattingError(
                f"Cannot format {type(value).__name__} as JSON: not a property value"
            )

    def to_json(self, value: PropertyValue) -> str:
        buf = io.StringIO()
        self.format(value, buf)
        return buf.getvalue()

    def _write_sequence(self, value: SequenceValue, output: TextSink) -> None:
        output.write("[")
        delim = ""
        for element in value.elements:
            output.write(delim)
            delim = ","
            self.format(element, output)
        output.write("]")

    def _write_structure(self, value: StructureValue, output: TextSink) -> None:
        output.write("{")
        delim = ""
        for name, member in value.properties:
            output.write(delim)
            delim = ","
            write_quoted_json_string(name, output)
            output.write(":")
            self.format(member, output)
        if self._type_tag_key is not None and value.type_tag is not None:
            output.write(delim)
            write_quoted_json_string(self._type_tag_key, output)
            output.write(":")
            write_quoted_json_string(value.type_tag, output)
        output.write("}")

    def _write_dictionary(self, value: DictionaryValue, output: TextSink) -> None:
        output.write("{")
        delim = ""
        for key, member in value.elements:
            output.write(delim)
            delim = ","
            key_text = "null" if key.value is None else str(key.value)
            write_quoted_json_string(key_text, output)
            output.write(":")
            self.format(member, output)
        output.write("}")

    def _write_scalar(self, value: Any, output: TextSink) -> None:
        if value is None:
            output.write("null")
        elif isinstance(value, bool):
            output.write("true" if value else "false")
        elif isinstance(value, Enum):
            write_quoted_json_string(value.name, output)
        elif isinstance(value, int):
            output.write(str(value))
        elif isinstance(value, float):
            if math.isfinite(value):
                output.write(repr(value))
            else:
                write_quoted_json_string(_non_finite_name(value), output)
        elif isinstance(value, Decimal):
            if value.is_finite():
                output.write(str(value))
            else:
                write_quoted_json_string(str(value), output)
        elif isinstance(value, str):
            write_quoted_json_string(value, output)
        elif isinstance(value, (dt.datetime, dt.date, dt.time)):
            write_quoted_json_string(value.isoformat(), output)
        elif isinstance(value, (dt.timedelta, uuid.UUID)):
            write_quoted_json_string(str(value), output)
        else:
            raise FormattingError(
                f"Cannot format scalar of type {type(value).__name__} as JSON"
            )


def _non_finite_name(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"
