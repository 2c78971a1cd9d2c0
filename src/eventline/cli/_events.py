"""Build LogEvents from the JSON event descriptions `eventline render` reads.

One description per input line:

    {"time": "2024-01-02T03:04:05Z", "template": "Retry {Count:000}",
     "level": "Warning", "exception": {"message": "boom", "stacktrace": "..."},
     "properties": {"Count": 5, "User": {"$type": "User", "Name": "ada"}}}

Only "template" is required. JSON objects carrying the type-tag key become
tagged structures; other objects become dictionaries.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from eventline.events import ExceptionInfo, Level, LogEvent
from eventline.parsing import parse_template
from eventline.values import (
    DictionaryValue,
    PropertyValue,
    ScalarValue,
    SequenceValue,
    StructureValue,
)


def event_from_json(obj: Any, type_tag_key: str | None = "$type") -> LogEvent:
    if not isinstance(obj, dict):
        raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
    template_text = obj.get("template")
    if not isinstance(template_text, str):
        raise ValueError("missing string field 'template'")

    time_text = obj.get("time")
    timestamp = (
        datetime.fromisoformat(time_text)
        if time_text is not None
        else datetime.now(timezone.utc)
    )

    exception = None
    exc = obj.get("exception")
    if exc is not None:
        if not isinstance(exc, dict):
            raise ValueError("'exception' must be an object")
        exception = ExceptionInfo(
            message=str(exc.get("message", "")),
            stack_trace=str(exc.get("stacktrace", "")),
        )

    properties = obj.get("properties") or {}
    if not isinstance(properties, dict):
        raise ValueError("'properties' must be an object")

    return LogEvent(
        timestamp=timestamp,
        template=parse_template(template_text),
        level=Level.parse(str(obj.get("level", "Information"))),
        exception=exception,
        properties={
            name: value_from_json(value, type_tag_key)
            for name, value in properties.items()
        },
    )


def value_from_json(value: Any, type_tag_key: str | None = "$type") -> PropertyValue:
    if isinstance(value, list):
        return SequenceValue(tuple(value_from_json(v, type_tag_key) for v in value))
    if isinstance(value, dict):
        if type_tag_key is not None and type_tag_key in value:
            return StructureValue(
                tuple(
                    (name, value_from_json(v, type_tag_key))
                    for name, v in value.items()
                    if name != type_tag_key
                ),
                type_tag=str(value[type_tag_key]),
            )
        return DictionaryValue(
            tuple(
                (ScalarValue(name), value_from_json(v, type_tag_key))
                for name, v in value.items()
            )
        )
    return ScalarValue(value)
