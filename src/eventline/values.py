"""Property values: a closed union of scalar, sequence, structure and dictionary.

Every property attached to a LogEvent is one of the four frozen dataclasses
below. Plain Python objects are turned into property values by capture(),
which mirrors how a logging call site captures its arguments:

    capture(5)                          -> ScalarValue(5)
    capture([1, 2])                     -> SequenceValue((ScalarValue(1), ScalarValue(2)))
    capture({"a": 1})                   -> DictionaryValue(((ScalarValue("a"), ScalarValue(1)),))
    capture(user, CaptureHint.DESTRUCTURE) -> StructureValue(..., type_tag="User")
    capture(user)                       -> ScalarValue(str(user))
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, StrEnum
from typing import Any, Union

from eventline.errors import FormattingError

# =============================================================================
# Capture hints
# =============================================================================


class CaptureHint(StrEnum):
    """How a property token asks for its value to be captured."""

    DEFAULT = ""
    DESTRUCTURE = "@"
    STRINGIFY = "$"


# Scalar types the JSON value formatter knows how to write.
SCALAR_TYPES: tuple[type, ...] = (
    bool,
    int,
    float,
    Decimal,
    str,
    dt.datetime,
    dt.date,
    dt.time,
    dt.timedelta,
    uuid.UUID,
    Enum,
)

DEFAULT_MAX_DEPTH = 10


# =============================================================================
# Value variants
# =============================================================================


@dataclass(frozen=True)
class ScalarValue:
    """A single scalar: None, bool, number, string, date/time, UUID or enum."""

    value: Any = None


@dataclass(frozen=True)
class SequenceValue:
    """An ordered sequence of property values."""

    elements: tuple[PropertyValue, ...] = ()


@dataclass(frozen=True)
class StructureValue:
    """A record of named fields, optionally tagged with a type name."""

    properties: tuple[tuple[str, PropertyValue], ...] = ()
    type_tag: str | None = None


@dataclass(frozen=True)
class DictionaryValue:
    """A mapping from scalar keys to property values, in insertion order."""

    elements: tuple[tuple[ScalarValue, PropertyValue], ...] = ()


PropertyValue = Union[ScalarValue, SequenceValue, StructureValue, DictionaryValue]

PROPERTY_VALUE_TYPES = (ScalarValue, SequenceValue, StructureValue, DictionaryValue)


def is_property_value(obj: Any) -> bool:
    return isinstance(obj, PROPERTY_VALUE_TYPES)


# =============================================================================
# Capture
# =============================================================================


def capture(
    obj: Any,
    hint: CaptureHint = CaptureHint.DEFAULT,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> PropertyValue:
    """Convert a plain Python object into a PropertyValue.

    Args:
        obj: The object to capture.
        hint: DESTRUCTURE turns dataclasses and plain objects into structures;
            STRINGIFY captures str(obj) whatever the type.
        max_depth: Nesting below this depth is captured as ScalarValue(None).

    Raises:
        FormattingError: If obj contains a reference cycle.
    """
    return _Capturer(hint, max_depth).capture(obj, 0)


class _Capturer:
    def __init__(self, hint: CaptureHint, max_depth: int) -> None:
        self._destructure = hint == CaptureHint.DESTRUCTURE
        self._stringify = hint == CaptureHint.STRINGIFY
        self._max_depth = max_depth
        self._active: set[int] = set()

    def capture(self, obj: Any, depth: int) -> PropertyValue:
        if is_property_value(obj):
            return obj
        if obj is None:
            return ScalarValue(None)
        if self._stringify:
            return ScalarValue(str(obj))
        if isinstance(obj, SCALAR_TYPES):
            return ScalarValue(obj)
        if depth >= self._max_depth:
            return ScalarValue(None)

        key = id(obj)
        if key in self._active:
            raise FormattingError(
                f"Cannot capture {type(obj).__name__}: reference cycle detected"
            )
        self._active.add(key)
        try:
            return self._capture_container(obj, depth + 1)
        finally:
            self._active.discard(key)

    def _capture_container(self, obj: Any, depth: int) -> PropertyValue:
        if isinstance(obj, Mapping):
            return DictionaryValue(
                tuple(
                    (self._capture_key(k), self.capture(v, depth))
                    for k, v in obj.items()
                )
            )
        if isinstance(obj, (list, tuple, set, frozenset)):
            return SequenceValue(tuple(self.capture(e, depth) for e in obj))
        if self._destructure:
            if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
                return StructureValue(
                    tuple(
                        (f.name, self.capture(getattr(obj, f.name), depth))
                        for f in dataclasses.fields(obj)
                    ),
                    type_tag=type(obj).__name__,
                )
            attrs = getattr(obj, "__dict__", None)
            if attrs is not None:
                return StructureValue(
                    tuple(
                        (name, self.capture(value, depth))
                        for name, value in attrs.items()
                        if not name.startswith("_")
                    ),
                    type_tag=type(obj).__name__,
                )
        return ScalarValue(str(obj))

    @staticmethod
    def _capture_key(key: Any) -> ScalarValue:
        if key is None or isinstance(key, SCALAR_TYPES):
            return ScalarValue(key)
        return ScalarValue(str(key))
