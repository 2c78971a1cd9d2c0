"""Error taxonomy for eventline.

Only argument validation originates in the encoder itself. Formatting errors
come from the value formatter (or value capture) and propagate to the caller
untouched.
"""

from __future__ import annotations


class EventLineError(Exception):
    """Base class for all eventline errors."""


class InvalidArgumentError(EventLineError, ValueError):
    """A required argument was missing. Raised before any output is written."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} must not be None")
        self.name = name


class FormattingError(EventLineError, TypeError):
    """A property value cannot be encoded (unsupported type, reference cycle)."""


class TemplateSyntaxError(EventLineError, ValueError):
    """A message template contains a malformed property token (strict parsing only)."""

    def __init__(self, raw_text: str, position: int) -> None:
        super().__init__(f"Malformed property token {raw_text!r} at position {position}")
        self.raw_text = raw_text
        self.position = position
