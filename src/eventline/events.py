"""Log event model: levels, template tokens, exceptions, events.

Everything here is immutable. The encoder only reads these objects; callers
build them (directly, via LogEvent.create, or via the logging bridges).
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum, StrEnum
from typing import Any, Union

from eventline.values import CaptureHint, PropertyValue, capture

# =============================================================================
# Levels
# =============================================================================


class Level(IntEnum):
    """Event severity, ordered from least to most severe."""

    VERBOSE = 0
    DEBUG = 1
    INFORMATION = 2
    WARNING = 3
    ERROR = 4
    FATAL = 5

    @classmethod
    def parse(cls, name: str) -> Level:
        """Resolve a level from its name or a common stdlib/structlog alias."""
        key = name.strip().lower()
        level = _LEVEL_ALIASES.get(key)
        if level is None:
            raise ValueError(f"Unknown level: {name!r}")
        return level

    @classmethod
    def from_stdlib(cls, levelno: int) -> Level:
        """Map a stdlib logging numeric level onto the nearest Level."""
        if levelno < 10:
            return cls.VERBOSE
        if levelno < 20:
            return cls.DEBUG
        if levelno < 30:
            return cls.INFORMATION
        if levelno < 40:
            return cls.WARNING
        if levelno < 50:
            return cls.ERROR
        return cls.FATAL


_LEVEL_ALIASES: dict[str, Level] = {member.name.lower(): member for member in Level}
_LEVEL_ALIASES.update(
    {
        "trace": Level.VERBOSE,
        "notset": Level.VERBOSE,
        "info": Level.INFORMATION,
        "warn": Level.WARNING,
        "exception": Level.ERROR,
        "critical": Level.FATAL,
    }
)

# The level omitted from encoded output.
BASELINE_LEVEL = Level.INFORMATION


# =============================================================================
# Template tokens
# =============================================================================


class AlignmentDirection(StrEnum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Alignment:
    """Pad rendered text to `width` characters. RIGHT pads on the left."""

    direction: AlignmentDirection
    width: int


@dataclass(frozen=True)
class TextToken:
    """Literal template text, with `{{`/`}}` already unescaped."""

    text: str

    @property
    def raw_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class PropertyToken:
    """A `{Name,alignment:format}` hole in a message template."""

    property_name: str
    raw_text: str
    format: str | None = None
    alignment: Alignment | None = None
    hint: CaptureHint = CaptureHint.DEFAULT

    @property
    def is_positional(self) -> bool:
        return self.property_name.isdigit()


MessageTemplateToken = Union[TextToken, PropertyToken]


@dataclass(frozen=True)
class MessageTemplate:
    """Raw template text plus its tokens in source order."""

    text: str
    tokens: tuple[MessageTemplateToken, ...] = ()

    @classmethod
    def parse(cls, text: str) -> MessageTemplate:
        from eventline.parsing import parse_template

        return parse_template(text)

    @property
    def property_tokens(self) -> tuple[PropertyToken, ...]:
        return tuple(t for t in self.tokens if isinstance(t, PropertyToken))


# =============================================================================
# Exceptions and events
# =============================================================================


@dataclass(frozen=True)
class ExceptionInfo:
    """The parts of an exception the encoder writes: message and stack trace."""

    message: str
    stack_trace: str = ""
    type_name: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> ExceptionInfo:
        """Capture str(exc) and the formatted traceback frames of a raised exception."""
        tb = exc.__traceback__
        stack = "".join(traceback.format_tb(tb)) if tb is not None else ""
        kind = type(exc)
        return cls(
            message=str(exc),
            stack_trace=stack,
            type_name=f"{kind.__module__}.{kind.__qualname__}",
        )


@dataclass(frozen=True)
class LogEvent:
    """One log record: when, what template, how severe, what went wrong, with what data."""

    timestamp: datetime
    template: MessageTemplate
    level: Level = Level.INFORMATION
    exception: ExceptionInfo | None = None
    properties: Mapping[str, PropertyValue] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        template_text: str,
        level: Level = Level.INFORMATION,
        exception: ExceptionInfo | BaseException | None = None,
        timestamp: datetime | None = None,
        **properties: Any,
    ) -> LogEvent:
        """Build an event from template text and plain Python property values.

        Property values are captured using the hint of the first template token
        naming them (`{@User}` destructures, `{$User}` stringifies).
        """
        template = MessageTemplate.parse(template_text)
        if isinstance(exception, BaseException):
            exception = ExceptionInfo.from_exception(exception)
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            template=template,
            level=level,
            exception=exception,
            properties=capture_properties(template, properties),
        )


def capture_properties(
    template: MessageTemplate, values: Mapping[str, Any]
) -> dict[str, PropertyValue]:
    """Capture each value, honouring the capture hint its template token carries."""
    hints: dict[str, CaptureHint] = {}
    for token in template.property_tokens:
        hints.setdefault(token.property_name, token.hint)
    return {
        name: capture(value, hints.get(name, CaptureHint.DEFAULT))
        for name, value in values.items()
    }
