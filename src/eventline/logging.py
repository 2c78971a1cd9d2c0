"""Logging integration: eventline lines from stdlib logging and structlog.

A logging setup is a formatter strategy paired with a destination strategy:

    formatter    turns records into text (structlog pipeline, or plain stdlib)
    destination  owns the logging.Handler the text goes through

setup_logging(config) looks both up by name, hands the formatter's
logging.Formatter to the destination's handler and installs that handler on
the root logger. Both formatters end in the same encoder, so a structlog call
and a plain logging.getLogger() call produce the same line shape:

    log = get_logger("billing")
    log.warning("Retry {Count:000}", Count=5)
    {"time":"...","message":"Retry {Count:000}","renderings":["005"],
     "loglevel":"WARNING","Count":5,"SourceContext":"billing"}

Extra strategies are registered as factories taking the EventLineConfig:

    register_destination("syslog", lambda config: SyslogDestination(config.host))
"""

from __future__ import annotations

import functools
import io
import logging
import sys
from collections.abc import Mapping, MutableMapping
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Protocol, TextIO, runtime_checkable

from eventline.encoder import encode
from eventline.events import ExceptionInfo, Level, LogEvent, capture_properties
from eventline.formatting import format_utc_timestamp
from eventline.json_values import JsonValueFormatter, ValueFormatter
from eventline.parsing import parse_template
from eventline.rendering import render_message

if TYPE_CHECKING:
    from eventline.config import EventLineConfig

# Property carrying the logger name, as Serilog names it.
SOURCE_CONTEXT = "SourceContext"

DEFAULT_JSONL_PATH = "/tmp/eventline.jsonl"

_LEVEL_ABBREVIATIONS = {
    Level.VERBOSE: "VRB",
    Level.DEBUG: "DBG",
    Level.INFORMATION: "INF",
    Level.WARNING: "WRN",
    Level.ERROR: "ERR",
    Level.FATAL: "FTL",
}

# Keys ProcessorFormatter adds that are never properties.
_META_KEYS = ("_record", "_from_structlog", "stack_info")

# Marks the root handler setup_logging() installed.
_MANAGED_ATTR = "_eventline_managed"


# ---------------------------------------------------------------------------
# Strategy protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class LogFormatter(Protocol):
    """Turns log records into eventline text.

    setup() returns the logging.Formatter the destination's handler uses.
    get_logger() returns a logger whose calls take template properties as
    keyword arguments: log.info("Retry {Count}", Count=3).
    """

    def setup(self, config: EventLineConfig) -> logging.Formatter: ...

    def get_logger(self, name: str, **kwargs: Any) -> Any: ...


@runtime_checkable
class LogDestination(Protocol):
    """Owns the handler that formatted records are written through."""

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler: ...

    def shutdown(self) -> None: ...


# ---------------------------------------------------------------------------
# Record → event
# ---------------------------------------------------------------------------


def event_from_record(record: logging.LogRecord) -> LogEvent:
    """Build a LogEvent from a stdlib LogRecord.

    The unformatted record.msg is the template. Tuple args become the
    positional properties "0", "1", ...; mapping args and the structured
    kwargs stored by get_logger() become named properties. The logger name
    is added as SourceContext.
    """
    template = parse_template(str(record.msg))

    values: dict[str, Any] = {}
    args = record.args
    if isinstance(args, Mapping):
        values.update(args)
    elif args:
        values.update((str(i), arg) for i, arg in enumerate(args))
    structured = getattr(record, "_structured", None)
    if structured:
        values.update(structured)
    values.setdefault(SOURCE_CONTEXT, record.name)

    exception = None
    if record.exc_info and record.exc_info[1] is not None:
        exception = ExceptionInfo.from_exception(record.exc_info[1])

    return LogEvent(
        timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
        template=template,
        level=Level.from_stdlib(record.levelno),
        exception=exception,
        properties=capture_properties(template, values),
    )


def event_from_event_dict(
    event_dict: Mapping[str, Any], method_name: str | None = None
) -> LogEvent:
    """Build a LogEvent from a structlog event dict.

    Recognised keys: event (template), level, timestamp, exc_info, logger,
    positional_args. Everything else becomes a property.
    """
    values = dict(event_dict)
    for key in _META_KEYS:
        values.pop(key, None)

    template = parse_template(str(values.pop("event", "")))
    level = _level_or_default(values.pop("level", None) or method_name)
    timestamp = _coerce_timestamp(values.pop("timestamp", None))
    exception = _coerce_exc_info(values.pop("exc_info", None))

    positional = values.pop("positional_args", None)
    if isinstance(positional, tuple):
        for i, arg in enumerate(positional):
            values.setdefault(str(i), arg)

    logger_name = values.pop("logger", None)
    if logger_name is not None:
        values.setdefault(SOURCE_CONTEXT, logger_name)

    return LogEvent(
        timestamp=timestamp,
        template=template,
        level=level,
        exception=exception,
        properties=capture_properties(template, values),
    )


def _level_or_default(name: Any) -> Level:
    if isinstance(name, Level):
        return name
    if not isinstance(name, str):
        return Level.INFORMATION
    try:
        return Level.parse(name)
    except ValueError:
        # Method names like "msg" or "log" carry no level.
        return Level.INFORMATION


def _coerce_timestamp(value: Any) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return datetime.fromisoformat(str(value))


def _coerce_exc_info(value: Any) -> ExceptionInfo | None:
    if value is None or value is False:
        return None
    if value is True:
        value = sys.exc_info()
    if isinstance(value, tuple):
        value = value[1] if len(value) > 1 else None
    if isinstance(value, BaseException):
        return ExceptionInfo.from_exception(value)
    return None


def render_console_line(event: LogEvent) -> str:
    """Human-readable form: `2024-01-02T03:04:05.1234560Z [WRN] Retry 005`."""
    line = (
        f"{format_utc_timestamp(event.timestamp)} "
        f"[{_LEVEL_ABBREVIATIONS[event.level]}] "
        f"{render_message(event.template, event.properties)}"
    )
    if event.exception is not None:
        kind = event.exception.type_name or "Exception"
        line += f"\n{kind}: {event.exception.message}\n{event.exception.stack_trace}"
    return line.rstrip("\n")


# ---------------------------------------------------------------------------
# logging.Formatter / structlog processor implementations
# ---------------------------------------------------------------------------


class EventLineFormatter(logging.Formatter):
    """stdlib formatter producing one eventline JSON object per record.

    Returns the object without a newline; the handler's terminator ends the line.
    """

    def __init__(self, value_formatter: ValueFormatter | None = None) -> None:
        super().__init__()
        self._value_formatter = (
            JsonValueFormatter() if value_formatter is None else value_formatter
        )

    def format(self, record: logging.LogRecord) -> str:
        buf = io.StringIO()
        encode(event_from_record(record), buf, self._value_formatter)
        return buf.getvalue()


class ConsoleEventFormatter(logging.Formatter):
    """stdlib formatter rendering the message template for humans."""

    def format(self, record: logging.LogRecord) -> str:
        return render_console_line(event_from_record(record))


class EventLineRenderer:
    """structlog processor: event dict → eventline JSON line. Must be last."""

    def __init__(self, value_formatter: ValueFormatter | None = None) -> None:
        self._value_formatter = (
            JsonValueFormatter() if value_formatter is None else value_formatter
        )

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        buf = io.StringIO()
        encode(event_from_event_dict(event_dict, method_name), buf, self._value_formatter)
        return buf.getvalue()


class ConsoleEventRenderer:
    """structlog processor: event dict → human-readable line. Must be last."""

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        return render_console_line(event_from_event_dict(event_dict, method_name))


# ---------------------------------------------------------------------------
# Formatter strategies
# ---------------------------------------------------------------------------


def _structlog_processors() -> list[Any]:
    """Processors a structlog call runs before the handler renders it."""
    import structlog

    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


class StructlogFormatter:
    """structlog pipeline, with plain stdlib records encoded from the LogRecord.

    structlog calls stop at wrap_for_formatter and are rendered by a
    ProcessorFormatter. Records from logging.getLogger() keep their raw
    template and args, so they go through the stdlib formatter instead of
    ProcessorFormatter's getMessage() path.
    """

    def setup(self, config: EventLineConfig) -> logging.Formatter:
        import structlog

        if config.log_format == "console":
            renderer: Any = ConsoleEventRenderer()
        else:
            renderer = EventLineRenderer(config.value_formatter())

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *_structlog_processors(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            cache_logger_on_first_use=True,
        )
        structured = structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
        return _SplitFormatter(structured, StdlibFormatter().setup(config))

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        import structlog

        return structlog.get_logger(name, **kwargs)


class _SplitFormatter(logging.Formatter):
    """Sends structlog records (event dict in record.msg) to one formatter, the rest to another."""

    def __init__(self, structured: logging.Formatter, foreign: logging.Formatter) -> None:
        super().__init__()
        self.structured = structured
        self.foreign = foreign

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            return self.structured.format(record)
        return self.foreign.format(record)


class StdlibFormatter:
    """No structlog at runtime; records are encoded straight from LogRecord."""

    def setup(self, config: EventLineConfig) -> logging.Formatter:
        if config.log_format == "console":
            return ConsoleEventFormatter()
        return EventLineFormatter(config.value_formatter())

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        return _StructuredStdlibLogger(logging.getLogger(name))


class _StructuredStdlibLogger:
    """Stdlib logger wrapper whose methods take template properties as kwargs.

    The kwargs ride on the LogRecord as `_structured`; event_from_record()
    merges them into the event's properties.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, level: int, event: str, exc_info: Any = None, **properties: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if exc_info is True:
            exc_info = sys.exc_info()
        elif isinstance(exc_info, BaseException):
            exc_info = (type(exc_info), exc_info, exc_info.__traceback__)
        record = self._logger.makeRecord(
            self._logger.name, level, "(unknown)", 0, event, (), exc_info or None
        )
        record._structured = properties  # type: ignore[attr-defined]
        self._logger.handle(record)

    debug = functools.partialmethod(log, logging.DEBUG)
    info = functools.partialmethod(log, logging.INFO)
    warning = functools.partialmethod(log, logging.WARNING)
    error = functools.partialmethod(log, logging.ERROR)
    critical = functools.partialmethod(log, logging.CRITICAL)

    def exception(self, event: str, **properties: Any) -> None:
        properties.setdefault("exc_info", True)
        self.log(logging.ERROR, event, **properties)


# ---------------------------------------------------------------------------
# Destination strategies
# ---------------------------------------------------------------------------


class StreamDestination:
    """Write to sys.stderr or sys.stdout, looked up when the handler is made."""

    def __init__(self, stream_name: str = "stderr") -> None:
        self._stream_name = stream_name

    def _stream(self) -> TextIO:
        return getattr(sys, self._stream_name)

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.StreamHandler(self._stream())
        handler.setFormatter(formatter)
        return handler

    def shutdown(self) -> None:
        """Streams belong to the process; nothing to close."""


class JsonlFileDestination:
    """Append one encoded event per line to a file."""

    def __init__(self, path: str | Path = DEFAULT_JSONL_PATH) -> None:
        self.path = Path(path)
        self._handler: logging.FileHandler | None = None

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
        self._handler.setFormatter(formatter)
        return self._handler

    def shutdown(self) -> None:
        if self._handler is None:
            return
        self._handler.close()
        self._handler = None


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------

FormatterFactory = Callable[["EventLineConfig"], LogFormatter]
DestinationFactory = Callable[["EventLineConfig"], LogDestination]

_FORMATTERS: dict[str, FormatterFactory] = {
    "structlog": lambda config: StructlogFormatter(),
    "stdlib": lambda config: StdlibFormatter(),
}

_DESTINATIONS: dict[str, DestinationFactory] = {
    "stderr": lambda config: StreamDestination("stderr"),
    "stdout": lambda config: StreamDestination("stdout"),
    "jsonl": lambda config: JsonlFileDestination(config.jsonl_path or DEFAULT_JSONL_PATH),
}


def register_formatter(name: str, factory: FormatterFactory) -> None:
    """Make `factory(config)` available as EVENTLINE_LOG_FORMATTER=name."""
    _FORMATTERS[name] = factory


def register_destination(name: str, factory: DestinationFactory) -> None:
    """Make `factory(config)` available as EVENTLINE_LOG_DESTINATION=name."""
    _DESTINATIONS[name] = factory


def _lookup(registry: dict[str, Any], name: str, kind: str) -> Any:
    try:
        return registry[name]
    except KeyError:
        known = ", ".join(sorted(registry))
        raise ValueError(
            f"Unknown log {kind}: {name!r} (known: {known}; add one with register_{kind}())"
        ) from None


# ---------------------------------------------------------------------------
# Setup and teardown
# ---------------------------------------------------------------------------

_active_formatter: LogFormatter | None = None
_active_destination: LogDestination | None = None


def _root_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _detach_managed_handlers() -> None:
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _MANAGED_ATTR, False)]:
        root.removeHandler(handler)


def setup_logging(config: EventLineConfig) -> None:
    """Install the configured formatter and destination on the root logger.

    Calling it again replaces the previous eventline handler. Handlers
    installed by anything else (pytest's caplog, an embedding app) are kept.

    Raises:
        ValueError: If the formatter or destination name is not registered.
    """
    global _active_formatter, _active_destination

    make_formatter = _lookup(_FORMATTERS, config.log_formatter, "formatter")
    make_destination = _lookup(_DESTINATIONS, config.log_destination, "destination")

    formatter = make_formatter(config)
    destination = make_destination(config)
    handler = destination.create_handler(formatter.setup(config))
    setattr(handler, _MANAGED_ATTR, True)

    if _active_destination is not None:
        _active_destination.shutdown()
    _detach_managed_handlers()

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(_root_level(config.log_level))

    _active_formatter = formatter
    _active_destination = destination


def get_logger(name: str = "", **kwargs: Any) -> Any:
    """Logger for `name` from the active formatter.

    Before setup_logging() this is a plain stdlib-backed logger, so library
    code can take its logger at import time.
    """
    if _active_formatter is None:
        return _StructuredStdlibLogger(logging.getLogger(name))
    return _active_formatter.get_logger(name, **kwargs)


def shutdown_logging() -> None:
    """Close the active destination and remove its handler from the root logger."""
    global _active_formatter, _active_destination
    if _active_destination is not None:
        _active_destination.shutdown()
    _detach_managed_handlers()
    _active_formatter = None
    _active_destination = None
