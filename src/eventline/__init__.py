"""eventline: one structured log event in, one line of JSON out.

Public API:
    encode(event, output, value_formatter)        Write one event as a JSON object
    encode_line(event, output, value_formatter)   Same, plus the newline delimiter
    EventEncoder(value_formatter=None)            Encoder bound to a formatter ($type tags by default)
    JsonValueFormatter(type_tag_key="$type")      Property value → JSON

Model:
    LogEvent, MessageTemplate, Level, ExceptionInfo
    ScalarValue, SequenceValue, StructureValue, DictionaryValue, capture()

Logging (swappable formatter x destination):
    setup_logging(config)   Route stdlib/structlog records through the encoder
    get_logger(name)        Get a logger taking template properties as kwargs
"""

from eventline.config import EventLineConfig
from eventline.encoder import EventEncoder, encode, encode_line
from eventline.errors import (
    EventLineError,
    FormattingError,
    InvalidArgumentError,
    TemplateSyntaxError,
)
from eventline.events import (
    BASELINE_LEVEL,
    Alignment,
    AlignmentDirection,
    ExceptionInfo,
    Level,
    LogEvent,
    MessageTemplate,
    PropertyToken,
    TextToken,
)
from eventline.json_values import (
    JsonValueFormatter,
    TextSink,
    ValueFormatter,
    write_quoted_json_string,
)
from eventline.logging import get_logger, setup_logging, shutdown_logging
from eventline.parsing import parse_template
from eventline.rendering import render_message
from eventline.values import (
    CaptureHint,
    DictionaryValue,
    PropertyValue,
    ScalarValue,
    SequenceValue,
    StructureValue,
    capture,
)

__version__ = "0.1.0"

__all__ = [
    # Encoding
    "encode",
    "encode_line",
    "EventEncoder",
    "JsonValueFormatter",
    "ValueFormatter",
    "TextSink",
    "write_quoted_json_string",
    # Model
    "LogEvent",
    "MessageTemplate",
    "TextToken",
    "PropertyToken",
    "Alignment",
    "AlignmentDirection",
    "Level",
    "BASELINE_LEVEL",
    "ExceptionInfo",
    "parse_template",
    "render_message",
    # Values
    "PropertyValue",
    "ScalarValue",
    "SequenceValue",
    "StructureValue",
    "DictionaryValue",
    "CaptureHint",
    "capture",
    # Errors
    "EventLineError",
    "InvalidArgumentError",
    "FormattingError",
    "TemplateSyntaxError",
    # Logging
    "EventLineConfig",
    "setup_logging",
    "get_logger",
    "shutdown_logging",
]
