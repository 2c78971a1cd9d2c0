"""eventline configuration, env-var driven.

All settings have safe defaults. Zero config required.

Logging architecture:
    LogFormatter (how records become lines) × LogDestination (where they go)

    Formatter: EVENTLINE_LOG_FORMATTER=structlog (default) | stdlib
    Destination: EVENTLINE_LOG_DESTINATION=stderr (default) | stdout | jsonl
    Renderer: EVENTLINE_LOG_FORMAT=json (default) | console

Value encoding:
    EVENTLINE_TYPE_TAG_KEY=$type (default); set it empty to drop type tags.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from eventline.json_values import DEFAULT_TYPE_TAG_KEY, JsonValueFormatter


def _type_tag_from_env() -> str | None:
    raw = os.environ.get("EVENTLINE_TYPE_TAG_KEY", DEFAULT_TYPE_TAG_KEY)
    return raw or None


@dataclass
class EventLineConfig:
    """eventline configuration, env-var driven."""

    # --- Logging: formatter × destination ---
    log_formatter: str = field(
        default_factory=lambda: os.environ.get("EVENTLINE_LOG_FORMATTER", "structlog")
    )  # "structlog" | "stdlib"

    log_destination: str = field(
        default_factory=lambda: os.environ.get("EVENTLINE_LOG_DESTINATION", "stderr")
    )  # "stderr" | "stdout" | "jsonl"

    log_level: str = field(
        default_factory=lambda: os.environ.get("EVENTLINE_LOG_LEVEL", "INFO")
    )

    log_format: str = field(
        default_factory=lambda: os.environ.get("EVENTLINE_LOG_FORMAT", "json")
    )  # "json" | "console" (dev-friendly renderer)

    # JSONL file destination
    jsonl_path: str | None = field(
        default_factory=lambda: os.environ.get("EVENTLINE_LOG_PATH")
    )

    # --- Value encoding ---
    type_tag_key: str | None = field(default_factory=_type_tag_from_env)

    def value_formatter(self) -> JsonValueFormatter:
        return JsonValueFormatter(type_tag_key=self.type_tag_key)
