"""Scalar formatting with .NET-style format specifiers.

Message templates are shared with .NET producers, so `{Count:000}`,
`{Price:N2}` and `{When:yyyy-MM-dd}` mean what they mean there. Anything that
isn't recognised is handed to Python's format() so `{Ratio:.3f}` also works.
A specifier that can't be applied renders the value unformatted; rendering a
log line never fails because of a bad format string.
"""

from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable

_CUSTOM_NUMERIC = re.compile(r"[0#,]*(?:\.[0#]*)?")
_STANDARD_NUMERIC = re.compile(r"([DdFfNnEePpXx])(\d{0,2})")
_DATE_TOKEN = re.compile(
    r"yyyy|yy|MMMM|MMM|MM|M|dddd|ddd|dd|d|HH|H|hh|h|mm|m|ss|s|f{1,7}|tt|zzz"
    r"|'[^']*'|\"[^\"]*\"|\\.|."
)

# .NET standard date/time patterns (invariant culture).
_STANDARD_DATE = {
    "d": "MM/dd/yyyy",
    "D": "dddd, dd MMMM yyyy",
    "t": "HH:mm",
    "T": "HH:mm:ss",
    "g": "MM/dd/yyyy HH:mm",
    "G": "MM/dd/yyyy HH:mm:ss",
    "s": "yyyy-MM-ddTHH:mm:ss",
}


def format_utc_timestamp(timestamp: dt.datetime) -> str:
    """ISO-8601 in UTC with seven fractional digits, e.g. 2024-01-02T03:04:05.1234560Z.

    Naive datetimes are taken to be UTC already.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=dt.timezone.utc)
    utc = timestamp.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="microseconds") + "0Z"


def default_text(value: Any) -> str:
    """Text for a scalar rendered without a format specifier."""
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    return str(value)


def format_scalar(value: Any, spec: str | None) -> str:
    """Format a non-string scalar according to `spec`."""
    if not spec or isinstance(value, (bool, Enum)):
        return default_text(value)
    try:
        if isinstance(value, (int, float, Decimal)):
            return _format_number(value, spec)
        if isinstance(value, (dt.datetime, dt.date, dt.time)):
            return _format_temporal(value, spec)
        return format(value, spec)
    except (ValueError, TypeError, AttributeError, InvalidOperation, OverflowError):
        return default_text(value)


# =============================================================================
# Numbers
# =============================================================================


def _format_number(value: int | float | Decimal, spec: str) -> str:
    if any(c in spec for c in "0#") and _CUSTOM_NUMERIC.fullmatch(spec):
        return _format_custom_numeric(value, spec)
    standard = _STANDARD_NUMERIC.fullmatch(spec)
    if standard:
        return _format_standard_numeric(value, standard.group(1), standard.group(2))
    return format(value, spec)


def _format_custom_numeric(value: int | float | Decimal, pattern: str) -> str:
    int_pattern, _, frac_pattern = pattern.partition(".")
    min_int_digits = int_pattern.count("0")
    required_frac = frac_pattern.count("0")
    optional_frac = frac_pattern.count("#")

    text = f"{abs(_exact(value)):.{required_frac + optional_frac}f}"
    int_digits, _, frac_digits = text.partition(".")
    if optional_frac:
        frac_digits = frac_digits.rstrip("0").ljust(required_frac, "0")

    int_digits = int_digits.lstrip("0").rjust(min_int_digits, "0")
    if "," in int_pattern and int_digits:
        int_digits = _group_thousands(int_digits)

    result = int_digits + ("." + frac_digits if frac_digits else "")
    if value < 0 and any(c not in "0.," for c in result):
        result = "-" + result
    return result or "0"


def _exact(value: int | float | Decimal) -> float | Decimal:
    """Ints go through Decimal so float format codes keep every digit."""
    return Decimal(value) if isinstance(value, int) else value


def _group_thousands(digits: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.append(digits[-3:])
        digits = digits[:-3]
    groups.append(digits)
    return ",".join(reversed(groups))


def _format_standard_numeric(
    value: int | float | Decimal, kind: str, precision_text: str
) -> str:
    precision = int(precision_text) if precision_text else None
    upper = kind.upper()

    if upper in "DX":
        if not isinstance(value, int):
            raise ValueError(f"{kind} format requires an integer")
        width = precision or 0
        if upper == "D":
            digits = str(abs(value)).zfill(width)
            return "-" + digits if value < 0 else digits
        # Negative values print as their Int64 two's complement.
        unsigned = value & 0xFFFFFFFFFFFFFFFF if value < 0 else value
        hex_digits = format(unsigned, "x").zfill(width)
        return hex_digits.upper() if kind == "X" else hex_digits

    value = _exact(value)
    places = 2 if precision is None else precision
    if upper == "F":
        return f"{value:.{places}f}"
    if upper == "N":
        return f"{value:,.{places}f}"
    if upper == "P":
        return f"{value * 100:,.{places}f} %"

    # E: mantissa with six default decimals and an exponent of at least three digits.
    places = 6 if precision is None else precision
    mantissa, _, exponent = f"{value:.{places}e}".partition("e")
    sign, exp_digits = exponent[0], exponent[1:]
    return f"{mantissa}{kind}{sign}{exp_digits.zfill(3)}"


# =============================================================================
# Dates and times
# =============================================================================


def _two(n: int) -> str:
    return f"{n:02d}"


_DATE_PARTS: dict[str, Callable[[Any], str]] = {
    "yyyy": lambda v: f"{v.year:04d}",
    "yy": lambda v: _two(v.year % 100),
    "MMMM": lambda v: v.strftime("%B"),
    "MMM": lambda v: v.strftime("%b"),
    "MM": lambda v: _two(v.month),
    "M": lambda v: str(v.month),
    "dddd": lambda v: v.strftime("%A"),
    "ddd": lambda v: v.strftime("%a"),
    "dd": lambda v: _two(v.day),
    "d": lambda v: str(v.day),
    "HH": lambda v: _two(v.hour),
    "H": lambda v: str(v.hour),
    "hh": lambda v: _two(v.hour % 12 or 12),
    "h": lambda v: str(v.hour % 12 or 12),
    "mm": lambda v: _two(v.minute),
    "m": lambda v: str(v.minute),
    "ss": lambda v: _two(v.second),
    "s": lambda v: str(v.second),
    "tt": lambda v: "AM" if v.hour < 12 else "PM",
    "zzz": lambda v: _utc_offset(v),
}


def _utc_offset(value: dt.datetime | dt.time) -> str:
    offset = value.utcoffset()
    if offset is None:
        raise ValueError("value has no UTC offset")
    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def _format_temporal(value: dt.datetime | dt.date | dt.time, spec: str) -> str:
    if "%" in spec:
        return value.strftime(spec)
    if spec in ("o", "O"):
        return _round_trip(value)
    if spec == "u":
        if isinstance(value, dt.datetime) and value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc)
        return _render_date_pattern(value, "yyyy-MM-dd HH:mm:ss") + "Z"
    return _render_date_pattern(value, _STANDARD_DATE.get(spec, spec))


def _round_trip(value: dt.datetime | dt.date | dt.time) -> str:
    if not isinstance(value, (dt.datetime, dt.time)):
        return value.isoformat()
    text = value.replace(tzinfo=None).isoformat(timespec="microseconds") + "0"
    if value.tzinfo is not None:
        text += _utc_offset(value)
    return text


def _render_date_pattern(value: Any, pattern: str) -> str:
    out: list[str] = []
    for match in _DATE_TOKEN.finditer(pattern):
        token = match.group(0)
        part = _DATE_PARTS.get(token)
        if part is not None:
            out.append(part(value))
        elif token.startswith("f"):
            out.append(f"{value.microsecond:06d}0"[: len(token)])
        elif token[0] in "'\"" and len(token) > 1:
            out.append(token[1:-1])
        elif token[0] == "\\" and len(token) == 2:
            out.append(token[1])
        else:
            out.append(token)
    return "".join(out)
