"""Tests for JSON string escaping and the JSON value formatter."""

from __future__ import annotations

import datetime as dt
import io
import json
import uuid
from decimal import Decimal
from enum import Enum, IntEnum

import pytest
from hypothesis import given
from hypothesis import strategies as st

from eventline.errors import FormattingError
from eventline.json_values import (
    JsonValueFormatter,
    ValueFormatter,
    quote_json_string,
    write_quoted_json_string,
)
from eventline.values import (
    DictionaryValue,
    ScalarValue,
    SequenceValue,
    StructureValue,
)


class Color(Enum):
    RED = "r"


class Priority(IntEnum):
    HIGH = 1


def _json(value, type_tag_key="$type") -> str:
    return JsonValueFormatter(type_tag_key=type_tag_key).to_json(value)


# =============================================================================
# String escaping
# =============================================================================


class TestQuotedJsonString:
    def test_plain_text(self):
        assert quote_json_string("hello") == '"hello"'

    def test_empty(self):
        assert quote_json_string("") == '""'

    @pytest.mark.parametrize(
        "char,escaped",
        [
            ('"', '\\"'),
            ("\\", "\\\\"),
            ("\b", "\\b"),
            ("\f", "\\f"),
            ("\n", "\\n"),
            ("\r", "\\r"),
            ("\t", "\\t"),
        ],
    )
    def test_short_escapes(self, char, escaped):
        assert quote_json_string(f"a{char}b") == f'"a{escaped}b"'

    def test_other_control_chars_use_upper_hex(self):
        assert quote_json_string("\x00\x01\x1f") == '"\\u0000\\u0001\\u001F"'

    def test_non_ascii_passes_through(self):
        assert quote_json_string("héllo ✓ 日本") == '"héllo ✓ 日本"'

    def test_del_and_slash_not_escaped(self):
        assert quote_json_string("a/b\x7f") == '"a/b\x7f"'

    def test_writes_to_any_sink(self):
        chunks: list[str] = []

        class ListSink:
            def write(self, s):
                chunks.append(s)

        write_quoted_json_string("ab\ncd", ListSink())
        assert chunks == ['"', "ab", "\\n", "cd", '"']

    @given(st.text())
    def test_round_trips_through_json(self, text):
        assert json.loads(quote_json_string(text)) == text

    @given(st.text())
    def test_never_emits_raw_control_characters(self, text):
        assert not any(ord(c) < 0x20 for c in quote_json_string(text))


# =============================================================================
# Scalars
# =============================================================================


class TestScalars:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "null"),
            (True, "true"),
            (False, "false"),
            (0, "0"),
            (-42, "-42"),
            (10**20, "100000000000000000000"),
            (1.5, "1.5"),
            (1e-7, "1e-07"),
            (Decimal("1.10"), "1.10"),
            ("hi", '"hi"'),
            (Color.RED, '"RED"'),
            (Priority.HIGH, '"HIGH"'),
            (dt.date(2024, 1, 2), '"2024-01-02"'),
            (dt.time(3, 4, 5), '"03:04:05"'),
            (dt.timedelta(seconds=5), '"0:00:05"'),
            (
                dt.datetime(2024, 1, 2, 3, 4, 5, tzinfo=dt.timezone.utc),
                '"2024-01-02T03:04:05+00:00"',
            ),
            (
                uuid.UUID("12345678-1234-5678-1234-567812345678"),
                '"12345678-1234-5678-1234-567812345678"',
            ),
        ],
    )
    def test_scalar(self, value, expected):
        assert _json(ScalarValue(value)) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            (float("nan"), '"NaN"'),
            (float("inf"), '"Infinity"'),
            (float("-inf"), '"-Infinity"'),
            (Decimal("NaN"), '"NaN"'),
            (Decimal("-Infinity"), '"-Infinity"'),
        ],
    )
    def test_non_finite_numbers_are_strings(self, value, expected):
        out = _json(ScalarValue(value))
        assert out == expected
        json.loads(out)

    def test_unsupported_scalar_raises(self):
        with pytest.raises(FormattingError, match="object"):
            _json(ScalarValue(object()))

    def test_bytes_unsupported(self):
        with pytest.raises(FormattingError):
            _json(ScalarValue(b"raw"))


# =============================================================================
# Containers
# =============================================================================


class TestContainers:
    def test_sequence(self):
        value = SequenceValue((ScalarValue(1), ScalarValue("a"), ScalarValue(None)))
        assert _json(value) == '[1,"a",null]'

    def test_empty_sequence(self):
        assert _json(SequenceValue()) == "[]"

    def test_nested_sequence(self):
        inner = SequenceValue((ScalarValue(2),))
        assert _json(SequenceValue((ScalarValue(1), inner))) == "[1,[2]]"

    def test_structure_type_tag_last(self):
        value = StructureValue(
            (("Name", ScalarValue("ada")), ("Age", ScalarValue(36))), type_tag="User"
        )
        assert _json(value) == '{"Name":"ada","Age":36,"$type":"User"}'

    def test_structure_without_tag(self):
        value = StructureValue((("A", ScalarValue(1)),))
        assert _json(value) == '{"A":1}'

    def test_empty_tagged_structure(self):
        assert _json(StructureValue(type_tag="Empty")) == '{"$type":"Empty"}'

    def test_type_tag_key_configurable(self):
        value = StructureValue((("A", ScalarValue(1)),), type_tag="T")
        assert _json(value, type_tag_key="_t") == '{"A":1,"_t":"T"}'

    def test_type_tag_disabled(self):
        value = StructureValue((("A", ScalarValue(1)),), type_tag="T")
        assert _json(value, type_tag_key=None) == '{"A":1}'

    def test_dictionary_keys_stringified(self):
        value = DictionaryValue(
            (
                (ScalarValue("a"), ScalarValue(1)),
                (ScalarValue(2), ScalarValue("b")),
                (ScalarValue(None), ScalarValue(True)),
            )
        )
        assert _json(value) == '{"a":1,"2":"b","null":true}'

    def test_dictionary_never_gets_type_tag(self):
        value = DictionaryValue(((ScalarValue("k"), ScalarValue(1)),))
        assert _json(value) == '{"k":1}'

    def test_deep_nesting_is_valid_json(self):
        value = StructureValue(
            (
                (
                    "Items",
                    SequenceValue(
                        (
                            DictionaryValue(((ScalarValue("x"), ScalarValue(1.25)),)),
                            StructureValue((("B", ScalarValue(False)),), type_tag="Flag"),
                        )
                    ),
                ),
            ),
            type_tag="Order",
        )
        assert json.loads(_json(value)) == {
            "Items": [{"x": 1.25}, {"B": False, "$type": "Flag"}],
            "$type": "Order",
        }

    def test_non_property_value_raises(self):
        with pytest.raises(FormattingError, match="not a property value"):
            JsonValueFormatter().format(42, io.StringIO())  # type: ignore[arg-type]

    def test_error_inside_container_propagates(self):
        value = SequenceValue((ScalarValue(1), ScalarValue(object())))
        with pytest.raises(FormattingError):
            _json(value)


class TestProtocol:
    def test_json_value_formatter_satisfies_protocol(self):
        assert isinstance(JsonValueFormatter(), ValueFormatter)

    def test_shared_instance_is_stateless(self):
        formatter = JsonValueFormatter()
        first = formatter.to_json(SequenceValue((ScalarValue(1),)))
        second = formatter.to_json(SequenceValue((ScalarValue(1),)))
        assert first == second == "[1]"
