"""Tests for message template parsing."""

from __future__ import annotations

import pytest

from eventline.errors import TemplateSyntaxError
from eventline.events import (
    Alignment,
    AlignmentDirection,
    MessageTemplate,
    PropertyToken,
    TextToken,
)
from eventline.parsing import parse_template, parse_template_strict
from eventline.values import CaptureHint


class TestTextTokens:
    def test_plain_text_is_one_token(self):
        assert parse_template("User logged in").tokens == (TextToken("User logged in"),)

    def test_empty_template(self):
        assert parse_template("").tokens == ()

    def test_doubled_braces_unescaped(self):
        assert parse_template("a {{b}} c").tokens == (TextToken("a {b} c"),)

    def test_lone_closing_brace_is_text(self):
        assert parse_template("a } b").tokens == (TextToken("a } b"),)

    def test_template_text_kept_raw(self):
        assert parse_template("a {{b}}").text == "a {{b}}"


class TestPropertyTokens:
    def test_simple_property(self):
        tokens = parse_template("Hello {Name}!").tokens
        assert tokens == (
            TextToken("Hello "),
            PropertyToken(property_name="Name", raw_text="{Name}"),
            TextToken("!"),
        )

    def test_format(self):
        (_, token) = parse_template("Retry {Count:000}").tokens
        assert token.property_name == "Count"
        assert token.format == "000"
        assert token.raw_text == "{Count:000}"

    def test_format_may_contain_colons_and_commas(self):
        (token,) = parse_template("{When:HH:mm,ss}").tokens
        assert token.format == "HH:mm,ss"
        assert token.alignment is None

    def test_right_alignment(self):
        (token,) = parse_template("{Name,10}").tokens
        assert token.alignment == Alignment(AlignmentDirection.RIGHT, 10)

    def test_left_alignment_with_format(self):
        (token,) = parse_template("{Name,-8:l}").tokens
        assert token.alignment == Alignment(AlignmentDirection.LEFT, 8)
        assert token.format == "l"

    def test_capture_hints(self):
        destructure, _, stringify = parse_template("{@User} {$Id}").tokens
        assert destructure.hint == CaptureHint.DESTRUCTURE
        assert destructure.property_name == "User"
        assert stringify.hint == CaptureHint.STRINGIFY
        assert stringify.property_name == "Id"

    def test_positional(self):
        (token,) = parse_template("{0}").tokens
        assert token.is_positional
        assert not parse_template("{Name}").tokens[0].is_positional

    def test_underscores_and_unicode_letters(self):
        (token,) = parse_template("{user_név2}").tokens
        assert token.property_name == "user_név2"

    def test_adjacent_tokens(self):
        tokens = parse_template("{A}{B:0}").tokens
        assert [t.property_name for t in tokens] == ["A", "B"]

    def test_property_tokens_helper(self):
        template = parse_template("a {X} b {Y:0}")
        assert [t.property_name for t in template.property_tokens] == ["X", "Y"]


class TestMalformed:
    @pytest.mark.parametrize(
        "text",
        ["{}", "{bad name}", "{Name:}", "{Name,x}", "{Name,}", "{@}", "{Name,-}", "{a-b}"],
    )
    def test_invalid_token_becomes_text(self, text):
        assert parse_template(text).tokens == (TextToken(text),)

    def test_unterminated_token(self):
        assert parse_template("Hello {Name").tokens == (
            TextToken("Hello "),
            TextToken("{Name"),
        )

    def test_open_brace_before_close(self):
        assert parse_template("{a{b}").tokens == (
            TextToken("{a"),
            PropertyToken(property_name="b", raw_text="{b}"),
        )


class TestParseApi:
    def test_results_cached(self):
        assert parse_template("cached {X}") is parse_template("cached {X}")

    def test_message_template_parse_delegates(self):
        assert MessageTemplate.parse("a {B}") == parse_template("a {B}")

    def test_strict_accepts_valid(self):
        template = parse_template_strict("Hi {Name,-5:l} {{ok}}")
        assert template == parse_template("Hi {Name,-5:l} {{ok}}")

    @pytest.mark.parametrize("text", ["{bad name}", "Hello {Name", "{a{b}"])
    def test_strict_rejects_malformed(self, text):
        with pytest.raises(TemplateSyntaxError, match="Malformed property token"):
            parse_template_strict(text)

    def test_strict_error_reports_position(self):
        with pytest.raises(TemplateSyntaxError) as info:
            parse_template_strict("ok {bad name}")
        assert info.value.position == 3
        assert info.value.raw_text == "{bad name}"
