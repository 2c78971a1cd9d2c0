"""Message template parser.

Grammar (Serilog-compatible):

    template  := (text | property)*
    text      := any chars; `{{` and `}}` stand for literal braces
    property  := `{` hint? name (`,` alignment)? (`:` format)? `}`
    hint      := `@` (destructure) | `$` (stringify)
    name      := [letters, digits, `_`]+
    alignment := `-`? digits
    format    := any chars except `{` and `}`, non-empty

Malformed or unterminated property tokens are kept as literal text, so
parsing never fails. parse_template_strict() raises instead.
"""

from __future__ import annotations

import functools

from eventline.errors import TemplateSyntaxError
from eventline.events import (
    Alignment,
    AlignmentDirection,
    MessageTemplate,
    MessageTemplateToken,
    PropertyToken,
    TextToken,
)
from eventline.values import CaptureHint


@functools.lru_cache(maxsize=1024)
def parse_template(text: str) -> MessageTemplate:
    """Parse template text into a MessageTemplate. Results are cached."""
    return MessageTemplate(text=text, tokens=tuple(_tokenize(text, strict=False)))


def parse_template_strict(text: str) -> MessageTemplate:
    """Parse template text, raising TemplateSyntaxError on malformed property tokens."""
    return MessageTemplate(text=text, tokens=tuple(_tokenize(text, strict=True)))


def _tokenize(text: str, strict: bool) -> list[MessageTemplateToken]:
    tokens: list[MessageTemplateToken] = []
    pos = 0
    while pos < len(text):
        if text[pos] == "{" and not text.startswith("{{", pos):
            token, pos = _parse_property_token(text, pos, strict)
        else:
            token, pos = _parse_text_token(text, pos)
        tokens.append(token)
    return tokens


def _parse_text_token(text: str, start: int) -> tuple[TextToken, int]:
    chars: list[str] = []
    pos = start
    while pos < len(text):
        c = text[pos]
        if c == "{":
            if text.startswith("{{", pos):
                chars.append("{")
                pos += 2
                continue
            break
        if c == "}" and text.startswith("}}", pos):
            chars.append("}")
            pos += 2
            continue
        chars.append(c)
        pos += 1
    return TextToken("".join(chars)), pos


def _parse_property_token(
    text: str, start: int, strict: bool
) -> tuple[MessageTemplateToken, int]:
    pos = start + 1
    while pos < len(text) and text[pos] not in "{}":
        pos += 1

    if pos == len(text):
        # Unterminated: the remainder is literal text.
        if strict:
            raise TemplateSyntaxError(text[start:], start)
        return TextToken(text[start:]), len(text)

    if text[pos] == "{":
        # Another opening brace before the close: literal up to it.
        if strict:
            raise TemplateSyntaxError(text[start:pos], start)
        return TextToken(text[start:pos]), pos

    raw = text[start : pos + 1]
    token = _property_token_from_raw(raw)
    if token is None:
        if strict:
            raise TemplateSyntaxError(raw, start)
        return TextToken(raw), pos + 1
    return token, pos + 1


def _property_token_from_raw(raw: str) -> PropertyToken | None:
    content = raw[1:-1]
    if not content:
        return None

    hint = CaptureHint.DEFAULT
    if content[0] in "@$":
        hint = CaptureHint(content[0])
        content = content[1:]

    format_at = content.find(":")
    align_at = content.find(",")
    if format_at != -1 and (align_at == -1 or format_at < align_at):
        # A comma after the colon belongs to the format.
        align_at = -1

    name_end = len(content)
    for idx in (align_at, format_at):
        if idx != -1:
            name_end = min(name_end, idx)
    name = content[:name_end]
    if not name or not all(c.isalnum() or c == "_" for c in name):
        return None

    alignment = None
    if align_at != -1:
        align_end = format_at if format_at != -1 else len(content)
        alignment = _parse_alignment(content[align_at + 1 : align_end])
        if alignment is None:
            return None

    fmt = None
    if format_at != -1:
        fmt = content[format_at + 1 :]
        if not fmt:
            return None

    return PropertyToken(
        property_name=name,
        raw_text=raw,
        format=fmt,
        alignment=alignment,
        hint=hint,
    )


def _parse_alignment(text: str) -> Alignment | None:
    direction = AlignmentDirection.RIGHT
    if text.startswith("-"):
        direction = AlignmentDirection.LEFT
        text = text[1:]
    if not text or not (text.isascii() and text.isdigit()):
        return None
    return Alignment(direction=direction, width=int(text))
