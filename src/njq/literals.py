"""Nix string literals and JSON backslash escapes.

``to_literal`` turns arbitrary text into a double-quoted Nix string that
evaluates back to exactly that text. ``unescape_json_text`` reverses
JSON escapes for the raw output mode.
"""

from __future__ import annotations

import string

from njq.errors import InvalidCodepoint, InvalidUnicodeEscape

_LITERAL_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

_JSON_UNESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_HEX_DIGITS = frozenset(string.hexdigits)


def to_literal(text: str) -> str:
    """Quote *text* as a Nix string literal.

    ``${`` is escaped as well so that payload data containing it is never
    interpolated.
    """
    out = ['"']
    for i, ch in enumerate(text):
        if ch in _LITERAL_ESCAPES:
            out.append(_LITERAL_ESCAPES[ch])
        elif ch == "$" and text.startswith("{", i + 1):
            out.append("\\$")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def strip_quotes(text: str) -> str:
    """Drop one pair of surrounding double quotes, if present."""
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text


def _read_hex4(text: str, start: int) -> int:
    digits = text[start:start + 4]
    if len(digits) < 4 or not all(c in _HEX_DIGITS for c in digits):
        raise InvalidUnicodeEscape(
            f"invalid unicode escape at offset {start - 2}: {text[start - 2:start + 4]!r}"
        )
    return int(digits, 16)


def unescape_json_text(text: str) -> str:
    """Replace JSON backslash escapes in *text* with the characters they name.

    Unknown escapes yield the escaped character and a trailing lone
    backslash is kept as is. A high surrogate directly followed by an
    escaped low surrogate is combined into one character; any other
    surrogate raises InvalidCodepoint.

    Raises:
        InvalidUnicodeEscape: ``\\u`` without four hexadecimal digits.
        InvalidCodepoint: ``\\u`` naming an unpaired surrogate.
    """
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch != "\\" or i + 1 == n:
            out.append(ch)
            i += 1
            continue

        escaped = text[i + 1]
        i += 2
        if escaped != "u":
            out.append(_JSON_UNESCAPES.get(escaped, escaped))
            continue

        code = _read_hex4(text, i)
        i += 4
        if 0xD800 <= code <= 0xDBFF and text.startswith("\\u", i):
            low = _read_hex4(text, i + 2)
            if 0xDC00 <= low <= 0xDFFF:
                code = 0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)
                i += 6
        if 0xD800 <= code <= 0xDFFF:
            raise InvalidCodepoint(f"invalid code point U+{code:04X}")
        out.append(chr(code))
    return "".join(out)
