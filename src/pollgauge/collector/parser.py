"""
Turns the upstream body into an integer.

The upstream answers with a JSON scalar that may or may not be quoted
(`"42"` or `42`), so every double quote is dropped before parsing.
"""

from __future__ import annotations

import re
from typing import Union

from pollgauge.errors import ParseError

# Optional sign, ASCII digits, nothing else. int() alone would also accept
# surrounding whitespace, underscores and non-ASCII digits.
_INT_RE = re.compile(r"[+-]?[0-9]+")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def parse_value(body: Union[bytes, str]) -> int:
    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"failed to parse response: body is not UTF-8 ({e})") from e
    else:
        text = body

    text = text.replace('"', "")

    if not _INT_RE.fullmatch(text):
        raise ParseError(f"failed to parse response: invalid integer {text!r}")

    value = int(text)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ParseError(f"failed to parse response: {text!r} out of range")
    return value
