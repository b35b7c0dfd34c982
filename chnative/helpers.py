"""Query inspection and literal quoting helpers."""

from __future__ import annotations

import math
import re
from datetime import datetime
from decimal import Decimal

_PARAM_RE = re.compile(r"[0-9A-Za-z_]+")
_SELECT_RE = re.compile(r"[\t\n\f\r ]+SELECT[\t\n\f\r ]+")
_KEYWORD_CHARS = frozenset("=<>(,[%")
_BLANKS = frozenset(" \t\n")


class _WordMatcher:
    """Recognises a keyword, case-insensitively, one character at a time."""

    __slots__ = ("_pattern", "_position")

    def __init__(self, word: str) -> None:
        self._pattern = word.upper()
        self._position = 0

    def match(self, char: str) -> bool:
        if self._pattern[self._position] == char.upper():
            if self._position == len(self._pattern) - 1:
                self._position = 0
                return True
            self._position += 1
        else:
            self._position = 0
        return False


def num_input(query: str) -> int:
    """Count the placeholders (``?`` and distinct ``@name``) in a query."""
    count = 0
    named: set[str] = set()
    in_quote = in_gravis = escape = keyword = in_between = False
    like, limit, offset, between, in_, and_, from_, join, sub_select = (
        _WordMatcher(word)
        for word in (
            "like", "limit", "offset", "between", "in", "and", "from", "join", "select",
        )
    )
    keyword_matchers = (limit, offset, like, in_, from_, join, sub_select)

    position = 0
    length = len(query)
    while position < length:
        char = query[position]
        position += 1
        if escape:
            escape = False
            continue
        if char == "\\":
            if in_gravis or in_quote:
                escape = True
        elif char == "'":
            if not in_gravis:
                in_quote = not in_quote
        elif char == "`":
            if not in_quote:
                in_gravis = not in_gravis
        if in_quote or in_gravis:
            continue

        if char == "?" and keyword:
            count += 1
        elif char == "@":
            match = _PARAM_RE.match(query, position)
            if match:
                position = match.end()
                name = match.group()
                if name not in named:
                    named.add(name)
                    count += 1
        elif char in _KEYWORD_CHARS:
            keyword = True
        elif any(matcher.match(char) for matcher in keyword_matchers):
            keyword = True
        elif between.match(char):
            keyword = True
            in_between = True
        elif in_between and and_.match(char):
            keyword = True
            in_between = False
        else:
            keyword = keyword and char in _BLANKS
    return count


def is_insert(query: str) -> bool:
    """Tell whether a query is an ``INSERT INTO ... VALUES`` statement."""
    fields = query.split()
    if len(fields) > 2:
        return (
            fields[0].upper() == "INSERT"
            and fields[1].upper() == "INTO"
            and not _SELECT_RE.search(query.upper())
        )
    return False


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    mantissa = "".join(map(str, digits))
    point = len(mantissa) + exponent
    prefix = "-" if sign else ""
    exp = point - 1
    if exp < -4 or exp >= 6:
        body = mantissa[0] + ("." + mantissa[1:] if len(mantissa) > 1 else "")
        return f"{prefix}{body}e{'-' if exp < 0 else '+'}{abs(exp):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{mantissa}"
    if point >= len(mantissa):
        return prefix + mantissa + "0" * (point - len(mantissa))
    return f"{prefix}{mantissa[:point]}.{mantissa[point:]}"


def quote(value: object) -> str:
    """Render a value as an SQL literal."""
    if isinstance(value, (list, tuple, bytes, bytearray)):
        return ", ".join(quote(item) for item in value)
    if isinstance(value, str):
        return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"
    if isinstance(value, datetime):
        return format_time(value)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def format_time(value: datetime) -> str:
    """Render a moment as a ``toDateTime`` call on its Unix seconds."""
    return f"toDateTime({math.floor(value.timestamp())})"