"""
Quote-aware scanning of SQL fragments found in dump files.

All splitting follows one rule: a quote span opens on ``'`` or ``"`` and
closes on the same character, a doubled quote character inside a span is an
escaped quote, and separators only count outside quote spans and outside
nested ``()`` / ``[]``.
"""

import re
from decimal import Decimal
from typing import Any, Iterator, Optional

QUOTE_CHARS = ("'", '"')
OPENERS = {"(": ")", "[": "]"}
CLOSERS = {")", "]"}

INTEGER_PATTERN = re.compile(r"^-?\d+$")
DECIMAL_PATTERN = re.compile(r"^-?\d+\.\d+$")
PLAIN_IDENTIFIER_PATTERN = re.compile(r'^(?:"(?:[^"]|"")+"|\w+)$')


def _scan(text: str, start: int = 0) -> Iterator[tuple[int, str, int, bool]]:
    """
    Yield ``(index, char, depth, quoted)`` for each character from ``start``.

    ``depth`` is the bracket depth before the character is applied and
    ``quoted`` is True for characters inside (or delimiting) a quote span.
    """
    depth = 0
    quote_char = None
    i = start
    length = len(text)
    while i < length:
        char = text[i]
        if quote_char is not None:
            if char == quote_char:
                if i + 1 < length and text[i + 1] == quote_char:
                    yield i, char, depth, True
                    yield i + 1, char, depth, True
                    i += 2
                    continue
                quote_char = None
            yield i, char, depth, True
        elif char in QUOTE_CHARS:
            quote_char = char
            yield i, char, depth, True
        else:
            yield i, char, depth, False
            if char in OPENERS:
                depth += 1
            elif char in CLOSERS and depth > 0:
                depth -= 1
        i += 1


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split ``text`` on ``separator`` at depth 0 outside quotes; parts are stripped."""
    parts = []
    current_start = 0
    for index, char, depth, quoted in _scan(text):
        if char == separator and depth == 0 and not quoted:
            parts.append(text[current_start:index].strip())
            current_start = index + 1
    tail = text[current_start:].strip()
    if tail or parts:
        parts.append(tail)
    return parts


def extract_parenthesized(text: str, start: int) -> tuple[str, int]:
    """
    Return the text inside the parenthesis opening at ``text[start]`` and
    the index just past its matching close.

    Raises:
        ValueError: If ``text[start]`` is not ``(`` or the group never closes
    """
    if start >= len(text) or text[start] != "(":
        raise ValueError(f"Expected '(' at position {start}")

    for index, char, depth, quoted in _scan(text, start):
        if char == ")" and depth == 1 and not quoted:
            return text[start + 1:index], index + 1
    raise ValueError("Unbalanced parentheses")


def split_value_groups(values_clause: str) -> list[str]:
    """
    Split a VALUES clause into the inner text of each top-level tuple.

    ``(1, 'a'), (2, 'b')`` gives ``["1, 'a'", "2, 'b'"]``. Scanning stops at
    the first top-level token that is neither a tuple nor a comma, so a
    trailing ``ON CONFLICT (...)`` clause is not mistaken for a row.
    """
    groups = []
    position = 0
    length = len(values_clause)
    while position < length:
        char = values_clause[position]
        if char.isspace() or char == ",":
            position += 1
        elif char == "(":
            inner, position = extract_parenthesized(values_clause, position)
            groups.append(inner)
        else:
            break
    return groups


def split_values(group: str) -> list[str]:
    """Split the inner text of one tuple into raw value tokens."""
    if not group.strip():
        return []
    return split_top_level(group, ",")


def unquote(token: str) -> str:
    """Strip surrounding quotes and collapse doubled quote characters."""
    quote_char = token[0]
    return token[1:-1].replace(quote_char * 2, quote_char)


def is_quoted(token: str) -> bool:
    return len(token) >= 2 and token[0] in QUOTE_CHARS and token[-1] == token[0]


def split_identifiers(text: str) -> list[str]:
    """Split a column list such as ``id, "Name"`` into bare names."""
    return [unquote(part) if is_quoted(part) else part for part in split_top_level(text) if part]


def plain_identifiers(text: str) -> Optional[tuple[str, ...]]:
    """
    Bare names of a column list made only of identifiers, else None.

    >>> plain_identifiers('a, "Mixed Col"')
    ('a', 'Mixed Col')
    >>> plain_identifiers("lower(email)") is None
    True
    """
    parts = split_top_level(text)
    if not parts or not all(PLAIN_IDENTIFIER_PATTERN.match(part) for part in parts):
        return None
    return tuple(unquote(part) if is_quoted(part) else part for part in parts)


def parse_value(token: str) -> Any:
    """
    Convert one raw dump token into a Python value.

    >>> parse_value("NULL") is None
    True
    >>> parse_value("'O''Brien'")
    "O'Brien"
    >>> parse_value("42")
    42
    >>> parse_value("1.50")
    Decimal('1.50')
    """
    token = token.strip()
    upper = token.upper()
    if upper == "NULL":
        return None
    if upper == "TRUE":
        return True
    if upper == "FALSE":
        return False
    if is_quoted(token):
        return unquote(token)
    if INTEGER_PATTERN.match(token):
        return int(token)
    if DECIMAL_PATTERN.match(token):
        return Decimal(token)
    return token
