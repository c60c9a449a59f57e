"""Plain-text pg_dump parsing."""

from .parser import DEFAULT_MARKER, DumpParser, DumpParseResult
from .tokenizer import parse_value, split_value_groups, split_values

__all__ = [
    "DumpParser",
    "DumpParseResult",
    "DEFAULT_MARKER",
    "parse_value",
    "split_value_groups",
    "split_values",
]
