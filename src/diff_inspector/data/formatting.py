"""
Typed value to SQL literal conversion for generated INSERT statements.
"""

import json
import math
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

INTERVAL_UNITS = ("years", "months", "days", "hours", "minutes", "seconds")


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _interval_literal(fields: dict[str, Any]) -> str:
    parts = [f"{fields[unit]} {unit}" for unit in INTERVAL_UNITS if fields.get(unit)]
    if not parts:
        return "NULL"
    return f"'{' '.join(parts)}'::interval"


def _timedelta_fields(value: timedelta) -> dict[str, Any]:
    hours, remainder = divmod(value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if value.microseconds:
        seconds = seconds + value.microseconds / 1_000_000
    return {"days": value.days, "hours": hours, "minutes": minutes, "seconds": seconds}


def format_value(value: Any) -> str:
    """
    Render a value as a PostgreSQL literal.

    >>> format_value(None)
    'NULL'
    >>> format_value("O'Brien")
    "'O''Brien'"
    >>> format_value({"hours": 5, "minutes": 30})
    "'5 hours 30 minutes'::interval"
    >>> format_value({})
    'NULL'
    """
    if value is None:
        return "NULL"

    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"

    if isinstance(value, str):
        return _quote(value)

    if isinstance(value, (datetime, date, time)):
        return f"'{value.isoformat()}'"

    if isinstance(value, timedelta):
        return _interval_literal(_timedelta_fields(value))

    if isinstance(value, dict):
        if not value:
            return "NULL"
        if any(unit in value for unit in INTERVAL_UNITS):
            return _interval_literal(value)
        return _quote(json.dumps(value, separators=(",", ":"), default=str))

    if isinstance(value, (list, tuple)):
        return _quote(json.dumps(list(value), separators=(",", ":"), default=str))

    if isinstance(value, UUID):
        return f"'{value}'"

    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"'\\x{bytes(value).hex()}'::bytea"

    if isinstance(value, float) and not math.isfinite(value):
        return _quote("NaN" if math.isnan(value) else ("Infinity" if value > 0 else "-Infinity"))

    if isinstance(value, Decimal) and not value.is_finite():
        return _quote(str(value))

    return str(value)
