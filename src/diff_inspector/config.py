"""Settings read from the environment (after an optional ``.env`` load)."""

import os
from dataclasses import dataclass
from typing import Optional


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if number < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {number}")
    return number


@dataclass
class InspectorSettings:
    source_url: Optional[str] = None
    target_url: Optional[str] = None
    schema: str = "public"
    output_dir: str = "output"
    batch_size: int = 10000
    max_retries: int = 3
    workers: int = 1

    @classmethod
    def from_env(cls) -> "InspectorSettings":
        """
        Environment variables:
            SOURCE_DB_URL, TARGET_DB_URL: Connection URLs
            DEFAULT_SCHEMA: Schema to compare (default: public)
            OUTPUT_DIR: Directory for generated files (default: output)
            BATCH_SIZE: Rows per extraction batch (default: 10000)
            MAX_RETRIES: Retries per failed batch (default: 3)
            WORKERS: Tables compared concurrently (default: 1)
        """
        return cls(
            source_url=os.getenv("SOURCE_DB_URL") or None,
            target_url=os.getenv("TARGET_DB_URL") or None,
            schema=os.getenv("DEFAULT_SCHEMA") or "public",
            output_dir=os.getenv("OUTPUT_DIR") or "output",
            batch_size=_int_env("BATCH_SIZE", 10000),
            max_retries=_int_env("MAX_RETRIES", 3, minimum=0),
            workers=_int_env("WORKERS", 1),
        )
