"""
Prometheus metrics for schema and data comparisons.

Metrics are module-level singletons registered on the default registry.
``get_or_create_metric`` makes repeated imports (tests, reloads) safe.

Usage:
    from diff_inspector.utils.metrics import TABLES_COMPARED, start_metrics_server

    start_metrics_server(9091)
    TABLES_COMPARED.labels(status="complete").inc()
"""

import logging
from typing import Callable, TypeVar

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric or return the one already registered under ``metric_name``.

    Args:
        metric_factory: Callable that creates the metric (e.g. lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


TABLES_COMPARED = get_or_create_metric(
    lambda: Counter(
        "pdi_tables_compared_total",
        "Tables whose data was compared",
        ["status"],  # complete, skipped, failed
    ),
    "pdi_tables_compared_total",
)

MISSING_RECORDS = get_or_create_metric(
    lambda: Counter(
        "pdi_missing_records_total",
        "Records found on one side only",
        ["direction"],  # missing_in_target, missing_in_source
    ),
    "pdi_missing_records_total",
)

BATCH_RETRIES = get_or_create_metric(
    lambda: Counter(
        "pdi_batch_retries_total",
        "Batch fetch retries during live extraction",
        ["table"],
    ),
    "pdi_batch_retries_total",
)

BATCH_BISECTIONS = get_or_create_metric(
    lambda: Counter(
        "pdi_batch_size_reductions_total",
        "Times the batch size was halved after retries were exhausted",
        ["table"],
    ),
    "pdi_batch_size_reductions_total",
)

DUMP_STATEMENTS_SKIPPED = get_or_create_metric(
    lambda: Counter(
        "pdi_dump_statements_skipped_total",
        "Malformed dump statements skipped by the parser",
    ),
    "pdi_dump_statements_skipped_total",
)

EXTRACTION_DURATION = get_or_create_metric(
    lambda: Histogram(
        "pdi_extraction_seconds",
        "Time to extract all records of one table from a live side",
        ["table"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600],
    ),
    "pdi_extraction_seconds",
)


PARALLEL_TABLE_TIME = get_or_create_metric(
    lambda: Histogram(
        "pdi_parallel_table_seconds",
        "Time to compare one table inside the worker pool",
        ["table"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600],
    ),
    "pdi_parallel_table_seconds",
)


def start_metrics_server(port: int, registry: CollectorRegistry = REGISTRY) -> None:
    """Expose /metrics over HTTP on ``port``."""
    start_http_server(port, registry=registry)
    logger.info(f"Metrics server started on port {port}")
