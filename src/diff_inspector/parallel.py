"""
Bounded worker pool for per-table data comparison.

Tables are independent: completion order is not preserved, results are
keyed by table so callers can restore their own order. Each worker must
hold its own database connections.
"""

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, TimeoutError
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

from diff_inspector.errors import DatabaseConnectionError
from diff_inspector.utils.metrics import PARALLEL_TABLE_TIME
from diff_inspector.utils.tracing import trace_operation

logger = logging.getLogger(__name__)


class ParallelReconciler:
    """
    Runs ``reconcile_func(table=..., **kwargs)`` for many tables at once.

    A failure in one table is recorded in ``errors`` and does not stop the
    others. A ``DatabaseConnectionError`` is fatal: pending tables are
    cancelled and the error is re-raised once the pool has shut down.
    """

    def __init__(self, max_workers: int = 4, timeout_per_table: int = 3600):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self.timeout_per_table = timeout_per_table

    def reconcile_tables(
        self,
        tables: list[str],
        reconcile_func: Callable,
        **reconcile_kwargs,
    ) -> dict[str, Any]:
        """
        Reconcile ``tables`` concurrently.

        Returns:
            {
                'total_tables': int,
                'successful': int,
                'failed': int,
                'timeout': int,
                'results': {table: return value},
                'errors': [{'table', 'error', 'type'}],
                'duration_seconds': float,
                'timestamp': str (ISO format),
                'max_workers': int
            }

        Raises:
            DatabaseConnectionError: If any worker lost its connection
        """
        with trace_operation(
            "parallel_reconcile_tables",
            kind=trace.SpanKind.INTERNAL,
            table_count=len(tables),
            max_workers=self.max_workers,
        ):
            start_time = datetime.now(UTC)
            results: dict[str, Any] = {
                "total_tables": len(tables),
                "successful": 0,
                "failed": 0,
                "timeout": 0,
                "results": {},
                "errors": [],
                "max_workers": self.max_workers,
            }

            if not tables:
                logger.warning("No tables to reconcile")
                results["duration_seconds"] = 0
                results["timestamp"] = datetime.now(UTC).isoformat()
                return results

            logger.info(
                f"Starting parallel comparison of {len(tables)} tables "
                f"with {self.max_workers} workers"
            )

            fatal_error: DatabaseConnectionError | None = None
            executor = ThreadPoolExecutor(max_workers=self.max_workers)
            try:
                futures = [
                    (
                        table,
                        executor.submit(self._run_one, table, reconcile_func, **reconcile_kwargs),
                    )
                    for table in tables
                ]

                for table, future in futures:
                    try:
                        results["results"][table] = future.result(timeout=self.timeout_per_table)
                        results["successful"] += 1
                    except TimeoutError:
                        results["timeout"] += 1
                        results["errors"].append({
                            "table": table,
                            "error": f"Timeout after {self.timeout_per_table}s",
                            "type": "TimeoutError",
                        })
                        logger.error(f"Table {table} timed out after {self.timeout_per_table}s")
                    except DatabaseConnectionError as e:
                        fatal_error = e
                        logger.error(f"Connection lost while comparing {table}: {e}")
                        break
                    except Exception as e:
                        results["failed"] += 1
                        results["errors"].append({
                            "table": table,
                            "error": str(e),
                            "type": type(e).__name__,
                        })
                        logger.error(f"Table {table} failed: {e}", exc_info=True)
            finally:
                executor.shutdown(wait=True, cancel_futures=fatal_error is not None)

            if fatal_error is not None:
                raise fatal_error

            end_time = datetime.now(UTC)
            results["duration_seconds"] = (end_time - start_time).total_seconds()
            results["timestamp"] = end_time.isoformat()

            logger.info(
                f"Parallel comparison complete: "
                f"{results['successful']} successful, "
                f"{results['failed']} failed, "
                f"{results['timeout']} timeout "
                f"out of {results['total_tables']} tables "
                f"in {results['duration_seconds']:.2f}s"
            )
            return results

    def _run_one(self, table: str, reconcile_func: Callable, **kwargs) -> Any:
        with trace_operation("parallel_compare_table", table=table):
            start = time.time()
            result = reconcile_func(table=table, **kwargs)
            PARALLEL_TABLE_TIME.labels(table=table).observe(time.time() - start)
            return result
