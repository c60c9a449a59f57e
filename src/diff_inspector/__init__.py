"""
pg-diff-inspector: schema and data reconciliation between two PostgreSQL
sides, each a live database or a plain-SQL dump file.
"""

from diff_inspector.engine import DiffInspector
from diff_inspector.sources import SourceSpec

__version__ = "1.0.0"

__all__ = ["DiffInspector", "SourceSpec", "__version__"]
