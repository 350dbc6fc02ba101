"""
Item source implementations.

Sources feed records, one at a time, into chunk steps.
"""

from batch_etl.sources.base import AbstractSource
from batch_etl.sources.database import CursorSource, PagingSource, load_sql, model_row_mapper
from batch_etl.sources.memory import ListSource

# Lazy import for SQL Server to avoid pyodbc dependency when not needed
def __getattr__(name):
    if name == "SQLServerCursorSource":
        from batch_etl.sources.sql_server import SQLServerCursorSource
        return SQLServerCursorSource
    elif name == "SQLServerPagingSource":
        from batch_etl.sources.sql_server import SQLServerPagingSource
        return SQLServerPagingSource
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "AbstractSource",
    "CursorSource",
    "PagingSource",
    "ListSource",
    "SQLServerCursorSource",
    "SQLServerPagingSource",
    "load_sql",
    "model_row_mapper",
]
