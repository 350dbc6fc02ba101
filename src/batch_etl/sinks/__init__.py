"""
Item sink implementations.

Sinks receive the processed records of each committed chunk.
"""

from batch_etl.sinks.base import AbstractSink
from batch_etl.sinks.database import DatabaseSink
from batch_etl.sinks.log_sink import LogSink

# Lazy import for SQL Server to avoid pyodbc dependency when not needed
def __getattr__(name):
    if name == "SQLServerSink":
        from batch_etl.sinks.sql_server import SQLServerSink
        return SQLServerSink
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "AbstractSink",
    "DatabaseSink",
    "LogSink",
    "SQLServerSink",
]
