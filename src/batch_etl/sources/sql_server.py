"""
SQL Server item sources.

Cursor and paging sources preconfigured for SQL Server through pyodbc.
pyodbc is imported when the first connection is opened.
Supports environment variable fallback for connection strings.
"""

import os
from typing import Any, Optional, Sequence

from .database import CursorSource, PagingSource, RowMapper


def resolve_connection_string(connection_string: Optional[str] = None) -> str:
    """
    Return the given ODBC connection string, or SQL_SERVER_CONN from the environment.

    Raises:
        ValueError: If neither is set
    """
    if connection_string is None:
        connection_string = os.getenv("SQL_SERVER_CONN")
        if connection_string is None:
            raise ValueError(
                "No connection string provided. Either pass connection_string parameter "
                "or set SQL_SERVER_CONN environment variable."
            )
    return connection_string


class SQLServerCursorSource(CursorSource):
    """
    SQL Server source streaming rows through a single pyodbc cursor.

    Attributes:
        connection_string: ODBC connection string (reads from SQL_SERVER_CONN env var if None)

    Example:
        >>> source = SQLServerCursorSource(
        ...     sql_file="sql/get_pays.sql",
        ...     fetch_size=10,
        ...     row_mapper=model_row_mapper(Pay),
        ...     name="jdbcCursorItemReader",
        ... )

    Environment Variables:
        SQL_SERVER_CONN: Default ODBC connection string
            Example: "Driver={ODBC Driver 18 for SQL Server};Server=...;Database=...;UID=...;PWD=..."
    """

    def __init__(
        self,
        sql: Optional[str] = None,
        sql_file: Optional[str] = None,
        parameters: Sequence[Any] = (),
        fetch_size: int = 10,
        row_mapper: Optional[RowMapper] = None,
        name: str = "sqlServerCursorSource",
        connection_string: Optional[str] = None,
        save_state: bool = True,
        max_item_count: Optional[int] = None,
    ):
        self.connection_string = resolve_connection_string(connection_string)
        super().__init__(
            connect=self._connect,
            sql=sql,
            sql_file=sql_file,
            parameters=parameters,
            fetch_size=fetch_size,
            row_mapper=row_mapper,
            name=name,
            save_state=save_state,
            max_item_count=max_item_count,
        )

    def _connect(self) -> Any:
        import pyodbc

        return pyodbc.connect(self.connection_string)


class SQLServerPagingSource(PagingSource):
    """
    SQL Server source reading OFFSET/FETCH pages through pyodbc.

    SQL Server requires an ORDER BY for OFFSET/FETCH, so the query must have one.

    Example:
        >>> source = SQLServerPagingSource(
        ...     sql="SELECT id, amount, tx_name, tx_date_time FROM dbo.pay ORDER BY id",
        ...     page_size=10,
        ...     row_mapper=model_row_mapper(Pay),
        ...     name="customItemReader",
        ... )

    Environment Variables:
        SQL_SERVER_CONN: Default ODBC connection string
    """

    def __init__(
        self,
        sql: Optional[str] = None,
        sql_file: Optional[str] = None,
        parameters: Sequence[Any] = (),
        page_size: int = 10,
        row_mapper: Optional[RowMapper] = None,
        name: str = "sqlServerPagingSource",
        connection_string: Optional[str] = None,
        save_state: bool = True,
        max_item_count: Optional[int] = None,
    ):
        self.connection_string = resolve_connection_string(connection_string)
        super().__init__(
            connect=self._connect,
            sql=sql,
            sql_file=sql_file,
            parameters=parameters,
            page_size=page_size,
            dialect="mssql",
            row_mapper=row_mapper,
            name=name,
            save_state=save_state,
            max_item_count=max_item_count,
        )

    def _connect(self) -> Any:
        import pyodbc

        return pyodbc.connect(self.connection_string)
