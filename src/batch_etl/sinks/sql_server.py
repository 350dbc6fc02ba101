"""
SQL Server sink implementation.

Upserts each chunk into a SQL Server table with MERGE, one transaction per chunk.
Supports environment variable fallback for connection strings.
"""

from typing import Any, Optional

from ..sources.sql_server import resolve_connection_string
from .base import ColumnMap
from .database import DatabaseSink


class SQLServerSink(DatabaseSink):
    """
    SQL Server sink using MERGE for upsert operations.

    Rows whose merge_keys already exist are updated, others are inserted, so
    re-running a chunk after a restart does not duplicate rows.

    Attributes:
        target_table: Fully qualified table name (e.g., "dbo.pay2")
        merge_keys: List of column names that uniquely identify a row
        column_map: Dictionary mapping column names to extractors from a record
        connection_string: ODBC connection string (reads from SQL_SERVER_CONN env var if None)

    Example:
        >>> sink = SQLServerSink(
        ...     target_table="dbo.pay_summary",
        ...     merge_keys=["tx_name"],
        ...     column_map={
        ...         "tx_name": lambda p: p.tx_name,
        ...         "amount": lambda p: p.amount,
        ...     },
        ... )

    Generated MERGE SQL:
        ```sql
        MERGE dbo.pay_summary AS target
        USING (SELECT ?, ?) AS source (tx_name, amount)
        ON target.tx_name = source.tx_name
        WHEN MATCHED THEN
            UPDATE SET
                amount = source.amount
        WHEN NOT MATCHED THEN
            INSERT (tx_name, amount)
            VALUES (source.tx_name, source.amount);
        ```

    Environment Variables:
        SQL_SERVER_CONN: Default ODBC connection string
    """

    def __init__(
        self,
        target_table: str,
        merge_keys: list[str],
        column_map: ColumnMap,
        connection_string: Optional[str] = None,
    ):
        """
        Initialize the SQL Server sink.

        Args:
            target_table: Fully qualified table name
            merge_keys: List of column names that uniquely identify a row
            column_map: Dictionary mapping column names to record extractors
            connection_string: ODBC connection string (optional, defaults to env var)

        Raises:
            ValueError: If no connection string is available, or if merge_keys
                        is empty or names columns not in column_map
        """
        if not merge_keys:
            raise ValueError("merge_keys cannot be empty. Provide at least one key column.")

        for key in merge_keys:
            if key not in column_map:
                raise ValueError(
                    f"Merge key '{key}' not found in column_map. "
                    f"All merge keys must have extractors in column_map."
                )

        self.connection_string = resolve_connection_string(connection_string)
        self.merge_keys = merge_keys
        super().__init__(connect=self._connect, table=target_table, column_map=column_map)

    @property
    def target_table(self) -> str:
        return self.table

    def _connect(self) -> Any:
        import pyodbc

        conn = pyodbc.connect(self.connection_string)
        conn.autocommit = False
        return conn

    def _build_statement(self, columns: list[str]) -> str:
        """
        Generate a T-SQL MERGE statement for upserting one row.

        Matches on merge_keys, updates the non-key columns when matched and
        inserts the row when not.

        Args:
            columns: Column names in the order they'll be passed as parameters

        Returns:
            T-SQL MERGE statement with ? placeholders for pyodbc parameters
        """
        placeholders = ", ".join("?" for _ in columns)
        column_list = ", ".join(columns)

        on_conditions = " AND ".join(
            f"target.{key} = source.{key}" for key in self.merge_keys
        )

        non_key_columns = [col for col in columns if col not in self.merge_keys]
        if non_key_columns:
            update_set = ", ".join(f"{col} = source.{col}" for col in non_key_columns)
            update_clause = f"""WHEN MATCHED THEN
            UPDATE SET
                {update_set}
        """
        else:
            # All columns are keys: nothing to update
            update_clause = ""

        insert_values = ", ".join(f"source.{col}" for col in columns)

        return f"""MERGE {self.table} AS target
        USING (SELECT {placeholders}) AS source ({column_list})
        ON {on_conditions}
        {update_clause}WHEN NOT MATCHED THEN
            INSERT ({column_list})
            VALUES ({insert_values});"""
