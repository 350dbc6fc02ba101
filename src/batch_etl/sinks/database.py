"""
Database sink over any DB-API 2.0 connection.

Each chunk is written with one executemany() inside its own transaction:
commit when the chunk is written, rollback when anything fails.
"""

import contextlib
import logging
from typing import Any, Callable, Iterator

from ..core.exceptions import SinkError
from .base import AbstractSink, ColumnMap


logger = logging.getLogger(__name__)


class DatabaseSink(AbstractSink):
    """
    Insert records into a table, one transaction per chunk.

    The connection is opened on the first chunk and reused until close().
    A failing chunk is rolled back, so the table never holds part of a chunk;
    chunks committed earlier stay committed.

    Attributes:
        table: Destination table name
        column_map: Dictionary mapping column names to extractors from a record

    Example:
        >>> sink = DatabaseSink(
        ...     connect=lambda: sqlite3.connect("pay.db"),
        ...     table="pay2",
        ...     column_map={
        ...         "amount": lambda p: p.amount,
        ...         "tx_name": lambda p: p.tx_name,
        ...         "tx_date_time": lambda p: p.tx_date_time.isoformat(),
        ...     },
        ... )
        >>> with sink.transaction():
        ...     sink.write([pay2_a, pay2_b])
    """

    def __init__(
        self,
        connect: Callable[[], Any],
        table: str,
        column_map: ColumnMap,
    ):
        """
        Initialize the database sink.

        Args:
            connect: Zero-argument callable returning a DB-API connection
            table: Destination table name
            column_map: Column name -> extractor; column order fixes parameter order

        Raises:
            ValueError: If table or column_map is empty
        """
        if not table:
            raise ValueError("table cannot be empty")
        if not column_map:
            raise ValueError("column_map cannot be empty. Provide at least one column.")

        self.connect = connect
        self.table = table
        self.column_map = column_map
        self._conn = None
        self._in_transaction = False

    @property
    def columns(self) -> list[str]:
        return list(self.column_map.keys())

    def _build_statement(self, columns: list[str]) -> str:
        """Return the parameterized statement executed once per row."""
        column_list = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        return f"INSERT INTO {self.table} ({column_list}) VALUES ({placeholders})"

    def _connection(self) -> Any:
        if self._conn is None:
            try:
                self._conn = self.connect()
            except Exception as e:
                raise SinkError(position=None, original_error=e) from e
        return self._conn

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Commit the chunk written inside the block, or roll it back on error.

        Raises:
            SinkError: If commit fails (after rolling back)
        """
        conn = self._connection()
        self._in_transaction = True
        try:
            yield
        except BaseException:
            self._rollback(conn)
            raise
        else:
            try:
                conn.commit()
            except Exception as e:
                self._rollback(conn)
                raise SinkError(position=None, original_error=e) from e
        finally:
            self._in_transaction = False

    def _rollback(self, conn: Any) -> None:
        try:
            conn.rollback()
        except Exception as e:
            logger.warning(f"Rollback failed for table {self.table}: {e}")

    def write(self, items: list[Any]) -> None:
        """
        Write one chunk of records.

        Outside transaction() the chunk is committed (or rolled back) on its own.

        Args:
            items: Records to write

        Raises:
            SinkError: If extraction fails for a record or the statement fails
        """
        if not items:
            return

        if not self._in_transaction:
            with self.transaction():
                self._write_rows(items)
        else:
            self._write_rows(items)

    def _write_rows(self, items: list[Any]) -> None:
        # Extract all rows first (fail fast if column_map has issues)
        columns = self.columns
        rows = []
        for index, item in enumerate(items):
            row = self._extract_row(item, position=index)
            rows.append([row[col] for col in columns])

        statement = self._build_statement(columns)
        conn = self._connection()
        cursor = conn.cursor()
        try:
            cursor.executemany(statement, rows)
        except Exception as e:
            raise SinkError(
                position=None,
                original_error=Exception(
                    f"Failed to write {len(rows)} rows to table {self.table}: "
                    f"{type(e).__name__}: {e}"
                ),
            ) from e
        finally:
            cursor.close()

        logger.debug(f"Wrote {len(rows)} rows to {self.table}")

    def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            try:
                conn.close()
            except Exception as e:
                logger.warning(f"Error closing connection for table {self.table}: {e}")
