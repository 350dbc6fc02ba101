"""
Relational item sources over any DB-API 2.0 connection.

Two retrieval strategies produce the same record sequence:

- CursorSource holds one cursor open for the whole step and pulls rows in
  fetch_size batches with fetchmany().
- PagingSource re-issues the query with a LIMIT/OFFSET (or OFFSET/FETCH) clause
  and buffers one page at a time.

Connections come from a zero-argument `connect` callable, so the same classes
work with pyodbc, sqlite3, psycopg or any other DB-API driver.
"""

from collections import deque
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from pydantic import BaseModel

from ..core.exceptions import SourceError
from .base import AbstractSource


Connect = Callable[[], Any]
RowMapper = Callable[[dict[str, Any]], Any]

# Paging clauses per SQL dialect, with the order their parameters bind in
PAGING_CLAUSES: dict[str, tuple[str, tuple[str, str]]] = {
    "ansi": ("LIMIT ? OFFSET ?", ("limit", "offset")),
    "mssql": ("OFFSET ? ROWS FETCH NEXT ? ROWS ONLY", ("offset", "limit")),
}


def model_row_mapper(model: type[BaseModel]) -> RowMapper:
    """
    Build a row mapper that validates each row into a pydantic model.

    Column names are matched to field names, so the query must alias columns
    to the model's fields.

    Example:
        >>> source = CursorSource(
        ...     connect=lambda: sqlite3.connect("pay.db"),
        ...     sql="SELECT id, amount, tx_name, tx_date_time FROM pay",
        ...     row_mapper=model_row_mapper(Pay),
        ... )
    """

    def map_row(row: dict[str, Any]) -> BaseModel:
        return model.model_validate(row)

    map_row.__name__ = f"map_{model.__name__}"
    return map_row


def load_sql(sql: Optional[str] = None, sql_file: Optional[str] = None) -> str:
    """
    Return query text given inline or as a path to a .sql file.

    Raises:
        ValueError: If neither or both are given, or the query is empty
        FileNotFoundError: If sql_file does not exist
    """
    if (sql is None) == (sql_file is None):
        raise ValueError("Provide exactly one of sql or sql_file")

    if sql_file is not None:
        sql_path = Path(sql_file)
        if not sql_path.exists():
            raise FileNotFoundError(
                f"SQL file not found: {sql_file}. "
                f"Provide an absolute path or a path relative to the current working directory."
            )
        sql = sql_path.read_text(encoding="utf-8")

    sql = sql.strip().rstrip(";").strip()
    if not sql:
        raise ValueError("SQL query cannot be empty")
    return sql


class _DatabaseSource(AbstractSource):
    """Shared connection handling and row mapping for database sources."""

    def __init__(
        self,
        connect: Connect,
        sql: Optional[str] = None,
        sql_file: Optional[str] = None,
        parameters: Sequence[Any] = (),
        row_mapper: Optional[RowMapper] = None,
        name: str = "databaseSource",
        save_state: bool = True,
        max_item_count: Optional[int] = None,
    ):
        super().__init__(name=name, save_state=save_state, max_item_count=max_item_count)
        self.connect = connect
        self.sql = load_sql(sql, sql_file)
        self.parameters = tuple(parameters)
        self.row_mapper = row_mapper
        self._conn = None

    def _open_connection(self) -> None:
        try:
            self._conn = self.connect()
        except Exception as e:
            raise SourceError(
                f"Failed to connect for source '{self.name}': {type(e).__name__}: {e}"
            ) from e

    def _close_connection(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            try:
                conn.close()
            except Exception as e:
                self.logger.warning(f"Error closing connection for source '{self.name}': {e}")

    def _execute(self, cursor: Any, sql: str, parameters: tuple) -> None:
        try:
            if parameters:
                cursor.execute(sql, parameters)
            else:
                cursor.execute(sql)
        except Exception as e:
            raise SourceError(
                f"Failed to execute query for source '{self.name}': {type(e).__name__}: {e}"
            ) from e

        if cursor.description is None:
            raise SourceError(
                f"Query for source '{self.name}' did not return any columns. "
                f"Ensure the query is a SELECT statement."
            )

    def _map_row(self, columns: list[str], row: Sequence[Any]) -> Any:
        row_dict = dict(zip(columns, row))
        if self.row_mapper is None:
            return row_dict

        try:
            item = self.row_mapper(row_dict)
        except Exception as e:
            raise SourceError(
                f"Failed to map row at position {self.position} for source '{self.name}': "
                f"{type(e).__name__}: {e}"
            ) from e

        if item is None:
            raise SourceError(
                f"Row mapper for source '{self.name}' returned None at position {self.position}"
            )
        return item


class CursorSource(_DatabaseSource):
    """
    Stream rows through one cursor held open for the whole step.

    fetch_size sets cursor.arraysize and the batch size of each fetchmany()
    round-trip; callers still see one record per read().

    Example:
        >>> source = CursorSource(
        ...     connect=lambda: sqlite3.connect("pay.db"),
        ...     sql="SELECT id, amount, tx_name, tx_date_time FROM pay",
        ...     fetch_size=10,
        ...     row_mapper=model_row_mapper(Pay),
        ...     name="jdbcCursorItemReader",
        ... )
        >>> for pay in source:
        ...     print(pay.amount)
    """

    def __init__(
        self,
        connect: Connect,
        sql: Optional[str] = None,
        sql_file: Optional[str] = None,
        parameters: Sequence[Any] = (),
        fetch_size: int = 10,
        row_mapper: Optional[RowMapper] = None,
        name: str = "cursorSource",
        save_state: bool = True,
        max_item_count: Optional[int] = None,
    ):
        """
        Initialize the cursor source.

        Args:
            connect: Zero-argument callable returning a DB-API connection
            sql: Query text (exactly one of sql / sql_file)
            sql_file: Path to a .sql file holding the query
            parameters: Positional query parameters (qmark style)
            fetch_size: Rows buffered per round-trip
            row_mapper: Maps a {column: value} dict to a record (default: the dict)
            name: Identifier for logs and execution context keys
            save_state: Record the read position for restarts
            max_item_count: Stop after this many records

        Raises:
            ValueError: If fetch_size < 1 or the query is missing
        """
        super().__init__(
            connect=connect,
            sql=sql,
            sql_file=sql_file,
            parameters=parameters,
            row_mapper=row_mapper,
            name=name,
            save_state=save_state,
            max_item_count=max_item_count,
        )
        if fetch_size < 1:
            raise ValueError(f"fetch_size must be >= 1, got {fetch_size}")
        self.fetch_size = fetch_size
        self._cursor = None
        self._columns: list[str] = []
        self._buffer: deque = deque()

    def _do_open(self) -> None:
        self._open_connection()
        try:
            self._cursor = self._conn.cursor()
            self._cursor.arraysize = self.fetch_size
            self._execute(self._cursor, self.sql, self.parameters)
        except SourceError:
            self._do_close()
            raise
        except Exception as e:
            self._do_close()
            raise SourceError(
                f"Failed to open cursor for source '{self.name}': {type(e).__name__}: {e}"
            ) from e

        self._columns = [col[0] for col in self._cursor.description]
        self._buffer.clear()
        self.logger.debug(f"Cursor opened for source '{self.name}' (fetch_size={self.fetch_size})")

    def _do_read(self) -> Optional[Any]:
        if not self._buffer:
            try:
                rows = self._cursor.fetchmany(self.fetch_size)
            except Exception as e:
                raise SourceError(
                    f"Failed to advance cursor for source '{self.name}' after "
                    f"{self.position} rows: {type(e).__name__}: {e}"
                ) from e
            if not rows:
                return None
            self._buffer.extend(rows)

        return self._map_row(self._columns, self._buffer.popleft())

    def _do_close(self) -> None:
        cursor, self._cursor = self._cursor, None
        self._buffer.clear()
        if cursor is not None:
            try:
                cursor.close()
            except Exception as e:
                self.logger.warning(f"Error closing cursor for source '{self.name}': {e}")
        self._close_connection()


class PagingSource(_DatabaseSource):
    """
    Read rows page by page with bounded range queries.

    Each page runs the query with a paging clause appended; read() drains the
    current page before fetching the next. A page shorter than page_size is the
    last one. The query must have a deterministic ORDER BY, otherwise rows can
    be skipped or repeated across pages.

    Example:
        >>> source = PagingSource(
        ...     connect=lambda: sqlite3.connect("pay.db"),
        ...     sql="SELECT id, amount, tx_name, tx_date_time FROM pay ORDER BY id",
        ...     page_size=10,
        ...     row_mapper=model_row_mapper(Pay),
        ...     name="customItemReader",
        ... )
    """

    def __init__(
        self,
        connect: Connect,
        sql: Optional[str] = None,
        sql_file: Optional[str] = None,
        parameters: Sequence[Any] = (),
        page_size: int = 10,
        dialect: str = "ansi",
        row_mapper: Optional[RowMapper] = None,
        name: str = "pagingSource",
        save_state: bool = True,
        max_item_count: Optional[int] = None,
    ):
        """
        Initialize the paging source.

        Args:
            connect: Zero-argument callable returning a DB-API connection
            sql: Query text without paging clause (exactly one of sql / sql_file)
            sql_file: Path to a .sql file holding the query
            parameters: Positional query parameters; paging parameters follow them
            page_size: Rows per page query
            dialect: "ansi" (LIMIT/OFFSET) or "mssql" (OFFSET/FETCH)
            row_mapper: Maps a {column: value} dict to a record (default: the dict)
            name: Identifier for logs and execution context keys
            save_state: Record the read position for restarts
            max_item_count: Stop after this many records

        Raises:
            ValueError: If page_size < 1, the dialect is unknown, or the query is missing
        """
        super().__init__(
            connect=connect,
            sql=sql,
            sql_file=sql_file,
            parameters=parameters,
            row_mapper=row_mapper,
            name=name,
            save_state=save_state,
            max_item_count=max_item_count,
        )
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        if dialect not in PAGING_CLAUSES:
            raise ValueError(
                f"Invalid dialect: {dialect!r}. Must be one of: {', '.join(PAGING_CLAUSES)}"
            )

        self.page_size = page_size
        self.dialect = dialect
        self.page = 0
        self._buffer: deque = deque()
        self._columns: list[str] = []
        self._last_page_read = False

        if "order by" not in self.sql.lower():
            self.logger.warning(
                f"Paging query for source '{self.name}' has no ORDER BY; "
                f"page boundaries may skip or repeat rows"
            )

    @property
    def paged_sql(self) -> str:
        clause, _ = PAGING_CLAUSES[self.dialect]
        return f"{self.sql} {clause}"

    def _paging_parameters(self, offset: int) -> tuple:
        _, order = PAGING_CLAUSES[self.dialect]
        values = {"limit": self.page_size, "offset": offset}
        return self.parameters + tuple(values[name] for name in order)

    def _do_open(self) -> None:
        self._open_connection()
        self.page = 0
        self._buffer.clear()
        self._last_page_read = False

    def _fetch_page(self) -> None:
        offset = self.page * self.page_size
        try:
            cursor = self._conn.cursor()
        except Exception as e:
            raise SourceError(
                f"Failed to open cursor for source '{self.name}': {type(e).__name__}: {e}"
            ) from e

        try:
            self._execute(cursor, self.paged_sql, self._paging_parameters(offset))
            self._columns = [col[0] for col in cursor.description]
            try:
                rows = cursor.fetchall()
            except Exception as e:
                raise SourceError(
                    f"Failed to fetch page {self.page} for source '{self.name}': "
                    f"{type(e).__name__}: {e}"
                ) from e
        finally:
            cursor.close()

        self.logger.debug(
            f"Source '{self.name}' fetched page {self.page} (offset={offset}, rows={len(rows)})"
        )
        self.page += 1
        if len(rows) < self.page_size:
            self._last_page_read = True
        self._buffer.extend(rows)

    def _do_read(self) -> Optional[Any]:
        if not self._buffer:
            if self._last_page_read:
                return None
            self._fetch_page()
            if not self._buffer:
                return None

        return self._map_row(self._columns, self._buffer.popleft())

    def _do_close(self) -> None:
        self._buffer.clear()
        self._close_connection()

    def _jump_to(self, count: int) -> None:
        # Start at the page holding record `count`, then skip within it
        self.page = count // self.page_size
        self.position = self.page * self.page_size
        super()._jump_to(count)
