"""
Tests for item sinks.

Validates:
- LogSink output through the logging module
- DatabaseSink inserts, commits and per-chunk rollback
- Column map extraction errors
"""

import logging
import sqlite3

import pytest

from batch_etl.core.exceptions import SinkError
from batch_etl.sinks.base import AbstractSink
from batch_etl.sinks.database import DatabaseSink
from batch_etl.sinks.log_sink import LogSink


@pytest.fixture
def target_db(connect):
    """Connect callable for a database with an empty `pay2` table."""
    conn = connect()
    conn.execute("CREATE TABLE pay2 (amount INTEGER NOT NULL, tx_name TEXT NOT NULL)")
    conn.commit()
    conn.close()
    return connect


@pytest.fixture
def pay2_sink(target_db):
    sink = DatabaseSink(
        connect=target_db,
        table="pay2",
        column_map={
            "amount": lambda item: item["amount"],
            "tx_name": lambda item: item["tx_name"],
        },
    )
    yield sink
    sink.close()


def rows_in(connect):
    conn = connect()
    try:
        return conn.execute("SELECT amount, tx_name FROM pay2 ORDER BY rowid").fetchall()
    finally:
        conn.close()


def test_log_sink_logs_each_item(caplog):
    """Test that every record becomes one log line in order."""
    sink = LogSink(logger="tests.log_sink", message="Current Pay=%s")

    with caplog.at_level(logging.INFO, logger="tests.log_sink"):
        sink.write(["pay1", "pay2"])

    messages = [r.getMessage() for r in caplog.records if r.name == "tests.log_sink"]
    assert messages == ["Current Pay=pay1", "Current Pay=pay2"]
    assert sink.lines_written == 2


def test_log_sink_accepts_empty_chunk(caplog):
    sink = LogSink(logger="tests.log_sink")

    with caplog.at_level(logging.INFO, logger="tests.log_sink"):
        sink.write([])

    assert [r for r in caplog.records if r.name == "tests.log_sink"] == []


def test_log_sink_with_column_map(caplog):
    """Test that a column_map logs the extracted row instead of the record."""
    sink = LogSink(
        logger=logging.getLogger("tests.log_sink"),
        level=logging.WARNING,
        column_map={"amount": lambda item: item["amount"]},
    )

    with caplog.at_level(logging.WARNING, logger="tests.log_sink"):
        sink.write([{"amount": 10, "ignored": True}])

    record = [r for r in caplog.records if r.name == "tests.log_sink"][0]
    assert record.levelno == logging.WARNING
    assert record.getMessage() == "Current item={'amount': 10}"


def test_extractor_failure_raises_sink_error_with_position():
    """Test that a failing column extractor reports the record's chunk index."""
    sink = LogSink(column_map={"amount": lambda item: item["amount"]})

    with pytest.raises(SinkError) as exc_info:
        sink.write([{"amount": 1}, {"wrong": 2}])

    assert exc_info.value.position == 1
    assert "Column 'amount' extractor failed" in str(exc_info.value)


def test_default_transaction_is_noop():
    """Test that the base transaction() simply runs the block."""

    class ListSink(AbstractSink):
        def __init__(self):
            self.items = []

        def write(self, items):
            self.items.extend(items)

    sink = ListSink()
    with sink.transaction():
        sink.write([1, 2])

    assert sink.items == [1, 2]


def test_database_sink_inserts_and_commits(pay2_sink, target_db):
    """Test that a committed chunk is visible to other connections."""
    with pay2_sink.transaction():
        pay2_sink.write([
            {"amount": 100, "tx_name": "trade1"},
            {"amount": 200, "tx_name": "trade2"},
        ])

    assert rows_in(target_db) == [(100, "trade1"), (200, "trade2")]


def test_database_sink_commits_outside_transaction(pay2_sink, target_db):
    """Test that write() on its own is its own unit of work."""
    pay2_sink.write([{"amount": 5, "tx_name": "solo"}])

    assert rows_in(target_db) == [(5, "solo")]


def test_database_sink_rolls_back_failed_chunk_only(pay2_sink, target_db):
    """Test that a constraint violation undoes its chunk and keeps earlier chunks."""
    with pay2_sink.transaction():
        pay2_sink.write([{"amount": 1, "tx_name": "kept"}])

    with pytest.raises(SinkError) as exc_info:
        with pay2_sink.transaction():
            pay2_sink.write([
                {"amount": 2, "tx_name": "rolled back"},
                {"amount": 3, "tx_name": None},
            ])

    assert exc_info.value.position is None
    assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)
    assert rows_in(target_db) == [(1, "kept")]


def test_database_sink_extraction_failure_writes_nothing(pay2_sink, target_db):
    """Test that rows are extracted before any statement runs."""
    with pytest.raises(SinkError) as exc_info:
        pay2_sink.write([{"amount": 1, "tx_name": "a"}, {"amount": 2}])

    assert exc_info.value.position == 1
    assert rows_in(target_db) == []


def test_database_sink_builds_insert_statement(pay2_sink):
    assert pay2_sink._build_statement(pay2_sink.columns) == (
        "INSERT INTO pay2 (amount, tx_name) VALUES (?, ?)"
    )


def test_database_sink_empty_chunk_is_noop(pay2_sink, target_db):
    pay2_sink.write([])

    assert rows_in(target_db) == []


def test_database_sink_connection_failure_is_sink_error():
    def refuse():
        raise ConnectionError("database unavailable")

    sink = DatabaseSink(connect=refuse, table="pay2", column_map={"amount": lambda i: i})

    with pytest.raises(SinkError) as exc_info:
        sink.write([1])

    assert isinstance(exc_info.value.original_error, ConnectionError)


def test_database_sink_requires_table_and_columns(target_db):
    with pytest.raises(ValueError):
        DatabaseSink(connect=target_db, table="", column_map={"a": lambda i: i})

    with pytest.raises(ValueError):
        DatabaseSink(connect=target_db, table="pay2", column_map={})


class StubbornConnection:
    """Connection wrapper whose close() raises after closing the real connection."""

    def __init__(self, conn):
        self.conn = conn

    def __getattr__(self, name):
        return getattr(self.conn, name)

    def close(self):
        self.conn.close()
        raise sqlite3.OperationalError("connection already gone")


def test_database_sink_close_error_is_logged(target_db, caplog):
    """Test that a failing connection close is logged instead of raised."""
    sink = DatabaseSink(
        connect=lambda: StubbornConnection(target_db()),
        table="pay2",
        column_map={
            "amount": lambda item: item["amount"],
            "tx_name": lambda item: item["tx_name"],
        },
    )
    sink.write([{"amount": 7, "tx_name": "closing"}])

    with caplog.at_level(logging.WARNING, logger="batch_etl.sinks.database"):
        sink.close()

    assert "Error closing connection for table pay2" in caplog.text
    assert sink._conn is None
    assert rows_in(target_db) == [(7, "closing")]


def test_database_sink_empty_chunk_in_transaction_commits_nothing(pay2_sink, target_db):
    """Test that a fully filtered chunk passes through its transaction without rows."""
    with pay2_sink.transaction():
        pay2_sink.write([])

    assert rows_in(target_db) == []
