"""Shared fixtures: a file-backed SQLite database holding the `pay` table."""

import sqlite3
from datetime import datetime, timedelta

import pytest

from batch_etl.jobs.pay import Pay, create_pay_table, insert_pays


@pytest.fixture
def connect(tmp_path):
    """Zero-argument connect callable; every call opens a new connection to the same file."""
    db_path = tmp_path / "batch.db"

    def _connect():
        return sqlite3.connect(db_path)

    return _connect


@pytest.fixture
def pays():
    """25 payments with ids 1..25."""
    start = datetime(2024, 1, 1, 9, 0, 0)
    return [
        Pay(id=i, amount=i * 100, tx_name=f"trade{i}", tx_date_time=start + timedelta(minutes=i))
        for i in range(1, 26)
    ]


@pytest.fixture
def pay_db(connect, pays):
    """Connect callable for a database whose `pay` table holds the `pays` fixture."""
    create_pay_table(connect)
    insert_pays(connect, pays)
    return connect
