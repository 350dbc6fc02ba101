"""
The `pay` domain used by the tutorial jobs.

Pay mirrors a row of the `pay` table; Pay2 is the same payment without its
identifier, produced by the customItemWriterJob processor.
"""

from datetime import datetime
from typing import Any, Callable, Iterable

from pydantic import BaseModel, Field


PAY_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS pay (
    id INTEGER PRIMARY KEY,
    amount BIGINT NOT NULL,
    tx_name VARCHAR(255) NOT NULL,
    tx_date_time VARCHAR(32) NOT NULL
)
"""

PAY_COLUMNS = ("id", "amount", "tx_name", "tx_date_time")


class Pay(BaseModel):
    """
    One payment row.

    Example:
        >>> Pay(id=1, amount=1000, tx_name="trade1", tx_date_time="2024-01-01T00:00:00")
        Pay(id=1, amount=1000, tx_name='trade1', tx_date_time=datetime.datetime(2024, 1, 1, 0, 0))
    """

    id: int = Field(..., description="Primary key of the pay row")
    amount: int = Field(..., description="Payment amount")
    tx_name: str = Field(..., description="Transaction name", min_length=1)
    tx_date_time: datetime = Field(..., description="When the transaction happened")


class Pay2(BaseModel):
    """Payment without its source identifier."""

    amount: int
    tx_name: str = Field(..., min_length=1)
    tx_date_time: datetime


def create_pay_table(connect: Callable[[], Any]) -> None:
    """Create the `pay` table if it does not exist."""
    conn = connect()
    try:
        cursor = conn.cursor()
        cursor.execute(PAY_TABLE_DDL)
        cursor.close()
        conn.commit()
    finally:
        conn.close()


def insert_pays(connect: Callable[[], Any], pays: Iterable[Pay]) -> int:
    """
    Insert payments into the `pay` table in one transaction.

    Timestamps are stored as ISO-8601 text so any DB-API driver round-trips them.

    Returns:
        Number of rows inserted
    """
    rows = [
        (pay.id, pay.amount, pay.tx_name, pay.tx_date_time.isoformat())
        for pay in pays
    ]
    if not rows:
        return 0

    column_list = ", ".join(PAY_COLUMNS)
    placeholders = ", ".join("?" for _ in PAY_COLUMNS)
    conn = connect()
    try:
        cursor = conn.cursor()
        cursor.executemany(f"INSERT INTO pay ({column_list}) VALUES ({placeholders})", rows)
        cursor.close()
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return len(rows)
