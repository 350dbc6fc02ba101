"""
Tutorial jobs and the `pay` domain they work on.
"""

from batch_etl.jobs.pay import PAY_TABLE_DDL, Pay, Pay2, create_pay_table, insert_pays
from batch_etl.jobs.tutorial import (
    build_custom_item_writer_job,
    build_jdbc_cursor_item_reader_job,
    build_step_next_conditional_job,
)

__all__ = [
    "Pay",
    "Pay2",
    "PAY_TABLE_DDL",
    "create_pay_table",
    "insert_pays",
    "build_step_next_conditional_job",
    "build_jdbc_cursor_item_reader_job",
    "build_custom_item_writer_job",
]
