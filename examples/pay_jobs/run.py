"""
Example: the three tutorial jobs against a local SQLite database.

Demonstrates the batch ETL engine with:
- stepNextConditionalJob, branching on step1's FAILED exit status
- jdbcCursorItemReaderJob, streaming `pay` rows through one cursor
- customItemWriterJob, paging `pay` rows and mapping Pay -> Pay2
- a DatabaseSink job copying Pay2 rows into a `pay2` table
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path

from batch_etl.core.job import JobBuilder
from batch_etl.jobs.pay import Pay, Pay2, create_pay_table, insert_pays
from batch_etl.jobs.tutorial import (
    build_custom_item_writer_job,
    build_jdbc_cursor_item_reader_job,
    build_step_next_conditional_job,
)
from batch_etl.processors.mapping import ModelMappingProcessor
from batch_etl.sinks.database import DatabaseSink
from batch_etl.sources.database import PagingSource, model_row_mapper
from batch_etl.steps.chunk import ChunkStep

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Get the directory containing this script
EXAMPLE_DIR = Path(__file__).parent
DB_PATH = EXAMPLE_DIR / "output" / "pay.db"


def connect() -> sqlite3.Connection:
    return sqlite3.connect(DB_PATH)


def seed_database(count: int = 25) -> None:
    """Create a fresh `pay` table holding `count` payments."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    if DB_PATH.exists():
        DB_PATH.unlink()

    create_pay_table(connect)
    start = datetime(2024, 1, 1, 9, 0, 0)
    insert_pays(
        connect,
        (
            Pay(id=i, amount=i * 1000, tx_name=f"trade{i}", tx_date_time=start + timedelta(hours=i))
            for i in range(1, count + 1)
        ),
    )


def create_copy_job():
    """
    Create a job copying every Pay into `pay2` as a Pay2 row.

    Returns:
        Configured Job instance ready to run
    """
    conn = connect()
    conn.execute(
        "CREATE TABLE IF NOT EXISTS pay2 (amount BIGINT, tx_name VARCHAR(255), tx_date_time VARCHAR(32))"
    )
    conn.commit()
    conn.close()

    step = ChunkStep(
        name="payToPay2Step",
        source=PagingSource(
            connect=connect,
            sql="SELECT id, amount, tx_name, tx_date_time FROM pay ORDER BY id",
            page_size=10,
            row_mapper=model_row_mapper(Pay),
            name="payPagingReader",
        ),
        processor=ModelMappingProcessor(
            Pay2,
            field_map={
                "amount": lambda p: p.amount,
                "tx_name": lambda p: p.tx_name,
                "tx_date_time": lambda p: p.tx_date_time,
            },
        ),
        sink=DatabaseSink(
            connect=connect,
            table="pay2",
            column_map={
                "amount": lambda p: p.amount,
                "tx_name": lambda p: p.tx_name,
                "tx_date_time": lambda p: p.tx_date_time.isoformat(),
            },
        ),
        chunk_size=10,
    )
    return JobBuilder("payToPay2Job").start(step).build()


def main():
    """Run the example jobs."""
    print("=" * 80)
    print("Batch ETL Tutorial Jobs Example")
    print("=" * 80)
    print()

    seed_database()

    jobs = [
        build_step_next_conditional_job(),
        build_jdbc_cursor_item_reader_job(connect),
        build_custom_item_writer_job(connect),
        create_copy_job(),
    ]

    # First, validate the configuration
    print("Step 1: Validating job configuration...")
    print("-" * 80)
    for job in jobs:
        job.run(dry_run=True)
    print()

    # Run the jobs
    print("Step 2: Running jobs...")
    print("-" * 80)
    results = [job.run() for job in jobs]
    print()

    # Print results summary
    print("=" * 80)
    print("Job Results")
    print("=" * 80)
    for result in results:
        print(f"{result.name}: {result.exit_status} in {result.duration_seconds:.2f} seconds")
        for step_result in result.step_results:
            print(
                f"  - {step_result.name}: {step_result.exit_status} "
                f"(read {step_result.read_count}, written {step_result.write_count}, "
                f"chunks {step_result.commit_count})"
            )

    print()
    print(f"✓ Database written to: {DB_PATH}")
    print()
    print("Done!")
    print("=" * 80)

    return results


if __name__ == "__main__":
    main()
