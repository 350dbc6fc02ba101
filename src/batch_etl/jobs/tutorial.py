"""
Tutorial job definitions.

Factory functions that assemble the three demonstration jobs from plain
constructors. Database jobs take a `connect` callable so they run against any
DB-API driver (sqlite3 locally, pyodbc against SQL Server).
"""

import logging
from typing import Any, Callable

from ..core.execution import StepContribution
from ..core.job import Job, JobBuilder
from ..core.status import ExitStatus
from ..processors.mapping import ModelMappingProcessor
from ..sinks.log_sink import LogSink
from ..sources.database import CursorSource, PagingSource, model_row_mapper
from ..steps.chunk import DEFAULT_CHUNK_SIZE, ChunkStep
from ..steps.tasklet import TaskletStep
from .pay import Pay, Pay2


logger = logging.getLogger(__name__)

PAY_QUERY = "SELECT id, amount, tx_name, tx_date_time FROM pay"


def build_step_next_conditional_job() -> Job:
    """
    Build stepNextConditionalJob.

    step1 always reports FAILED, so the realized path is always
    step1 -> conditionalJobStep3 -> END; conditionalJobStep2 is declared but
    never reached.

    Example:
        >>> result = build_step_next_conditional_job().run()
        >>> result.step_names
        ['step1', 'conditionalJobStep3']
    """

    def step1(contribution: StepContribution) -> None:
        logger.info(">>>>> This is stepNextConditionalJob Step1")
        # The flow routes on this exit status
        contribution.exit_status = ExitStatus.FAILED

    def step2(contribution: StepContribution) -> None:
        logger.info(">>>>> This is stepNextConditionalJob Step2")

    def step3(contribution: StepContribution) -> None:
        logger.info(">>>>> This is stepNextConditionalJob Step3")

    conditional_step1 = TaskletStep("step1", step1, exit_codes=[ExitStatus.FAILED])
    conditional_step2 = TaskletStep("conditionalJobStep2", step2)
    conditional_step3 = TaskletStep("conditionalJobStep3", step3)

    return (
        JobBuilder("stepNextConditionalJob")
        .start(conditional_step1)
            .on("FAILED").to(conditional_step3)
            .on("*").end()
        .from_(conditional_step1)
            .on("*").to(conditional_step2)
            .next(conditional_step3)
            .on("*").end()
        .build()
    )


def build_jdbc_cursor_item_reader_job(
    connect: Callable[[], Any],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Job:
    """
    Build jdbcCursorItemReaderJob: stream `pay` through a cursor and log each Pay.

    Args:
        connect: Zero-argument callable returning a DB-API connection
        chunk_size: Commit interval, also used as the cursor fetch size
    """
    source = CursorSource(
        connect=connect,
        sql=PAY_QUERY,
        fetch_size=chunk_size,
        row_mapper=model_row_mapper(Pay),
        name="jdbcCursorItemReader",
    )
    sink = LogSink(logger=logger, message="Current Pay=%s")

    step = ChunkStep(
        name="jdbcCursorItemReaderStep",
        source=source,
        sink=sink,
        chunk_size=chunk_size,
    )
    return JobBuilder("jdbcCursorItemReaderJob").start(step).build()


def build_custom_item_writer_job(
    connect: Callable[[], Any],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    dialect: str = "ansi",
) -> Job:
    """
    Build customItemWriterJob: page through `pay`, map each Pay to Pay2, log it.

    Args:
        connect: Zero-argument callable returning a DB-API connection
        chunk_size: Commit interval, also used as the page size
        dialect: Paging dialect of the database ("ansi" or "mssql")
    """
    source = PagingSource(
        connect=connect,
        sql=f"{PAY_QUERY} ORDER BY id",
        page_size=chunk_size,
        dialect=dialect,
        row_mapper=model_row_mapper(Pay),
        name="customItemReader",
    )
    processor = ModelMappingProcessor(
        Pay2,
        field_map={
            "amount": lambda pay: pay.amount,
            "tx_name": lambda pay: pay.tx_name,
            "tx_date_time": lambda pay: pay.tx_date_time,
        },
    )
    sink = LogSink(logger=logger, message="%s")

    step = ChunkStep(
        name="customItemWriterStep",
        source=source,
        sink=sink,
        processor=processor,
        chunk_size=chunk_size,
    )
    return JobBuilder("customItemWriterJob").start(step).build()
