"""
Log sink for the batch ETL engine.

Writes each record of a chunk as one log line. Useful for tutorials and for
checking a job's output without a destination database.
"""

import logging
from typing import Any, Optional, Union

from .base import AbstractSink, ColumnMap


class LogSink(AbstractSink):
    """
    Log every record through the standard logging module.

    Logging has no rollback: if formatting a record fails halfway through a
    chunk, the lines already logged stay and the step fails.

    Example:
        >>> sink = LogSink(message="Current Pay=%s")
        >>> sink.write([pay1, pay2])  # logs "Current Pay=..." twice at INFO
        >>>
        >>> # Or log selected columns
        >>> sink = LogSink(column_map={"amount": lambda p: p.amount, "tx_name": lambda p: p.tx_name})
    """

    def __init__(
        self,
        logger: Union[str, logging.Logger] = "batch_etl.sinks.log",
        level: int = logging.INFO,
        message: str = "Current item=%s",
        column_map: Optional[ColumnMap] = None,
    ):
        """
        Initialize the log sink.

        Args:
            logger: Logger or logger name to write to
            level: Logging level for each line
            message: %-style format with exactly one placeholder for the record
            column_map: Optional extractors; when given, the extracted row dict
                        is logged instead of the record itself
        """
        self.logger = logger if isinstance(logger, logging.Logger) else logging.getLogger(logger)
        self.level = level
        self.message = message
        self.column_map = column_map
        self.lines_written = 0

    def write(self, items: list[Any]) -> None:
        for index, item in enumerate(items):
            value = self._extract_row(item, position=index) if self.column_map else item
            self.logger.log(self.level, self.message, value)
            self.lines_written += 1
