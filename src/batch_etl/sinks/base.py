"""
Abstract base class for item sinks.

Sinks receive one list of records per committed chunk and perform the side
effect (persist, log, forward). An optional column_map turns each record into
a destination row.
"""

import contextlib
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterator, Optional

from ..core.exceptions import SinkError


ColumnMap = dict[str, Callable[[Any], Any]]


class AbstractSink(ABC):
    """
    Base class for all sinks.

    Subclasses implement write(). Sinks that can undo a chunk override
    transaction() so that an error inside the block rolls the chunk back;
    the default transaction() is a no-op, so a failure midway through a
    non-transactional write leaves whatever was already emitted.

    Attributes:
        column_map: Dictionary mapping output column names to extractor functions
                    that pull values from a record (None to pass records as-is)

    Example:
        >>> class PrintSink(AbstractSink):
        ...     def write(self, items: list) -> None:
        ...         for item in items:
        ...             print(item)
        >>>
        >>> sink = PrintSink()
        >>> with sink.transaction():
        ...     sink.write(["a", "b"])
        a
        b
    """

    column_map: Optional[ColumnMap] = None

    @abstractmethod
    def write(self, items: list[Any]) -> None:
        """
        Write one chunk of records.

        Called once per chunk with the processed records in source order.
        Must accept an empty list.

        Args:
            items: Records to write

        Raises:
            SinkError: If writing fails
        """
        pass

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        """Demarcate one chunk's unit of work. No-op unless overridden."""
        yield

    def close(self) -> None:
        """Release resources held between chunks. Called when the step ends."""
        pass

    def _extract_row(self, item: Any, position: Optional[int] = None) -> dict[str, Any]:
        """
        Apply column_map to a record.

        Args:
            item: Record to extract values from
            position: Index of the record within the chunk, for error context

        Returns:
            Dictionary mapping column names to extracted values

        Raises:
            SinkError: If any extractor function raises an exception
        """
        if self.column_map is None:
            raise SinkError(
                position=position,
                original_error=ValueError(f"{type(self).__name__} has no column_map"),
            )

        row = {}
        for col_name, extractor_fn in self.column_map.items():
            try:
                row[col_name] = extractor_fn(item)
            except Exception as e:
                error_msg = f"Column '{col_name}' extractor failed: {type(e).__name__}: {e}"
                raise SinkError(position=position, original_error=ValueError(error_msg)) from e

        return row
