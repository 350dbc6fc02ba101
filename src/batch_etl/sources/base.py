"""
Abstract base class for item sources.

Sources produce a lazy, finite sequence of records for a chunk step. A source
is opened once per step execution, read one record at a time until it returns
None, and closed on every exit path.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional

from ..core.exceptions import SourceError
from ..core.state import ExecutionContext


class AbstractSource(ABC):
    """
    Base class for all item sources.

    Subclasses implement _do_open(), _do_read() and _do_close(). The base class
    keeps the read position, honours max_item_count, and stores the position in
    the step's ExecutionContext under "<name>.read.count" so a restarted step
    skips records that were already committed.

    Attributes:
        name: Identifier used in logs and as the prefix of execution context keys
        save_state: Whether to record and restore the read position
        max_item_count: Stop after delivering this many records (None for no cap)

    Example:
        >>> class RangeSource(AbstractSource):
        ...     def __init__(self, n: int):
        ...         super().__init__(name="range")
        ...         self.n = n
        ...
        ...     def _do_open(self) -> None:
        ...         self._next = 0
        ...
        ...     def _do_read(self):
        ...         if self._next >= self.n:
        ...             return None
        ...         self._next += 1
        ...         return self._next - 1
        ...
        ...     def _do_close(self) -> None:
        ...         pass
        >>>
        >>> list(RangeSource(3))
        [0, 1, 2]
    """

    def __init__(
        self,
        name: str,
        save_state: bool = True,
        max_item_count: Optional[int] = None,
    ):
        if not name:
            raise ValueError("Source name cannot be empty")
        if max_item_count is not None and max_item_count < 0:
            raise ValueError(f"max_item_count must be >= 0, got {max_item_count}")

        self.name = name
        self.save_state = save_state
        self.max_item_count = max_item_count
        self.position = 0
        self._opened = False
        self.logger = logging.getLogger(f"batch_etl.source.{name}")

    @property
    def read_count_key(self) -> str:
        return f"{self.name}.read.count"

    def open(self, execution_context: Optional[ExecutionContext] = None) -> None:
        """
        Acquire the underlying resource and position the source.

        If save_state is on and the context holds a read count from an earlier
        run, that many records are skipped.

        Args:
            execution_context: The step's execution context (may be None)

        Raises:
            SourceError: If the resource cannot be acquired, or a record cannot
                         be read while skipping (the source is closed again)
        """
        self.position = 0
        self._do_open()
        self._opened = True

        if self.save_state and execution_context is not None:
            restart_at = execution_context.get_int(self.read_count_key)
            if restart_at > 0:
                self.logger.info(f"Source '{self.name}' resuming after {restart_at} records")
                try:
                    self._jump_to(restart_at)
                except Exception:
                    self.close()
                    raise

    def read(self) -> Optional[Any]:
        """
        Return the next record, or None once the source is exhausted.

        Raises:
            SourceError: If the source is not open or the next record cannot be read
        """
        if not self._opened:
            raise SourceError(f"Source '{self.name}' must be opened before reading")

        if self.max_item_count is not None and self.position >= self.max_item_count:
            return None

        item = self._do_read()
        if item is not None:
            self.position += 1
        return item

    def update(self, execution_context: ExecutionContext) -> None:
        """Record the current read position in the execution context."""
        if self.save_state:
            execution_context.put(self.read_count_key, self.position)

    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""
        if not self._opened:
            return
        self._opened = False
        self._do_close()

    def _jump_to(self, count: int) -> None:
        """Skip records until `count` have been consumed. Override to seek faster."""
        while self.position < count:
            if self.read() is None:
                break

    @abstractmethod
    def _do_open(self) -> None:
        pass

    @abstractmethod
    def _do_read(self) -> Optional[Any]:
        pass

    @abstractmethod
    def _do_close(self) -> None:
        pass

    def __enter__(self) -> "AbstractSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[Any]:
        """
        Open the source, yield every record, and close it.

        Yields:
            Records in source order

        Raises:
            SourceError: If reading from the source fails
        """
        self.open()
        try:
            while True:
                item = self.read()
                if item is None:
                    return
                yield item
        finally:
            self.close()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"{self.__class__.__name__}(name={self.name!r})"
