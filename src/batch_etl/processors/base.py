"""
Item processors: per-record transformation between source and sink.

A processor returns the output record, or None to filter the input out of the
chunk. Processors never see the chunk as a whole.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional


class AbstractProcessor(ABC):
    """
    Base class for item processors.

    Example:
        >>> class Upper(AbstractProcessor):
        ...     def process(self, item: str) -> Optional[str]:
        ...         return item.upper()
        >>>
        >>> Upper().process("pay")
        'PAY'
    """

    @abstractmethod
    def process(self, item: Any) -> Optional[Any]:
        """
        Transform one record.

        Args:
            item: Record read from the source

        Returns:
            The output record, or None to drop it from the chunk
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class FunctionProcessor(AbstractProcessor):
    """
    Processor wrapping a plain function.

    Example:
        >>> FunctionProcessor(lambda pay: pay.amount * 2).process(pay)
        2000
    """

    def __init__(self, fn: Callable[[Any], Optional[Any]]):
        self.fn = fn

    def process(self, item: Any) -> Optional[Any]:
        return self.fn(item)

    def __repr__(self) -> str:
        return f"FunctionProcessor(fn={getattr(self.fn, '__name__', self.fn)!r})"


class FilterProcessor(AbstractProcessor):
    """
    Pass records through unchanged when the predicate holds, drop them otherwise.

    Example:
        >>> keep_large = FilterProcessor(lambda pay: pay.amount >= 1000)
        >>> keep_large.process(small_pay) is None
        True
    """

    def __init__(self, predicate: Callable[[Any], bool]):
        self.predicate = predicate

    def process(self, item: Any) -> Optional[Any]:
        return item if self.predicate(item) else None


class CompositeProcessor(AbstractProcessor):
    """
    Chain processors; each receives the previous one's output.

    The chain stops at the first None, so later processors never see a
    filtered record.

    Example:
        >>> processor = CompositeProcessor([
        ...     FilterProcessor(lambda pay: pay.amount > 0),
        ...     ModelMappingProcessor(Pay2, {...}),
        ... ])
    """

    def __init__(self, processors: list[AbstractProcessor]):
        if not processors:
            raise ValueError("CompositeProcessor needs at least one processor")
        self.processors = processors

    def process(self, item: Any) -> Optional[Any]:
        for processor in self.processors:
            item = processor.process(item)
            if item is None:
                return None
        return item

    def __repr__(self) -> str:
        return f"CompositeProcessor(processors={self.processors!r})"
