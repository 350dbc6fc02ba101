"""In-memory source over a sequence, for demos and tests."""

from typing import Any, Optional, Sequence

from .base import AbstractSource


class ListSource(AbstractSource):
    """
    Serve records from a sequence held in memory.

    The sequence is read by index, so the same ListSource can be reopened for
    another run and restarted positions are reached without re-reading.

    Example:
        >>> source = ListSource(["a", "b", "c"], name="letters")
        >>> list(source)
        ['a', 'b', 'c']
    """

    def __init__(
        self,
        items: Sequence[Any],
        name: str = "listSource",
        save_state: bool = True,
        max_item_count: Optional[int] = None,
    ):
        super().__init__(name=name, save_state=save_state, max_item_count=max_item_count)
        if any(item is None for item in items):
            raise ValueError("ListSource items cannot contain None (None marks end of source)")
        self.items = items

    def _do_open(self) -> None:
        pass

    def _do_read(self) -> Optional[Any]:
        if self.position >= len(self.items):
            return None
        return self.items[self.position]

    def _do_close(self) -> None:
        pass

    def _jump_to(self, count: int) -> None:
        self.position = min(count, len(self.items))
