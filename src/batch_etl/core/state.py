"""
ExecutionContext - key/value state a step keeps between chunks and across runs.

Sources record their progress here (e.g. "payReader.read.count") after every
committed chunk. A step seeded with the context of a failed run can resume
after its last committed chunk.
"""

import copy
import json
from datetime import datetime
from typing import Any, Iterator, Optional


class ExecutionContext:
    """
    Mutable, JSON-serializable mapping owned by one step execution.

    Values should be JSON-compatible so a context can be persisted between
    runs with to_json() and restored with from_dict().

    Example:
        >>> context = ExecutionContext()
        >>> context.put("payReader.read.count", 20)
        >>> context.get_int("payReader.read.count")
        20
        >>> context.dirty
        True
    """

    def __init__(
        self,
        values: Optional[dict[str, Any]] = None,
        updated_at: Optional[datetime] = None,
    ):
        """
        Initialize a context.

        Args:
            values: Initial entries (copied, the caller's dict is not shared)
            updated_at: Timestamp of the last put (defaults to None)
        """
        self._values: dict[str, Any] = copy.deepcopy(values) if values else {}
        self.updated_at = updated_at
        self.dirty = False

    def put(self, key: str, value: Any) -> None:
        self._values[key] = value
        self.updated_at = datetime.now()
        self.dirty = True

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        value = self._values.get(key)
        return default if value is None else int(value)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)
        self.dirty = True

    def clear_dirty(self) -> None:
        self.dirty = False

    def copy(self) -> "ExecutionContext":
        """Return an independent deep copy (used to seed a restarted step)."""
        return ExecutionContext(values=self._values, updated_at=self.updated_at)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ExecutionContext):
            return self._values == other._values
        return NotImplemented

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize the context to a JSON-serializable dictionary.

        Returns:
            Dictionary with the entries and the last update timestamp

        Example:
            >>> context = ExecutionContext({"payReader.read.count": 10})
            >>> context.to_dict()["values"]
            {'payReader.read.count': 10}
        """
        return {
            "values": copy.deepcopy(self._values),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionContext":
        """
        Deserialize a context produced by to_dict().

        Args:
            data: Dictionary containing "values" and optionally "updated_at"

        Returns:
            Reconstructed ExecutionContext (not dirty)
        """
        updated_at = None
        if data.get("updated_at"):
            updated_at = datetime.fromisoformat(data["updated_at"])

        return cls(values=data.get("values", {}), updated_at=updated_at)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"ExecutionContext(keys={list(self._values.keys())}, dirty={self.dirty})"
