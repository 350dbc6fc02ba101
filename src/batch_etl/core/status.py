"""
Status values produced by steps and jobs.

ExitStatus is the only signal the flow controller looks at when choosing the
next step. BatchStatus records whether a step or job run finished normally.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Union


class ExitCode(str, Enum):
    """Well-known exit codes. Any other string is a custom code."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    NOOP = "NOOP"
    UNKNOWN = "UNKNOWN"


class BatchStatus(str, Enum):
    """Completion status of a step or job run."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ExitStatus:
    """
    Exit code reported by a step, with an optional free-text description.

    Equality and transition matching only consider the code.

    Example:
        >>> ExitStatus.FAILED.code
        'FAILED'
        >>> ExitStatus.custom("COMPLETED WITH SKIPS").is_custom
        True
        >>> ExitStatus.of("NOOP") == ExitStatus.NOOP
        True
    """

    code: str
    description: str = ""

    # Populated below the class body
    COMPLETED = None  # type: ExitStatus
    FAILED = None  # type: ExitStatus
    NOOP = None  # type: ExitStatus
    UNKNOWN = None  # type: ExitStatus

    def __post_init__(self):
        if isinstance(self.code, ExitCode):
            object.__setattr__(self, "code", self.code.value)
        if not self.code:
            raise ValueError("Exit code cannot be empty")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ExitStatus):
            return self.code == other.code
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.code)

    @classmethod
    def custom(cls, code: str, description: str = "") -> "ExitStatus":
        """Build an exit status carrying an application-defined code."""
        return cls(code=code, description=description)

    @classmethod
    def of(cls, value: Union["ExitStatus", ExitCode, str]) -> "ExitStatus":
        """Coerce an ExitStatus, ExitCode or plain string into an ExitStatus."""
        if isinstance(value, ExitStatus):
            return value
        return cls(code=value.value if isinstance(value, ExitCode) else value)

    @property
    def is_custom(self) -> bool:
        return self.code not in ExitCode._value2member_map_

    @property
    def is_failed(self) -> bool:
        return self.code == ExitCode.FAILED.value

    def with_description(self, description: str) -> "ExitStatus":
        return ExitStatus(code=self.code, description=description)

    def __str__(self) -> str:
        return self.code


ExitStatus.COMPLETED = ExitStatus(ExitCode.COMPLETED.value)
ExitStatus.FAILED = ExitStatus(ExitCode.FAILED.value)
ExitStatus.NOOP = ExitStatus(ExitCode.NOOP.value)
ExitStatus.UNKNOWN = ExitStatus(ExitCode.UNKNOWN.value)


WILDCARD = "*"


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> "re.Pattern[str]":
    # '*' is any run of characters, '?' exactly one; everything else is literal
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def pattern_matches(pattern: str, code: str) -> bool:
    """
    Return True if a transition pattern matches an exit code.

    Args:
        pattern: Exact code, or a pattern using '*' (any run of characters)
                 and '?' (one character). A bare '*' matches every code.
        code: Exit code to test

    Example:
        >>> pattern_matches("*", "FAILED")
        True
        >>> pattern_matches("COMPLETED*", "COMPLETED WITH SKIPS")
        True
        >>> pattern_matches("FAILED", "COMPLETED")
        False
    """
    if pattern == WILDCARD:
        return True
    if "*" not in pattern and "?" not in pattern:
        return pattern == code
    return _compile_pattern(pattern).fullmatch(code) is not None
