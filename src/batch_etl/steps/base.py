"""
Base class for all steps.

A step is a named unit of work executed by a flow. It always produces a
StepResult: errors raised while executing are caught here, logged, and turned
into a FAILED result so the flow can route on them like any other exit code.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..core.execution import StepContribution, StepResult
from ..core.state import ExecutionContext
from ..core.status import BatchStatus, ExitCode, ExitStatus


class AbstractStep(ABC):
    """
    Abstract base class for chunk and tasklet steps.

    Subclasses implement execute(), which works on a StepContribution:
    counters, execution context and (optionally) the exit status.

    Example:
        >>> class HelloStep(AbstractStep):
        ...     def execute(self, contribution: StepContribution) -> None:
        ...         self.logger.info("hello")
        ...
        >>> result = HelloStep("hello").run()
        >>> result.exit_status == ExitStatus.COMPLETED
        True
    """

    def __init__(self, name: str):
        """
        Initialize a step.

        Args:
            name: Unique identifier for this step within its flow (used in
                  transitions, logs and errors)

        Raises:
            ValueError: If name is empty
        """
        if not name:
            raise ValueError("Step name cannot be empty")

        self.name = name
        self.logger = logging.getLogger(f"batch_etl.step.{name}")

    @property
    def possible_exit_codes(self) -> Optional[frozenset[str]]:
        """
        Exit codes this step can report, or None if it can report any code.

        Used when a flow is built to check that the step's transitions cover
        every outcome.
        """
        return frozenset({ExitCode.COMPLETED.value, ExitCode.FAILED.value})

    @abstractmethod
    def execute(self, contribution: StepContribution) -> None:
        """
        Do the step's work.

        Args:
            contribution: Progress record for this execution; set
                          contribution.exit_status to report a custom outcome

        Raises:
            Exception: Any error ends the step with a FAILED result
        """
        pass

    def run(self, execution_context: Optional[ExecutionContext] = None) -> StepResult:
        """
        Execute the step and return its result. Never raises for step errors.

        Args:
            execution_context: Context to start from (e.g. copied from a failed
                               run to resume); a fresh one is used if None

        Returns:
            StepResult with COMPLETED status and the contribution's exit status,
            or FAILED status, FAILED exit status and the causing error
        """
        contribution = StepContribution(
            step_name=self.name,
            execution_context=execution_context if execution_context is not None else ExecutionContext(),
        )
        started_at = datetime.now()
        self.logger.info(f"Executing step '{self.name}'")

        try:
            self.execute(contribution)

        except Exception as e:
            self.logger.error(
                f"Step '{self.name}' failed after {contribution.read_count} reads, "
                f"{contribution.write_count} writes: {type(e).__name__}: {e}",
                exc_info=e,
            )
            return StepResult.from_contribution(
                contribution,
                status=BatchStatus.FAILED,
                exit_status=ExitStatus.FAILED.with_description(f"{type(e).__name__}: {e}"),
                failure=e,
                started_at=started_at,
            )

        result = StepResult.from_contribution(
            contribution,
            status=BatchStatus.COMPLETED,
            exit_status=ExitStatus.of(contribution.exit_status),
            started_at=started_at,
        )
        self.logger.info(
            f"Step '{self.name}' finished with exit status {result.exit_status} "
            f"in {result.duration_seconds:.3f}s"
        )
        return result

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"{self.__class__.__name__}(name={self.name!r})"
