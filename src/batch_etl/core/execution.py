"""
Execution bookkeeping shared by steps and jobs.

A StepContribution is handed to the running step (tasklets set their exit status
on it, chunk steps bump its counters). When the step finishes it is frozen into
a StepResult; a job run collects StepResults into a JobResult.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .state import ExecutionContext
from .status import BatchStatus, ExitStatus


@dataclass
class StepContribution:
    """
    Mutable progress record of one step execution.

    Attributes:
        step_name: Name of the running step
        execution_context: State persisted between chunks and runs
        exit_status: Exit status reported when the step finishes normally
        read_count: Records read from the source
        filter_count: Records the processor dropped
        write_count: Records handed to the sink
        commit_count: Chunks committed

    Example:
        >>> def tasklet(contribution: StepContribution) -> None:
        ...     contribution.exit_status = ExitStatus.FAILED
    """

    step_name: str
    execution_context: ExecutionContext = field(default_factory=ExecutionContext)
    exit_status: ExitStatus = ExitStatus.COMPLETED
    read_count: int = 0
    filter_count: int = 0
    write_count: int = 0
    commit_count: int = 0


@dataclass
class StepResult:
    """
    Outcome of one step execution.

    Attributes:
        name: Step name
        status: COMPLETED if the step ran to the end, FAILED if an error escaped
        exit_status: Code consumed by the flow to choose the next step
        failure: The exception that ended the step, if any
        read_count: Records read from the source
        filter_count: Records dropped by the processor
        write_count: Records written to the sink
        commit_count: Chunks committed
        execution_context: Context as it stood when the step ended
        started_at: When the step started
        ended_at: When the step ended

    Example:
        >>> result = job.run().step_results[0]
        >>> print(f"{result.name}: {result.exit_status} ({result.write_count} written)")
    """

    name: str
    status: BatchStatus
    exit_status: ExitStatus
    failure: Optional[BaseException] = None
    read_count: int = 0
    filter_count: int = 0
    write_count: int = 0
    commit_count: int = 0
    execution_context: ExecutionContext = field(default_factory=ExecutionContext)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @classmethod
    def from_contribution(
        cls,
        contribution: StepContribution,
        status: BatchStatus,
        exit_status: ExitStatus,
        failure: Optional[BaseException] = None,
        started_at: Optional[datetime] = None,
    ) -> "StepResult":
        return cls(
            name=contribution.step_name,
            status=status,
            exit_status=exit_status,
            failure=failure,
            read_count=contribution.read_count,
            filter_count=contribution.filter_count,
            write_count=contribution.write_count,
            commit_count=contribution.commit_count,
            execution_context=contribution.execution_context.copy(),
            started_at=started_at,
            ended_at=datetime.now(),
        )

    @property
    def failed(self) -> bool:
        return self.status is BatchStatus.FAILED

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds()


@dataclass
class JobResult:
    """
    Result of a job run.

    Attributes:
        name: Job name
        exit_status: Exit status the flow ended with
        step_results: Results of the executed steps, in execution order
        duration_seconds: Total execution time in seconds

    Example:
        >>> result = job.run()
        >>> [r.name for r in result.step_results]
        ['step1', 'conditionalJobStep3']
        >>> result.exit_status.code
        'COMPLETED'
    """

    name: str
    exit_status: ExitStatus
    step_results: list[StepResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def status(self) -> BatchStatus:
        return BatchStatus.FAILED if self.exit_status.is_failed else BatchStatus.COMPLETED

    @property
    def step_names(self) -> list[str]:
        return [result.name for result in self.step_results]

    def step_result(self, name: str) -> Optional[StepResult]:
        """Return the last result recorded for a step name, or None if it never ran."""
        for result in reversed(self.step_results):
            if result.name == name:
                return result
        return None
