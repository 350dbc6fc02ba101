"""
Job orchestration for the batch ETL engine.

A Job is a name plus an immutable Flow. Each run() executes the flow from its
start step and returns a fresh JobResult; nothing is shared between runs
except the side effects of the sinks.
"""

import logging
import time
from typing import TYPE_CHECKING, Optional, Union

from .execution import JobResult
from .flow import Flow, FlowBuilder, TransitionBuilder
from .state import ExecutionContext
from .status import ExitCode, ExitStatus

if TYPE_CHECKING:
    from ..steps.base import AbstractStep


class Job:
    """
    Named, runnable flow of steps.

    Step errors never escape run(): they end the failing step with a FAILED
    exit status, which is routed through the flow like any other code.

    Example:
        >>> job = (
        ...     JobBuilder("jdbcCursorItemReaderJob")
        ...     .start(ChunkStep("jdbcCursorItemReaderStep", source, sink, chunk_size=10))
        ...     .build()
        ... )
        >>>
        >>> # Validate and log the flow without running anything
        >>> job.run(dry_run=True)
        >>>
        >>> result = job.run()
        >>> print(f"{result.name}: {result.exit_status} in {result.duration_seconds:.2f}s")
        >>>
        >>> # Resume failed steps after their last committed chunk
        >>> retry = job.run(restart_from=result)
    """

    def __init__(self, name: str, flow: Flow):
        """
        Initialize the job.

        Args:
            name: Unique identifier for this job (used in logging)
            flow: Validated flow to execute
        """
        if not name:
            raise ValueError("Job name cannot be empty")

        self.name = name
        self.flow = flow
        self.logger = logging.getLogger(f"batch_etl.job.{name}")

    def run(self, dry_run: bool = False, restart_from: Optional[JobResult] = None) -> JobResult:
        """
        Execute the job.

        Args:
            dry_run: If True, log the flow's steps and transitions without
                     executing anything
            restart_from: Result of an earlier run; every step that failed in
                          it starts from the execution context it had when it
                          failed, so sources skip records already committed

        Returns:
            A new JobResult for this run

        Example:
            >>> result = job.run()
            >>> result.step_names
            ['step1', 'conditionalJobStep3']
        """
        if dry_run:
            return self._run_dry_run()

        contexts = self._restart_contexts(restart_from) if restart_from is not None else {}

        start_time = time.time()
        self.logger.info(f"Job '{self.name}' starting at step '{self.flow.start}'")

        exit_status, step_results = self.flow.run(contexts, job_logger=self.logger)

        duration_seconds = time.time() - start_time
        failed_steps = [r.name for r in step_results if r.failed]
        summary = (
            f"Job '{self.name}' finished with {exit_status} after "
            f"{len(step_results)} steps in {duration_seconds:.2f}s"
        )
        if failed_steps:
            summary += f" (failed steps: {', '.join(failed_steps)})"
        self.logger.info(summary)

        return JobResult(
            name=self.name,
            exit_status=exit_status,
            step_results=step_results,
            duration_seconds=duration_seconds,
        )

    def _restart_contexts(self, previous: JobResult) -> dict[str, ExecutionContext]:
        if previous.name != self.name:
            raise ValueError(
                f"Cannot restart job '{self.name}' from a result of job '{previous.name}'"
            )

        contexts = {}
        for result in previous.step_results:
            if result.failed and result.name in self.flow.steps:
                contexts[result.name] = result.execution_context.copy()
            else:
                # A later successful execution of the same step wins
                contexts.pop(result.name, None)

        if contexts:
            self.logger.info(f"Restarting failed steps: {', '.join(contexts)}")
        return contexts

    def _run_dry_run(self) -> JobResult:
        self.logger.info(f"Dry run: validating job '{self.name}' configuration...")
        self.logger.info(f"✓ {len(self.flow.steps)} steps configured:")
        for step in self.flow.steps.values():
            self.logger.info(f"  - {step!r}")
        self.logger.info("✓ Transitions:")
        for line in self.flow.describe():
            self.logger.info(f"  {line}")
        self.logger.info("Dry run validation completed successfully")

        return JobResult(
            name=self.name,
            exit_status=ExitStatus.NOOP,
            step_results=[],
            duration_seconds=0.0,
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"Job(name={self.name!r}, flow={self.flow!r})"


class _JobTransitionBuilder:
    def __init__(self, parent: "JobBuilder", transition: TransitionBuilder):
        self._parent = parent
        self._transition = transition

    def to(self, step: "AbstractStep") -> "JobBuilder":
        self._transition.to(step)
        return self._parent

    def end(self, status: Union[ExitStatus, ExitCode, str, None] = None) -> "JobBuilder":
        self._transition.end(status)
        return self._parent

    def fail(self) -> "JobBuilder":
        self._transition.fail()
        return self._parent


class JobBuilder:
    """
    Fluent builder for jobs; the same vocabulary as FlowBuilder, ending in a Job.

    Example:
        >>> job = (
        ...     JobBuilder("stepNextConditionalJob")
        ...     .start(step1)
        ...         .on("FAILED").to(step3)
        ...         .on("*").end()
        ...     .from_(step1)
        ...         .on("*").to(step2)
        ...         .next(step3)
        ...         .on("*").end()
        ...     .build()
        ... )
    """

    def __init__(self, name: str):
        self.name = name
        self._flow = FlowBuilder(name)

    def start(self, step: "AbstractStep") -> "JobBuilder":
        self._flow.start(step)
        return self

    def on(self, pattern: Union[ExitCode, str]) -> _JobTransitionBuilder:
        return _JobTransitionBuilder(self, self._flow.on(pattern))

    def next(self, step: "AbstractStep") -> "JobBuilder":
        self._flow.next(step)
        return self

    def from_(self, step: "AbstractStep") -> "JobBuilder":
        self._flow.from_(step)
        return self

    def build(self) -> Job:
        """
        Build the job.

        Raises:
            FlowConfigurationError: If the flow is empty or malformed
        """
        return Job(self.name, self._flow.build())
