"""
Custom exceptions for the batch ETL engine.

Provides a hierarchy of exceptions with rich context for debugging step failures.
Run-time errors (source, processor, sink) end the current step and are recorded
on its StepResult; FlowConfigurationError is raised at build time only.
"""

from typing import Optional


class BatchETLError(Exception):
    """
    Base exception for all batch ETL engine errors.

    All custom exceptions in the engine inherit from this class,
    allowing users to catch engine-specific errors.

    Example:
        >>> try:
        ...     job = JobBuilder("nightly").start(step).build()
        ... except BatchETLError as e:
        ...     print(f"Engine error: {e}")
    """

    pass


class SourceError(BatchETLError):
    """
    Raised when reading from an item source fails.

    Covers connection loss, query failures and rows that cannot be mapped.
    Always fatal to the current step; the engine never reconnects or retries.

    Example:
        >>> raise SourceError("Failed to advance cursor for 'payReader': connection reset")
    """

    pass


class ProcessorError(BatchETLError):
    """
    Raised when an item processor fails on a record.

    Attributes:
        step_name: Name of the chunk step that was running
        position: Zero-based offset of the record in the source sequence
        original_error: The underlying exception raised by the processor

    Example:
        >>> try:
        ...     processor.process(item)
        ... except ValueError as e:
        ...     raise ProcessorError(step_name="customItemWriterStep", position=7, original_error=e)
    """

    def __init__(self, step_name: str, position: int, original_error: Exception):
        self.step_name = step_name
        self.position = position
        self.original_error = original_error

        message = (
            f"Processor in step '{step_name}' failed at position {position}: "
            f"{type(original_error).__name__}: {original_error}"
        )
        super().__init__(message)

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"ProcessorError(step_name={self.step_name!r}, "
            f"position={self.position!r}, "
            f"original_error={self.original_error!r})"
        )


class SinkError(BatchETLError):
    """
    Raised when writing a chunk to a sink fails.

    Records committed by earlier chunks of the same step stay committed;
    only the failing chunk is affected.

    Attributes:
        position: Index of the failing record within the written chunk,
                  or None when the whole chunk failed at once
        original_error: The underlying exception that caused the failure

    Example:
        >>> try:
        ...     cursor.executemany(sql, rows)
        ... except sqlite3.Error as e:
        ...     raise SinkError(position=None, original_error=e)
    """

    def __init__(self, position: Optional[int], original_error: Exception):
        self.position = position
        self.original_error = original_error

        where = f" at chunk index {position}" if position is not None else ""
        message = (
            f"Failed to write chunk{where} to sink: "
            f"{type(original_error).__name__}: {original_error}"
        )
        super().__init__(message)

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"SinkError(position={self.position!r}, "
            f"original_error={self.original_error!r})"
        )


class FlowConfigurationError(BatchETLError):
    """
    Raised when a flow is malformed.

    Detected while building the flow, before any step executes: a step whose
    transitions do not cover every exit code it can produce, a transition that
    targets an unknown step, or two different steps sharing a name.

    Attributes:
        flow_name: Name of the flow (job) being built
        problems: Every problem found, one message each

    Example:
        >>> raise FlowConfigurationError(
        ...     flow_name="stepNextConditionalJob",
        ...     problems=["Step 'step2' has no transition for exit code 'FAILED'"],
        ... )
    """

    def __init__(self, flow_name: str, problems: list[str]):
        self.flow_name = flow_name
        self.problems = problems

        problems_str = "; ".join(problems)
        message = f"Flow '{flow_name}' is malformed: {problems_str}"
        super().__init__(message)

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"FlowConfigurationError(flow_name={self.flow_name!r}, "
            f"problems={self.problems!r})"
        )
