"""
Core components for the batch ETL engine.

Includes job and flow orchestration, exit statuses, execution bookkeeping,
and exception handling.
"""

from batch_etl.core.exceptions import (
    BatchETLError,
    FlowConfigurationError,
    ProcessorError,
    SinkError,
    SourceError,
)
from batch_etl.core.execution import JobResult, StepContribution, StepResult
from batch_etl.core.flow import END, Flow, FlowBuilder, TransitionRule
from batch_etl.core.job import Job, JobBuilder
from batch_etl.core.state import ExecutionContext
from batch_etl.core.status import BatchStatus, ExitCode, ExitStatus

__all__ = [
    "Job",
    "JobBuilder",
    "Flow",
    "FlowBuilder",
    "TransitionRule",
    "END",
    "ExecutionContext",
    "StepContribution",
    "StepResult",
    "JobResult",
    "ExitCode",
    "ExitStatus",
    "BatchStatus",
    "BatchETLError",
    "SourceError",
    "ProcessorError",
    "SinkError",
    "FlowConfigurationError",
]
