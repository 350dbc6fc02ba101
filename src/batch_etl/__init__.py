"""
Batch ETL - A small chunk-oriented batch engine with conditional step flow.

Read records from a database or memory, transform them, and write them to a
sink one transactional chunk at a time; chain steps into jobs that branch on
each step's exit status.
"""

__version__ = "0.1.0"

# Core components
from batch_etl.core.job import Job, JobBuilder
from batch_etl.core.flow import END, Flow, FlowBuilder
from batch_etl.core.execution import JobResult, StepContribution, StepResult
from batch_etl.core.state import ExecutionContext
from batch_etl.core.status import BatchStatus, ExitCode, ExitStatus
from batch_etl.core.exceptions import (
    BatchETLError,
    SourceError,
    ProcessorError,
    SinkError,
    FlowConfigurationError,
)

# Steps
from batch_etl.steps.chunk import ChunkStep
from batch_etl.steps.tasklet import TaskletStep

# Sources
from batch_etl.sources.database import CursorSource, PagingSource, model_row_mapper
from batch_etl.sources.memory import ListSource

# Processors
from batch_etl.processors import (
    CompositeProcessor,
    FilterProcessor,
    FunctionProcessor,
    ModelMappingProcessor,
)

# Sinks
from batch_etl.sinks.database import DatabaseSink
from batch_etl.sinks.log_sink import LogSink

# Lazy imports for SQL Server components to avoid pyodbc dependency
def __getattr__(name):
    if name == "SQLServerCursorSource":
        from batch_etl.sources.sql_server import SQLServerCursorSource
        return SQLServerCursorSource
    elif name == "SQLServerPagingSource":
        from batch_etl.sources.sql_server import SQLServerPagingSource
        return SQLServerPagingSource
    elif name == "SQLServerSink":
        from batch_etl.sinks.sql_server import SQLServerSink
        return SQLServerSink
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    # Version
    "__version__",
    # Core
    "Job",
    "JobBuilder",
    "Flow",
    "FlowBuilder",
    "END",
    "JobResult",
    "StepContribution",
    "StepResult",
    "ExecutionContext",
    "BatchStatus",
    "ExitCode",
    "ExitStatus",
    "BatchETLError",
    "SourceError",
    "ProcessorError",
    "SinkError",
    "FlowConfigurationError",
    # Steps
    "ChunkStep",
    "TaskletStep",
    # Sources
    "CursorSource",
    "PagingSource",
    "ListSource",
    "SQLServerCursorSource",
    "SQLServerPagingSource",
    "model_row_mapper",
    # Processors
    "FunctionProcessor",
    "FilterProcessor",
    "CompositeProcessor",
    "ModelMappingProcessor",
    # Sinks
    "LogSink",
    "DatabaseSink",
    "SQLServerSink",
]
