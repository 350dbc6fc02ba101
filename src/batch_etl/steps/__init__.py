"""
Step implementations.

Steps are the nodes of a flow: chunk-oriented read-process-write loops, or
single-shot tasklets.
"""

from batch_etl.steps.base import AbstractStep
from batch_etl.steps.chunk import DEFAULT_CHUNK_SIZE, ChunkStep
from batch_etl.steps.tasklet import Tasklet, TaskletStep

__all__ = [
    "AbstractStep",
    "ChunkStep",
    "DEFAULT_CHUNK_SIZE",
    "Tasklet",
    "TaskletStep",
]
