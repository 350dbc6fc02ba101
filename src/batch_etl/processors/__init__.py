"""
Item processors.

Processors transform (or filter out) records one at a time between source and sink.
"""

from batch_etl.processors.base import (
    AbstractProcessor,
    CompositeProcessor,
    FilterProcessor,
    FunctionProcessor,
)
from batch_etl.processors.mapping import ModelMappingProcessor

__all__ = [
    "AbstractProcessor",
    "FunctionProcessor",
    "FilterProcessor",
    "CompositeProcessor",
    "ModelMappingProcessor",
]
