"""
ChunkStep: read-process-write loop committed one chunk at a time.

Records are read until the chunk holds chunk_size of them (or the source ends),
processed one by one in read order, and the surviving outputs are written to
the sink in a single call inside sink.transaction(). After each commit the
source records its position in the execution context so a restarted step can
resume after the last committed chunk.
"""

from typing import Any, Optional

from ..core.exceptions import ProcessorError, SinkError
from ..core.execution import StepContribution
from ..processors.base import AbstractProcessor
from ..sinks.base import AbstractSink
from ..sources.base import AbstractSource
from .base import AbstractStep


DEFAULT_CHUNK_SIZE = 10


class ChunkStep(AbstractStep):
    """
    Chunk-oriented step: source -> optional processor -> sink.

    A chunk whose records are all filtered out is still handed to the sink as
    an empty write inside its own transaction, and committed. Any error ends
    the step as FAILED; chunks committed earlier stay committed.

    Example:
        >>> step = ChunkStep(
        ...     name="jdbcCursorItemReaderStep",
        ...     source=CursorSource(connect=connect, sql="SELECT * FROM pay"),
        ...     sink=LogSink(message="Current Pay=%s"),
        ...     chunk_size=10,
        ... )
        >>> result = step.run()
        >>> result.read_count, result.write_count, result.commit_count
        (4, 4, 1)
    """

    def __init__(
        self,
        name: str,
        source: AbstractSource,
        sink: AbstractSink,
        processor: Optional[AbstractProcessor] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize the chunk step.

        Args:
            name: Step identifier
            source: Source to read records from
            sink: Sink receiving each chunk's outputs
            processor: Optional per-record transformation (None passes records through)
            chunk_size: Records read per chunk (commit interval)

        Raises:
            ValueError: If chunk_size < 1
        """
        super().__init__(name)
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

        self.source = source
        self.sink = sink
        self.processor = processor
        self.chunk_size = chunk_size

    def execute(self, contribution: StepContribution) -> None:
        context = contribution.execution_context
        try:
            self.source.open(context)
            while True:
                chunk = self._read_chunk(contribution)
                if not chunk:
                    break

                outputs = self._process_chunk(chunk, contribution)
                self._write_chunk(outputs)
                contribution.write_count += len(outputs)

                self.source.update(context)
                contribution.commit_count += 1
                self.logger.debug(
                    f"Committed chunk {contribution.commit_count}: read {len(chunk)}, "
                    f"wrote {len(outputs)}, filtered {len(chunk) - len(outputs)}"
                )
        finally:
            try:
                self.source.close()
            finally:
                self.sink.close()

        self.logger.info(
            f"Step '{self.name}' read {contribution.read_count}, "
            f"filtered {contribution.filter_count}, wrote {contribution.write_count} "
            f"in {contribution.commit_count} chunks"
        )

    def _read_chunk(self, contribution: StepContribution) -> list[tuple[int, Any]]:
        """Read up to chunk_size records, paired with their source positions."""
        chunk = []
        while len(chunk) < self.chunk_size:
            item = self.source.read()
            if item is None:
                break
            chunk.append((self.source.position - 1, item))
            contribution.read_count += 1
        return chunk

    def _process_chunk(
        self, chunk: list[tuple[int, Any]], contribution: StepContribution
    ) -> list[Any]:
        if self.processor is None:
            return [item for _, item in chunk]

        outputs = []
        for position, item in chunk:
            try:
                output = self.processor.process(item)
            except Exception as e:
                raise ProcessorError(
                    step_name=self.name,
                    position=position,
                    original_error=e,
                ) from e

            if output is None:
                contribution.filter_count += 1
            else:
                outputs.append(output)
        return outputs

    def _write_chunk(self, outputs: list[Any]) -> None:
        try:
            with self.sink.transaction():
                self.sink.write(outputs)
        except SinkError:
            raise
        except Exception as e:
            raise SinkError(position=None, original_error=e) from e

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"ChunkStep(name={self.name!r}, source={self.source!r}, "
            f"sink={type(self.sink).__name__}, chunk_size={self.chunk_size})"
        )
