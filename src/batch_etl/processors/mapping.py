"""
Processor that builds a pydantic model from an input record.

Uses the field_map pattern: each target field is produced by a lambda over the
input record, so the processor knows nothing about the input's shape.
"""

from typing import Any, Callable, Optional

from pydantic import BaseModel

from .base import AbstractProcessor


class ModelMappingProcessor(AbstractProcessor):
    """
    Map a record into a pydantic model, field by field.

    Fields not listed in field_map fall back to the model's defaults. The
    result is validated by pydantic, so a bad value raises ValidationError
    (wrapped in ProcessorError by the chunk step).

    Attributes:
        model: Target pydantic model class
        field_map: Dictionary mapping target field names to lambdas that
                   extract values from the input record

    Example:
        >>> processor = ModelMappingProcessor(
        ...     Pay2,
        ...     field_map={
        ...         "amount": lambda p: p.amount,
        ...         "tx_name": lambda p: p.tx_name,
        ...         "tx_date_time": lambda p: p.tx_date_time,
        ...     },
        ... )
        >>> processor.process(Pay(id=1, amount=1000, tx_name="Pay1", tx_date_time=now))
        Pay2(amount=1000, tx_name='Pay1', tx_date_time=...)
    """

    def __init__(
        self,
        model: type[BaseModel],
        field_map: dict[str, Callable[[Any], Any]],
    ):
        unknown = [key for key in field_map if key not in model.model_fields]
        if unknown:
            raise ValueError(
                f"field_map keys {unknown} are not fields of {model.__name__}"
            )

        self.model = model
        self.field_map = field_map

    def _apply_field_map(self, item: Any) -> dict[str, Any]:
        return {key: func(item) for key, func in self.field_map.items()}

    def process(self, item: Any) -> Optional[BaseModel]:
        return self.model.model_validate(self._apply_field_map(item))

    def __repr__(self) -> str:
        return f"ModelMappingProcessor(model={self.model.__name__}, fields={list(self.field_map)!r})"
