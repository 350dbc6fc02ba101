"""
Tests for item processors.

Validates:
- Function, filter and composite processors
- Pydantic model mapping via field_map
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from batch_etl.jobs.pay import Pay, Pay2
from batch_etl.processors import (
    CompositeProcessor,
    FilterProcessor,
    FunctionProcessor,
    ModelMappingProcessor,
)


@pytest.fixture
def pay():
    return Pay(id=7, amount=1500, tx_name="trade7", tx_date_time=datetime(2024, 3, 1, 12, 0))


@pytest.fixture
def pay_to_pay2():
    return ModelMappingProcessor(
        Pay2,
        field_map={
            "amount": lambda p: p.amount,
            "tx_name": lambda p: p.tx_name,
            "tx_date_time": lambda p: p.tx_date_time,
        },
    )


def test_function_processor_applies_function():
    processor = FunctionProcessor(lambda n: n + 1)

    assert processor.process(1) == 2


def test_function_processor_can_filter():
    processor = FunctionProcessor(lambda n: None if n < 0 else n)

    assert processor.process(-1) is None
    assert processor.process(3) == 3


def test_filter_processor_keeps_or_drops():
    processor = FilterProcessor(lambda n: n % 2 == 0)

    assert processor.process(4) == 4
    assert processor.process(5) is None


def test_composite_processor_chains_outputs():
    processor = CompositeProcessor([
        FunctionProcessor(lambda n: n * 2),
        FunctionProcessor(lambda n: n + 1),
    ])

    assert processor.process(5) == 11


def test_composite_processor_stops_at_first_filter():
    """Test that processors after a filtering one never see the record."""
    seen = []

    def record(n):
        seen.append(n)
        return n

    processor = CompositeProcessor([
        FilterProcessor(lambda n: n > 0),
        FunctionProcessor(record),
    ])

    assert processor.process(-3) is None
    assert processor.process(3) == 3
    assert seen == [3]


def test_composite_processor_requires_processors():
    with pytest.raises(ValueError):
        CompositeProcessor([])


def test_model_mapping_builds_pay2(pay, pay_to_pay2):
    """Test that a Pay is mapped into a Pay2 without its id."""
    pay2 = pay_to_pay2.process(pay)

    assert isinstance(pay2, Pay2)
    assert pay2.amount == 1500
    assert pay2.tx_name == "trade7"
    assert pay2.tx_date_time == datetime(2024, 3, 1, 12, 0)
    assert not hasattr(pay2, "id")


def test_model_mapping_validates_output(pay_to_pay2):
    """Test that mapped values go through pydantic validation."""
    bad = Pay.model_construct(id=1, amount="not a number", tx_name="x", tx_date_time=datetime(2024, 1, 1))

    with pytest.raises(ValidationError):
        pay_to_pay2.process(bad)


def test_model_mapping_rejects_unknown_fields():
    with pytest.raises(ValueError) as exc_info:
        ModelMappingProcessor(Pay2, field_map={"id": lambda p: p.id})

    assert "id" in str(exc_info.value)
