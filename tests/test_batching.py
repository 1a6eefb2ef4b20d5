import pytest

from smart_grid_producer.batching import BatchAccumulator


def test_signals_ready_at_exact_size() -> None:
    accumulator = BatchAccumulator(3)
    assert accumulator.add("a") is False
    assert accumulator.add("b") is False
    assert accumulator.add("c") is True
    assert accumulator.full


def test_take_resets_and_preserves_order() -> None:
    accumulator = BatchAccumulator(2)
    accumulator.add(1)
    accumulator.add(2)

    assert accumulator.take() == [1, 2]
    assert len(accumulator) == 0
    assert not accumulator


def test_add_to_full_batch_raises() -> None:
    accumulator = BatchAccumulator(1)
    accumulator.add("x")
    with pytest.raises(RuntimeError):
        accumulator.add("y")


def test_partial_batch_can_be_taken() -> None:
    accumulator = BatchAccumulator(5)
    accumulator.add("x")
    assert accumulator
    assert accumulator.take() == ["x"]


@pytest.mark.parametrize("size", [0, -1])
def test_rejects_invalid_size(size) -> None:
    with pytest.raises(ValueError):
        BatchAccumulator(size)
