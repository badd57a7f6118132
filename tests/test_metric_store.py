from __future__ import annotations

import numpy as np
import pytest

from devtoolbox.telemetry.buffers import CPU_LOAD, MEMORY_USAGE, MetricStore
from devtoolbox.telemetry.models import Sample


def _fill(store: MetricStore, metric: str, count: int) -> list[Sample]:
    samples = [Sample(float(i), float(i * 10)) for i in range(count)]
    for sample in samples:
        store.push(metric, sample)
    return samples


def test_push_evicts_oldest_beyond_capacity() -> None:
    store = MetricStore(capacity=3)
    pushed = _fill(store, CPU_LOAD, 5)

    assert store.read(CPU_LOAD) == pushed[-3:]
    assert store.latest(CPU_LOAD) == pushed[-1]


def test_set_capacity_trims_immediately_to_newest() -> None:
    store = MetricStore(capacity=10)
    pushed = _fill(store, CPU_LOAD, 8)

    store.set_capacity(CPU_LOAD, 3)

    assert store.read(CPU_LOAD) == pushed[-3:]


def test_growing_capacity_never_backfills() -> None:
    store = MetricStore(capacity=2)
    pushed = _fill(store, CPU_LOAD, 4)

    store.set_capacity(CPU_LOAD, 10)

    assert store.read(CPU_LOAD) == pushed[-2:]


def test_series_are_independent() -> None:
    store = MetricStore(capacity=5)
    _fill(store, CPU_LOAD, 5)
    _fill(store, MEMORY_USAGE, 2)

    store.set_capacity(CPU_LOAD, 1)
    store.clear(MEMORY_USAGE)

    assert len(store.read(CPU_LOAD)) == 1
    assert store.read(MEMORY_USAGE) == []
    assert store.series(MEMORY_USAGE).capacity == 5


def test_set_capacity_all_applies_to_existing_and_new_series() -> None:
    store = MetricStore(capacity=5)
    _fill(store, CPU_LOAD, 5)

    store.set_capacity_all(2)

    assert len(store.read(CPU_LOAD)) == 2
    assert store.series("battery_level").capacity == 2
    with pytest.raises(ValueError):
        store.set_capacity_all(0)


def test_unknown_metric_reads_empty() -> None:
    store = MetricStore()
    assert store.read("nope") == []
    assert store.latest("nope") is None
    assert store.metrics() == []


def test_arrays_for_plotting() -> None:
    store = MetricStore(capacity=4)
    _fill(store, CPU_LOAD, 3)

    times, values = store.arrays(CPU_LOAD)

    np.testing.assert_array_equal(times, np.array([0.0, 1.0, 2.0]))
    np.testing.assert_array_equal(values, np.array([0.0, 10.0, 20.0]))
    assert times.dtype == np.float64
