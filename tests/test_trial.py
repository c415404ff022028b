# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Tests for the trial runner: timing, clamping, memory sampling and resource release.
"""

from __future__ import annotations

from typing import Iterator, List

import pytest

from psl_core.datastore import open_store
from psl_core.interfaces import Backend, PSLError
from psl_core.model import Model
from transitivity_bench.dataset import load_data
from transitivity_bench.model import define_model
from transitivity_bench.trial import TransitivityBenchmark, TrialResult, process_memory_bytes, run_inference


def _clock(*readings: float):
    it: Iterator[float] = iter(readings)
    return lambda: next(it)


class _TrackingInference:
    """Stand-in for MPEInference that records its lifecycle."""

    instances: List["_TrackingInference"] = []

    def __init__(self, model, database, config, *, fail: bool = False):
        self.database = database
        self.fail = fail
        self.closed = False
        self.db_open_during_solve = None
        _TrackingInference.instances.append(self)

    def mpe_inference(self):
        self.db_open_during_solve = self.database.is_open
        if self.fail:
            raise PSLError("solver exploded")
        return None

    def close(self):
        self.closed = True


def _populated(n: int = 3):
    store = open_store(Backend.MEMORY)
    model = Model(store)
    similar, same = define_model(model)
    load_data(store, similar, same, n)
    return store, model, similar


def test_measured_clamps_negative_samples():
    assert TrialResult.measured(-3.2) == TrialResult(0, None)
    assert TrialResult.measured(12.9, -100) == TrialResult(12, 0)
    assert TrialResult.measured(7, 2048.0) == TrialResult(7, 2048)


def test_elapsed_is_milliseconds_truncated():
    store, model, similar = _populated()
    result = run_inference(model, store, {similar}, clock=_clock(10.0, 10.0429))
    assert result.elapsed_ms == 42
    assert result.memory_bytes is None
    store.close()


def test_backwards_clock_is_clamped_to_zero():
    store, model, similar = _populated()
    result = run_inference(model, store, {similar}, clock=_clock(5.0, 4.0))
    assert result.elapsed_ms == 0
    store.close()


def test_memory_is_sampled_while_resources_are_held():
    store, model, similar = _populated()
    _TrackingInference.instances.clear()
    seen = {}

    def probe():
        inst = _TrackingInference.instances[-1]
        seen["closed"] = inst.closed
        seen["db_open"] = inst.database.is_open
        return -5

    result = run_inference(
        model, store, {similar}, track_memory=True, memory_probe=probe, inference_factory=_TrackingInference
    )
    assert seen == {"closed": False, "db_open": True}
    assert result.memory_bytes == 0
    inst = _TrackingInference.instances[-1]
    assert inst.closed and not inst.database.is_open
    store.close()


def test_resources_released_when_solve_fails():
    store, model, similar = _populated()
    _TrackingInference.instances.clear()

    def failing(m, db, cfg):
        return _TrackingInference(m, db, cfg, fail=True)

    with pytest.raises(PSLError):
        run_inference(model, store, {similar}, inference_factory=failing)
    inst = _TrackingInference.instances[-1]
    assert inst.db_open_during_solve is True
    assert inst.closed
    assert not inst.database.is_open
    # The targets partition can be opened for writing again.
    store.get_database(store.get_partition("targets"), {similar}, []).close()
    store.close()


def test_process_memory_is_positive():
    assert process_memory_bytes() > 0


def test_benchmark_runs_and_closes_store():
    with TransitivityBenchmark(3, Backend.MEMORY) as tb:
        result = tb.run(track_memory=True)
        store = tb.data_store
    assert result.elapsed_ms >= 0
    assert result.memory_bytes is not None and result.memory_bytes > 0
    assert tb.data_store is None
    assert not store.is_open
    tb.close()


def test_benchmark_on_disk(tmp_path):
    path = tmp_path / "TransitivityBenchmark"
    with TransitivityBenchmark(3, Backend.DISK, db_path=path) as tb:
        tb.run()
    assert path.exists()


def test_benchmark_store_closed_when_trial_fails():
    opened = []

    def factory(backend, path, truncate):
        store = open_store(backend, path, truncate)
        opened.append(store)
        return store

    tb = TransitivityBenchmark(3, Backend.MEMORY, store_factory=factory)
    with pytest.raises(PSLError):
        with tb:
            tb.run(inference_factory=lambda m, db, cfg: _TrackingInference(m, db, cfg, fail=True))
    assert not opened[0].is_open


def test_benchmark_rejects_fewer_than_one_user():
    opened = []
    with pytest.raises(ValueError):
        TransitivityBenchmark(0, store_factory=lambda *a: opened.append(a))
    assert opened == []


def test_closed_benchmark_cannot_run():
    tb = TransitivityBenchmark(2)
    tb.close()
    with pytest.raises(RuntimeError):
        tb.run()
