# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Trial runner: one define -> load -> infer cycle with timing and optional memory sampling.

Only the solve call is timed. The memory sample (process resident set size via psutil)
is taken right after the solve and before the query view and inference handle are
released. Every acquired resource is released on every exit path.
"""

from __future__ import annotations

import logging
import time
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Callable, Optional, Union

import psutil

from psl_core.datastore import DEFAULT_DB_PATH, open_store
from psl_core.inference import InferenceConfig, MPEInference
from psl_core.interfaces import Backend, DataStore, InferenceApplication, Predicate
from psl_core.model import Model
from transitivity_bench.dataset import PARTITION_OBSERVATIONS, PARTITION_TARGETS, SEED, load_data
from transitivity_bench.model import define_model

logger = logging.getLogger(__name__)

Clock = Callable[[], float]  # seconds, monotonic
MemoryProbe = Callable[[], int]  # bytes
InferenceFactory = Callable[[Model, object, Optional[InferenceConfig]], InferenceApplication]
StoreFactory = Callable[[Backend, Union[str, Path], bool], DataStore]


def process_memory_bytes() -> int:
    return int(psutil.Process().memory_info().rss)


@dataclass(frozen=True)
class TrialResult:
    elapsed_ms: int
    memory_bytes: Optional[int] = None

    @classmethod
    def measured(cls, elapsed_ms: float, memory_bytes: Optional[float] = None) -> "TrialResult":
        """Build a result, clamping negative samples (clock skew, probe artifacts) to 0."""
        mem = None if memory_bytes is None else max(0, int(memory_bytes))
        return cls(elapsed_ms=max(0, int(elapsed_ms)), memory_bytes=mem)


def run_inference(
    model: Model,
    data_store: DataStore,
    closed: AbstractSet[Predicate],
    *,
    config: Optional[InferenceConfig] = None,
    track_memory: bool = False,
    clock: Clock = time.perf_counter,
    memory_probe: MemoryProbe = process_memory_bytes,
    inference_factory: InferenceFactory = MPEInference,
) -> TrialResult:
    targets = data_store.get_partition(PARTITION_TARGETS)
    observations = data_store.get_partition(PARTITION_OBSERVATIONS)

    with closing(data_store.get_database(targets, closed, [observations])) as db:
        with closing(inference_factory(model, db, config)) as mpe:
            start = clock()
            mpe.mpe_inference()
            elapsed_ms = (clock() - start) * 1000.0
            memory = memory_probe() if track_memory else None

    result = TrialResult.measured(elapsed_ms, memory)
    logger.debug("trial finished: %s", result)
    return result


class TransitivityBenchmark:
    """
    A benchmark using transitivity rules; one instance is one trial.

    The number of users dictates how many ground rules there will be:
    n^2 * (n - 1) for n users.

    Usage:
        with TransitivityBenchmark(10, Backend.MEMORY) as tb:
            result = tb.run()
    """

    def __init__(
        self,
        num_users: int,
        backend: Backend = Backend.MEMORY,
        *,
        db_path: Union[str, Path] = DEFAULT_DB_PATH,
        seed: int = SEED,
        config: Optional[InferenceConfig] = None,
        store_factory: StoreFactory = open_store,
    ) -> None:
        if num_users < 1:
            raise ValueError(f"Must have at least one user. Given: {num_users}")
        self.num_users = int(num_users)
        self.backend = backend
        self.seed = int(seed)
        self.config = config
        self.data_store: Optional[DataStore] = store_factory(backend, db_path, True)
        self.model = Model(self.data_store)

    def run(self, *, track_memory: bool = False, **measure_kwargs) -> TrialResult:
        if self.data_store is None:
            raise RuntimeError("TransitivityBenchmark is closed")
        similar, same = define_model(self.model)
        load_data(self.data_store, similar, same, self.num_users, seed=self.seed)
        return run_inference(
            self.model,
            self.data_store,
            {similar},
            config=self.config,
            track_memory=track_memory,
            **measure_kwargs,
        )

    def close(self) -> None:
        if self.data_store is not None:
            try:
                self.data_store.close()
            finally:
                self.data_store = None

    def __enter__(self) -> "TransitivityBenchmark":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "TrialResult",
    "process_memory_bytes",
    "run_inference",
    "TransitivityBenchmark",
]
