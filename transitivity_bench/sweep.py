# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Sweep controller: repeated trials with cold-start isolation and running statistics.

Trial 0 is the cold start: reported on its own and excluded from every aggregate.
Trials 1..num_runs are folded into a RunningStats value (total, min, max) in a single
pass; the mean uses integer floor division, which equals truncation because all
samples are non-negative. Trials run strictly one after another, each with a fresh
store, model and dataset.

Report line (memory section only when memory is tracked; bytes // 1_048_576):
    Users: 10, Backend: memory, Runs: 3; Time (ms) -- Total: 18, Cold Start: 7, Min: 2, Max: 9, Mean: 6
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Tuple

from psl_core.interfaces import Backend
from transitivity_bench.config import BenchmarkConfig
from transitivity_bench.trial import TransitivityBenchmark, TrialResult

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024

TrialFn = Callable[[], TrialResult]
TrialCallback = Callable[[int, TrialResult], None]


@dataclass(frozen=True)
class RunningStats:
    count: int = 0
    total: int = 0
    minimum: Optional[int] = None
    maximum: Optional[int] = None

    def add(self, value: int) -> "RunningStats":
        if self.count == 0:
            return RunningStats(count=1, total=value, minimum=value, maximum=value)
        return RunningStats(
            count=self.count + 1,
            total=self.total + value,
            minimum=value if value < self.minimum else self.minimum,
            maximum=value if value > self.maximum else self.maximum,
        )

    @property
    def mean(self) -> int:
        if self.count == 0:
            raise ValueError("mean of an empty sample is undefined")
        return self.total // self.count

    def scaled(self, divisor: int) -> Tuple[int, int, int, int]:
        """(total, min, max, mean), each integer-divided by 'divisor'."""
        return (
            self.total // divisor,
            self.minimum // divisor,
            self.maximum // divisor,
            self.mean // divisor,
        )


@dataclass(frozen=True)
class SweepSummary:
    num_users: int
    backend: Backend
    num_runs: int
    cold_start: TrialResult
    time: RunningStats
    memory: Optional[RunningStats] = None

    def format_line(self) -> str:
        t = self.time
        line = (
            f"Users: {self.num_users}, Backend: {self.backend.value}, Runs: {self.num_runs}; "
            f"Time (ms) -- Total: {t.total}, Cold Start: {self.cold_start.elapsed_ms}, "
            f"Min: {t.minimum}, Max: {t.maximum}, Mean: {t.mean}"
        )
        if self.memory is not None:
            total, lo, hi, mean = self.memory.scaled(BYTES_PER_MB)
            cold = (self.cold_start.memory_bytes or 0) // BYTES_PER_MB
            line += (
                f"; Memory (MB) -- Total: {total}, Cold Start: {cold}, "
                f"Min: {lo}, Max: {hi}, Mean: {mean}"
            )
        return line


def fold_trials(results: Iterable[TrialResult]) -> Tuple[TrialResult, RunningStats, Optional[RunningStats]]:
    """
    Split off the cold start and fold the remaining results.

    Returns:
        (cold_start, time_stats, memory_stats); memory_stats is None when no warm trial
        carried a memory sample.
    """
    it = iter(results)
    try:
        cold_start = next(it)
    except StopIteration:
        raise ValueError("at least one trial (the cold start) is required") from None
    time_stats = RunningStats()
    memory_stats: Optional[RunningStats] = None
    for r in it:
        time_stats = time_stats.add(r.elapsed_ms)
        if r.memory_bytes is not None:
            memory_stats = (memory_stats or RunningStats()).add(r.memory_bytes)
    return cold_start, time_stats, memory_stats


def run_trial(config: BenchmarkConfig) -> TrialResult:
    """One full trial: fresh store, model and dataset, torn down before returning."""
    with TransitivityBenchmark(
        config.num_users,
        config.backend,
        db_path=config.db_path,
        seed=config.seed,
        config=config.inference,
    ) as tb:
        return tb.run(track_memory=config.track_memory)


def run_sweep(
    config: BenchmarkConfig,
    *,
    trial_fn: Optional[TrialFn] = None,
    on_trial: Optional[TrialCallback] = None,
) -> SweepSummary:
    """
    Run num_runs + 1 trials sequentially and summarize them.

    Raises:
        ValueError: if config.num_runs < 1 (checked before any trial runs).
        Exception: any failure from a trial propagates unchanged; nothing is retried.
    """
    if config.num_runs < 1:
        raise ValueError(f"Must have at least one run. Given: {config.num_runs}")

    def trials() -> Iterator[TrialResult]:
        for i in range(config.num_runs + 1):
            result = trial_fn() if trial_fn is not None else run_trial(config)
            logger.info(
                "%s trial %d/%d: %d ms",
                "cold" if i == 0 else "warm",
                i,
                config.num_runs,
                result.elapsed_ms,
            )
            if on_trial is not None:
                on_trial(i, result)
            yield result

    cold_start, time_stats, memory_stats = fold_trials(trials())
    return SweepSummary(
        num_users=config.num_users,
        backend=config.backend,
        num_runs=config.num_runs,
        cold_start=cold_start,
        time=time_stats,
        memory=memory_stats if config.track_memory else None,
    )


__all__ = [
    "BYTES_PER_MB",
    "TrialCallback",
    "RunningStats",
    "SweepSummary",
    "fold_trials",
    "run_trial",
    "run_sweep",
]
