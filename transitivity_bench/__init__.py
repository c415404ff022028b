# Transitivity benchmark — orchestration package
# License: MIT

"""
Benchmark orchestration for timing MPE inference on a synthetic transitivity workload.

Primary exports
- Model definition: define_model, ground_rule_counts, expected_ground_rules
- Dataset: load_data, iter_similarity_facts, SEED
- Trials: TransitivityBenchmark, TrialResult, run_inference
- Sweeps: run_sweep, fold_trials, RunningStats, SweepSummary
- Config: BenchmarkConfig, UsageError, parse_cli_args, load_sweep_config

See:
- scripts/run_transitivity_benchmark.py (single configuration CLI)
- scripts/run_sweep.py (sequential sweep over a YAML definition)
"""

from __future__ import annotations

from .model import define_model, ground_rule_counts, expected_ground_rules, GroundRuleCounts
from .dataset import SEED, load_data, iter_similarity_facts, SimilarityFact
from .trial import TransitivityBenchmark, TrialResult, run_inference
from .config import BenchmarkConfig, UsageError, parse_cli_args, load_sweep_config
from .sweep import RunningStats, SweepSummary, fold_trials, run_sweep, run_trial

__all__ = [
    "define_model",
    "ground_rule_counts",
    "expected_ground_rules",
    "GroundRuleCounts",
    "SEED",
    "load_data",
    "iter_similarity_facts",
    "SimilarityFact",
    "TransitivityBenchmark",
    "TrialResult",
    "run_inference",
    "BenchmarkConfig",
    "UsageError",
    "parse_cli_args",
    "load_sweep_config",
    "RunningStats",
    "SweepSummary",
    "fold_trials",
    "run_sweep",
    "run_trial",
]
