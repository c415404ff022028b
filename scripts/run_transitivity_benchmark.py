#!/usr/bin/env python3
# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Transitivity benchmark CLI: one (backend, users, runs) configuration per invocation.

Runs runs + 1 sequential trials (the first is the cold start), then prints exactly
one summary line to stdout and exits 0. Diagnostics go to stderr.

Exit codes
  1  wrong argument count, or the --log-jsonl file cannot be opened
  2  unknown backend
  3  number of users not an int
  4  number of users < 1
  5  number of runs is not an int
  6  number of runs < 1
  7  inference/storage failure during the sweep (no partial report)

Usage:
  python -m scripts.run_transitivity_benchmark memory 10 100
  python -m scripts.run_transitivity_benchmark disk 22 50 --memory --log-jsonl trials.jsonl
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from transitivity_bench.config import (
    EXIT_COLLABORATOR_FAILURE,
    EXIT_USAGE,
    BenchmarkConfig,
    UsageError,
    parse_cli_args,
)
from transitivity_bench.logging_utils import JSONLLogger, configure_logging
from transitivity_bench.sweep import TrialCallback, run_sweep
from transitivity_bench.trial import TrialResult

logger = logging.getLogger("transitivity_bench.cli")


def _trial_recorder(trial_log: JSONLLogger, cfg: BenchmarkConfig) -> TrialCallback:
    def on_trial(index: int, result: TrialResult) -> None:
        trial_log.log(
            {
                "event": "trial",
                "index": index,
                "cold_start": index == 0,
                "elapsed_ms": result.elapsed_ms,
                "memory_bytes": result.memory_bytes,
                "users": cfg.num_users,
                "backend": cfg.backend.value,
            }
        )

    return on_trial


def run_main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Validate arguments, run the sweep and print the summary line.

    Returns:
        Process exit code (0 on success).
    """
    try:
        opts = parse_cli_args(argv)
    except UsageError as e:
        sys.stderr.write(e.message.rstrip() + "\n")
        return e.code

    configure_logging(opts.verbose)
    cfg = opts.config
    trial_log: Optional[JSONLLogger] = None
    on_trial: Optional[TrialCallback] = None
    if opts.log_jsonl:
        try:
            trial_log = JSONLLogger(opts.log_jsonl, auto_timestamp=True)
        except OSError as e:
            sys.stderr.write(f"Cannot open --log-jsonl {opts.log_jsonl}: {e}\n")
            return EXIT_USAGE
        on_trial = _trial_recorder(trial_log, cfg)

    try:
        summary = run_sweep(cfg, on_trial=on_trial)
    except Exception as e:
        logger.debug("sweep aborted", exc_info=True)
        sys.stderr.write(f"{type(e).__name__}: {e}\n")
        return EXIT_COLLABORATOR_FAILURE
    finally:
        if trial_log is not None:
            trial_log.close()

    sys.stdout.write(summary.format_line() + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(run_main())


__all__ = ["run_main"]
