#!/usr/bin/env python3
# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Sequential sweep driver over a YAML definition (default: configs/sweep.yaml).

Each configuration runs in a fresh interpreter so that no memory or warm-up state
leaks between configurations. Summary lines are forwarded to stdout in order; the
sweep stops at the first failing configuration.

Exit codes
  0   every configuration succeeded
  1   the sweep file could not be read or is malformed
  2-6 an entry failed validation (same codes as the single-run CLI)
  60  a configuration failed to run

Usage:
  python -m scripts.run_sweep --config configs/sweep.yaml
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import yaml

from transitivity_bench.config import EXIT_USAGE, UsageError, load_sweep_config, to_cli_argv

EXIT_RUN_FAILED = 60
RUNNER_MODULE = "scripts.run_transitivity_benchmark"

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


def _base_dir() -> Path:
    # Resolve project root assuming this script resides under ./scripts/
    return Path(__file__).resolve().parent.parent


def _err(msg: str) -> None:
    ts = datetime.now().astimezone().strftime("%Y-%m-%dT%H:%M:%S%z")
    sys.stderr.write(f"[{ts}]: {msg.rstrip()}\n")


def build_commands(config_path: str, python: str = sys.executable) -> List[List[str]]:
    return [[python, "-m", RUNNER_MODULE, *to_cli_argv(cfg)] for cfg in load_sweep_config(config_path)]


def run_main(
    config_path: Optional[str] = None,
    *,
    python: str = sys.executable,
    runner: Runner = subprocess.run,
) -> int:
    path = config_path or str(_base_dir() / "configs" / "sweep.yaml")
    try:
        commands = build_commands(path, python)
    except UsageError as e:
        _err(f"Invalid sweep entry in {path}: {e.message}")
        return e.code
    except (OSError, ValueError, yaml.YAMLError) as e:
        _err(f"Cannot load sweep file {path}: {e}")
        return EXIT_USAGE

    for cmd in commands:
        proc = runner(cmd, capture_output=True, text=True, cwd=str(_base_dir()))
        if proc.stdout:
            sys.stdout.write(proc.stdout)
            sys.stdout.flush()
        if proc.returncode != 0:
            if proc.stderr:
                sys.stderr.write(proc.stderr)
            _err(f"Failed to run: {' '.join(cmd[2:])} (exit {proc.returncode})")
            return EXIT_RUN_FAILED
    return 0


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="run_sweep",
        description="Run the transitivity benchmark over every configuration in a YAML sweep file.",
    )
    p.add_argument("--config", type=str, default=None, help="Sweep YAML (default: configs/sweep.yaml).")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    return run_main(args.config)


if __name__ == "__main__":
    raise SystemExit(main())


__all__ = ["run_main", "main", "build_commands"]
