# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Benchmark configuration, command-line validation and YAML sweep loading.

Exit codes (validation happens before any resource is opened):
    1  wrong argument count (or any other argparse usage error)
    2  backend not one of 'disk' / 'memory'
    3  number of users is not an int
    4  number of users < 1
    5  number of runs is not an int
    6  number of runs < 1
    7  the inference/storage collaborator failed during the sweep
"""

from __future__ import annotations

import argparse
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml  # pyyaml (runtime dep)

from psl_core.datastore import DEFAULT_DB_PATH
from psl_core.inference import InferenceConfig
from psl_core.interfaces import Backend
from transitivity_bench.dataset import SEED

EXIT_USAGE = 1
EXIT_BAD_BACKEND = 2
EXIT_BAD_USERS = 3
EXIT_USERS_RANGE = 4
EXIT_BAD_RUNS = 5
EXIT_RUNS_RANGE = 6
EXIT_COLLABORATOR_FAILURE = 7

PROG = "run_transitivity_benchmark"
USAGE = f"USAGE: {PROG} <disk|memory> <number of users> <number of runs>"
_INT_RE = re.compile(r"[+-]?[0-9]+")


class UsageError(Exception):
    """Invalid invocation; carries the process exit code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = int(code)
        self.message = message


@dataclass(frozen=True)
class BenchmarkConfig:
    backend: Backend
    num_users: int
    num_runs: int
    track_memory: bool = False
    db_path: str = DEFAULT_DB_PATH
    seed: int = SEED
    inference: InferenceConfig = field(default_factory=InferenceConfig)


def _parse_int(text: Any, what: str, code: int) -> int:
    if isinstance(text, bool):
        raise UsageError(code, f"Number of {what} must be an int. (Found: '{text}')")
    if isinstance(text, int):
        return text
    s = str(text)
    # plain ASCII decimal only: no whitespace, underscores or other digit sets
    if _INT_RE.fullmatch(s) is None:
        raise UsageError(code, f"Number of {what} must be an int. (Found: '{text}')")
    return int(s)


def build_config(
    backend: Any,
    num_users: Any,
    num_runs: Any,
    **options: Any,
) -> BenchmarkConfig:
    """Validate raw values in CLI order and build a BenchmarkConfig."""
    try:
        parsed_backend = Backend.parse(str(backend))
    except ValueError:
        raise UsageError(
            EXIT_BAD_BACKEND, f"Database type must be 'disk' or 'memory'. (Found: '{backend}')"
        ) from None

    users = _parse_int(num_users, "users", EXIT_BAD_USERS)
    if users < 1:
        raise UsageError(EXIT_USERS_RANGE, f"Must have at least one user. Given: {users}")

    runs = _parse_int(num_runs, "runs", EXIT_BAD_RUNS)
    if runs < 1:
        raise UsageError(EXIT_RUNS_RANGE, f"Must have at least one run. Given: {runs}")

    return BenchmarkConfig(backend=parsed_backend, num_users=users, num_runs=runs, **options)


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> "NoReturn":  # type: ignore[name-defined]
        raise UsageError(EXIT_USAGE, f"{message}\n{USAGE}")


def make_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog=PROG,
        description="Time MPE inference on a synthetic transitivity workload.",
    )
    p.add_argument("backend", help="Storage backend: 'disk' or 'memory'.")
    p.add_argument("num_users", help="Number of users (positive int).")
    p.add_argument("num_runs", help="Number of measured runs after the cold start (positive int).")
    p.add_argument("--memory", action="store_true", help="Also sample process memory after each solve.")
    p.add_argument("--db-path", type=str, default=DEFAULT_DB_PATH, help=f"On-disk database path (default: {DEFAULT_DB_PATH}).")
    p.add_argument("--log-jsonl", type=str, default=None, help="Append per-trial diagnostics to this JSONL file.")
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")
    return p


@dataclass(frozen=True)
class CliOptions:
    config: BenchmarkConfig
    log_jsonl: Optional[str] = None
    verbose: bool = False


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> CliOptions:
    """
    Parse and validate command-line arguments.

    Raises:
        UsageError: with the documented exit code.
    """
    args = make_parser().parse_args(argv)
    cfg = build_config(
        args.backend,
        args.num_users,
        args.num_runs,
        track_memory=bool(args.memory),
        db_path=str(args.db_path),
    )
    return CliOptions(config=cfg, log_jsonl=args.log_jsonl, verbose=bool(args.verbose))


# -------------------------
# YAML sweep definitions
# -------------------------


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML at {path} must be a mapping at top-level.")
    return data


def load_sweep_config(path: Union[str, Path]) -> List[BenchmarkConfig]:
    """
    Load a sweep file:

        memory: false            # optional, applies to every entry
        runs:
          - {backend: memory, users: 10, runs: 100}
          - {backend: disk, users: 101, runs: 10, memory: true}

    Raises:
        ValueError: malformed structure.
        UsageError: an entry fails the same validation as the command line.
    """
    data = _load_yaml(Path(path))
    entries = data.get("runs")
    if not isinstance(entries, list) or not entries:
        raise ValueError(f"Sweep file {path} must define a non-empty 'runs' list.")
    default_memory = bool(data.get("memory", False))
    out: List[BenchmarkConfig] = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"Sweep entry #{i} must be a mapping, got {type(entry).__name__}.")
        missing = [k for k in ("backend", "users", "runs") if k not in entry]
        if missing:
            raise ValueError(f"Sweep entry #{i} is missing {', '.join(missing)}.")
        out.append(
            build_config(
                entry["backend"],
                entry["users"],
                entry["runs"],
                track_memory=bool(entry.get("memory", default_memory)),
            )
        )
    return out


def to_cli_argv(cfg: BenchmarkConfig) -> List[str]:
    argv = [cfg.backend.value, str(cfg.num_users), str(cfg.num_runs)]
    if cfg.track_memory:
        argv.append("--memory")
    if cfg.db_path != DEFAULT_DB_PATH:
        argv.extend(["--db-path", cfg.db_path])
    return argv


__all__ = [
    "EXIT_USAGE",
    "EXIT_BAD_BACKEND",
    "EXIT_BAD_USERS",
    "EXIT_USERS_RANGE",
    "EXIT_BAD_RUNS",
    "EXIT_RUNS_RANGE",
    "EXIT_COLLABORATOR_FAILURE",
    "UsageError",
    "BenchmarkConfig",
    "CliOptions",
    "build_config",
    "make_parser",
    "parse_cli_args",
    "load_sweep_config",
    "to_cli_argv",
]
