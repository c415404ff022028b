# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Logging utilities for the benchmark CLIs.

Exports:
- configure_logging: stderr logging setup for entry points (library modules only
  create loggers).
- JSONLLogger: newline-delimited JSON writer for optional per-trial diagnostics.
- ensure_dir: create a directory (parents included) if missing.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, TextIO, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def ensure_dir(path: Path) -> None:
    """Create the directory if it does not already exist (parents included)."""
    Path(path).mkdir(parents=True, exist_ok=True)


def configure_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> None:
    """Route log records to stderr; stdout stays reserved for the summary line."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=stream if stream is not None else sys.stderr,
        force=True,
    )


class JSONLLogger:
    """
    Newline-delimited JSON writer with append semantics.

    Parameters
    ----------
    path : str | Path
        Target .jsonl file path.
    auto_timestamp : bool
        If True, inject a 'ts' ISO8601 string when not present in the record.
    """

    def __init__(self, path: Union[str, Path], auto_timestamp: bool = False) -> None:
        self.path = Path(path)
        self.auto_timestamp = bool(auto_timestamp)
        ensure_dir(self.path.parent)
        self._f: Optional[TextIO] = self.path.open("a", encoding="utf-8")

    def log(self, record: Mapping[str, Any]) -> None:
        """Append a single JSON record as one line."""
        if self._f is None:
            raise ValueError(f"JSONLLogger for {self.path} is closed")
        data = dict(record)
        if self.auto_timestamp and "ts" not in data:
            data["ts"] = datetime.now(timezone.utc).isoformat()
        self._f.write(json.dumps(data, ensure_ascii=False, sort_keys=True) + "\n")

    def flush(self) -> None:
        if self._f is not None:
            self._f.flush()

    def close(self) -> None:
        try:
            if self._f is not None:
                self._f.flush()
                self._f.close()
        finally:
            self._f = None

    def __enter__(self) -> "JSONLLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["LOG_FORMAT", "ensure_dir", "configure_logging", "JSONLLogger"]
