# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
SQLite-backed DataStore with partitions, streaming inserters and query views.

Provides:
- SQLiteDataStore: one table per registered predicate; rows tagged with a partition name.
- SQLiteInserter: streams one fact at a time into a (predicate, partition) pair.
- SQLiteDatabase: query view over one writable partition plus read-only partitions.
- open_store: factory taking the Backend selector straight through.

Notes
- Backend.MEMORY uses an in-process ':memory:' database; Backend.DISK uses a file at
  'path', deleted first when truncate=True.
- Each (partition, args) pair is unique per predicate; duplicates raise DataStoreError.
- Inserts are committed when a query view is opened and when the store closes.
- close() is idempotent on stores and databases.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from psl_core.interfaces import (
    Backend,
    DataStoreError,
    GroundArgs,
    GroundAtom,
    Partition,
    Predicate,
)

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "./TransitivityBenchmark"


def _table(predicate: Predicate) -> str:
    return f'"pred_{predicate.name.lower()}"'


def _arg_columns(predicate: Predicate) -> List[str]:
    return [f"arg_{i}" for i in range(predicate.arity)]


class SQLiteInserter:
    """Streaming inserter for one predicate and one partition."""

    def __init__(self, store: "SQLiteDataStore", predicate: Predicate, partition: Partition) -> None:
        self._store = store
        self._predicate = predicate
        self._partition = partition
        cols = ["partition", *_arg_columns(predicate), "value"]
        marks = ", ".join("?" for _ in cols)
        self._sql = f"INSERT INTO {_table(predicate)} ({', '.join(cols)}) VALUES ({marks})"

    def _row(self, value: Optional[float], args: Sequence[Any]) -> List[Any]:
        p = self._predicate
        if len(args) != p.arity:
            raise DataStoreError(f"{p.name} expects {p.arity} arguments, got {len(args)}")
        coerced = [t.coerce(a) for t, a in zip(p.arg_types, args)]
        return [self._partition.name, *coerced, value]

    def _execute(self, row: List[Any]) -> None:
        conn = self._store._connection()
        try:
            conn.execute(self._sql, row)
        except sqlite3.IntegrityError as e:
            raise DataStoreError(
                f"Duplicate {self._predicate.name}{tuple(row[1:-1])} in partition {self._partition.name}"
            ) from e

    def insert(self, *args: Any) -> None:
        self._execute(self._row(None, args))

    def insert_value(self, value: float, *args: Any) -> None:
        v = float(value)
        if not math.isfinite(v) or not (0.0 <= v <= 1.0):
            raise DataStoreError(f"Truth value must lie in [0, 1], got {value!r}")
        self._execute(self._row(v, args))


class SQLiteDatabase:
    """Query view: reads from write + read partitions, writes to the write partition."""

    def __init__(
        self,
        store: "SQLiteDataStore",
        write_partition: Partition,
        closed_predicates: FrozenSet[Predicate],
        read_partitions: Sequence[Partition],
    ) -> None:
        self._store = store
        self.write_partition = write_partition
        self.read_partitions = tuple(read_partitions)
        self._closed = closed_predicates
        self._is_open = True

    @property
    def is_open(self) -> bool:
        return self._is_open

    def _check_open(self) -> sqlite3.Connection:
        if not self._is_open:
            raise DataStoreError("Database is closed")
        return self._store._connection()

    def is_closed(self, predicate: Predicate) -> bool:
        return predicate in self._closed

    def get_atoms(self, predicate: Predicate) -> List[GroundAtom]:
        conn = self._check_open()
        self._store._check_registered(predicate)
        names = [self.write_partition.name, *(p.name for p in self.read_partitions)]
        marks = ", ".join("?" for _ in names)
        cols = ", ".join(_arg_columns(predicate))
        sql = f"SELECT partition, {cols}, value FROM {_table(predicate)} WHERE partition IN ({marks}) ORDER BY rowid"
        atoms: List[GroundAtom] = []
        for row in conn.execute(sql, names):
            atoms.append(GroundAtom(predicate=predicate, args=tuple(row[1:-1]), value=row[-1], partition=row[0]))
        return atoms

    def commit(self, predicate: Predicate, values: Mapping[GroundArgs, float]) -> None:
        conn = self._check_open()
        if self.is_closed(predicate):
            raise DataStoreError(f"Cannot write values of closed predicate {predicate.name}")
        where = " AND ".join(f"{c} = ?" for c in _arg_columns(predicate))
        sql = f"UPDATE {_table(predicate)} SET value = ? WHERE partition = ? AND {where}"
        part = self.write_partition.name
        conn.executemany(sql, ((float(v), part, *args) for args, v in values.items()))
        conn.commit()

    def close(self) -> None:
        if not self._is_open:
            return
        self._is_open = False
        self._store._release(self)

    def __enter__(self) -> "SQLiteDatabase":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SQLiteDataStore:
    """
    DataStore backed by sqlite3.

    Parameters
    ----------
    backend : Backend
        MEMORY for a volatile in-process database, DISK for a file at 'path'.
    path : str | Path
        Location of the on-disk database (ignored for MEMORY).
    truncate : bool
        Remove any existing file at 'path' before opening (DISK only).
    """

    def __init__(self, backend: Backend, path: Union[str, Path] = DEFAULT_DB_PATH, truncate: bool = True) -> None:
        self.backend = backend
        self.path = Path(path)
        if backend is Backend.DISK:
            if truncate and self.path.exists():
                self.path.unlink()
            location = str(self.path)
        else:
            location = ":memory:"
        self._conn: Optional[sqlite3.Connection] = sqlite3.connect(location)
        self._predicates: Dict[str, Predicate] = {}
        self._partitions: Dict[str, Partition] = {}
        self._databases: List[SQLiteDatabase] = []
        logger.debug("opened %s store at %s", backend.value, location)

    # ---- lifecycle ----

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DataStoreError("DataStore is closed")
        return self._conn

    def _release(self, db: SQLiteDatabase) -> None:
        if db in self._databases:
            self._databases.remove(db)

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            for db in list(self._databases):
                db.close()
            self._conn.commit()
        finally:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SQLiteDataStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---- schema ----

    def register_predicate(self, predicate: Predicate) -> None:
        conn = self._connection()
        existing = self._predicates.get(predicate.name)
        if existing is not None:
            if existing != predicate:
                raise DataStoreError(f"Predicate {predicate.name} already registered with different types")
            return
        cols = _arg_columns(predicate)
        col_defs = ", ".join(f"{c} {t.sql_type} NOT NULL" for c, t in zip(cols, predicate.arg_types))
        conn.execute(
            f"CREATE TABLE IF NOT EXISTS {_table(predicate)} ("
            f"partition TEXT NOT NULL, {col_defs}, value REAL, "
            f"UNIQUE (partition, {', '.join(cols)}))"
        )
        self._predicates[predicate.name] = predicate

    def _check_registered(self, predicate: Predicate) -> None:
        if self._predicates.get(predicate.name) != predicate:
            raise DataStoreError(f"Predicate {predicate.name} is not registered with this store")

    # ---- partitions, insertion, views ----

    def get_partition(self, name: str) -> Partition:
        self._connection()
        part = self._partitions.get(name)
        if part is None:
            part = Partition(name)
            self._partitions[name] = part
        return part

    def get_inserter(self, predicate: Predicate, partition: Partition) -> SQLiteInserter:
        self._connection()
        self._check_registered(predicate)
        return SQLiteInserter(self, predicate, partition)

    def get_database(
        self,
        write_partition: Partition,
        closed_predicates: Iterable[Predicate] = (),
        read_partitions: Sequence[Partition] = (),
    ) -> SQLiteDatabase:
        conn = self._connection()
        if write_partition in read_partitions:
            raise DataStoreError(f"Partition {write_partition.name} cannot be both written and read-only")
        for db in self._databases:
            if db.write_partition == write_partition:
                raise DataStoreError(f"Partition {write_partition.name} is already open for writing")
        closed = frozenset(closed_predicates)
        for p in closed:
            self._check_registered(p)
        conn.commit()
        db = SQLiteDatabase(self, write_partition, closed, read_partitions)
        self._databases.append(db)
        return db


def open_store(backend: Backend, path: Union[str, Path] = DEFAULT_DB_PATH, truncate: bool = True) -> SQLiteDataStore:
    return SQLiteDataStore(backend, path, truncate)


__all__ = ["DEFAULT_DB_PATH", "SQLiteDataStore", "SQLiteDatabase", "SQLiteInserter", "open_store"]
