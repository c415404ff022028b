# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Core typed interfaces and data models for the weighted-logic collaborator.

This module defines:
- Enumerations: ConstantType (argument types), Backend (volatile vs. persistent store)
- Data models: Predicate, Partition, GroundAtom
- Protocols (interfaces) consumed by the benchmark:
    * Inserter (streaming fact insertion into one partition)
    * Database (query view over a write partition plus read-only partitions)
    * DataStore (partitions, inserters, query views)
    * InferenceApplication (solve once, then release)
- Error hierarchy: PSLError, ModelError, DataStoreError

References:
- psl_core.datastore (SQLite-backed DataStore)
- psl_core.inference (MPE inference over a Database)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import (
    Any,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)


# ---------- Errors ----------


class PSLError(Exception):
    """Base class for failures raised by the inference/storage collaborator."""


class ModelError(PSLError):
    """Invalid predicate or rule declaration."""


class DataStoreError(PSLError):
    """Misuse of a data store, partition, inserter or database."""


# ---------- Enumerations ----------


class ConstantType(enum.Enum):
    UNIQUE_ID = "UniqueID"
    STRING = "String"
    INTEGER = "Integer"

    @property
    def sql_type(self) -> str:
        return "INTEGER" if self is ConstantType.INTEGER else "TEXT"

    def coerce(self, value: Any) -> Any:
        if self is ConstantType.INTEGER:
            return int(value)
        return str(value)


class Backend(enum.Enum):
    """Storage backend selector passed through to the data store."""

    DISK = "disk"
    MEMORY = "memory"

    @classmethod
    def parse(cls, text: str) -> "Backend":
        for member in cls:
            if member.value == text:
                return member
        choices = ", ".join(repr(m.value) for m in cls)
        raise ValueError(f"Unknown backend {text!r}; expected one of {choices}")


# ---------- Entities ----------


@dataclass(frozen=True)
class Predicate:
    name: str
    arg_types: Tuple[ConstantType, ...]

    def __post_init__(self) -> None:
        if not self.name or not self.name.isidentifier():
            raise ModelError(f"Invalid predicate name: {self.name!r}")
        if not self.arg_types:
            raise ModelError(f"Predicate {self.name} needs at least one argument")

    @property
    def arity(self) -> int:
        return len(self.arg_types)


@dataclass(frozen=True)
class Partition:
    name: str


GroundArgs = Tuple[Any, ...]


@dataclass(frozen=True)
class GroundAtom:
    """One stored fact: predicate, constant arguments, optional truth value and its partition."""
    predicate: Predicate
    args: GroundArgs
    value: Optional[float] = None
    partition: Optional[str] = None


# ---------- Protocols (interfaces) ----------


@runtime_checkable
class Inserter(Protocol):
    """Streams facts of one predicate into one partition."""

    def insert(self, *args: Any) -> None:
        """Insert a fact without a value (a target to be inferred)."""
        ...

    def insert_value(self, value: float, *args: Any) -> None:
        """Insert a fact with a truth value in [0, 1] (observed evidence)."""
        ...


@runtime_checkable
class Database(Protocol):
    """Query view combining one writable partition with read-only partitions."""

    def get_atoms(self, predicate: Predicate) -> Sequence[GroundAtom]:
        """All atoms of 'predicate' visible in this view, in a stable order."""
        ...

    def is_closed(self, predicate: Predicate) -> bool:
        """Closed predicates are fully observed; their atoms are constants."""
        ...

    def commit(self, predicate: Predicate, values: Mapping[GroundArgs, float]) -> None:
        """Write inferred values back into the writable partition."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class DataStore(Protocol):
    """Storage for facts, subdivided into named partitions."""

    def register_predicate(self, predicate: Predicate) -> None:
        ...

    def get_partition(self, name: str) -> Partition:
        ...

    def get_inserter(self, predicate: Predicate, partition: Partition) -> Inserter:
        ...

    def get_database(
        self,
        write_partition: Partition,
        closed_predicates: Iterable[Predicate],
        read_partitions: Sequence[Partition],
    ) -> Database:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class InferenceApplication(Protocol):
    """A single solve over a model and a database."""

    def mpe_inference(self) -> Any:
        ...

    def close(self) -> None:
        ...


__all__ = [
    "PSLError",
    "ModelError",
    "DataStoreError",
    "ConstantType",
    "Backend",
    "Predicate",
    "Partition",
    "GroundArgs",
    "GroundAtom",
    "Inserter",
    "Database",
    "DataStore",
    "InferenceApplication",
]
