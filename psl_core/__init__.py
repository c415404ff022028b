# Weighted-logic collaborator — Core package
# License: MIT

"""
Core package exposing typed interfaces and default backends for weighted-logic inference.

Primary modules
- interfaces: typed data models, Protocols and errors
- rules: textual rule syntax and clause-form rule templates
- model: predicate and rule registry
- datastore: SQLite-backed DataStore (volatile or on-disk)
- grounding: rule instantiation into a sparse linear program
- inference: MPE inference with L-BFGS-B

This __init__ consolidates common exports for convenience:
    from psl_core import (
        Backend, ConstantType, Predicate, Partition, Model,
        SQLiteDataStore, open_store, MPEInference, InferenceConfig,
    )
"""

from __future__ import annotations

__all__ = [
    # Entities and enums
    "Backend",
    "ConstantType",
    "Predicate",
    "Partition",
    "GroundAtom",
    # Errors
    "PSLError",
    "ModelError",
    "DataStoreError",
    # Protocols
    "Inserter",
    "Database",
    "DataStore",
    "InferenceApplication",
    # Rules and model
    "LogicalRule",
    "parse_rule",
    "Model",
    # Default backends
    "SQLiteDataStore",
    "open_store",
    "MPEInference",
    "InferenceConfig",
    "InferenceResult",
    # Version
    "__version__",
]

__version__ = "0.1.0"

from .interfaces import (
    Backend,
    ConstantType,
    Predicate,
    Partition,
    GroundAtom,
    PSLError,
    ModelError,
    DataStoreError,
    Inserter,
    Database,
    DataStore,
    InferenceApplication,
)
from .rules import LogicalRule, parse_rule
from .model import Model
from .datastore import SQLiteDataStore, open_store
from .inference import MPEInference, InferenceConfig, InferenceResult
