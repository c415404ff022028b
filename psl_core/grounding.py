# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Grounding: instantiate rule templates over the atoms of a Database.

A substitution grounds a rule when every literal's atom exists in the view and every
inequality constraint holds. Atoms of open predicates in the writable partition are
decision variables; all other atoms (closed predicates, read-only partitions) are
constants folded into the clause's constant term.

The result is a GroundProgram in linear form, one row per ground clause:

    d = max(0, A @ x + c)

with per-row weights and a squared-loss mask. Rows are never pruned, so the
per-rule counts equal the number of valid substitutions.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy import sparse

from psl_core.interfaces import Database, GroundArgs, GroundAtom, Predicate
from psl_core.rules import Literal, LogicalRule

logger = logging.getLogger(__name__)

AtomKey = Tuple[str, GroundArgs]
Binding = Dict[str, object]


@dataclass
class GroundProgram:
    """Sparse linear form of all ground clauses."""
    matrix: sparse.csr_matrix  # (num_ground_rules, num_variables)
    constants: np.ndarray
    weights: np.ndarray
    squared: np.ndarray  # bool mask
    variables: List[AtomKey]  # column -> (predicate name, args)
    initial_values: np.ndarray
    counts: Dict[str, int]  # rule text -> number of ground clauses

    @property
    def num_ground_rules(self) -> int:
        return int(self.matrix.shape[0])

    @property
    def num_variables(self) -> int:
        return len(self.variables)


class _AtomIndex:
    """Atoms of one predicate, indexed for lookups on any subset of argument positions."""

    def __init__(self, atoms: Sequence[GroundAtom]) -> None:
        self.by_args: Dict[GroundArgs, GroundAtom] = {a.args: a for a in atoms}
        self._atoms = list(atoms)
        self._partial: Dict[Tuple[int, ...], Dict[GroundArgs, List[GroundArgs]]] = {}

    def candidates(self, positions: Tuple[int, ...], key: GroundArgs) -> Sequence[GroundArgs]:
        if not positions:
            return [a.args for a in self._atoms]
        index = self._partial.get(positions)
        if index is None:
            index = defaultdict(list)
            for a in self._atoms:
                index[tuple(a.args[p] for p in positions)].append(a.args)
            self._partial[positions] = index
        return index.get(key, ())


class Grounder:
    def __init__(self, database: Database, predicates: Mapping[str, Predicate]) -> None:
        self._db = database
        self._predicates = dict(predicates)
        self._indices: Dict[str, _AtomIndex] = {}
        write = getattr(database, "write_partition", None)
        self._write_partition: Optional[str] = write.name if write is not None else None

    def _index(self, name: str) -> _AtomIndex:
        idx = self._indices.get(name)
        if idx is None:
            idx = _AtomIndex(self._db.get_atoms(self._predicates[name]))
            self._indices[name] = idx
        return idx

    def is_variable(self, atom: GroundAtom) -> bool:
        if self._db.is_closed(atom.predicate):
            return False
        return self._write_partition is None or atom.partition == self._write_partition

    def substitutions(self, rule: LogicalRule) -> Iterator[Tuple[GroundAtom, ...]]:
        """Yield the atoms (aligned with rule.literals) of every valid grounding."""
        literals = rule.literals

        def violates(binding: Binding) -> bool:
            for c in rule.constraints:
                if c.left in binding and c.right in binding and binding[c.left] == binding[c.right]:
                    return True
            return False

        def extend(i: int, binding: Binding, chosen: List[GroundAtom]) -> Iterator[Tuple[GroundAtom, ...]]:
            if i == len(literals):
                yield tuple(chosen)
                return
            lit: Literal = literals[i]
            idx = self._index(lit.predicate)
            bound = tuple(p for p, v in enumerate(lit.variables) if v in binding)
            key = tuple(binding[lit.variables[p]] for p in bound)
            for args in idx.candidates(bound, key):
                added: List[str] = []
                ok = True
                for var, const in zip(lit.variables, args):
                    if var in binding:
                        if binding[var] != const:
                            ok = False
                            break
                    else:
                        binding[var] = const
                        added.append(var)
                if ok and not violates(binding):
                    chosen.append(idx.by_args[args])
                    yield from extend(i + 1, binding, chosen)
                    chosen.pop()
                for var in added:
                    del binding[var]

        yield from extend(0, {}, [])

    def ground(self, rules: Sequence[LogicalRule]) -> GroundProgram:
        columns: Dict[AtomKey, int] = {}
        variables: List[AtomKey] = []
        initial: List[float] = []
        rows: List[int] = []
        cols: List[int] = []
        data: List[float] = []
        constants: List[float] = []
        weights: List[float] = []
        squared: List[bool] = []
        counts: Dict[str, int] = {}

        for rule in rules:
            n = 0
            for atoms in self.substitutions(rule):
                row = len(constants)
                const = rule.constant_term
                coeffs: Dict[int, float] = {}
                for lit, atom in zip(rule.literals, atoms):
                    if self.is_variable(atom):
                        key = (atom.predicate.name, atom.args)
                        col = columns.get(key)
                        if col is None:
                            col = len(variables)
                            columns[key] = col
                            variables.append(key)
                            initial.append(float(atom.value) if atom.value is not None else 0.0)
                        coeffs[col] = coeffs.get(col, 0.0) + lit.coefficient
                    else:
                        value = float(atom.value) if atom.value is not None else 0.0
                        const += lit.coefficient * value
                for col, coef in coeffs.items():
                    rows.append(row)
                    cols.append(col)
                    data.append(coef)
                constants.append(const)
                weights.append(rule.weight)
                squared.append(rule.squared)
                n += 1
            counts[rule.text] = n
            logger.debug("grounded %d clauses for %r", n, rule.text)

        matrix = sparse.csr_matrix(
            (np.asarray(data, dtype=float), (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64))),
            shape=(len(constants), len(variables)),
        )
        return GroundProgram(
            matrix=matrix,
            constants=np.asarray(constants, dtype=float),
            weights=np.asarray(weights, dtype=float),
            squared=np.asarray(squared, dtype=bool),
            variables=variables,
            initial_values=np.asarray(initial, dtype=float),
            counts=counts,
        )


def ground_rules(database: Database, predicates: Mapping[str, Predicate], rules: Sequence[LogicalRule]) -> GroundProgram:
    return Grounder(database, predicates).ground(rules)


__all__ = ["GroundProgram", "Grounder", "ground_rules"]
