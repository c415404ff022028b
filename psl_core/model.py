# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Model builder: a registry of predicates and weighted rule templates.

Redeclaration policy
- add_predicate with the same name and argument types returns the existing predicate.
- add_predicate with the same name and different argument types raises ModelError.
- add_rule with identical text, weight and loss kind is a no-op.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from psl_core.interfaces import ConstantType, DataStore, ModelError, Predicate
from psl_core.rules import LogicalRule, parse_rule

logger = logging.getLogger(__name__)


class Model:
    def __init__(self, data_store: Optional[DataStore] = None) -> None:
        self._data_store = data_store
        self._predicates: Dict[str, Predicate] = {}
        self._rules: List[LogicalRule] = []

    @property
    def predicates(self) -> Tuple[Predicate, ...]:
        return tuple(self._predicates.values())

    @property
    def rules(self) -> Tuple[LogicalRule, ...]:
        return tuple(self._rules)

    def get_predicate(self, name: str) -> Predicate:
        try:
            return self._predicates[name]
        except KeyError:
            raise ModelError(f"Unknown predicate: {name}") from None

    def add_predicate(self, name: str, types: Sequence[ConstantType]) -> Predicate:
        predicate = Predicate(name=name, arg_types=tuple(types))
        existing = self._predicates.get(name)
        if existing is not None:
            if existing != predicate:
                raise ModelError(
                    f"Predicate {name} already declared with types "
                    f"{[t.value for t in existing.arg_types]}"
                )
            return existing
        self._predicates[name] = predicate
        if self._data_store is not None:
            self._data_store.register_predicate(predicate)
        logger.debug("declared predicate %s/%d", name, predicate.arity)
        return predicate

    def add_rule(self, rule: str, weight: float, squared: bool = True) -> LogicalRule:
        parsed = parse_rule(rule, weight, squared)
        for lit in parsed.literals:
            predicate = self._predicates.get(lit.predicate)
            if predicate is None:
                raise ModelError(f"Rule {parsed.text!r} references undeclared predicate {lit.predicate}")
            if predicate.arity != len(lit.variables):
                raise ModelError(
                    f"Rule {parsed.text!r} uses {lit.predicate} with {len(lit.variables)} "
                    f"arguments; declared arity is {predicate.arity}"
                )
        for existing in self._rules:
            if existing == parsed:
                return existing
        self._rules.append(parsed)
        logger.debug("declared rule %r (weight=%s, squared=%s)", parsed.text, parsed.weight, parsed.squared)
        return parsed

    def __str__(self) -> str:
        lines = [f"{r.weight}: {r.text}{' ^2' if r.squared else ''}" for r in self._rules]
        return "\n".join(lines)


__all__ = ["Model"]
