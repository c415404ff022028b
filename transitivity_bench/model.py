# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Model definition for the transitivity workload.

Predicates
- Similar(A, B): A and B are similar (observed).
- Same(A, B): A and B are the same (target).

Rules (all squared)
- direct:        1.0   Similar(A, B) -> Same(A, B)
- transitivity:  1.0   Same(A, B) && Same(B, C) && (A != C) -> Same(A, C)
- prior:         0.01  !Same(A, B)

Given n users the rules ground to 2 * nP2 + nP3 = n^2 * (n - 1) clauses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from psl_core.interfaces import ConstantType, Predicate
from psl_core.model import Model

SIMILAR = "Similar"
SAME = "Same"

DIRECT_RULE = "Similar(A, B) -> Same(A, B)"
TRANSITIVITY_RULE = "Same(A, B) && Same(B, C) && (A != C) -> Same(A, C)"
PRIOR_RULE = "!Same(A, B)"

RULES: Tuple[Tuple[str, float], ...] = (
    (DIRECT_RULE, 1.0),
    (TRANSITIVITY_RULE, 1.0),
    (PRIOR_RULE, 0.01),
)


def define_predicates(model: Model) -> Tuple[Predicate, Predicate]:
    similar = model.add_predicate(SIMILAR, [ConstantType.UNIQUE_ID, ConstantType.UNIQUE_ID])
    same = model.add_predicate(SAME, [ConstantType.UNIQUE_ID, ConstantType.UNIQUE_ID])
    return similar, same


def define_rules(model: Model) -> None:
    for text, weight in RULES:
        model.add_rule(text, weight=weight, squared=True)


def define_model(model: Model) -> Tuple[Predicate, Predicate]:
    """Declare both predicates and all three rules; safe to call twice on one model."""
    predicates = define_predicates(model)
    define_rules(model)
    return predicates


# -------------------------
# Ground rule combinatorics
# -------------------------


def permutations(n: int, k: int) -> int:
    """nPk, zero when k > n."""
    if n < 0 or k < 0:
        raise ValueError("n and k must be non-negative")
    if k > n:
        return 0
    out = 1
    for i in range(n - k + 1, n + 1):
        out *= i
    return out


@dataclass(frozen=True)
class GroundRuleCounts:
    direct: int
    transitivity: int
    prior: int

    @property
    def total(self) -> int:
        return self.direct + self.transitivity + self.prior


def ground_rule_counts(num_users: int) -> GroundRuleCounts:
    return GroundRuleCounts(
        direct=permutations(num_users, 2),
        transitivity=permutations(num_users, 3),
        prior=permutations(num_users, 2),
    )


def expected_ground_rules(num_users: int) -> int:
    return num_users * num_users * (num_users - 1)


__all__ = [
    "SIMILAR",
    "SAME",
    "DIRECT_RULE",
    "TRANSITIVITY_RULE",
    "PRIOR_RULE",
    "RULES",
    "define_predicates",
    "define_rules",
    "define_model",
    "permutations",
    "GroundRuleCounts",
    "ground_rule_counts",
    "expected_ground_rules",
]
