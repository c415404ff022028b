# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Weighted logical rule templates and their textual syntax.

Syntax
- Implication:   Body -> Head
- Body:          literals and inequality constraints joined by '&&' (or '&')
- Head:          literals joined by '||' (or '|')
- Negation:      '!' or '~' prefix on an atom
- Constraint:    '(A != C)' restricts a grounding to distinct constants
- A rule without '->' is read as a disjunction of literals (e.g. a prior '!Same(A, B)').

Every rule is stored in clause form: a disjunction of literals, where body atoms
appear negated. Under the Lukasiewicz relaxation a ground clause with truth values
x has distance to satisfaction

    d = max(0, 1 - sum(x_pos) - sum(1 - x_neg))

and contributes w * d**2 (squared) or w * d (linear) to the objective.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from psl_core.interfaces import ModelError

_ATOM_RE = re.compile(r"^(?P<neg>[!~]\s*)?(?P<name>[A-Za-z_]\w*)\s*\((?P<args>[^()]*)\)$")
_CONSTRAINT_RE = re.compile(r"^\(\s*(?P<left>[A-Za-z_]\w*)\s*!=\s*(?P<right>[A-Za-z_]\w*)\s*\)$")
_VARIABLE_RE = re.compile(r"^[A-Za-z_]\w*$")


@dataclass(frozen=True)
class Literal:
    """An atom template inside a clause; 'negated' refers to the clause form."""
    predicate: str
    variables: Tuple[str, ...]
    negated: bool

    @property
    def coefficient(self) -> float:
        # d = (1 - n_neg) + sum(x_neg) - sum(x_pos)
        return 1.0 if self.negated else -1.0


@dataclass(frozen=True)
class Inequality:
    left: str
    right: str


@dataclass(frozen=True)
class LogicalRule:
    text: str
    literals: Tuple[Literal, ...]
    constraints: Tuple[Inequality, ...]
    weight: float
    squared: bool = True

    @property
    def variables(self) -> Tuple[str, ...]:
        """Variables in order of first appearance across the literals."""
        seen: List[str] = []
        for lit in self.literals:
            for v in lit.variables:
                if v not in seen:
                    seen.append(v)
        return tuple(seen)

    @property
    def constant_term(self) -> float:
        return 1.0 - sum(1 for lit in self.literals if lit.negated)

    def distance(self, truth_values: Sequence[float]) -> float:
        """Distance to satisfaction for one grounding, values aligned with 'literals'."""
        if len(truth_values) != len(self.literals):
            raise ValueError("truth_values must align with the rule literals")
        d = self.constant_term + sum(lit.coefficient * float(x) for lit, x in zip(self.literals, truth_values))
        return max(0.0, d)

    def potential(self, truth_values: Sequence[float]) -> float:
        d = self.distance(truth_values)
        return self.weight * (d * d if self.squared else d)


def _split(text: str, pattern: str) -> List[str]:
    parts = [p.strip() for p in re.split(pattern, text)]
    if any(not p for p in parts):
        raise ValueError("empty operand")
    return parts


def _parse_literal(token: str, *, in_body: bool) -> Literal:
    m = _ATOM_RE.match(token)
    if m is None:
        raise ValueError(f"cannot parse atom {token!r}")
    args = [a.strip() for a in m.group("args").split(",")]
    if not args or any(not _VARIABLE_RE.match(a) for a in args):
        raise ValueError(f"atom {token!r} must have variable arguments")
    written_negated = m.group("neg") is not None
    # Body atoms move to the clause negated; a negated body atom becomes positive.
    negated = (not written_negated) if in_body else written_negated
    return Literal(predicate=m.group("name"), variables=tuple(args), negated=negated)


def parse_rule(text: str, weight: float, squared: bool = True) -> LogicalRule:
    """
    Parse a textual rule into clause form.

    Raises:
        ModelError: if the text is malformed, the weight is not a non-negative finite
            number, or a constraint mentions a variable absent from every atom.
    """
    try:
        w = float(weight)
    except (TypeError, ValueError) as e:
        raise ModelError(f"Rule weight must be a number (rule: {text!r})") from e
    if not math.isfinite(w) or w < 0.0:
        raise ModelError(f"Rule weight must be non-negative and finite, got {weight!r} (rule: {text!r})")

    source = " ".join(str(text).split())
    literals: List[Literal] = []
    constraints: List[Inequality] = []
    try:
        if "->" in source:
            body, _, head = source.partition("->")
            if "->" in head:
                raise ValueError("more than one implication")
            for token in _split(body, r"&&|&"):
                c = _CONSTRAINT_RE.match(token)
                if c is not None:
                    constraints.append(Inequality(c.group("left"), c.group("right")))
                else:
                    literals.append(_parse_literal(token, in_body=True))
            for token in _split(head, r"\|\||\|"):
                literals.append(_parse_literal(token, in_body=False))
        else:
            for token in _split(source, r"\|\||\|"):
                literals.append(_parse_literal(token, in_body=False))
    except ValueError as e:
        raise ModelError(f"Malformed rule {text!r}: {e}") from e

    rule = LogicalRule(
        text=source,
        literals=tuple(literals),
        constraints=tuple(constraints),
        weight=w,
        squared=bool(squared),
    )
    known = set(rule.variables)
    for c in rule.constraints:
        for v in (c.left, c.right):
            if v not in known:
                raise ModelError(f"Constraint variable {v!r} does not appear in any atom of {text!r}")
    return rule


__all__ = ["Literal", "Inequality", "LogicalRule", "parse_rule"]
