# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Grounding and MPE inference over the real SQLite store.

Small workloads only (n <= 5) so the suite stays fast.
"""

from __future__ import annotations

import random

import numpy as np
import pytest

from psl_core.datastore import open_store
from psl_core.grounding import Grounder
from psl_core.inference import InferenceConfig, MPEInference, objective_and_gradient
from psl_core.interfaces import Backend, PSLError
from psl_core.model import Model
from transitivity_bench.dataset import PARTITION_OBSERVATIONS, PARTITION_TARGETS, SEED, load_data
from transitivity_bench.model import (
    DIRECT_RULE,
    PRIOR_RULE,
    TRANSITIVITY_RULE,
    define_model,
    expected_ground_rules,
)


def _populated(n: int):
    store = open_store(Backend.MEMORY)
    model = Model(store)
    similar, same = define_model(model)
    load_data(store, similar, same, n)
    db = store.get_database(
        store.get_partition(PARTITION_TARGETS),
        {similar},
        [store.get_partition(PARTITION_OBSERVATIONS)],
    )
    return store, model, db, similar, same


@pytest.mark.parametrize("n", [1, 2, 3, 4, 5])
def test_grounder_matches_count_identity(n):
    store, model, db, _, _ = _populated(n)
    predicates = {p.name: p for p in model.predicates}
    program = Grounder(db, predicates).ground(model.rules)

    assert program.counts[DIRECT_RULE] == n * (n - 1)
    assert program.counts[TRANSITIVITY_RULE] == n * (n - 1) * (n - 2)
    assert program.counts[PRIOR_RULE] == n * (n - 1)
    assert program.num_ground_rules == expected_ground_rules(n)
    # Only Same atoms are variables; Similar is closed.
    assert program.num_variables == n * (n - 1)
    assert all(name == "Same" for name, _ in program.variables)
    store.close()


def test_transitivity_groundings_respect_the_inequality():
    store, model, db, _, _ = _populated(3)
    grounder = Grounder(db, {p.name: p for p in model.predicates})
    rule = next(r for r in model.rules if r.text == TRANSITIVITY_RULE)
    for ab, bc, ac in grounder.substitutions(rule):
        a, b = ab.args
        b2, c = bc.args
        assert b == b2
        assert a != c
        assert ac.args == (a, c)
    store.close()


def test_gradient_matches_finite_differences():
    store, model, db, _, _ = _populated(4)
    program = Grounder(db, {p.name: p for p in model.predicates}).ground(model.rules)
    rng = np.random.default_rng(0)
    x = rng.uniform(0.05, 0.95, size=program.num_variables)
    f, grad = objective_and_gradient(program, x)
    eps = 1e-6
    for i in range(program.num_variables):
        e = np.zeros_like(x)
        e[i] = eps
        fd = (objective_and_gradient(program, x + e)[0] - objective_and_gradient(program, x - e)[0]) / (2 * eps)
        assert grad[i] == pytest.approx(fd, abs=1e-4)
    assert f >= 0.0
    store.close()


def test_two_users_have_closed_form_solution():
    # Without transitivity each Same(a, b) minimizes (s - x)^2 + 0.01 x^2 -> x = s / 1.01
    store, model, db, _, same = _populated(2)
    rng = random.Random(SEED)
    s01, s10 = rng.random(), rng.random()

    with MPEInference(model, db, InferenceConfig(max_iterations=200, tolerance=1e-12)) as mpe:
        result = mpe.mpe_inference()

    assert result.num_ground_rules == 4
    assert result.num_variables == 2
    values = {a.args: a.value for a in db.get_atoms(same)}
    assert values[("0", "1")] == pytest.approx(s01 / 1.01, abs=1e-3)
    assert values[("1", "0")] == pytest.approx(s10 / 1.01, abs=1e-3)
    store.close()


def test_inferred_values_are_committed_within_bounds():
    store, model, db, _, same = _populated(4)
    with MPEInference(model, db) as mpe:
        result = mpe.mpe_inference()
    values = [a.value for a in db.get_atoms(same)]
    assert len(values) == 12
    assert all(v is not None and 0.0 <= v <= 1.0 for v in values)
    assert result.objective >= 0.0
    assert result.num_ground_rules == expected_ground_rules(4)
    store.close()


def test_single_user_solves_trivially():
    store, model, db, _, _ = _populated(1)
    with MPEInference(model, db) as mpe:
        result = mpe.mpe_inference()
    assert result.num_ground_rules == 0
    assert result.num_variables == 0
    assert result.objective == 0.0
    store.close()


def test_closed_inference_application_refuses_to_solve():
    store, model, db, _, _ = _populated(2)
    mpe = MPEInference(model, db)
    mpe.close()
    mpe.close()
    with pytest.raises(PSLError):
        mpe.mpe_inference()
    store.close()
