# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Most-probable-explanation (MPE) inference.

Grounds the model against a Database, then minimizes the weighted hinge-loss
objective over x in [0, 1]^n:

    f(x) = sum_r w_r * max(0, a_r . x + c_r)^p_r,    p_r in {1, 2}

with scipy's L-BFGS-B and an analytic (sub)gradient, and commits the solution back
into the database's writable partition. A solve either completes or raises; there
is no retry and no progress callback.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
from scipy import optimize

from psl_core.grounding import GroundProgram, ground_rules
from psl_core.interfaces import Database, GroundArgs, PSLError
from psl_core.model import Model

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InferenceConfig:
    max_iterations: int = 500
    tolerance: float = 1e-6


@dataclass(frozen=True)
class InferenceResult:
    objective: float
    num_ground_rules: int
    num_variables: int
    iterations: int
    converged: bool


def objective_and_gradient(program: GroundProgram, x: np.ndarray) -> Tuple[float, np.ndarray]:
    d = np.maximum(0.0, program.matrix @ x + program.constants)
    sq = program.squared
    w = program.weights
    f = float(np.sum(w[sq] * d[sq] ** 2) + np.sum(w[~sq] * d[~sq]))
    # d/dx of w*d^2 is 2*w*d*a; of w*d is w*a where d > 0
    scale = np.where(sq, 2.0 * w * d, np.where(d > 0.0, w, 0.0))
    grad = program.matrix.T @ scale
    return f, np.asarray(grad, dtype=float)


class MPEInference:
    """
    One MPE solve over (model, database).

    Usage:
        with MPEInference(model, db, config) as mpe:
            result = mpe.mpe_inference()
    """

    def __init__(self, model: Model, database: Database, config: Optional[InferenceConfig] = None) -> None:
        self.model = model
        self.database = database
        self.config = config or InferenceConfig()
        self._closed = False
        self.program: Optional[GroundProgram] = None

    def mpe_inference(self) -> InferenceResult:
        if self._closed:
            raise PSLError("Inference application is closed")
        predicates = {p.name: p for p in self.model.predicates}
        program = ground_rules(self.database, predicates, self.model.rules)
        self.program = program
        logger.info(
            "grounded %d rules over %d variables", program.num_ground_rules, program.num_variables
        )

        if program.num_variables == 0:
            f, _ = objective_and_gradient(program, np.zeros(0))
            return InferenceResult(f, program.num_ground_rules, 0, 0, True)

        x0 = np.clip(program.initial_values, 0.0, 1.0)
        res = optimize.minimize(
            lambda x: objective_and_gradient(program, x),
            x0,
            method="L-BFGS-B",
            jac=True,
            bounds=[(0.0, 1.0)] * program.num_variables,
            options={"maxiter": int(self.config.max_iterations), "ftol": float(self.config.tolerance)},
        )
        x = np.clip(res.x, 0.0, 1.0)
        self._commit(program, x)
        logger.info("objective=%.6f iterations=%d converged=%s", float(res.fun), int(res.nit), bool(res.success))
        return InferenceResult(
            objective=float(res.fun),
            num_ground_rules=program.num_ground_rules,
            num_variables=program.num_variables,
            iterations=int(res.nit),
            converged=bool(res.success),
        )

    def _commit(self, program: GroundProgram, x: np.ndarray) -> None:
        by_predicate: Dict[str, Dict[GroundArgs, float]] = defaultdict(dict)
        for (name, args), value in zip(program.variables, x):
            by_predicate[name][args] = float(value)
        for name, values in by_predicate.items():
            self.database.commit(self.model.get_predicate(name), values)

    def close(self) -> None:
        self._closed = True
        self.program = None

    def __enter__(self) -> "MPEInference":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["InferenceConfig", "InferenceResult", "MPEInference", "objective_and_gradient"]
