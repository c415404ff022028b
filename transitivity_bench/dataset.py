# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Synthetic transitivity dataset.

For every ordered pair (a, b) of distinct users in [0, n), row-major (outer loop over
a, inner over b):
- one Similar(a, b) fact with a strength drawn from random.Random(seed), inserted into
  the observations partition;
- one Same(a, b) target fact without a value, inserted into the targets partition.

Facts are streamed one at a time; the pair set is never materialized.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterator

from psl_core.interfaces import DataStore, Predicate

logger = logging.getLogger(__name__)

SEED = 4
PARTITION_OBSERVATIONS = "observations"
PARTITION_TARGETS = "targets"


@dataclass(frozen=True)
class SimilarityFact:
    user_a: int
    user_b: int
    strength: float


def iter_similarity_facts(num_users: int, rng: random.Random) -> Iterator[SimilarityFact]:
    for user_a in range(num_users):
        for user_b in range(num_users):
            if user_a == user_b:
                continue
            yield SimilarityFact(user_a, user_b, rng.random())


def load_data(
    data_store: DataStore,
    similar: Predicate,
    same: Predicate,
    num_users: int,
    seed: int = SEED,
) -> int:
    """
    Generate and insert the dataset; returns the number of ordered pairs inserted.

    The generator is reseeded on every call so repeated trials see identical data.

    Raises:
        ValueError: if num_users < 1 (before any inserter is requested).
    """
    if num_users < 1:
        raise ValueError(f"Must have at least one user. Given: {num_users}")

    rng = random.Random(seed)
    similar_inserter = data_store.get_inserter(similar, data_store.get_partition(PARTITION_OBSERVATIONS))
    same_inserter = data_store.get_inserter(same, data_store.get_partition(PARTITION_TARGETS))

    pairs = 0
    for fact in iter_similarity_facts(num_users, rng):
        similar_inserter.insert_value(fact.strength, fact.user_a, fact.user_b)
        same_inserter.insert(fact.user_a, fact.user_b)
        pairs += 1
    logger.debug("loaded %d pairs for %d users (seed=%d)", pairs, num_users, seed)
    return pairs


__all__ = [
    "SEED",
    "PARTITION_OBSERVATIONS",
    "PARTITION_TARGETS",
    "SimilarityFact",
    "iter_similarity_facts",
    "load_data",
]
