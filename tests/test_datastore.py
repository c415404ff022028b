# Copyright (c) 2025 Transitivity Benchmark Maintainers
# License: MIT
"""
Tests for the SQLite-backed data store: partitions, inserters, query views, lifecycle.
"""

from __future__ import annotations

import pytest

from psl_core.datastore import SQLiteDataStore, open_store
from psl_core.interfaces import Backend, ConstantType, DataStoreError, Predicate

PAIR = (ConstantType.UNIQUE_ID, ConstantType.UNIQUE_ID)


def _store_with_predicates(backend=Backend.MEMORY, path="unused"):
    store = open_store(backend, path, True)
    similar = Predicate("Similar", PAIR)
    same = Predicate("Same", PAIR)
    store.register_predicate(similar)
    store.register_predicate(same)
    return store, similar, same


def test_backend_parse():
    assert Backend.parse("disk") is Backend.DISK
    assert Backend.parse("memory") is Backend.MEMORY
    with pytest.raises(ValueError):
        Backend.parse("Memory")


def test_insert_and_query_view_sees_write_and_read_partitions():
    store, similar, same = _store_with_predicates()
    obs = store.get_partition("observations")
    tgt = store.get_partition("targets")
    store.get_inserter(similar, obs).insert_value(0.25, 0, 1)
    store.get_inserter(same, tgt).insert(0, 1)

    with store.get_database(tgt, {similar}, [obs]) as db:
        sim_atoms = db.get_atoms(similar)
        same_atoms = db.get_atoms(same)
        assert db.is_closed(similar) and not db.is_closed(same)

    assert [(a.args, a.value, a.partition) for a in sim_atoms] == [(("0", "1"), 0.25, "observations")]
    assert [(a.args, a.value, a.partition) for a in same_atoms] == [(("0", "1"), None, "targets")]
    store.close()


def test_partitions_outside_the_view_are_invisible():
    store, similar, same = _store_with_predicates()
    store.get_inserter(same, store.get_partition("targets")).insert(0, 1)
    store.get_inserter(same, store.get_partition("other")).insert(1, 0)
    with store.get_database(store.get_partition("targets"), set(), []) as db:
        assert [a.args for a in db.get_atoms(same)] == [("0", "1")]
    store.close()


def test_atoms_come_back_in_insertion_order():
    store, similar, _ = _store_with_predicates()
    ins = store.get_inserter(similar, store.get_partition("observations"))
    pairs = [(2, 0), (0, 2), (1, 0), (0, 1)]
    for a, b in pairs:
        ins.insert_value(0.5, a, b)
    with store.get_database(store.get_partition("targets"), {similar}, [store.get_partition("observations")]) as db:
        assert [a.args for a in db.get_atoms(similar)] == [(str(a), str(b)) for a, b in pairs]
    store.close()


def test_duplicate_fact_raises():
    store, _, same = _store_with_predicates()
    ins = store.get_inserter(same, store.get_partition("targets"))
    ins.insert(0, 1)
    with pytest.raises(DataStoreError):
        ins.insert(0, 1)
    store.close()


@pytest.mark.parametrize("value", [-0.1, 1.5, float("nan")])
def test_out_of_range_values_raise(value):
    store, similar, _ = _store_with_predicates()
    with pytest.raises(DataStoreError):
        store.get_inserter(similar, store.get_partition("observations")).insert_value(value, 0, 1)
    store.close()


def test_wrong_arity_raises():
    store, _, same = _store_with_predicates()
    with pytest.raises(DataStoreError):
        store.get_inserter(same, store.get_partition("targets")).insert(0)
    store.close()


def test_unregistered_predicate_raises():
    store = open_store(Backend.MEMORY)
    with pytest.raises(DataStoreError):
        store.get_inserter(Predicate("Ghost", PAIR), store.get_partition("targets"))
    store.close()


def test_commit_writes_into_write_partition_only():
    store, similar, same = _store_with_predicates()
    tgt = store.get_partition("targets")
    obs = store.get_partition("observations")
    store.get_inserter(same, tgt).insert(0, 1)
    store.get_inserter(similar, obs).insert_value(0.4, 0, 1)
    with store.get_database(tgt, {similar}, [obs]) as db:
        db.commit(same, {("0", "1"): 0.75})
        assert db.get_atoms(same)[0].value == pytest.approx(0.75)
        with pytest.raises(DataStoreError):
            db.commit(similar, {("0", "1"): 0.9})
    store.close()


def test_same_partition_cannot_be_opened_twice_for_writing():
    store, similar, _ = _store_with_predicates()
    tgt = store.get_partition("targets")
    db = store.get_database(tgt, {similar}, [])
    with pytest.raises(DataStoreError):
        store.get_database(tgt, {similar}, [])
    db.close()
    store.get_database(tgt, {similar}, []).close()
    store.close()


def test_write_partition_cannot_also_be_read_only():
    store, similar, _ = _store_with_predicates()
    tgt = store.get_partition("targets")
    with pytest.raises(DataStoreError):
        store.get_database(tgt, {similar}, [tgt])
    store.close()


def test_close_is_idempotent_and_closes_open_views():
    store, similar, _ = _store_with_predicates()
    db = store.get_database(store.get_partition("targets"), {similar}, [])
    store.close()
    store.close()
    assert not store.is_open
    assert not db.is_open
    db.close()
    with pytest.raises(DataStoreError):
        db.get_atoms(similar)
    with pytest.raises(DataStoreError):
        store.get_partition("targets")


def test_disk_backend_persists_and_truncates(tmp_path):
    path = tmp_path / "bench.db"
    store, _, same = _store_with_predicates(Backend.DISK, path)
    store.get_inserter(same, store.get_partition("targets")).insert(0, 1)
    store.close()
    assert path.exists()

    # Reopen without truncation: the fact is still there.
    with SQLiteDataStore(Backend.DISK, path, truncate=False) as again:
        again.register_predicate(same)
        with again.get_database(again.get_partition("targets"), set(), []) as db:
            assert len(db.get_atoms(same)) == 1

    # Reopen with truncation: a fresh, empty database.
    with SQLiteDataStore(Backend.DISK, path, truncate=True) as fresh:
        fresh.register_predicate(same)
        with fresh.get_database(fresh.get_partition("targets"), set(), []) as db:
            assert db.get_atoms(same) == []


def test_memory_backend_never_touches_path(tmp_path):
    path = tmp_path / "should_not_exist"
    store, _, _ = _store_with_predicates(Backend.MEMORY, path)
    store.close()
    assert not path.exists()
