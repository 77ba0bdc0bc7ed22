"""Tests for transaction handles and scoped transactions."""

from __future__ import annotations

import pytest

from schemadb.core.engine import SQLiteEngine
from schemadb.core.errors import TransactionError
from schemadb.core.events.memory import InMemoryEventBus
from schemadb.core.transaction import TransactionManager, TransactionState


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def engine():
    e = SQLiteEngine()
    e.run("CREATE TABLE t (x INTEGER)")
    yield e
    e.close()


@pytest.fixture()
def bus():
    return InMemoryEventBus()


@pytest.fixture()
def manager(engine, bus):
    return TransactionManager(engine, bus)


def _count(engine) -> int:
    return engine.all("SELECT COUNT(*) AS n FROM t")[0]["n"]


# ── begin / commit / rollback ─────────────────────────────────────────


class TestTransactionHandle:
    def test_commit_makes_writes_durable(self, manager, engine):
        tx = manager.begin()
        engine.run("INSERT INTO t VALUES (1)")
        assert engine.in_transaction is True
        tx.commit()
        assert tx.state is TransactionState.COMMITTED
        assert engine.in_transaction is False
        assert _count(engine) == 1

    def test_rollback_discards_writes(self, manager, engine):
        tx = manager.begin()
        engine.run("INSERT INTO t VALUES (1)")
        tx.rollback()
        assert tx.state is TransactionState.ROLLED_BACK
        assert _count(engine) == 0

    def test_double_commit_raises(self, manager):
        tx = manager.begin()
        tx.commit()
        with pytest.raises(TransactionError, match="already committed"):
            tx.commit()

    def test_rollback_after_commit_raises(self, manager):
        tx = manager.begin()
        tx.commit()
        with pytest.raises(TransactionError, match="Cannot roll back"):
            tx.rollback()

    def test_nesting_rejected(self, manager):
        tx = manager.begin()
        with pytest.raises(TransactionError, match="nesting is not supported"):
            manager.begin()
        tx.rollback()

    def test_no_automatic_rollback(self, manager, engine):
        tx = manager.begin()
        try:
            engine.run("INSERT INTO t VALUES (1)")
            raise RuntimeError("caller forgot to roll back")
        except RuntimeError:
            pass
        assert manager.in_transaction is True
        assert tx.active is True
        tx.rollback()

    def test_events_published_after_statement(self, manager, bus, engine):
        seen = []
        bus.subscribe("transaction:*", lambda e: seen.append((str(e.topic), engine.in_transaction)))
        manager.begin().commit()
        manager.begin().rollback()
        assert seen == [("transaction:commit", False), ("transaction:rollback", False)]

    def test_current(self, manager):
        assert manager.current is None
        tx = manager.begin()
        assert manager.current is tx
        tx.commit()
        assert manager.current is None


# ── atomic() ──────────────────────────────────────────────────────────


class TestAtomic:
    def test_commits_on_success(self, manager, engine):
        with manager.atomic():
            engine.run("INSERT INTO t VALUES (1)")
        assert _count(engine) == 1
        assert manager.in_transaction is False

    def test_rolls_back_and_reraises(self, manager, engine):
        with pytest.raises(RuntimeError, match="boom"):
            with manager.atomic():
                engine.run("INSERT INTO t VALUES (1)")
                raise RuntimeError("boom")
        assert _count(engine) == 0
        assert manager.in_transaction is False

    def test_joins_active_transaction(self, manager, engine):
        outer = manager.begin()
        with manager.atomic() as inner:
            engine.run("INSERT INTO t VALUES (1)")
        assert inner is outer
        assert outer.active is True
        outer.rollback()
        assert _count(engine) == 0

    def test_block_may_finish_transaction_itself(self, manager, engine):
        with manager.atomic() as tx:
            engine.run("INSERT INTO t VALUES (1)")
            tx.rollback()
        assert _count(engine) == 0
