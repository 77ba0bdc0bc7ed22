"""Transaction handles over the engine's literal transaction statements.

Two ways to run statements in a transaction:

``begin()``
    Issues ``BEGIN`` and hands back a ``Transaction``.  The caller owns the
    handle: it must call ``commit()`` or ``rollback()`` exactly once.  An
    exception raised between ``begin()`` and ``commit()`` does **not** roll
    anything back on its own.

``atomic()``
    Context manager for multi-statement sequences the library itself runs
    (``drop_column``, migration units).  Commits on success, rolls back on
    any exception and re-raises.  If a transaction is already active the
    block simply joins it; the outer owner decides the outcome.

Each ``COMMIT`` / ``ROLLBACK`` publishes ``transaction:commit`` /
``transaction:rollback`` on the event bus after the statement succeeds.

Example::

    tx = db.transaction()
    try:
        db.insert("users", {...})
        db.insert("users", {...})
        tx.commit()
    except Exception:
        tx.rollback()
        raise
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

from schemadb.core.engine import SQLiteEngine
from schemadb.core.errors import TransactionError
from schemadb.core.events import TRANSACTION_COMMIT, TRANSACTION_ROLLBACK, EventBus
from schemadb.core.logging import get_logger

logger = get_logger(__name__)


class TransactionState(str, Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transaction:
    """Handle for one ``BEGIN`` … ``COMMIT``/``ROLLBACK`` span."""

    def __init__(self, manager: TransactionManager):
        self._manager = manager
        self.state = TransactionState.ACTIVE

    @property
    def active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def commit(self) -> None:
        self._finish(TransactionState.COMMITTED)

    def rollback(self) -> None:
        self._finish(TransactionState.ROLLED_BACK)

    def _finish(self, target: TransactionState) -> None:
        if not self.active:
            raise TransactionError(
                f"Cannot {'commit' if target is TransactionState.COMMITTED else 'roll back'}: "
                f"transaction already {self.state.value}"
            )
        self._manager._end(self, target)

    def __repr__(self) -> str:
        return f"Transaction(state={self.state.value})"


class TransactionManager:
    """Starts and ends transactions on one engine; no nesting."""

    def __init__(self, engine: SQLiteEngine, bus: EventBus):
        self._engine = engine
        self._bus = bus
        self._current: Transaction | None = None

    @property
    def in_transaction(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> Transaction | None:
        return self._current

    def begin(self) -> Transaction:
        """Issue ``BEGIN`` and return the handle."""
        if self._current is not None:
            raise TransactionError("A transaction is already active; nesting is not supported")
        self._engine.run("BEGIN")
        self._current = Transaction(self)
        logger.debug("transaction.begin")
        return self._current

    def _end(self, tx: Transaction, target: TransactionState) -> None:
        if target is TransactionState.COMMITTED:
            statement, topic = "COMMIT", TRANSACTION_COMMIT
        else:
            statement, topic = "ROLLBACK", TRANSACTION_ROLLBACK

        self._engine.run(statement)
        tx.state = target
        if self._current is tx:
            self._current = None
        logger.debug(f"transaction.{target.value}")
        self._bus.publish(topic, {})

    @contextmanager
    def atomic(self) -> Iterator[Transaction | None]:
        """Run a block atomically; join the active transaction if there is one."""
        if self._current is not None:
            yield self._current
            return

        tx = self.begin()
        try:
            yield tx
        except BaseException:
            if tx.active:
                tx.rollback()
            raise
        if tx.active:
            tx.commit()


__all__ = ["Transaction", "TransactionManager", "TransactionState"]
