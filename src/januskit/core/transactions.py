"""Registry of in-flight request transactions keyed by correlation id."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from enum import StrEnum, unique
from typing import Any
from uuid import uuid4

from januskit.core.errors import DuplicateTransactionError, TransactionTimeoutError

logger = logging.getLogger("januskit.transactions")

__all__ = ["Transaction", "TransactionRegistry", "TransactionState"]


@unique
class TransactionState(StrEnum):
    PENDING = "pending"
    SETTLED = "settled"


class Transaction:
    """A single pending request awaiting its reply.

    Not a Pydantic model: holds an ``asyncio.Future`` that the registry
    completes exactly once.
    """

    def __init__(self, id: str, future: asyncio.Future[Any], request: str | None = None) -> None:
        self.id = id
        self.request = request
        self.future = future
        self.state = TransactionState.PENDING
        self.created_at = time.monotonic()

    def __repr__(self) -> str:
        return f"Transaction(id={self.id!r}, request={self.request!r}, state={self.state.value})"

    def _resolve(self, payload: Any) -> None:
        self.state = TransactionState.SETTLED
        if not self.future.done():
            self.future.set_result(payload)

    def _reject(self, error: BaseException) -> None:
        self.state = TransactionState.SETTLED
        if not self.future.done():
            self.future.set_exception(error)


class TransactionRegistry:
    """Tracks pending transactions and settles each one exactly once.

    A transaction is removed from the registry the first time it is
    settled.  Settling an id that is not pending is a no-op, so duplicate
    server replies never resolve a caller twice.

    All methods must be called from the event loop thread; the registry
    relies on cooperative scheduling instead of locks.
    """

    def __init__(self, owner: int | str | None = None) -> None:
        self._owner = owner
        self._pending: dict[str, Transaction] = {}

    @staticmethod
    def new_id() -> str:
        """Return a globally unique correlation id."""
        return uuid4().hex

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def pending_ids(self) -> list[str]:
        return list(self._pending)

    def begin(self, transaction_id: str, request: str | None = None) -> Transaction:
        """Register a new pending transaction.

        Raises:
            DuplicateTransactionError: If *transaction_id* is already pending.
        """
        if transaction_id in self._pending:
            raise DuplicateTransactionError(transaction_id)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        txn = Transaction(transaction_id, future, request=request)
        self._pending[transaction_id] = txn
        logger.debug(
            "Transaction %s started (%s)",
            transaction_id,
            request,
            extra={"handle_id": self._owner, "transaction_id": transaction_id},
        )
        return txn

    def owns(self, transaction_id: str | None) -> bool:
        return transaction_id is not None and transaction_id in self._pending

    def settle_success(self, transaction_id: str | None, payload: Any) -> bool:
        """Resolve a pending transaction with *payload*.

        Returns:
            True if a pending transaction was settled.
        """
        txn = self._pop(transaction_id)
        if txn is None:
            return False
        txn._resolve(payload)
        return True

    def settle_error(self, transaction_id: str | None, error: BaseException) -> bool:
        """Reject a pending transaction with *error*.

        Returns:
            True if a pending transaction was settled.
        """
        txn = self._pop(transaction_id)
        if txn is None:
            return False
        txn._reject(error)
        return True

    def discard(self, transaction_id: str) -> bool:
        """Forget a transaction without settling it (caller gave up waiting)."""
        txn = self._pending.pop(transaction_id, None)
        if txn is None:
            return False
        txn.state = TransactionState.SETTLED
        return True

    def reject_all(self, error_factory: Callable[[Transaction], BaseException]) -> int:
        """Reject every pending transaction.

        Returns:
            The number of transactions rejected.
        """
        pending = list(self._pending.values())
        self._pending.clear()
        for txn in pending:
            txn._reject(error_factory(txn))
        return len(pending)

    async def wait(self, txn: Transaction, timeout: float | None = None) -> Any:
        """Block until *txn* settles or *timeout* seconds elapse.

        On timeout the transaction is dropped from the registry, so a late
        reply is treated as an unsolicited message.

        Raises:
            TransactionTimeoutError: If *timeout* is exceeded.
        """
        try:
            if timeout is None:
                return await txn.future
            return await asyncio.wait_for(txn.future, timeout=timeout)
        except TimeoutError:
            self.discard(txn.id)
            raise TransactionTimeoutError(txn.id, timeout or 0.0) from None
        except asyncio.CancelledError:
            self.discard(txn.id)
            raise

    def _pop(self, transaction_id: str | None) -> Transaction | None:
        if transaction_id is None:
            return None
        txn = self._pending.pop(transaction_id, None)
        if txn is None:
            logger.debug(
                "Ignoring settlement for transaction %s (not pending)",
                transaction_id,
                extra={"handle_id": self._owner, "transaction_id": transaction_id},
            )
        return txn
