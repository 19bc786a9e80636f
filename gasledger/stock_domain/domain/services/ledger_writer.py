# gasledger/stock_domain/domain/services/ledger_writer.py
"""Optimistic-concurrency unit of work for shop stock ledgers."""

import logging
from typing import Callable, TypeVar

from gasledger.common.exceptions.custom_exceptions import ConcurrencyConflictError, LedgerNotFoundError
from gasledger.stock_domain.domain.entities.stock_ledger import StockLedger
from gasledger.stock_domain.domain.repositories.shop_stock_repository import IShopStockRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LedgerWriter:
    """
    Applies a mutation to a freshly loaded ledger and saves it with a version check.

    A ledger document is the unit of atomicity: if another writer saved the same
    ledger in between, the save is rejected and the whole read-mutate-save cycle
    is repeated on the newer copy, up to max_attempts times. Exceptions raised by
    the mutation (insufficient stock, unknown line) propagate untouched and
    nothing is saved.
    """

    def __init__(self, stock_repo: IShopStockRepository, max_attempts: int = 5) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.stock_repo = stock_repo
        self.max_attempts = max_attempts

    def apply(self, shop_id: str, mutation: Callable[[StockLedger], T]) -> tuple[T, StockLedger]:
        """Runs mutation(ledger) and persists the result. Returns (mutation result, saved ledger)."""
        last_conflict: ConcurrencyConflictError | None = None

        for attempt in range(1, self.max_attempts + 1):
            ledger = self.stock_repo.get_by_shop_id(shop_id)
            if ledger is None:
                raise LedgerNotFoundError(shop_id)

            outcome = mutation(ledger)
            if not ledger.pending_history:
                # Nothing changed (e.g. an arrival that was not due)
                return outcome, ledger

            try:
                self.stock_repo.save(ledger)
                return outcome, ledger
            except ConcurrencyConflictError as e:
                last_conflict = e
                logger.warning(
                    f"Ledger for shop {shop_id} changed concurrently (attempt {attempt}/{self.max_attempts}), retrying"
                )

        raise ConcurrencyConflictError(
            f"Could not update stock for shop {shop_id} after {self.max_attempts} attempts",
            original_exception=last_conflict,
        )
