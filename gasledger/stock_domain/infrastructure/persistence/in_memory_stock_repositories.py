# gasledger/stock_domain/infrastructure/persistence/in_memory_stock_repositories.py
"""Thread-safe in-process implementations of the stock repositories."""

import copy
import logging
from datetime import datetime
from threading import Lock
from typing import Optional

from gasledger.common.exceptions.custom_exceptions import (
    ConcurrencyConflictError,
    GasStockNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from gasledger.stock_domain.domain.entities.legacy_gas_stock import LegacyGasStock
from gasledger.stock_domain.domain.entities.stock_ledger import StockLedger
from gasledger.stock_domain.domain.repositories.gas_stock_repository import ILegacyGasStockRepository
from gasledger.stock_domain.domain.repositories.shop_stock_repository import IShopStockRepository

logger = logging.getLogger(__name__)


class InMemoryShopStockRepository(IShopStockRepository):
    """Keeps ledgers in a dict. Callers always get their own copy, like rows read from a database."""

    def __init__(self) -> None:
        self._ledgers: dict[str, StockLedger] = {}
        self._lock = Lock()

    def create(self, ledger: StockLedger) -> None:
        with self._lock:
            if ledger.shop_id in self._ledgers:
                raise ValidationError(f"Shop {ledger.shop_id} already has a stock ledger")
            ledger.version = 1
            ledger.mark_history_persisted()
            self._ledgers[ledger.shop_id] = copy.deepcopy(ledger)
        logger.debug(f"Created stock ledger for shop {ledger.shop_id}")

    def get_by_shop_id(self, shop_id: str) -> Optional[StockLedger]:
        with self._lock:
            stored = self._ledgers.get(shop_id)
            return copy.deepcopy(stored) if stored is not None else None

    def save(self, ledger: StockLedger) -> None:
        with self._lock:
            stored = self._ledgers.get(ledger.shop_id)
            if stored is None or stored.version != ledger.version:
                raise ConcurrencyConflictError(
                    f"Stock ledger for shop {ledger.shop_id} is at version "
                    f"{stored.version if stored else 'none'}, expected {ledger.version}"
                )
            ledger.version += 1
            ledger.mark_history_persisted()
            self._ledgers[ledger.shop_id] = copy.deepcopy(ledger)

    def delete_by_shop_id(self, shop_id: str) -> None:
        with self._lock:
            self._ledgers.pop(shop_id, None)

    def find_shop_ids_with_due_arrivals(self, now: datetime) -> list[str]:
        with self._lock:
            return [shop_id for shop_id, ledger in self._ledgers.items() if ledger.due_arrivals(now)]


class InMemoryLegacyGasStockRepository(ILegacyGasStockRepository):

    def __init__(self) -> None:
        self._stocks: dict[str, LegacyGasStock] = {}
        self._lock = Lock()

    def add(self, gas_stock: LegacyGasStock) -> None:
        with self._lock:
            self._stocks[gas_stock.id] = copy.deepcopy(gas_stock)

    def get_by_id(self, gas_stock_id: str) -> Optional[LegacyGasStock]:
        with self._lock:
            stored = self._stocks.get(gas_stock_id)
            return copy.deepcopy(stored) if stored is not None else None

    def adjust_quantity(self, gas_stock_id: str, delta: int) -> LegacyGasStock:
        with self._lock:
            stored = self._stocks.get(gas_stock_id)
            if stored is None:
                raise GasStockNotFoundError(gas_stock_id)
            if stored.gas_available_qty + delta < 0:
                raise InsufficientStockError(stored.gas_available_qty, -delta)
            stored.gas_available_qty += delta
            return copy.deepcopy(stored)
