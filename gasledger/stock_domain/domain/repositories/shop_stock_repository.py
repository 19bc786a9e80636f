# gasledger/stock_domain/domain/repositories/shop_stock_repository.py
"""Shop stock ledger repository interface."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from gasledger.stock_domain.domain.entities.stock_ledger import StockLedger


class IShopStockRepository(ABC):

    @abstractmethod
    def create(self, ledger: StockLedger) -> None:
        """Stores a new ledger. Fails if the shop already has one."""
        pass

    @abstractmethod
    def get_by_shop_id(self, shop_id: str) -> Optional[StockLedger]:
        """Loads a shop's ledger with its lines and full history, or None."""
        pass

    @abstractmethod
    def save(self, ledger: StockLedger) -> None:
        """
        Stores a loaded ledger if nobody else saved it since it was read.
        Raises ConcurrencyConflictError when the stored version differs from
        ledger.version; on success increments ledger.version.
        """
        pass

    @abstractmethod
    def delete_by_shop_id(self, shop_id: str) -> None:
        """Removes a ledger together with its history (shop deletion)."""
        pass

    @abstractmethod
    def find_shop_ids_with_due_arrivals(self, now: datetime) -> list[str]:
        """Shops having at least one scheduled, auto-updating arrival dated at or before now."""
        pass
