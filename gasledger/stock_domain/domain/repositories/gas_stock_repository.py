# gasledger/stock_domain/domain/repositories/gas_stock_repository.py
"""Legacy gas stock repository interface."""
from abc import ABC, abstractmethod
from typing import Optional

from gasledger.stock_domain.domain.entities.legacy_gas_stock import LegacyGasStock


class ILegacyGasStockRepository(ABC):

    @abstractmethod
    def add(self, gas_stock: LegacyGasStock) -> None:
        """Registers a gas center stock record."""
        pass

    @abstractmethod
    def get_by_id(self, gas_stock_id: str) -> Optional[LegacyGasStock]:
        """Retrieves a gas stock record by id."""
        pass

    @abstractmethod
    def adjust_quantity(self, gas_stock_id: str, delta: int) -> LegacyGasStock:
        """
        Atomically adds delta (negative to take stock) to the counter.
        Raises GasStockNotFoundError if the record is missing and
        InsufficientStockError if the counter would drop below zero.
        """
        pass
