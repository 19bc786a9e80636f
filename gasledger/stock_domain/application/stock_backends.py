# gasledger/stock_domain/application/stock_backends.py
"""Stock backends: the per-shop ledger and the legacy single-counter record."""

import logging
from abc import ABC, abstractmethod

from gasledger.common.dtos.stock_dtos import (
    StockCommitment,
    StockOperationResult,
    StockRequestDTO,
)
from gasledger.common.exceptions.custom_exceptions import GasStockNotFoundError, LedgerNotFoundError
from gasledger.stock_domain.domain.entities.legacy_gas_stock import LegacyGasStock
from gasledger.stock_domain.domain.entities.stock_ledger import Actor, StockAction
from gasledger.stock_domain.domain.repositories.gas_stock_repository import ILegacyGasStockRepository
from gasledger.stock_domain.domain.services.ledger_writer import LedgerWriter

logger = logging.getLogger(__name__)


class StockBackend(ABC):
    """
    One way of holding stock for orders. Methods raise domain exceptions;
    StockManager turns them into StockOperationResult values.
    """

    @abstractmethod
    def commits_on_creation(self, payment_completed: bool) -> bool:
        """Whether a new order takes stock immediately rather than at confirmation."""
        pass

    @abstractmethod
    def reserve(self, key: str, request: StockRequestDTO, actor: Actor) -> StockOperationResult:
        pass

    @abstractmethod
    def deduct(self, key: str, request: StockRequestDTO, actor: Actor) -> StockOperationResult:
        pass

    @abstractmethod
    def restore(
        self, key: str, request: StockRequestDTO, actor: Actor, commitment: StockCommitment
    ) -> StockOperationResult:
        """Gives back exactly what `commitment` says the order holds."""
        pass

    @abstractmethod
    def recommit(
        self, key: str, request: StockRequestDTO, actor: Actor, commitment: StockCommitment
    ) -> StockOperationResult:
        """Takes `commitment` again after a restore that has to be undone."""
        pass

    @abstractmethod
    def check_availability(self, key: str, gas_brand: str, gas_type: str, requested: int) -> StockOperationResult:
        pass

    @abstractmethod
    def get_available_stock(self, key: str, gas_brand: str, gas_type: str) -> int:
        pass


class ShopLedgerBackend(StockBackend):
    """Stock held in a shop's StockLedger, with separate available and reserved pools."""

    def __init__(self, ledger_writer: LedgerWriter) -> None:
        self.ledger_writer = ledger_writer

    def commits_on_creation(self, payment_completed: bool) -> bool:
        return payment_completed

    def reserve(self, key: str, request: StockRequestDTO, actor: Actor) -> StockOperationResult:
        _, ledger = self.ledger_writer.apply(
            key, lambda l: l.reserve(request.gas_brand, request.gas_type, request.quantity, actor)
        )
        line = ledger.get_line(request.gas_brand, request.gas_type)
        return StockOperationResult(
            success=True,
            message="Stock reserved successfully",
            available_quantity=line.available_quantity,
            reserved_quantity=line.reserved_quantity,
            commitment=StockCommitment.RESERVED,
        )

    def deduct(self, key: str, request: StockRequestDTO, actor: Actor) -> StockOperationResult:
        def take(ledger):
            line = ledger.get_line(request.gas_brand, request.gas_type)
            # Units reserved for this order are sold out of the reserved pool first
            if line.reserved_quantity >= request.quantity:
                ledger.consume_reservation(
                    request.gas_brand, request.gas_type, request.quantity, actor, reason="Order confirmed"
                )
            else:
                ledger.update_stock(
                    request.gas_brand, request.gas_type, request.quantity, StockAction.SALE, actor, "Order confirmed"
                )

        _, ledger = self.ledger_writer.apply(key, take)
        line = ledger.get_line(request.gas_brand, request.gas_type)
        return StockOperationResult(
            success=True,
            message="Stock deducted successfully",
            available_quantity=line.available_quantity,
            reserved_quantity=line.reserved_quantity,
            commitment=StockCommitment.DEDUCTED,
        )

    def restore(
        self, key: str, request: StockRequestDTO, actor: Actor, commitment: StockCommitment
    ) -> StockOperationResult:
        if commitment is StockCommitment.NONE:
            return StockOperationResult(
                success=True, message="No stock held for this order", commitment=StockCommitment.NONE
            )

        def give_back(ledger):
            if commitment is StockCommitment.RESERVED:
                ledger.release(request.gas_brand, request.gas_type, request.quantity, actor, "Order stock restored")
            else:
                ledger.update_stock(
                    request.gas_brand, request.gas_type, request.quantity, StockAction.RETURN, actor, "Order stock restored"
                )

        _, ledger = self.ledger_writer.apply(key, give_back)
        line = ledger.get_line(request.gas_brand, request.gas_type)
        return StockOperationResult(
            success=True,
            message="Stock restored successfully",
            available_quantity=line.available_quantity,
            reserved_quantity=line.reserved_quantity,
            commitment=StockCommitment.NONE,
        )

    def recommit(
        self, key: str, request: StockRequestDTO, actor: Actor, commitment: StockCommitment
    ) -> StockOperationResult:
        if commitment is StockCommitment.NONE:
            return StockOperationResult(success=True, message="Nothing to recommit", commitment=StockCommitment.NONE)

        def take_again(ledger):
            if commitment is StockCommitment.RESERVED:
                ledger.reserve(request.gas_brand, request.gas_type, request.quantity, actor, "Reservation reinstated")
            else:
                ledger.update_stock(
                    request.gas_brand, request.gas_type, request.quantity, StockAction.SALE, actor, "Sale reinstated"
                )

        _, ledger = self.ledger_writer.apply(key, take_again)
        line = ledger.get_line(request.gas_brand, request.gas_type)
        return StockOperationResult(
            success=True,
            message="Stock recommitted successfully",
            available_quantity=line.available_quantity,
            reserved_quantity=line.reserved_quantity,
            commitment=commitment,
        )

    def check_availability(self, key: str, gas_brand: str, gas_type: str, requested: int) -> StockOperationResult:
        available = self.get_available_stock(key, gas_brand, gas_type)
        sufficient = available >= requested
        return StockOperationResult(
            success=True,
            message="Sufficient stock" if sufficient else "Insufficient stock",
            available_quantity=available,
            requested_quantity=requested,
            sufficient=sufficient,
            shortage=max(0, requested - available),
            gas_brand=gas_brand,
            gas_type=gas_type,
        )

    def get_available_stock(self, key: str, gas_brand: str, gas_type: str) -> int:
        ledger = self.ledger_writer.stock_repo.get_by_shop_id(key)
        if ledger is None:
            raise LedgerNotFoundError(key)
        return ledger.get_line(gas_brand, gas_type).available_quantity


class LegacyGasStockBackend(StockBackend):
    """
    Stock held in a legacy single-counter record. There is no reserved pool:
    any commitment decrements the counter, so "reserve" already takes the
    stock and confirmation has nothing left to do.
    """

    def __init__(self, gas_stock_repo: ILegacyGasStockRepository) -> None:
        self.gas_stock_repo = gas_stock_repo

    def commits_on_creation(self, payment_completed: bool) -> bool:
        return True

    def _get(self, key: str) -> LegacyGasStock:
        gas_stock = self.gas_stock_repo.get_by_id(key)
        if gas_stock is None:
            raise GasStockNotFoundError(key)
        return gas_stock

    def reserve(self, key: str, request: StockRequestDTO, actor: Actor) -> StockOperationResult:
        gas_stock = self.gas_stock_repo.adjust_quantity(key, -request.quantity)
        logger.info(f"{actor.actor_id} took {request.quantity} from legacy gas stock {key}")
        return StockOperationResult(
            success=True,
            message="Stock reserved successfully",
            available_quantity=gas_stock.gas_available_qty,
            commitment=StockCommitment.DEDUCTED,
        )

    def deduct(self, key: str, request: StockRequestDTO, actor: Actor) -> StockOperationResult:
        gas_stock = self._get(key)
        return StockOperationResult(
            success=True,
            message="Stock already handled (legacy system)",
            available_quantity=gas_stock.gas_available_qty,
            commitment=StockCommitment.DEDUCTED,
        )

    def restore(
        self, key: str, request: StockRequestDTO, actor: Actor, commitment: StockCommitment
    ) -> StockOperationResult:
        if commitment is StockCommitment.NONE:
            return StockOperationResult(
                success=True, message="No stock held for this order", commitment=StockCommitment.NONE
            )
        gas_stock = self.gas_stock_repo.adjust_quantity(key, request.quantity)
        logger.info(f"{actor.actor_id} returned {request.quantity} to legacy gas stock {key}")
        return StockOperationResult(
            success=True,
            message="Stock restored successfully",
            available_quantity=gas_stock.gas_available_qty,
            commitment=StockCommitment.NONE,
        )

    def recommit(
        self, key: str, request: StockRequestDTO, actor: Actor, commitment: StockCommitment
    ) -> StockOperationResult:
        if commitment is StockCommitment.NONE:
            return StockOperationResult(success=True, message="Nothing to recommit", commitment=StockCommitment.NONE)
        gas_stock = self.gas_stock_repo.adjust_quantity(key, -request.quantity)
        return StockOperationResult(
            success=True,
            message="Stock recommitted successfully",
            available_quantity=gas_stock.gas_available_qty,
            commitment=StockCommitment.DEDUCTED,
        )

    def check_availability(self, key: str, gas_brand: str, gas_type: str, requested: int) -> StockOperationResult:
        # The record holds a single product; gas_brand and gas_type are not matched against it
        gas_stock = self._get(key)
        available = gas_stock.gas_available_qty
        sufficient = available >= requested
        return StockOperationResult(
            success=True,
            message="Sufficient stock" if sufficient else "Insufficient stock",
            available_quantity=available,
            requested_quantity=requested,
            sufficient=sufficient,
            shortage=max(0, requested - available),
            gas_brand=gas_stock.gas_brand,
            gas_type=gas_stock.gas_type,
        )

    def get_available_stock(self, key: str, gas_brand: str, gas_type: str) -> int:
        return self._get(key).gas_available_qty
