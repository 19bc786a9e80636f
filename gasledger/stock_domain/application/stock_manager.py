# gasledger/stock_domain/application/stock_manager.py
"""Application service through which order logic reserves, deducts, restores and checks stock."""

import logging

from gasledger.common.dtos.stock_dtos import (
    StockCommitment,
    StockOperationResult,
    StockRequestDTO,
    StockTarget,
)
from gasledger.common.exceptions.custom_exceptions import ApplicationError
from gasledger.stock_domain.application.stock_backends import StockBackend
from gasledger.stock_domain.domain.entities.stock_ledger import Actor

logger = logging.getLogger(__name__)


class StockManager:
    """
    Single entry point for stock changes caused by orders.

    Every public method returns a StockOperationResult and never raises: domain
    errors (unknown line, insufficient stock, exhausted concurrency retries,
    database failures) become `success=False` with the error message.
    """

    def __init__(self, ledger_backend: StockBackend, legacy_backend: StockBackend) -> None:
        """Initializes the StockManager with one backend per kind of stock target."""
        self.ledger_backend = ledger_backend
        self.legacy_backend = legacy_backend

    def _backend_for(self, target: StockTarget) -> tuple[StockBackend, str]:
        if target.is_legacy:
            return self.legacy_backend, target.gas_stock_id
        return self.ledger_backend, target.shop_id

    def _run(self, operation: str, target: StockTarget, call) -> StockOperationResult:
        try:
            backend, key = self._backend_for(target)
            return call(backend, key)
        except ApplicationError as e:
            logger.warning(f"{operation} failed for {target}: {e.message}")
            return StockOperationResult.failure(e.message)
        except Exception as e:
            logger.error(f"Unexpected error during {operation} for {target}: {e}", exc_info=True)
            return StockOperationResult.failure(str(e))

    def commits_on_creation(self, target: StockTarget, payment_completed: bool) -> bool:
        """Whether an order for this target takes stock when it is created."""
        backend, _ = self._backend_for(target)
        return backend.commits_on_creation(payment_completed)

    def reserve_stock(self, target: StockTarget, request: StockRequestDTO, actor: Actor) -> StockOperationResult:
        """Holds stock for a prepaid order (moves it from available to reserved)."""
        return self._run("reserve", target, lambda backend, key: backend.reserve(key, request, actor))

    def deduct_stock(self, target: StockTarget, request: StockRequestDTO, actor: Actor) -> StockOperationResult:
        """
        Takes stock for a confirmed order. If the line's reserved pool covers the
        quantity it is sold from there, otherwise from the available pool.
        """
        return self._run("deduct", target, lambda backend, key: backend.deduct(key, request, actor))

    def restore_stock(
        self,
        target: StockTarget,
        request: StockRequestDTO,
        actor: Actor,
        commitment: StockCommitment,
    ) -> StockOperationResult:
        """Gives back what the order holds: a reservation is released, a sale is returned."""
        return self._run("restore", target, lambda backend, key: backend.restore(key, request, actor, commitment))

    def recommit_stock(
        self,
        target: StockTarget,
        request: StockRequestDTO,
        actor: Actor,
        commitment: StockCommitment,
    ) -> StockOperationResult:
        """Re-takes a commitment released by restore_stock when the order update that followed failed."""
        return self._run("recommit", target, lambda backend, key: backend.recommit(key, request, actor, commitment))

    def check_availability(
        self, target: StockTarget, gas_brand: str, gas_type: str, requested: int
    ) -> StockOperationResult:
        return self._run(
            "availability check",
            target,
            lambda backend, key: backend.check_availability(key, gas_brand, gas_type, requested),
        )

    def get_available_stock(self, target: StockTarget, gas_brand: str, gas_type: str) -> StockOperationResult:
        def read(backend: StockBackend, key: str) -> StockOperationResult:
            available = backend.get_available_stock(key, gas_brand, gas_type)
            return StockOperationResult(success=True, message="OK", available_quantity=available)

        return self._run("stock lookup", target, read)
