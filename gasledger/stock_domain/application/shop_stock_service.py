# gasledger/stock_domain/application/shop_stock_service.py
"""Application service for administering shop stock ledgers."""

import logging
from datetime import datetime
from typing import Callable, Optional

from gasledger.common.config.settings import settings
from gasledger.common.dtos.stock_dtos import StockOperationResult
from gasledger.common.exceptions.custom_exceptions import ApplicationError
from gasledger.common.utils.date_utils import utc_now
from gasledger.stock_domain.domain.entities.stock_ledger import Actor, StockAction, StockLedger
from gasledger.stock_domain.domain.repositories.shop_stock_repository import IShopStockRepository
from gasledger.stock_domain.domain.services.ledger_writer import LedgerWriter

logger = logging.getLogger(__name__)


class ShopStockService:
    """
    Ledger administration used by shop management and sales agents: ledger
    creation and removal alongside the shop, manual stock movements, and
    arrival scheduling. Mutations return a StockOperationResult and never raise.
    """

    def __init__(
        self,
        stock_repo: IShopStockRepository,
        ledger_writer: LedgerWriter,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.stock_repo = stock_repo
        self.ledger_writer = ledger_writer
        self.clock = clock

    def _line_result(self, message: str, ledger: StockLedger, brand_name: str, gas_type: str) -> StockOperationResult:
        line = ledger.get_line(brand_name, gas_type)
        return StockOperationResult(
            success=True,
            message=message,
            available_quantity=line.available_quantity,
            reserved_quantity=line.reserved_quantity,
        )

    def initialize_shop_stock(
        self,
        shop_id: str,
        min_stock_level: int | None = None,
        max_stock_level: int | None = None,
    ) -> StockOperationResult:
        """Creates the default ledger for a newly registered shop."""
        try:
            ledger = StockLedger.create_default(
                shop_id,
                min_stock_level=min_stock_level if min_stock_level is not None else settings.DEFAULT_MIN_STOCK_LEVEL,
                max_stock_level=max_stock_level if max_stock_level is not None else settings.DEFAULT_MAX_STOCK_LEVEL,
            )
            self.stock_repo.create(ledger)
            logger.info(f"Initialized stock ledger for shop {shop_id}")
            return StockOperationResult(success=True, message="Shop stock initialized successfully")
        except ApplicationError as e:
            logger.warning(f"Could not initialize stock for shop {shop_id}: {e.message}")
            return StockOperationResult.failure(e.message)
        except Exception as e:
            logger.error(f"Unexpected error initializing stock for shop {shop_id}: {e}", exc_info=True)
            return StockOperationResult.failure(str(e))

    def delete_shop_stock(self, shop_id: str) -> StockOperationResult:
        """Removes a shop's ledger together with its history and alerts."""
        try:
            self.stock_repo.delete_by_shop_id(shop_id)
            return StockOperationResult(success=True, message="Shop stock deleted successfully")
        except ApplicationError as e:
            logger.warning(f"Could not delete stock for shop {shop_id}: {e.message}")
            return StockOperationResult.failure(e.message)

    def get_shop_stock(self, shop_id: str) -> Optional[StockLedger]:
        return self.stock_repo.get_by_shop_id(shop_id)

    def update_stock(
        self,
        shop_id: str,
        brand_name: str,
        gas_type: str,
        quantity: int,
        action: StockAction | str,
        actor: Actor,
        reason: str = "",
    ) -> StockOperationResult:
        """Applies a manual restock, sale, adjustment, return or damage report."""
        return self._mutate(
            "Stock updated successfully",
            shop_id,
            brand_name,
            gas_type,
            lambda ledger: ledger.update_stock(brand_name, gas_type, quantity, action, actor, reason, self.clock()),
        )

    def schedule_arrival(
        self,
        shop_id: str,
        brand_name: str,
        gas_type: str,
        arrival_date: datetime,
        expected_quantity: int,
        actor: Actor,
        notes: str = "",
    ) -> StockOperationResult:
        return self._mutate(
            "Next arrival scheduled successfully",
            shop_id,
            brand_name,
            gas_type,
            lambda ledger: ledger.schedule_arrival(
                brand_name, gas_type, arrival_date, expected_quantity, actor, notes, self.clock()
            ),
        )

    def cancel_arrival(self, shop_id: str, brand_name: str, gas_type: str, actor: Actor) -> StockOperationResult:
        try:
            cancelled, ledger = self.ledger_writer.apply(
                shop_id, lambda l: l.cancel_arrival(brand_name, gas_type, actor, self.clock())
            )
            if not cancelled:
                return StockOperationResult.failure(f"No scheduled arrival for {brand_name} {gas_type}")
            return self._line_result("Next arrival cancelled successfully", ledger, brand_name, gas_type)
        except ApplicationError as e:
            logger.warning(f"Could not cancel arrival for shop {shop_id}: {e.message}")
            return StockOperationResult.failure(e.message)
        except Exception as e:
            logger.error(f"Unexpected error cancelling arrival for shop {shop_id}: {e}", exc_info=True)
            return StockOperationResult.failure(str(e))

    def execute_arrival(self, shop_id: str, brand_name: str, gas_type: str) -> StockOperationResult:
        """Runs one line's due arrival immediately instead of waiting for the scheduler."""
        try:
            executed, ledger = self.ledger_writer.apply(
                shop_id, lambda l: l.execute_arrival(brand_name, gas_type, self.clock())
            )
            if not executed:
                return StockOperationResult.failure(f"No due arrival for {brand_name} {gas_type}")
            return self._line_result("Arrival executed successfully", ledger, brand_name, gas_type)
        except ApplicationError as e:
            logger.warning(f"Could not execute arrival for shop {shop_id}: {e.message}")
            return StockOperationResult.failure(e.message)
        except Exception as e:
            logger.error(f"Unexpected error executing arrival for shop {shop_id}: {e}", exc_info=True)
            return StockOperationResult.failure(str(e))

    def _mutate(
        self, message: str, shop_id: str, brand_name: str, gas_type: str, mutation: Callable[[StockLedger], object]
    ) -> StockOperationResult:
        try:
            _, ledger = self.ledger_writer.apply(shop_id, mutation)
            return self._line_result(message, ledger, brand_name, gas_type)
        except ApplicationError as e:
            logger.warning(f"Stock change rejected for shop {shop_id} ({brand_name} {gas_type}): {e.message}")
            return StockOperationResult.failure(e.message)
        except Exception as e:
            logger.error(f"Unexpected error changing stock for shop {shop_id}: {e}", exc_info=True)
            return StockOperationResult.failure(str(e))
