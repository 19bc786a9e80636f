"""Main application entry point for the gas inventory engine."""

import logging
import time
from dataclasses import dataclass

from gasledger.common.config.settings import settings
from gasledger.common.exceptions.custom_exceptions import DatabaseError
from gasledger.common.logger_config import setup_logging
from gasledger.order_domain.application.order_lifecycle_service import OrderLifecycleService
from gasledger.order_domain.infrastructure.api_clients.price_api_client import PriceApiClient
from gasledger.order_domain.infrastructure.persistence.in_memory_order_repository import InMemoryOrderRepository
from gasledger.order_domain.infrastructure.persistence.mysql_order_repository import MySQLOrderRepository
from gasledger.order_domain.infrastructure.persistence.mysql_party_directory import MySQLPartyDirectory
from gasledger.stock_domain.application.arrival_scheduler import ArrivalScheduler
from gasledger.stock_domain.application.shop_stock_service import ShopStockService
from gasledger.stock_domain.application.stock_backends import LegacyGasStockBackend, ShopLedgerBackend
from gasledger.stock_domain.application.stock_manager import StockManager
from gasledger.stock_domain.domain.services.ledger_writer import LedgerWriter
from gasledger.stock_domain.infrastructure.persistence.in_memory_stock_repositories import (
    InMemoryLegacyGasStockRepository,
    InMemoryShopStockRepository,
)
from gasledger.stock_domain.infrastructure.persistence.mysql_gas_stock_repository import (
    MySQLLegacyGasStockRepository,
)
from gasledger.stock_domain.infrastructure.persistence.mysql_shop_stock_repository import (
    MySQLShopStockRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class Application:
    stock_manager: StockManager
    shop_stock_service: ShopStockService
    order_service: OrderLifecycleService
    arrival_scheduler: ArrivalScheduler


def create_db_tables() -> None:
    """Creates tables for the stock and order domains."""
    for repo in (MySQLShopStockRepository(), MySQLLegacyGasStockRepository(), MySQLOrderRepository()):
        try:
            repo.create_tables()
        except DatabaseError as e:
            logger.error(f"Error creating database tables: {e}")
            raise
        finally:
            repo.close()


def setup_dependencies() -> Application:
    """Initializes and wires up application dependencies."""
    if settings.STORAGE_BACKEND == "memory":
        shop_stock_repo = InMemoryShopStockRepository()
        gas_stock_repo = InMemoryLegacyGasStockRepository()
        order_repo = InMemoryOrderRepository()
        party_directory = None
    else:
        shop_stock_repo = MySQLShopStockRepository()
        gas_stock_repo = MySQLLegacyGasStockRepository()
        order_repo = MySQLOrderRepository()
        party_directory = MySQLPartyDirectory()

    ledger_writer = LedgerWriter(shop_stock_repo, max_attempts=settings.LEDGER_MAX_RETRIES)
    stock_manager = StockManager(
        ledger_backend=ShopLedgerBackend(ledger_writer),
        legacy_backend=LegacyGasStockBackend(gas_stock_repo),
    )
    return Application(
        stock_manager=stock_manager,
        shop_stock_service=ShopStockService(shop_stock_repo, ledger_writer),
        order_service=OrderLifecycleService(
            order_repo=order_repo,
            stock_manager=stock_manager,
            price_provider=PriceApiClient(),
            party_directory=party_directory,
        ),
        arrival_scheduler=ArrivalScheduler(shop_stock_repo, ledger_writer),
    )


if __name__ == "__main__":
    setup_logging()
    logger.info("Gas inventory engine started.")

    if settings.STORAGE_BACKEND != "memory":
        create_db_tables()
    app = setup_dependencies()
    app.arrival_scheduler.start()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        app.arrival_scheduler.stop()
