# tests/conftest.py
from datetime import datetime
from unittest.mock import Mock

import pytest
import pytz

from gasledger.common.config.settings import settings
from gasledger.common.dtos.order_dtos import (
    DeliveryInfoDTO,
    OrderDetailsDTO,
    OrderSubmissionDTO,
    PaymentInfoDTO,
    PriceQuoteDTO,
)
from gasledger.order_domain.application.order_lifecycle_service import OrderLifecycleService
from gasledger.order_domain.domain.services.price_provider import IPriceProvider
from gasledger.order_domain.infrastructure.persistence.in_memory_order_repository import InMemoryOrderRepository
from gasledger.stock_domain.application.shop_stock_service import ShopStockService
from gasledger.stock_domain.application.stock_backends import LegacyGasStockBackend, ShopLedgerBackend
from gasledger.stock_domain.application.stock_manager import StockManager
from gasledger.stock_domain.domain.entities.legacy_gas_stock import LegacyGasStock
from gasledger.stock_domain.domain.entities.stock_ledger import Actor, ActorRole, StockAction, StockLedger
from gasledger.stock_domain.domain.services.ledger_writer import LedgerWriter
from gasledger.stock_domain.infrastructure.persistence.in_memory_stock_repositories import (
    InMemoryLegacyGasStockRepository,
    InMemoryShopStockRepository,
)

SHOP_ID = "shop-1"
GAS_STOCK_ID = "gs-1"
CUSTOMER_ID = "customer-1"


@pytest.fixture(autouse=True)
def mock_settings_price_api(mocker) -> None:
    """Points the price client at a fixed URL and token for consistent testing."""
    mocker.patch.object(settings, "PRICE_API_BASE_URL", "https://prices.example.test/api")
    mocker.patch.object(settings, "PRICE_API_TOKEN", "test_token")


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 15, 10, 0, tzinfo=pytz.utc)


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def agent() -> Actor:
    return Actor(actor_id="agent-1", role=ActorRole.SALES_AGENT)


@pytest.fixture
def shop_stock_repo() -> InMemoryShopStockRepository:
    return InMemoryShopStockRepository()


@pytest.fixture
def gas_stock_repo() -> InMemoryLegacyGasStockRepository:
    return InMemoryLegacyGasStockRepository()


@pytest.fixture
def ledger_writer(shop_stock_repo) -> LedgerWriter:
    return LedgerWriter(shop_stock_repo, max_attempts=5)


@pytest.fixture
def stock_manager(ledger_writer, gas_stock_repo) -> StockManager:
    return StockManager(
        ledger_backend=ShopLedgerBackend(ledger_writer),
        legacy_backend=LegacyGasStockBackend(gas_stock_repo),
    )


@pytest.fixture
def shop_stock_service(shop_stock_repo, ledger_writer, clock) -> ShopStockService:
    return ShopStockService(shop_stock_repo, ledger_writer, clock=clock)


@pytest.fixture
def stocked_shop(shop_stock_repo, ledger_writer, agent) -> str:
    """A default ledger for SHOP_ID with 10 Laugfs Medium and 5 Litro Small available."""
    shop_stock_repo.create(StockLedger.create_default(SHOP_ID))
    ledger_writer.apply(SHOP_ID, lambda l: l.update_stock("Laugfs", "Medium", 10, StockAction.RESTOCK, agent))
    ledger_writer.apply(SHOP_ID, lambda l: l.update_stock("Litro", "Small", 5, StockAction.RESTOCK, agent))
    return SHOP_ID


@pytest.fixture
def legacy_gas_stock(gas_stock_repo) -> str:
    gas_stock_repo.add(
        LegacyGasStock(
            id=GAS_STOCK_ID,
            gas_center_name="Colombo Gas Center",
            gas_brand="Litro",
            gas_type="12.5kg",
            gas_available_qty=8,
        )
    )
    return GAS_STOCK_ID


@pytest.fixture
def mock_price_provider() -> Mock:
    """Mock price provider quoting 1700 for everything."""
    provider = Mock(spec=IPriceProvider)
    provider.get_current_price.return_value = PriceQuoteDTO(gas_brand="Laugfs", gas_type="Medium", final_price=1700.0)
    return provider


@pytest.fixture
def order_repo() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def order_service(order_repo, stock_manager, mock_price_provider, clock) -> OrderLifecycleService:
    return OrderLifecycleService(
        order_repo=order_repo,
        stock_manager=stock_manager,
        price_provider=mock_price_provider,
        clock=clock,
        delivery_hours=24,
    )


@pytest.fixture
def cod_submission() -> OrderSubmissionDTO:
    """Cash-on-delivery order for 2 Laugfs Medium from SHOP_ID."""
    return OrderSubmissionDTO(
        order_details=OrderDetailsDTO(gas_brand="Laugfs", gas_type="Medium", quantity=2, unit_price=1700.0),
        delivery_info=DeliveryInfoDTO(delivery_address="12 Galle Road, Colombo", contact_number="0771234567"),
        payment_info=PaymentInfoDTO(payment_method="Cash on Delivery", payment_status="Pending"),
        shop_id=SHOP_ID,
    )


@pytest.fixture
def prepaid_submission() -> OrderSubmissionDTO:
    """Paid online order for 3 Laugfs Medium from SHOP_ID."""
    return OrderSubmissionDTO(
        order_details=OrderDetailsDTO(gas_brand="Laugfs", gas_type="Medium", quantity=3, unit_price=1700.0),
        delivery_info=DeliveryInfoDTO(delivery_address="12 Galle Road, Colombo", contact_number="0771234567"),
        payment_info=PaymentInfoDTO(payment_method="Online Payment", payment_status="Paid", transaction_id="tx-42"),
        shop_id=SHOP_ID,
    )
