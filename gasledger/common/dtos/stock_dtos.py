"""Data Transfer Objects shared by the stock engine and its callers."""

from dataclasses import dataclass
from enum import Enum

from gasledger.common.exceptions.custom_exceptions import ValidationError


class StockCommitment(str, Enum):
    """What an order currently holds on its stock line."""

    NONE = "none"
    RESERVED = "reserved"  # moved from available to reserved, not yet sold
    DEDUCTED = "deducted"  # gone from the ledger (sold)


@dataclass(frozen=True)
class StockTarget:
    """Addresses a stock record: a shop ledger or a legacy single-counter gas stock."""

    shop_id: str | None = None
    gas_stock_id: str | None = None

    def __post_init__(self) -> None:
        if bool(self.shop_id) == bool(self.gas_stock_id):
            raise ValidationError("Exactly one of shop_id or gas_stock_id must be provided")

    @property
    def is_legacy(self) -> bool:
        return bool(self.gas_stock_id)

    def __str__(self) -> str:
        return f"shop {self.shop_id}" if self.shop_id else f"gas stock {self.gas_stock_id}"


@dataclass(frozen=True)
class StockRequestDTO:
    """The brand, gas type and quantity a stock operation applies to."""

    gas_brand: str
    gas_type: str
    quantity: int

    def __post_init__(self) -> None:
        if not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValidationError(f"Quantity must be a positive integer, got {self.quantity!r}")


@dataclass
class StockOperationResult:
    """Uniform outcome of every StockManager / ShopStockService call."""

    success: bool
    message: str
    available_quantity: int | None = None
    reserved_quantity: int | None = None
    commitment: StockCommitment | None = None
    requested_quantity: int | None = None
    shortage: int | None = None
    sufficient: bool | None = None
    gas_brand: str | None = None  # product the record actually holds
    gas_type: str | None = None

    @classmethod
    def failure(cls, message: str) -> "StockOperationResult":
        return cls(success=False, message=message)


@dataclass
class SchedulerStatusDTO:
    is_running: bool
    next_check_in: str
