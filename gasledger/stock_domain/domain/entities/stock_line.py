"""Stock line entity and its embedded next-arrival schedule."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ArrivalStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(frozen=True)  # Value objects are immutable
class SupplierContact:
    name: Optional[str] = None
    contact: Optional[str] = None


@dataclass
class NextArrival:
    """A restock expected on a given date, applied automatically once due."""

    arrival_date: Optional[datetime] = None
    expected_quantity: int = 0
    auto_update_enabled: bool = False
    status: ArrivalStatus = ArrivalStatus.SCHEDULED
    scheduled_by: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    notes: str = ""

    def is_due(self, now: datetime) -> bool:
        return (
            self.status == ArrivalStatus.SCHEDULED
            and self.auto_update_enabled
            and self.arrival_date is not None
            and self.arrival_date <= now
        )


@dataclass
class StockLine:
    """Counters and metadata for one brand and gas size in a shop."""

    brand_name: str
    gas_type: str
    gas_size: str
    unit_price: float
    available_quantity: int = 0
    reserved_quantity: int = 0
    min_stock_level: int = 10
    max_stock_level: int = 100
    special_price: Optional[float] = None
    last_restock_date: Optional[datetime] = None
    next_arrival: Optional[NextArrival] = None
    supplier: SupplierContact = field(default_factory=SupplierContact)
    is_available: bool = True

    def __post_init__(self) -> None:
        """Post-initialization for validation."""
        if self.available_quantity < 0:
            raise ValueError("Available quantity cannot be negative.")
        if self.reserved_quantity < 0:
            raise ValueError("Reserved quantity cannot be negative.")
        if self.unit_price < 0:
            raise ValueError("Unit price cannot be negative.")

    @property
    def key(self) -> tuple[str, str]:
        return self.brand_name, self.gas_type

    @property
    def total_quantity(self) -> int:
        return self.available_quantity + self.reserved_quantity

    @property
    def stock_value(self) -> float:
        return self.available_quantity * self.unit_price
