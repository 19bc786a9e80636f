"""Legacy gas stock entity: one gas center, one brand and type, one counter."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class LegacyGasStock:
    """Stand-alone stock record predating per-shop ledgers. Has no reservation pool."""

    id: str
    gas_center_name: str
    gas_brand: str
    gas_type: str
    gas_available_qty: int = 0
    next_arrival_date: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def __post_init__(self) -> None:
        """Post-initialization for validation."""
        if self.gas_available_qty < 0:
            raise ValueError("Quantity cannot be negative.")
