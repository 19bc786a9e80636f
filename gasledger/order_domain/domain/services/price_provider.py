from abc import ABC, abstractmethod
from typing import Optional

from gasledger.common.dtos.order_dtos import PriceQuoteDTO


class IPriceProvider(ABC):
    """Source of current gas prices."""

    @abstractmethod
    def get_current_price(
        self, gas_brand: str, gas_type: str, region: Optional[str] = None, quantity: int = 1
    ) -> Optional[PriceQuoteDTO]:
        """Returns the current quote, or None when no price is defined for the brand and type."""
        pass
