"""Order repository interface."""
from abc import ABC, abstractmethod
from typing import Optional

from gasledger.order_domain.domain.entities.order import Order


class IOrderRepository(ABC):

    @abstractmethod
    def add(self, order: Order) -> None:
        """Stores a new order and sets its version to 1."""
        pass

    @abstractmethod
    def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    def get_by_order_number(self, order_number: str) -> Optional[Order]:
        pass

    @abstractmethod
    def save(self, order: Order) -> None:
        """
        Persists changes to an existing order if the stored version still equals
        order.version, then increments it. Raises ConcurrencyConflictError otherwise.
        """
        pass

    @abstractmethod
    def delete(self, order_id: str) -> None:
        """Removes an order. Only used to undo a creation whose stock commit failed."""
        pass
