import copy
from threading import Lock
from typing import Optional

from gasledger.common.exceptions.custom_exceptions import ConcurrencyConflictError, ValidationError
from gasledger.order_domain.domain.entities.order import Order
from gasledger.order_domain.domain.repositories.order_repository import IOrderRepository


class InMemoryOrderRepository(IOrderRepository):
    """Thread-safe dict-backed order store. Reads and writes go through deep copies."""

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._lock = Lock()

    def add(self, order: Order) -> None:
        with self._lock:
            if order.id in self._orders:
                raise ValidationError(f"Order {order.id} already exists")
            order.version = 1
            self._orders[order.id] = copy.deepcopy(order)

    def get_by_id(self, order_id: str) -> Optional[Order]:
        with self._lock:
            stored = self._orders.get(order_id)
            return copy.deepcopy(stored) if stored is not None else None

    def get_by_order_number(self, order_number: str) -> Optional[Order]:
        with self._lock:
            for stored in self._orders.values():
                if stored.order_number == order_number:
                    return copy.deepcopy(stored)
            return None

    def save(self, order: Order) -> None:
        with self._lock:
            stored = self._orders.get(order.id)
            if stored is None or stored.version != order.version:
                raise ConcurrencyConflictError(f"Order {order.order_number} is no longer at version {order.version}")
            order.version += 1
            self._orders[order.id] = copy.deepcopy(order)

    def delete(self, order_id: str) -> None:
        with self._lock:
            self._orders.pop(order_id, None)
