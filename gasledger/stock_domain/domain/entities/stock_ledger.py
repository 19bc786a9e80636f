"""Shop stock ledger aggregate: stock lines, audit history and derived alerts."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from gasledger.common.exceptions.custom_exceptions import (
    InsufficientStockError,
    StockLineNotFoundError,
    ValidationError,
)
from gasledger.common.utils.date_utils import ensure_utc, utc_now

from .gas_type import GasSize, match_stock_line
from .stock_line import ArrivalStatus, NextArrival, StockLine


class ActorRole(str, Enum):
    SALES_AGENT = "SalesAgent"
    ADMIN = "Admin"
    CUSTOMER = "Customer"
    SYSTEM = "System"


@dataclass(frozen=True)
class Actor:
    """Who performed a ledger mutation."""

    actor_id: str
    role: ActorRole = ActorRole.SALES_AGENT

    @classmethod
    def for_order(cls, order_ref: object) -> "Actor":
        return cls(actor_id=f"Order: {order_ref}", role=ActorRole.SYSTEM)


class StockAction(str, Enum):
    """Manual stock movements accepted by StockLedger.update_stock."""

    RESTOCK = "restock"
    SALE = "sale"
    ADJUSTMENT = "adjustment"
    RETURN = "return"
    DAMAGE = "damage"


class HistoryAction(str, Enum):
    RESTOCK = "restock"
    SALE = "sale"
    RESERVATION_SALE = "reservation_sale"
    ADJUSTMENT = "adjustment"
    RETURN = "return"
    DAMAGE = "damage"
    RESERVATION = "reservation"
    RELEASE = "release"
    ARRIVAL_SCHEDULED = "arrival_scheduled"
    ARRIVAL_CANCELLED = "arrival_cancelled"
    ARRIVAL_COMPLETED = "arrival_completed"


class AlertType(str, Enum):
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    OVERSTOCKED = "overstocked"


@dataclass(frozen=True)
class StockHistoryEntry:
    """One audit record. Quantities are the line's available quantity before and after."""

    action: HistoryAction
    brand_name: str
    gas_type: str
    quantity: int
    previous_quantity: int
    new_quantity: int
    reason: str
    performed_by: Optional[str]
    performed_by_role: Optional[ActorRole]
    timestamp: datetime

    @property
    def delta(self) -> int:
        return self.new_quantity - self.previous_quantity


@dataclass(frozen=True)
class StockAlert:
    brand_name: str
    gas_type: str
    alert_type: AlertType
    message: str


def _restock(line: StockLine, quantity: int, now: datetime) -> None:
    line.available_quantity += quantity
    line.last_restock_date = now


def _sale(line: StockLine, quantity: int, now: datetime) -> None:
    if line.available_quantity < quantity:
        raise InsufficientStockError(line.available_quantity, quantity)
    line.available_quantity -= quantity


def _adjustment(line: StockLine, quantity: int, now: datetime) -> None:
    line.available_quantity = quantity


def _return(line: StockLine, quantity: int, now: datetime) -> None:
    line.available_quantity += quantity


def _damage(line: StockLine, quantity: int, now: datetime) -> None:
    if line.available_quantity < quantity:
        raise InsufficientStockError(
            line.available_quantity,
            quantity,
            message=f"Cannot report damage for more than available stock ({line.available_quantity})",
        )
    line.available_quantity -= quantity


_STOCK_ACTION_HANDLERS: dict[StockAction, Callable[[StockLine, int, datetime], None]] = {
    StockAction.RESTOCK: _restock,
    StockAction.SALE: _sale,
    StockAction.ADJUSTMENT: _adjustment,
    StockAction.RETURN: _return,
    StockAction.DAMAGE: _damage,
}

_unhandled_actions = set(StockAction) - set(_STOCK_ACTION_HANDLERS)
if _unhandled_actions:
    raise RuntimeError(f"Missing handlers for stock actions: {sorted(a.value for a in _unhandled_actions)}")


# (brand, size, unit price) for the lines every new shop starts with
DEFAULT_GAS_LINES: tuple[tuple[str, GasSize, float], ...] = (
    ("Laugfs", GasSize.SMALL, 800),
    ("Laugfs", GasSize.MEDIUM, 1700),
    ("Laugfs", GasSize.LARGE, 4200),
    ("Litro", GasSize.SMALL, 780),
    ("Litro", GasSize.MEDIUM, 1650),
    ("Litro", GasSize.LARGE, 4100),
)


def _check_quantity(quantity: object, allow_zero: bool = False) -> None:
    minimum = 0 if allow_zero else 1
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < minimum:
        raise ValidationError(f"Quantity must be an integer >= {minimum}, got {quantity!r}")


@dataclass
class StockLedger:
    """
    Per-shop stock record. Every mutation resolves its line, applies the change,
    appends exactly one history entry and recomputes total value and alerts.
    `version` is the optimistic concurrency token checked by the repository on save.
    """

    shop_id: str
    lines: list[StockLine] = field(default_factory=list)
    history: list[StockHistoryEntry] = field(default_factory=list)
    alerts: list[StockAlert] = field(default_factory=list)
    total_value: float = 0.0
    last_updated_by: Optional[str] = None
    updated_by_role: Optional[ActorRole] = None
    notes: str = ""
    version: int = 0
    persisted_history_count: int = 0

    def __post_init__(self) -> None:
        keys = [line.key for line in self.lines]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate stock lines in ledger for shop {self.shop_id}")
        self.refresh_derived()

    @classmethod
    def create_default(cls, shop_id: str, min_stock_level: int = 10, max_stock_level: int = 100) -> "StockLedger":
        """Builds the ledger a new shop starts with: both brands in all three sizes, empty."""
        lines = [
            StockLine(
                brand_name=brand,
                gas_type=size.value,
                gas_size=size.weight_label,
                unit_price=unit_price,
                min_stock_level=min_stock_level,
                max_stock_level=max_stock_level,
            )
            for brand, size, unit_price in DEFAULT_GAS_LINES
        ]
        return cls(shop_id=shop_id, lines=lines)

    # --- lookups ---

    def available_types(self, brand_name: str) -> list[str]:
        return [line.gas_type for line in self.lines if line.brand_name == brand_name]

    def find_line(self, brand_name: str, gas_type: str) -> Optional[StockLine]:
        return match_stock_line(self.lines, brand_name, gas_type)

    def get_line(self, brand_name: str, gas_type: str) -> StockLine:
        line = self.find_line(brand_name, gas_type)
        if line is None:
            raise StockLineNotFoundError(brand_name, gas_type, self.available_types(brand_name))
        return line

    def due_arrivals(self, now: datetime) -> list[StockLine]:
        return [line for line in self.lines if line.next_arrival is not None and line.next_arrival.is_due(now)]

    @property
    def pending_history(self) -> list[StockHistoryEntry]:
        """History entries appended since the ledger was last stored."""
        return self.history[self.persisted_history_count :]

    def mark_history_persisted(self) -> None:
        self.persisted_history_count = len(self.history)

    # --- mutations ---

    def update_stock(
        self,
        brand_name: str,
        gas_type: str,
        quantity: int,
        action: StockAction | str,
        actor: Actor,
        reason: str = "",
        now: Optional[datetime] = None,
    ) -> StockHistoryEntry:
        try:
            action = StockAction(action)
        except ValueError:
            raise ValidationError(f"Invalid stock action: {action}")
        _check_quantity(quantity, allow_zero=action is StockAction.ADJUSTMENT)
        line = self.get_line(brand_name, gas_type)
        now = now or utc_now()

        previous_quantity = line.available_quantity
        _STOCK_ACTION_HANDLERS[action](line, quantity, now)
        return self._record(HistoryAction(action.value), line, quantity, previous_quantity, actor, reason, now)

    def reserve(
        self,
        brand_name: str,
        gas_type: str,
        quantity: int,
        actor: Actor,
        reason: str = "Stock reserved for order payment",
        now: Optional[datetime] = None,
    ) -> StockHistoryEntry:
        _check_quantity(quantity)
        line = self.get_line(brand_name, gas_type)
        if line.available_quantity < quantity:
            raise InsufficientStockError(
                line.available_quantity,
                quantity,
                message=f"Insufficient available stock. Available: {line.available_quantity}, Requested: {quantity}",
            )

        previous_quantity = line.available_quantity
        line.available_quantity -= quantity
        line.reserved_quantity += quantity
        return self._record(HistoryAction.RESERVATION, line, quantity, previous_quantity, actor, reason, now)

    def release(
        self,
        brand_name: str,
        gas_type: str,
        quantity: int,
        actor: Actor,
        reason: str = "Reservation released",
        now: Optional[datetime] = None,
    ) -> StockHistoryEntry:
        _check_quantity(quantity)
        line = self.get_line(brand_name, gas_type)

        released = min(quantity, line.reserved_quantity)
        previous_quantity = line.available_quantity
        line.reserved_quantity -= released
        line.available_quantity += released
        return self._record(HistoryAction.RELEASE, line, released, previous_quantity, actor, reason, now)

    def consume_reservation(
        self,
        brand_name: str,
        gas_type: str,
        quantity: int,
        actor: Actor,
        reason: str = "Reserved stock sold",
        now: Optional[datetime] = None,
    ) -> StockHistoryEntry:
        """Sells units out of the reserved pool; the available pool is untouched."""
        _check_quantity(quantity)
        line = self.get_line(brand_name, gas_type)
        if line.reserved_quantity < quantity:
            raise InsufficientStockError(
                line.reserved_quantity,
                quantity,
                message=f"Insufficient reserved stock. Reserved: {line.reserved_quantity}, Requested: {quantity}",
            )

        line.reserved_quantity -= quantity
        return self._record(
            HistoryAction.RESERVATION_SALE, line, quantity, line.available_quantity, actor, reason, now
        )

    def schedule_arrival(
        self,
        brand_name: str,
        gas_type: str,
        arrival_date: datetime,
        expected_quantity: int,
        actor: Actor,
        notes: str = "",
        now: Optional[datetime] = None,
    ) -> StockHistoryEntry:
        """Sets (or overwrites) the line's next arrival with auto-update enabled."""
        if arrival_date is None:
            raise ValidationError("Arrival date is required")
        _check_quantity(expected_quantity)
        line = self.get_line(brand_name, gas_type)
        now = now or utc_now()

        line.next_arrival = NextArrival(
            arrival_date=ensure_utc(arrival_date),
            expected_quantity=expected_quantity,
            auto_update_enabled=True,
            status=ArrivalStatus.SCHEDULED,
            scheduled_by=actor.actor_id,
            scheduled_at=now,
            notes=notes,
        )
        reason = f"Next arrival scheduled for {line.next_arrival.arrival_date.date().isoformat()}"
        return self._record(
            HistoryAction.ARRIVAL_SCHEDULED, line, expected_quantity, line.available_quantity, actor, reason, now
        )

    def cancel_arrival(
        self, brand_name: str, gas_type: str, actor: Actor, now: Optional[datetime] = None
    ) -> bool:
        """Cancels a scheduled arrival. Returns False when there is nothing scheduled."""
        line = self.get_line(brand_name, gas_type)
        arrival = line.next_arrival
        if arrival is None or arrival.status != ArrivalStatus.SCHEDULED:
            return False

        arrival.status = ArrivalStatus.CANCELLED
        arrival.auto_update_enabled = False
        self._record(
            HistoryAction.ARRIVAL_CANCELLED, line, 0, line.available_quantity, actor, "Next arrival cancelled", now
        )
        return True

    def execute_arrival(self, brand_name: str, gas_type: str, now: Optional[datetime] = None) -> bool:
        """
        Credits a due arrival to the available pool and marks it completed.
        Returns False (and changes nothing) if the arrival is not scheduled,
        has auto-update disabled, is not yet due, or was already executed.
        """
        line = self.get_line(brand_name, gas_type)
        now = now or utc_now()
        arrival = line.next_arrival
        if arrival is None or not arrival.is_due(now):
            return False

        previous_quantity = line.available_quantity
        line.available_quantity += arrival.expected_quantity
        line.last_restock_date = now
        arrival.status = ArrivalStatus.COMPLETED
        arrival.auto_update_enabled = False

        actor = Actor(actor_id=arrival.scheduled_by or "scheduler", role=ActorRole.SALES_AGENT)
        reason = f"Automated arrival restock - {arrival.notes}" if arrival.notes else "Automated arrival restock"
        self._record(
            HistoryAction.ARRIVAL_COMPLETED, line, arrival.expected_quantity, previous_quantity, actor, reason, now
        )
        return True

    # --- derived state ---

    def refresh_derived(self) -> None:
        """Recomputes total value and the alert set from current line state."""
        self.total_value = round(sum(line.stock_value for line in self.lines), 2)

        alerts: list[StockAlert] = []
        for line in self.lines:
            label = f"{line.brand_name} {line.gas_type}"
            if line.available_quantity == 0 and line.is_available:
                alerts.append(StockAlert(line.brand_name, line.gas_type, AlertType.OUT_OF_STOCK, f"{label} is out of stock"))
            elif line.available_quantity < line.min_stock_level and line.is_available:
                alerts.append(
                    StockAlert(
                        line.brand_name,
                        line.gas_type,
                        AlertType.LOW_STOCK,
                        f"{label} is running low ({line.available_quantity} units remaining)",
                    )
                )
            elif line.available_quantity > line.max_stock_level:
                alerts.append(
                    StockAlert(
                        line.brand_name,
                        line.gas_type,
                        AlertType.OVERSTOCKED,
                        f"{label} is overstocked ({line.available_quantity} units)",
                    )
                )
        self.alerts = alerts

    def _record(
        self,
        action: HistoryAction,
        line: StockLine,
        quantity: int,
        previous_quantity: int,
        actor: Actor,
        reason: str,
        now: Optional[datetime],
    ) -> StockHistoryEntry:
        entry = StockHistoryEntry(
            action=action,
            brand_name=line.brand_name,
            gas_type=line.gas_type,
            quantity=quantity,
            previous_quantity=previous_quantity,
            new_quantity=line.available_quantity,
            reason=reason,
            performed_by=actor.actor_id,
            performed_by_role=actor.role,
            timestamp=now or utc_now(),
        )
        self.history.append(entry)
        self.last_updated_by = actor.actor_id
        self.updated_by_role = actor.role
        self.refresh_derived()
        return entry
