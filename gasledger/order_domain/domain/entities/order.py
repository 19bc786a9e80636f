"""Order entity and the fulfillment state machine."""

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from gasledger.common.dtos.stock_dtos import StockCommitment, StockRequestDTO, StockTarget
from gasledger.common.exceptions.custom_exceptions import InvalidTransitionError, ValidationError
from gasledger.common.utils.date_utils import utc_now


class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "Cash on Delivery"
    ONLINE_PAYMENT = "Online Payment"
    BANK_TRANSFER = "Bank Transfer"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.RETURNED: frozenset(),
}

# Forward path used for tracking progress
TRACKING_SEQUENCE: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

_BASE36 = string.digits + string.ascii_uppercase


def generate_order_number() -> str:
    """'ORD' + epoch milliseconds + 4 random uppercase base36 characters."""
    suffix = "".join(random.choices(_BASE36, k=4))
    return f"ORD{int(time.time() * 1000)}{suffix}"


def parse_order_status(value: "OrderStatus | str") -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(status.value for status in OrderStatus)}"
        )


@dataclass
class OrderDetails:
    gas_brand: str
    gas_type: str
    quantity: int
    unit_price: float
    total_price: float


@dataclass
class DeliveryInfo:
    delivery_address: str
    contact_number: str
    preferred_delivery_date: Optional[datetime] = None
    delivery_instructions: Optional[str] = None


@dataclass
class PaymentInfo:
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    payment_status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: Optional[str] = None
    payment_completed_at: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: OrderStatus
    timestamp: datetime
    updated_by: str
    notes: str = ""


@dataclass(frozen=True)
class CustomerRating:
    rating: int
    review: Optional[str]
    rated_at: datetime


@dataclass
class Order:
    """
    A customer's order against either a shop ledger or a legacy gas stock record.

    `stock_commitment` records what the order currently holds on its stock line
    so that cancellation and returns give back exactly that. `version` is
    checked on save the same way ledgers are.
    """

    id: str
    order_number: str
    customer_id: str
    order_details: OrderDetails
    delivery_info: DeliveryInfo
    payment_info: PaymentInfo = field(default_factory=PaymentInfo)
    shop_id: Optional[str] = None
    gas_stock_id: Optional[str] = None
    order_status: OrderStatus = OrderStatus.PENDING
    status_history: list[StatusHistoryEntry] = field(default_factory=list)
    stock_commitment: StockCommitment = StockCommitment.NONE
    cancellation_reason: Optional[str] = None
    refund_amount: float = 0.0
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    customer_rating: Optional[CustomerRating] = None
    created_at: Optional[datetime] = None
    version: int = 0

    @property
    def stock_target(self) -> StockTarget:
        return StockTarget(shop_id=self.shop_id, gas_stock_id=self.gas_stock_id if not self.shop_id else None)

    @property
    def stock_request(self) -> StockRequestDTO:
        return StockRequestDTO(
            gas_brand=self.order_details.gas_brand,
            gas_type=self.order_details.gas_type,
            quantity=self.order_details.quantity,
        )

    @property
    def progress(self) -> int:
        """Percentage along the forward path. Cancelled and returned orders report 0."""
        if self.order_status not in TRACKING_SEQUENCE:
            return 0
        index = TRACKING_SEQUENCE.index(self.order_status)
        return round((index + 1) / len(TRACKING_SEQUENCE) * 100)

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.order_status]

    def transition_to(
        self, new_status: OrderStatus, updated_by: str, notes: str = "", now: Optional[datetime] = None
    ) -> StatusHistoryEntry:
        """Moves to new_status and appends one history entry. Raises InvalidTransitionError otherwise."""
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(self.order_status.value, new_status.value)
        entry = StatusHistoryEntry(
            status=new_status,
            timestamp=now or utc_now(),
            updated_by=updated_by,
            notes=notes or f"Order status updated to {new_status.value}",
        )
        self.order_status = new_status
        self.status_history.append(entry)
        return entry

    def rate(self, rating: int, review: Optional[str] = None, now: Optional[datetime] = None) -> None:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")
        if self.order_status != OrderStatus.DELIVERED:
            raise ValidationError("Order not eligible for rating")
        if self.customer_rating is not None:
            raise ValidationError("Order already rated")
        self.customer_rating = CustomerRating(rating=rating, review=review, rated_at=now or utc_now())
