"""Data Transfer Objects for order submission, transitions and tracking."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from gasledger.common.exceptions.custom_exceptions import ValidationError
from gasledger.common.utils.date_utils import parse_iso_datetime


def _parse_quantity(value: Any) -> int:
    # int() would truncate 2.7 to 2
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"quantity must be a whole number, got {value!r}")
    return int(value)


@dataclass
class OrderDetailsDTO:
    gas_brand: str
    gas_type: str
    quantity: int = 1
    unit_price: Optional[float] = None  # looked up from the price service when missing
    total_price: Optional[float] = None

    @classmethod
    def from_request(cls, data: dict[str, Any]) -> "OrderDetailsDTO":
        try:
            return cls(
                gas_brand=data["gasBrand"],
                gas_type=data["gasType"],
                quantity=_parse_quantity(data.get("quantity", 1)),
                unit_price=float(data["unitPrice"]) if data.get("unitPrice") is not None else None,
                total_price=float(data["totalPrice"]) if data.get("totalPrice") is not None else None,
            )
        except KeyError as e:
            raise ValidationError(f"Missing order detail field: {e.args[0]}")
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed order details: {e}", original_exception=e)


@dataclass
class DeliveryInfoDTO:
    delivery_address: str
    contact_number: str
    preferred_delivery_date: Optional[datetime] = None
    delivery_instructions: Optional[str] = None

    @classmethod
    def from_request(cls, data: dict[str, Any]) -> "DeliveryInfoDTO":
        if not data.get("deliveryAddress") or not data.get("contactNumber"):
            raise ValidationError("Delivery address and contact number are required")
        return cls(
            delivery_address=data["deliveryAddress"],
            contact_number=data["contactNumber"],
            preferred_delivery_date=parse_iso_datetime(data.get("preferredDeliveryDate")),
            delivery_instructions=data.get("deliveryInstructions"),
        )


@dataclass
class PaymentInfoDTO:
    payment_method: str = "Cash on Delivery"
    payment_status: str = "Pending"
    transaction_id: Optional[str] = None

    @classmethod
    def from_request(cls, data: dict[str, Any] | None) -> "PaymentInfoDTO":
        data = data or {}
        return cls(
            payment_method=data.get("paymentMethod") or "Cash on Delivery",
            payment_status=data.get("paymentStatus") or "Pending",
            transaction_id=data.get("transactionId"),
        )


@dataclass
class OrderSubmissionDTO:
    """An incoming order request addressed to a shop ledger or a legacy gas stock record."""

    order_details: OrderDetailsDTO
    delivery_info: DeliveryInfoDTO
    payment_info: PaymentInfoDTO = field(default_factory=PaymentInfoDTO)
    shop_id: Optional[str] = None
    gas_stock_id: Optional[str] = None
    region: Optional[str] = None

    @classmethod
    def from_request(cls, data: dict[str, Any]) -> "OrderSubmissionDTO":
        """Builds a submission from the camelCase request payload."""
        if "orderDetails" not in data or "deliveryInfo" not in data:
            raise ValidationError("orderDetails and deliveryInfo are required")
        return cls(
            order_details=OrderDetailsDTO.from_request(data["orderDetails"]),
            delivery_info=DeliveryInfoDTO.from_request(data["deliveryInfo"]),
            payment_info=PaymentInfoDTO.from_request(data.get("paymentInfo")),
            shop_id=data.get("shopId") or None,
            gas_stock_id=data.get("gasStockId") or None,
            region=data.get("region"),
        )


@dataclass
class OrderResultDTO:
    """Outcome of an order operation; `order` is the order entity after the call."""

    success: bool
    message: str
    order: Any = None
    order_number: Optional[str] = None


@dataclass
class OrderTrackingDTO:
    order_number: str
    status: str
    progress: int
    status_history: list[Any]
    estimated_delivery: Optional[datetime]
    actual_delivery: Optional[datetime]
    order_details: Any


@dataclass
class PriceQuoteDTO:
    """Current price for a brand and gas type as returned by the price service."""

    gas_brand: str
    gas_type: str
    final_price: float
    base_price: Optional[float] = None
    currency: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "PriceQuoteDTO":
        return cls(
            gas_brand=data.get("gasBrand", ""),
            gas_type=data.get("gasType", ""),
            final_price=float(data["finalPrice"]),
            base_price=float(data["currentPrice"]) if data.get("currentPrice") is not None else None,
            currency=data.get("currency"),
        )
