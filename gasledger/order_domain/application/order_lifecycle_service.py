# gasledger/order_domain/application/order_lifecycle_service.py
"""Application service driving orders through fulfillment and keeping stock in step."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from gasledger.common.config.settings import settings
from gasledger.common.dtos.order_dtos import OrderResultDTO, OrderSubmissionDTO, OrderTrackingDTO
from gasledger.common.dtos.stock_dtos import StockCommitment, StockOperationResult, StockTarget
from gasledger.common.exceptions.custom_exceptions import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    NotFoundError,
    OrderNotFoundError,
    ValidationError,
)
from gasledger.common.utils.date_utils import utc_now
from gasledger.order_domain.domain.entities.order import (
    DeliveryInfo,
    Order,
    OrderDetails,
    OrderStatus,
    PaymentInfo,
    PaymentMethod,
    PaymentStatus,
    StatusHistoryEntry,
    generate_order_number,
    parse_order_status,
)
from gasledger.order_domain.domain.repositories.order_repository import IOrderRepository
from gasledger.order_domain.domain.repositories.party_directory import IPartyDirectory
from gasledger.order_domain.domain.services.price_provider import IPriceProvider
from gasledger.stock_domain.application.stock_manager import StockManager
from gasledger.stock_domain.domain.entities.stock_ledger import Actor, ActorRole

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Order was modified concurrently, please retry"


class OrderLifecycleService:
    """
    Order state machine with stock side effects.

    Stock is changed first through the StockManager, then the order is saved
    with a version check. If that save loses a race, the stock change is undone
    with its inverse (restore after deduct, recommit after restore) and a failed
    OrderResultDTO is returned, so stock and order state never drift apart.

    Caller mistakes raise: ValidationError, NotFoundError (including
    OrderNotFoundError) and InvalidTransitionError. Stock refusals and lost
    races come back as `success=False`.
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        stock_manager: StockManager,
        price_provider: IPriceProvider,
        party_directory: Optional[IPartyDirectory] = None,
        clock: Callable[[], datetime] = utc_now,
        delivery_hours: int | None = None,
    ) -> None:
        self.order_repo = order_repo
        self.stock_manager = stock_manager
        self.price_provider = price_provider
        self.party_directory = party_directory
        self.clock = clock
        self.delivery_hours = delivery_hours if delivery_hours is not None else settings.DEFAULT_DELIVERY_HOURS

        self._status_handlers: dict[OrderStatus, Callable[[Order, Actor, str], OrderResultDTO]] = {
            OrderStatus.CONFIRMED: self._confirm,
            OrderStatus.CANCELLED: self._reject,
            OrderStatus.DELIVERED: self._deliver,
            OrderStatus.RETURNED: self._return,
        }

    # --- creation ---

    def create_order(self, customer_id: str, submission: OrderSubmissionDTO) -> OrderResultDTO:
        """
        Prices and stores a new Pending order. Prepaid shop orders and all legacy
        orders take stock right away; if that fails the stored order is deleted
        again and a failure is returned.
        """
        target = StockTarget(shop_id=submission.shop_id, gas_stock_id=submission.gas_stock_id)
        self._check_parties(customer_id, target)

        details = submission.order_details
        if details.quantity <= 0:
            raise ValidationError(f"Quantity must be a positive integer, got {details.quantity}")
        payment_method = self._parse_enum(PaymentMethod, submission.payment_info.payment_method, "payment method")
        payment_status = self._parse_enum(PaymentStatus, submission.payment_info.payment_status, "payment status")

        gas_brand, gas_type = details.gas_brand, details.gas_type
        if target.is_legacy:
            availability = self.stock_manager.check_availability(target, gas_brand, gas_type, details.quantity)
            if not availability.success:
                return OrderResultDTO(success=False, message=availability.message)
            if not availability.sufficient:
                return OrderResultDTO(
                    success=False,
                    message=(
                        f"Insufficient stock available. Available: {availability.available_quantity}, "
                        f"Requested: {details.quantity}"
                    ),
                )
            # A legacy record holds one product, so the order is for that product
            gas_brand, gas_type = availability.gas_brand, availability.gas_type

        unit_price = details.unit_price
        total_price = details.total_price
        if unit_price is None or target.is_legacy:
            quote = self.price_provider.get_current_price(gas_brand, gas_type, submission.region, details.quantity)
            if quote is None:
                return OrderResultDTO(success=False, message="Price not available for this gas type")
            unit_price = quote.final_price
            total_price = None
        if total_price is None:
            total_price = round(unit_price * details.quantity, 2)

        now = self.clock()
        order = Order(
            id=uuid.uuid4().hex,
            order_number=generate_order_number(),
            customer_id=customer_id,
            order_details=OrderDetails(
                gas_brand=gas_brand,
                gas_type=gas_type,
                quantity=details.quantity,
                unit_price=unit_price,
                total_price=total_price,
            ),
            delivery_info=DeliveryInfo(
                delivery_address=submission.delivery_info.delivery_address,
                contact_number=submission.delivery_info.contact_number,
                preferred_delivery_date=submission.delivery_info.preferred_delivery_date,
                delivery_instructions=submission.delivery_info.delivery_instructions,
            ),
            payment_info=PaymentInfo(
                payment_method=payment_method,
                payment_status=payment_status,
                transaction_id=submission.payment_info.transaction_id,
                payment_completed_at=now if payment_status == PaymentStatus.PAID else None,
            ),
            shop_id=target.shop_id,
            gas_stock_id=target.gas_stock_id,
            status_history=[
                StatusHistoryEntry(status=OrderStatus.PENDING, timestamp=now, updated_by=customer_id, notes="Order placed")
            ],
            estimated_delivery_time=now + timedelta(hours=self.delivery_hours),
            created_at=now,
        )
        self.order_repo.add(order)

        if self.stock_manager.commits_on_creation(target, order.payment_info.is_paid):
            result = self.stock_manager.reserve_stock(target, order.stock_request, Actor.for_order(order.order_number))
            if not result.success:
                self.order_repo.delete(order.id)
                logger.warning(f"Order {order.order_number} removed, stock could not be committed: {result.message}")
                return OrderResultDTO(success=False, message=f"Order cancelled: {result.message}")

            order.stock_commitment = result.commitment
            if not self._save(order):
                self._restore(order, result.commitment)
                self.order_repo.delete(order.id)
                return OrderResultDTO(success=False, message=CONFLICT_MESSAGE)

        logger.info(f"Order {order.order_number} created for {target} (stock: {order.stock_commitment.value})")
        return OrderResultDTO(
            success=True, message="Order created successfully", order=order, order_number=order.order_number
        )

    # --- agent operations ---

    def confirm_order(self, order_id: str, agent: Actor, notes: str = "") -> OrderResultDTO:
        order = self.get_order(order_id)
        return self._confirm(order, agent, notes)

    def reject_order(self, order_id: str, agent: Actor, reason: str = "") -> OrderResultDTO:
        order = self.get_order(order_id)
        return self._reject(order, agent, reason)

    def update_order_status(
        self, order_id: str, new_status: OrderStatus | str, agent: Actor, notes: str = ""
    ) -> OrderResultDTO:
        """Moves an order to any allowed next status, applying that status's stock and payment effects."""
        status = parse_order_status(new_status)
        order = self.get_order(order_id)
        handler = self._status_handlers.get(status)
        if handler is None:
            return self._advance(order, agent, notes, status)
        return handler(order, agent, notes)

    # --- customer operations ---

    def cancel_order(self, order_id: str, customer_id: str, reason: Optional[str] = None) -> OrderResultDTO:
        order = self.order_repo.get_by_id(order_id)
        if order is None or order.customer_id != customer_id:
            raise OrderNotFoundError(order_id)
        if order.order_status not in (OrderStatus.PENDING, OrderStatus.CONFIRMED):
            raise InvalidTransitionError(order.order_status.value, OrderStatus.CANCELLED.value)
        return self._cancel(
            order, Actor(actor_id=customer_id, role=ActorRole.CUSTOMER), reason or "Cancelled by customer"
        )

    def rate_order(
        self, order_id: str, customer_id: str, rating: int, review: Optional[str] = None
    ) -> OrderResultDTO:
        order = self.order_repo.get_by_id(order_id)
        if order is None or order.customer_id != customer_id:
            raise OrderNotFoundError(order_id)
        order.rate(rating, review, self.clock())
        if not self._save(order):
            return OrderResultDTO(success=False, message=CONFLICT_MESSAGE, order=order)
        return OrderResultDTO(
            success=True, message="Order rated successfully", order=order, order_number=order.order_number
        )

    def get_order(self, order_id: str) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def track_order(self, order_number: str, customer_id: Optional[str] = None) -> OrderTrackingDTO:
        order = self.order_repo.get_by_order_number(order_number)
        if order is None or (customer_id is not None and order.customer_id != customer_id):
            raise OrderNotFoundError(order_number)
        return OrderTrackingDTO(
            order_number=order.order_number,
            status=order.order_status.value,
            progress=order.progress,
            status_history=sorted(order.status_history, key=lambda entry: entry.timestamp),
            estimated_delivery=order.estimated_delivery_time,
            actual_delivery=order.actual_delivery_time,
            order_details=order.order_details,
        )

    # --- transitions ---

    def _confirm(self, order: Order, agent: Actor, notes: str) -> OrderResultDTO:
        self._require_transition(order, OrderStatus.CONFIRMED)
        previous = order.stock_commitment
        stock_actor = Actor.for_order(order.order_number)

        result = self.stock_manager.deduct_stock(order.stock_target, order.stock_request, stock_actor)
        if not result.success:
            return self._refused(order, result.message)

        order.stock_commitment = StockCommitment.DEDUCTED
        order.transition_to(OrderStatus.CONFIRMED, agent.actor_id, notes or "Order confirmed", self.clock())
        if self._save(order):
            return self._ok(order, "Order confirmed successfully")

        # Put stock back the way it was before the deduct
        if previous != StockCommitment.DEDUCTED:
            self._restore(order, StockCommitment.DEDUCTED)
            if previous == StockCommitment.RESERVED:
                self._recommit(order, StockCommitment.RESERVED)
        return OrderResultDTO(success=False, message=CONFLICT_MESSAGE, order_number=order.order_number)

    def _reject(self, order: Order, agent: Actor, reason: str) -> OrderResultDTO:
        return self._cancel(order, agent, reason or "Rejected by sales agent")

    def _cancel(self, order: Order, actor: Actor, reason: str) -> OrderResultDTO:
        self._require_transition(order, OrderStatus.CANCELLED)
        held = order.stock_commitment
        restored = self._restore(order, held)
        if not restored.success:
            return self._refused(order, restored.message)

        order.stock_commitment = StockCommitment.NONE
        order.cancellation_reason = reason
        order.transition_to(OrderStatus.CANCELLED, actor.actor_id, reason, self.clock())
        if self._save(order):
            return self._ok(order, "Order cancelled successfully")

        self._recommit(order, held)
        return OrderResultDTO(success=False, message=CONFLICT_MESSAGE, order_number=order.order_number)

    def _return(self, order: Order, agent: Actor, notes: str) -> OrderResultDTO:
        self._require_transition(order, OrderStatus.RETURNED)
        held = order.stock_commitment
        restored = self._restore(order, held)
        if not restored.success:
            return self._refused(order, restored.message)

        order.stock_commitment = StockCommitment.NONE
        if order.payment_info.is_paid:
            order.payment_info.payment_status = PaymentStatus.REFUNDED
            order.refund_amount = order.order_details.total_price
        order.transition_to(OrderStatus.RETURNED, agent.actor_id, notes, self.clock())
        if self._save(order):
            return self._ok(order, "Order returned successfully")

        self._recommit(order, held)
        return OrderResultDTO(success=False, message=CONFLICT_MESSAGE, order_number=order.order_number)

    def _deliver(self, order: Order, agent: Actor, notes: str) -> OrderResultDTO:
        self._require_transition(order, OrderStatus.DELIVERED)
        now = self.clock()
        payment = order.payment_info
        if payment.payment_method == PaymentMethod.CASH_ON_DELIVERY and not payment.is_paid:
            payment.payment_status = PaymentStatus.PAID
            payment.payment_completed_at = now
        order.actual_delivery_time = now
        order.transition_to(OrderStatus.DELIVERED, agent.actor_id, notes, now)
        if self._save(order):
            return self._ok(order, "Order delivered successfully")
        return OrderResultDTO(success=False, message=CONFLICT_MESSAGE, order_number=order.order_number)

    def _advance(self, order: Order, agent: Actor, notes: str, status: OrderStatus) -> OrderResultDTO:
        self._require_transition(order, status)
        order.transition_to(status, agent.actor_id, notes, self.clock())
        if self._save(order):
            return self._ok(order, f"Order status updated to {status.value}")
        return OrderResultDTO(success=False, message=CONFLICT_MESSAGE, order_number=order.order_number)

    # --- helpers ---

    def _check_parties(self, customer_id: str, target: StockTarget) -> None:
        if self.party_directory is None:
            return
        if not self.party_directory.customer_exists(customer_id):
            raise NotFoundError("Customer not found")
        if not target.is_legacy and not self.party_directory.shop_exists(target.shop_id):
            raise NotFoundError("Shop not found")

    @staticmethod
    def _parse_enum(enum_cls, value, label: str):
        try:
            return enum_cls(value)
        except ValueError:
            raise ValidationError(f"Invalid {label}: {value}")

    @staticmethod
    def _require_transition(order: Order, status: OrderStatus) -> None:
        if not order.can_transition_to(status):
            raise InvalidTransitionError(order.order_status.value, status.value)

    def _save(self, order: Order) -> bool:
        try:
            self.order_repo.save(order)
            return True
        except ConcurrencyConflictError as e:
            logger.warning(f"Order {order.order_number} changed concurrently: {e}")
            return False

    def _restore(self, order: Order, commitment: StockCommitment) -> StockOperationResult:
        if commitment == StockCommitment.NONE:
            return StockOperationResult(success=True, message="No stock held for this order", commitment=commitment)
        result = self.stock_manager.restore_stock(
            order.stock_target, order.stock_request, Actor.for_order(order.order_number), commitment
        )
        if not result.success:
            logger.error(f"Failed to restore stock for order {order.order_number}: {result.message}")
        return result

    def _recommit(self, order: Order, commitment: StockCommitment) -> None:
        if commitment == StockCommitment.NONE:
            return
        result = self.stock_manager.recommit_stock(
            order.stock_target, order.stock_request, Actor.for_order(order.order_number), commitment
        )
        if not result.success:
            logger.error(f"Failed to recommit stock for order {order.order_number}: {result.message}")

    @staticmethod
    def _ok(order: Order, message: str) -> OrderResultDTO:
        logger.info(f"Order {order.order_number}: {message}")
        return OrderResultDTO(success=True, message=message, order=order, order_number=order.order_number)

    @staticmethod
    def _refused(order: Order, message: str) -> OrderResultDTO:
        """Stock refused the change; the order is left as it was."""
        logger.warning(f"Order {order.order_number} stays {order.order_status.value}: {message}")
        return OrderResultDTO(success=False, message=message, order=order, order_number=order.order_number)
