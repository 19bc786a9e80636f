# gasledger/order_domain/infrastructure/persistence/mysql_order_repository.py
"""MySQL implementation of the order repository."""
import json
import logging
from typing import Any, Optional

from mysql.connector import Error, errorcode

from gasledger.common.dtos.stock_dtos import StockCommitment
from gasledger.common.exceptions.custom_exceptions import (
    ConcurrencyConflictError,
    DatabaseError,
    ValidationError,
)
from gasledger.common.utils.date_utils import (
    ensure_utc,
    format_datetime_iso,
    parse_iso_datetime,
    to_db_datetime,
)
from gasledger.common.utils.mysql_connection import MySQLRepositoryBase
from gasledger.order_domain.domain.entities.order import (
    CustomerRating,
    DeliveryInfo,
    Order,
    OrderDetails,
    OrderStatus,
    PaymentInfo,
    PaymentMethod,
    PaymentStatus,
    StatusHistoryEntry,
)
from gasledger.order_domain.domain.repositories.order_repository import IOrderRepository

logger = logging.getLogger(__name__)

ORDER_COLUMNS = """
id, order_number, customer_id, shop_id, gas_stock_id, order_status, stock_commitment,
order_details, delivery_info, payment_info, status_history, customer_rating,
cancellation_reason, refund_amount, estimated_delivery_time, actual_delivery_time, created_at, version
"""


class MySQLOrderRepository(MySQLRepositoryBase, IOrderRepository):
    """Orders live in one row; nested value objects are stored as JSON columns."""

    def create_tables(self) -> None:
        """Creates the orders table with 'gds_' prefix."""
        statements = [
            """
            CREATE TABLE IF NOT EXISTS gds_orders (
                id VARCHAR(64) PRIMARY KEY,
                order_number VARCHAR(40) NOT NULL,
                customer_id VARCHAR(64) NOT NULL,
                shop_id VARCHAR(64),
                gas_stock_id VARCHAR(64),
                order_status VARCHAR(20) NOT NULL,
                stock_commitment VARCHAR(20) NOT NULL DEFAULT 'none',
                order_details JSON NOT NULL,
                delivery_info JSON NOT NULL,
                payment_info JSON NOT NULL,
                status_history JSON NOT NULL,
                customer_rating JSON,
                cancellation_reason TEXT,
                refund_amount DECIMAL(12, 2) NOT NULL DEFAULT 0,
                estimated_delivery_time DATETIME,
                actual_delivery_time DATETIME,
                created_at DATETIME,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
                version INT UNSIGNED NOT NULL DEFAULT 1,
                UNIQUE KEY uq_order_number (order_number),
                INDEX idx_customer_status (customer_id, order_status),
                INDEX idx_shop_status (shop_id, order_status),
                INDEX idx_created_at (created_at)
            ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
            """
        ]
        self._execute_ddl(statements, "GDS orders")

    def add(self, order: Order) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        query = f"""
        INSERT INTO gds_orders ({ORDER_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 1)
        """
        try:
            cursor.execute(query, self._order_params(order))
            conn.commit()
        except Error as e:
            conn.rollback()
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise ValidationError(f"Order {order.order_number} already exists", original_exception=e)
            raise DatabaseError(f"Error saving order {order.order_number}: {e}", original_exception=e)
        finally:
            cursor.close()
        order.version = 1

    def get_by_id(self, order_id: str) -> Optional[Order]:
        return self._fetch_one("id", order_id)

    def get_by_order_number(self, order_number: str) -> Optional[Order]:
        return self._fetch_one("order_number", order_number)

    def save(self, order: Order) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        query = """
        UPDATE gds_orders
        SET order_status = %s, stock_commitment = %s, order_details = %s, delivery_info = %s,
            payment_info = %s, status_history = %s, customer_rating = %s, cancellation_reason = %s,
            refund_amount = %s, estimated_delivery_time = %s, actual_delivery_time = %s,
            version = version + 1
        WHERE id = %s AND version = %s
        """
        params = self._order_params(order)[5:16] + (order.id, order.version)
        try:
            cursor.execute(query, params)
            if cursor.rowcount != 1:
                conn.rollback()
                raise ConcurrencyConflictError(f"Order {order.order_number} is no longer at version {order.version}")
            conn.commit()
        except Error as e:
            conn.rollback()
            raise DatabaseError(f"Error updating order {order.order_number}: {e}", original_exception=e)
        finally:
            cursor.close()
        order.version += 1

    def delete(self, order_id: str) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("DELETE FROM gds_orders WHERE id = %s", (order_id,))
            conn.commit()
        except Error as e:
            conn.rollback()
            raise DatabaseError(f"Error deleting order {order_id}: {e}", original_exception=e)
        finally:
            cursor.close()

    def _fetch_one(self, column: str, value: str) -> Optional[Order]:
        conn = self._get_connection()
        cursor = conn.cursor(dictionary=True)
        try:
            cursor.execute(f"SELECT {ORDER_COLUMNS} FROM gds_orders WHERE {column} = %s", (value,))
            row = cursor.fetchone()
            conn.commit()
        except Error as e:
            raise DatabaseError(f"Error fetching order by {column} {value}: {e}", original_exception=e)
        finally:
            cursor.close()
        return self._row_to_order(row) if row else None

    # --- row mapping ---

    @staticmethod
    def _order_params(order: Order) -> tuple:
        details = order.order_details
        delivery = order.delivery_info
        payment = order.payment_info
        rating = order.customer_rating
        return (
            order.id,
            order.order_number,
            order.customer_id,
            order.shop_id,
            order.gas_stock_id,
            order.order_status.value,
            order.stock_commitment.value,
            json.dumps(
                {
                    "gasBrand": details.gas_brand,
                    "gasType": details.gas_type,
                    "quantity": details.quantity,
                    "unitPrice": details.unit_price,
                    "totalPrice": details.total_price,
                }
            ),
            json.dumps(
                {
                    "deliveryAddress": delivery.delivery_address,
                    "contactNumber": delivery.contact_number,
                    "preferredDeliveryDate": format_datetime_iso(delivery.preferred_delivery_date),
                    "deliveryInstructions": delivery.delivery_instructions,
                }
            ),
            json.dumps(
                {
                    "paymentMethod": payment.payment_method.value,
                    "paymentStatus": payment.payment_status.value,
                    "transactionId": payment.transaction_id,
                    "paymentCompletedAt": format_datetime_iso(payment.payment_completed_at),
                }
            ),
            json.dumps(
                [
                    {
                        "status": entry.status.value,
                        "timestamp": format_datetime_iso(entry.timestamp),
                        "updatedBy": entry.updated_by,
                        "notes": entry.notes,
                    }
                    for entry in order.status_history
                ]
            ),
            json.dumps(
                {"rating": rating.rating, "review": rating.review, "ratedAt": format_datetime_iso(rating.rated_at)}
            )
            if rating
            else None,
            order.cancellation_reason,
            order.refund_amount,
            to_db_datetime(order.estimated_delivery_time),
            to_db_datetime(order.actual_delivery_time),
            to_db_datetime(order.created_at),
        )

    @staticmethod
    def _load_json(value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        return json.loads(value) if isinstance(value, str) else value

    def _row_to_order(self, row: dict[str, Any]) -> Order:
        details = self._load_json(row["order_details"])
        delivery = self._load_json(row["delivery_info"])
        payment = self._load_json(row["payment_info"])
        history = self._load_json(row["status_history"]) or []
        rating = self._load_json(row["customer_rating"])

        return Order(
            id=row["id"],
            order_number=row["order_number"],
            customer_id=row["customer_id"],
            order_details=OrderDetails(
                gas_brand=details["gasBrand"],
                gas_type=details["gasType"],
                quantity=details["quantity"],
                unit_price=details["unitPrice"],
                total_price=details["totalPrice"],
            ),
            delivery_info=DeliveryInfo(
                delivery_address=delivery["deliveryAddress"],
                contact_number=delivery["contactNumber"],
                preferred_delivery_date=parse_iso_datetime(delivery.get("preferredDeliveryDate")),
                delivery_instructions=delivery.get("deliveryInstructions"),
            ),
            payment_info=PaymentInfo(
                payment_method=PaymentMethod(payment["paymentMethod"]),
                payment_status=PaymentStatus(payment["paymentStatus"]),
                transaction_id=payment.get("transactionId"),
                payment_completed_at=parse_iso_datetime(payment.get("paymentCompletedAt")),
            ),
            shop_id=row["shop_id"],
            gas_stock_id=row["gas_stock_id"],
            order_status=OrderStatus(row["order_status"]),
            status_history=[
                StatusHistoryEntry(
                    status=OrderStatus(entry["status"]),
                    timestamp=parse_iso_datetime(entry["timestamp"]),
                    updated_by=entry.get("updatedBy") or "system",
                    notes=entry.get("notes") or "",
                )
                for entry in history
            ],
            stock_commitment=StockCommitment(row["stock_commitment"]),
            cancellation_reason=row["cancellation_reason"],
            refund_amount=float(row["refund_amount"] or 0),
            estimated_delivery_time=ensure_utc(row["estimated_delivery_time"]),
            actual_delivery_time=ensure_utc(row["actual_delivery_time"]),
            customer_rating=CustomerRating(
                rating=rating["rating"], review=rating.get("review"), rated_at=parse_iso_datetime(rating["ratedAt"])
            )
            if rating
            else None,
            created_at=ensure_utc(row["created_at"]),
            version=row["version"],
        )
