# gasledger/stock_domain/infrastructure/persistence/mysql_shop_stock_repository.py
"""MySQL implementation of the shop stock ledger repository."""

import logging
from datetime import datetime
from typing import Any, Optional

from mysql.connector import Error, errorcode

from gasledger.common.exceptions.custom_exceptions import (
    ConcurrencyConflictError,
    DatabaseError,
    ValidationError,
)
from gasledger.common.utils.date_utils import ensure_utc, to_db_datetime
from gasledger.common.utils.mysql_connection import MySQLRepositoryBase
from gasledger.stock_domain.domain.entities.stock_ledger import (
    ActorRole,
    HistoryAction,
    StockHistoryEntry,
    StockLedger,
)
from gasledger.stock_domain.domain.entities.stock_line import (
    ArrivalStatus,
    NextArrival,
    StockLine,
    SupplierContact,
)
from gasledger.stock_domain.domain.repositories.shop_stock_repository import IShopStockRepository

logger = logging.getLogger(__name__)


UPSERT_LINE_QUERY = """
INSERT INTO gds_shop_stock_lines
(shop_id, position, brand_name, gas_type, gas_size, available_quantity, reserved_quantity,
 min_stock_level, max_stock_level, unit_price, special_price, last_restock_date,
 arrival_date, expected_quantity, auto_update_enabled, arrival_status, scheduled_by, scheduled_at, arrival_notes,
 supplier_name, supplier_contact, is_available)
VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
ON DUPLICATE KEY UPDATE
position = VALUES(position),
gas_size = VALUES(gas_size),
available_quantity = VALUES(available_quantity),
reserved_quantity = VALUES(reserved_quantity),
min_stock_level = VALUES(min_stock_level),
max_stock_level = VALUES(max_stock_level),
unit_price = VALUES(unit_price),
special_price = VALUES(special_price),
last_restock_date = VALUES(last_restock_date),
arrival_date = VALUES(arrival_date),
expected_quantity = VALUES(expected_quantity),
auto_update_enabled = VALUES(auto_update_enabled),
arrival_status = VALUES(arrival_status),
scheduled_by = VALUES(scheduled_by),
scheduled_at = VALUES(scheduled_at),
arrival_notes = VALUES(arrival_notes),
supplier_name = VALUES(supplier_name),
supplier_contact = VALUES(supplier_contact),
is_available = VALUES(is_available)
"""

INSERT_HISTORY_QUERY = """
INSERT INTO gds_shop_stock_history
(shop_id, action, brand_name, gas_type, quantity, previous_quantity, new_quantity,
 reason, performed_by, performed_by_role, timestamp)
VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""

INSERT_ALERT_QUERY = """
INSERT INTO gds_shop_stock_alerts (shop_id, brand_name, gas_type, alert_type, message)
VALUES (%s, %s, %s, %s, %s)
"""


class MySQLShopStockRepository(MySQLRepositoryBase, IShopStockRepository):
    """
    MySQL implementation of the shop stock repository.

    A ledger spans four tables. The header row carries the version; every save
    bumps it with `WHERE version = <version read>` inside the same transaction
    that rewrites lines, appends history and replaces alerts, so a stale writer
    updates zero rows and rolls back.
    """

    def create_tables(self) -> None:
        """Creates the ledger tables with 'gds_' prefix."""
        statements = [
            """
            CREATE TABLE IF NOT EXISTS gds_shop_stock (
                shop_id VARCHAR(64) PRIMARY KEY,
                version INT UNSIGNED NOT NULL DEFAULT 1,
                total_value DECIMAL(14, 2) NOT NULL DEFAULT 0,
                last_updated_by VARCHAR(255),
                updated_by_role VARCHAR(50),
                notes TEXT,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
            ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
            """,
            """
            CREATE TABLE IF NOT EXISTS gds_shop_stock_lines (
                shop_id VARCHAR(64) NOT NULL,
                position SMALLINT UNSIGNED NOT NULL,
                brand_name VARCHAR(100) NOT NULL,
                gas_type VARCHAR(50) NOT NULL,
                gas_size VARCHAR(20) NOT NULL,
                available_quantity INT UNSIGNED NOT NULL DEFAULT 0,
                reserved_quantity INT UNSIGNED NOT NULL DEFAULT 0,
                min_stock_level INT UNSIGNED NOT NULL DEFAULT 10,
                max_stock_level INT UNSIGNED NOT NULL DEFAULT 100,
                unit_price DECIMAL(12, 2) NOT NULL,
                special_price DECIMAL(12, 2),
                last_restock_date DATETIME,
                arrival_date DATETIME,
                expected_quantity INT UNSIGNED,
                auto_update_enabled TINYINT(1),
                arrival_status VARCHAR(20),
                scheduled_by VARCHAR(255),
                scheduled_at DATETIME,
                arrival_notes TEXT,
                supplier_name VARCHAR(255),
                supplier_contact VARCHAR(255),
                is_available TINYINT(1) NOT NULL DEFAULT 1,
                PRIMARY KEY (shop_id, brand_name, gas_type),
                INDEX idx_due_arrivals (arrival_status, auto_update_enabled, arrival_date)
            ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
            """,
            """
            CREATE TABLE IF NOT EXISTS gds_shop_stock_history (
                id BIGINT UNSIGNED PRIMARY KEY AUTO_INCREMENT,
                shop_id VARCHAR(64) NOT NULL,
                action VARCHAR(30) NOT NULL,
                brand_name VARCHAR(100) NOT NULL,
                gas_type VARCHAR(50) NOT NULL,
                quantity INT NOT NULL,
                previous_quantity INT NOT NULL,
                new_quantity INT NOT NULL,
                reason TEXT,
                performed_by VARCHAR(255),
                performed_by_role VARCHAR(50),
                timestamp DATETIME NOT NULL,
                INDEX idx_history_shop (shop_id, id)
            ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
            """,
            """
            CREATE TABLE IF NOT EXISTS gds_shop_stock_alerts (
                id BIGINT UNSIGNED PRIMARY KEY AUTO_INCREMENT,
                shop_id VARCHAR(64) NOT NULL,
                brand_name VARCHAR(100) NOT NULL,
                gas_type VARCHAR(50) NOT NULL,
                alert_type VARCHAR(20) NOT NULL,
                message VARCHAR(255),
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                INDEX idx_alerts_shop (shop_id)
            ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
            """,
        ]
        self._execute_ddl(statements, "GDS shop stock")

    def create(self, ledger: StockLedger) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        insert_query = """
        INSERT INTO gds_shop_stock (shop_id, version, total_value, last_updated_by, updated_by_role, notes)
        VALUES (%s, 1, %s, %s, %s, %s)
        """
        try:
            cursor.execute(insert_query, self._header_params(ledger))
            self._write_children(cursor, ledger)
            conn.commit()
        except Error as e:
            conn.rollback()
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise ValidationError(f"Shop {ledger.shop_id} already has a stock ledger", original_exception=e)
            raise DatabaseError(f"Error creating stock ledger for shop {ledger.shop_id}: {e}", original_exception=e)
        finally:
            cursor.close()

        ledger.version = 1
        ledger.mark_history_persisted()
        logger.info(f"Created stock ledger for shop {ledger.shop_id} with {len(ledger.lines)} lines")

    def get_by_shop_id(self, shop_id: str) -> Optional[StockLedger]:
        conn = self._get_connection()
        cursor = conn.cursor(dictionary=True)
        try:
            cursor.execute(
                """
                SELECT shop_id, version, last_updated_by, updated_by_role, notes
                FROM gds_shop_stock
                WHERE shop_id = %s
                """,
                (shop_id,),
            )
            header = cursor.fetchone()
            if not header:
                return None

            cursor.execute("SELECT * FROM gds_shop_stock_lines WHERE shop_id = %s ORDER BY position", (shop_id,))
            line_rows = cursor.fetchall()

            cursor.execute(
                """
                SELECT action, brand_name, gas_type, quantity, previous_quantity, new_quantity,
                       reason, performed_by, performed_by_role, timestamp
                FROM gds_shop_stock_history
                WHERE shop_id = %s
                ORDER BY id
                """,
                (shop_id,),
            )
            history_rows = cursor.fetchall()
            # End the read-only transaction so the next read sees fresh data
            conn.commit()
        except Error as e:
            raise DatabaseError(f"Error fetching stock ledger for shop {shop_id}: {e}", original_exception=e)
        finally:
            cursor.close()

        history = [self._row_to_history(row) for row in history_rows]
        return StockLedger(
            shop_id=header["shop_id"],
            lines=[self._row_to_line(row) for row in line_rows],
            history=history,
            last_updated_by=header["last_updated_by"],
            updated_by_role=ActorRole(header["updated_by_role"]) if header["updated_by_role"] else None,
            notes=header["notes"] or "",
            version=header["version"],
            persisted_history_count=len(history),
        )

    def save(self, ledger: StockLedger) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        update_query = """
        UPDATE gds_shop_stock
        SET version = version + 1, total_value = %s, last_updated_by = %s, updated_by_role = %s, notes = %s
        WHERE shop_id = %s AND version = %s
        """
        params = (
            ledger.total_value,
            ledger.last_updated_by,
            ledger.updated_by_role.value if ledger.updated_by_role else None,
            ledger.notes,
            ledger.shop_id,
            ledger.version,
        )
        try:
            cursor.execute(update_query, params)
            if cursor.rowcount != 1:
                conn.rollback()
                raise ConcurrencyConflictError(
                    f"Stock ledger for shop {ledger.shop_id} is no longer at version {ledger.version}"
                )
            self._write_children(cursor, ledger)
            conn.commit()
        except Error as e:
            conn.rollback()
            raise DatabaseError(f"Error saving stock ledger for shop {ledger.shop_id}: {e}", original_exception=e)
        finally:
            cursor.close()

        ledger.version += 1
        ledger.mark_history_persisted()

    def delete_by_shop_id(self, shop_id: str) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            for table in ("gds_shop_stock_alerts", "gds_shop_stock_history", "gds_shop_stock_lines", "gds_shop_stock"):
                cursor.execute(f"DELETE FROM {table} WHERE shop_id = %s", (shop_id,))
            conn.commit()
            logger.info(f"Deleted stock ledger for shop {shop_id}")
        except Error as e:
            conn.rollback()
            raise DatabaseError(f"Error deleting stock ledger for shop {shop_id}: {e}", original_exception=e)
        finally:
            cursor.close()

    def find_shop_ids_with_due_arrivals(self, now: datetime) -> list[str]:
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(
                """
                SELECT DISTINCT shop_id
                FROM gds_shop_stock_lines
                WHERE arrival_status = %s AND auto_update_enabled = 1 AND arrival_date <= %s
                """,
                (ArrivalStatus.SCHEDULED.value, to_db_datetime(now)),
            )
            results = cursor.fetchall()
            conn.commit()
            return [row[0] for row in results]
        except Error as e:
            raise DatabaseError(f"Error fetching shops with due arrivals: {e}", original_exception=e)
        finally:
            cursor.close()

    # --- row mapping ---

    @staticmethod
    def _header_params(ledger: StockLedger) -> tuple:
        return (
            ledger.shop_id,
            ledger.total_value,
            ledger.last_updated_by,
            ledger.updated_by_role.value if ledger.updated_by_role else None,
            ledger.notes,
        )

    def _write_children(self, cursor, ledger: StockLedger) -> None:
        """Upserts lines, appends unsaved history and replaces the alert set."""
        line_params = [self._line_params(ledger.shop_id, position, line) for position, line in enumerate(ledger.lines)]
        if line_params:
            cursor.executemany(UPSERT_LINE_QUERY, line_params)

        history_params = [
            (
                ledger.shop_id,
                entry.action.value,
                entry.brand_name,
                entry.gas_type,
                entry.quantity,
                entry.previous_quantity,
                entry.new_quantity,
                entry.reason,
                entry.performed_by,
                entry.performed_by_role.value if entry.performed_by_role else None,
                to_db_datetime(entry.timestamp),
            )
            for entry in ledger.pending_history
        ]
        if history_params:
            cursor.executemany(INSERT_HISTORY_QUERY, history_params)

        cursor.execute("DELETE FROM gds_shop_stock_alerts WHERE shop_id = %s", (ledger.shop_id,))
        alert_params = [
            (ledger.shop_id, alert.brand_name, alert.gas_type, alert.alert_type.value, alert.message)
            for alert in ledger.alerts
        ]
        if alert_params:
            cursor.executemany(INSERT_ALERT_QUERY, alert_params)

    @staticmethod
    def _line_params(shop_id: str, position: int, line: StockLine) -> tuple:
        arrival = line.next_arrival
        return (
            shop_id,
            position,
            line.brand_name,
            line.gas_type,
            line.gas_size,
            line.available_quantity,
            line.reserved_quantity,
            line.min_stock_level,
            line.max_stock_level,
            line.unit_price,
            line.special_price,
            to_db_datetime(line.last_restock_date),
            to_db_datetime(arrival.arrival_date) if arrival else None,
            arrival.expected_quantity if arrival else None,
            int(arrival.auto_update_enabled) if arrival else None,
            arrival.status.value if arrival else None,
            arrival.scheduled_by if arrival else None,
            to_db_datetime(arrival.scheduled_at) if arrival else None,
            arrival.notes if arrival else None,
            line.supplier.name,
            line.supplier.contact,
            int(line.is_available),
        )

    @staticmethod
    def _row_to_line(row: dict[str, Any]) -> StockLine:
        next_arrival = None
        if row.get("arrival_status"):
            next_arrival = NextArrival(
                arrival_date=ensure_utc(row["arrival_date"]),
                expected_quantity=row["expected_quantity"] or 0,
                auto_update_enabled=bool(row["auto_update_enabled"]),
                status=ArrivalStatus(row["arrival_status"]),
                scheduled_by=row["scheduled_by"],
                scheduled_at=ensure_utc(row["scheduled_at"]),
                notes=row["arrival_notes"] or "",
            )
        return StockLine(
            brand_name=row["brand_name"],
            gas_type=row["gas_type"],
            gas_size=row["gas_size"],
            unit_price=float(row["unit_price"]),
            available_quantity=row["available_quantity"],
            reserved_quantity=row["reserved_quantity"],
            min_stock_level=row["min_stock_level"],
            max_stock_level=row["max_stock_level"],
            special_price=float(row["special_price"]) if row["special_price"] is not None else None,
            last_restock_date=ensure_utc(row["last_restock_date"]),
            next_arrival=next_arrival,
            supplier=SupplierContact(name=row["supplier_name"], contact=row["supplier_contact"]),
            is_available=bool(row["is_available"]),
        )

    @staticmethod
    def _row_to_history(row: dict[str, Any]) -> StockHistoryEntry:
        return StockHistoryEntry(
            action=HistoryAction(row["action"]),
            brand_name=row["brand_name"],
            gas_type=row["gas_type"],
            quantity=row["quantity"],
            previous_quantity=row["previous_quantity"],
            new_quantity=row["new_quantity"],
            reason=row["reason"] or "",
            performed_by=row["performed_by"],
            performed_by_role=ActorRole(row["performed_by_role"]) if row["performed_by_role"] else None,
            timestamp=ensure_utc(row["timestamp"]),
        )
