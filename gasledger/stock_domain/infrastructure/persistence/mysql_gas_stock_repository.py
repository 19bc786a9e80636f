# gasledger/stock_domain/infrastructure/persistence/mysql_gas_stock_repository.py
import logging
from typing import Optional

from mysql.connector import Error

from gasledger.common.exceptions.custom_exceptions import (
    DatabaseError,
    GasStockNotFoundError,
    InsufficientStockError,
)
from gasledger.common.utils.date_utils import ensure_utc, to_db_datetime
from gasledger.common.utils.mysql_connection import MySQLRepositoryBase
from gasledger.stock_domain.domain.entities.legacy_gas_stock import LegacyGasStock
from gasledger.stock_domain.domain.repositories.gas_stock_repository import ILegacyGasStockRepository

logger = logging.getLogger(__name__)


class MySQLLegacyGasStockRepository(MySQLRepositoryBase, ILegacyGasStockRepository):
    """
    MySQL implementation of the legacy single-counter gas stock repository.
    Counter changes are a single conditional UPDATE so concurrent takers can
    never drive the quantity below zero.
    """

    def create_tables(self) -> None:
        """Creates the legacy gas stock table with 'gds_' prefix."""
        statements = [
            """
            CREATE TABLE IF NOT EXISTS gds_gas_stock (
                id VARCHAR(64) PRIMARY KEY,
                gas_center_name VARCHAR(255) NOT NULL,
                gas_brand VARCHAR(100) NOT NULL,
                gas_type VARCHAR(50) NOT NULL,
                gas_available_qty INT NOT NULL DEFAULT 0,
                next_arrival_date DATETIME,
                latitude DECIMAL(10, 7),
                longitude DECIMAL(10, 7),
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
            ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
            """
        ]
        self._execute_ddl(statements, "GDS legacy gas stock")

    def add(self, gas_stock: LegacyGasStock) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        query = """
        INSERT INTO gds_gas_stock
        (id, gas_center_name, gas_brand, gas_type, gas_available_qty, next_arrival_date, latitude, longitude)
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        ON DUPLICATE KEY UPDATE
        gas_center_name = VALUES(gas_center_name),
        gas_brand = VALUES(gas_brand),
        gas_type = VALUES(gas_type),
        gas_available_qty = VALUES(gas_available_qty),
        next_arrival_date = VALUES(next_arrival_date),
        latitude = VALUES(latitude),
        longitude = VALUES(longitude)
        """
        params = (
            gas_stock.id,
            gas_stock.gas_center_name,
            gas_stock.gas_brand,
            gas_stock.gas_type,
            gas_stock.gas_available_qty,
            to_db_datetime(gas_stock.next_arrival_date),
            gas_stock.latitude,
            gas_stock.longitude,
        )
        try:
            cursor.execute(query, params)
            conn.commit()
            logger.debug(f"Saved legacy gas stock {gas_stock.id}")
        except Error as e:
            conn.rollback()
            raise DatabaseError(f"Error saving gas stock {gas_stock.id}: {e}", original_exception=e)
        finally:
            cursor.close()

    def get_by_id(self, gas_stock_id: str) -> Optional[LegacyGasStock]:
        conn = self._get_connection()
        cursor = conn.cursor(dictionary=True)
        try:
            cursor.execute(
                """
                SELECT id, gas_center_name, gas_brand, gas_type, gas_available_qty, next_arrival_date, latitude, longitude
                FROM gds_gas_stock
                WHERE id = %s
                """,
                (gas_stock_id,),
            )
            row = cursor.fetchone()
            conn.commit()
        except Error as e:
            raise DatabaseError(f"Error fetching gas stock {gas_stock_id}: {e}", original_exception=e)
        finally:
            cursor.close()

        if not row:
            return None
        return LegacyGasStock(
            id=row["id"],
            gas_center_name=row["gas_center_name"],
            gas_brand=row["gas_brand"],
            gas_type=row["gas_type"],
            gas_available_qty=row["gas_available_qty"],
            next_arrival_date=ensure_utc(row["next_arrival_date"]),
            latitude=float(row["latitude"]) if row["latitude"] is not None else None,
            longitude=float(row["longitude"]) if row["longitude"] is not None else None,
        )

    def adjust_quantity(self, gas_stock_id: str, delta: int) -> LegacyGasStock:
        conn = self._get_connection()
        cursor = conn.cursor()
        update_query = """
        UPDATE gds_gas_stock
        SET gas_available_qty = gas_available_qty + %s
        WHERE id = %s AND gas_available_qty + %s >= 0
        """
        try:
            cursor.execute(update_query, (delta, gas_stock_id, delta))
            updated = cursor.rowcount
            conn.commit()
        except Error as e:
            conn.rollback()
            raise DatabaseError(f"Error adjusting gas stock {gas_stock_id}: {e}", original_exception=e)
        finally:
            cursor.close()

        gas_stock = self.get_by_id(gas_stock_id)
        if gas_stock is None:
            raise GasStockNotFoundError(gas_stock_id)
        if updated != 1:
            raise InsufficientStockError(gas_stock.gas_available_qty, -delta)
        return gas_stock
