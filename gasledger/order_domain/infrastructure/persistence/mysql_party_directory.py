import logging

from mysql.connector import Error

from gasledger.common.config.settings import settings
from gasledger.common.exceptions.custom_exceptions import DatabaseError
from gasledger.common.utils.mysql_connection import MySQLRepositoryBase
from gasledger.order_domain.domain.repositories.party_directory import IPartyDirectory

logger = logging.getLogger(__name__)


class MySQLPartyDirectory(MySQLRepositoryBase, IPartyDirectory):
    """Looks up shop and customer ids in tables owned by the shop and customer services."""

    def __init__(self, shops_table: str | None = None, customers_table: str | None = None) -> None:
        super().__init__()
        self.shops_table = shops_table or settings.SHOPS_TABLE
        self.customers_table = customers_table or settings.CUSTOMERS_TABLE

    def shop_exists(self, shop_id: str) -> bool:
        return self._exists(self.shops_table, shop_id)

    def customer_exists(self, customer_id: str) -> bool:
        return self._exists(self.customers_table, customer_id)

    def _exists(self, table: str, record_id: str) -> bool:
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            cursor.execute(f"SELECT 1 FROM `{table}` WHERE id = %s LIMIT 1", (record_id,))
            found = cursor.fetchone() is not None
            conn.commit()
            return found
        except Error as e:
            raise DatabaseError(f"Error checking {table} for id {record_id}: {e}", original_exception=e)
        finally:
            cursor.close()
