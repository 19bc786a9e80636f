"""Shared MySQL connection handling for repositories."""

import logging
import threading

import mysql.connector
from mysql.connector import Error

from gasledger.common.config.settings import settings
from gasledger.common.exceptions.custom_exceptions import DatabaseError

logger = logging.getLogger(__name__)


class MySQLRepositoryBase:
    """
    Base class giving each thread its own MySQL connection.
    mysql.connector connections must not be shared between threads, and request
    handlers and the arrival scheduler run on different threads.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _get_connection(self):
        """Establishes or returns this thread's active MySQL database connection."""
        connection = getattr(self._local, "connection", None)
        if not connection or not connection.is_connected():
            try:
                connection = mysql.connector.connect(
                    host=settings.DB_HOST,
                    database=settings.DB_DATABASE,
                    user=settings.DB_USER,
                    password=settings.DB_PASSWORD,
                    autocommit=False,  # Better control over transactions
                    charset="utf8mb4",
                    use_unicode=True,
                )
            except Error as e:
                raise DatabaseError(f"Failed to connect to MySQL: {e}", original_exception=e)
            self._local.connection = connection
        return connection

    def _execute_ddl(self, statements: list[str], label: str) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            for statement in statements:
                cursor.execute(statement)
            conn.commit()
            logger.info(f"{label} tables checked/created.")
        except Error as e:
            conn.rollback()
            raise DatabaseError(f"Error creating {label} tables: {e}", original_exception=e)
        finally:
            cursor.close()

    def close(self) -> None:
        connection = getattr(self._local, "connection", None)
        if connection and connection.is_connected():
            connection.close()
        self._local.connection = None

    def __del__(self) -> None:
        """Closes the database connection when the object is destroyed."""
        if hasattr(self, "_local"):
            self.close()
