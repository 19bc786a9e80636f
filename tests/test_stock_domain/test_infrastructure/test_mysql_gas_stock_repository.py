# tests/test_stock_domain/test_infrastructure/test_mysql_gas_stock_repository.py

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from mysql.connector import Error

from gasledger.common.exceptions.custom_exceptions import (
    DatabaseError,
    GasStockNotFoundError,
    InsufficientStockError,
)
from gasledger.stock_domain.domain.entities.legacy_gas_stock import LegacyGasStock
from gasledger.stock_domain.infrastructure.persistence.mysql_gas_stock_repository import (
    MySQLLegacyGasStockRepository,
)


@pytest.fixture
def mock_db():
    with patch("mysql.connector.connect") as mock_connect:
        mock_connection = MagicMock()
        mock_cursor = MagicMock()
        mock_connect.return_value = mock_connection
        mock_connection.cursor.return_value = mock_cursor
        mock_connection.is_connected.return_value = True
        yield mock_connection, mock_cursor


def _gas_stock_row(qty: int) -> dict:
    return {
        "id": "gs-1",
        "gas_center_name": "Colombo Gas Center",
        "gas_brand": "Litro",
        "gas_type": "12.5kg",
        "gas_available_qty": qty,
        "next_arrival_date": datetime(2025, 2, 1, 8, 0),
        "latitude": None,
        "longitude": None,
    }


def test_create_tables_success(mock_db) -> None:
    mock_connection, mock_cursor = mock_db

    MySQLLegacyGasStockRepository().create_tables()

    assert mock_cursor.execute.call_args[0][0].strip().startswith("CREATE TABLE IF NOT EXISTS gds_gas_stock")
    mock_connection.commit.assert_called_once()
    mock_cursor.close.assert_called_once()


def test_add_upserts(mock_db) -> None:
    mock_connection, mock_cursor = mock_db

    MySQLLegacyGasStockRepository().add(
        LegacyGasStock(id="gs-1", gas_center_name="Colombo Gas Center", gas_brand="Litro", gas_type="12.5kg", gas_available_qty=8)
    )

    sql, params = mock_cursor.execute.call_args[0]
    assert sql.strip().startswith("INSERT INTO gds_gas_stock")
    assert "ON DUPLICATE KEY UPDATE" in sql
    assert params[:5] == ("gs-1", "Colombo Gas Center", "Litro", "12.5kg", 8)
    mock_connection.commit.assert_called_once()


def test_get_by_id_maps_row(mock_db) -> None:
    _, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = _gas_stock_row(8)

    gas_stock = MySQLLegacyGasStockRepository().get_by_id("gs-1")

    assert gas_stock.gas_available_qty == 8
    assert gas_stock.next_arrival_date.tzinfo is not None
    assert gas_stock.latitude is None


def test_get_by_id_not_found(mock_db) -> None:
    _, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    assert MySQLLegacyGasStockRepository().get_by_id("ghost") is None


def test_adjust_quantity_is_a_conditional_update(mock_db) -> None:
    mock_connection, mock_cursor = mock_db
    mock_cursor.rowcount = 1
    mock_cursor.fetchone.return_value = _gas_stock_row(6)

    gas_stock = MySQLLegacyGasStockRepository().adjust_quantity("gs-1", -2)

    update_sql, update_params = mock_cursor.execute.call_args_list[0][0]
    assert "WHERE id = %s AND gas_available_qty + %s >= 0" in update_sql
    assert update_params == (-2, "gs-1", -2)
    assert gas_stock.gas_available_qty == 6


def test_adjust_quantity_below_zero_raises_insufficient_stock(mock_db) -> None:
    _, mock_cursor = mock_db
    mock_cursor.rowcount = 0
    mock_cursor.fetchone.return_value = _gas_stock_row(1)

    with pytest.raises(InsufficientStockError) as exc_info:
        MySQLLegacyGasStockRepository().adjust_quantity("gs-1", -3)

    assert exc_info.value.message == "Insufficient stock. Available: 1, Requested: 3"


def test_adjust_quantity_unknown_record(mock_db) -> None:
    _, mock_cursor = mock_db
    mock_cursor.rowcount = 0
    mock_cursor.fetchone.return_value = None

    with pytest.raises(GasStockNotFoundError):
        MySQLLegacyGasStockRepository().adjust_quantity("ghost", 1)


def test_adjust_quantity_database_error(mock_db) -> None:
    mock_connection, mock_cursor = mock_db
    mock_cursor.execute.side_effect = Error("Deadlock found")

    with pytest.raises(DatabaseError, match="Error adjusting gas stock gs-1"):
        MySQLLegacyGasStockRepository().adjust_quantity("gs-1", -1)

    mock_connection.rollback.assert_called_once()
    mock_cursor.close.assert_called_once()
