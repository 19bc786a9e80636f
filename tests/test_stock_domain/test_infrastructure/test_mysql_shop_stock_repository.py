# tests/test_stock_domain/test_infrastructure/test_mysql_shop_stock_repository.py

from datetime import datetime
from unittest.mock import MagicMock, Mock, patch

import pytest
from mysql.connector import Error, errorcode

from gasledger.common.config.settings import settings
from gasledger.common.exceptions.custom_exceptions import (
    ConcurrencyConflictError,
    DatabaseError,
    ValidationError,
)
from gasledger.stock_domain.domain.entities.stock_ledger import HistoryAction, StockAction, StockLedger
from gasledger.stock_domain.domain.entities.stock_line import ArrivalStatus
from gasledger.stock_domain.infrastructure.persistence.mysql_shop_stock_repository import (
    MySQLShopStockRepository,
)


@pytest.fixture
def mysql_shop_stock_repository(mocker) -> MySQLShopStockRepository:
    """Provides an instance of MySQLShopStockRepository with mocked settings."""
    mocker.patch.object(settings, "DB_HOST", "localhost")
    mocker.patch.object(settings, "DB_DATABASE", "test_db")
    mocker.patch.object(settings, "DB_USER", "test_user")
    mocker.patch.object(settings, "DB_PASSWORD", "test_password")
    return MySQLShopStockRepository()


@pytest.fixture
def mock_db():
    """Patches mysql.connector.connect and yields (connection, cursor) mocks."""
    with patch("mysql.connector.connect") as mock_connect:
        mock_connection = MagicMock()
        mock_cursor = MagicMock()
        mock_connect.return_value = mock_connection
        mock_connection.cursor.return_value = mock_cursor
        mock_connection.is_connected.return_value = True
        yield mock_connection, mock_cursor


def _executed_sql(mock_cursor) -> list[str]:
    return [c[0][0].strip() for c in mock_cursor.execute.call_args_list]


def _line_row(**overrides) -> dict:
    row = {
        "brand_name": "Laugfs",
        "gas_type": "Medium",
        "gas_size": "5kg",
        "unit_price": 1700,
        "available_quantity": 12,
        "reserved_quantity": 2,
        "min_stock_level": 10,
        "max_stock_level": 100,
        "special_price": None,
        "last_restock_date": datetime(2025, 1, 10, 8, 0),
        "arrival_date": None,
        "expected_quantity": None,
        "auto_update_enabled": None,
        "arrival_status": None,
        "scheduled_by": None,
        "scheduled_at": None,
        "arrival_notes": None,
        "supplier_name": "Laugfs Gas PLC",
        "supplier_contact": None,
        "is_available": 1,
    }
    row.update(overrides)
    return row


def test_create_tables_success(mysql_shop_stock_repository, mock_db) -> None:
    mock_connection, mock_cursor = mock_db

    mysql_shop_stock_repository.create_tables()

    statements = _executed_sql(mock_cursor)
    assert len(statements) == 4
    assert all(s.startswith("CREATE TABLE IF NOT EXISTS gds_shop_stock") for s in statements)
    mock_connection.commit.assert_called_once()
    mock_cursor.close.assert_called_once()


def test_create_tables_error_rolls_back(mysql_shop_stock_repository, mock_db) -> None:
    mock_connection, mock_cursor = mock_db
    mock_cursor.execute.side_effect = Error("Access denied")

    with pytest.raises(DatabaseError, match="Error creating GDS shop stock tables"):
        mysql_shop_stock_repository.create_tables()

    mock_connection.rollback.assert_called_once()
    mock_cursor.close.assert_called_once()


def test_create_writes_header_lines_and_alerts(mysql_shop_stock_repository, mock_db) -> None:
    mock_connection, mock_cursor = mock_db
    ledger = StockLedger.create_default("shop-1")

    mysql_shop_stock_repository.create(ledger)

    statements = _executed_sql(mock_cursor)
    assert statements[0].startswith("INSERT INTO gds_shop_stock ")
    assert mock_cursor.execute.call_args_list[0][0][1][0] == "shop-1"
    line_call = mock_cursor.executemany.call_args_list[0]
    assert line_call[0][0].strip().startswith("INSERT INTO gds_shop_stock_lines")
    assert len(line_call[0][1]) == 6
    mock_connection.commit.assert_called_once()
    assert ledger.version == 1
    assert ledger.pending_history == []


def test_create_duplicate_shop_is_a_validation_error(mysql_shop_stock_repository, mock_db) -> None:
    mock_connection, mock_cursor = mock_db
    mock_cursor.execute.side_effect = Error(msg="Duplicate entry 'shop-1'", errno=errorcode.ER_DUP_ENTRY)

    with pytest.raises(ValidationError, match="already has a stock ledger"):
        mysql_shop_stock_repository.create(StockLedger.create_default("shop-1"))

    mock_connection.rollback.assert_called_once()
    mock_connection.commit.assert_not_called()


def test_save_bumps_version_and_appends_only_new_history(mysql_shop_stock_repository, mock_db, agent) -> None:
    mock_connection, mock_cursor = mock_db
    mock_cursor.rowcount = 1
    ledger = StockLedger.create_default("shop-1")
    ledger.version = 4
    ledger.update_stock("Litro", "Large", 20, StockAction.RESTOCK, agent)

    mysql_shop_stock_repository.save(ledger)

    update_sql, update_params = mock_cursor.execute.call_args_list[0][0]
    assert update_sql.strip().startswith("UPDATE gds_shop_stock")
    assert "WHERE shop_id = %s AND version = %s" in update_sql
    assert update_params[-2:] == ("shop-1", 4)

    history_calls = [
        c for c in mock_cursor.executemany.call_args_list if "gds_shop_stock_history" in c[0][0]
    ]
    assert len(history_calls) == 1
    rows = history_calls[0][0][1]
    assert len(rows) == 1
    assert rows[0][1] == HistoryAction.RESTOCK.value
    assert rows[0][8] == "agent-1"

    mock_connection.commit.assert_called_once()
    assert ledger.version == 5
    assert ledger.pending_history == []


def test_save_stale_version_raises_conflict_and_rolls_back(mysql_shop_stock_repository, mock_db, agent) -> None:
    mock_connection, mock_cursor = mock_db
    mock_cursor.rowcount = 0
    ledger = StockLedger.create_default("shop-1")
    ledger.version = 2
    ledger.update_stock("Litro", "Large", 1, StockAction.RESTOCK, agent)

    with pytest.raises(ConcurrencyConflictError, match="no longer at version 2"):
        mysql_shop_stock_repository.save(ledger)

    mock_connection.rollback.assert_called_once()
    mock_connection.commit.assert_not_called()
    mock_cursor.executemany.assert_not_called()
    assert ledger.version == 2
    assert len(ledger.pending_history) == 1
    mock_cursor.close.assert_called_once()


def test_save_database_error_is_wrapped(mysql_shop_stock_repository, mock_db) -> None:
    mock_connection, mock_cursor = mock_db
    mock_cursor.execute.side_effect = Error("Lock wait timeout exceeded")

    with pytest.raises(DatabaseError, match="Error saving stock ledger for shop shop-1"):
        mysql_shop_stock_repository.save(StockLedger.create_default("shop-1"))

    mock_connection.rollback.assert_called_once()
    mock_cursor.close.assert_called_once()


def test_get_by_shop_id_maps_rows(mysql_shop_stock_repository, mock_db) -> None:
    mock_connection, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = {
        "shop_id": "shop-1",
        "version": 7,
        "last_updated_by": "agent-1",
        "updated_by_role": "SalesAgent",
        "notes": None,
    }
    mock_cursor.fetchall.side_effect = [
        [
            _line_row(),
            _line_row(
                brand_name="Litro",
                gas_type="Large",
                gas_size="12.5kg",
                unit_price=4100,
                available_quantity=0,
                reserved_quantity=0,
                arrival_date=datetime(2025, 1, 20, 6, 0),
                expected_quantity=50,
                auto_update_enabled=1,
                arrival_status="scheduled",
                scheduled_by="agent-1",
                scheduled_at=datetime(2025, 1, 14, 9, 0),
                arrival_notes="Truck 2",
            ),
        ],
        [
            {
                "action": "restock",
                "brand_name": "Laugfs",
                "gas_type": "Medium",
                "quantity": 14,
                "previous_quantity": 0,
                "new_quantity": 14,
                "reason": None,
                "performed_by": "agent-1",
                "performed_by_role": "SalesAgent",
                "timestamp": datetime(2025, 1, 10, 8, 0),
            }
        ],
    ]

    ledger = mysql_shop_stock_repository.get_by_shop_id("shop-1")

    mock_connection.cursor.assert_called_with(dictionary=True)
    assert mock_cursor.execute.call_count == 3
    assert ledger.version == 7
    assert ledger.pending_history == []
    medium = ledger.get_line("Laugfs", "Medium")
    assert (medium.available_quantity, medium.reserved_quantity) == (12, 2)
    assert medium.last_restock_date.tzinfo is not None
    assert medium.next_arrival is None
    large = ledger.get_line("Litro", "Large")
    assert large.next_arrival.status == ArrivalStatus.SCHEDULED
    assert large.next_arrival.expected_quantity == 50
    assert large.next_arrival.auto_update_enabled is True
    assert ledger.history[0].action == HistoryAction.RESTOCK
    assert ledger.total_value == 12 * 1700
    mock_cursor.close.assert_called_once()


def test_get_by_shop_id_not_found(mysql_shop_stock_repository, mock_db) -> None:
    _, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    assert mysql_shop_stock_repository.get_by_shop_id("ghost") is None
    assert mock_cursor.execute.call_count == 1
    mock_cursor.close.assert_called_once()


def test_find_shop_ids_with_due_arrivals(mysql_shop_stock_repository, mock_db, fixed_now) -> None:
    _, mock_cursor = mock_db
    mock_cursor.fetchall.return_value = [("shop-1",), ("shop-2",)]

    result = mysql_shop_stock_repository.find_shop_ids_with_due_arrivals(fixed_now)

    assert result == ["shop-1", "shop-2"]
    params = mock_cursor.execute.call_args[0][1]
    assert params[0] == "scheduled"
    assert params[1] == datetime(2025, 1, 15, 10, 0)
    mock_cursor.close.assert_called_once()


def test_delete_by_shop_id_clears_all_tables(mysql_shop_stock_repository, mock_db) -> None:
    mock_connection, mock_cursor = mock_db

    mysql_shop_stock_repository.delete_by_shop_id("shop-1")

    statements = _executed_sql(mock_cursor)
    assert statements[-1] == "DELETE FROM gds_shop_stock WHERE shop_id = %s"
    assert len(statements) == 4
    mock_connection.commit.assert_called_once()


def test_connection_reused_per_thread(mysql_shop_stock_repository) -> None:
    with patch("mysql.connector.connect") as mock_connect:
        mock_connection = MagicMock()
        mock_connect.return_value = mock_connection
        mock_connection.is_connected.return_value = True
        mock_connection.cursor.return_value = Mock(fetchone=Mock(return_value=None))

        mysql_shop_stock_repository.get_by_shop_id("a")
        mysql_shop_stock_repository.get_by_shop_id("b")

        mock_connect.assert_called_once()


def test_connection_error(mysql_shop_stock_repository) -> None:
    with patch("mysql.connector.connect", side_effect=Error("Connection failed")):
        with pytest.raises(DatabaseError, match="Failed to connect to MySQL"):
            mysql_shop_stock_repository.get_by_shop_id("shop-1")
