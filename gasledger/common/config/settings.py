"""Application settings and environment variables."""

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


class Settings:
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_DATABASE: str = os.getenv("DB_NAME", "gas_inventory_db")
    DB_USER: str = os.getenv("DB_USER", "user")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "password")

    # "mysql" for the shared database, "memory" for a single-process store
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "mysql")

    PRICE_API_BASE_URL: Optional[str] = os.getenv("PRICE_API_BASE_URL")
    PRICE_API_TOKEN: Optional[str] = os.getenv("PRICE_API_TOKEN")

    # Tables owned by the shop/customer services, read for existence checks only
    SHOPS_TABLE: str = os.getenv("SHOPS_TABLE", "shops")
    CUSTOMERS_TABLE: str = os.getenv("CUSTOMERS_TABLE", "customers")

    # Stock engine settings
    ARRIVAL_CHECK_INTERVAL_SECONDS: int = int(os.getenv("ARRIVAL_CHECK_INTERVAL_SECONDS", "3600"))
    LEDGER_MAX_RETRIES: int = int(os.getenv("LEDGER_MAX_RETRIES", "5"))
    DEFAULT_MIN_STOCK_LEVEL: int = int(os.getenv("DEFAULT_MIN_STOCK_LEVEL", "10"))
    DEFAULT_MAX_STOCK_LEVEL: int = int(os.getenv("DEFAULT_MAX_STOCK_LEVEL", "100"))
    DEFAULT_DELIVERY_HOURS: int = int(os.getenv("DEFAULT_DELIVERY_HOURS", "24"))

    # Logging settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")  # INFO, DEBUG, WARNING, ERROR, CRITICAL


settings = Settings()
