"""Custom application-wide exceptions."""


class ApplicationError(Exception):
    """Base class for application-specific errors."""

    def __init__(
        self, message: str = "An application error occurred", original_exception: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_exception = original_exception
        self.message = message

    def __str__(self) -> str:
        if self.original_exception:
            return f"{self.message} (Original error: {self.original_exception})"
        return self.message


class APIError(ApplicationError):
    """Exception raised for errors during external API calls."""

    def __init__(
        self,
        message: str = "API call failed",
        original_exception: Exception | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, original_exception)
        self.status_code = status_code
        self.message = f"API Error: {message}"
        if status_code:
            self.message += f" (Status Code: {status_code})"


class DatabaseError(ApplicationError):
    """Exception raised for errors during database operations."""

    def __init__(self, message: str = "Database operation failed", original_exception: Exception | None = None) -> None:
        super().__init__(message, original_exception)
        self.message = f"Database Error: {message}"


class ValidationError(ApplicationError):
    """Raised when input is malformed or breaks a business precondition."""

    def __init__(self, message: str = "Invalid input", original_exception: Exception | None = None) -> None:
        super().__init__(message, original_exception)


class InvalidTransitionError(ValidationError):
    """Raised when an order status change is not allowed from its current status."""

    def __init__(self, current_status: str, requested_status: str) -> None:
        super().__init__(f"Cannot change order status from {current_status} to {requested_status}")
        self.current_status = current_status
        self.requested_status = requested_status


class NotFoundError(ApplicationError):
    """Raised when a referenced record does not exist."""

    def __init__(self, message: str = "Record not found", original_exception: Exception | None = None) -> None:
        super().__init__(message, original_exception)


class StockLineNotFoundError(NotFoundError):
    """Raised when a ledger has no line for the requested brand and gas type."""

    def __init__(self, brand_name: str, gas_type: str, available_types: list[str] | None = None) -> None:
        types_label = ", ".join(available_types) if available_types else "none"
        super().__init__(f"Gas stock not found for {brand_name} {gas_type}. Available types: {types_label}")
        self.brand_name = brand_name
        self.gas_type = gas_type
        self.available_types = available_types or []


class LedgerNotFoundError(NotFoundError):
    def __init__(self, shop_id: str) -> None:
        super().__init__(f"Shop stock not found for shop {shop_id}")
        self.shop_id = shop_id


class GasStockNotFoundError(NotFoundError):
    def __init__(self, gas_stock_id: str) -> None:
        super().__init__(f"Gas stock not found: {gas_stock_id}")
        self.gas_stock_id = gas_stock_id


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_ref: str) -> None:
        super().__init__(f"Order not found: {order_ref}")
        self.order_ref = order_ref


class InsufficientStockError(ApplicationError):
    """Raised when a line cannot cover the requested quantity."""

    def __init__(self, available: int, requested: int, message: str | None = None) -> None:
        super().__init__(message or f"Insufficient stock. Available: {available}, Requested: {requested}")
        self.available = available
        self.requested = requested


class ConcurrencyConflictError(ApplicationError):
    """Raised when a versioned save finds the stored record was changed by someone else."""

    def __init__(self, message: str = "Record was modified concurrently", original_exception: Exception | None = None) -> None:
        super().__init__(message, original_exception)


class SchedulerExecutionError(ApplicationError):
    """Raised for a single stock line that failed during an arrival scan."""

    def __init__(
        self, shop_id: str, brand_name: str, gas_type: str, original_exception: Exception | None = None
    ) -> None:
        super().__init__(f"Failed to execute arrival for shop {shop_id}: {brand_name} {gas_type}", original_exception)
        self.shop_id = shop_id
        self.brand_name = brand_name
        self.gas_type = gas_type
