"""Domain exceptions raised by the inventory service."""
from typing import Any, Optional


class InventoryError(Exception):
    """Base exception for inventory errors; carries its HTTP mapping."""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProductNotFoundError(InventoryError):
    """Product id or SKU does not resolve to a record."""

    status_code = 404
    error = "Product Not Found"


class SkuAlreadyExistsError(InventoryError):
    """Another product already holds the SKU."""

    status_code = 409
    error = "SKU Already Exists"


class ConcurrentModificationError(InventoryError):
    """The product changed between read and write."""

    status_code = 409
    error = "Concurrent Modification"


class InsufficientStockError(InventoryError):
    """Stock decrease larger than the quantity on hand."""

    status_code = 409
    error = "Invalid State"


class ValidationFailedError(InventoryError):
    """Input rejected by a service-level rule."""

    status_code = 400
    error = "Validation Failed"

    def __init__(self, message: str, field: Optional[str] = None, rejected_value: Any = None):
        super().__init__(message)
        self.field = field
        self.rejected_value = rejected_value
