"""Product schemas for API requests and responses."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

PRICE_QUANTUM = Decimal("0.01")

# Largest value the INTEGER stock column holds
MAX_STOCK = 2_147_483_647

# Columns that are NOT NULL in the store; an update may omit them but not null them
_REQUIRED_FIELDS = ("name", "price", "quantity_in_stock", "active")


def _reject_blank(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("must not be blank")
    return value


class ProductBase(BaseModel):
    """Base product schema with common fields."""

    name: str = Field(..., min_length=2, max_length=100, description="Product name")
    description: Optional[str] = Field(None, max_length=500, description="Product description")
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Unit price")
    quantity_in_stock: int = Field(..., ge=0, le=MAX_STOCK, description="Units in stock")
    category: Optional[str] = Field(None, max_length=50, description="Product category")
    sku: Optional[str] = Field(None, min_length=1, max_length=20, description="Product SKU (unique)")
    active: bool = Field(True, description="Whether the product is active")


class ProductCreate(ProductBase):
    """Schema for creating a new product."""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value):
        return _reject_blank(value)


class ProductUpdate(BaseModel):
    """
    Schema for a partial product update.

    Only fields present in the request body are applied. `version` is the
    version the client read; when sent, the update is rejected if the
    product changed since.
    """

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    quantity_in_stock: Optional[int] = Field(None, ge=0, le=MAX_STOCK)
    category: Optional[str] = Field(None, max_length=50)
    sku: Optional[str] = Field(None, min_length=1, max_length=20)
    active: Optional[bool] = None
    version: Optional[int] = Field(None, ge=1)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value):
        return _reject_blank(value)

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in _REQUIRED_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict:
        """Fields sent by the client, excluding the concurrency token."""
        return self.model_dump(exclude_unset=True, exclude={"version"})


class StockAdjustment(BaseModel):
    """Quantity to add to or remove from stock."""

    quantity: int = Field(..., le=MAX_STOCK)


class ProductResponse(ProductBase):
    """Schema for product responses."""

    id: int
    available: bool
    version: int
    created_at: datetime
    updated_at: datetime

    @field_validator("price", mode="before")
    @classmethod
    def two_fraction_digits(cls, value):
        return Decimal(str(value)).quantize(PRICE_QUANTUM)

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    """Schema for paginated product list responses."""

    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    pages: int
