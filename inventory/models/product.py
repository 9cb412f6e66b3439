"""Product model."""
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Integer, Numeric, String
from sqlalchemy.sql import func

from inventory.database import Base


class Product(Base):
    """Product model for storing catalog and stock information."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity_in_stock = Column(Integer, nullable=False, default=0)
    category = Column(String(50), nullable=True)
    sku = Column(String(20), nullable=True, unique=True)
    active = Column(Boolean, default=True, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity_in_stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price > 0", name="ck_products_price_positive"),
        Index("idx_products_category_lower", func.lower(category)),
    )

    # Every UPDATE is conditional on the version that was read
    __mapper_args__ = {"version_id_col": version}

    @property
    def available(self) -> bool:
        return bool(self.active) and (self.quantity_in_stock or 0) > 0

    def __repr__(self):
        return f"<Product(id={self.id}, sku='{self.sku}', name='{self.name}')>"
