"""Durable product storage on top of a SQLAlchemy session."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from inventory.models.product import Product


def _contains_pattern(term: str) -> str:
    """LIKE pattern matching ``term`` literally anywhere in the value."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class ProductFilter:
    """Optional criteria combined with AND; unset criteria match everything."""

    active_only: bool = False
    category: Optional[str] = None
    name_contains: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    stock_threshold: Optional[int] = None
    available_only: bool = False
    active: Optional[bool] = None
    search: Optional[str] = None

    def is_empty(self) -> bool:
        return self == ProductFilter()


class ProductRepository:
    """
    Keyed storage for product records.

    Methods only flush; committing or rolling back the session is the
    caller's responsibility, so that invariant checks and the mutation they
    guard land in one transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.sku == sku).first()

    def exists_by_sku(self, sku: str) -> bool:
        query = self.db.query(Product.id).filter(Product.sku == sku)
        return self.db.query(query.exists()).scalar()

    def exists_by_sku_excluding(self, sku: str, product_id: int) -> bool:
        query = self.db.query(Product.id).filter(Product.sku == sku, Product.id != product_id)
        return self.db.query(query.exists()).scalar()

    def list_page(
        self, product_filter: ProductFilter, page: int, page_size: int
    ) -> tuple[list[Product], int]:
        """
        Return one page of matching products, newest first, and the total match count.

        Args:
            product_filter: Criteria to apply
            page: 1-based page number
            page_size: Items per page

        Returns:
            Tuple of (items, total)
        """
        query = self._filtered(product_filter)
        total = query.count()

        offset = (page - 1) * page_size
        items = (
            query.order_by(Product.created_at.desc(), Product.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )
        return items, total

    def find(self, product_filter: ProductFilter) -> list[Product]:
        """Return every matching product ordered by id."""
        return self._filtered(product_filter).order_by(Product.id).all()

    def insert(self, product: Product) -> Product:
        self.db.add(product)
        self.db.flush()
        self.db.refresh(product)
        return product

    def update(self, product: Product) -> Product:
        # Raises StaleDataError if the row's version moved since it was read
        self.db.flush()
        self.db.refresh(product)
        return product

    def delete(self, product: Product) -> None:
        self.db.delete(product)
        self.db.flush()

    def _filtered(self, product_filter: ProductFilter) -> Query:
        query = self.db.query(Product)

        if product_filter.active_only:
            query = query.filter(Product.active.is_(True))
        if product_filter.active is not None:
            query = query.filter(Product.active == product_filter.active)
        if product_filter.category:
            query = query.filter(func.lower(Product.category) == product_filter.category.lower())
        if product_filter.name_contains:
            query = query.filter(
                Product.name.ilike(_contains_pattern(product_filter.name_contains), escape="\\")
            )
        if product_filter.min_price is not None:
            query = query.filter(Product.price >= product_filter.min_price)
        if product_filter.max_price is not None:
            query = query.filter(Product.price <= product_filter.max_price)
        if product_filter.stock_threshold is not None:
            query = query.filter(Product.quantity_in_stock <= product_filter.stock_threshold)
        if product_filter.available_only:
            query = query.filter(Product.active.is_(True), Product.quantity_in_stock > 0)
        if product_filter.search:
            search_term = _contains_pattern(product_filter.search)
            query = query.filter(
                or_(
                    Product.sku.ilike(search_term, escape="\\"),
                    Product.name.ilike(search_term, escape="\\"),
                )
            )

        return query
