"""Product catalog and stock API endpoints."""
from decimal import Decimal
from typing import Optional

import redis
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from inventory.database import get_db
from inventory.redis_client import get_redis
from inventory.repositories.product_repository import ProductFilter
from inventory.schemas.product import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    StockAdjustment,
)
from inventory.services.inventory_service import InventoryService

router = APIRouter(prefix="/api/products", tags=["products"])


def get_inventory_service(
    db: Session = Depends(get_db), redis_client: redis.Redis = Depends(get_redis)
) -> InventoryService:
    """Dependency wiring the inventory service for one request."""
    return InventoryService.build(db, redis_client)


@router.get("", response_model=ProductListResponse)
def list_products(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    name: Optional[str] = Query(None, description="Filter by name (partial match)"),
    active: Optional[bool] = Query(None, description="Filter by active status"),
    category: Optional[str] = Query(None, description="Filter by category (case-insensitive)"),
    search: Optional[str] = Query(None, description="Search in SKU and name"),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    List products with pagination.

    Query Parameters:
    - page: Page number (default: 1)
    - page_size: Items per page (default: 20, max: 100)
    - name, active, category, search: optional filters; filtered pages are never cached
    """
    product_filter = ProductFilter(
        name_contains=name, active=active, category=category, search=search
    )
    return service.list_products(page, page_size, product_filter)


@router.get("/active", response_model=list[ProductResponse])
def list_active_products(service: InventoryService = Depends(get_inventory_service)):
    """List all active products."""
    return service.list_active()


@router.get("/search", response_model=list[ProductResponse])
def search_products(
    name: str = Query(..., min_length=1, description="Name fragment (case-insensitive)"),
    service: InventoryService = Depends(get_inventory_service),
):
    """Search active products by name."""
    return service.search_by_name(name)


@router.get("/category/{category}", response_model=list[ProductResponse])
def list_products_by_category(
    category: str, service: InventoryService = Depends(get_inventory_service)
):
    """List active products of a category (case-insensitive)."""
    return service.list_by_category(category)


@router.get("/price-range", response_model=list[ProductResponse])
def list_products_by_price_range(
    min_price: Decimal = Query(..., ge=0),
    max_price: Decimal = Query(..., ge=0),
    service: InventoryService = Depends(get_inventory_service),
):
    """List active products priced within [min_price, max_price]."""
    return service.list_by_price_range(min_price, max_price)


@router.get("/available", response_model=list[ProductResponse])
def list_available_products(service: InventoryService = Depends(get_inventory_service)):
    """List products that are active and in stock."""
    return service.list_available()


@router.get("/low-stock", response_model=list[ProductResponse])
def list_low_stock_products(
    threshold: int = Query(10, ge=0, description="Maximum quantity in stock"),
    service: InventoryService = Depends(get_inventory_service),
):
    """List active products whose stock is at or below the threshold."""
    return service.list_low_stock(threshold)


@router.get("/sku/{sku}", response_model=ProductResponse)
def get_product_by_sku(sku: str, service: InventoryService = Depends(get_inventory_service)):
    """Get a single product by SKU."""
    return service.get_product_by_sku(sku)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, service: InventoryService = Depends(get_inventory_service)):
    """Get a single product by ID."""
    return service.get_product(product_id)


@router.post("", response_model=ProductResponse, status_code=201)
def create_product(
    product: ProductCreate, service: InventoryService = Depends(get_inventory_service)
):
    """
    Create a new product.

    SKU, when given, must be unique.
    """
    return service.create_product(product)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    product_update: ProductUpdate,
    service: InventoryService = Depends(get_inventory_service),
):
    """
    Update a product.

    Only provided fields will be updated.
    """
    return service.update_product(product_id, product_update)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, service: InventoryService = Depends(get_inventory_service)):
    """Deactivate a product; the record is kept."""
    service.soft_delete_product(product_id)
    return Response(status_code=204)


@router.delete("/{product_id}/hard", status_code=204)
def hard_delete_product(
    product_id: int, service: InventoryService = Depends(get_inventory_service)
):
    """Permanently delete a product."""
    service.hard_delete_product(product_id)
    return Response(status_code=204)


@router.patch("/{product_id}/stock/increase", response_model=ProductResponse)
def increase_stock(
    product_id: int,
    adjustment: StockAdjustment,
    service: InventoryService = Depends(get_inventory_service),
):
    """Add units to a product's stock."""
    return service.increase_stock(product_id, adjustment.quantity)


@router.patch("/{product_id}/stock/decrease", response_model=ProductResponse)
def decrease_stock(
    product_id: int,
    adjustment: StockAdjustment,
    service: InventoryService = Depends(get_inventory_service),
):
    """Remove units from a product's stock; never below zero."""
    return service.decrease_stock(product_id, adjustment.quantity)
