"""Inventory orchestration: store writes, cache coherence and lifecycle events."""
import logging
import math
from contextlib import contextmanager
from decimal import Decimal
from typing import Optional

import redis
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from inventory.config import Settings, get_settings
from inventory.events import ChannelConfig, EventPublisher, ProductEventType, enqueue_event, relay_pending
from inventory.exceptions import (
    ConcurrentModificationError,
    InsufficientStockError,
    ProductNotFoundError,
    SkuAlreadyExistsError,
    ValidationFailedError,
)
from inventory.models.product import Product
from inventory.repositories.product_repository import ProductFilter, ProductRepository
from inventory.schemas.product import (
    MAX_STOCK,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from inventory.services.cache import ProductCache

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Product not found with id: {product_id}"


class InventoryService:
    """
    Entry point for every catalog and stock operation.

    Mutations run in three strictly ordered steps:

    1. invariant checks, the store write and an outbox row, in one transaction
    2. cache update / eviction, once the transaction has committed
    3. relay of pending outbox rows to the event channels

    A failure in step 1 rolls everything back and leaves the caches and
    channels untouched. Once step 1 commits the call succeeds: a Redis
    failure in step 2 is logged, and a publish failure in step 3 leaves the
    event pending for the background relay.
    """

    def __init__(
        self,
        db: Session,
        repository: ProductRepository,
        cache: ProductCache,
        publisher: EventPublisher,
        settings: Settings,
    ):
        self.db = db
        self.repository = repository
        self.cache = cache
        self.publisher = publisher
        self.settings = settings

    @classmethod
    def build(
        cls, db: Session, redis_client: redis.Redis, settings: Optional[Settings] = None
    ) -> "InventoryService":
        """Wire the service with its store, cache and publisher."""
        settings = settings or get_settings()
        return cls(
            db=db,
            repository=ProductRepository(db),
            cache=ProductCache(
                redis_client,
                entity_ttl=settings.cache_entity_ttl_seconds,
                listing_ttl=settings.cache_listing_ttl_seconds,
            ),
            publisher=EventPublisher(redis_client, ChannelConfig.from_settings(settings)),
            settings=settings,
        )

    # Reads

    def get_product(self, product_id: int) -> ProductResponse:
        cached = self.cache.get_entity(product_id)
        if cached is not None:
            logger.debug(f"Cache hit for product {product_id}")
            return cached

        product = self._get_or_raise(product_id)
        response = self._to_response(product)
        self.cache.put_entity(product_id, response)
        return response

    def get_product_by_sku(self, sku: str) -> ProductResponse:
        product = self.repository.get_by_sku(sku)
        if product is None:
            raise ProductNotFoundError(f"Product not found with SKU: {sku}")
        return self._to_response(product)

    def list_products(
        self, page: int = 1, page_size: Optional[int] = None, product_filter: Optional[ProductFilter] = None
    ) -> ProductListResponse:
        """
        List products one page at a time.

        Unfiltered pages go through the listing cache; filtered listings
        always read the store.
        """
        if page_size is None:
            page_size = self.settings.default_page_size
        if page < 1:
            raise ValidationFailedError("Page must be at least 1", field="page", rejected_value=page)
        if page_size < 1 or page_size > self.settings.max_page_size:
            raise ValidationFailedError(
                f"Page size must be between 1 and {self.settings.max_page_size}",
                field="page_size",
                rejected_value=page_size,
            )

        product_filter = product_filter or ProductFilter()
        cacheable = product_filter.is_empty()
        if cacheable:
            cached = self.cache.get_listing(page, page_size)
            if cached is not None:
                logger.debug(f"Cache hit for listing page {page} (size {page_size})")
                return cached

        items, total = self.repository.list_page(product_filter, page, page_size)
        listing = ProductListResponse(
            items=[self._to_response(p) for p in items],
            total=total,
            page=page,
            page_size=page_size,
            pages=math.ceil(total / page_size) if total > 0 else 1,
        )
        if cacheable:
            self.cache.put_listing(page, page_size, listing)
        return listing

    def list_active(self) -> list[ProductResponse]:
        return self._find(ProductFilter(active_only=True))

    def search_by_name(self, name: str) -> list[ProductResponse]:
        logger.debug(f"Searching active products by name: {name}")
        return self._find(ProductFilter(active_only=True, name_contains=name))

    def list_by_category(self, category: str) -> list[ProductResponse]:
        return self._find(ProductFilter(active_only=True, category=category))

    def list_by_price_range(self, min_price: Decimal, max_price: Decimal) -> list[ProductResponse]:
        if min_price > max_price:
            raise ValidationFailedError(
                "Minimum price must not exceed maximum price",
                field="min_price",
                rejected_value=str(min_price),
            )
        return self._find(ProductFilter(active_only=True, min_price=min_price, max_price=max_price))

    def list_available(self) -> list[ProductResponse]:
        return self._find(ProductFilter(available_only=True))

    def list_low_stock(self, threshold: Optional[int] = None) -> list[ProductResponse]:
        if threshold is None:
            threshold = self.settings.low_stock_threshold
        if threshold < 0:
            raise ValidationFailedError(
                "Threshold must not be negative", field="threshold", rejected_value=threshold
            )
        return self._find(ProductFilter(active_only=True, stock_threshold=threshold))

    # Mutations

    def create_product(self, data: ProductCreate) -> ProductResponse:
        logger.debug(f"Creating product: {data.name}")

        with self._transaction():
            if data.sku is not None and self.repository.exists_by_sku(data.sku):
                raise SkuAlreadyExistsError(f"A product with SKU {data.sku} already exists")

            product = self.repository.insert(Product(**data.model_dump()))
            snapshot = self._to_response(product)
            self._record_event(ProductEventType.CREATED, snapshot)

        self._refresh_cache(snapshot.id, snapshot)
        self._relay_events()

        logger.info(f"Product created with id: {snapshot.id}")
        return snapshot

    def update_product(self, product_id: int, patch: ProductUpdate) -> ProductResponse:
        """
        Apply a partial update: only fields sent by the client change.

        Inactive products remain updatable, including setting ``active``
        back to true.
        """
        logger.debug(f"Updating product {product_id}")
        changes = patch.changes()

        with self._transaction():
            product = self._get_or_raise(product_id)

            if patch.version is not None and patch.version != product.version:
                raise ConcurrentModificationError(
                    f"Product {product_id} is at version {product.version}, not {patch.version}"
                )

            new_sku = changes.get("sku")
            if new_sku is not None and self.repository.exists_by_sku_excluding(new_sku, product_id):
                raise SkuAlreadyExistsError(f"Another product with SKU {new_sku} already exists")

            for field, value in changes.items():
                setattr(product, field, value)

            product = self.repository.update(product)
            snapshot = self._to_response(product)
            self._record_event(ProductEventType.UPDATED, snapshot)

        self._refresh_cache(product_id, snapshot)
        self._relay_events()

        logger.info(f"Product {product_id} updated ({', '.join(changes) or 'no changes'})")
        return snapshot

    def soft_delete_product(self, product_id: int) -> None:
        logger.debug(f"Soft deleting product {product_id}")

        with self._transaction():
            product = self._get_or_raise(product_id)
            product.active = False
            product = self.repository.update(product)
            self._record_event(ProductEventType.DELETED, self._to_response(product))

        self._refresh_cache(product_id)
        self._relay_events()

        logger.info(f"Product {product_id} deactivated")

    def hard_delete_product(self, product_id: int) -> None:
        logger.debug(f"Permanently deleting product {product_id}")

        with self._transaction():
            product = self._get_or_raise(product_id)
            snapshot = self._to_response(product)
            self.repository.delete(product)
            self._record_event(ProductEventType.DELETED, snapshot)

        self._refresh_cache(product_id)
        self._relay_events()

        logger.info(f"Product {product_id} permanently deleted")

    def increase_stock(self, product_id: int, quantity: int) -> ProductResponse:
        return self._adjust_stock(product_id, quantity, increase=True)

    def decrease_stock(self, product_id: int, quantity: int) -> ProductResponse:
        return self._adjust_stock(product_id, quantity, increase=False)

    # Internals

    def _adjust_stock(self, product_id: int, quantity: int, increase: bool) -> ProductResponse:
        logger.debug(f"Adjusting stock for product {product_id}: quantity={quantity}, increase={increase}")
        if quantity is None or quantity <= 0:
            raise ValidationFailedError(
                "Quantity must be positive", field="quantity", rejected_value=quantity
            )

        max_attempts = self.settings.stock_update_max_retries + 1
        for attempt in range(1, max_attempts + 1):
            try:
                with self._transaction():
                    product = self._get_or_raise(product_id)
                    if not increase and quantity > product.quantity_in_stock:
                        raise InsufficientStockError(
                            f"Insufficient stock for product {product_id}: "
                            f"requested {quantity}, available {product.quantity_in_stock}"
                        )
                    if increase and product.quantity_in_stock + quantity > MAX_STOCK:
                        raise ValidationFailedError(
                            f"Stock for product {product_id} cannot exceed {MAX_STOCK}",
                            field="quantity",
                            rejected_value=quantity,
                        )
                    product.quantity_in_stock += quantity if increase else -quantity
                    product = self.repository.update(product)
                    snapshot = self._to_response(product)
                    self._record_event(ProductEventType.UPDATED, snapshot)
                break
            except ConcurrentModificationError:
                if attempt == max_attempts:
                    raise
                logger.warning(
                    f"Concurrent stock change on product {product_id}, retrying ({attempt}/{max_attempts - 1})"
                )

        self._refresh_cache(product_id, snapshot)
        self._relay_events()

        logger.info(f"Stock updated for product {product_id}, new stock: {snapshot.quantity_in_stock}")
        return snapshot

    @contextmanager
    def _transaction(self):
        """Commit on success, roll back and translate store errors on failure."""
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if "sku" in str(e.orig).lower():
                raise SkuAlreadyExistsError("A product with this SKU already exists") from e
            raise
        except StaleDataError as e:
            self.db.rollback()
            raise ConcurrentModificationError(
                "Product was modified concurrently, read it again and retry"
            ) from e
        except Exception:
            self.db.rollback()
            raise

    def _get_or_raise(self, product_id: int) -> Product:
        product = self.repository.get(product_id)
        if product is None:
            raise ProductNotFoundError(NOT_FOUND_MESSAGE.format(product_id=product_id))
        return product

    def _find(self, product_filter: ProductFilter) -> list[ProductResponse]:
        return [self._to_response(p) for p in self.repository.find(product_filter)]

    def _record_event(self, event_type: ProductEventType, snapshot: ProductResponse) -> None:
        enqueue_event(self.db, event_type, str(snapshot.id), snapshot.model_dump(mode="json"))

    def _refresh_cache(self, product_id: int, snapshot: Optional[ProductResponse] = None) -> None:
        """
        Bring the caches in line with a committed change.

        Listing pages are always evicted. The entity entry is overwritten
        with ``snapshot`` when given, evicted otherwise. The change is
        already committed at this point, so a Redis failure is logged and
        the caller still gets the committed result.
        """
        try:
            self.cache.evict_all_listings()
            if snapshot is not None:
                self.cache.put_entity(product_id, snapshot)
            else:
                self.cache.evict_entity(product_id)
        except redis.RedisError:
            logger.error(f"Cache refresh failed after change to product {product_id}", exc_info=True)

    def _relay_events(self) -> None:
        if not self.settings.outbox_relay_inline:
            return
        try:
            relay_pending(self.db, self.publisher, limit=self.settings.outbox_relay_batch_size)
        except SQLAlchemyError:
            # The change is committed; pending rows stay for the background relay
            self.db.rollback()
            logger.error("Inline outbox relay failed", exc_info=True)

    @staticmethod
    def _to_response(product: Product) -> ProductResponse:
        return ProductResponse.model_validate(product)
