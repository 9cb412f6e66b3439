"""Redis read cache for single products and listing pages."""
import logging
from typing import Optional

import redis
from pydantic import ValidationError

from inventory.schemas.product import ProductListResponse, ProductResponse

logger = logging.getLogger(__name__)

ENTITY_KEY = "product:{product_id}"
LISTING_KEY = "products-page:{page}-{page_size}"
LISTING_INDEX_KEY = "products-page:keys"


class ProductCache:
    """
    Two independent caches: one product per id, and one listing page per
    (page, page_size).

    Nothing here keeps the caches consistent with the store; every mutating
    path of the inventory service must update or evict explicitly.
    """

    def __init__(self, redis_client: redis.Redis, entity_ttl: int = 0, listing_ttl: int = 0):
        self.redis = redis_client
        self.entity_ttl = entity_ttl or None
        self.listing_ttl = listing_ttl or None

    # Entity cache

    def get_entity(self, product_id: int) -> Optional[ProductResponse]:
        key = ENTITY_KEY.format(product_id=product_id)
        cached = self.redis.get(key)
        if cached is None:
            return None
        try:
            return ProductResponse.model_validate_json(cached)
        except ValidationError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            self.redis.delete(key)
            return None

    def put_entity(self, product_id: int, product: ProductResponse) -> None:
        key = ENTITY_KEY.format(product_id=product_id)
        self.redis.set(key, product.model_dump_json(), ex=self.entity_ttl)

    def evict_entity(self, product_id: int) -> None:
        self.redis.delete(ENTITY_KEY.format(product_id=product_id))

    # Listing cache

    def get_listing(self, page: int, page_size: int) -> Optional[ProductListResponse]:
        key = LISTING_KEY.format(page=page, page_size=page_size)
        cached = self.redis.get(key)
        if cached is None:
            return None
        try:
            return ProductListResponse.model_validate_json(cached)
        except ValidationError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            self.redis.delete(key)
            return None

    def put_listing(self, page: int, page_size: int, listing: ProductListResponse) -> None:
        key = LISTING_KEY.format(page=page, page_size=page_size)
        pipe = self.redis.pipeline()
        pipe.set(key, listing.model_dump_json(), ex=self.listing_ttl)
        pipe.sadd(LISTING_INDEX_KEY, key)
        pipe.execute()

    def evict_all_listings(self) -> None:
        keys = self.redis.smembers(LISTING_INDEX_KEY)
        if not keys:
            return
        # Only untrack what was read; a page cached meanwhile stays evictable
        pipe = self.redis.pipeline()
        pipe.delete(*keys)
        pipe.srem(LISTING_INDEX_KEY, *keys)
        pipe.execute()
        logger.debug(f"Evicted {len(keys)} cached listing page(s)")
