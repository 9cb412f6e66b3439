"""Tests for the product read cache and its coherence with the store."""
from decimal import Decimal

from sqlalchemy import text

from inventory.schemas.product import ProductUpdate
from inventory.services.cache import ENTITY_KEY, LISTING_INDEX_KEY, ProductCache


def test_get_product_populates_entity_cache(service, make_product, fake_redis):
    product = make_product()
    fake_redis.delete(ENTITY_KEY.format(product_id=product.id))

    assert service.cache.get_entity(product.id) is None
    fetched = service.get_product(product.id)

    assert service.cache.get_entity(product.id) == fetched


def test_cache_hit_does_not_read_store(service, db, make_product):
    product = make_product(name="Cached name")
    service.get_product(product.id)

    # Change the row behind the service's back
    db.execute(text("UPDATE products SET name = 'Changed' WHERE id = :id"), {"id": product.id})
    db.commit()

    assert service.get_product(product.id).name == "Cached name"


def test_update_refreshes_entity_cache(service, make_product):
    product = make_product(name="Before")
    service.get_product(product.id)

    service.update_product(product.id, ProductUpdate(name="After"))

    assert service.get_product(product.id).name == "After"
    assert service.cache.get_entity(product.id).name == "After"


def test_update_evicts_every_listing_page(service, make_product):
    first = make_product(name="First")
    make_product(name="Second")
    service.list_products(page=1, page_size=1)
    service.list_products(page=2, page_size=1)
    service.list_products(page=1, page_size=20)
    assert service.cache.get_listing(2, 1) is not None

    service.update_product(first.id, ProductUpdate(name="First, renamed"))

    assert service.cache.get_listing(1, 1) is None
    assert service.cache.get_listing(2, 1) is None
    assert service.cache.get_listing(1, 20) is None
    names = [p.name for p in service.list_products(page=1, page_size=20).items]
    assert "First, renamed" in names


def test_listing_is_served_from_cache_until_invalidated(service, db, make_product):
    product = make_product(name="Listed")
    service.list_products(page=1, page_size=20)

    db.execute(text("UPDATE products SET name = 'Sneaky' WHERE id = :id"), {"id": product.id})
    db.commit()
    assert service.list_products(page=1, page_size=20).items[0].name == "Listed"

    service.increase_stock(product.id, 1)
    assert service.list_products(page=1, page_size=20).items[0].name == "Sneaky"


def test_filtered_listing_bypasses_cache(service, make_product, fake_redis):
    from inventory.repositories.product_repository import ProductFilter

    make_product(name="Alpha")
    service.list_products(page=1, page_size=20, product_filter=ProductFilter(name_contains="alp"))

    assert fake_redis.smembers(LISTING_INDEX_KEY) == set()


def test_create_evicts_listings_and_caches_entity(service, make_product):
    make_product(name="Existing")
    service.list_products(page=1, page_size=20)

    created = make_product(name="Newcomer")

    assert service.cache.get_listing(1, 20) is None
    assert service.cache.get_entity(created.id) == created
    assert service.list_products(page=1, page_size=20).total == 2


def test_stock_change_refreshes_entity_cache(service, make_product):
    product = make_product(quantity_in_stock=4)
    service.get_product(product.id)

    service.decrease_stock(product.id, 3)

    assert service.cache.get_entity(product.id).quantity_in_stock == 1


def test_deletes_evict_entity(service, make_product):
    soft = make_product(name="Soft")
    hard = make_product(name="Hard")
    service.get_product(soft.id)
    service.get_product(hard.id)

    service.soft_delete_product(soft.id)
    service.hard_delete_product(hard.id)

    assert service.cache.get_entity(soft.id) is None
    assert service.cache.get_entity(hard.id) is None


def test_repeated_reads_are_identical(service, make_product):
    product = make_product(price=Decimal("19.90"))
    service.cache.evict_entity(product.id)

    from_store = service.get_product(product.id)
    from_cache = service.get_product(product.id)

    assert from_store.model_dump_json() == from_cache.model_dump_json()


def test_unreadable_entry_is_a_miss(fake_redis):
    cache = ProductCache(fake_redis)
    fake_redis.set(ENTITY_KEY.format(product_id=1), "not json")

    assert cache.get_entity(1) is None
    assert fake_redis.exists(ENTITY_KEY.format(product_id=1)) == 0


def test_evict_all_listings_with_nothing_cached(fake_redis):
    ProductCache(fake_redis).evict_all_listings()
    assert fake_redis.smembers(LISTING_INDEX_KEY) == set()


def test_ttl_applied_when_configured(fake_redis, service, make_product):
    product = make_product()
    cache = ProductCache(fake_redis, entity_ttl=60)

    cache.put_entity(product.id, product)

    assert 0 < fake_redis.ttl(ENTITY_KEY.format(product_id=product.id)) <= 60
