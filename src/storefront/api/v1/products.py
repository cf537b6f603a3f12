"""Product and shop endpoints.

Etsy failures never reach the customer as an error page: listing endpoints
answer 200 with an empty list, single-item endpoints answer 404.
"""

import logging
import threading
import time
from functools import lru_cache
from typing import Callable, Generic, Optional, TypeVar

import anyio
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storefront.core.classifier import collect_terms, match_rule
from storefront.core.dependencies import get_etsy_client
from storefront.core.etsy_client import EtsyClient
from storefront.core.models import Category, EtsyShop, Product

logger = logging.getLogger("api")

PRODUCTS_CACHE_SECONDS = 60 * 60
SHOP_CACHE_SECONDS = 24 * 60 * 60

T = TypeVar("T")

router = APIRouter(tags=["products"])


class TimedCache(Generic[T]):
    """
    Hold one value for a bounded time. Empty values are not cached so the
    site recovers as soon as Etsy does.
    """

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._value: Optional[T] = None
        self._stored_at = 0.0
        self._lock = threading.Lock()

    def get(self, loader: Callable[[], T]) -> T:
        with self._lock:
            if self._value and self.clock() - self._stored_at < self.ttl_seconds:
                return self._value
        value = loader()
        if value:
            with self._lock:
                self._value = value
                self._stored_at = self.clock()
        return value

    def clear(self) -> None:
        with self._lock:
            self._value = None


class ProductCatalog:
    """Cached view of the shop: products for an hour, shop info for a day."""

    def __init__(self) -> None:
        self.products: TimedCache[list[Product]] = TimedCache(PRODUCTS_CACHE_SECONDS)
        self.shop: TimedCache[Optional[EtsyShop]] = TimedCache(SHOP_CACHE_SECONDS)

    def get_products(self, client: EtsyClient) -> list[Product]:
        return self.products.get(client.get_products)

    def get_product(self, client: EtsyClient, product_id: str) -> Optional[Product]:
        return next((p for p in self.get_products(client) if p.id == product_id), None)

    def get_shop(self, client: EtsyClient) -> Optional[EtsyShop]:
        return self.shop.get(client.get_shop)

    def clear(self) -> None:
        self.products.clear()
        self.shop.clear()


@lru_cache()
def get_product_catalog() -> ProductCatalog:
    return ProductCatalog()


@router.get("/api/products")
async def list_products(
    category: Optional[Category] = None,
    client: EtsyClient = Depends(get_etsy_client),
    catalog: ProductCatalog = Depends(get_product_catalog),
) -> dict:
    """List the shop's products, optionally filtered by category."""
    try:
        products = await anyio.to_thread.run_sync(catalog.get_products, client)
    except Exception as e:
        logger.error("Products temporarily unavailable: %s", e)
        return {"success": False, "error": "Products temporarily unavailable", "products": []}

    if category is not None:
        products = [p for p in products if p.category == category]
    logger.info("Serving %s products", len(products))
    return {
        "success": True,
        "count": len(products),
        "products": [p.model_dump(by_alias=True) for p in products],
    }


@router.get("/api/products/{product_id}", response_model=None)
async def get_product(
    product_id: str,
    client: EtsyClient = Depends(get_etsy_client),
    catalog: ProductCatalog = Depends(get_product_catalog),
) -> dict | JSONResponse:
    """Get a single product by its Etsy listing id."""
    try:
        product = await anyio.to_thread.run_sync(catalog.get_product, client, product_id)
    except Exception as e:
        logger.error("Product %s temporarily unavailable: %s", product_id, e)
        return JSONResponse(
            {"success": False, "error": "Product temporarily unavailable"}, status_code=404
        )
    if product is None:
        return JSONResponse({"success": False, "error": "Product not found"}, status_code=404)
    return {"success": True, "product": product.model_dump(by_alias=True)}


@router.get("/api/shop", response_model=None)
async def get_shop(
    client: EtsyClient = Depends(get_etsy_client),
    catalog: ProductCatalog = Depends(get_product_catalog),
) -> dict | JSONResponse:
    """Get the Etsy shop information."""
    try:
        shop = await anyio.to_thread.run_sync(catalog.get_shop, client)
    except Exception as e:
        logger.error("Shop temporarily unavailable: %s", e)
        return JSONResponse(
            {"success": False, "error": "Shop temporarily unavailable"}, status_code=404
        )
    if shop is None:
        return JSONResponse({"success": False, "error": "Shop not found"}, status_code=404)
    return {"success": True, "shop": shop.model_dump()}


@router.get("/api/debug/categories")
async def debug_categories(client: EtsyClient = Depends(get_etsy_client)) -> dict:
    """Show how the current listings are categorized and which term decided it."""
    products = await anyio.to_thread.run_sync(client.get_products)
    if not products:
        return {
            "message": "No Etsy listings found - OAuth not configured or Etsy unavailable",
            "categories": {},
            "products": [],
        }

    counts: dict[str, int] = {}
    details = []
    for product in products:
        counts[product.category.value] = counts.get(product.category.value, 0) + 1
        match = match_rule(collect_terms(product.tags, product.name))
        details.append(
            {
                "id": product.id,
                "name": product.name,
                "category": product.category.value,
                "trigger": match[1]
                if match and match[0] == product.category
                else "taxonomy, materials or default",
                "tags": product.tags[:5],
                "etsyUrl": product.etsy_url,
            }
        )
    return {"totalProducts": len(products), "categories": counts, "products": details}
