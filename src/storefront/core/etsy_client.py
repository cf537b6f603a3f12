"""
Read-only client for the Etsy Open API v3.

Every call degrades instead of raising: missing credentials, an expired
authorization or an Etsy outage give an empty list or None, and the site shows
placeholder content.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from storefront.core.classifier import classify
from storefront.core.models import EtsyListing, EtsyShop, Product, TaxonomyNode
from storefront.core.settings import ETSY_API_BASE_URL, EtsySettings
from storefront.storage.base import TokenStore

logger = logging.getLogger("etsy")

REQUEST_TIMEOUT = 15
NEW_LISTING_WINDOW_SECONDS = 30 * 24 * 60 * 60
BESTSELLER_MIN_FAVORERS = 10
PLACEHOLDER_IMAGE = "/placeholder-image.jpg"


def map_listing_to_product(
    listing: EtsyListing,
    taxonomy: Optional[TaxonomyNode] = None,
    now: Optional[float] = None,
) -> Product:
    """
    Map an Etsy listing to a storefront product.

    Args:
        listing (EtsyListing): Listing as returned by Etsy.
        taxonomy (TaxonomyNode | None): The listing's seller taxonomy node, if known.
        now (float | None): Current time in epoch seconds, for the "new" badge.

    Returns:
        Product: The mapped product.
    """
    now = time.time() if now is None else now
    main_image = listing.images[0].url_570xN if listing.images else ""
    main_image = main_image or PLACEHOLDER_IMAGE
    images = [img.url_fullxfull for img in listing.images if img.url_fullxfull] or [main_image]

    category = classify(
        listing.tags,
        listing.title,
        taxonomy_name=taxonomy.name if taxonomy else None,
        taxonomy_path=taxonomy.path if taxonomy else None,
        materials=listing.materials,
    )

    return Product(
        id=str(listing.listing_id),
        name=listing.title,
        price=listing.price.amount / listing.price.divisor,
        currency=listing.price.currency_code,
        image=main_image,
        images=images,
        category=category,
        description=listing.description,
        is_new=listing.created_timestamp > now - NEW_LISTING_WINDOW_SECONDS,
        is_bestseller=listing.num_favorers > BESTSELLER_MIN_FAVORERS,
        in_stock=listing.quantity > 0 and listing.state == "active",
        quantity=listing.quantity,
        etsy_url=listing.url,
        etsy_listing_id=listing.listing_id,
        tags=listing.tags,
    )


def flatten_taxonomy(nodes: List[Dict[str, Any]], path: Optional[List[str]] = None) -> Dict[int, TaxonomyNode]:
    """Flatten Etsy's nested taxonomy tree into id -> node with ancestor names."""
    path = path or []
    index: Dict[int, TaxonomyNode] = {}
    for node in nodes:
        try:
            node_id = int(node["id"])
            name = str(node["name"])
        except (KeyError, TypeError, ValueError):
            continue
        index[node_id] = TaxonomyNode(id=node_id, name=name, path=list(path))
        index.update(flatten_taxonomy(node.get("children") or [], path + [name]))
    return index


class EtsyClient:
    """
    Fetch shop data from Etsy with the stored OAuth token.

    Args:
        settings (EtsySettings): API key and shop id.
        token_store (TokenStore): Source of a valid access token.
        session (requests.Session | None): HTTP session, a new one by default.
    """

    def __init__(
        self,
        settings: EtsySettings,
        token_store: TokenStore,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings
        self.token_store = token_store
        self.session = session or requests.Session()
        self._taxonomy: Optional[Dict[int, TaxonomyNode]] = None

    def _headers(self) -> Optional[Dict[str, str]]:
        if not self.settings.is_configured:
            logger.warning("Etsy API credentials not configured")
            return None
        access_token = self.token_store.get_valid_access_token()
        if not access_token:
            logger.warning("No valid Etsy access token, authorize via /api/admin/oauth/start")
            return None
        return {
            "x-api-key": self.settings.etsy_api_key,
            "Authorization": f"Bearer {access_token}",
        }

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        headers = self._headers()
        if headers is None:
            return None
        url = f"{ETSY_API_BASE_URL}{path}"
        try:
            response = self.session.get(url, headers=headers, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            logger.error("Error calling Etsy %s: %s", path, e)
            return None
        if not response.ok:
            logger.error("Etsy API error for %s: %s %s", path, response.status_code, response.reason)
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error("Invalid JSON from Etsy %s: %s", path, e)
            return None

    def get_listings(self, limit: int = 100) -> List[EtsyListing]:
        """
        Fetch the shop's active listings.

        Args:
            limit (int): Maximum number of listings.

        Returns:
            list[EtsyListing]: The listings, empty on any failure.
        """
        data = self._get(
            f"/application/shops/{self.settings.etsy_shop_id}/listings/active",
            params={"limit": limit, "includes": "images"},
        )
        if not isinstance(data, dict):
            return []

        listings = []
        for raw in data.get("results") or []:
            try:
                listings.append(EtsyListing.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping malformed listing: %s", e)
        return listings

    def get_shop(self) -> Optional[EtsyShop]:
        """Fetch shop information, None on any failure."""
        data = self._get(f"/application/shops/{self.settings.etsy_shop_id}")
        if not isinstance(data, dict):
            return None
        try:
            return EtsyShop.model_validate(data)
        except ValidationError as e:
            logger.error("Malformed shop payload: %s", e)
            return None

    def get_taxonomy_index(self) -> Dict[int, TaxonomyNode]:
        """Seller taxonomy by node id, fetched once per client."""
        if self._taxonomy is not None:
            return self._taxonomy
        data = self._get("/application/seller-taxonomy/nodes")
        if not isinstance(data, dict):
            return {}
        self._taxonomy = flatten_taxonomy(data.get("results") or [])
        logger.info("Loaded %s Etsy taxonomy nodes", len(self._taxonomy))
        return self._taxonomy

    def get_products(self, limit: int = 100) -> List[Product]:
        """Fetch active listings mapped to storefront products."""
        listings = self.get_listings(limit)
        if not listings:
            return []
        taxonomy = self.get_taxonomy_index()
        return [
            map_listing_to_product(
                listing, taxonomy.get(listing.taxonomy_id) if listing.taxonomy_id else None
            )
            for listing in listings
        ]

    def get_product_by_id(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.get_products() if p.id == product_id), None)
