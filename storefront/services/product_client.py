# storefront/services/product_client.py
import asyncio

import requests
from pydantic import ValidationError

from storefront.data.store import CollectionStore
from storefront.domain.errors import PersistenceError
from storefront.domain.models import Product
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry

logger = get_logger(__name__)


class StoreProductCatalog:
    """Products read from the `products` collection of the shared store."""

    collection = "products"

    def __init__(self, store: CollectionStore):
        self.store = store

    async def get_product(self, product_id: str) -> Product | None:
        row = await self.store.find_by_id(self.collection, str(product_id))
        if row is None:
            return None
        try:
            return Product.from_record(row)
        except ValidationError as e:
            logger.warning(f"Product {product_id} has an invalid record: {e}")
            return None


class ProductClient:
    """Products fetched from a separate product-service over HTTP."""

    def __init__(self, base_url: str, timeout: int = 2, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    @http_retry()
    def fetch_product(self, product_id: str) -> dict | None:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = self.http.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    async def get_product(self, product_id: str) -> Product | None:
        try:
            data = await asyncio.to_thread(self.fetch_product, str(product_id))
        except requests.RequestException as e:
            logger.error(f"product-service unavailable for {product_id}: {e}")
            raise PersistenceError("product catalog unavailable") from e
        if data is None:
            return None
        return Product.from_record(data)


def build_product_catalog(settings, store: CollectionStore):
    if settings.product_service_url:
        return ProductClient(settings.product_service_url)
    return StoreProductCatalog(store)
