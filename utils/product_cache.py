# Shopping MCP Relay - in-memory product cache keyed by slug

import logging
import time
from typing import Callable, Dict, Iterable, Optional, Tuple

from config import CACHE_CONFIG
from models import Product

logger = logging.getLogger(__name__)


class ProductCache:
    """Keeps recently seen product records so detail lookups can reuse list data.

    Single-process and unpersisted; entries older than ``ttl_seconds`` are
    ignored and only the newest ``max_entries`` are retained.
    """

    def __init__(self, max_entries: int = 100, ttl_seconds: float = 24 * 60 * 60,
                 clock: Callable[[], float] = time.time):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[Product, float]] = {}

    def __len__(self) -> int:
        self._expire()
        return len(self._entries)

    def _expire(self) -> None:
        now = self._clock()
        expired = [slug for slug, (_, ts) in self._entries.items() if now - ts >= self.ttl_seconds]
        for slug in expired:
            del self._entries[slug]

    def _trim(self) -> None:
        if len(self._entries) <= self.max_entries:
            return
        newest = sorted(self._entries.items(), key=lambda item: item[1][1], reverse=True)
        self._entries = dict(newest[: self.max_entries])

    def cache_product(self, product: Product) -> None:
        if not product.slug:
            return
        self._expire()
        self._entries[product.slug] = (product, self._clock())
        self._trim()

    def cache_products(self, products: Iterable[Product]) -> None:
        self._expire()
        now = self._clock()
        for product in products:
            if product.slug:
                self._entries[product.slug] = (product, now)
        self._trim()

    def get_cached_product(self, slug: str) -> Optional[Product]:
        self._expire()
        entry = self._entries.get(slug)
        return entry[0] if entry else None

    def get_product_image(self, slug: str) -> Optional[str]:
        product = self.get_cached_product(slug)
        return product.image_url if product else None

    def clear(self) -> None:
        self._entries.clear()


product_cache = ProductCache(
    max_entries=CACHE_CONFIG["max_entries"],
    ttl_seconds=CACHE_CONFIG["ttl_seconds"],
)
