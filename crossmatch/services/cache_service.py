"""Two-tier cache for product resolution results.

An in-process map serves repeated lookups within a session; the durable store
serves them across sessions. Entries carry their creation time and expire
lazily: age is compared with the configured TTL when read, never when
written, and there is no background sweep.
"""

import logging
import re
import time
from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import ValidationError

from ..config import CacheSettings
from ..errors import CacheReadFailure, CacheWriteFailure
from ..models import CacheEntry, Marketplace, ProductRecord
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

TITLE_KEY_LENGTH = 20


class CacheService:
    """Memoizes comparison results keyed by product identity.

    The TTL is read from `settings` on every lookup, so lowering it takes
    effect on the next read. Durable tier failures are logged and never
    raised: a failed or corrupt read is a miss, and writes, deletes and
    clears are best effort.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: CacheSettings,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache.

        Args:
            store: Durable tier.
            settings: TTL and key namespace.
            clock: Wall clock in epoch seconds.
        """
        self.store = store
        self.settings = settings
        self._clock = clock
        self._memory: dict[str, CacheEntry] = {}

    @staticmethod
    def derive_key(product: ProductRecord) -> str:
        """Cache key for a product.

        Prefers UPC, then ASIN, then the marketplace-local id. Without any of
        them the key is built from the first characters of the normalized
        title plus the price. The marketplace always prefixes the key.
        """
        prefix = product.marketplace.value
        if product.upc:
            return f"{prefix}-upc-{product.upc}"
        if product.asin:
            return f"{prefix}-asin-{product.asin}"
        if product.product_id:
            return f"{prefix}-id-{product.product_id}"

        title = re.sub(r"[^\w\s]", "", product.title.lower())
        title = "-".join(title.split())[:TITLE_KEY_LENGTH]
        key = f"{prefix}-title-{title}"
        if product.price is not None:
            price = product.price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            key += f"-price-{str(price).replace('.', 'p')}"
        return key

    @classmethod
    def derive_multi_search_key(
        cls, product: ProductRecord, selected_marketplace: Marketplace | None = None
    ) -> str:
        selected = selected_marketplace.value if selected_marketplace else "all"
        return f"{cls.derive_key(product)}-multi-search-{selected}"

    def _namespaced(self, key: str) -> str:
        return f"{self.settings.namespace}{key}"

    def _is_expired(self, entry: CacheEntry) -> bool:
        ttl_seconds = self.settings.ttl_hours * 3600
        return self._clock() - entry.timestamp > ttl_seconds

    async def get(self, key: str) -> Any | None:
        """Return cached data, or None on a miss or an expired entry.

        A durable read failure is logged and treated as a miss.
        """
        entry = self._memory.get(key)
        if entry is not None:
            if not self._is_expired(entry):
                logger.debug(f"Memory cache hit: {key}")
                return entry.data
            del self._memory[key]

        full_key = self._namespaced(key)
        try:
            stored = await self.store.get([full_key])
        except CacheReadFailure as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

        raw = stored.get(full_key)
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Corrupt cache entry for {key}, treating as miss: {e.error_count()} errors")
            await self._discard(full_key)
            return None

        if self._is_expired(entry):
            logger.debug(f"Cache entry expired: {key}")
            return None

        self._memory[key] = entry
        logger.debug(f"Store cache hit: {key}")
        return entry.data

    async def set(self, key: str, data: Any) -> None:
        """Write both tiers, timestamped now."""
        entry = CacheEntry(data=data, timestamp=self._clock())
        self._memory[key] = entry
        try:
            await self.store.set({self._namespaced(key): entry.model_dump(mode="json")})
        except CacheWriteFailure as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def _discard(self, full_key: str) -> None:
        try:
            await self.store.remove([full_key])
        except CacheWriteFailure as e:
            logger.warning(f"Cache delete failed for {full_key}: {e}")

    async def remove(self, key: str) -> None:
        self._memory.pop(key, None)
        await self._discard(self._namespaced(key))

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    async def keys_by_prefix(self, prefix: str) -> list[str]:
        """Keys (without namespace) starting with `prefix`, from both tiers."""
        full_prefix = self._namespaced(prefix)
        namespace_length = len(self.settings.namespace)
        keys = {key for key in self._memory if key.startswith(prefix)}
        try:
            stored = await self.store.get_all()
        except CacheReadFailure as e:
            logger.warning(f"Listing cache keys failed: {e}")
            stored = {}
        keys.update(key[namespace_length:] for key in stored if key.startswith(full_prefix))
        return sorted(keys)

    async def clear(self) -> None:
        """Empty the in-process tier and every durable key in the namespace."""
        self._memory.clear()
        try:
            stored = await self.store.get_all()
            keys = [key for key in stored if key.startswith(self.settings.namespace)]
            if keys:
                await self.store.remove(keys)
        except (CacheReadFailure, CacheWriteFailure) as e:
            logger.warning(f"Clearing durable cache failed, memory tier cleared only: {e}")
            return
        logger.info(f"Cache cleared ({len(keys)} durable entries removed)")
