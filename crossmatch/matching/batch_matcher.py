"""Unattended matching of many source products against one marketplace.

For every product the batch matcher builds a search query, opens one
ephemeral browsing context on the target marketplace's search page, scores
the listings it finds and closes the context again. Products and batches run
strictly one after another; only one context is open at a time.

A result record is appended before each search starts, so a product that
times out or fails still shows up with zero matches, and a failure never
stops the queue.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence

from ..config import BatchSettings
from ..errors import CacheWriteFailure, CrossmatchError, ExtractionTimeout, NoMatcherForPage
from ..extractors.base import AdapterRegistry, ExtractionAdapter
from ..models import ComparisonResult, Marketplace, MatchResult, ProductRecord
from ..services.browser_pool import BrowsingContext, BrowsingContextFactory
from ..services.storage import KeyValueStore
from .match_finder import extract_candidates, score_candidates

logger = logging.getLogger(__name__)

RESULTS_STORAGE_KEY = "categoryComparisons"

ProgressCallback = Callable[[float], None]


def build_search_query(product: ProductRecord) -> str:
    """Brand followed by title, without repeating a brand the title starts with."""
    title = product.title.strip()
    brand = (product.brand or "").strip()
    if brand and not title.lower().startswith(brand.lower()):
        return f"{brand} {title}"
    return title


class CategoryBatchMatcher:
    """Runs the match finder for a queue of source products.

    Args:
        context_factory: Creates ephemeral browsing contexts.
        registry: Adapters, looked up by target marketplace.
        store: Durable storage for the accumulated results.
        settings: Timeouts, delays, threshold and match cap.
        sleep: Awaitable delay, replaceable in tests.
        clock: Wall clock for record timestamps.
    """

    def __init__(
        self,
        context_factory: BrowsingContextFactory,
        registry: AdapterRegistry,
        store: KeyValueStore,
        settings: BatchSettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.context_factory = context_factory
        self.registry = registry
        self.store = store
        self.settings = settings
        self._sleep = sleep
        self._clock = clock
        self._processing = False
        self._cancelled = False

    @property
    def is_processing(self) -> bool:
        return self._processing

    def cancel(self) -> None:
        """Stop the queue before the next product starts."""
        if self._processing:
            logger.info("Batch cancellation requested")
            self._cancelled = True

    async def start_processing(
        self,
        products: Sequence[ProductRecord],
        target_marketplace: Marketplace,
        batch_size: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[ComparisonResult]:
        """Match every product against the target marketplace.

        Args:
            products: Source products in processing order.
            target_marketplace: Marketplace to search.
            batch_size: Products per batch, defaults to the configured size.
            on_progress: Called with the completed percentage after each product.

        Returns:
            One comparison per processed product, in order. The same list is
            persisted under `categoryComparisons`; a failed write is logged and
            the results are still returned.

        Raises:
            RuntimeError: A batch is already running on this instance.
        """
        if self._processing:
            raise RuntimeError("Batch processing already in progress")

        self._processing = True
        self._cancelled = False
        size = max(1, batch_size or self.settings.batch_size)
        total = len(products)
        results: list[ComparisonResult] = []

        try:
            logger.info(
                f"Starting batch of {total} products against {target_marketplace.value} "
                f"(batch size {size})"
            )
            processed = 0
            for batch_start in range(0, total, size):
                batch = products[batch_start : batch_start + size]
                for index, product in enumerate(batch):
                    if self._cancelled:
                        break
                    await self._process_product(product, target_marketplace, results)
                    processed += 1
                    if on_progress is not None:
                        on_progress(processed / total * 100)
                    if index < len(batch) - 1:
                        await self._sleep(self.settings.product_delay)

                if self._cancelled:
                    logger.info(f"Batch cancelled after {processed}/{total} products")
                    break
                if batch_start + size < total:
                    await self._sleep(self.settings.batch_delay)

            try:
                await self.store.set(
                    {RESULTS_STORAGE_KEY: [result.model_dump(mode="json") for result in results]}
                )
            except CacheWriteFailure as e:
                logger.error(f"Persisting {len(results)} batch results failed: {e}")
            logger.info(f"Batch finished: {len(results)} products processed")
            return results
        finally:
            self._processing = False

    async def _process_product(
        self,
        product: ProductRecord,
        target_marketplace: Marketplace,
        results: list[ComparisonResult],
    ) -> None:
        record = ComparisonResult(
            source_product=product,
            matched_products={target_marketplace: []},
            timestamp=self._clock(),
        )
        results.append(record)

        try:
            adapter = self.registry.get_by_marketplace(target_marketplace)
            if adapter is None:
                raise NoMatcherForPage(f"no matcher for marketplace {target_marketplace.value}")

            search_url = adapter.build_search_url(build_search_query(product))
            record.search_url = search_url

            async with self.context_factory.open(search_url, self.settings.load_timeout) as context:
                await self._sleep(self.settings.settle_delay)
                try:
                    matches = await asyncio.wait_for(
                        self._read_and_score(context, adapter, product),
                        timeout=self.settings.extraction_timeout,
                    )
                except asyncio.TimeoutError as e:
                    raise ExtractionTimeout(
                        f"extraction timed out after {self.settings.extraction_timeout}s", e
                    ) from e

            record.matched_products[target_marketplace] = matches
            logger.info(f"'{product.title}': {len(matches)} matches on {target_marketplace.value}")

        except CrossmatchError as e:
            logger.error(f"Matching '{product.title}' failed ({e.error_type.value}): {e}")
        except Exception as e:
            logger.error(f"Unexpected error matching '{product.title}': {e}", exc_info=True)

    async def _read_and_score(
        self, context: BrowsingContext, adapter: ExtractionAdapter, product: ProductRecord
    ) -> list[MatchResult]:
        page = await context.snapshot()
        elements = adapter.find_candidate_elements(page)
        candidates = extract_candidates(adapter, elements, page)
        ranked = score_candidates(
            product, candidates, adapter.compute_similarity_of_titles, search_url=page.url
        )
        kept = [
            match
            for match in ranked
            if (match.similarity_score or 0.0) >= self.settings.min_similarity_score
        ]
        return kept[: self.settings.max_matches]
