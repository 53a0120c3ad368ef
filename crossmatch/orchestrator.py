"""Orchestration entry points.

`ComparisonOrchestrator` composes the cache, the remote API, the scorer and
the profit calculator for single-product comparisons, and the batch matcher
for category batches. It is the only component that talks to the remote
product-data API; callers always get a structured dictionary back, never an
exception.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import ValidationError

from .config import Config
from .errors import RemoteApiFailure, handle_error
from .matching.batch_matcher import CategoryBatchMatcher, ProgressCallback, build_search_query
from .matching.match_finder import score_candidates
from .models import CandidateRecord, ComparisonResult, Marketplace, MatchResult, ProductRecord
from .services.cache_service import CacheService
from .services.marketplace_api import MarketplaceApiClient
from .services.profit import calculate_profit, profitable_matches, total_potential_profit

logger = logging.getLogger(__name__)


def parse_candidates(marketplace: Marketplace, items: Sequence[Any]) -> list[CandidateRecord]:
    """Convert API product matches into candidates, dropping malformed items."""
    candidates = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            candidates.append(CandidateRecord.model_validate({**item, "marketplace": marketplace}))
        except ValidationError as e:
            logger.debug(f"Dropping malformed {marketplace.value} item: {e.error_count()} errors")
    return candidates


class ComparisonOrchestrator:
    """Single-product comparison and category batch entry points.

    Args:
        config: Engine configuration, read on every call.
        cache_service: Result cache.
        api_client: Remote marketplace-data API.
        batch_matcher: Batch matcher for category runs.
        diagnostic: Include tracebacks in failure payloads.
        clock: Wall clock for comparison timestamps.
    """

    def __init__(
        self,
        config: Config,
        cache_service: CacheService,
        api_client: MarketplaceApiClient,
        batch_matcher: CategoryBatchMatcher | None = None,
        diagnostic: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.cache_service = cache_service
        self.api_client = api_client
        self.batch_matcher = batch_matcher
        self.diagnostic = diagnostic
        self._clock = clock

    async def compare_product(
        self, source: ProductRecord, selected_marketplace: Marketplace | None = None
    ) -> dict[str, Any]:
        """Find and profit-annotate matches of `source` on other marketplaces.

        Args:
            source: Product the user is viewing.
            selected_marketplace: Only search this marketplace; all others
                when omitted.

        Returns:
            Dictionary with keys:
            {
                'success': bool,
                'source': 'api' | 'cache' | 'none',
                'data': serialized ComparisonResult,
                'errors': {marketplace: error message},
                'error': str (only on failure)
            }
        """
        start_time = time.perf_counter()
        try:
            if selected_marketplace is not None and selected_marketplace == source.marketplace:
                logger.info(f"Source already on {source.marketplace.value}, nothing to compare")
                empty = ComparisonResult(source_product=source, timestamp=self._clock())
                return {"success": True, "source": "none", "data": empty.model_dump(mode="json"), "errors": {}}

            cache_key = self.cache_service.derive_multi_search_key(source, selected_marketplace)
            cached = await self.cache_service.get(cache_key)
            if cached is not None:
                logger.info(f"Cache hit for {cache_key}")
                return {"success": True, "source": "cache", "data": cached, "errors": {}}

            targets = (
                [selected_marketplace]
                if selected_marketplace is not None
                else [m for m in Marketplace if m != source.marketplace]
            )
            raw, errors = await self._search(source, targets, selected_marketplace)
            if not raw and errors:
                failure = handle_error(
                    RemoteApiFailure("all marketplace searches failed"), "compare_product", self.diagnostic
                )
                failure["errors"] = errors
                return failure

            comparison = self._build_comparison(source, targets, raw)
            comparison = calculate_profit(comparison, self.config.fee_schedule)
            data = comparison.model_dump(mode="json")

            if not errors:
                await self.cache_service.set(cache_key, data)

            processing_time_ms = int((time.perf_counter() - start_time) * 1000)
            logger.info(
                f"Compared '{source.title}' across {len(targets)} marketplaces "
                f"in {processing_time_ms}ms ({len(errors)} failed)"
            )
            return {"success": True, "source": "api", "data": data, "errors": errors}

        except Exception as e:
            return handle_error(e, "compare_product", self.diagnostic)

    async def _search(
        self,
        source: ProductRecord,
        targets: list[Marketplace],
        selected_marketplace: Marketplace | None,
    ) -> tuple[dict[str, list[Any]], dict[str, str]]:
        """Multi-search, falling back to one request per marketplace.

        Returns:
            Raw items per marketplace and error messages per failed marketplace.
        """
        try:
            raw = await self.api_client.search_multi(source, selected_marketplace)
            return raw, {}
        except RemoteApiFailure as e:
            logger.warning(f"Multi search failed, querying marketplaces one by one: {e}")

        query = build_search_query(source)
        responses = await asyncio.gather(
            *(
                self.api_client.search(marketplace, query=query, upc=source.upc, asin=source.asin)
                for marketplace in targets
            ),
            return_exceptions=True,
        )

        raw: dict[str, list[Any]] = {}
        errors: dict[str, str] = {}
        for marketplace, response in zip(targets, responses):
            if isinstance(response, RemoteApiFailure):
                logger.warning(f"{marketplace.value} search failed: {response}")
                errors[marketplace.value] = str(response)
            elif isinstance(response, BaseException):
                raise response
            else:
                raw[marketplace.value] = response
        return raw, errors

    def _build_comparison(
        self, source: ProductRecord, targets: list[Marketplace], raw: dict[str, list[Any]]
    ) -> ComparisonResult:
        matched: dict[Marketplace, list[MatchResult]] = {}
        for marketplace in targets:
            items = raw.get(marketplace.value)
            if items is None:
                continue
            candidates = parse_candidates(marketplace, items)
            ranked = score_candidates(source, candidates)
            matched[marketplace] = ranked[: self.config.match_finder.max_results]
        return ComparisonResult(source_product=source, matched_products=matched, timestamp=self._clock())

    def summarize(self, comparison: ComparisonResult) -> dict[str, Any]:
        """Total potential profit and the matches above the configured minimum."""
        minimum = self.config.profit.minimum_profit_percentage
        return {
            "total_potential_profit": total_potential_profit(comparison).model_dump(mode="json"),
            "profitable_matches": [
                match.model_dump(mode="json") for match in profitable_matches(comparison, minimum)
            ],
        }

    async def run_category_batch(
        self,
        products: Sequence[ProductRecord],
        target_marketplace: Marketplace,
        batch_size: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Match a list of products against one marketplace, unattended.

        Returns:
            `{"success": True, "data": [...], "processed": n}` or the
            structured failure payload.
        """
        if self.batch_matcher is None:
            return handle_error(RuntimeError("batch matcher not configured"), "run_category_batch")
        try:
            results = await self.batch_matcher.start_processing(
                products, target_marketplace, batch_size=batch_size, on_progress=on_progress
            )
            annotated = [calculate_profit(result, self.config.fee_schedule) for result in results]
            return {
                "success": True,
                "data": [result.model_dump(mode="json") for result in annotated],
                "processed": len(annotated),
            }
        except Exception as e:
            return handle_error(e, "run_category_batch", self.diagnostic)

    def cancel_batch(self) -> None:
        if self.batch_matcher is not None:
            self.batch_matcher.cancel()
