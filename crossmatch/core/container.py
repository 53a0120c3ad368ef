"""Dependency-injection container.

Wires the engine's components together around one `Config` instance. Every
component receives its settings through its constructor; nothing reads
module-level state.
"""

from dependency_injector import containers, providers

from ..config import Config
from ..extractors import create_category_adapters, create_default_registry
from ..matching.batch_matcher import CategoryBatchMatcher
from ..matching.category_processor import CategoryPageProcessor
from ..matching.match_finder import MatchFinder
from ..orchestrator import ComparisonOrchestrator
from ..services.browser_pool import PlaywrightContextFactory
from ..services.cache_service import CacheService
from ..services.marketplace_api import MarketplaceApiClient
from ..services.storage import create_store


class Container(containers.DeclarativeContainer):
    """DI container for the engine.

    Override `config` to point at another configuration directory, or `store`
    to swap the durable tier.
    """

    config = providers.Singleton(Config)
    diagnostic = providers.Object(False)

    # Extraction
    adapter_registry = providers.Singleton(create_default_registry)
    category_adapters = providers.Singleton(create_category_adapters)

    # Services
    store = providers.Singleton(create_store, settings=config.provided.cache)
    cache_service = providers.Singleton(CacheService, store=store, settings=config.provided.cache)
    api_client = providers.Singleton(MarketplaceApiClient, settings=config.provided.api)
    context_factory = providers.Singleton(PlaywrightContextFactory, settings=config.provided.browser)

    # Matching
    match_finder = providers.Singleton(
        MatchFinder, registry=adapter_registry, settings=config.provided.match_finder
    )
    batch_matcher = providers.Singleton(
        CategoryBatchMatcher,
        context_factory=context_factory,
        registry=adapter_registry,
        store=store,
        settings=config.provided.batch,
    )
    category_processor = providers.Singleton(CategoryPageProcessor, adapters=category_adapters)

    # Entry points
    orchestrator = providers.Singleton(
        ComparisonOrchestrator,
        config=config,
        cache_service=cache_service,
        api_client=api_client,
        batch_matcher=batch_matcher,
        diagnostic=diagnostic,
    )
