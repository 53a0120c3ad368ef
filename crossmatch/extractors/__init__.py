"""Marketplace extraction adapters.

Contains marketplace-specific readers for search result listings, product
detail pages and category pages. Every adapter works on a parsed
`PageSnapshot` and never on a live browser page.

Architecture:
- ExtractionAdapter: Unified interface for all marketplace adapters
- AdapterRegistry: Picks the adapter that understands a page
- AmazonAdapter, WalmartAdapter, TargetAdapter, HomeDepotAdapter
- AmazonCategoryAdapter, WalmartCategoryAdapter: category page variants
"""

from .amazon import AmazonAdapter
from .base import AdapterRegistry, BaseAdapter, ExtractionAdapter
from .category import AmazonCategoryAdapter, CategoryPageAdapter, WalmartCategoryAdapter
from .homedepot import HomeDepotAdapter
from .page import PageSnapshot
from .target import TargetAdapter
from .walmart import WalmartAdapter


def create_default_registry() -> AdapterRegistry:
    """Registry with every search page adapter registered."""
    registry = AdapterRegistry()
    for adapter in (AmazonAdapter(), WalmartAdapter(), TargetAdapter(), HomeDepotAdapter()):
        registry.register(adapter)
    return registry


def create_category_adapters() -> list[CategoryPageAdapter]:
    return [AmazonCategoryAdapter(), WalmartCategoryAdapter()]


__all__ = [
    "AdapterRegistry",
    "AmazonAdapter",
    "AmazonCategoryAdapter",
    "BaseAdapter",
    "CategoryPageAdapter",
    "ExtractionAdapter",
    "HomeDepotAdapter",
    "PageSnapshot",
    "TargetAdapter",
    "WalmartAdapter",
    "WalmartCategoryAdapter",
    "create_category_adapters",
    "create_default_registry",
]
