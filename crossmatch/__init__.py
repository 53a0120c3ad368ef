"""Cross-marketplace product resolution engine.

Finds, on competing marketplaces, listings that represent the same physical
product as a source listing and estimates the profit of reselling across
marketplaces.

The package follows a modular architecture with separate concerns for:
- Per-marketplace extraction adapters over parsed page snapshots
- Similarity scoring, single-page match finding and unattended batches
- Two-tier result caching and fee-aware profit calculation
- Orchestration entry points talking to the remote product-data API
"""
