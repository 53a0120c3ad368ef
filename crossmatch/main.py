"""Command line entry point.

    python -m crossmatch.main compare product.json [--marketplace walmart]
    python -m crossmatch.main batch products.json --target walmart
    python -m crossmatch.main batch --category-url URL --target walmart
    python -m crossmatch.main scan page.html --url URL [--source product.json]

Products are read from JSON files, results are printed as JSON. Logging goes
to stderr at the level given by the LOG_LEVEL environment variable.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from .core.container import Container
from .errors import handle_error
from .extractors.page import PageSnapshot
from .models import ComparisonResult, Marketplace, ProductRecord

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

MARKETPLACES = [marketplace.value for marketplace in Marketplace]


def load_product(path: str) -> ProductRecord:
    return ProductRecord.model_validate_json(Path(path).read_text())


def load_products(path: str) -> list[ProductRecord]:
    return TypeAdapter(list[ProductRecord]).validate_json(Path(path).read_text())


def print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crossmatch", description="Cross-marketplace product matching")
    parser.add_argument("--diagnostic", action="store_true", help="include tracebacks in errors")
    subparsers = parser.add_subparsers(dest="command", required=True)

    compare = subparsers.add_parser("compare", help="compare one product through the remote API")
    compare.add_argument("product", help="JSON file with the source product")
    compare.add_argument("--marketplace", choices=MARKETPLACES, help="only search this marketplace")

    batch = subparsers.add_parser("batch", help="match many products in a headless browser")
    batch.add_argument("products", nargs="?", help="JSON file with a list of source products")
    batch.add_argument("--category-url", help="read source products from this category page")
    batch.add_argument("--target", choices=MARKETPLACES, required=True)
    batch.add_argument("--batch-size", type=int)
    batch.add_argument("--max-products", type=int, default=20)
    batch.add_argument("--order", choices=["price_desc", "price_asc", "position"], default="price_desc")

    scan = subparsers.add_parser("scan", help="list or match the candidates of a saved search page")
    scan.add_argument("html", help="saved HTML of a search result page")
    scan.add_argument("--url", required=True, help="address the page was saved from")
    scan.add_argument("--source", help="JSON file with a source product to match")

    return parser


async def run_compare(container: Container, args: argparse.Namespace) -> dict[str, Any]:
    orchestrator = container.orchestrator()
    selected = Marketplace(args.marketplace) if args.marketplace else None
    result = await orchestrator.compare_product(load_product(args.product), selected)
    if result["success"] and result["data"].get("matched_products"):
        comparison = ComparisonResult.model_validate(result["data"])
        result["summary"] = orchestrator.summarize(comparison)
    return result


async def run_batch(container: Container, args: argparse.Namespace) -> dict[str, Any]:
    target = Marketplace(args.target)
    if args.category_url:
        factory = container.context_factory()
        settings = container.config().batch
        async with factory.open(args.category_url, settings.load_timeout) as context:
            category = await container.category_processor().process_page(
                context, max_products=args.max_products, priority_order=args.order
            )
        products = category.products
        logger.info(f"Collected {len(products)} products from '{category.category_name}'")
    elif args.products:
        products = load_products(args.products)
    else:
        raise ValueError("either a products file or --category-url is required")

    def report(percentage: float) -> None:
        logger.info(f"Batch progress: {percentage:.0f}%")

    return await container.orchestrator().run_category_batch(
        products, target, batch_size=args.batch_size, on_progress=report
    )


def run_scan(container: Container, args: argparse.Namespace) -> dict[str, Any]:
    page = PageSnapshot.from_html(args.url, Path(args.html).read_text())
    finder = container.match_finder()
    if args.source:
        result = finder.find_matches(page, load_product(args.source))
        return result.model_dump(mode="json")
    candidates = finder.scan_page(page)
    return {"success": True, "data": [candidate.model_dump(mode="json") for candidate in candidates]}


async def run(args: argparse.Namespace) -> dict[str, Any]:
    container = Container()
    container.diagnostic.override(args.diagnostic)
    try:
        if args.command == "compare":
            return await run_compare(container, args)
        if args.command == "batch":
            return await run_batch(container, args)
        return run_scan(container, args)
    except Exception as e:
        return handle_error(e, args.command, args.diagnostic)
    finally:
        await container.api_client().close()
        if args.command == "batch":
            await container.context_factory().shutdown()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    result = asyncio.run(run(args))
    print_json(result)
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
