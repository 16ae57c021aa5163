"""Main entry point for Surfaced."""

import argparse
import asyncio
import json
import sys

from loguru import logger

from .analyzers.website import analyze_website
from .orchestrator.coordinator import JobCoordinator
from .orchestrator.scheduler import JobScheduler
from .utils.config import get_config
from .utils.logger import setup_logging


def _print_json(data):
    print(json.dumps(data, indent=2, default=str))


async def run_scheduler():
    """Run the job scheduler."""
    config = get_config()
    setup_logging()

    logger.info("=" * 80)
    logger.info("Surfaced - Starting")
    logger.info("=" * 80)

    # Initialize coordinator and scheduler
    coordinator = JobCoordinator(config)
    scheduler = JobScheduler(coordinator, config)

    # Configure and start scheduler
    scheduler.configure_jobs()
    scheduler.start()

    logger.info("Scheduler started. Press Ctrl+C to stop.")

    try:
        # Keep running
        while True:
            await asyncio.sleep(1)
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down...")
        scheduler.stop()


async def run_website_analysis(domain: str):
    """Analyze a public website and print the report."""
    analyzer = get_config().analyzer
    setup_logging()

    result = await analyze_website(
        domain,
        user_agent=analyzer.user_agent,
        page_timeout=analyzer.page_timeout,
        file_timeout=analyzer.file_timeout,
        slow_load_ms=analyzer.slow_load_ms,
    )
    _print_json(result)


async def run_audit(shop_domain: str):
    """Audit a shop's products manually."""
    setup_logging()
    coordinator = JobCoordinator(get_config())

    logger.info(f"Running audit for {shop_domain}")
    result = await coordinator.auditor.run_audit(shop_domain)
    _print_json(result.to_dict())


async def run_visibility(shop_domain: str, platforms=None):
    """Run a visibility check manually."""
    setup_logging()
    coordinator = JobCoordinator(get_config())

    logger.info(f"Running visibility check for {shop_domain}")
    _print_json(await coordinator.visibility.run_visibility_check(shop_domain, platforms=platforms))


async def run_competitors(shop_domain: str):
    """Compare a shop against its tracked competitors."""
    setup_logging()
    coordinator = JobCoordinator(get_config())

    logger.info(f"Running competitor analysis for {shop_domain}")
    _print_json(await coordinator.competitors.run_competitor_analysis(shop_domain))


async def run_optimize(shop_domain: str, product_id: str, kind: str):
    """Print AI content suggestions for one product."""
    setup_logging()
    coordinator = JobCoordinator(get_config())

    logger.info(f"Generating {kind} suggestions for product {product_id} of {shop_domain}")
    _print_json(await coordinator.optimize_product(shop_domain, product_id, kind))


async def check_alerts():
    """Check and send alerts manually."""
    setup_logging()

    logger.info("Checking for alerts")

    coordinator = JobCoordinator(get_config())
    alerts = await coordinator.check_alerts()

    logger.info(f"Alert check completed: {len(alerts)} alerts")


async def run_generate(kind: str, shop_domain: str):
    """Print a generated crawler file or schema set for a shop."""
    setup_logging()
    coordinator = JobCoordinator(get_config())

    if kind == "robots":
        print(coordinator.generate_robots(shop_domain))
    elif kind == "llms":
        print(await coordinator.generate_llms(shop_domain))
    elif kind == "sitemap":
        print((await coordinator.generate_sitemap(shop_domain))["sitemap"])
    elif kind == "json-ld":
        _print_json(await coordinator.generate_json_ld(shop_domain))


def run_api():
    """Run the FastAPI server."""
    import uvicorn

    from .api.main import app

    config = get_config()
    setup_logging()

    logger.info("=" * 80)
    logger.info("Surfaced API - Starting")
    logger.info("=" * 80)

    uvicorn.run(
        app,
        host=config.api.host,
        port=config.api.port,
        log_level="info",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Surfaced - AI visibility for Shopify stores")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Scheduler command
    subparsers.add_parser("scheduler", help="Run the job scheduler")

    # API command
    subparsers.add_parser("api", help="Run the API server")

    # Website analysis
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a website's AI readiness")
    analyze_parser.add_argument("domain", help="Domain or URL to analyze")

    # Shop commands
    audit_parser = subparsers.add_parser("audit", help="Audit a shop's products")
    audit_parser.add_argument("shop", help="Shop domain (example.myshopify.com)")

    visibility_parser = subparsers.add_parser("visibility", help="Run an AI visibility check")
    visibility_parser.add_argument("shop", help="Shop domain")
    visibility_parser.add_argument(
        "--platform",
        action="append",
        choices=["chatgpt", "perplexity", "gemini"],
        help="Platform to query (repeatable)",
    )

    competitors_parser = subparsers.add_parser("competitors", help="Compare a shop with its competitors")
    competitors_parser.add_argument("shop", help="Shop domain")

    optimize_parser = subparsers.add_parser("optimize", help="Draft AI content suggestions for a product")
    optimize_parser.add_argument("shop", help="Shop domain")
    optimize_parser.add_argument("product", help="Product id or GID")
    optimize_parser.add_argument(
        "--kind", choices=["content", "alt_text", "meta_tags"], default="content", help="What to suggest"
    )

    # Alerts command
    subparsers.add_parser("alerts", help="Check and send alerts")

    # Generators
    generate_parser = subparsers.add_parser("generate", help="Generate a crawler file for a shop")
    generate_parser.add_argument("kind", choices=["robots", "llms", "sitemap", "json-ld"], help="What to generate")
    generate_parser.add_argument("shop", help="Shop domain")

    return parser


def main():
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "scheduler":
            asyncio.run(run_scheduler())
        elif args.command == "api":
            run_api()
        elif args.command == "analyze":
            asyncio.run(run_website_analysis(args.domain))
        elif args.command == "audit":
            asyncio.run(run_audit(args.shop))
        elif args.command == "visibility":
            asyncio.run(run_visibility(args.shop, args.platform))
        elif args.command == "competitors":
            asyncio.run(run_competitors(args.shop))
        elif args.command == "optimize":
            asyncio.run(run_optimize(args.shop, args.product, args.kind))
        elif args.command == "alerts":
            asyncio.run(check_alerts())
        elif args.command == "generate":
            asyncio.run(run_generate(args.kind, args.shop))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
