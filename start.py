"""
coinfeed - Entry Point
Fetches listings, asset details, price history and news from the configured upstreams.
"""
import argparse
import asyncio
import json
import sys
from typing import Any

from rich.console import Console

from coinfeed.config.loader import config
from coinfeed.logger.logger import Logger
from coinfeed.managers.market_data_manager import MarketDataService
from coinfeed.platforms.errors import MarketDataError, user_message


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="coinfeed - multi-source crypto market data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python start.py listing                 # First 50 assets
  python start.py listing -p 2 -n 100     # Second page of 100
  python start.py detail bitcoin          # One asset with its extended block
  python start.py history ethereum -d 30  # 30 days of prices
  python start.py news -l 10              # Ten newest articles from the merged feed
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    listing = subparsers.add_parser("listing", help="Fetch one page of assets")
    listing.add_argument("-p", "--page", type=int, default=1, help="Page number (default: 1)")
    listing.add_argument("-n", "--per-page", type=int, default=50, help="Assets per page (default: 50)")

    detail = subparsers.add_parser("detail", help="Fetch one asset with extended data")
    detail.add_argument("asset_id", help="Canonical asset id, e.g. bitcoin")
    detail.add_argument("--wait-refinement", action="store_true",
                        help="Wait for the background history refinement and print the refined record")

    history = subparsers.add_parser("history", help="Fetch price history of one asset")
    history.add_argument("asset_id", help="Canonical asset id, e.g. bitcoin")
    history.add_argument("-d", "--days", type=int, default=None,
                         help="Span in days. Default: from config")

    news = subparsers.add_parser("news", help="Fetch the merged news feed")
    news.add_argument("-l", "--limit", type=int, default=None, help="Print only the newest N articles")
    return parser.parse_args(argv)


async def run_command(service: MarketDataService, args) -> Any:
    if args.command == "listing":
        result = await service.fetch_listing(args.page, args.per_page)
        return {
            "provider": result.provider,
            "from_cache": result.from_cache,
            "assets": [asset.model_dump() for asset in result.assets],
        }
    if args.command == "detail":
        asset = await service.fetch_detail(args.asset_id)
        if args.wait_refinement:
            await service.drain()
            asset = await service.fetch_detail(args.asset_id)
        return asset.model_dump()
    if args.command == "history":
        points = await service.fetch_history(args.asset_id, args.days)
        return [point.model_dump() for point in points]
    articles = await service.fetch_news()
    if args.limit is not None:
        articles = articles[:max(args.limit, 0)]
    return [article.model_dump() for article in articles]


async def main_async(argv=None) -> int:
    """Async entry point; returns the process exit code."""
    args = parse_args(argv)
    logger = Logger(logger_name="coinfeed", logger_debug=config.LOGGER_DEBUG)
    console = Console()

    async with MarketDataService(logger, config) as service:
        try:
            payload = await run_command(service, args)
        except MarketDataError as e:
            logger.error(f"{args.command} failed: {e}")
            console.print(f"[bold red]{user_message(e)}[/bold red]")
            return 1

    console.print_json(json.dumps(payload, default=str))
    return 0


def main() -> None:
    """Main entry point."""
    if sys.platform == 'win32':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    try:
        sys.exit(asyncio.run(main_async()))
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
