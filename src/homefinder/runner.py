"""Command line runner for searches and scheduled alert checks.

Run via: python -m homefinder.runner
Or schedule the alert check with cron/Task Scheduler.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .alerts.checker import AlertChecker
from .alerts.clients import ClientStore
from .alerts.notifier import AlertNotifier
from .alerts.snapshot import InMemorySnapshotStore, SnapshotStore
from .collectors.base import ConfigError
from .collectors.collector import DataCollector
from .config import Settings
from .models.listing import AggregationResult, SearchQuery
from .storage.cache import SnapshotCache

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )
    # httpx logs full request URLs, which include the proxy API key
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def print_results(result: AggregationResult) -> None:
    """Print an aggregation result as Rich tables."""
    sources = Table(show_header=True, header_style="bold", title="Sources")
    sources.add_column("Source")
    sources.add_column("Status")
    sources.add_column("Listings", justify="right")
    sources.add_column("Error", max_width=50)

    for outcome in result.outcomes:
        status = "[green]ok[/green]" if outcome.success else "[red]failed[/red]"
        sources.add_row(outcome.source, status, str(outcome.count), outcome.error or "")

    console.print(sources)

    if not result.listings:
        console.print("[yellow]No listings found.[/yellow]")
        return

    listings = Table(show_header=True, header_style="bold", title=f"{result.total_found} listings")
    listings.add_column("Source")
    listings.add_column("Title", max_width=40)
    listings.add_column("Location", max_width=30)
    listings.add_column("Beds", justify="right")
    listings.add_column("Price", justify="right")

    for listing in result.listings:
        listings.add_row(
            listing.source,
            listing.title[:40],
            listing.location[:30],
            str(listing.bedrooms) if listing.bedrooms is not None else "-",
            f"£{listing.price:,}" if listing.price else "N/A",
        )

    console.print(listings)


async def run_search(query: SearchQuery, settings: Settings, as_json: bool = False) -> int:
    """Run one aggregation round and print it.

    Returns:
        Number of listings found
    """
    async with DataCollector(settings=settings) as collector:
        result = await collector.search_all(query)

    if as_json:
        print(json.dumps(result.to_response(), indent=2))
    else:
        print_results(result)

    return result.total_found


async def run_alert_check(
    settings: Settings,
    clients_file: Optional[Path] = None,
    snapshot_db: Optional[Path] = None,
    send_email: bool = True,
    as_json: bool = False,
) -> int:
    """Check every saved client and send notifications.

    Args:
        settings: Application settings
        clients_file: Subscriber directory (defaults to settings.clients_file)
        snapshot_db: SQLite snapshot file (defaults to settings.snapshot_db,
            in-memory if neither is set)
        send_email: Send email notifications if configured
        as_json: Print the alert response as JSON instead of tables

    Returns:
        Total number of new listings found
    """
    store = ClientStore(clients_file or settings.clients_file)
    clients = store.list_all()

    if not clients:
        console.print("[yellow]No saved clients found.[/yellow]")
        console.print(f"Add clients to {store.path}.")
        return 0

    db_path = snapshot_db or settings.snapshot_db
    snapshots: SnapshotStore = SnapshotCache(db_path) if db_path else InMemorySnapshotStore()
    notifier = AlertNotifier(settings=settings)
    emails = {client.id: client.email for client in clients}

    if not as_json:
        console.print(f"[bold]Checking {len(clients)} clients...[/bold]")
        console.print()

    async with DataCollector(settings=settings) as collector:
        checker = AlertChecker(collector, store=snapshots)
        response = await checker.check_all(clients)

    if as_json:
        print(json.dumps(response.to_response(), indent=2))

    for alert in response.alerts:
        if not as_json:
            notifier.notify_console(alert)
        if send_email and notifier.notify_email(alert, emails.get(alert.client_id)):
            console.print(f"[dim]Email sent to {emails.get(alert.client_id)}[/dim]")

    if not as_json:
        console.print()
        console.print(
            f"[bold]Check complete. {response.total_alerts} alerts, "
            f"{response.total_new_listings} new listings[/bold]"
        )

    return response.total_new_listings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="homefinder",
        description="HomeFinder listing search and alert runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m homefinder.runner search --location London --max-price 2000
  python -m homefinder.runner alerts --snapshot-db ~/.homefinder/snapshots.db
  python -m homefinder.runner alerts --no-email -v

Schedule with cron (check every hour):
  0 * * * * cd /path/to/project && python -m homefinder.runner alerts
        """,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search every source once")
    search.add_argument("--location", required=True, help="Area to search")
    search.add_argument("--type", dest="property_type", help="Property type (house, flat, ...)")
    search.add_argument("--min-price", type=int, help="Minimum price (monthly for rentals)")
    search.add_argument("--max-price", type=int, help="Maximum price (monthly for rentals)")
    search.add_argument("--bedrooms", type=int, help="Minimum bedrooms")
    search.add_argument("--bathrooms", type=int, help="Minimum bathrooms")
    search.add_argument("--json", action="store_true", help="Print the JSON response")

    alerts = subparsers.add_parser("alerts", help="Check saved clients for new listings")
    alerts.add_argument("--clients", type=Path, help="Clients JSON file")
    alerts.add_argument("--snapshot-db", type=Path, help="SQLite file for snapshots")
    alerts.add_argument("--no-email", action="store_true", help="Skip email notifications")
    alerts.add_argument("--json", action="store_true", help="Print the JSON response")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)
    settings = Settings()

    try:
        if args.command == "search":
            query = SearchQuery(
                location=args.location,
                property_type=args.property_type,
                min_price=args.min_price,
                max_price=args.max_price,
                bedrooms=args.bedrooms,
                bathrooms=args.bathrooms,
            )
            asyncio.run(run_search(query, settings, as_json=args.json))
        else:
            asyncio.run(run_alert_check(
                settings,
                clients_file=args.clients,
                snapshot_db=args.snapshot_db,
                send_email=not args.no_email,
                as_json=args.json,
            ))
    except ConfigError as e:
        logger.error(f"Configuration error: {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)

    sys.exit(0)


if __name__ == "__main__":
    main()
