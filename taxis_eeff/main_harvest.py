#!/usr/bin/env python3
"""Harvest orchestrator CLI - list, cache, extract and write Results.csv.

This module wires the pipeline together for a full run:
1. Load the entity registry and extraction rules from ``config/``
2. Open the portal session and the results CSV
3. For each entity: list statements, fetch or reuse cached HTML, extract, write
4. Print a per-entity report from the CSV

Usage (from project root):
    python -m taxis_eeff.main_harvest
    python -m taxis_eeff.main_harvest --only 03014215 02686473
    python -m taxis_eeff.main_harvest --endpoint statement --delay 1.0
    python -m taxis_eeff.main_harvest --append --quiet

CLI Flags:
    --entities          Registry JSON (default: config/entities.json)
    --only              Restrict the run to these PIBs
    --output, -o        Results CSV (default: data/output/Results.csv)
    --cache-dir         Statement cache root (default: data/statements)
    --endpoint          Statement endpoint: details (POST) or statement (GET)
    --cache-key         Cache filename key: year or statement_id
    --take              Listing page size
    --delay             Minimum seconds between statement downloads
    --session           Session cookie (default: TAXIS_SESSION_COOKIE)
    --append            Keep existing rows in the output CSV
    --quiet             Suppress report output
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path when running directly
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from taxis_eeff.config import (  # noqa: E402
    CACHE_DIR,
    OUTPUT_DIR,
    TAXIS_SESSION_COOKIE,
    get_config,
    get_harvest_config,
    get_portal_config,
    setup_logging,
)
from taxis_eeff.errors import AuthError, PersistenceError  # noqa: E402
from taxis_eeff.extractor.patterns import load_field_specs  # noqa: E402
from taxis_eeff.harvest import HarvestOrchestrator, HarvestSummary, Throttle  # noqa: E402
from taxis_eeff.registry import load_entities  # noqa: E402
from taxis_eeff.scraper.session import portal_session  # noqa: E402
from taxis_eeff.scraper.statement_cache import CACHE_KEYS, StatementCache, resolve_endpoint  # noqa: E402
from taxis_eeff.scraper.statement_lister import StatementLister  # noqa: E402
from taxis_eeff.writer.csv_sink import CsvSink  # noqa: E402
from taxis_eeff.writer.report import print_harvest_report  # noqa: E402

logger = setup_logging(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser (defaults come from ``config/config.json``)."""
    parser = argparse.ArgumentParser(
        description="Harvest financial statements from the Taxis portal into a CSV.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m taxis_eeff.main_harvest                              # All registered entities
  python -m taxis_eeff.main_harvest --only 03014215              # One entity
  python -m taxis_eeff.main_harvest --endpoint statement         # GET GetStatement?id=
  python -m taxis_eeff.main_harvest --append --quiet             # Resume into existing CSV
        """,
    )
    parser.add_argument("--entities", type=Path, default=None, help="Registry JSON file")
    parser.add_argument("--only", nargs="+", default=None, metavar="PIB", help="Only harvest these PIBs")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Results CSV path")
    parser.add_argument("--cache-dir", type=Path, default=CACHE_DIR, help="Statement cache directory")
    parser.add_argument("--endpoint", default=None, help="Statement endpoint name (details|statement)")
    parser.add_argument("--cache-key", choices=CACHE_KEYS, default=None, help="Cache filename key")
    parser.add_argument("--take", type=int, default=None, help="Listing page size")
    parser.add_argument("--delay", type=float, default=None, help="Seconds between statement downloads")
    parser.add_argument("--session", default=None, help="Session cookie, e.g. taxisSession=...")
    parser.add_argument("--append", action="store_true", help="Append to an existing results CSV")
    parser.add_argument("--quiet", action="store_true", help="Don't print report")
    return parser


def run_harvest(args: argparse.Namespace, session_cookie: str) -> HarvestSummary:
    """Run the pipeline for parsed CLI arguments.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed flags from :func:`build_parser`.
    session_cookie : str
        Portal ``Cookie`` header value.

    Returns
    -------
    HarvestSummary
        Run summary.

    Raises
    ------
    AuthError
        If the portal rejects the session.
    PersistenceError
        If the results CSV cannot be opened.
    """
    config = get_config()
    portal = get_portal_config(config)
    harvest = get_harvest_config(config)

    entities = load_entities(args.entities)
    if args.only:
        wanted = set(args.only)
        entities = [e for e in entities if e.id in wanted]
        logger.info("Restricted to %d of the registered entities", len(entities))

    endpoint = resolve_endpoint(args.endpoint or portal["statement_endpoint"], portal["statement_endpoints"])
    output_path = args.output or OUTPUT_DIR / harvest["output_filename"]
    take = args.take if args.take is not None else int(portal["listing_take"])
    delay = args.delay if args.delay is not None else float(harvest["throttle_seconds"])

    field_specs = load_field_specs()

    with (
        portal_session(session_cookie, base_url=portal["base_url"], timeout=float(portal["timeout_seconds"])) as client,
        CsvSink.open(output_path, append=args.append) as sink,
    ):
        orchestrator = HarvestOrchestrator(
            lister=StatementLister(client, listing_path=portal["listing_path"]),
            cache=StatementCache(
                client,
                args.cache_dir,
                endpoint=endpoint,
                cache_key=args.cache_key or harvest["cache_key"],
            ),
            sink=sink,
            field_specs=field_specs,
            throttle=Throttle(delay),
            take=take,
        )
        summary = orchestrator.run(entities)

    if not args.quiet:
        print_harvest_report(output_path)

    return summary


def main() -> int:
    """Parse CLI flags and run the harvest.

    Returns
    -------
    int
        ``0`` when the run completed (skips included), ``1`` when aborted,
        ``2`` when no session cookie is available.
    """
    args = build_parser().parse_args()

    session_cookie = args.session or TAXIS_SESSION_COOKIE
    if not session_cookie:
        logger.error("No session cookie: set TAXIS_SESSION_COOKIE or pass --session")
        return 2

    try:
        run_harvest(args, session_cookie)
    except AuthError as err:
        logger.error("Aborting: %s", err)
        return 1
    except PersistenceError as err:
        logger.error("Aborting: %s", err)
        return 1

    logger.info("Scraping process completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
