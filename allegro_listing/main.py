"""Entry point for the Allegro catalog listing tools."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from .allegro_client import AllegroClient
from .auth import TokenManager
from .catalog import CatalogSearch
from .config_loader import DEFAULT_CONFIG_PATH, ListingSettings, load_settings
from .ean_scanner import EanScanner
from .errors import ListingError
from .offers import OfferService
from .sheets_client import GoogleSheetsClient, LocalSheetsClient
from .storage import ListingStore, build_store
from .validators import is_valid_ean


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def build_clients(
    settings: ListingSettings, local_dir: Optional[str] = None
) -> Tuple[ListingStore, TokenManager, AllegroClient]:
    store = build_store(settings, local_dir)
    tokens = TokenManager(store, settings)
    return store, tokens, AllegroClient(tokens, settings)


def cmd_token(settings: ListingSettings, args: argparse.Namespace) -> int:
    _, tokens, _ = build_clients(settings, args.local_store)
    issued = tokens.ensure_token()
    record = tokens.store.latest_token()
    expires = record.expires_at.isoformat() if record and record.expires_at else "unknown"
    print(f"[TOKEN] record={issued.record_id} expires_at={expires}")
    return 0


def _has_sheets(settings: ListingSettings) -> bool:
    return bool(settings.service_account_file and settings.spreadsheet_url)


def _since_timestamp(value: str) -> datetime:
    try:
        since = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO timestamp: {value!r}")
    if since.tzinfo is None:
        since = since.astimezone()
    return since


def cmd_search(settings: ListingSettings, args: argparse.Namespace) -> int:
    ean = args.ean.strip()
    if not is_valid_ean(ean):
        print(f"[ERROR] Invalid EAN {ean!r}: only digits, length 8/12/13/14.")
        return 2
    if args.sheets and not _has_sheets(settings):
        print("[ERROR] Set GOOGLE_SERVICE_ACCOUNT_JSON and SHEETS_SPREADSHEET_ID to use --sheets.")
        return 2
    store, _, client = build_clients(settings, args.local_store)
    catalog = CatalogSearch(client, store, settings)
    top = catalog.find_top_candidates(ean, limit=args.limit)
    print(json.dumps({"ean": ean, "top3": [item.to_summary() for item in top]}, ensure_ascii=False, indent=2))
    if top:
        if args.csv:
            LocalSheetsClient(args.csv).append_ranked_candidates(ean, top)
        if args.sheets:
            GoogleSheetsClient(settings.service_account_file, settings.spreadsheet_url).append_ranked_candidates(
                ean, top
            )
    return 0


def cmd_scan(settings: ListingSettings, args: argparse.Namespace) -> int:
    scanner = EanScanner(settings.gemini_api_key, settings.gemini_model)
    print(scanner.scan_file(args.image))
    return 0


def cmd_list(settings: ListingSettings, args: argparse.Namespace) -> int:
    store, _, client = build_clients(settings, args.local_store)
    result = OfferService(client, store, settings).create_offer_from_candidate(
        args.warehouse_item_id, args.product_id
    )
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def cmd_export(settings: ListingSettings, args: argparse.Namespace) -> int:
    store = build_store(settings, args.local_store)
    attempts = store.listing_attempts()
    if args.since:
        attempts = [a for a in attempts if a.created_at >= args.since]

    if args.csv:
        sheets = LocalSheetsClient(args.csv)
    else:
        if not _has_sheets(settings):
            print("[ERROR] Set GOOGLE_SERVICE_ACCOUNT_JSON and SHEETS_SPREADSHEET_ID, or use --csv DIR.")
            return 2
        sheets = GoogleSheetsClient(settings.service_account_file, settings.spreadsheet_url)
    count = sheets.append_listing_attempts(attempts)
    print(f"[EXPORT] {count} listing attempts written")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Allegro catalog search, ranking and offer creation for warehouse items."
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to listing.yaml")
    parser.add_argument(
        "--local-store",
        metavar="DIR",
        help="Keep tokens, cache and listing log in JSON files under DIR instead of Supabase.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    token = sub.add_parser("token", help="Make sure a valid Allegro token is stored.")
    token.set_defaults(func=cmd_token)

    search = sub.add_parser("search", help="Show the best catalog products for an EAN.")
    search.add_argument("ean")
    search.add_argument("--limit", type=int, default=None, help="How many candidates to show (default 3).")
    search.add_argument("--csv", metavar="DIR", help="Also append the candidates to a CSV in DIR.")
    search.add_argument("--sheets", action="store_true", help="Also append the candidates to Google Sheets.")
    search.set_defaults(func=cmd_search)

    scan = sub.add_parser("scan", help="Read an EAN from a product photo.")
    scan.add_argument("image")
    scan.set_defaults(func=cmd_scan)

    listing = sub.add_parser("list", help="Create an Allegro offer for a warehouse item.")
    listing.add_argument("warehouse_item_id")
    listing.add_argument("product_id")
    listing.set_defaults(func=cmd_list)

    export = sub.add_parser("export", help="Export the listing log to Google Sheets.")
    export.add_argument("--csv", metavar="DIR", help="Write CSV files to DIR instead of Google Sheets.")
    export.add_argument("--since", type=_since_timestamp, help="Only attempts created at or after this ISO timestamp.")
    export.set_defaults(func=cmd_export)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    configure_logging(settings.log_level)

    try:
        return args.func(settings, args)
    except ListingError as e:
        print(f"[ERROR] ({e.http_status}) {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
