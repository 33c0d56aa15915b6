#!/usr/bin/env python3
"""
Dev helper: poke a running DealDine backend from the command line.

Subcommands
-----------
scan     POST /api/scan-deals for a user and print the stored deals
deals    GET  /api/deals/{email} with optional filters
notify   POST /api/notifications/check (runs one expiry sweep)

Usage
-----
python scripts/trigger_scan.py scan --email diner@example.com
python scripts/trigger_scan.py deals --email diner@example.com --expiring-soon
python scripts/trigger_scan.py deals --email diner@example.com --restaurant KFC --min-savings 2
python scripts/trigger_scan.py notify --url http://localhost:3001

Environment / .env
------------------
DEALDINE_API_URL   Backend base URL (default: http://localhost:8000).
                   Overridden by --url.

Requires the dev extra (pip install -e ".[dev]") for httpx.
"""

import argparse
import json
import os
import sys
import textwrap
from pathlib import Path

import httpx
from dotenv import load_dotenv


DEFAULT_URL = "http://localhost:8000"

# Scans call Gmail and Claude once per email; allow for a full mailbox page.
SCAN_TIMEOUT_SECONDS = 300.0


def _print_response(response: httpx.Response) -> int:
    ok = response.status_code < 400
    print(f"\n[{'OK' if ok else 'FAIL'}] HTTP {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    return 0 if ok else 1


def _summarize_deals(deals: list) -> None:
    if not deals:
        print("\nNo deals.")
        return
    print()
    for deal in deals:
        expires = deal.get("expiry_date") or "no expiry"
        print(f"  {deal['restaurant']:<20} save ${deal.get('savings') or 0:>6.2f}  {expires}  {deal['deal_description']}")


def cmd_scan(client: httpx.Client, args) -> int:
    print(f"Scanning promotions for {args.email} ...")
    response = client.post(
        "/api/scan-deals",
        json={"userEmail": args.email},
        timeout=SCAN_TIMEOUT_SECONDS,
    )
    if response.status_code == 200 and not args.raw:
        body = response.json()
        print(f"\n[OK] {body['dealsProcessed']} new deals stored")
        _summarize_deals(body.get("deals", []))
        return 0
    return _print_response(response)


def cmd_deals(client: httpx.Client, args) -> int:
    params = {}
    if args.restaurant:
        params["restaurant"] = args.restaurant
    if args.min_savings is not None:
        params["minSavings"] = args.min_savings
    if args.expiring_soon:
        params["expiringSoon"] = "true"

    response = client.get(f"/api/deals/{args.email}", params=params)
    if response.status_code == 200 and not args.raw:
        _summarize_deals(response.json().get("deals", []))
        return 0
    return _print_response(response)


def cmd_notify(client: httpx.Client, args) -> int:
    return _print_response(client.post("/api/notifications/check"))


def main() -> int:
    # Locate project root (scripts/ lives one level below the root)
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    parser = argparse.ArgumentParser(
        prog="trigger_scan.py",
        description="Trigger DealDine scans and notification sweeps against a running backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/trigger_scan.py scan --email diner@example.com
              python scripts/trigger_scan.py deals --email diner@example.com --expiring-soon
              python scripts/trigger_scan.py notify
        """),
    )
    parser.add_argument(
        "--url",
        default=os.getenv("DEALDINE_API_URL", DEFAULT_URL),
        help=f"Backend base URL (default: {DEFAULT_URL})",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the JSON response instead of a summary.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a user's Gmail promotions for deals")
    scan.add_argument("--email", required=True, help="Connected user's email address")
    scan.set_defaults(func=cmd_scan)

    deals = sub.add_parser("deals", help="List a user's active deals")
    deals.add_argument("--email", required=True, help="User's email address")
    deals.add_argument("--restaurant", default=None, help="Only deals from this restaurant")
    deals.add_argument("--min-savings", type=float, default=None, help="Minimum savings in dollars")
    deals.add_argument("--expiring-soon", action="store_true", help="Only deals expiring within 3 days")
    deals.set_defaults(func=cmd_deals)

    notify = sub.add_parser("notify", help="Run one expiry notification sweep")
    notify.set_defaults(func=cmd_notify)

    args = parser.parse_args()
    print(f"Backend: {args.url}")

    try:
        with httpx.Client(base_url=args.url.rstrip("/"), timeout=30.0) as client:
            return args.func(client, args)
    except httpx.HTTPError as e:
        print(f"\nERROR: Request failed: {e}", file=sys.stderr)
        print(f"Is the backend running at {args.url}?", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
