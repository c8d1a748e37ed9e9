"""Manual live check for a selected price store.

Run from the repository root with:
  PYTHONPATH=src STORE_ID=supabase BASE_URL=https://<project>.supabase.co \
  API_KEY=... ENTITY_ID=42 \
  python scripts/store_live_check.py

Optional environment variables:
  API_URI
  MONTH (YYYY-MM, defaults to the current month)

By default the script only reads. `--rewrite` writes the rows it just read
back with a full delete-then-insert, which exercises the save path without
changing the stored prices.

Debug helpers:
  --log-level DEBUG prints library debug logging.
  --traceback prints full tracebacks on errors.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import traceback

from pycalendarpricing import CalendarManager, Client, MonthKey
from pycalendarpricing.exceptions import ValidationError
from pycalendarpricing.manager import DayCell

_LOGGER = logging.getLogger(__name__)


def _require_value(name: str, value: str | None) -> str:
    if not value:
        print(f"Missing required value: {name}", file=sys.stderr)
        raise SystemExit(2)
    return value


def _mask_key(value: str | None) -> str:
    if not value:
        return "-"
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-4:]}"


def _parse_month(value: str | None) -> MonthKey | None:
    if not value:
        return None
    try:
        return MonthKey.parse(value)
    except ValidationError:
        print(f"Invalid month: {value}", file=sys.stderr)
        raise SystemExit(2) from None


def _format_cell(cell: DayCell) -> str:
    if cell.date is None:
        return ""
    indicators = ", ".join(sorted(cell.indicators)) or "-"
    status = cell.status.value if cell.status is not None else "-"
    return f"{cell.date.iso()} | {cell.price} | {status} | {indicators}"


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live check for a price store.")
    parser.add_argument("--store-id", help="Store id (env STORE_ID).")
    parser.add_argument("--base-url", help="Store base URL (env BASE_URL).")
    parser.add_argument("--api-uri", help="Store API path (env API_URI).")
    parser.add_argument("--entity-id", help="Entity to check (env ENTITY_ID).")
    parser.add_argument("--month", help="Month to display as YYYY-MM (env MONTH).")
    parser.add_argument(
        "--rewrite",
        action="store_true",
        help="Write the loaded rows back with delete-then-insert.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    parser.add_argument("--traceback", action="store_true", help="Print tracebacks.")
    return parser.parse_args()


async def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=args.log_level.upper())
    store_id = _require_value("store_id", args.store_id or os.getenv("STORE_ID"))
    base_url = args.base_url or os.getenv("BASE_URL")
    api_uri = args.api_uri or os.getenv("API_URI")
    api_key = os.getenv("API_KEY")
    entity_id = _require_value("entity_id", args.entity_id or os.getenv("ENTITY_ID"))
    month = _parse_month(args.month or os.getenv("MONTH"))

    _LOGGER.debug(
        "Config: store_id=%s base_url=%s api_uri=%s api_key=%s entity_id=%s",
        store_id,
        base_url,
        api_uri,
        _mask_key(api_key),
        entity_id,
    )

    try:
        async with Client(base_url=base_url, api_uri=api_uri, api_key=api_key) as client:
            store = await client.get_store(store_id)
            records = await store.query(entity_id)
            manager = CalendarManager(entity_id=entity_id, store=store)
            loaded = await manager.start(month)
            cells = manager.cells()
            await manager.aclose()
            if args.rewrite:
                await store.replace_all(entity_id, records)
                print(f"Rewrote {len(records)} rows")
    except Exception as exc:
        print(f"Error: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        if args.traceback:
            traceback.print_exc()
        return 1

    print(f"Store: {store.store_name} ({store.store_id})")
    print(f"Rows: {len(records)}")
    if records:
        print(f"First: {records[0].date.iso()} | {records[0].price}")
        print(f"Last: {records[-1].date.iso()} | {records[-1].price}")
    today = manager.engine.today()
    print(f"Month: {manager.current_month} (loaded={loaded}, today={today.iso()})")
    for cell in cells:
        line = _format_cell(cell)
        if line:
            print(f"- {line}")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
