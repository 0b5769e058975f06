#!/usr/bin/env python3
"""
Corridor pricing seeder.

Reads a JSON array of corridors and upserts each one keyed on
(origin_region, destination_region, direction). Safe to run repeatedly.

Each item:
    {"origin_region": "Addis Ababa", "destination_region": "Dire Dawa",
     "direction": "BIDIRECTIONAL", "distance_km": 453,
     "shipper_price_per_km": 2.5, "carrier_price_per_km": 1.5,
     "shipper_promo_flag": true, "shipper_promo_pct": 10}

Usage:
    python3 scripts/seed_corridors.py corridors.json --dry-run
    DATABASE_URL=postgresql+psycopg2://... python3 scripts/seed_corridors.py corridors.json
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from freightfee.database import SessionLocal, atomic, init_db
from freightfee.repositories.corridor_repo import upsert_corridor
from freightfee.services.corridor_matching import validate_direction, validate_region
from freightfee.services.fee_calculation import to_decimal

logger = logging.getLogger("seed_corridors")

_DECIMAL_FIELDS = (
    "distance_km",
    "shipper_price_per_km",
    "shipper_promo_pct",
    "carrier_price_per_km",
    "carrier_promo_pct",
    "price_per_km",
    "promo_discount_pct",
)


def normalize_corridor(raw: dict[str, Any]) -> dict[str, Any]:
    """Validated copy of one JSON item. Raises ValueError on bad input."""
    data = dict(raw)
    data["origin_region"] = validate_region(raw.get("origin_region"))
    data["destination_region"] = validate_region(raw.get("destination_region"))
    data["direction"] = validate_direction(raw.get("direction") or "ONE_WAY")
    for field in _DECIMAL_FIELDS:
        if raw.get(field) is None:
            continue
        value = to_decimal(raw[field])
        if value is None or value < 0:
            raise ValueError(f"{field} must be a non-negative number, got {raw[field]!r}")
        data[field] = value
    if data.get("distance_km") is None:
        raise ValueError("distance_km is required")
    return data


def load_corridor_file(path: Path) -> list[dict[str, Any]]:
    items = json.loads(path.read_text())
    if not isinstance(items, list):
        raise ValueError("corridor file must contain a JSON array")
    rows = []
    for index, item in enumerate(items):
        try:
            rows.append(normalize_corridor(item))
        except ValueError as exc:
            raise ValueError(f"item {index}: {exc}") from exc
    return rows


def main() -> int:
    parser = argparse.ArgumentParser(description="Upsert corridor pricing from a JSON file.")
    parser.add_argument("path", type=Path, help="JSON file with an array of corridors")
    parser.add_argument("--dry-run", action="store_true", help="Validate and report without writing")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    try:
        rows = load_corridor_file(args.path)
    except (OSError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.dry_run:
        for row in rows:
            print(f"  {row['origin_region']} -> {row['destination_region']} ({row['direction']}) {row['distance_km']} km")
        print(f"Dry run: {len(rows)} corridor(s) valid, nothing written.")
        return 0

    if args.create_tables:
        init_db()

    created = updated = 0
    db = SessionLocal()
    try:
        with atomic(db):
            for row in rows:
                _, was_created = upsert_corridor(db, row)
                if was_created:
                    created += 1
                else:
                    updated += 1
    finally:
        db.close()

    logger.info("seed_corridors: done created=%s updated=%s", created, updated)
    return 0


if __name__ == "__main__":
    sys.exit(main())
