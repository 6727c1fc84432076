from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from legtrack.core.errors import LegFailure
from legtrack.db.session import SessionLocal
from legtrack.db.store import get_store
from legtrack.schemas.shipment_leg import ShipmentLegCreate
from legtrack.services.leg_consistency_service import LegConsistencyService

_SHIPMENT_ID_KEYS = ("id", "_id", "shipment_id", "shipmentId")


@dataclass
class MigrationSummary:
    shipments_seen: int = 0
    shipments_missing: list[str] = field(default_factory=list)
    legs_created: int = 0
    legs_skipped: int = 0
    legs_invalid: int = 0
    repaired: dict[str, tuple[int, int]] = field(default_factory=dict)


def _shipment_id(record: dict[str, Any]) -> str | None:
    for key in _SHIPMENT_ID_KEYS:
        value = record.get(key)
        if isinstance(value, dict):
            # Extended JSON export: {"_id": {"$oid": "..."}}
            value = value.get("$oid")
        if value:
            return str(value).strip()
    return None


def load_records(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if isinstance(payload, dict):
        payload = payload.get("shipments") or []
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of shipments in {path}")
    return [record for record in payload if isinstance(record, dict)]


def migrate_shipments(
    service: LegConsistencyService,
    records: list[dict[str, Any]],
    *,
    actor: str,
    dry_run: bool = False,
) -> MigrationSummary:
    """
    Turn embedded legs into leg records owned by their shipment, then rebuild
    each shipment's leg references. Legs whose order already exists are left
    alone, so the migration can be re-run.
    """
    summary = MigrationSummary()
    for record in records:
        shipment_id = _shipment_id(record)
        embedded = record.get("legs") or []
        if not shipment_id or not isinstance(embedded, list):
            continue
        summary.shipments_seen += 1

        try:
            service.get_shipment(shipment_id)
        except LegFailure as exc:
            print(f"{shipment_id}: skipped ({exc.code})")
            summary.shipments_missing.append(shipment_id)
            continue

        taken = {leg.leg_order for leg in service.get_legs_for_shipment(shipment_id)}
        for position, raw in enumerate(embedded, start=1):
            if not isinstance(raw, dict):
                summary.legs_invalid += 1
                continue
            try:
                leg_in = ShipmentLegCreate.model_validate(raw)
            except ValidationError as exc:
                print(f"{shipment_id}: leg {position} invalid ({exc.error_count()} error(s))")
                summary.legs_invalid += 1
                continue
            if not leg_in.leg_order:
                leg_in.leg_order = position
            if leg_in.leg_order in taken:
                summary.legs_skipped += 1
                continue

            taken.add(leg_in.leg_order)
            if dry_run:
                print(
                    f"{shipment_id}: would add leg {leg_in.leg_order} "
                    f"{leg_in.origin}-{leg_in.destination}"
                )
                summary.legs_created += 1
                continue
            service.add_leg(shipment_id, leg_in, actor)
            summary.legs_created += 1

        if not dry_run:
            result = service.repair_shipment_legs(shipment_id, actor)
            summary.repaired[shipment_id] = (result.before, result.after)
            print(f"{shipment_id}: references {result.before} -> {result.after}")

    return summary


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "One-time migration of legacy embedded shipment legs into "
            "referenced leg records."
        )
    )
    parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="JSON export of legacy shipments, each with an embedded 'legs' list.",
    )
    parser.add_argument(
        "--actor",
        default="migration@system.local",
        help="Actor written to change-log entries.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be created without writing anything.",
    )
    args = parser.parse_args(argv)

    records = load_records(args.input.resolve())
    print(f"Loaded {len(records)} shipment record(s) from {args.input}")

    db = SessionLocal()
    try:
        service = LegConsistencyService(db, get_store())
        summary = migrate_shipments(service, records, actor=args.actor, dry_run=args.dry_run)
    finally:
        db.close()

    print("\nMigration summary")
    print(f"- shipments seen: {summary.shipments_seen}")
    print(f"- shipments missing: {len(summary.shipments_missing)}")
    print(f"- legs {'to create' if args.dry_run else 'created'}: {summary.legs_created}")
    print(f"- legs already present: {summary.legs_skipped}")
    print(f"- legs invalid: {summary.legs_invalid}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
