from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import re
from typing import Iterator

from sqlalchemy.orm import Session

from legtrack.core.config import settings
from legtrack.core.errors import LegFailure, NotFoundError, ValidationFailure
from legtrack.core.flow_logging import flow_info
from legtrack.crud import shipment as shipment_crud
from legtrack.crud import shipment_leg as leg_crud
from legtrack.db.store import StoreHandle
from legtrack.models.enums import normalize_leg_status
from legtrack.models.shipment import Shipment, ShipmentChangeLog
from legtrack.models.shipment_leg import ShipmentLeg, ShipmentLegStatusHistory
from legtrack.schemas.shipment import ShipmentCreate, ShipmentSummary, ShipmentUpdate
from legtrack.schemas.shipment_leg import ShipmentLegCreate, ShipmentLegUpdate
from legtrack.services.routing import derive_routing
from legtrack.services.shipment_status import derive_shipment_status, route_state

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

ACTION_ADDED_LEG = "added-leg"
ACTION_UPDATED_LEG = "updated-leg"
ACTION_DELETED_LEG = "deleted-leg"
ACTION_REASSIGNED_LEGS = "reassigned-legs"
ACTION_REPAIRED_LEGS = "repaired-legs"
ACTION_CREATED_SHIPMENT = "created-shipment"
ACTION_UPDATED_SHIPMENT = "updated-shipment"


@dataclass
class LegMutationResult:
    leg: ShipmentLeg
    shipment: ShipmentSummary


@dataclass
class RepairResult:
    shipment: ShipmentSummary
    before: int
    after: int
    legs: list[ShipmentLeg] = field(default_factory=list)


class LegConsistencyService:
    """
    Keeps a shipment's leg-reference list, routing and status in step with
    the leg records it owns.

    Every mutation runs as a sequence of independently committed store
    steps: leg write, reference update, derived-field recompute, change-log
    append. A failure after the leg write is logged and re-raised without
    undoing earlier steps; `repair_shipment_legs` reconciles the shipment.
    """

    def __init__(self, db: Session, store: StoreHandle):
        self.db = db
        self.store = store

    # ---- helpers ----------------------------------------------------------

    @staticmethod
    def validate_identifier(value: str | None, label: str = "id") -> str:
        candidate = (value or "").strip()
        if not IDENTIFIER_PATTERN.match(candidate):
            raise ValidationFailure(f"Invalid {label}.", context={label: value})
        return candidate

    @staticmethod
    def _actor(actor: str | None) -> str:
        return (actor or "").strip() or settings.CHANGE_LOG_DEFAULT_ACTOR

    @staticmethod
    def _leg_patch(leg_in: ShipmentLegUpdate | dict) -> dict:
        if isinstance(leg_in, dict):
            return dict(leg_in)
        return leg_in.model_dump(exclude_unset=True)

    def _guard(self, operation: str):
        return self.store.guard(operation, self.db)

    @contextmanager
    def _after_leg_write(self, operation: str, shipment_id: str, leg_id: str | None = None) -> Iterator[None]:
        """Store steps that follow a committed leg write; failures leave repair work behind."""
        try:
            with self._guard(operation):
                yield
        except LegFailure as exc:
            logger.error(
                "leg_sync_incomplete operation=%s shipment_id=%s leg_id=%s code=%s; "
                "run repair for this shipment",
                operation,
                shipment_id,
                leg_id or "-",
                exc.code,
            )
            raise

    def _require_shipment(self, shipment_id: str) -> Shipment:
        shipment = shipment_crud.get_shipment(self.db, shipment_id)
        if shipment is None:
            raise NotFoundError("Shipment not found", context={"shipment_id": shipment_id})
        return shipment

    def _require_leg(self, leg_id: str) -> ShipmentLeg:
        leg = leg_crud.get_leg(self.db, leg_id)
        if leg is None:
            raise NotFoundError("Shipment leg not found", context={"leg_id": leg_id})
        return leg

    def _recompute(self, shipment_id: str) -> list[ShipmentLeg]:
        legs = leg_crud.find_legs_by_shipment(self.db, shipment_id)
        shipment_crud.set_derived_fields(
            self.db,
            shipment_id,
            routing=derive_routing(legs),
            shipment_status=derive_shipment_status(legs),
        )
        return legs

    def _summary(self, shipment_id: str, legs: list[ShipmentLeg] | None = None) -> ShipmentSummary:
        shipment = self._require_shipment(shipment_id)
        self.db.refresh(shipment)
        if legs is None:
            legs = leg_crud.find_legs_by_shipment(self.db, shipment_id)
        return ShipmentSummary(
            id=shipment.id,
            serial_number=shipment.serial_number,
            routing=shipment.routing,
            shipment_status=shipment.shipment_status,
            route_state=route_state(legs),
            leg_ids=shipment_crud.list_leg_refs(self.db, shipment_id),
        )

    # ---- shipments ----------------------------------------------------------

    def create_shipment(self, data: ShipmentCreate, actor: str | None = None) -> Shipment:
        actor = self._actor(actor)
        with self._guard("create_shipment"):
            shipment = shipment_crud.create_shipment(self.db, data, actor)
            shipment_crud.append_change_log(
                self.db,
                shipment.id,
                actor,
                ACTION_CREATED_SHIPMENT,
                f"Created shipment {shipment.serial_number}",
            )
        flow_info(logger, "shipment_created shipment_id=%s serial=%s", shipment.id, shipment.serial_number)
        return shipment

    def update_shipment(self, shipment_id: str, data: ShipmentUpdate, actor: str | None = None) -> Shipment:
        shipment_id = self.validate_identifier(shipment_id, "shipment_id")
        actor = self._actor(actor)
        with self._guard("update_shipment"):
            shipment, changes = shipment_crud.update_shipment(self.db, shipment_id, data, actor)
            if changes:
                shipment_crud.append_change_log(
                    self.db,
                    shipment_id,
                    actor,
                    ACTION_UPDATED_SHIPMENT,
                    f"Updated {', '.join(sorted(changes))}",
                    fields=changes,
                )
        return shipment

    def get_shipment(self, shipment_id: str) -> Shipment:
        shipment_id = self.validate_identifier(shipment_id, "shipment_id")
        with self._guard("get_shipment"):
            return self._require_shipment(shipment_id)

    def list_shipments(self, skip: int = 0, limit: int = 50) -> list[Shipment]:
        with self._guard("list_shipments"):
            return shipment_crud.list_shipments(self.db, skip=skip, limit=limit)

    def get_shipment_summary(self, shipment_id: str) -> ShipmentSummary:
        shipment_id = self.validate_identifier(shipment_id, "shipment_id")
        with self._guard("get_shipment_summary"):
            return self._summary(shipment_id)

    def get_change_log(self, shipment_id: str) -> list[ShipmentChangeLog]:
        shipment_id = self.validate_identifier(shipment_id, "shipment_id")
        with self._guard("get_change_log"):
            self._require_shipment(shipment_id)
            return shipment_crud.list_change_log(self.db, shipment_id)

    # ---- legs ---------------------------------------------------------------

    def get_legs_for_shipment(self, shipment_id: str) -> list[ShipmentLeg]:
        shipment_id = self.validate_identifier(shipment_id, "shipment_id")
        with self._guard("get_legs_for_shipment"):
            return leg_crud.find_legs_by_shipment(self.db, shipment_id)

    def get_leg(self, leg_id: str) -> ShipmentLeg:
        leg_id = self.validate_identifier(leg_id, "leg_id")
        with self._guard("get_leg"):
            return self._require_leg(leg_id)

    def find_legs_by_tracking_number(self, tracking_number: str) -> list[ShipmentLeg]:
        tracking_number = (tracking_number or "").strip()
        if not tracking_number:
            raise ValidationFailure("tracking_number is required.")
        with self._guard("find_legs_by_tracking_number"):
            return leg_crud.find_legs_by_tracking_number(self.db, tracking_number)

    def get_leg_status_history(self, leg_id: str) -> list[ShipmentLegStatusHistory]:
        leg_id = self.validate_identifier(leg_id, "leg_id")
        with self._guard("get_leg_status_history"):
            self._require_leg(leg_id)
            return leg_crud.list_status_history(self.db, leg_id)

    def add_leg(self, shipment_id: str, leg_in: ShipmentLegCreate, actor: str | None = None) -> LegMutationResult:
        shipment_id = self.validate_identifier(shipment_id, "shipment_id")
        actor = self._actor(actor)

        with self._guard("add_leg"):
            self._require_shipment(shipment_id)
            leg = leg_crud.create_leg(self.db, shipment_id, leg_in, actor)
        flow_info(
            logger,
            "leg_created shipment_id=%s leg_id=%s order=%s",
            shipment_id,
            leg.id,
            leg.leg_order,
            category="legs",
        )

        with self._after_leg_write("add_leg", shipment_id, leg.id):
            shipment_crud.add_leg_ref(self.db, shipment_id, leg.id)
            legs = self._recompute(shipment_id)
            shipment_crud.append_change_log(
                self.db,
                shipment_id,
                actor,
                ACTION_ADDED_LEG,
                f"Added leg from {leg.origin} to {leg.destination}",
            )
            summary = self._summary(shipment_id, legs)

        return LegMutationResult(leg=leg, shipment=summary)

    def create_draft_leg(self, temp_shipment_id: str, leg_in: ShipmentLegCreate, actor: str | None = None) -> ShipmentLeg:
        """
        Leg for a shipment that is not saved yet. The owner is a temporary id;
        `reassign_legs` attaches the drafts once the shipment exists.
        """
        temp_shipment_id = self.validate_identifier(temp_shipment_id, "shipment_id")
        actor = self._actor(actor)

        with self._guard("create_draft_leg"):
            persisted = shipment_crud.shipment_exists(self.db, temp_shipment_id)
        if persisted:
            return self.add_leg(temp_shipment_id, leg_in, actor).leg

        with self._guard("create_draft_leg"):
            leg = leg_crud.create_leg(self.db, temp_shipment_id, leg_in, actor)
        flow_info(
            logger,
            "draft_leg_created temp_shipment_id=%s leg_id=%s order=%s",
            temp_shipment_id,
            leg.id,
            leg.leg_order,
            category="legs",
        )
        return leg

    def update_leg(self, leg_id: str, leg_in: ShipmentLegUpdate | dict, actor: str | None = None) -> ShipmentLeg:
        leg_id = self.validate_identifier(leg_id, "leg_id")
        actor = self._actor(actor)
        patch = self._leg_patch(leg_in)

        with self._guard("update_leg"):
            self._require_leg(leg_id)
            leg, changes = leg_crud.update_leg(self.db, leg_id, patch, actor)
            shipment_id = leg.shipment_id
            owner_persisted = shipment_crud.shipment_exists(self.db, shipment_id)

        if not changes:
            return leg
        flow_info(
            logger,
            "leg_updated leg_id=%s shipment_id=%s fields=%s",
            leg_id,
            shipment_id,
            ",".join(sorted(changes)),
            category="legs",
        )
        if not owner_persisted:
            # Draft leg; the owning shipment is recomputed on reassign.
            return leg

        with self._after_leg_write("update_leg", shipment_id, leg_id):
            self._recompute(shipment_id)
            shipment_crud.append_change_log(
                self.db,
                shipment_id,
                actor,
                ACTION_UPDATED_LEG,
                f"Updated leg from {leg.origin} to {leg.destination}",
                fields=changes,
            )
        return leg

    def update_leg_status(self, leg_id: str, status: str, actor: str | None = None) -> ShipmentLeg:
        try:
            normalized = normalize_leg_status(status)
        except ValueError as exc:
            raise ValidationFailure(str(exc), context={"status": status}) from exc
        return self.update_leg(leg_id, {"status": normalized.value}, actor)

    def delete_leg(self, leg_id: str, actor: str | None = None) -> dict:
        leg_id = self.validate_identifier(leg_id, "leg_id")
        actor = self._actor(actor)

        with self._guard("delete_leg"):
            leg = self._require_leg(leg_id)
            shipment_id = leg.shipment_id
            origin, destination = leg.origin, leg.destination
            leg_crud.delete_leg(self.db, leg_id)
            owner_persisted = shipment_crud.shipment_exists(self.db, shipment_id)
        flow_info(logger, "leg_deleted leg_id=%s shipment_id=%s", leg_id, shipment_id, category="legs")

        if owner_persisted:
            with self._after_leg_write("delete_leg", shipment_id, leg_id):
                shipment_crud.remove_leg_ref(self.db, shipment_id, leg_id)
                self._recompute(shipment_id)
                shipment_crud.append_change_log(
                    self.db,
                    shipment_id,
                    actor,
                    ACTION_DELETED_LEG,
                    f"Deleted leg from {origin} to {destination}",
                )

        return {"msg": "Shipment leg deleted", "leg_id": leg_id, "shipment_id": shipment_id}

    def reassign_legs(self, temp_shipment_id: str, shipment_id: str, actor: str | None = None) -> int:
        temp_shipment_id = self.validate_identifier(temp_shipment_id, "temp_shipment_id")
        shipment_id = self.validate_identifier(shipment_id, "shipment_id")
        actor = self._actor(actor)

        with self._guard("reassign_legs"):
            self._require_shipment(shipment_id)
            if temp_shipment_id == shipment_id:
                return 0
            count = leg_crud.reassign_legs(self.db, temp_shipment_id, shipment_id, actor)
        flow_info(
            logger,
            "legs_reassigned from=%s to=%s count=%s",
            temp_shipment_id,
            shipment_id,
            count,
            category="legs",
        )
        if not count:
            return 0

        with self._after_leg_write("reassign_legs", shipment_id):
            # Additive: every leg the shipment now owns is referenced.
            for leg in leg_crud.find_legs_by_shipment(self.db, shipment_id):
                shipment_crud.add_leg_ref(self.db, shipment_id, leg.id)
            self._recompute(shipment_id)
            shipment_crud.append_change_log(
                self.db,
                shipment_id,
                actor,
                ACTION_REASSIGNED_LEGS,
                f"Reassigned {count} leg(s) from {temp_shipment_id}",
            )
        return count

    def repair_shipment_legs(self, shipment_id: str, actor: str | None = None) -> RepairResult:
        shipment_id = self.validate_identifier(shipment_id, "shipment_id")
        actor = self._actor(actor)

        with self._guard("repair_shipment_legs"):
            self._require_shipment(shipment_id)
            before = len(shipment_crud.list_leg_refs(self.db, shipment_id))
            legs = leg_crud.find_legs_by_shipment(self.db, shipment_id)
            after = shipment_crud.replace_leg_refs(self.db, shipment_id, [leg.id for leg in legs])
            self._recompute(shipment_id)
            shipment_crud.append_change_log(
                self.db,
                shipment_id,
                actor,
                ACTION_REPAIRED_LEGS,
                f"Rebuilt leg references: {before} before, {after} after",
            )
            summary = self._summary(shipment_id, legs)

        flow_info(
            logger,
            "legs_repaired shipment_id=%s before=%s after=%s",
            shipment_id,
            before,
            after,
            category="repair",
        )
        return RepairResult(shipment=summary, before=before, after=after, legs=legs)
