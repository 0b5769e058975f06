from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from freightfee.core.config import settings
from freightfee.database import atomic, get_db
from freightfee.dependencies.auth import Actor, require_capability
from freightfee.models.enums import FeeStatus
from freightfee.models.load import Load
from freightfee.repositories import load_repo
from freightfee.services.load_state_machine import LoadStatus, get_status_description, validate_state_transition
from freightfee.services.permissions import Capability, Role
from freightfee.services.service_fees import (
    SettlementTransactionError,
    assign_corridor_to_load,
    deduct_service_fee,
    refund_service_fee,
    validate_wallet_balances_for_trip,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/loads", tags=["loads"])


class AssignLoadRequest(BaseModel):
    carrier_id: int
    truck_id: str = Field(min_length=1, max_length=64)


class StatusUpdateRequest(BaseModel):
    status: LoadStatus


def _load_or_404(db: Session, load_id: int) -> Load:
    load = load_repo.get_load(db, load_id)
    if not load:
        raise HTTPException(status_code=404, detail="Load not found")
    return load


def _ensure_party_access(actor: Actor, load: Load) -> None:
    """Shippers act on their own loads, carriers on loads assigned to them."""
    if actor.is_admin or actor.role == Role.DISPATCHER:
        return
    if actor.role == Role.SHIPPER and actor.organization_id == load.shipper_id:
        return
    if actor.role == Role.CARRIER and load.carrier_id is not None and actor.organization_id == load.carrier_id:
        return
    raise HTTPException(status_code=403, detail="Not allowed to act on this load")


def _settle(db: Session, load_id: int) -> dict:
    """Settlement after a status change that is already committed."""
    try:
        result = deduct_service_fee(db, load_id)
    except SettlementTransactionError:
        logger.exception("loads: settlement failed after completion load=%s", load_id)
        return {"success": False, "error": "Settlement failed; retry from the admin settlement endpoint"}
    return {
        "success": result.success,
        "already_processed": result.already_processed,
        "shipper_fee": result.shipper_fee,
        "carrier_fee": result.carrier_fee,
        "total_platform_fee": result.total_platform_fee,
        "settlement_status": result.settlement_status,
        "error": result.error,
    }


def _status_payload(load: Load) -> dict:
    return {
        "load_id": load.id,
        "status": load.status,
        "description": get_status_description(load.status),
    }


@router.post("/{load_id}/corridor")
def assign_corridor(
    load_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.ASSIGN_CORRIDOR)),
):
    _ensure_party_access(actor, _load_or_404(db, load_id))
    try:
        result = assign_corridor_to_load(db, load_id)
    except SettlementTransactionError as exc:
        raise HTTPException(status_code=500, detail="Internal error") from exc
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result


@router.get("/{load_id}/wallet-check")
def wallet_check(
    load_id: int,
    carrier_id: int = Query(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.CHECK_WALLETS)),
):
    _ensure_party_access(actor, _load_or_404(db, load_id))
    return validate_wallet_balances_for_trip(db, load_id, carrier_id)


@router.post("/{load_id}/assign")
def assign_load(
    load_id: int,
    payload: AssignLoadRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.ASSIGN_LOAD)),
):
    load = _load_or_404(db, load_id)
    _ensure_party_access(actor, load)

    check = validate_state_transition(load.status, LoadStatus.ASSIGNED, actor.role)
    if not check.valid:
        raise HTTPException(status_code=400, detail=check.error)

    previous_status = load.status
    wallets = validate_wallet_balances_for_trip(db, load_id, payload.carrier_id)
    if not wallets.valid:
        raise HTTPException(
            status_code=400,
            detail={"message": "Insufficient wallet balance", "errors": wallets.errors},
        )

    with atomic(db):
        locked = load_repo.get_load_for_update(db, load_id)
        if locked.status != previous_status:
            raise HTTPException(status_code=409, detail="Load status changed, retry")
        locked.carrier_id = payload.carrier_id
        locked.assigned_truck_id = payload.truck_id
        locked.status = LoadStatus.ASSIGNED.value

    logger.info("loads: assigned load=%s carrier=%s truck=%s", load_id, payload.carrier_id, payload.truck_id)
    return {
        **_status_payload(locked),
        "carrier_id": locked.carrier_id,
        "assigned_truck_id": locked.assigned_truck_id,
        "wallet_check": wallets,
    }


@router.post("/{load_id}/pod")
def submit_pod(
    load_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.UPDATE_LOAD_STATUS)),
):
    load = _load_or_404(db, load_id)
    if actor.role == Role.SHIPPER:
        raise HTTPException(status_code=403, detail="Only the carrier submits POD")
    _ensure_party_access(actor, load)
    if load.status != LoadStatus.DELIVERED:
        raise HTTPException(status_code=400, detail="POD can only be submitted for delivered loads")

    with atomic(db):
        load.pod_submitted = True
        load.pod_submitted_at = datetime.now(timezone.utc)

    return {"load_id": load_id, "pod_submitted": True}


@router.put("/{load_id}/pod")
def verify_pod(
    load_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.VERIFY_POD)),
):
    load = _load_or_404(db, load_id)
    if not actor.is_admin and actor.organization_id != load.shipper_id:
        raise HTTPException(status_code=403, detail="Only the shipper or an admin can verify POD")
    if not load.pod_submitted:
        raise HTTPException(status_code=400, detail="POD has not been submitted")
    if load.pod_verified:
        raise HTTPException(status_code=400, detail="POD already verified")

    check = validate_state_transition(load.status, LoadStatus.COMPLETED, actor.role)
    if not check.valid:
        raise HTTPException(status_code=400, detail=check.error)

    with atomic(db):
        locked = load_repo.get_load_for_update(db, load_id)
        locked.pod_verified = True
        locked.pod_verified_at = datetime.now(timezone.utc)
        locked.status = LoadStatus.COMPLETED.value

    logger.info("loads: POD verified load=%s by user=%s", load_id, actor.user_id)
    response = {**_status_payload(locked), "pod_verified": True, "settlement": None}
    if settings.AUTO_SETTLE_ON_POD_VERIFY:
        response["settlement"] = _settle(db, load_id)
    return response


@router.patch("/{load_id}/status")
def update_status(
    load_id: int,
    payload: StatusUpdateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.UPDATE_LOAD_STATUS)),
):
    load = _load_or_404(db, load_id)
    _ensure_party_access(actor, load)

    check = validate_state_transition(load.status, payload.status, actor.role)
    if not check.valid:
        raise HTTPException(status_code=400, detail=check.error)

    previous_status = load.status
    with atomic(db):
        locked = load_repo.get_load_for_update(db, load_id)
        locked.status = payload.status.value

    logger.info("loads: status load=%s %s -> %s", load_id, previous_status, payload.status.value)
    response = {**_status_payload(locked), "settlement": None, "refund": None}

    if payload.status == LoadStatus.COMPLETED:
        response["settlement"] = _settle(db, load_id)
    elif payload.status == LoadStatus.CANCELLED and FeeStatus.DEDUCTED in (
        locked.shipper_fee_status,
        locked.carrier_fee_status,
    ):
        try:
            refund = refund_service_fee(db, load_id, reason="Load cancelled")
        except SettlementTransactionError:
            logger.exception("loads: refund failed after cancellation load=%s", load_id)
            refund = None
        response["refund"] = (
            {"success": refund.success, "total_refunded": refund.total_refunded, "error": refund.error}
            if refund is not None
            else {"success": False, "error": "Refund failed; retry from the admin settlement endpoint"}
        )
    return response
