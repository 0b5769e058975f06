from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from freightfee.database import get_db
from freightfee.dependencies.auth import Actor, require_capability
from freightfee.services.permissions import Capability
from freightfee.services.service_fees import (
    SettlementTransactionError,
    deduct_service_fee,
    open_settlement_dispute,
    refund_service_fee,
    resolve_settlement_dispute,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/settlements", tags=["settlements"])


class RefundRequest(BaseModel):
    reason: str = Field(default="Load cancelled", min_length=1, max_length=500)


class DisputeRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=2000)


def _raise_for_failure(error: str | None) -> None:
    if error == "Load not found":
        raise HTTPException(status_code=404, detail=error)
    raise HTTPException(status_code=400, detail=error or "Settlement operation failed")


@router.post("/{load_id}/deduct")
def deduct(
    load_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.TRIGGER_SETTLEMENT)),
):
    logger.info("settlements: manual deduct load=%s by user=%s", load_id, actor.user_id)
    try:
        result = deduct_service_fee(db, load_id)
    except SettlementTransactionError as exc:
        raise HTTPException(status_code=500, detail="Settlement failed") from exc
    if not result.success and not result.already_processed:
        _raise_for_failure(result.error)
    return result


@router.post("/{load_id}/refund")
def refund(
    load_id: int,
    payload: RefundRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.REFUND_FEES)),
):
    reason = payload.reason if payload else "Load cancelled"
    logger.info("settlements: refund load=%s by user=%s reason=%s", load_id, actor.user_id, reason)
    try:
        result = refund_service_fee(db, load_id, reason=reason)
    except SettlementTransactionError as exc:
        raise HTTPException(status_code=500, detail="Refund failed") from exc
    if not result.success:
        _raise_for_failure(result.error)
    return result


@router.post("/{load_id}/dispute")
def open_dispute(
    load_id: int,
    payload: DisputeRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.MANAGE_DISPUTES)),
):
    try:
        result = open_settlement_dispute(db, load_id, payload.reason)
    except SettlementTransactionError as exc:
        raise HTTPException(status_code=500, detail="Internal error") from exc
    if not result.success:
        _raise_for_failure(result.error)
    return result


@router.post("/{load_id}/resolve")
def resolve_dispute(
    load_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_capability(Capability.MANAGE_DISPUTES)),
):
    try:
        result = resolve_settlement_dispute(db, load_id)
    except SettlementTransactionError as exc:
        raise HTTPException(status_code=500, detail="Internal error") from exc
    if not result.success:
        _raise_for_failure(result.error)
    return result
