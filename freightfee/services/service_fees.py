"""
Service fee settlement between shipper/carrier wallets and platform revenue.

Flow on settlement (POD verified or manual admin trigger):
  1. Resolve the corridor (assigned on the load, else matched by region)
  2. No corridor -> waive both fees, settlement PAID, no wallet movement
  3. Compute each party's fee from corridor rates and the trip distance
  4. Per party still PENDING, in its own transaction:
       lock load + wallet, re-check status and balance, debit wallet,
       credit platform revenue, write journal entry, mark DEDUCTED
  5. Settlement becomes PAID once both parties are DEDUCTED or WAIVED

Business outcomes (not found, already processed, insufficient balance) are
returned as result values.  Storage failures roll back the current party's
transaction and surface as SettlementTransactionError.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from freightfee.core.config import settings
from freightfee.database import atomic
from freightfee.models.accounts import FinancialAccount
from freightfee.models.enums import (
    AccountType,
    FeeStatus,
    JournalTransactionType,
    Party,
    SETTLED_FEE_STATUSES,
    SettlementStatus,
)
from freightfee.models.load import Load
from freightfee.repositories import account_repo, load_repo
from freightfee.services.corridor_matching import match_corridor_for_load, resolve_load_regions
from freightfee.services.fee_calculation import (
    ZERO,
    PartyFee,
    calculate_fees_from_corridor,
    to_decimal,
)

logger = logging.getLogger(__name__)


class SettlementTransactionError(RuntimeError):
    pass


_WALLET_TYPES = {
    Party.SHIPPER: AccountType.SHIPPER_WALLET,
    Party.CARRIER: AccountType.CARRIER_WALLET,
}


# ---------------------------------------------------------------------------
# Result shapes
# ---------------------------------------------------------------------------

@dataclass
class PartySettlement:
    base_fee: Decimal
    discount: Decimal
    final_fee: Decimal
    wallet_deducted: bool
    status: str
    reason: str | None = None
    journal_entry_id: int | None = None


@dataclass
class SettlementDetails:
    shipper: PartySettlement
    carrier: PartySettlement


@dataclass
class ServiceFeeDeductResult:
    success: bool
    shipper_fee: Decimal = ZERO
    carrier_fee: Decimal = ZERO
    total_platform_fee: Decimal = ZERO
    platform_revenue: Decimal = ZERO      # moved to platform by this call
    settlement_status: str | None = None
    already_processed: bool = False
    error: str | None = None
    corridor_id: int | None = None
    distance_km: Decimal | None = None
    distance_source: str | None = None
    transaction_ids: list[int] = field(default_factory=list)
    details: SettlementDetails | None = None


@dataclass
class PartyRefund:
    amount: Decimal
    refunded: bool
    status: str
    reason: str | None = None
    payer_balance: Decimal | None = None
    journal_entry_id: int | None = None


@dataclass
class RefundDetails:
    shipper: PartyRefund
    carrier: PartyRefund


@dataclass
class ServiceFeeRefundResult:
    success: bool
    total_refunded: Decimal = ZERO
    error: str | None = None
    transaction_ids: list[int] = field(default_factory=list)
    details: RefundDetails | None = None


@dataclass
class WalletValidationResult:
    valid: bool
    shipper_fee: Decimal = ZERO
    carrier_fee: Decimal = ZERO
    shipper_balance: Decimal = ZERO
    carrier_balance: Decimal = ZERO
    errors: list[str] = field(default_factory=list)


@dataclass
class CorridorAssignmentResult:
    success: bool
    corridor_id: int | None = None
    match_type: str | None = None
    shipper_fee: Decimal | None = None
    carrier_fee: Decimal | None = None
    total_platform_fee: Decimal | None = None
    error: str | None = None


@dataclass
class SettlementStatusResult:
    success: bool
    settlement_status: str | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@contextmanager
def _settlement_tx(db: Session, operation: str, load_id: int) -> Iterator[None]:
    try:
        with atomic(db):
            yield
    except SQLAlchemyError as exc:
        logger.exception("settlement: %s transaction failed load=%s", operation, load_id)
        raise SettlementTransactionError(f"{operation} failed for load {load_id}") from exc


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _amount(value: Any) -> Decimal:
    return to_decimal(value) or ZERO


def _fee_status(load: Load, party: Party) -> str:
    return getattr(load, f"{party.value}_fee_status") or FeeStatus.PENDING.value


def _set_party_fee(load: Load, party: Party, status: FeeStatus, fee: Decimal) -> None:
    setattr(load, f"{party.value}_fee_status", status.value)
    setattr(load, f"{party.value}_service_fee", fee)
    if status == FeeStatus.DEDUCTED:
        setattr(load, f"{party.value}_fee_deducted_at", _now())


def _party_owner(load: Load, party: Party) -> int | None:
    return load.shipper_id if party == Party.SHIPPER else load.carrier_id


def _both_settled(load: Load) -> bool:
    return all(_fee_status(load, party) in SETTLED_FEE_STATUSES for party in Party)


def _collection_closed(load: Load) -> bool:
    """Nothing left to charge: every party settled, or the fees were refunded."""
    statuses = [_fee_status(load, party) for party in Party]
    return FeeStatus.PENDING not in statuses or FeeStatus.REFUNDED in statuses


def _sync_settlement(load: Load) -> None:
    """
    Keep the legacy total equal to the net of the load's journal (fees still
    DEDUCTED; refunded ones drop out) and flip settlement to PAID once
    nothing is left to collect.
    """
    load.service_fee_etb = sum(
        (_amount(getattr(load, f"{party.value}_service_fee"))
         for party in Party
         if _fee_status(load, party) == FeeStatus.DEDUCTED),
        ZERO,
    )
    if _both_settled(load) and load.settlement_status == SettlementStatus.PENDING:
        load.settlement_status = SettlementStatus.PAID.value
        load.settled_at = _now()


def resolve_trip_distance(load: Load, corridor: Any) -> tuple[Decimal, str]:
    """GPS actual > map estimate > legacy trip_km > corridor distance."""
    for attr in ("actual_trip_km", "estimated_trip_km", "trip_km"):
        value = to_decimal(getattr(load, attr, None))
        if value is not None and value > 0:
            return value, attr
    return _amount(getattr(corridor, "distance_km", None)), "corridor_distance_km"


def _resolve_corridor(db: Session, load: Load) -> Any:
    if load.corridor is not None:
        return load.corridor
    match = match_corridor_for_load(db, load)
    return match.corridor if match else None


def get_or_create_platform_account(db: Session) -> FinancialAccount:
    account = account_repo.find_platform_account(db)
    if account is not None:
        return account
    with _settlement_tx(db, "platform_account_create", 0):
        account = account_repo.create_account(
            db,
            account_type=AccountType.PLATFORM_REVENUE,
            currency=settings.PLATFORM_CURRENCY,
        )
    logger.info("settlement: created platform revenue account id=%s", account.id)
    return account


def _already_processed_message(load: Load) -> str:
    statuses = {_fee_status(load, party) for party in Party}
    if FeeStatus.REFUNDED in statuses:
        return "Service fees already refunded"
    if FeeStatus.DEDUCTED in statuses:
        return "Service fees already deducted"
    return "Service fees already waived"


# ---------------------------------------------------------------------------
# Deduction
# ---------------------------------------------------------------------------

def _deduct_party(
    db: Session,
    *,
    load_id: int,
    party: Party,
    fee: PartyFee,
    corridor_id: int,
    platform_account_id: int,
    metadata: dict[str, Any],
) -> PartySettlement:
    currency = settings.PLATFORM_CURRENCY
    label = party.value.capitalize()

    def outcome(status: str, deducted: bool, final_fee: Decimal = fee.final_fee, **extra: Any) -> PartySettlement:
        return PartySettlement(
            base_fee=fee.base_fee,
            discount=fee.promo_discount,
            final_fee=final_fee,
            wallet_deducted=deducted,
            status=status,
            **extra,
        )

    with _settlement_tx(db, f"{party.value}_fee_deduct", load_id):
        load = load_repo.get_load_for_update(db, load_id)
        if load is None:
            return outcome(FeeStatus.PENDING.value, False, reason="Load not found")

        current = _fee_status(load, party)
        if current == FeeStatus.PENDING and _collection_closed(load):
            return outcome(current, False, reason="Service fees already refunded")
        if current != FeeStatus.PENDING:
            stored_fee = _amount(getattr(load, f"{party.value}_service_fee"))
            return outcome(
                current,
                current == FeeStatus.DEDUCTED,
                final_fee=stored_fee,
                reason=f"{label} fee already {current.lower()}",
            )

        if load.corridor_id is None:
            load.corridor_id = corridor_id

        if fee.final_fee <= 0:
            _set_party_fee(load, party, FeeStatus.WAIVED, ZERO)
            _sync_settlement(load)
            return outcome(FeeStatus.WAIVED.value, False, reason=f"No {party.value} fee on this corridor")

        # Stored even when collection fails so the amount owed is visible.
        setattr(load, f"{party.value}_service_fee", fee.final_fee)

        wallet = account_repo.find_wallet(db, _party_owner(load, party), _WALLET_TYPES[party])
        wallet = account_repo.get_account_for_update(db, wallet.id) if wallet is not None else None
        if wallet is None:
            logger.warning("settlement: %s wallet not found load=%s", party.value, load_id)
            return outcome(FeeStatus.PENDING.value, False, reason=f"{label} wallet not found")

        balance = _amount(wallet.balance)
        if balance < fee.final_fee:
            logger.warning(
                "settlement: insufficient %s balance load=%s required=%s available=%s",
                party.value, load_id, fee.final_fee, balance,
            )
            return outcome(
                FeeStatus.PENDING.value,
                False,
                reason=(
                    f"Insufficient {party.value} balance. "
                    f"Required: {fee.final_fee:.2f} {currency}, Available: {balance:.2f} {currency}"
                ),
            )

        platform = account_repo.get_account_for_update(db, platform_account_id)
        if platform is None:
            return outcome(FeeStatus.PENDING.value, False, reason="Platform revenue account not found")

        account_repo.adjust_balance(wallet, -fee.final_fee)
        account_repo.adjust_balance(platform, fee.final_fee)
        entry = account_repo.record_journal_entry(
            db,
            transaction_type=JournalTransactionType.SERVICE_FEE_DEDUCT.value,
            load_id=load_id,
            party=party.value,
            amount=fee.final_fee,
            lines=[
                (wallet.id, fee.final_fee, True),
                (platform.id, fee.final_fee, False),
            ],
            description=f"{label} service fee for load {load_id} ({fee.final_fee:.2f} {currency})",
            metadata={**metadata, "party": party.value, "fee": str(fee.final_fee)},
        )
        _set_party_fee(load, party, FeeStatus.DEDUCTED, fee.final_fee)
        _sync_settlement(load)

    logger.info(
        "settlement: %s fee deducted load=%s amount=%s journal_entry=%s",
        party.value, load_id, fee.final_fee, entry.id,
    )
    return outcome(FeeStatus.DEDUCTED.value, True, journal_entry_id=entry.id)


def _waive_all(db: Session, load_id: int) -> ServiceFeeDeductResult:
    with _settlement_tx(db, "fee_waive", load_id):
        load = load_repo.get_load_for_update(db, load_id)
        if load is None:
            return ServiceFeeDeductResult(success=False, error="Load not found")
        for party in Party:
            if _fee_status(load, party) == FeeStatus.PENDING:
                _set_party_fee(load, party, FeeStatus.WAIVED, ZERO)
        _sync_settlement(load)
        settlement_status = load.settlement_status

    logger.info("settlement: no corridor, fees waived load=%s", load_id)
    return ServiceFeeDeductResult(
        success=True,
        settlement_status=settlement_status,
        error="No matching corridor found - service fees waived",
    )


def deduct_service_fee(db: Session, load_id: int) -> ServiceFeeDeductResult:
    """
    Settle both parties' service fees for a completed trip.  Safe to call
    repeatedly: parties already DEDUCTED/WAIVED are never charged again and
    a fully settled or refunded load returns success=False with
    already_processed=True.
    """
    load = load_repo.get_load(db, load_id)
    if load is None:
        return ServiceFeeDeductResult(success=False, error="Load not found")

    if load.settlement_status == SettlementStatus.DISPUTE:
        return ServiceFeeDeductResult(
            success=False,
            settlement_status=load.settlement_status,
            error="Settlement is under dispute; resolve the dispute before deducting fees",
        )

    if _collection_closed(load):
        shipper_fee = _amount(load.shipper_service_fee)
        carrier_fee = _amount(load.carrier_service_fee)
        return ServiceFeeDeductResult(
            success=False,
            already_processed=True,
            shipper_fee=shipper_fee,
            carrier_fee=carrier_fee,
            total_platform_fee=shipper_fee + carrier_fee,
            settlement_status=load.settlement_status,
            corridor_id=load.corridor_id,
            error=_already_processed_message(load),
        )

    corridor = _resolve_corridor(db, load)
    if corridor is None:
        return _waive_all(db, load_id)

    distance_km, distance_source = resolve_trip_distance(load, corridor)
    fees = calculate_fees_from_corridor(corridor, distance_km)
    platform = get_or_create_platform_account(db)
    platform_account_id = platform.id
    corridor_id = corridor.id

    metadata = {
        "corridor_id": corridor_id,
        "distance_km": str(distance_km),
        "distance_source": distance_source,
        "shipper_fee": str(fees.shipper.final_fee),
        "carrier_fee": str(fees.carrier.final_fee),
        "total_platform_fee": str(fees.total_platform_fee),
    }

    logger.info(
        "settlement: deducting load=%s corridor=%s distance_km=%s (%s) shipper_fee=%s carrier_fee=%s",
        load_id, corridor_id, distance_km, distance_source,
        fees.shipper.final_fee, fees.carrier.final_fee,
    )

    outcomes: dict[Party, PartySettlement] = {}
    for party, fee in ((Party.SHIPPER, fees.shipper), (Party.CARRIER, fees.carrier)):
        outcomes[party] = _deduct_party(
            db,
            load_id=load_id,
            party=party,
            fee=fee,
            corridor_id=corridor_id,
            platform_account_id=platform_account_id,
            metadata=metadata,
        )

    shipper = outcomes[Party.SHIPPER]
    carrier = outcomes[Party.CARRIER]
    transaction_ids = [o.journal_entry_id for o in (shipper, carrier) if o.journal_entry_id is not None]
    platform_revenue = sum(
        (o.final_fee for o in (shipper, carrier) if o.journal_entry_id is not None),
        ZERO,
    )

    refreshed = load_repo.get_load(db, load_id)
    settlement_status = refreshed.settlement_status if refreshed is not None else None

    pending_reasons = [o.reason for o in (shipper, carrier) if o.status == FeeStatus.PENDING and o.reason]
    return ServiceFeeDeductResult(
        success=True,
        shipper_fee=shipper.final_fee,
        carrier_fee=carrier.final_fee,
        total_platform_fee=shipper.final_fee + carrier.final_fee,
        platform_revenue=platform_revenue,
        settlement_status=settlement_status,
        error="; ".join(pending_reasons) or None,
        corridor_id=corridor_id,
        distance_km=distance_km,
        distance_source=distance_source,
        transaction_ids=transaction_ids,
        details=SettlementDetails(shipper=shipper, carrier=carrier),
    )


# ---------------------------------------------------------------------------
# Refund
# ---------------------------------------------------------------------------

def _refund_party(
    db: Session,
    *,
    load_id: int,
    party: Party,
    platform_account_id: int,
    reason: str,
) -> PartyRefund:
    currency = settings.PLATFORM_CURRENCY
    label = party.value.capitalize()

    with _settlement_tx(db, f"{party.value}_fee_refund", load_id):
        load = load_repo.get_load_for_update(db, load_id)
        if load is None:
            return PartyRefund(amount=ZERO, refunded=False, status=FeeStatus.PENDING.value, reason="Load not found")

        current = _fee_status(load, party)
        if current != FeeStatus.DEDUCTED:
            return PartyRefund(
                amount=ZERO,
                refunded=False,
                status=current,
                reason=f"{label} fee is {current.lower()}, nothing to refund",
            )

        amount = _amount(getattr(load, f"{party.value}_service_fee"))
        if amount <= 0:
            setattr(load, f"{party.value}_fee_status", FeeStatus.REFUNDED.value)
            load.service_fee_refunded_at = _now()
            _sync_settlement(load)
            return PartyRefund(amount=ZERO, refunded=True, status=FeeStatus.REFUNDED.value, reason="No fee to refund")

        wallet = account_repo.find_wallet(db, _party_owner(load, party), _WALLET_TYPES[party])
        wallet = account_repo.get_account_for_update(db, wallet.id) if wallet is not None else None
        platform = account_repo.get_account_for_update(db, platform_account_id)
        if wallet is None or platform is None:
            return PartyRefund(amount=amount, refunded=False, status=current, reason="Required accounts not found")

        platform_balance = _amount(platform.balance)
        if platform_balance < amount:
            logger.error(
                "settlement: platform balance too low for refund load=%s party=%s required=%s available=%s",
                load_id, party.value, amount, platform_balance,
            )
            return PartyRefund(
                amount=amount,
                refunded=False,
                status=current,
                reason="Insufficient platform balance for refund",
            )

        account_repo.adjust_balance(platform, -amount)
        payer_balance = account_repo.adjust_balance(wallet, amount)
        entry = account_repo.record_journal_entry(
            db,
            transaction_type=JournalTransactionType.SERVICE_FEE_REFUND.value,
            load_id=load_id,
            party=party.value,
            amount=amount,
            lines=[
                (platform.id, amount, True),
                (wallet.id, amount, False),
            ],
            description=f"{label} service fee refund for load {load_id} ({amount:.2f} {currency})",
            metadata={"party": party.value, "fee": str(amount), "reason": reason},
        )
        setattr(load, f"{party.value}_fee_status", FeeStatus.REFUNDED.value)
        load.service_fee_refunded_at = _now()
        _sync_settlement(load)

    logger.info(
        "settlement: %s fee refunded load=%s amount=%s journal_entry=%s",
        party.value, load_id, amount, entry.id,
    )
    return PartyRefund(
        amount=amount,
        refunded=True,
        status=FeeStatus.REFUNDED.value,
        payer_balance=_amount(payer_balance),
        journal_entry_id=entry.id,
    )


def refund_service_fee(db: Session, load_id: int, reason: str = "Load cancelled") -> ServiceFeeRefundResult:
    """Reverse every DEDUCTED party fee exactly once."""
    load = load_repo.get_load(db, load_id)
    if load is None:
        return ServiceFeeRefundResult(success=False, error="Load not found")

    statuses = {party: _fee_status(load, party) for party in Party}
    if FeeStatus.DEDUCTED not in statuses.values():
        if FeeStatus.REFUNDED in statuses.values():
            error = "Service fees already refunded"
        else:
            error = "No deducted service fee to refund"
        return ServiceFeeRefundResult(success=False, error=error)

    platform = account_repo.find_platform_account(db)
    if platform is None:
        return ServiceFeeRefundResult(success=False, error="Required accounts not found")
    platform_account_id = platform.id

    outcomes: dict[Party, PartyRefund] = {}
    for party in Party:
        if statuses[party] == FeeStatus.DEDUCTED:
            outcomes[party] = _refund_party(
                db,
                load_id=load_id,
                party=party,
                platform_account_id=platform_account_id,
                reason=reason,
            )
        else:
            outcomes[party] = PartyRefund(
                amount=ZERO,
                refunded=False,
                status=statuses[party],
                reason="Nothing to refund",
            )

    attempted = [outcomes[p] for p in Party if statuses[p] == FeeStatus.DEDUCTED]
    failures = [o.reason for o in attempted if not o.refunded and o.reason]
    return ServiceFeeRefundResult(
        success=any(o.refunded for o in attempted),
        total_refunded=sum((o.amount for o in attempted if o.refunded), ZERO),
        error="; ".join(failures) or None,
        transaction_ids=[o.journal_entry_id for o in attempted if o.journal_entry_id is not None],
        details=RefundDetails(shipper=outcomes[Party.SHIPPER], carrier=outcomes[Party.CARRIER]),
    )


# ---------------------------------------------------------------------------
# Pre-flight wallet validation
# ---------------------------------------------------------------------------

def validate_wallet_balances_for_trip(db: Session, load_id: int, carrier_id: int) -> WalletValidationResult:
    """
    Read-only check used before a truck is assigned: computes the fees the
    settlement would charge and compares them with current wallet balances.
    A missing wallet counts as a zero balance.
    """
    load = load_repo.get_load(db, load_id)
    if load is None:
        return WalletValidationResult(valid=False, errors=["Load not found"])

    corridor = _resolve_corridor(db, load)
    if corridor is None:
        return WalletValidationResult(valid=True)

    distance_km, _ = resolve_trip_distance(load, corridor)
    fees = calculate_fees_from_corridor(corridor, distance_km)

    shipper_wallet = account_repo.find_wallet(db, load.shipper_id, AccountType.SHIPPER_WALLET)
    carrier_wallet = account_repo.find_wallet(db, carrier_id, AccountType.CARRIER_WALLET)
    shipper_balance = _amount(shipper_wallet.balance) if shipper_wallet else ZERO
    carrier_balance = _amount(carrier_wallet.balance) if carrier_wallet else ZERO

    currency = settings.PLATFORM_CURRENCY
    errors: list[str] = []
    checks = (
        ("Shipper", fees.shipper.final_fee, shipper_balance),
        ("Carrier", fees.carrier.final_fee, carrier_balance),
    )
    for label, fee, balance in checks:
        if fee > 0 and balance < fee:
            errors.append(
                f"{label} has insufficient wallet balance for this trip. "
                f"Required: {fee:.2f} {currency}, Available: {balance:.2f} {currency}"
            )

    return WalletValidationResult(
        valid=not errors,
        shipper_fee=fees.shipper.final_fee,
        carrier_fee=fees.carrier.final_fee,
        shipper_balance=shipper_balance,
        carrier_balance=carrier_balance,
        errors=errors,
    )


# ---------------------------------------------------------------------------
# Corridor assignment
# ---------------------------------------------------------------------------

def assign_corridor_to_load(db: Session, load_id: int) -> CorridorAssignmentResult:
    load = load_repo.get_load(db, load_id)
    if load is None:
        return CorridorAssignmentResult(success=False, error="Load not found")

    if load.corridor is not None:
        distance_km, _ = resolve_trip_distance(load, load.corridor)
        fees = calculate_fees_from_corridor(load.corridor, distance_km)
        return CorridorAssignmentResult(
            success=True,
            corridor_id=load.corridor_id,
            match_type="assigned",
            shipper_fee=fees.shipper.final_fee,
            carrier_fee=fees.carrier.final_fee,
            total_platform_fee=fees.total_platform_fee,
        )

    origin, destination = resolve_load_regions(load)
    if not origin or not destination:
        return CorridorAssignmentResult(success=True, error="No region information available")

    match = match_corridor_for_load(db, load)
    if match is None:
        return CorridorAssignmentResult(success=True, error="No matching corridor found")

    corridor = match.corridor
    distance_km, _ = resolve_trip_distance(load, corridor)
    fees = calculate_fees_from_corridor(corridor, distance_km)
    corridor_id = corridor.id

    with _settlement_tx(db, "corridor_assign", load_id):
        locked = load_repo.get_load_for_update(db, load_id)
        if locked is not None and locked.corridor_id is None:
            locked.corridor_id = corridor_id

    logger.info("settlement: corridor assigned load=%s corridor=%s match=%s", load_id, corridor_id, match.match_type)
    return CorridorAssignmentResult(
        success=True,
        corridor_id=corridor_id,
        match_type=match.match_type,
        shipper_fee=fees.shipper.final_fee,
        carrier_fee=fees.carrier.final_fee,
        total_platform_fee=fees.total_platform_fee,
    )


# ---------------------------------------------------------------------------
# Disputes
# ---------------------------------------------------------------------------

def open_settlement_dispute(db: Session, load_id: int, reason: str) -> SettlementStatusResult:
    with _settlement_tx(db, "dispute_open", load_id):
        load = load_repo.get_load_for_update(db, load_id)
        if load is None:
            return SettlementStatusResult(success=False, error="Load not found")
        if load.settlement_status == SettlementStatus.DISPUTE:
            return SettlementStatusResult(
                success=False,
                settlement_status=load.settlement_status,
                error="Settlement is already under dispute",
            )
        load.settlement_status = SettlementStatus.DISPUTE.value
        load.dispute_reason = reason

    logger.info("settlement: dispute opened load=%s", load_id)
    return SettlementStatusResult(success=True, settlement_status=SettlementStatus.DISPUTE.value)


def resolve_settlement_dispute(db: Session, load_id: int) -> SettlementStatusResult:
    with _settlement_tx(db, "dispute_resolve", load_id):
        load = load_repo.get_load_for_update(db, load_id)
        if load is None:
            return SettlementStatusResult(success=False, error="Load not found")
        if load.settlement_status != SettlementStatus.DISPUTE:
            return SettlementStatusResult(
                success=False,
                settlement_status=load.settlement_status,
                error="Settlement is not under dispute",
            )
        if _both_settled(load):
            load.settlement_status = SettlementStatus.PAID.value
            load.settled_at = load.settled_at or _now()
        else:
            load.settlement_status = SettlementStatus.PENDING.value
        new_status = load.settlement_status

    logger.info("settlement: dispute resolved load=%s status=%s", load_id, new_status)
    return SettlementStatusResult(success=True, settlement_status=new_status)
