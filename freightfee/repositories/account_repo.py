"""
Wallet / ledger repository: financial account lookups and journal writes.
Balance mutations are only issued from inside a settlement transaction
together with the journal entry that records them.
"""
import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from freightfee.models.accounts import FinancialAccount, JournalEntry, JournalLine
from freightfee.models.enums import AccountType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def find_wallet(db: Session, organization_id: int | None, account_type: AccountType) -> FinancialAccount | None:
    if organization_id is None:
        return None
    return (
        db.query(FinancialAccount)
        .filter(
            FinancialAccount.organization_id == organization_id,
            FinancialAccount.account_type == account_type.value,
            FinancialAccount.is_active.is_(True),
        )
        .order_by(FinancialAccount.id)
        .first()
    )


def get_account_for_update(db: Session, account_id: int) -> FinancialAccount | None:
    return (
        db.query(FinancialAccount)
        .filter(FinancialAccount.id == account_id, FinancialAccount.is_active.is_(True))
        .populate_existing()
        .with_for_update()
        .first()
    )


def find_platform_account(db: Session) -> FinancialAccount | None:
    return (
        db.query(FinancialAccount)
        .filter(
            FinancialAccount.account_type == AccountType.PLATFORM_REVENUE.value,
            FinancialAccount.is_active.is_(True),
        )
        .order_by(FinancialAccount.id)
        .first()
    )


def create_account(
    db: Session,
    *,
    account_type: AccountType,
    organization_id: int | None = None,
    balance: Decimal | int | str = 0,
    currency: str = "ETB",
) -> FinancialAccount:
    account = FinancialAccount(
        organization_id=organization_id,
        account_type=account_type.value,
        balance=Decimal(str(balance)),
        currency=currency,
        is_active=True,
    )
    db.add(account)
    db.flush()
    return account


def adjust_balance(account: FinancialAccount, delta: Decimal) -> Decimal:
    """Apply delta to a row already locked by get_account_for_update."""
    account.balance = Decimal(str(account.balance)) + delta
    return account.balance


# ---------------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------------

def record_journal_entry(
    db: Session,
    *,
    transaction_type: str,
    load_id: int | None,
    party: str | None,
    amount: Decimal,
    lines: list[tuple[int, Decimal, bool]],
    description: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> JournalEntry:
    """lines: (account_id, amount, is_debit). Debits and credits must balance."""
    debits = sum((line_amount for _, line_amount, is_debit in lines if is_debit), Decimal("0"))
    credits = sum((line_amount for _, line_amount, is_debit in lines if not is_debit), Decimal("0"))
    if debits != credits:
        raise ValueError(f"Unbalanced journal entry: debits={debits} credits={credits}")

    entry = JournalEntry(
        transaction_type=transaction_type,
        load_id=load_id,
        party=party,
        amount=amount,
        description=description,
        reference=str(load_id) if load_id is not None else None,
        entry_metadata=metadata,
    )
    for account_id, line_amount, is_debit in lines:
        entry.lines.append(JournalLine(account_id=account_id, amount=line_amount, is_debit=is_debit))
    db.add(entry)
    db.flush()
    return entry


def list_journal_entries_for_load(db: Session, load_id: int) -> list[JournalEntry]:
    return (
        db.query(JournalEntry)
        .filter(JournalEntry.load_id == load_id)
        .order_by(JournalEntry.id)
        .all()
    )


def sum_journal_amounts(db: Session, load_id: int, transaction_type: str) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(JournalEntry.amount), 0))
        .filter(JournalEntry.load_id == load_id, JournalEntry.transaction_type == transaction_type)
        .scalar()
    )
    return Decimal(str(total))
