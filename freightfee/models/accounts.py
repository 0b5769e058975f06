from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from freightfee.database import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    org_type = Column(String(20), nullable=False, index=True)  # SHIPPER | CARRIER
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class FinancialAccount(Base):
    __tablename__ = "financial_accounts"

    id = Column(Integer, primary_key=True, index=True)
    # NULL for the platform revenue account.
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True)
    account_type = Column(String(30), nullable=False, index=True)
    balance = Column(Numeric(14, 2), nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="ETB")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class JournalEntry(Base):
    """Append-only record of one balance mutation; never updated or deleted."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True, index=True)
    transaction_type = Column(String(40), nullable=False, index=True)
    load_id = Column(Integer, ForeignKey("loads.id", ondelete="SET NULL"), nullable=True, index=True)
    party = Column(String(20), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=True)
    reference = Column(String(64), nullable=True)
    entry_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    lines = relationship("JournalLine", back_populates="entry", cascade="all, delete-orphan")


class JournalLine(Base):
    __tablename__ = "journal_lines"

    id = Column(Integer, primary_key=True, index=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("financial_accounts.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    is_debit = Column(Boolean, nullable=False)

    entry = relationship("JournalEntry", back_populates="lines")
