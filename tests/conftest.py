import sqlite3
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from freightfee.database import Base
from freightfee.models.accounts import FinancialAccount, Organization
from freightfee.models.corridor import Corridor
from freightfee.models.enums import AccountType
from freightfee.models.load import Load


sqlite3.register_adapter(Decimal, float)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


# ── Factories ──────────────────────────────────────────────────────────────────

@pytest.fixture
def make_org(db):
    def _make(name="Org", org_type="SHIPPER", wallet_balance=None):
        org = Organization(name=name, org_type=org_type)
        db.add(org)
        db.flush()
        if wallet_balance is not None:
            account_type = AccountType.SHIPPER_WALLET if org_type == "SHIPPER" else AccountType.CARRIER_WALLET
            db.add(
                FinancialAccount(
                    organization_id=org.id,
                    account_type=account_type.value,
                    balance=Decimal(str(wallet_balance)),
                )
            )
        db.commit()
        return org

    return _make


@pytest.fixture
def make_corridor(db):
    def _make(**kwargs):
        values = dict(
            name="Addis Ababa - Dire Dawa",
            origin_region="Addis Ababa",
            destination_region="Dire Dawa",
            direction="ONE_WAY",
            distance_km=Decimal("100"),
            shipper_price_per_km=Decimal("5"),
            carrier_price_per_km=Decimal("3"),
        )
        values.update(kwargs)
        corridor = Corridor(**values)
        db.add(corridor)
        db.commit()
        return corridor

    return _make


@pytest.fixture
def make_load(db):
    def _make(shipper, carrier=None, **kwargs):
        values = dict(
            shipper_id=shipper.id,
            carrier_id=carrier.id if carrier is not None else None,
            status="DELIVERED",
            pickup_region="Addis Ababa",
            delivery_region="Dire Dawa",
        )
        values.update(kwargs)
        load = Load(**values)
        db.add(load)
        db.commit()
        return load

    return _make


@pytest.fixture
def parties(make_org):
    """Shipper with 1000 ETB and carrier with 500 ETB in their wallets."""
    shipper = make_org(name="Abay Cement", org_type="SHIPPER", wallet_balance="1000")
    carrier = make_org(name="Selam Transport", org_type="CARRIER", wallet_balance="500")
    return shipper, carrier
