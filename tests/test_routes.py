from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from freightfee import main as main_module
from freightfee.database import get_db
from freightfee.dependencies.auth import Actor, get_current_actor
from freightfee.main import app
from freightfee.models.enums import AccountType
from freightfee.repositories import account_repo, load_repo
from freightfee.services.permissions import Role


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    def _login(role, organization_id=None, user_id=1):
        actor = Actor(user_id=user_id, organization_id=organization_id, role=role)
        app.dependency_overrides[get_current_actor] = lambda: actor
        return actor

    return _login


# ── Startup ────────────────────────────────────────────────────────────────────

def test_startup_creates_tables(monkeypatch):
    calls = []
    monkeypatch.setattr(main_module, "init_db", lambda: calls.append("init_db"))
    with TestClient(app):
        assert calls == ["init_db"]
    assert calls == ["init_db"]


# ── Auth ───────────────────────────────────────────────────────────────────────

def test_no_session_is_401(client):
    response = client.post("/api/fees/preview", json={"distance_km": 100, "price_per_km": 5})
    assert response.status_code == 401


def test_missing_capability_is_403(client, login):
    login(Role.CARRIER, organization_id=2)
    response = client.post("/api/admin/settlements/1/deduct")
    assert response.status_code == 403


# ── Fees ───────────────────────────────────────────────────────────────────────

def test_fee_preview(client, login):
    login(Role.SHIPPER, organization_id=1)
    response = client.post(
        "/api/fees/preview",
        json={"distance_km": 100, "price_per_km": 5, "promo_flag": True, "promo_pct": 10},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["base_fee"] == 500
    assert body["discount"] == 50
    assert body["final_fee"] == 450


def test_fee_preview_out_of_range_distance(client, login):
    login(Role.SHIPPER, organization_id=1)
    response = client.post("/api/fees/preview", json={"distance_km": "1e30", "price_per_km": 5})
    assert response.status_code == 200
    assert response.json() == {"base_fee": 0, "discount": 0, "final_fee": 0}


def test_dual_fee_preview(client, login):
    login(Role.DISPATCHER)
    response = client.post(
        "/api/fees/preview/dual",
        json={"distance_km": 100, "shipper_price_per_km": 5, "carrier_price_per_km": 3},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["shipper"]["final_fee"] == 500
    assert body["carrier"]["final_fee"] == 300
    assert body["total_platform_fee"] == 800


# ── Loads ──────────────────────────────────────────────────────────────────────

def test_assign_corridor(client, login, parties, make_corridor, make_load):
    shipper, _ = parties
    corridor = make_corridor()
    load = make_load(shipper, status="DRAFT")
    login(Role.SHIPPER, organization_id=shipper.id)

    response = client.post(f"/api/loads/{load.id}/corridor")

    assert response.status_code == 200
    assert response.json()["corridor_id"] == corridor.id


def test_assign_corridor_unknown_load(client, login):
    login(Role.ADMIN)
    assert client.post("/api/loads/999/corridor").status_code == 404


def test_wallet_check(client, login, parties, make_corridor, make_load):
    shipper, carrier = parties
    make_corridor()
    load = make_load(shipper, status="POSTED")
    login(Role.DISPATCHER)

    response = client.get(f"/api/loads/{load.id}/wallet-check", params={"carrier_id": carrier.id})

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is True
    assert body["shipper_fee"] == 500
    assert body["carrier_fee"] == 300


def test_assign_blocked_by_wallet_preflight(client, login, db, make_org, make_corridor, make_load):
    shipper = make_org(name="Shipper", org_type="SHIPPER", wallet_balance="10")
    carrier = make_org(name="Carrier", org_type="CARRIER", wallet_balance="500")
    make_corridor()
    load = make_load(shipper, status="POSTED")
    login(Role.DISPATCHER)

    response = client.post(f"/api/loads/{load.id}/assign", json={"carrier_id": carrier.id, "truck_id": "AA-3-12345"})

    assert response.status_code == 400
    assert response.json()["detail"]["errors"][0].startswith("Shipper has insufficient wallet balance")
    assert load_repo.get_load(db, load.id).status == "POSTED"


def test_assign_load(client, login, parties, make_corridor, make_load):
    shipper, carrier = parties
    make_corridor()
    load = make_load(shipper, status="POSTED")
    login(Role.DISPATCHER)

    response = client.post(f"/api/loads/{load.id}/assign", json={"carrier_id": carrier.id, "truck_id": "AA-3-12345"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ASSIGNED"
    assert body["carrier_id"] == carrier.id
    assert body["assigned_truck_id"] == "AA-3-12345"


def test_assign_invalid_transition(client, login, parties, make_load):
    shipper, carrier = parties
    load = make_load(shipper, status="DRAFT")
    login(Role.DISPATCHER)

    response = client.post(f"/api/loads/{load.id}/assign", json={"carrier_id": carrier.id, "truck_id": "T1"})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid transition from DRAFT to ASSIGNED")


def test_pod_submit_and_verify_settles(client, login, db, parties, make_corridor, make_load):
    shipper, carrier = parties
    make_corridor()
    load = make_load(shipper, carrier, status="DELIVERED")

    login(Role.CARRIER, organization_id=carrier.id)
    assert client.post(f"/api/loads/{load.id}/pod").status_code == 200

    login(Role.SHIPPER, organization_id=shipper.id)
    response = client.put(f"/api/loads/{load.id}/pod")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "COMPLETED"
    assert body["pod_verified"] is True
    assert body["settlement"]["success"] is True
    assert body["settlement"]["total_platform_fee"] == 800
    assert body["settlement"]["settlement_status"] == "PAID"
    assert account_repo.find_wallet(db, shipper.id, AccountType.SHIPPER_WALLET).balance == Decimal("500.00")


def test_pod_verify_requires_submission(client, login, parties, make_load):
    shipper, carrier = parties
    load = make_load(shipper, carrier, status="DELIVERED")
    login(Role.SHIPPER, organization_id=shipper.id)

    response = client.put(f"/api/loads/{load.id}/pod")

    assert response.status_code == 400
    assert response.json()["detail"] == "POD has not been submitted"


def test_pod_verify_by_other_shipper_is_403(client, login, parties, make_load):
    shipper, carrier = parties
    load = make_load(shipper, carrier, status="DELIVERED", pod_submitted=True)
    login(Role.SHIPPER, organization_id=shipper.id + 100)

    assert client.put(f"/api/loads/{load.id}/pod").status_code == 403


def test_status_update_to_completed_settles(client, login, parties, make_corridor, make_load):
    shipper, carrier = parties
    make_corridor()
    load = make_load(shipper, carrier, status="DELIVERED")
    login(Role.SHIPPER, organization_id=shipper.id)

    response = client.patch(f"/api/loads/{load.id}/status", json={"status": "COMPLETED"})

    assert response.status_code == 200
    assert response.json()["settlement"]["total_platform_fee"] == 800


def test_status_update_rejects_invalid_transition(client, login, parties, make_load):
    shipper, carrier = parties
    load = make_load(shipper, carrier, status="IN_TRANSIT")
    login(Role.SHIPPER, organization_id=shipper.id)

    response = client.patch(f"/api/loads/{load.id}/status", json={"status": "CANCELLED"})

    assert response.status_code == 400


def test_cancel_after_exception_refunds(client, login, db, parties, make_corridor, make_load):
    shipper, carrier = parties
    make_corridor()
    load = make_load(shipper, carrier, status="DELIVERED")
    login(Role.ADMIN)
    client.patch(f"/api/loads/{load.id}/status", json={"status": "COMPLETED"})
    client.patch(f"/api/loads/{load.id}/status", json={"status": "EXCEPTION"})

    response = client.patch(f"/api/loads/{load.id}/status", json={"status": "CANCELLED"})

    assert response.status_code == 200
    assert response.json()["refund"]["total_refunded"] == 800
    assert account_repo.find_wallet(db, shipper.id, AccountType.SHIPPER_WALLET).balance == Decimal("1000.00")


# ── Admin settlements ──────────────────────────────────────────────────────────

def test_manual_deduct_and_already_processed(client, login, parties, make_corridor, make_load):
    shipper, carrier = parties
    make_corridor()
    load = make_load(shipper, carrier)
    login(Role.ADMIN)

    first = client.post(f"/api/admin/settlements/{load.id}/deduct")
    assert first.status_code == 200
    assert first.json()["total_platform_fee"] == 800

    second = client.post(f"/api/admin/settlements/{load.id}/deduct")
    assert second.status_code == 200
    assert second.json()["already_processed"] is True
    assert second.json()["error"] == "Service fees already deducted"


def test_manual_deduct_unknown_load_is_404(client, login):
    login(Role.ADMIN)
    assert client.post("/api/admin/settlements/999/deduct").status_code == 404


def test_refund_without_deduction_is_400(client, login, parties, make_load):
    shipper, carrier = parties
    load = make_load(shipper, carrier)
    login(Role.SUPER_ADMIN)

    response = client.post(f"/api/admin/settlements/{load.id}/refund", json={"reason": "Duplicate"})

    assert response.status_code == 400
    assert response.json()["detail"] == "No deducted service fee to refund"


def test_dispute_endpoints(client, login, parties, make_corridor, make_load):
    shipper, carrier = parties
    make_corridor()
    load = make_load(shipper, carrier)
    login(Role.ADMIN)

    opened = client.post(f"/api/admin/settlements/{load.id}/dispute", json={"reason": "Short delivery"})
    assert opened.status_code == 200
    assert opened.json()["settlement_status"] == "DISPUTE"

    blocked = client.post(f"/api/admin/settlements/{load.id}/deduct")
    assert blocked.status_code == 400

    resolved = client.post(f"/api/admin/settlements/{load.id}/resolve")
    assert resolved.status_code == 200
    assert resolved.json()["settlement_status"] == "PENDING"

    assert client.post(f"/api/admin/settlements/{load.id}/resolve").status_code == 400
