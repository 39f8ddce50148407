from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from conftest import NOW
from overtaxed.api.deps import get_now
from overtaxed.core.config import settings
from overtaxed.main import app
from overtaxed.schemas.appeal import Appeal, AppealOutcome
from overtaxed.schemas.user import PaymentOption, SubscriptionTier, User

client = TestClient(app)

ADMIN = {"X-Admin-Key": "admin-test-key"}


@pytest.fixture
def admin(secrets_configured):
    app.dependency_overrides[get_now] = lambda: NOW
    yield
    app.dependency_overrides.clear()


def performance_user(repo, start, savings=2500.0):
    user = repo.add_user(User(
        email="perf@example.com",
        subscription_tier=SubscriptionTier.PERFORMANCE,
        performance_plan_start_date=start,
        performance_plan_payment_option=PaymentOption.UPFRONT,
    ))
    if savings:
        repo.add_appeal(Appeal(
            user_id=user.id, property_id="p", tax_year=start.year,
            outcome=AppealOutcome.WON, tax_savings=savings,
        ))
    return user


def test_admin_requires_key(repo, admin):
    assert client.get("/api/admin/performance").status_code == 401
    assert client.get("/api/admin/performance", headers={"X-Admin-Key": "nope"}).status_code == 401


def test_admin_refuses_when_key_unset(repo, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", None)
    assert client.get("/api/admin/performance", headers=ADMIN).status_code == 503


def test_performance_overview(repo, admin):
    ended = performance_user(repo, datetime(2021, 1, 1, tzinfo=timezone.utc))
    running = performance_user(repo, datetime(2024, 1, 1, tzinfo=timezone.utc))

    rows = {row["id"]: row for row in client.get("/api/admin/performance", headers=ADMIN).json()}

    assert rows[ended.id]["can_create_invoice"] is True
    assert rows[ended.id]["savings"] == {"total_savings": 2500.0, "fee_amount": 100.0, "appeal_count": 1}
    assert rows[running.id]["can_create_invoice"] is False
    assert rows[running.id]["invoice_reason"] == "window_not_ended"
    assert rows[running.id]["window"]["end_year"] == 2026


def test_create_performance_invoice(repo, admin):
    user = performance_user(repo, datetime(2021, 1, 1, tzinfo=timezone.utc))

    response = client.post("/api/admin/create-performance-invoice", json={"user_id": user.id}, headers=ADMIN)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert len(data["invoice_ids"]) == 1
    assert data["fee_amount"] == 100.0

    again = client.post("/api/admin/create-performance-invoice", json={"user_id": user.id}, headers=ADMIN)
    assert again.status_code == 400
    assert again.json()["detail"]["reason"] == "invoice_already_exists"


def test_create_performance_invoice_not_eligible(repo, admin):
    user = performance_user(repo, datetime(2021, 1, 1, tzinfo=timezone.utc), savings=0)

    response = client.post("/api/admin/create-performance-invoice", json={"user_id": user.id}, headers=ADMIN)

    assert response.status_code == 400
    assert response.json()["detail"] == {"error": "Invoice not eligible", "reason": "no_savings"}
