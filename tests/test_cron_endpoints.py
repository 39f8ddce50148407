from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from conftest import NOW, PIN, FakeMailer, FakeSource, county_record, monitored_property
from overtaxed.api.deps import get_assessment_source, get_now
from overtaxed.core.config import settings
from overtaxed.core.mailer import get_mailer
from overtaxed.main import app
from overtaxed.schemas.appeal import Appeal, AppealOutcome, AppealStatus
from overtaxed.schemas.invoice import Invoice
from overtaxed.schemas.user import PaymentOption, SubscriptionTier, User

client = TestClient(app)

AUTH = {"Authorization": "Bearer cron-test-secret"}


@pytest.fixture
def overrides(secrets_configured):
    fake_mailer = FakeMailer()
    app.dependency_overrides[get_now] = lambda: NOW
    app.dependency_overrides[get_mailer] = lambda: fake_mailer
    yield fake_mailer
    app.dependency_overrides.clear()


@pytest.mark.parametrize("path", [
    "/api/cron/performance-invoices",
    "/api/cron/invoice-collections",
    "/api/cron/deadline-reminders",
    "/api/cron/assessment-checks",
])
def test_cron_refuses_when_secret_unset(repo, monkeypatch, path):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    response = client.get(path, headers=AUTH)
    assert response.status_code == 503


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "Bearer wrong"},
    {"Authorization": "cron-test-secret"},
])
def test_cron_rejects_bad_credentials(repo, overrides, headers):
    user = repo.add_user(User(
        subscription_tier=SubscriptionTier.PERFORMANCE,
        performance_plan_start_date=datetime(2021, 1, 1, tzinfo=timezone.utc),
    ))
    repo.add_appeal(Appeal(
        user_id=user.id, property_id="p", tax_year=2022,
        outcome=AppealOutcome.WON, tax_savings=1000.0,
    ))

    response = client.get("/api/cron/performance-invoices", headers=headers)

    assert response.status_code == 401
    assert repo.list_invoices() == []


def test_performance_invoices_run(repo, overrides):
    user = repo.add_user(User(
        subscription_tier=SubscriptionTier.PERFORMANCE,
        performance_plan_start_date=datetime(2021, 1, 1, tzinfo=timezone.utc),
        performance_plan_payment_option=PaymentOption.UPFRONT,
    ))
    repo.add_appeal(Appeal(
        user_id=user.id, property_id="p", tax_year=2022, status=AppealStatus.APPROVED,
        outcome=AppealOutcome.WON, tax_savings=1000.0,
    ))

    first = client.get("/api/cron/performance-invoices", headers=AUTH).json()
    second = client.get("/api/cron/performance-invoices", headers=AUTH).json()

    assert first["success"] is True
    assert first["invoices_created"] == 1
    assert second["invoices_created"] == 0
    assert second["skipped_details"] == [{"user_id": user.id, "reason": "invoice_already_exists"}]
    assert repo.list_invoices(user.id)[0].amount == pytest.approx(40.0)


def test_invoice_collections_run(repo, overrides):
    user = repo.add_user(User(email="owner@example.com"))
    repo.add_invoice(Invoice(
        user_id=user.id, invoice_number="INV-1", amount=149.0, due_date=NOW - timedelta(days=8),
    ))

    data = client.get("/api/cron/invoice-collections", headers=AUTH).json()

    assert data["overdue_count"] == 1
    assert data["notices_sent"] == 1
    assert data["results"][0]["notice"] == 1
    assert overrides.sent[0][0] == "owner@example.com"


def test_deadline_reminders_run(repo, overrides):
    user = repo.add_user(User(email="owner@example.com"))
    repo.add_appeal(Appeal(
        user_id=user.id, property_id="missing", tax_year=2025, filing_deadline=NOW + timedelta(days=3),
    ))

    data = client.get("/api/cron/deadline-reminders", headers=AUTH).json()

    assert data["appeals_checked"] == 1
    assert data["results"][0]["reason"] == "no_recipient"


def test_assessment_checks_run(repo, overrides):
    monitored_property(repo)
    app.dependency_overrides[get_assessment_source] = lambda: FakeSource({PIN: county_record()})

    data = client.get("/api/cron/assessment-checks", headers=AUTH).json()

    assert data["skipped"] is False
    assert data["properties_checked"] == 1
    assert data["updated"] == 1
