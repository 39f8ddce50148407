from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from overtaxed.core.audit import audit_repo
from overtaxed.core.config import settings
from overtaxed.core.cook_county import AssessmentSource, CookCountyError
from overtaxed.core.mailer import EmailDeliveryError, Mailer, RenderedEmail
from overtaxed.db.repository import repository
from overtaxed.schemas.property import AssessmentRecord, CountyPropertyData, Property
from overtaxed.schemas.user import User

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeMailer(Mailer):
    """Records messages instead of sending; fail=True simulates a transport outage."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, RenderedEmail]] = []

    def send(self, to: str, message: RenderedEmail):
        if self.fail:
            raise EmailDeliveryError("SMTP unavailable")
        self.sent.append((to, message))


@pytest.fixture
def repo():
    repository.clear()
    audit_repo.clear()
    yield repository
    repository.clear()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def secrets_configured(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "cron-test-secret")
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "admin-test-key")


PIN = "17041000010000"


class FakeSource(AssessmentSource):
    def __init__(self, data: Dict[str, CountyPropertyData], fail: bool = False):
        self.data = data
        self.fail = fail
        self.requested = []

    def get_property(self, pin: str) -> Optional[CountyPropertyData]:
        self.requested.append(pin)
        if self.fail:
            raise CookCountyError("Socrata API error: 503")
        return self.data.get(pin)


def county_record(township="Evanston", values=((2025, 32000.0), (2024, 30000.0))):
    return CountyPropertyData(
        pin=PIN,
        township=township,
        assessment_history=[
            AssessmentRecord(year=y, assessed_total_value=v, market_value=v * 10) for y, v in values
        ],
    )


def monitored_property(repo, township: Optional[str] = "Evanston", pin=PIN):
    user = repo.add_user(User(email="owner@example.com", name="Pat Owner"))
    return repo.add_property(Property(user_id=user.id, pin=pin, address="1 Elm St", township=township))
