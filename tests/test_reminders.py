from datetime import timedelta

import pytest

from conftest import NOW, FakeMailer
from overtaxed.core.reminders import days_remaining, run_deadline_reminders
from overtaxed.schemas.appeal import Appeal, AppealStatus
from overtaxed.schemas.property import Property
from overtaxed.schemas.user import User


def make_appeal(repo, deadline_in, status=AppealStatus.DRAFT, email="owner@example.com"):
    user = repo.add_user(User(email=email, name="Pat Owner"))
    prop = repo.add_property(Property(
        user_id=user.id, pin="16-01-123-456-0000", address="123 Main St", city="Chicago",
    ))
    return repo.add_appeal(Appeal(
        user_id=user.id,
        property_id=prop.id,
        tax_year=2025,
        status=status,
        filing_deadline=NOW + deadline_in,
    ))


@pytest.mark.parametrize("delta, expected", [
    (timedelta(days=3), 3),
    (timedelta(days=2, hours=1), 3),
    (timedelta(hours=2), 1),
    (timedelta(days=7), 7),
])
def test_days_remaining_rounds_up(delta, expected):
    assert days_remaining(NOW + delta, NOW) == expected


def test_reminds_on_seven_three_and_one_days(repo, mailer):
    week = make_appeal(repo, timedelta(days=7))
    three = make_appeal(repo, timedelta(days=3), status=AppealStatus.PENDING_FILING)
    make_appeal(repo, timedelta(days=5))
    make_appeal(repo, timedelta(days=3), status=AppealStatus.FILED)

    run = run_deadline_reminders(repo, mailer, NOW)

    assert run.appeals_checked == 3
    assert run.emails_sent == 2
    assert {r.appeal_id for r in run.results} == {week.id, three.id}
    subjects = sorted(m.subject for _, m in mailer.sent)
    assert subjects[0].startswith("[Action Required] 3 days left")
    assert "PIN 16-01-123-456-0000" in mailer.sent[0][1].text


def test_singular_subject_on_last_day(repo, mailer):
    make_appeal(repo, timedelta(hours=20))
    run_deadline_reminders(repo, mailer, NOW)
    assert mailer.sent[0][1].subject == "[Action Required] 1 day left to file your 2025 appeal"


def test_missed_deadlines_are_ignored(repo, mailer):
    make_appeal(repo, timedelta(days=-1))
    run = run_deadline_reminders(repo, mailer, NOW)
    assert run.appeals_checked == 0
    assert mailer.sent == []


def test_no_email_address(repo, mailer):
    make_appeal(repo, timedelta(days=1), email=None)
    run = run_deadline_reminders(repo, mailer, NOW)
    assert run.results[0].reason == "no_recipient"
    assert run.emails_sent == 0


def test_email_not_configured(repo):
    make_appeal(repo, timedelta(days=1))
    run = run_deadline_reminders(repo, None, NOW)
    assert run.results[0].reason == "email_not_configured"
    assert run.errors == 0


def test_delivery_failure_is_counted(repo):
    make_appeal(repo, timedelta(days=3))
    run = run_deadline_reminders(repo, FakeMailer(fail=True), NOW)
    assert run.errors == 1
    assert run.results[0].sent is False
    assert "SMTP unavailable" in run.results[0].reason


class ProviderDownMailer(FakeMailer):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def send(self, to, message):
        self.calls += 1
        if self.calls == 1:
            raise ConnectionError("provider down")
        super().send(to, message)


def test_unexpected_failure_does_not_stop_the_run(repo):
    make_appeal(repo, timedelta(days=3))
    make_appeal(repo, timedelta(days=1), email="other@example.com")
    mailer = ProviderDownMailer()

    run = run_deadline_reminders(repo, mailer, NOW)

    assert run.errors == 1
    assert run.emails_sent == 1
    assert len(mailer.sent) == 1
    assert [r.reason for r in run.results if not r.sent] == ["provider down"]
