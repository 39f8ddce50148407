from datetime import datetime, timezone

from conftest import NOW, PIN, FakeSource, county_record, monitored_property
from overtaxed.core.assessment_check import run_assessment_checks, select_properties_for_checks
from overtaxed.schemas.property import AssessmentHistory


def test_skipped_outside_season(repo, mailer):
    monitored_property(repo)
    source = FakeSource({PIN: county_record()})

    run = run_assessment_checks(repo, source, mailer, datetime(2025, 10, 1, tzinfo=timezone.utc))

    assert run.skipped is True
    assert run.skip_reason
    assert source.requested == []


def test_selects_active_and_unknown_townships(repo):
    active = monitored_property(repo, township="Evanston Township")
    unknown = monitored_property(repo, township=None, pin="17041000020000")
    closed = monitored_property(repo, township="Rogers Park", pin="17041000030000")

    # Rogers Park closed on 2025-06-07, Evanston stays active until 2025-07-05
    selected = select_properties_for_checks([active, unknown, closed], NOW)

    assert [p.id for p in selected] == [active.id, unknown.id]


def test_first_check_records_history_without_alerting(repo, mailer):
    prop = monitored_property(repo)
    now = datetime(2025, 5, 1, tzinfo=timezone.utc)

    run = run_assessment_checks(repo, FakeSource({PIN: county_record()}), mailer, now)

    assert run.properties_checked == 1
    assert run.updated == 1
    assert run.increases_detected == 0
    assert sorted(run.results[0].new_years) == [2024, 2025]
    history = repo.get_assessment_history(prop.id)
    assert [h.tax_year for h in history] == [2025, 2024]
    assert history[0].change_amount == 2000.0
    stored = repo.get_property(prop.id)
    assert stored.current_assessment_value == 32000.0
    assert stored.last_checked_at == now
    assert mailer.sent == []


def test_increase_sends_alert(repo, mailer):
    prop = monitored_property(repo)
    repo.upsert_assessment_history(AssessmentHistory(property_id=prop.id, tax_year=2024, assessment_value=30000.0))

    run = run_assessment_checks(
        repo, FakeSource({PIN: county_record()}), mailer, datetime(2025, 5, 1, tzinfo=timezone.utc)
    )

    assert run.increases_detected == 1
    assert run.results[0].new_years == [2025]
    to, message = mailer.sent[0]
    assert to == "owner@example.com"
    assert "2025 assessment" in message.subject
    assert "$32,000.00" in message.text


def test_township_is_cached_from_county(repo, mailer):
    prop = monitored_property(repo, township=None)

    run_assessment_checks(
        repo, FakeSource({PIN: county_record()}), mailer, datetime(2025, 5, 1, tzinfo=timezone.utc)
    )

    assert repo.get_property(prop.id).township == "Evanston"


def test_missing_parcel_and_source_failure_are_per_property_errors(repo, mailer):
    monitored_property(repo)
    now = datetime(2025, 5, 1, tzinfo=timezone.utc)

    missing = run_assessment_checks(repo, FakeSource({}), mailer, now)
    assert missing.errors == 1
    assert missing.results[0].error == "Property not found in Cook County"

    failed = run_assessment_checks(repo, FakeSource({}, fail=True), mailer, now)
    assert failed.errors == 1
    assert "503" in failed.results[0].error


def test_disabled_monitoring_is_not_checked(repo, mailer):
    prop = monitored_property(repo)
    prop.monitoring_enabled = False
    repo.update_property(prop)

    run = run_assessment_checks(repo, FakeSource({PIN: county_record()}), mailer, NOW)
    assert run.properties_checked == 0
