"""
Automated assessment checks for monitored properties.

Only runs during reassessment season, and only for properties whose township
has an active appeal window. Properties with no township yet are checked once
so the township can be cached.
"""
from datetime import datetime
from typing import List, Optional
import logging

from overtaxed.core.config import Settings, settings as default_settings
from overtaxed.core.cook_county import AssessmentSource, format_pin
from overtaxed.core.mailer import EmailDeliveryError, Mailer, render_email
from overtaxed.core.schedule import get_active_township_names_for_checks, is_in_reassessment_season
from overtaxed.core.township_deadlines import normalize_township
from overtaxed.db.repository import Repository
from overtaxed.schemas.jobs import AssessmentCheckResult, AssessmentCheckRunResult
from overtaxed.schemas.property import AssessmentHistory, Property

logger = logging.getLogger(__name__)

ASSESSMENT_CHECK_SOURCE = "Cook County Open Data (automated check)"


def select_properties_for_checks(properties: List[Property], now: datetime) -> List[Property]:
    active = get_active_township_names_for_checks(now)
    selected = []
    for prop in properties:
        key = normalize_township(prop.township)
        if key is None or key in active:
            selected.append(prop)
    return selected


def _check_property(
    repo: Repository,
    source: AssessmentSource,
    mailer: Optional[Mailer],
    prop: Property,
    now: datetime,
    config: Settings,
) -> AssessmentCheckResult:
    result = AssessmentCheckResult(property_id=prop.id, pin=prop.pin)

    county = source.get_property(prop.pin)
    if county is None:
        result.error = "Property not found in Cook County"
        return result

    if county.township and not prop.township:
        prop.township = county.township

    history = sorted(county.assessment_history, key=lambda r: r.year, reverse=True)
    if not history:
        prop.last_checked_at = now
        repo.update_property(prop)
        result.updated = True
        return result

    stored = repo.get_assessment_history(prop.id)
    existing_years = {row.tax_year for row in stored}
    previous_latest = stored[0].assessment_value if stored else None

    for i, record in enumerate(history):
        current = record.assessed_total_value or 0.0
        prior = history[i + 1].assessed_total_value if i + 1 < len(history) else None
        change_amount = change_percent = None
        if prior:
            change_amount = current - prior
            change_percent = change_amount / prior * 100

        repo.upsert_assessment_history(AssessmentHistory(
            property_id=prop.id,
            tax_year=record.year,
            assessment_value=current,
            land_value=record.assessed_land_value,
            improvement_value=record.assessed_building_value,
            market_value=record.market_value,
            change_amount=change_amount,
            change_percent=change_percent,
            source=ASSESSMENT_CHECK_SOURCE,
        ))
        if record.year not in existing_years:
            result.new_years.append(record.year)
            result.updated = True

    latest = history[0]
    latest_value = latest.assessed_total_value or 0.0
    if previous_latest is not None and latest_value > previous_latest:
        result.increase_detected = True

    prop.last_checked_at = now
    prop.current_assessment_value = latest_value
    prop.current_land_value = latest.assessed_land_value
    prop.current_improvement_value = latest.assessed_building_value
    if latest.market_value is not None:
        prop.current_market_value = latest.market_value
    repo.update_property(prop)

    if result.increase_detected and mailer is not None:
        user = repo.get_user(prop.user_id)
        if user and user.email:
            message = render_email(
                "assessment_increase",
                user_name=user.name,
                property_address=prop.address,
                pin=format_pin(prop.pin),
                tax_year=latest.year,
                previous_value=previous_latest,
                new_value=latest_value,
                property_link=config.property_link(prop.id),
            )
            try:
                mailer.send(user.email, message)
            except EmailDeliveryError as e:
                logger.error(f"Assessment increase email for property {prop.id} failed: {e}")

    return result


def run_assessment_checks(
    repo: Repository,
    source: AssessmentSource,
    mailer: Optional[Mailer],
    now: datetime,
    config: Settings = default_settings,
) -> AssessmentCheckRunResult:
    if not is_in_reassessment_season(now):
        return AssessmentCheckRunResult(
            skipped=True,
            skip_reason="Outside reassessment season (Jan-Aug).",
        )

    properties = select_properties_for_checks(repo.list_monitored_properties(), now)
    run = AssessmentCheckRunResult(properties_checked=len(properties))

    for prop in properties:
        try:
            result = _check_property(repo, source, mailer, prop, now, config)
        except Exception as e:
            logger.error(f"Assessment check failed for property {prop.id}: {e}")
            result = AssessmentCheckResult(property_id=prop.id, pin=prop.pin, error=str(e))
        run.results.append(result)

    run.updated = sum(1 for r in run.results if r.updated)
    run.increases_detected = sum(1 for r in run.results if r.increase_detected)
    run.errors = sum(1 for r in run.results if r.error)
    logger.info(
        f"Assessment checks COMPLETED. Properties: {run.properties_checked}, "
        f"updated: {run.updated}, increases: {run.increases_detected}, errors: {run.errors}"
    )
    return run
