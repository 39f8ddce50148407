"""
Cook County Open Data client (Socrata SODA API).
Docs: https://dev.socrata.com/docs/queries/
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging
import re

import httpx

from overtaxed.core.config import Settings, settings as default_settings
from overtaxed.schemas.property import AssessmentRecord, CountyPropertyData

logger = logging.getLogger(__name__)

PARCEL_UNIVERSE = "tx2p-k2g9"
ASSESSED_VALUES = "uzyt-m557"

HISTORY_LIMIT = 20


class CookCountyError(Exception):
    pass


def normalize_pin(pin: str) -> str:
    return re.sub(r"[^0-9]", "", pin)


def is_valid_pin(pin: str) -> bool:
    return re.fullmatch(r"\d{14}", normalize_pin(pin)) is not None


def format_pin(pin: str) -> str:
    """XX-XX-XXX-XXX-XXXX; anything that is not 14 digits is returned as-is."""
    digits = normalize_pin(pin)
    if len(digits) != 14:
        return pin
    return f"{digits[:2]}-{digits[2:4]}-{digits[4:7]}-{digits[7:10]}-{digits[10:]}"


def _parse_value(raw: Any) -> Optional[float]:
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def parse_assessment_record(record: Dict[str, Any]) -> Optional[AssessmentRecord]:
    """Prefer board values over certified over mailed, per stage availability."""
    try:
        year = int(str(record.get("year")))
    except ValueError:
        return None

    stage = "mailed"
    land = _parse_value(record.get("mailed_land"))
    building = _parse_value(record.get("mailed_bldg"))
    total = _parse_value(record.get("mailed_tot"))

    for candidate in ("certified", "board"):
        if record.get(f"{candidate}_tot"):
            stage = candidate
            land = _parse_value(record.get(f"{candidate}_land")) or land
            building = _parse_value(record.get(f"{candidate}_bldg")) or building
            total = _parse_value(record.get(f"{candidate}_tot")) or total

    return AssessmentRecord(
        year=year,
        assessed_land_value=land,
        assessed_building_value=building,
        assessed_total_value=total,
        market_value=total * 10 if total else None,
        stage=stage,
    )


class AssessmentSource(ABC):
    @abstractmethod
    def get_property(self, pin: str) -> Optional[CountyPropertyData]:
        """None when the county has no parcel for the PIN; CookCountyError on transport failure."""


class CookCountyClient(AssessmentSource):
    def __init__(self, config: Settings = default_settings, client: Optional[httpx.Client] = None):
        headers = {"Accept": "application/json"}
        if config.COOK_COUNTY_APP_TOKEN:
            headers["X-App-Token"] = config.COOK_COUNTY_APP_TOKEN
        self._client = client or httpx.Client(
            base_url=config.COOK_COUNTY_BASE_URL,
            headers=headers,
            timeout=config.HTTP_TIMEOUT_SECONDS,
        )

    def _query(self, dataset: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            response = self._client.get(f"/{dataset}.json", params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Socrata API error {e.response.status_code} for {dataset}: {e.response.text[:500]}")
            raise CookCountyError(f"Socrata API error: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise CookCountyError(f"Socrata request failed: {e}") from e

    def get_property(self, pin: str) -> Optional[CountyPropertyData]:
        digits = normalize_pin(pin)
        parcels = self._query(PARCEL_UNIVERSE, {"$where": f"pin='{digits}'", "$limit": 1})
        if not parcels:
            return None

        rows = self._query(
            ASSESSED_VALUES,
            {"$where": f"pin='{digits}'", "$limit": HISTORY_LIMIT, "$order": "year DESC"},
        )
        history = [r for r in (parse_assessment_record(row) for row in rows) if r is not None]
        return CountyPropertyData(
            pin=digits,
            township=parcels[0].get("township_name") or None,
            assessment_history=history,
        )

    def close(self):
        self._client.close()
