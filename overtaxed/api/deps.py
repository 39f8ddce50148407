from datetime import datetime, timezone
from typing import Iterator, Optional
import logging
import secrets

from fastapi import Header, HTTPException

from overtaxed.core.config import settings
from overtaxed.core.cook_county import AssessmentSource, CookCountyClient

logger = logging.getLogger(__name__)


def get_now() -> datetime:
    return datetime.now(timezone.utc)


def get_assessment_source() -> Iterator[AssessmentSource]:
    client = CookCountyClient(settings)
    try:
        yield client
    finally:
        client.close()


def verify_cron_secret(authorization: Optional[str] = Header(None)):
    """Bearer CRON_SECRET; refuses all work when the secret is not configured."""
    if not settings.CRON_SECRET:
        logger.error("CRON_SECRET is not configured; rejecting cron request")
        raise HTTPException(status_code=503, detail="Cron secret not configured")
    if not authorization or not secrets.compare_digest(authorization, f"Bearer {settings.CRON_SECRET}"):
        raise HTTPException(status_code=401, detail="Unauthorized")


def verify_admin_key(x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key")):
    if not settings.ADMIN_API_KEY:
        logger.error("ADMIN_API_KEY is not configured; rejecting admin request")
        raise HTTPException(status_code=503, detail="Admin key not configured")
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.ADMIN_API_KEY):
        raise HTTPException(status_code=401, detail="Unauthorized")
