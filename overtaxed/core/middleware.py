from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import hashlib
from overtaxed.core.audit import audit_repo
from overtaxed.schemas.audit import AuditLogEntry, AuditStatus
import logging
from typing import Callable

logger = logging.getLogger(__name__)

# First matching prefix wins
ACTION_TYPES = [
    ("/api/cron/performance-invoices", "CRON_PERFORMANCE_INVOICES"),
    ("/api/cron/invoice-collections", "CRON_INVOICE_COLLECTIONS"),
    ("/api/cron/deadline-reminders", "CRON_DEADLINE_REMINDERS"),
    ("/api/cron/assessment-checks", "CRON_ASSESSMENT_CHECKS"),
    ("/api/admin", "ADMIN"),
    ("/api/properties/lookup-deadline", "DEADLINE_LOOKUP"),
    ("/api/schedule", "DEADLINE_LOOKUP"),
    ("/api/appeals", "APPEAL"),
    ("/api/properties", "PROPERTY"),
    ("/health", "HEALTH_CHECK"),
]


def action_type_for(path: str) -> str:
    return next((action for prefix, action in ACTION_TYPES if path.startswith(prefix)), "UNKNOWN")


def actor_for(request: Request) -> str:
    # Never record the credential itself, only which kind was presented
    if request.url.path.startswith("/api/cron") and request.headers.get("Authorization"):
        return "cron"
    if request.headers.get("X-Admin-Key"):
        return "admin"
    return "anonymous"


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        endpoint = request.url.path

        request_body = await request.body()
        input_hash = hashlib.sha256(request_body).hexdigest()

        status = AuditStatus.FAILURE
        output_hash = None
        try:
            response = await call_next(request)
            if 200 <= response.status_code < 300:
                status = AuditStatus.SUCCESS

            response_body = b""
            async for chunk in response.body_iterator:
                response_body += chunk
            output_hash = hashlib.sha256(response_body).hexdigest()

            response = Response(
                content=response_body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )
        finally:
            try:
                audit_repo.save(AuditLogEntry(
                    endpoint=endpoint,
                    method=request.method,
                    action_type=action_type_for(endpoint),
                    actor=actor_for(request),
                    input_hash=input_hash,
                    output_hash=output_hash,
                    status=status,
                ))
            except Exception as log_error:
                logger.error(f"Audit Logging Failed: {log_error}")

        return response
