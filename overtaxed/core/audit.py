from abc import ABC, abstractmethod
from typing import List, Optional
from overtaxed.schemas.audit import AuditLogEntry
import logging
import threading

logger = logging.getLogger(__name__)


class AuditRepository(ABC):
    @abstractmethod
    def save(self, entry: AuditLogEntry):
        pass

    @abstractmethod
    def get_all(self, action_type: Optional[str] = None) -> List[AuditLogEntry]:
        """Entries in arrival order, optionally only one action type (e.g. CRON_INVOICE_COLLECTIONS)."""


class InMemoryAuditRepository(AuditRepository):
    def __init__(self):
        self._entries: List[AuditLogEntry] = []
        self._lock = threading.Lock()

    def save(self, entry: AuditLogEntry):
        with self._lock:
            self._entries.append(entry)
        # cron and admin calls at INFO, the rest at DEBUG
        log = logger.info if entry.actor in ("cron", "admin") else logger.debug
        log(
            f"{entry.action_type} by {entry.actor}: {entry.method} {entry.endpoint} "
            f"-> {entry.status.value} (event {entry.event_id})"
        )

    def get_all(self, action_type: Optional[str] = None) -> List[AuditLogEntry]:
        with self._lock:
            return [e for e in self._entries if action_type is None or e.action_type == action_type]

    def clear(self):
        with self._lock:
            self._entries.clear()


audit_repo = InMemoryAuditRepository()
