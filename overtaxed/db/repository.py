from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
import logging
import threading

from overtaxed.schemas.appeal import Appeal, AppealStatus, ComparableProperty
from overtaxed.schemas.invoice import Invoice, InvoiceStatus, InvoiceType
from overtaxed.schemas.property import AssessmentHistory, Property
from overtaxed.schemas.user import SubscriptionTier, User

logger = logging.getLogger(__name__)

# A claim left behind by a crashed run stops blocking the invoice after this long.
COLLECTION_CLAIM_LEASE = timedelta(minutes=15)


class RepositoryError(Exception):
    pass


class NotFoundError(RepositoryError):
    pass


class DuplicateInvoiceError(RepositoryError):
    """An active performance-fee invoice already exists for the user."""


class Repository(ABC):
    """
    Persistence handle passed explicitly into every job and decision function.
    Reads return copies; state only changes through the methods below.
    """

    # Users
    @abstractmethod
    def add_user(self, user: User) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def list_users(self, tier: Optional[SubscriptionTier] = None) -> List[User]: ...

    # Properties
    @abstractmethod
    def add_property(self, prop: Property) -> Property: ...

    @abstractmethod
    def get_property(self, property_id: str) -> Optional[Property]: ...

    @abstractmethod
    def update_property(self, prop: Property) -> Property: ...

    @abstractmethod
    def list_properties(self, user_id: Optional[str] = None) -> List[Property]: ...

    @abstractmethod
    def list_monitored_properties(self) -> List[Property]: ...

    @abstractmethod
    def get_assessment_history(self, property_id: str) -> List[AssessmentHistory]: ...

    @abstractmethod
    def upsert_assessment_history(self, row: AssessmentHistory) -> AssessmentHistory: ...

    # Appeals
    @abstractmethod
    def add_appeal(self, appeal: Appeal) -> Appeal: ...

    @abstractmethod
    def get_appeal(self, appeal_id: str) -> Optional[Appeal]: ...

    @abstractmethod
    def update_appeal(self, appeal: Appeal) -> Appeal: ...

    @abstractmethod
    def list_appeals(self, user_id: Optional[str] = None) -> List[Appeal]: ...

    @abstractmethod
    def list_appeals_with_deadline_between(
        self, statuses: Iterable[AppealStatus], start: datetime, end: datetime
    ) -> List[Appeal]: ...

    @abstractmethod
    def add_comparable(self, appeal_id: str, comp: ComparableProperty) -> ComparableProperty: ...

    @abstractmethod
    def list_comparables(self, appeal_id: str) -> List[ComparableProperty]: ...

    # Invoices
    @abstractmethod
    def add_invoice(self, invoice: Invoice) -> Invoice: ...

    @abstractmethod
    def get_invoice(self, invoice_id: str) -> Optional[Invoice]: ...

    @abstractmethod
    def list_invoices(self, user_id: Optional[str] = None) -> List[Invoice]: ...

    @abstractmethod
    def list_overdue_invoices(self, now: datetime) -> List[Invoice]: ...

    @abstractmethod
    def find_active_performance_invoice(self, user_id: str) -> Optional[Invoice]: ...

    @abstractmethod
    def add_performance_invoices(self, user_id: str, invoices: List[Invoice]) -> List[Invoice]:
        """
        Insert the whole batch only if the user has no non-cancelled
        PERFORMANCE_FEE invoice; raises DuplicateInvoiceError otherwise.
        """

    @abstractmethod
    def claim_collection_notice(self, invoice_id: str, expected_sent: int, now: datetime) -> bool:
        """
        Reserve the next notice for one run. Succeeds only when the stored count
        still equals expected_sent and no unexpired claim is held.
        """

    @abstractmethod
    def release_collection_claim(self, invoice_id: str): ...

    @abstractmethod
    def record_collection_letter(self, invoice_id: str, expected_sent: int, sent_at: datetime) -> bool:
        """
        Compare-and-swap on collection_letters_sent: increments by one and
        stamps sent_at only when the stored count still equals expected_sent.
        Clears the claim either way.
        """


class InMemoryRepository(Repository):
    def __init__(self):
        self._lock = threading.Lock()
        self._users: Dict[str, User] = {}
        self._properties: Dict[str, Property] = {}
        self._history: Dict[Tuple[str, int], AssessmentHistory] = {}
        self._appeals: Dict[str, Appeal] = {}
        self._comparables: Dict[str, List[ComparableProperty]] = {}
        self._invoices: Dict[str, Invoice] = {}
        self._collection_claims: Dict[str, datetime] = {}

    def clear(self):
        with self._lock:
            self._users.clear()
            self._properties.clear()
            self._history.clear()
            self._appeals.clear()
            self._comparables.clear()
            self._invoices.clear()
            self._collection_claims.clear()

    # Users

    def add_user(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user.model_copy(deep=True)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def list_users(self, tier: Optional[SubscriptionTier] = None) -> List[User]:
        return [
            u.model_copy(deep=True)
            for u in self._users.values()
            if tier is None or u.subscription_tier == tier
        ]

    # Properties

    def add_property(self, prop: Property) -> Property:
        with self._lock:
            self._properties[prop.id] = prop.model_copy(deep=True)
        return prop

    def get_property(self, property_id: str) -> Optional[Property]:
        prop = self._properties.get(property_id)
        return prop.model_copy(deep=True) if prop else None

    def update_property(self, prop: Property) -> Property:
        with self._lock:
            if prop.id not in self._properties:
                raise NotFoundError(f"Property {prop.id} not found")
            self._properties[prop.id] = prop.model_copy(deep=True)
        return prop

    def list_properties(self, user_id: Optional[str] = None) -> List[Property]:
        return [
            p.model_copy(deep=True)
            for p in self._properties.values()
            if user_id is None or p.user_id == user_id
        ]

    def list_monitored_properties(self) -> List[Property]:
        return [p.model_copy(deep=True) for p in self._properties.values() if p.monitoring_enabled]

    def get_assessment_history(self, property_id: str) -> List[AssessmentHistory]:
        rows = [h for (pid, _), h in self._history.items() if pid == property_id]
        return [h.model_copy() for h in sorted(rows, key=lambda h: h.tax_year, reverse=True)]

    def upsert_assessment_history(self, row: AssessmentHistory) -> AssessmentHistory:
        with self._lock:
            self._history[(row.property_id, row.tax_year)] = row.model_copy()
        return row

    # Appeals

    def add_appeal(self, appeal: Appeal) -> Appeal:
        with self._lock:
            self._appeals[appeal.id] = appeal.model_copy(deep=True)
        return appeal

    def get_appeal(self, appeal_id: str) -> Optional[Appeal]:
        appeal = self._appeals.get(appeal_id)
        return appeal.model_copy(deep=True) if appeal else None

    def update_appeal(self, appeal: Appeal) -> Appeal:
        with self._lock:
            if appeal.id not in self._appeals:
                raise NotFoundError(f"Appeal {appeal.id} not found")
            self._appeals[appeal.id] = appeal.model_copy(deep=True)
        return appeal

    def list_appeals(self, user_id: Optional[str] = None) -> List[Appeal]:
        return [
            a.model_copy(deep=True)
            for a in self._appeals.values()
            if user_id is None or a.user_id == user_id
        ]

    def list_appeals_with_deadline_between(
        self, statuses: Iterable[AppealStatus], start: datetime, end: datetime
    ) -> List[Appeal]:
        wanted = set(statuses)
        return [
            a.model_copy(deep=True)
            for a in self._appeals.values()
            if a.status in wanted and a.filing_deadline is not None and start <= a.filing_deadline <= end
        ]

    def add_comparable(self, appeal_id: str, comp: ComparableProperty) -> ComparableProperty:
        with self._lock:
            self._comparables.setdefault(appeal_id, []).append(comp.model_copy())
        return comp

    def list_comparables(self, appeal_id: str) -> List[ComparableProperty]:
        return [c.model_copy() for c in self._comparables.get(appeal_id, [])]

    # Invoices

    def add_invoice(self, invoice: Invoice) -> Invoice:
        with self._lock:
            self._invoices[invoice.id] = invoice.model_copy(deep=True)
        return invoice

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        invoice = self._invoices.get(invoice_id)
        return invoice.model_copy(deep=True) if invoice else None

    def list_invoices(self, user_id: Optional[str] = None) -> List[Invoice]:
        return [
            i.model_copy(deep=True)
            for i in self._invoices.values()
            if user_id is None or i.user_id == user_id
        ]

    def list_overdue_invoices(self, now: datetime) -> List[Invoice]:
        return [
            i.model_copy(deep=True)
            for i in self._invoices.values()
            if i.status == InvoiceStatus.PENDING and i.due_date < now
        ]

    def _active_performance_invoice(self, user_id: str) -> Optional[Invoice]:
        return next(
            (
                i for i in self._invoices.values()
                if i.user_id == user_id
                and i.invoice_type == InvoiceType.PERFORMANCE_FEE
                and i.status != InvoiceStatus.CANCELLED
            ),
            None,
        )

    def find_active_performance_invoice(self, user_id: str) -> Optional[Invoice]:
        existing = self._active_performance_invoice(user_id)
        return existing.model_copy(deep=True) if existing else None

    def add_performance_invoices(self, user_id: str, invoices: List[Invoice]) -> List[Invoice]:
        with self._lock:
            if self._active_performance_invoice(user_id) is not None:
                raise DuplicateInvoiceError(f"User {user_id} already has a performance fee invoice")
            for invoice in invoices:
                self._invoices[invoice.id] = invoice.model_copy(deep=True)
        logger.info(f"Stored {len(invoices)} performance fee invoice(s) for user {user_id}")
        return invoices

    def claim_collection_notice(self, invoice_id: str, expected_sent: int, now: datetime) -> bool:
        with self._lock:
            invoice = self._invoices.get(invoice_id)
            if invoice is None:
                raise NotFoundError(f"Invoice {invoice_id} not found")
            if invoice.collection_letters_sent != expected_sent:
                return False
            claimed_at = self._collection_claims.get(invoice_id)
            if claimed_at is not None and now - claimed_at < COLLECTION_CLAIM_LEASE:
                return False
            self._collection_claims[invoice_id] = now
            return True

    def release_collection_claim(self, invoice_id: str):
        with self._lock:
            self._collection_claims.pop(invoice_id, None)

    def record_collection_letter(self, invoice_id: str, expected_sent: int, sent_at: datetime) -> bool:
        with self._lock:
            self._collection_claims.pop(invoice_id, None)
            invoice = self._invoices.get(invoice_id)
            if invoice is None:
                raise NotFoundError(f"Invoice {invoice_id} not found")
            if invoice.collection_letters_sent != expected_sent:
                return False
            invoice.collection_letters_sent += 1
            invoice.last_collection_letter_sent_at = sent_at
            return True


# Global Accessor
repository = InMemoryRepository()


def get_repository() -> Repository:
    return repository
