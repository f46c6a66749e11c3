"""
In-memory repository adapter - Implements RegistryRepository protocol.

Holds every record family in plain dicts. While a transaction is open,
each write first journals the previous value of the key it touches; if
the enclosed operation raises, the journal is replayed in reverse,
giving the same all-or-nothing behaviour as the PostgreSQL adapter.
Records are immutable, so only the touched keys are ever copied.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from src.domain.models import Business, Customer, Document, DocumentType, VerificationRecord
from src.domain.ports import IdSequence

logger = logging.getLogger(__name__)

# Journal marker for keys that did not exist before the write
_ABSENT = object()


@dataclass
class _RegistryState:
    next_ids: dict[IdSequence, int] = field(
        default_factory=lambda: {sequence: 1 for sequence in IdSequence}
    )
    customers: dict[int, Customer] = field(default_factory=dict)
    businesses: dict[int, Business] = field(default_factory=dict)
    document_types: dict[str, DocumentType] = field(default_factory=dict)
    documents: dict[tuple[int, str], Document] = field(default_factory=dict)
    verification_history: dict[int, list[VerificationRecord]] = field(default_factory=dict)
    business_customers: dict[int, list[int]] = field(default_factory=dict)


class InMemoryRegistryRepository:
    """
    Implements RegistryRepository protocol with process-local dicts.

    Uses structural subtyping - no explicit inheritance from Protocol.
    A transaction opened inside another acts as a savepoint: its writes
    are undone if it raises, and again if the outer transaction does.
    """

    def __init__(self) -> None:
        self._state = _RegistryState()
        self._journal: list[tuple[dict, Any, Any]] | None = None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        outermost = self._journal is None
        if outermost:
            self._journal = []
        mark = len(self._journal)
        try:
            yield
        except BaseException:
            self._rollback(mark)
            raise
        finally:
            if outermost:
                self._journal = None

    def _rollback(self, mark: int) -> None:
        undone = self._journal[mark:]
        for mapping, key, previous in reversed(undone):
            if previous is _ABSENT:
                mapping.pop(key, None)
            else:
                mapping[key] = previous
        del self._journal[mark:]
        logger.debug("Transaction rolled back (%d write(s) undone)", len(undone))

    def _remember(self, mapping: dict, key: Any) -> None:
        if self._journal is None:
            return
        previous = mapping.get(key, _ABSENT)
        if isinstance(previous, list):
            previous = list(previous)
        self._journal.append((mapping, key, previous))

    def peek_id(self, sequence: IdSequence) -> int:
        return self._state.next_ids[sequence]

    def allocate_id(self, sequence: IdSequence) -> int:
        self._remember(self._state.next_ids, sequence)
        allocated = self._state.next_ids[sequence]
        self._state.next_ids[sequence] = allocated + 1
        return allocated

    def get_customer(self, customer_id: int) -> Customer | None:
        return self._state.customers.get(customer_id)

    def save_customer(self, customer: Customer) -> None:
        self._remember(self._state.customers, customer.id)
        self._state.customers[customer.id] = customer

    def get_business(self, business_id: int) -> Business | None:
        return self._state.businesses.get(business_id)

    def save_business(self, business: Business) -> None:
        self._remember(self._state.businesses, business.id)
        self._state.businesses[business.id] = business

    def get_document_type(self, name: str) -> DocumentType | None:
        return self._state.document_types.get(name)

    def save_document_type(self, document_type: DocumentType) -> None:
        self._remember(self._state.document_types, document_type.name)
        self._state.document_types[document_type.name] = document_type

    def get_document(self, customer_id: int, type_name: str) -> Document | None:
        return self._state.documents.get((customer_id, type_name))

    def save_document(self, document: Document) -> None:
        key = (document.customer_id, document.type_name)
        self._remember(self._state.documents, key)
        self._state.documents[key] = document

    def get_verification_history(self, customer_id: int) -> list[VerificationRecord]:
        # Copy so callers cannot mutate stored history
        return list(self._state.verification_history.get(customer_id, []))

    def append_verification(self, customer_id: int, record: VerificationRecord) -> None:
        self._remember(self._state.verification_history, customer_id)
        self._state.verification_history.setdefault(customer_id, []).append(record)

    def get_business_customers(self, business_id: int) -> list[int]:
        return list(self._state.business_customers.get(business_id, []))

    def append_business_customer(self, business_id: int, customer_id: int) -> None:
        self._remember(self._state.business_customers, business_id)
        self._state.business_customers.setdefault(business_id, []).append(customer_id)
