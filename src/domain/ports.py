"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.

The registry only needs key-addressable get/set semantics from storage,
plus a transaction scope that discards every write when the enclosed
operation raises.
"""

from contextlib import AbstractContextManager
from enum import Enum
from typing import Protocol

from .models import Business, Customer, Document, DocumentType, VerificationRecord


class IdSequence(str, Enum):
    """
    Monotonic id counters owned by the registry.

    Both start at 1 and are advanced exactly once per successful creation,
    inside the same transaction as the insert they guard.
    """

    CUSTOMER = "customer"
    BUSINESS = "business"


class RegistryRepository(Protocol):
    """Port interface for registry persistence."""

    def transaction(self) -> AbstractContextManager[None]:
        """
        Open an all-or-nothing scope for one registry operation.

        Any exception raised inside the scope discards every write made
        within it and is re-raised to the caller. A scope opened inside
        another acts as a savepoint of the outer one.
        """
        ...

    def peek_id(self, sequence: IdSequence) -> int:
        """Return the id the next allocation on `sequence` would hand out."""
        ...

    def allocate_id(self, sequence: IdSequence) -> int:
        """Return the next id on `sequence` and advance the counter."""
        ...

    def get_customer(self, customer_id: int) -> Customer | None: ...

    def save_customer(self, customer: Customer) -> None: ...

    def get_business(self, business_id: int) -> Business | None: ...

    def save_business(self, business: Business) -> None: ...

    def get_document_type(self, name: str) -> DocumentType | None: ...

    def save_document_type(self, document_type: DocumentType) -> None: ...

    def get_document(self, customer_id: int, type_name: str) -> Document | None: ...

    def save_document(self, document: Document) -> None: ...

    def get_verification_history(self, customer_id: int) -> list[VerificationRecord]:
        """Return the customer's verification records, oldest first."""
        ...

    def append_verification(self, customer_id: int, record: VerificationRecord) -> None: ...

    def get_business_customers(self, business_id: int) -> list[int]:
        """Return linked customer ids in link order."""
        ...

    def append_business_customer(self, business_id: int, customer_id: int) -> None: ...


class BlockClock(Protocol):
    """Port interface for the host ledger's block height."""

    def current_height(self) -> int:
        """Return the height of the block currently being processed."""
        ...
