"""
Registry domain service - KYC registry state machine.

This module contains the core business logic of the registry: how
customer, business, document-type, document and verification records
are created, mutated and queried, and the authorization check gating
every mutation.

Execution Model
===============

Operations are delivered one at a time by the host together with the
authenticated caller principal. Each mutating operation:

1. Resolves the records its access rule needs (read-only)
2. Runs the authorization check; a denial aborts with no writes
3. Validates existence / uniqueness of the keys it touches
4. Writes, inside a single repository transaction

Any RegistryError raised at steps 2-4 propagates out of the repository
transaction, which discards every write of the operation. Id counters
are advanced inside the same transaction as the insert they guard, so a
failed creation never consumes an id.

Soft Delete
===========

Revoked businesses and deactivated document types stay in the store
with their status flag cleared; nothing is ever physically removed.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from .authorization import Authorizer, Operation
from .exceptions import AlreadyExists, DocumentAlreadyExists, NotFound
from .models import Business, Customer, Document, DocumentType, VerificationRecord
from .ports import BlockClock, IdSequence, RegistryRepository

logger = logging.getLogger(__name__)


@dataclass
class RegistryService:
    """
    Domain service for the KYC registry.

    Attributes:
        repository: Storage port for the record families and counters
        clock: Host ledger port supplying the current block height
        owner: Registry owner principal, fixed at deployment
    """

    repository: RegistryRepository
    clock: BlockClock
    owner: str
    authorizer: Authorizer = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.authorizer = Authorizer(owner=self.owner)

    def invoke(self, operation: Operation, caller: str, *args: Any) -> Any:
        """
        Dispatch a named operation with positional arguments.

        Read-only operations ignore the caller.

        Raises:
            RegistryError: Whatever the dispatched operation raises
        """
        handler = getattr(self, operation.name.lower())
        if operation.read_only:
            return handler(*args)
        return handler(caller, *args)

    # ------------------------------------------------------------------
    # Customers and businesses
    # ------------------------------------------------------------------

    def add_customer(self, caller: str, name: str, date_of_birth: int, country: str) -> int:
        """
        Register the caller as a new customer.

        Returns:
            The new customer id
        """
        self.authorizer.require(Operation.ADD_CUSTOMER, caller)
        with self.repository.transaction():
            customer_id = self.repository.allocate_id(IdSequence.CUSTOMER)
            self.repository.save_customer(
                Customer(
                    id=customer_id,
                    name=name,
                    date_of_birth=date_of_birth,
                    country=country,
                    owner=caller,
                )
            )
        logger.info("Customer %d added by %s", customer_id, caller)
        return customer_id

    def approve_business(self, caller: str, principal: str, name: str, category: str) -> int:
        """
        Approve a new business owned by `principal`.

        Approving the same principal twice creates two businesses.

        Returns:
            The new business id

        Raises:
            Unauthorized: If the caller is not the registry owner
        """
        self.authorizer.require(Operation.APPROVE_BUSINESS, caller)
        with self.repository.transaction():
            business_id = self.repository.allocate_id(IdSequence.BUSINESS)
            self.repository.save_business(
                Business(id=business_id, owner=principal, name=name, category=category)
            )
        logger.info("Business %d approved for %s", business_id, principal)
        return business_id

    def revoke_business(self, caller: str, business_id: int) -> bool:
        """
        Clear the approval flag of a business.

        Raises:
            Unauthorized: If the caller is not the registry owner
            NotFound: If the business does not exist
        """
        self.authorizer.require(Operation.REVOKE_BUSINESS, caller)
        with self.repository.transaction():
            business = self._business_or_raise(business_id)
            self.repository.save_business(replace(business, approved=False))
        logger.info("Business %d revoked", business_id)
        return True

    def update_kyc_level(self, caller: str, customer_id: int, level: int) -> bool:
        """
        Overwrite a customer's KYC level.

        Raises:
            Unauthorized: If the caller is not the registry owner
            NotFound: If the customer does not exist
        """
        self.authorizer.require(Operation.UPDATE_KYC_LEVEL, caller)
        with self.repository.transaction():
            customer = self._customer_or_raise(customer_id)
            self.repository.save_customer(replace(customer, kyc_level=level))
        logger.info("Customer %d KYC level set to %d", customer_id, level)
        return True

    # ------------------------------------------------------------------
    # Document types and documents
    # ------------------------------------------------------------------

    def register_document_type(
        self, caller: str, name: str, required_level: int, expiry_blocks: int
    ) -> bool:
        """
        Register a new active document type.

        Raises:
            Unauthorized: If the caller is not the registry owner
            AlreadyExists: If a document type with this name exists
        """
        self.authorizer.require(Operation.REGISTER_DOCUMENT_TYPE, caller)
        with self.repository.transaction():
            if self.repository.get_document_type(name) is not None:
                raise AlreadyExists(f"document type {name!r}")
            self.repository.save_document_type(
                DocumentType(name=name, required_level=required_level, expiry_blocks=expiry_blocks)
            )
        logger.info("Document type %r registered", name)
        return True

    def deactivate_document_type(self, caller: str, name: str) -> bool:
        """
        Mark a document type inactive.

        Raises:
            Unauthorized: If the caller is not the registry owner
            NotFound: If no document type with this name exists
        """
        self.authorizer.require(Operation.DEACTIVATE_DOCUMENT_TYPE, caller)
        with self.repository.transaction():
            document_type = self.repository.get_document_type(name)
            if document_type is None:
                raise NotFound(f"document type {name!r}")
            self.repository.save_document_type(replace(document_type, active=False))
        logger.info("Document type %r deactivated", name)
        return True

    def upload_customer_document(
        self, caller: str, customer_id: int, type_name: str, document_hash: bytes
    ) -> bool:
        """
        Store the hash of a customer's document at the current block height.

        Documents are immutable: a second upload for the same
        (customer, type) pair is rejected. The document type must be
        registered but may be inactive; validity is a query-time concern
        (see is_document_valid()).

        Raises:
            Unauthorized: If the caller does not own the customer record
            NotFound: If the document type is not registered
            DocumentAlreadyExists: If the pair already has a document
        """
        with self.repository.transaction():
            customer = self.repository.get_customer(customer_id)
            self.authorizer.require(
                Operation.UPLOAD_CUSTOMER_DOCUMENT, caller, customer=customer
            )
            if self.repository.get_document_type(type_name) is None:
                raise NotFound(f"document type {type_name!r}")
            if self.repository.get_document(customer_id, type_name) is not None:
                raise DocumentAlreadyExists(f"customer {customer_id} / {type_name!r}")
            self.repository.save_document(
                Document(
                    customer_id=customer_id,
                    type_name=type_name,
                    hash=bytes(document_hash),
                    uploaded_at=self.clock.current_height(),
                )
            )
        logger.info("Customer %d uploaded %r document", customer_id, type_name)
        return True

    # ------------------------------------------------------------------
    # Verification workflow
    # ------------------------------------------------------------------

    def verify_customer(self, caller: str, customer_id: int, business_id: int) -> bool:
        """Record that an approved business verified a customer."""
        return self._record_verification(
            Operation.VERIFY_CUSTOMER, caller, customer_id, business_id, True
        )

    def update_customer_verification(
        self, caller: str, customer_id: int, business_id: int, verified: bool
    ) -> bool:
        """
        Record an explicit verified / unverified assertion.

        Raises:
            Unauthorized: If the business is missing, unapproved or not
                owned by the caller
            NotFound: If the customer does not exist
        """
        return self._record_verification(
            Operation.UPDATE_CUSTOMER_VERIFICATION, caller, customer_id, business_id, verified
        )

    def link_customer_to_business(self, caller: str, customer_id: int, business_id: int) -> bool:
        """
        Add a customer to a business's customer list.

        Raises:
            Unauthorized: If the business is missing, unapproved or not
                owned by the caller
            NotFound: If the customer does not exist
            AlreadyExists: If the customer is already linked
        """
        with self.repository.transaction():
            business = self.repository.get_business(business_id)
            self.authorizer.require(
                Operation.LINK_CUSTOMER_TO_BUSINESS, caller, business=business
            )
            self._customer_or_raise(customer_id)
            if customer_id in self.repository.get_business_customers(business_id):
                raise AlreadyExists(f"customer {customer_id} linked to business {business_id}")
            self.repository.append_business_customer(business_id, customer_id)
        logger.info("Customer %d linked to business %d", customer_id, business_id)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_customer_details(self, customer_id: int) -> Customer | None:
        return self.repository.get_customer(customer_id)

    def get_business_details(self, business_id: int) -> Business | None:
        return self.repository.get_business(business_id)

    def get_document_type_info(self, name: str) -> DocumentType | None:
        return self.repository.get_document_type(name)

    def get_customer_document(self, customer_id: int, type_name: str) -> Document | None:
        return self.repository.get_document(customer_id, type_name)

    def get_customer_kyc_level(self, customer_id: int) -> int | None:
        customer = self.repository.get_customer(customer_id)
        return customer.kyc_level if customer is not None else None

    def get_customer_verification_history(self, customer_id: int) -> list[VerificationRecord]:
        return self.repository.get_verification_history(customer_id)

    def get_business_customers(self, business_id: int) -> list[int]:
        return self.repository.get_business_customers(business_id)

    def is_customer_verified(self, customer_id: int) -> bool:
        """Return the flag of the most recent verification record, False if none."""
        history = self.repository.get_verification_history(customer_id)
        return history[-1].verified if history else False

    def is_document_valid(self, customer_id: int, type_name: str) -> bool:
        """
        Check a stored document against its type at the current height.

        A document is valid when its type is still active, the customer's
        KYC level meets the type's required level, and fewer than
        expiry_blocks blocks have passed since upload.
        """
        document = self.repository.get_document(customer_id, type_name)
        document_type = self.repository.get_document_type(type_name)
        customer = self.repository.get_customer(customer_id)
        if document is None or document_type is None or customer is None:
            return False
        if not document_type.active:
            return False
        if customer.kyc_level < document_type.required_level:
            return False
        return self.clock.current_height() < document.expires_at(document_type)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_verification(
        self,
        operation: Operation,
        caller: str,
        customer_id: int,
        business_id: int,
        verified: bool,
    ) -> bool:
        with self.repository.transaction():
            business = self.repository.get_business(business_id)
            self.authorizer.require(operation, caller, business=business)
            self._customer_or_raise(customer_id)
            self.repository.append_verification(
                customer_id,
                VerificationRecord(
                    business_id=business_id,
                    verified=verified,
                    block_height=self.clock.current_height(),
                ),
            )
        logger.info(
            "Business %d marked customer %d verified=%s", business_id, customer_id, verified
        )
        return True

    def _customer_or_raise(self, customer_id: int) -> Customer:
        customer = self.repository.get_customer(customer_id)
        if customer is None:
            raise NotFound(f"customer {customer_id}")
        return customer

    def _business_or_raise(self, business_id: int) -> Business:
        business = self.repository.get_business(business_id)
        if business is None:
            raise NotFound(f"business {business_id}")
        return business
