"""
Registry records - Immutable value types for the five record families.

Records are frozen dataclasses; state changes produce a new record via
dataclasses.replace() which the repository then stores under the same key.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Customer:
    """A registered customer, owned by the principal that created it."""

    id: int
    name: str
    date_of_birth: int  # YYYYMMDD
    country: str
    owner: str
    kyc_level: int = 0


@dataclass(frozen=True)
class Business:
    """
    A business approved by the registry owner to act as a verifier.

    Revocation flips `approved` to False; the record is never removed.
    """

    id: int
    owner: str
    name: str
    category: str
    approved: bool = True


@dataclass(frozen=True)
class DocumentType:
    """A named category of identity document."""

    name: str
    required_level: int
    expiry_blocks: int
    active: bool = True


@dataclass(frozen=True)
class Document:
    """Content hash of a customer's document, keyed by (customer_id, type_name)."""

    customer_id: int
    type_name: str
    hash: bytes
    uploaded_at: int  # block height

    def expires_at(self, document_type: DocumentType) -> int:
        return self.uploaded_at + document_type.expiry_blocks


@dataclass(frozen=True)
class VerificationRecord:
    """One business assertion about a customer's verified status."""

    business_id: int
    verified: bool
    block_height: int
