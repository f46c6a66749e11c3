"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, Field

from src.domain.models import Business, Customer, Document, DocumentType, VerificationRecord

# Upper bounds of the PostgreSQL column types
BIGINT_MAX = 2**63 - 1
INTEGER_MAX = 2**31 - 1

# Document type names are addressed by a single path segment
DOCUMENT_TYPE_NAME_PATTERN = r"^[^/]+$"


class AddCustomerRequest(BaseModel):
    """Request model for customer registration."""

    name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: int = Field(..., ge=0, le=BIGINT_MAX, description="Date of birth as YYYYMMDD")
    country: str = Field(..., min_length=1, max_length=50)


class ApproveBusinessRequest(BaseModel):
    """Request model for business approval."""

    principal: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=50)


class RegisterDocumentTypeRequest(BaseModel):
    """Request model for document type registration."""

    name: str = Field(..., min_length=1, max_length=50, pattern=DOCUMENT_TYPE_NAME_PATTERN)
    required_level: int = Field(..., ge=0, le=INTEGER_MAX)
    expiry_blocks: int = Field(..., ge=0, le=BIGINT_MAX, description="Validity period in blocks")


class UploadDocumentRequest(BaseModel):
    """Request model for customer document upload."""

    type_name: str = Field(..., min_length=1, max_length=50, pattern=DOCUMENT_TYPE_NAME_PATTERN)
    hash: str = Field(
        ...,
        pattern=r"^[0-9a-fA-F]{64}$",
        description="32-byte content digest, hex encoded",
    )


class UpdateKycLevelRequest(BaseModel):
    """Request model for KYC level update."""

    level: int = Field(..., ge=0, le=INTEGER_MAX)


class VerifyCustomerRequest(BaseModel):
    """Request model for verify-customer."""

    business_id: int = Field(..., ge=1, le=BIGINT_MAX)


class UpdateVerificationRequest(BaseModel):
    """Request model for update-customer-verification."""

    business_id: int = Field(..., ge=1, le=BIGINT_MAX)
    verified: bool


class LinkCustomerRequest(BaseModel):
    """Request model for link-customer-to-business."""

    customer_id: int = Field(..., ge=1, le=BIGINT_MAX)


class IdResponse(BaseModel):
    """Response model for operations that allocate an id."""

    id: int


class OkResponse(BaseModel):
    """Response model for mutations returning boolean true."""

    ok: bool = True


class CustomerResponse(BaseModel):
    """Customer record."""

    id: int
    name: str
    date_of_birth: int
    country: str
    owner: str
    kyc_level: int

    @classmethod
    def from_record(cls, customer: Customer) -> "CustomerResponse":
        return cls(
            id=customer.id,
            name=customer.name,
            date_of_birth=customer.date_of_birth,
            country=customer.country,
            owner=customer.owner,
            kyc_level=customer.kyc_level,
        )


class KycLevelResponse(BaseModel):
    customer_id: int
    kyc_level: int


class BusinessResponse(BaseModel):
    """Business record."""

    id: int
    owner: str
    name: str
    category: str
    approved: bool

    @classmethod
    def from_record(cls, business: Business) -> "BusinessResponse":
        return cls(
            id=business.id,
            owner=business.owner,
            name=business.name,
            category=business.category,
            approved=business.approved,
        )


class BusinessCustomersResponse(BaseModel):
    business_id: int
    customer_ids: list[int]


class DocumentTypeResponse(BaseModel):
    """Document type record."""

    name: str
    required_level: int
    expiry_blocks: int
    active: bool

    @classmethod
    def from_record(cls, document_type: DocumentType) -> "DocumentTypeResponse":
        return cls(
            name=document_type.name,
            required_level=document_type.required_level,
            expiry_blocks=document_type.expiry_blocks,
            active=document_type.active,
        )


class DocumentResponse(BaseModel):
    """Stored document hash and upload height."""

    customer_id: int
    type_name: str
    hash: str
    uploaded_at: int

    @classmethod
    def from_record(cls, document: Document) -> "DocumentResponse":
        return cls(
            customer_id=document.customer_id,
            type_name=document.type_name,
            hash=document.hash.hex(),
            uploaded_at=document.uploaded_at,
        )


class DocumentValidityResponse(BaseModel):
    customer_id: int
    type_name: str
    valid: bool


class VerificationRecordResponse(BaseModel):
    business_id: int
    verified: bool
    block_height: int

    @classmethod
    def from_record(cls, record: VerificationRecord) -> "VerificationRecordResponse":
        return cls(
            business_id=record.business_id,
            verified=record.verified,
            block_height=record.block_height,
        )


class VerificationStatusResponse(BaseModel):
    customer_id: int
    verified: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
