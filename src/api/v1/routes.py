"""
API v1 routes.

Defines REST endpoints for the KYC registry. Every operation of the
registry is exposed; the caller principal comes from the X-Principal
header and each mutating request runs as one transaction in its own block.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from src.api.dependencies import get_caller, get_query_service, get_registry_service
from src.api.models import (
    BIGINT_MAX,
    AddCustomerRequest,
    ApproveBusinessRequest,
    BusinessCustomersResponse,
    BusinessResponse,
    CustomerResponse,
    DocumentResponse,
    DocumentTypeResponse,
    DocumentValidityResponse,
    ErrorResponse,
    IdResponse,
    KycLevelResponse,
    LinkCustomerRequest,
    OkResponse,
    RegisterDocumentTypeRequest,
    UpdateKycLevelRequest,
    UpdateVerificationRequest,
    UploadDocumentRequest,
    VerificationRecordResponse,
    VerificationStatusResponse,
    VerifyCustomerRequest,
)
from src.domain.exceptions import ErrorKind, RegistryError
from src.domain.registry import RegistryService

router = APIRouter(tags=["v1"])

CustomerId = Annotated[int, Path(ge=1, le=BIGINT_MAX)]
BusinessId = Annotated[int, Path(ge=1, le=BIGINT_MAX)]

ERROR_STATUS = {
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.DOCUMENT_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
}

ERROR_RESPONSES = {
    403: {"model": ErrorResponse, "description": "Caller not authorized"},
    404: {"model": ErrorResponse, "description": "Referenced record not found"},
    409: {"model": ErrorResponse, "description": "Record already exists"},
    422: {"description": "Validation error"},
}


@contextmanager
def registry_errors() -> Iterator[None]:
    """Translate domain errors to HTTP errors carrying only the error kind."""
    try:
        yield
    except RegistryError as e:
        raise HTTPException(status_code=ERROR_STATUS[e.kind], detail=e.kind.value) from None


def not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


# ----------------------------------------------------------------------
# Customers
# ----------------------------------------------------------------------


@router.post(
    "/customers",
    response_model=IdResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Register the caller as a customer",
)
async def add_customer(
    request_data: AddCustomerRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> IdResponse:
    """
    Register a new customer owned by the caller.

    - **name**: Customer name
    - **date_of_birth**: YYYYMMDD
    - **country**: Country of residence

    Returns the sequentially assigned customer id.
    """
    with registry_errors():
        customer_id = service.add_customer(
            caller, request_data.name, request_data.date_of_birth, request_data.country
        )
    return IdResponse(id=customer_id)


@router.get(
    "/customers/{customer_id}",
    response_model=CustomerResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get customer details",
)
async def get_customer_details(
    customer_id: CustomerId,
    service: RegistryService = Depends(get_query_service),
) -> CustomerResponse:
    customer = service.get_customer_details(customer_id)
    if customer is None:
        raise not_found("Customer")
    return CustomerResponse.from_record(customer)


@router.get(
    "/customers/{customer_id}/kyc-level",
    response_model=KycLevelResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get customer KYC level",
)
async def get_customer_kyc_level(
    customer_id: CustomerId,
    service: RegistryService = Depends(get_query_service),
) -> KycLevelResponse:
    level = service.get_customer_kyc_level(customer_id)
    if level is None:
        raise not_found("Customer")
    return KycLevelResponse(customer_id=customer_id, kyc_level=level)


@router.put(
    "/customers/{customer_id}/kyc-level",
    response_model=OkResponse,
    responses=ERROR_RESPONSES,
    summary="Update customer KYC level (registry owner only)",
)
async def update_kyc_level(
    customer_id: CustomerId,
    request_data: UpdateKycLevelRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> OkResponse:
    with registry_errors():
        service.update_kyc_level(caller, customer_id, request_data.level)
    return OkResponse()


@router.post(
    "/customers/{customer_id}/documents",
    response_model=OkResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Upload a document hash (customer only)",
    description="Stores the document hash at the current block height. "
    "Documents are immutable: a second upload for the same type is rejected.",
)
async def upload_customer_document(
    customer_id: CustomerId,
    request_data: UploadDocumentRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> OkResponse:
    with registry_errors():
        service.upload_customer_document(
            caller, customer_id, request_data.type_name, bytes.fromhex(request_data.hash)
        )
    return OkResponse()


@router.get(
    "/customers/{customer_id}/documents/{type_name}",
    response_model=DocumentResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a customer document",
)
async def get_customer_document(
    customer_id: CustomerId,
    type_name: str,
    service: RegistryService = Depends(get_query_service),
) -> DocumentResponse:
    document = service.get_customer_document(customer_id, type_name)
    if document is None:
        raise not_found("Document")
    return DocumentResponse.from_record(document)


@router.get(
    "/customers/{customer_id}/documents/{type_name}/validity",
    response_model=DocumentValidityResponse,
    summary="Check document validity at the current block height",
)
async def is_document_valid(
    customer_id: CustomerId,
    type_name: str,
    service: RegistryService = Depends(get_query_service),
) -> DocumentValidityResponse:
    return DocumentValidityResponse(
        customer_id=customer_id,
        type_name=type_name,
        valid=service.is_document_valid(customer_id, type_name),
    )


@router.post(
    "/customers/{customer_id}/verify",
    response_model=OkResponse,
    responses=ERROR_RESPONSES,
    summary="Verify a customer (approved business only)",
)
async def verify_customer(
    customer_id: CustomerId,
    request_data: VerifyCustomerRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> OkResponse:
    with registry_errors():
        service.verify_customer(caller, customer_id, request_data.business_id)
    return OkResponse()


@router.post(
    "/customers/{customer_id}/verification",
    response_model=OkResponse,
    responses=ERROR_RESPONSES,
    summary="Set a customer's verification flag (approved business only)",
)
async def update_customer_verification(
    customer_id: CustomerId,
    request_data: UpdateVerificationRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> OkResponse:
    with registry_errors():
        service.update_customer_verification(
            caller, customer_id, request_data.business_id, request_data.verified
        )
    return OkResponse()


@router.get(
    "/customers/{customer_id}/verification",
    response_model=VerificationStatusResponse,
    summary="Get current verification status",
)
async def is_customer_verified(
    customer_id: CustomerId,
    service: RegistryService = Depends(get_query_service),
) -> VerificationStatusResponse:
    return VerificationStatusResponse(
        customer_id=customer_id, verified=service.is_customer_verified(customer_id)
    )


@router.get(
    "/customers/{customer_id}/verification-history",
    response_model=list[VerificationRecordResponse],
    summary="Get verification history, oldest first",
)
async def get_customer_verification_history(
    customer_id: CustomerId,
    service: RegistryService = Depends(get_query_service),
) -> list[VerificationRecordResponse]:
    return [
        VerificationRecordResponse.from_record(record)
        for record in service.get_customer_verification_history(customer_id)
    ]


# ----------------------------------------------------------------------
# Businesses
# ----------------------------------------------------------------------


@router.post(
    "/businesses",
    response_model=IdResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Approve a business (registry owner only)",
)
async def approve_business(
    request_data: ApproveBusinessRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> IdResponse:
    with registry_errors():
        business_id = service.approve_business(
            caller, request_data.principal, request_data.name, request_data.category
        )
    return IdResponse(id=business_id)


@router.get(
    "/businesses/{business_id}",
    response_model=BusinessResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get business details",
)
async def get_business_details(
    business_id: BusinessId,
    service: RegistryService = Depends(get_query_service),
) -> BusinessResponse:
    business = service.get_business_details(business_id)
    if business is None:
        raise not_found("Business")
    return BusinessResponse.from_record(business)


@router.post(
    "/businesses/{business_id}/revoke",
    response_model=OkResponse,
    responses=ERROR_RESPONSES,
    summary="Revoke a business (registry owner only)",
)
async def revoke_business(
    business_id: BusinessId,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> OkResponse:
    with registry_errors():
        service.revoke_business(caller, business_id)
    return OkResponse()


@router.post(
    "/businesses/{business_id}/customers",
    response_model=OkResponse,
    responses=ERROR_RESPONSES,
    summary="Link a customer to a business (approved business only)",
)
async def link_customer_to_business(
    business_id: BusinessId,
    request_data: LinkCustomerRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> OkResponse:
    with registry_errors():
        service.link_customer_to_business(caller, request_data.customer_id, business_id)
    return OkResponse()


@router.get(
    "/businesses/{business_id}/customers",
    response_model=BusinessCustomersResponse,
    summary="List customers linked to a business",
)
async def get_business_customers(
    business_id: BusinessId,
    service: RegistryService = Depends(get_query_service),
) -> BusinessCustomersResponse:
    return BusinessCustomersResponse(
        business_id=business_id, customer_ids=service.get_business_customers(business_id)
    )


# ----------------------------------------------------------------------
# Document types
# ----------------------------------------------------------------------


@router.post(
    "/document-types",
    response_model=OkResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Register a document type (registry owner only)",
)
async def register_document_type(
    request_data: RegisterDocumentTypeRequest,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> OkResponse:
    with registry_errors():
        service.register_document_type(
            caller, request_data.name, request_data.required_level, request_data.expiry_blocks
        )
    return OkResponse()


@router.get(
    "/document-types/{name}",
    response_model=DocumentTypeResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get document type info",
)
async def get_document_type_info(
    name: str,
    service: RegistryService = Depends(get_query_service),
) -> DocumentTypeResponse:
    document_type = service.get_document_type_info(name)
    if document_type is None:
        raise not_found("Document type")
    return DocumentTypeResponse.from_record(document_type)


@router.post(
    "/document-types/{name}/deactivate",
    response_model=OkResponse,
    responses=ERROR_RESPONSES,
    summary="Deactivate a document type (registry owner only)",
)
async def deactivate_document_type(
    name: str,
    caller: str = Depends(get_caller),
    service: RegistryService = Depends(get_registry_service),
) -> OkResponse:
    with registry_errors():
        service.deactivate_document_type(caller, name)
    return OkResponse()
