"""
Authorization check - Role rules gating every registry operation.

Each operation maps to exactly one access rule:

- PUBLIC: any caller (add-customer and all read-only queries)
- OWNER: caller must be the registry owner fixed at construction
- CUSTOMER_SELF: caller must own the target customer record
- APPROVED_BUSINESS: caller must own the target business record, and
  that business must currently be approved

The check is evaluated before any state mutation. Target records are
resolved by the caller of authorize() and passed in; a missing target
never satisfies an ownership rule.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .exceptions import Unauthorized
from .models import Business, Customer

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Named operations of the registry invocation surface."""

    ADD_CUSTOMER = "add-customer"
    APPROVE_BUSINESS = "approve-business"
    REVOKE_BUSINESS = "revoke-business"
    REGISTER_DOCUMENT_TYPE = "register-document-type"
    DEACTIVATE_DOCUMENT_TYPE = "deactivate-document-type"
    UPLOAD_CUSTOMER_DOCUMENT = "upload-customer-document"
    UPDATE_KYC_LEVEL = "update-kyc-level"
    VERIFY_CUSTOMER = "verify-customer"
    UPDATE_CUSTOMER_VERIFICATION = "update-customer-verification"
    LINK_CUSTOMER_TO_BUSINESS = "link-customer-to-business"

    GET_CUSTOMER_DETAILS = "get-customer-details"
    GET_BUSINESS_DETAILS = "get-business-details"
    GET_DOCUMENT_TYPE_INFO = "get-document-type-info"
    GET_CUSTOMER_DOCUMENT = "get-customer-document"
    GET_CUSTOMER_KYC_LEVEL = "get-customer-kyc-level"
    GET_CUSTOMER_VERIFICATION_HISTORY = "get-customer-verification-history"
    GET_BUSINESS_CUSTOMERS = "get-business-customers"
    IS_CUSTOMER_VERIFIED = "is-customer-verified"
    IS_DOCUMENT_VALID = "is-document-valid"

    @property
    def read_only(self) -> bool:
        return self.value.startswith(("get-", "is-"))


class AccessRule(str, Enum):
    """Who may invoke an operation."""

    PUBLIC = "public"
    OWNER = "owner"
    CUSTOMER_SELF = "customer-self"
    APPROVED_BUSINESS = "approved-business"


class Decision(Enum):
    """Outcome of an authorization check."""

    ALLOWED = "allowed"
    DENIED = "denied"


OPERATION_RULES: dict[Operation, AccessRule] = {
    Operation.ADD_CUSTOMER: AccessRule.PUBLIC,
    Operation.APPROVE_BUSINESS: AccessRule.OWNER,
    Operation.REVOKE_BUSINESS: AccessRule.OWNER,
    Operation.REGISTER_DOCUMENT_TYPE: AccessRule.OWNER,
    Operation.DEACTIVATE_DOCUMENT_TYPE: AccessRule.OWNER,
    Operation.UPDATE_KYC_LEVEL: AccessRule.OWNER,
    Operation.UPLOAD_CUSTOMER_DOCUMENT: AccessRule.CUSTOMER_SELF,
    Operation.VERIFY_CUSTOMER: AccessRule.APPROVED_BUSINESS,
    Operation.UPDATE_CUSTOMER_VERIFICATION: AccessRule.APPROVED_BUSINESS,
    Operation.LINK_CUSTOMER_TO_BUSINESS: AccessRule.APPROVED_BUSINESS,
    **{op: AccessRule.PUBLIC for op in Operation if op.read_only},
}


@dataclass(frozen=True)
class Authorizer:
    """
    Evaluates callers against the access rule of each operation.

    Attributes:
        owner: Registry owner principal, fixed at deployment
    """

    owner: str

    def authorize(
        self,
        operation: Operation,
        caller: str,
        *,
        customer: Customer | None = None,
        business: Business | None = None,
    ) -> Decision:
        """
        Decide whether `caller` may invoke `operation`.

        Args:
            operation: Operation being invoked
            caller: Authenticated principal supplied by the host
            customer: Target customer for CUSTOMER_SELF operations
            business: Target business for APPROVED_BUSINESS operations

        Returns:
            Decision.ALLOWED or Decision.DENIED
        """
        rule = OPERATION_RULES[operation]

        if rule is AccessRule.PUBLIC:
            allowed = True
        elif rule is AccessRule.OWNER:
            allowed = caller == self.owner
        elif rule is AccessRule.CUSTOMER_SELF:
            allowed = customer is not None and customer.owner == caller
        else:
            allowed = business is not None and business.owner == caller and business.approved

        return Decision.ALLOWED if allowed else Decision.DENIED

    def require(
        self,
        operation: Operation,
        caller: str,
        *,
        customer: Customer | None = None,
        business: Business | None = None,
    ) -> None:
        """
        Same as authorize(), raising instead of returning a denial.

        Raises:
            Unauthorized: If the decision is DENIED
        """
        decision = self.authorize(operation, caller, customer=customer, business=business)
        if decision is Decision.DENIED:
            logger.info("Denied %s for %s", operation.value, caller)
            raise Unauthorized(f"{caller} may not {operation.value}")
