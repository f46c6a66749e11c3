"""
Domain layer - Pure business logic with zero framework imports.

This package contains the state-transition and authorization engine of
the KYC registry. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .authorization import AccessRule, Authorizer, Decision, Operation
from .exceptions import (
    AlreadyExists,
    DocumentAlreadyExists,
    ErrorKind,
    NotFound,
    RegistryError,
    Unauthorized,
)
from .models import Business, Customer, Document, DocumentType, VerificationRecord
from .ports import BlockClock, IdSequence, RegistryRepository
from .registry import RegistryService

__all__ = [
    "AccessRule",
    "AlreadyExists",
    "Authorizer",
    "BlockClock",
    "Business",
    "Customer",
    "Decision",
    "Document",
    "DocumentAlreadyExists",
    "DocumentType",
    "ErrorKind",
    "IdSequence",
    "NotFound",
    "Operation",
    "RegistryError",
    "RegistryRepository",
    "RegistryService",
    "Unauthorized",
    "VerificationRecord",
]
