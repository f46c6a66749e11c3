"""
Domain exceptions - Semantic error types for the registry.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every exception carries an ErrorKind so hosts can surface a tagged
error result instead of the exception itself.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error taxonomy returned to callers alongside failed operations."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not-found"
    ALREADY_EXISTS = "already-exists"
    DOCUMENT_ALREADY_EXISTS = "document-already-exists"


class RegistryError(Exception):
    """Base class for registry domain errors."""

    kind: ErrorKind


class Unauthorized(RegistryError):
    """Caller is not allowed to perform the operation."""

    kind = ErrorKind.UNAUTHORIZED


class NotFound(RegistryError):
    """Referenced id or key is absent."""

    kind = ErrorKind.NOT_FOUND


class AlreadyExists(RegistryError):
    """Unique key violation on creation."""

    kind = ErrorKind.ALREADY_EXISTS


class DocumentAlreadyExists(AlreadyExists):
    """A document is already stored for the (customer, document type) pair."""

    kind = ErrorKind.DOCUMENT_ALREADY_EXISTS
