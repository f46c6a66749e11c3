"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from psycopg_pool import ConnectionPool

from src.adapters.ledger.local import LocalChain
from src.adapters.repository.postgres import PostgresRegistryRepository
from src.config.settings import Settings, get_settings
from src.domain.ports import RegistryRepository
from src.domain.registry import RegistryService


def get_pool(request: Request) -> ConnectionPool | None:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    It is None when the in-memory storage backend is active.
    """
    return getattr(request.app.state, "pool", None)


def get_repository(request: Request) -> RegistryRepository:
    """Create PostgreSQL repository from the pool, or share the in-memory one."""
    pool = get_pool(request)
    if pool is not None:
        return PostgresRegistryRepository(pool)
    return request.app.state.repository


def get_chain(request: Request) -> LocalChain:
    """Get the host ledger from app state."""
    return request.app.state.chain


def get_query_service(
    request: Request, settings: Settings = Depends(get_settings)
) -> RegistryService:
    """
    Create registry service with injected dependencies.

    Wires together the repository, the ledger clock and the configured
    registry owner.
    """
    return RegistryService(
        repository=get_repository(request),
        clock=get_chain(request),
        owner=settings.registry_owner,
    )


async def get_registry_service(
    request: Request, settings: Settings = Depends(get_settings)
) -> RegistryService:
    """
    Create registry service for a mutating invocation.

    Each mutating request is its own transaction in a newly mined block.
    Declared async so it runs on the event loop, which keeps invocations
    serial.
    """
    get_chain(request).advance()
    return get_query_service(request, settings)


# Caller identity is asserted by the signing layer in front of the API
principal_header = APIKeyHeader(name="X-Principal", description="Authenticated caller principal")


def get_caller(principal: str = Depends(principal_header)) -> str:
    """
    Extract the caller principal from the X-Principal header.

    FastAPI's APIKeyHeader rejects a missing header; a blank one is
    rejected here with 403.
    """
    caller = principal.strip()
    if not caller:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authenticated")
    return caller
