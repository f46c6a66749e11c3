"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory repository and local ledger
- A registry service wired to both, owned by OWNER
"""

import pytest

from src.adapters.ledger.local import LocalChain
from src.adapters.repository.memory import InMemoryRegistryRepository
from src.domain.registry import RegistryService
from tests.principals import OWNER


@pytest.fixture
def repository() -> InMemoryRegistryRepository:
    return InMemoryRegistryRepository()


@pytest.fixture
def chain() -> LocalChain:
    return LocalChain(genesis_height=1)


@pytest.fixture
def service(repository: InMemoryRegistryRepository, chain: LocalChain) -> RegistryService:
    """Registry service owned by OWNER over a fresh in-memory store."""
    return RegistryService(repository=repository, clock=chain, owner=OWNER)
