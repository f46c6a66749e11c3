"""
Shared fixtures for adversarial tests.

Provides a populated registry that attackers probe: one customer owned
by ALICE, an approved business (id 1) and a revoked business (id 2)
both owned by BOB, and a registered document type.
"""

import pytest

from src.domain.registry import RegistryService
from tests.principals import ALICE, BOB, OWNER


@pytest.fixture
def populated(service: RegistryService) -> RegistryService:
    service.add_customer(ALICE, "John Doe", 19900101, "USA")
    service.approve_business(OWNER, BOB, "Acme Bank", "bank")
    service.approve_business(OWNER, BOB, "Old Bank", "bank")
    service.revoke_business(OWNER, 2)
    service.register_document_type(OWNER, "passport", 1, 100)
    return service
