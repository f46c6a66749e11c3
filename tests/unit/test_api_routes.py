"""
Unit tests for API v1 routes.

Tests endpoint responses against the in-memory store, plus error
translation with a mocked service.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.ledger.local import LocalChain
from src.adapters.repository.memory import InMemoryRegistryRepository
from src.api.dependencies import get_registry_service
from src.api.v1.routes import router
from src.config.settings import Settings, get_settings
from src.domain.exceptions import AlreadyExists, DocumentAlreadyExists, NotFound, Unauthorized
from src.domain.registry import RegistryService
from tests.principals import ALICE, BOB, DOC_HASH, OWNER


def as_principal(principal: str) -> dict:
    """Create caller identity header for testing."""
    return {"X-Principal": principal}


@pytest.fixture
def app() -> FastAPI:
    """Create test FastAPI application over a fresh in-memory store."""
    test_app = FastAPI()
    test_app.include_router(router, prefix="/v1")

    test_app.state.pool = None
    test_app.state.repository = InMemoryRegistryRepository()
    test_app.state.chain = LocalChain()
    test_app.dependency_overrides[get_settings] = lambda: Settings(registry_owner=OWNER)

    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client for the application."""
    return TestClient(app)


def add_customer(client: TestClient, principal: str = ALICE) -> int:
    response = client.post(
        "/v1/customers",
        json={"name": "John Doe", "date_of_birth": 19900101, "country": "USA"},
        headers=as_principal(principal),
    )
    assert response.status_code == 201
    return response.json()["id"]


def approve_business(client: TestClient, principal: str = BOB) -> int:
    response = client.post(
        "/v1/businesses",
        json={"principal": principal, "name": "Acme Bank", "category": "bank"},
        headers=as_principal(OWNER),
    )
    assert response.status_code == 201
    return response.json()["id"]


class TestCallerIdentity:
    """Tests for the X-Principal header."""

    def test_missing_principal_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/v1/customers",
            json={"name": "John Doe", "date_of_birth": 19900101, "country": "USA"},
        )
        assert response.status_code in (401, 403)

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_principal_rejected(self, client: TestClient, blank: str) -> None:
        response = client.post(
            "/v1/customers",
            json={"name": "John Doe", "date_of_birth": 19900101, "country": "USA"},
            headers=as_principal(blank),
        )
        assert response.status_code in (401, 403)
        assert client.get("/v1/customers/1").status_code == 404

    def test_queries_need_no_principal(self, client: TestClient) -> None:
        add_customer(client)
        assert client.get("/v1/customers/1").status_code == 200


class TestCustomerEndpoints:
    """Tests for /v1/customers endpoints."""

    def test_add_customer_returns_sequential_ids(self, client: TestClient) -> None:
        assert add_customer(client, ALICE) == 1
        assert add_customer(client, BOB) == 2

    def test_get_customer_details(self, client: TestClient) -> None:
        add_customer(client)
        response = client.get("/v1/customers/1")

        assert response.json() == {
            "id": 1,
            "name": "John Doe",
            "date_of_birth": 19900101,
            "country": "USA",
            "owner": ALICE,
            "kyc_level": 0,
        }

    def test_get_missing_customer_returns_404(self, client: TestClient) -> None:
        assert client.get("/v1/customers/1").status_code == 404

    def test_add_customer_validates_body(self, client: TestClient) -> None:
        response = client.post(
            "/v1/customers",
            json={"name": "", "date_of_birth": 19900101, "country": "USA"},
            headers=as_principal(ALICE),
        )
        assert response.status_code == 422

    def test_update_kyc_level_owner_only(self, client: TestClient) -> None:
        add_customer(client)

        denied = client.put(
            "/v1/customers/1/kyc-level", json={"level": 2}, headers=as_principal(ALICE)
        )
        allowed = client.put(
            "/v1/customers/1/kyc-level", json={"level": 2}, headers=as_principal(OWNER)
        )

        assert denied.status_code == 403
        assert denied.json() == {"detail": "unauthorized"}
        assert allowed.status_code == 200
        assert allowed.json() == {"ok": True}
        assert client.get("/v1/customers/1/kyc-level").json() == {"customer_id": 1, "kyc_level": 2}

    def test_update_kyc_level_missing_customer(self, client: TestClient) -> None:
        response = client.put(
            "/v1/customers/9/kyc-level", json={"level": 2}, headers=as_principal(OWNER)
        )
        assert response.status_code == 404
        assert response.json() == {"detail": "not-found"}


class TestDocumentEndpoints:
    """Tests for document type and document endpoints."""

    def register_passport(self, client: TestClient) -> None:
        response = client.post(
            "/v1/document-types",
            json={"name": "passport", "required_level": 0, "expiry_blocks": 100},
            headers=as_principal(OWNER),
        )
        assert response.status_code == 201

    def test_register_duplicate_document_type_returns_409(self, client: TestClient) -> None:
        self.register_passport(client)
        response = client.post(
            "/v1/document-types",
            json={"name": "passport", "required_level": 0, "expiry_blocks": 100},
            headers=as_principal(OWNER),
        )
        assert response.status_code == 409
        assert response.json() == {"detail": "already-exists"}

    def test_deactivate_document_type(self, client: TestClient) -> None:
        self.register_passport(client)
        response = client.post(
            "/v1/document-types/passport/deactivate", headers=as_principal(OWNER)
        )
        assert response.status_code == 200
        assert client.get("/v1/document-types/passport").json()["active"] is False

    def test_deactivate_unknown_document_type_returns_404(self, client: TestClient) -> None:
        response = client.post(
            "/v1/document-types/passport/deactivate", headers=as_principal(OWNER)
        )
        assert response.status_code == 404

    def test_document_type_name_with_slash_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/v1/document-types",
            json={"name": "ID/Card", "required_level": 0, "expiry_blocks": 100},
            headers=as_principal(OWNER),
        )
        assert response.status_code == 422
        assert client.get("/v1/document-types/ID%2FCard").status_code == 404

    def test_document_type_name_with_space_round_trips(self, client: TestClient) -> None:
        response = client.post(
            "/v1/document-types",
            json={"name": "ID Card", "required_level": 0, "expiry_blocks": 100},
            headers=as_principal(OWNER),
        )
        assert response.status_code == 201
        assert client.get("/v1/document-types/ID%20Card").json()["name"] == "ID Card"
        deactivate = client.post(
            "/v1/document-types/ID%20Card/deactivate", headers=as_principal(OWNER)
        )
        assert deactivate.status_code == 200

    def test_upload_and_fetch_document(self, client: TestClient) -> None:
        add_customer(client)
        self.register_passport(client)

        response = client.post(
            "/v1/customers/1/documents",
            json={"type_name": "passport", "hash": DOC_HASH.hex()},
            headers=as_principal(ALICE),
        )
        assert response.status_code == 201

        document = client.get("/v1/customers/1/documents/passport").json()
        assert document["hash"] == DOC_HASH.hex()
        # blocks: add-customer=2, register=3, upload=4
        assert document["uploaded_at"] == 4

        validity = client.get("/v1/customers/1/documents/passport/validity").json()
        assert validity == {"customer_id": 1, "type_name": "passport", "valid": True}

    def test_duplicate_upload_returns_409(self, client: TestClient) -> None:
        add_customer(client)
        self.register_passport(client)
        body = {"type_name": "passport", "hash": DOC_HASH.hex()}
        client.post("/v1/customers/1/documents", json=body, headers=as_principal(ALICE))

        response = client.post(
            "/v1/customers/1/documents",
            json={"type_name": "passport", "hash": "bb" * 32},
            headers=as_principal(ALICE),
        )
        assert response.status_code == 409
        assert response.json() == {"detail": "document-already-exists"}

    def test_upload_for_other_customer_returns_403(self, client: TestClient) -> None:
        add_customer(client)
        self.register_passport(client)
        response = client.post(
            "/v1/customers/1/documents",
            json={"type_name": "passport", "hash": DOC_HASH.hex()},
            headers=as_principal(BOB),
        )
        assert response.status_code == 403

    def test_upload_rejects_malformed_hash(self, client: TestClient) -> None:
        response = client.post(
            "/v1/customers/1/documents",
            json={"type_name": "passport", "hash": "not-hex"},
            headers=as_principal(ALICE),
        )
        assert response.status_code == 422

    def test_missing_document_returns_404(self, client: TestClient) -> None:
        assert client.get("/v1/customers/1/documents/passport").status_code == 404
        assert client.get("/v1/document-types/passport").status_code == 404


class TestVerificationEndpoints:
    """Tests for verification and business endpoints."""

    def test_verify_then_unverify(self, client: TestClient) -> None:
        add_customer(client)
        approve_business(client)

        verify = client.post(
            "/v1/customers/1/verify", json={"business_id": 1}, headers=as_principal(BOB)
        )
        unverify = client.post(
            "/v1/customers/1/verification",
            json={"business_id": 1, "verified": False},
            headers=as_principal(BOB),
        )

        assert verify.status_code == 200
        assert unverify.status_code == 200
        assert client.get("/v1/customers/1/verification").json() == {
            "customer_id": 1,
            "verified": False,
        }
        history = client.get("/v1/customers/1/verification-history").json()
        assert [entry["verified"] for entry in history] == [True, False]
        assert history[0]["block_height"] < history[1]["block_height"]

    def test_revoked_business_cannot_verify(self, client: TestClient) -> None:
        add_customer(client)
        approve_business(client)
        revoke = client.post("/v1/businesses/1/revoke", headers=as_principal(OWNER))
        assert revoke.status_code == 200
        assert client.get("/v1/businesses/1").json()["approved"] is False

        response = client.post(
            "/v1/customers/1/verify", json={"business_id": 1}, headers=as_principal(BOB)
        )
        assert response.status_code == 403

    def test_approve_business_by_non_owner_returns_403(self, client: TestClient) -> None:
        response = client.post(
            "/v1/businesses",
            json={"principal": ALICE, "name": "Shady", "category": "bank"},
            headers=as_principal(ALICE),
        )
        assert response.status_code == 403
        assert client.get("/v1/businesses/1").status_code == 404

    def test_link_customers(self, client: TestClient) -> None:
        add_customer(client)
        approve_business(client)

        first = client.post(
            "/v1/businesses/1/customers", json={"customer_id": 1}, headers=as_principal(BOB)
        )
        second = client.post(
            "/v1/businesses/1/customers", json={"customer_id": 1}, headers=as_principal(BOB)
        )

        assert first.status_code == 200
        assert second.status_code == 409
        assert client.get("/v1/businesses/1/customers").json() == {
            "business_id": 1,
            "customer_ids": [1],
        }


class TestStorageRangeValidation:
    """Out-of-range integers are rejected before reaching storage."""

    @pytest.mark.parametrize(
        "path",
        [
            "/v1/customers/9223372036854775808",
            "/v1/customers/0",
            "/v1/businesses/9223372036854775808",
            "/v1/customers/9223372036854775808/documents/passport",
        ],
    )
    def test_out_of_range_path_id_returns_422(self, client: TestClient, path: str) -> None:
        assert client.get(path).status_code == 422

    def test_oversized_date_of_birth_returns_422(self, client: TestClient) -> None:
        response = client.post(
            "/v1/customers",
            json={"name": "John Doe", "date_of_birth": 10**20, "country": "USA"},
            headers=as_principal(ALICE),
        )
        assert response.status_code == 422

    def test_oversized_kyc_level_returns_422(self, client: TestClient) -> None:
        add_customer(client)
        response = client.put(
            "/v1/customers/1/kyc-level", json={"level": 2**31}, headers=as_principal(OWNER)
        )
        assert response.status_code == 422
        assert client.get("/v1/customers/1/kyc-level").json()["kyc_level"] == 0


class TestErrorTranslation:
    """Domain errors map to HTTP status codes carrying only the error kind."""

    @pytest.mark.parametrize(
        ("error", "status_code", "detail"),
        [
            (Unauthorized("secret detail"), 403, "unauthorized"),
            (NotFound("secret detail"), 404, "not-found"),
            (AlreadyExists("secret detail"), 409, "already-exists"),
            (DocumentAlreadyExists("secret detail"), 409, "document-already-exists"),
        ],
    )
    def test_error_mapping(
        self, app: FastAPI, error: Exception, status_code: int, detail: str
    ) -> None:
        mock_service = MagicMock(spec=RegistryService)
        mock_service.revoke_business.side_effect = error

        def override_service():
            return mock_service

        app.dependency_overrides[get_registry_service] = override_service
        client = TestClient(app)

        try:
            response = client.post("/v1/businesses/1/revoke", headers=as_principal(OWNER))

            assert response.status_code == status_code
            assert response.json() == {"detail": detail}
            assert "secret detail" not in response.text
            mock_service.revoke_business.assert_called_once_with(OWNER, 1)
        finally:
            app.dependency_overrides.pop(get_registry_service, None)

    def test_each_mutation_mines_one_block(self, app: FastAPI, client: TestClient) -> None:
        add_customer(client)
        client.post(
            "/v1/businesses",
            json={"principal": ALICE, "name": "Shady", "category": "bank"},
            headers=as_principal(ALICE),
        )
        client.get("/v1/customers/1")

        assert app.state.chain.current_height() == 3
