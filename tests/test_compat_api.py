"""Tests for the compatibility scoring endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.core.auth_middleware import get_tenant_context
from app.core.compat_engine import AppNotFoundError, SystemNotFoundError
from app.core.compat_scoring import score_fit
from app.core.schemas_auth import TenantContext
from app.core.schemas_compat import MatrixFilters, SystemScore
from app.main import app
from tests.fixtures_compat import INVOICING_APP, TENANT_ID, TRIPLETEX, VISMA_NET, XERO_WORKFLOW

client = TestClient(app)


@pytest.fixture
def tenant_admin():
    app.dependency_overrides[get_tenant_context] = lambda: TenantContext(
        user_id="user-1", tenant_id=TENANT_ID, role="tenant_admin"
    )
    yield
    app.dependency_overrides.clear()


def _tripletex_fit():
    return score_fit(INVOICING_APP, TRIPLETEX, [XERO_WORKFLOW], set())


class TestScoreEndpoint:
    def test_returns_envelope(self, tenant_admin):
        with patch("app.api.compat.compute_fit", new=AsyncMock(return_value=_tripletex_fit())) as mock_fit:
            response = client.get("/v1/compat/score", params={"appKey": "invoicing-app", "system": "tripletex"})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["data"]["total_score"] == 98
        assert body["data"]["breakdown"]["capability_match"]["weight"] == 0.4
        assert body["data"]["suggested_workflows"] == []
        assert body["metadata"]["request_id"] == response.headers["X-Request-Id"]
        mock_fit.assert_awaited_once_with(TENANT_ID, "invoicing-app", "tripletex")

    def test_request_id_is_echoed(self, tenant_admin):
        with patch("app.api.compat.compute_fit", new=AsyncMock(return_value=_tripletex_fit())):
            response = client.get(
                "/v1/compat/score",
                params={"appKey": "invoicing-app", "system": "tripletex"},
                headers={"X-Request-Id": "req-123"},
            )

        assert response.headers["X-Request-Id"] == "req-123"
        assert response.json()["metadata"]["request_id"] == "req-123"

    def test_suggested_workflows(self, tenant_admin):
        result = score_fit(INVOICING_APP, TRIPLETEX, [], set())
        with patch("app.api.compat.compute_fit", new=AsyncMock(return_value=result)):
            response = client.get("/v1/compat/score", params={"appKey": "invoicing-app", "system": "tripletex"})

        assert response.json()["data"]["suggested_workflows"] == ["xero_tripletex_invoicing-app_sync"]

    def test_unknown_app_is_404(self, tenant_admin):
        with patch("app.api.compat.compute_fit", new=AsyncMock(side_effect=AppNotFoundError("nope"))):
            response = client.get("/v1/compat/score", params={"appKey": "nope", "system": "tripletex"})

        assert response.status_code == 404
        body = response.json()
        assert body["ok"] is False
        assert body["error"]["code"] == "APP_NOT_FOUND"
        assert body["error"]["message"] == "App nope not found"

    def test_unknown_system_is_404(self, tenant_admin):
        with patch("app.api.compat.compute_fit", new=AsyncMock(side_effect=SystemNotFoundError("sap"))):
            response = client.get("/v1/compat/score", params={"appKey": "invoicing-app", "system": "sap"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SYSTEM_NOT_FOUND"

    def test_missing_parameter_is_400(self, tenant_admin):
        response = client.get("/v1/compat/score", params={"appKey": "invoicing-app"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "MISSING_PARAMETERS"
        assert "system" in body["error"]["message"]

    def test_unexpected_error_is_500(self, tenant_admin):
        with patch("app.api.compat.compute_fit", new=AsyncMock(side_effect=RuntimeError("db down"))):
            response = client.get("/v1/compat/score", params={"appKey": "invoicing-app", "system": "tripletex"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"


class TestMatrixEndpoint:
    def test_returns_rows(self, tenant_admin):
        rows = [
            SystemScore(system_slug="tripletex", system_name="Tripletex", score=98, breakdown=_tripletex_fit().breakdown),
        ]
        with patch("app.api.compat.compute_matrix", new=AsyncMock(return_value=rows)) as mock_matrix:
            response = client.get(
                "/v1/compat/matrix",
                params={"appKey": "invoicing-app", "minScore": 60, "provider": "xero"},
            )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [row["system_slug"] for row in data] == ["tripletex"]
        mock_matrix.assert_awaited_once_with(
            TENANT_ID, "invoicing-app", MatrixFilters(provider="xero", min_score=60)
        )

    def test_min_score_out_of_range(self, tenant_admin):
        response = client.get("/v1/compat/matrix", params={"appKey": "invoicing-app", "minScore": 101})
        assert response.status_code == 400

    def test_unknown_app_is_404(self, tenant_admin):
        with patch("app.api.compat.compute_matrix", new=AsyncMock(side_effect=AppNotFoundError("nope"))):
            response = client.get("/v1/compat/matrix", params={"appKey": "nope"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "APP_NOT_FOUND"

    def test_empty_matrix(self, tenant_admin):
        with patch("app.api.compat.compute_matrix", new=AsyncMock(return_value=[])):
            response = client.get("/v1/compat/matrix", params={"appKey": "invoicing-app"})

        assert response.json() == {
            "ok": True,
            "data": [],
            "metadata": {"request_id": response.headers["X-Request-Id"]},
        }


class TestTenantResolution:
    def test_no_credentials_is_401(self):
        response = client.get("/v1/compat/score", params={"appKey": "invoicing-app", "system": "tripletex"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_api_key_with_tenant_header(self):
        fit = score_fit(INVOICING_APP, VISMA_NET, [XERO_WORKFLOW], set())
        with patch("app.api.compat.compute_fit", new=AsyncMock(return_value=fit)) as mock_fit:
            response = client.get(
                "/v1/compat/score",
                params={"appKey": "invoicing-app", "system": "visma-net"},
                headers={"X-API-Key": "test-admin-key", "X-Tenant-Id": "tenant-42"},
            )

        assert response.status_code == 200
        mock_fit.assert_awaited_once_with("tenant-42", "invoicing-app", "visma-net")

    def test_api_key_without_tenant_header(self):
        response = client.get(
            "/v1/compat/score",
            params={"appKey": "invoicing-app", "system": "tripletex"},
            headers={"X-API-Key": "test-admin-key"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_PARAMETERS"

    def test_wrong_api_key_falls_back_to_bearer(self):
        response = client.get(
            "/v1/compat/score",
            params={"appKey": "invoicing-app", "system": "tripletex"},
            headers={"X-API-Key": "wrong", "X-Tenant-Id": "tenant-42"},
        )

        assert response.status_code == 401

    def test_bearer_token_resolves_tenant_from_roles(self):
        mock_client = MagicMock()
        mock_client.auth.get_user.return_value = MagicMock(user=MagicMock(id="user-7"))
        chain = mock_client.table.return_value.select.return_value.eq.return_value.eq.return_value.limit.return_value
        chain.execute.return_value = MagicMock(
            data=[{"role": "tenant_member", "scope_id": "tenant-7", "scope_type": "tenant"}]
        )

        with (
            patch("app.core.auth_middleware.get_supabase", return_value=mock_client),
            patch("app.api.compat.compute_fit", new=AsyncMock(return_value=_tripletex_fit())) as mock_fit,
        ):
            response = client.get(
                "/v1/compat/score",
                params={"appKey": "invoicing-app", "system": "tripletex"},
                headers={"Authorization": "Bearer token-abc"},
            )

        assert response.status_code == 200
        mock_client.auth.get_user.assert_called_once_with("token-abc")
        mock_client.table.assert_called_with("user_roles")
        mock_fit.assert_awaited_once_with("tenant-7", "invoicing-app", "tripletex")

    def test_invalid_token_is_401(self):
        mock_client = MagicMock()
        mock_client.auth.get_user.side_effect = Exception("jwt expired")

        with patch("app.core.auth_middleware.get_supabase", return_value=mock_client):
            response = client.get(
                "/v1/compat/score",
                params={"appKey": "invoicing-app", "system": "tripletex"},
                headers={"Authorization": "Bearer expired"},
            )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    def test_user_without_tenant_role_is_403(self):
        mock_client = MagicMock()
        mock_client.auth.get_user.return_value = MagicMock(user=MagicMock(id="user-7"))
        chain = mock_client.table.return_value.select.return_value.eq.return_value.eq.return_value.limit.return_value
        chain.execute.return_value = MagicMock(data=[])

        with patch("app.core.auth_middleware.get_supabase", return_value=mock_client):
            response = client.get(
                "/v1/compat/score",
                params={"appKey": "invoicing-app", "system": "tripletex"},
                headers={"Authorization": "Bearer token-abc"},
            )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_bearer_token_with_tenant_header_selects_that_tenant(self):
        mock_client = MagicMock()
        mock_client.auth.get_user.return_value = MagicMock(user=MagicMock(id="user-7"))
        roles_query = mock_client.table.return_value.select.return_value.eq.return_value.eq.return_value
        roles_query.eq.return_value.limit.return_value.execute.return_value = MagicMock(
            data=[{"role": "tenant_admin", "scope_id": "tenant-b", "scope_type": "tenant"}]
        )

        with (
            patch("app.core.auth_middleware.get_supabase", return_value=mock_client),
            patch("app.api.compat.compute_fit", new=AsyncMock(return_value=_tripletex_fit())) as mock_fit,
        ):
            response = client.get(
                "/v1/compat/score",
                params={"appKey": "invoicing-app", "system": "tripletex"},
                headers={"Authorization": "Bearer token-abc", "X-Tenant-Id": "tenant-b"},
            )

        assert response.status_code == 200
        roles_query.eq.assert_called_once_with("scope_id", "tenant-b")
        mock_fit.assert_awaited_once_with("tenant-b", "invoicing-app", "tripletex")

    def test_role_lookup_failure_is_500_envelope(self):
        mock_client = MagicMock()
        mock_client.auth.get_user.return_value = MagicMock(user=MagicMock(id="user-7"))
        mock_client.table.side_effect = RuntimeError("db down")

        with patch("app.core.auth_middleware.get_supabase", return_value=mock_client):
            response = client.get(
                "/v1/compat/score",
                params={"appKey": "invoicing-app", "system": "tripletex"},
                headers={"Authorization": "Bearer token-abc", "X-Request-Id": "req-500"},
            )

        assert response.status_code == 500
        assert response.headers["X-Request-Id"] == "req-500"
        assert response.json() == {
            "ok": False,
            "error": {"code": "INTERNAL_ERROR", "message": "Internal server error"},
            "metadata": {"request_id": "req-500"},
        }

    def test_client_init_failure_is_500_envelope(self):
        with patch("app.core.auth_middleware.get_supabase", side_effect=RuntimeError("no client")):
            response = client.get(
                "/v1/compat/score",
                params={"appKey": "invoicing-app", "system": "tripletex"},
                headers={"Authorization": "Bearer token-abc"},
            )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert response.json()["metadata"]["request_id"] == response.headers["X-Request-Id"]
