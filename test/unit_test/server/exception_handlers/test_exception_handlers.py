"""
Unit tests for server exception handlers.

Tests cover the failure envelope for HTTP errors, validation errors, domain
errors and unhandled exceptions.
"""

from unittest.mock import Mock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, Field

from akari.core.errors import InsufficientBalanceError, NotFoundError, WheelLimitError
from akari.server.exception_handlers import setup_exception_handlers
from akari.server.exception_handlers.global_handler import akari_error_handler, global_exception_handler

pytestmark = pytest.mark.asyncio


class Payload(BaseModel):
    amount: float = Field(..., gt=0)


def build_app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Prediction not found")

    @app.get("/limit")
    async def limit():
        raise WheelLimitError("No spins left today")

    @app.get("/broke")
    async def broke():
        raise InsufficientBalanceError(1, 2.5)

    @app.get("/forbidden")
    async def forbidden():
        raise HTTPException(status_code=403, detail="SuperAdmin only")

    @app.post("/payload")
    async def payload(body: Payload):
        return {"ok": True}

    @app.get("/crash")
    async def crash():
        raise RuntimeError("database exploded")

    return app


@pytest_asyncio.fixture
async def app_client():
    transport = ASGITransport(app=build_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://localhost") as client:
        yield client


class TestEnvelope:
    async def test_not_found(self, app_client):
        response = await app_client.get("/missing")
        assert response.status_code == 404
        assert response.json() == {"ok": False, "error": "Prediction not found"}

    async def test_business_rule_is_400(self, app_client):
        response = await app_client.get("/limit")
        assert response.status_code == 400
        assert response.json()["error"] == "No spins left today"

    async def test_insufficient_balance(self, app_client):
        response = await app_client.get("/broke")
        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient MYST balance: have 1, need 2.5"

    async def test_http_exception(self, app_client):
        response = await app_client.get("/forbidden")
        assert response.status_code == 403
        assert response.json() == {"ok": False, "error": "SuperAdmin only"}

    async def test_method_not_allowed(self, app_client):
        response = await app_client.delete("/missing")
        assert response.status_code == 405
        assert response.json() == {"ok": False, "error": "Method not allowed"}

    async def test_unknown_route(self, app_client):
        response = await app_client.get("/nowhere")
        assert response.status_code == 404
        assert response.json()["ok"] is False

    async def test_validation_error_is_400(self, app_client):
        response = await app_client.post("/payload", json={"amount": -1})
        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is False
        assert body["error"].startswith("amount:")

    async def test_unhandled_exception(self, app_client):
        response = await app_client.get("/crash")
        assert response.status_code == 500
        body = response.json()
        assert body["ok"] is False
        assert body["error"] == "Internal server error"
        assert body["error_type"] == "RuntimeError"
        assert isinstance(body["error_id"], int)


class TestGlobalExceptionHandler:
    """Test suite for global exception handler."""

    @pytest.fixture
    def mock_request(self):
        """Create a mock request object."""
        request = Mock(spec=Request)
        request.method = "GET"
        request.url.path = "/api/myst/balance"
        request.query_params = {}
        request.client = Mock()
        request.client.host = "127.0.0.1"
        return request

    async def test_exception_handler_logs_error(self, mock_request):
        """Test that exception handler logs errors."""
        exc = ValueError("Test error")

        with patch("akari.server.exception_handlers.global_handler.logger") as mock_logger:
            await global_exception_handler(mock_request, exc)

            mock_logger.error.assert_called_once()
            call_args = mock_logger.error.call_args
            assert "Unhandled exception" in call_args[0][0]
            assert call_args[1]["extra"]["error_type"] == "ValueError"
            assert call_args[1]["extra"]["client"] == "127.0.0.1"

    async def test_exception_handler_reports_to_monitoring(self, mock_request):
        """Test that the error is forwarded to logfire."""
        with patch("akari.server.exception_handlers.global_handler.log_error") as mock_log_error:
            response = await global_exception_handler(mock_request, KeyError("pool"))

            mock_log_error.assert_called_once()
            assert mock_log_error.call_args[0][0] == "KeyError"
            assert isinstance(response, JSONResponse)
            assert response.status_code == 500

    async def test_exception_handler_without_client(self, mock_request):
        """Test handling when the request has no client information."""
        mock_request.client = None

        with patch("akari.server.exception_handlers.global_handler.logger") as mock_logger:
            await global_exception_handler(mock_request, RuntimeError("boom"))

            assert mock_logger.error.call_args[1]["extra"]["client"] == "unknown"

    async def test_domain_error_handler(self, mock_request):
        response = await akari_error_handler(mock_request, NotFoundError("User not found"))
        assert response.status_code == 404
        assert response.body == b'{"ok":false,"error":"User not found"}'
