"""
Unit tests for Logfire middleware.

This test suite covers:
- Request/response processing
- Request id and timing headers
- Error logging
- Slow request detection
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import Request
from starlette.responses import Response

from akari.server.middleware.logfire_middleware import LogfireMiddleware

pytestmark = pytest.mark.asyncio


def mock_request(method="GET", path="/api/wheel", headers=None):
    request = AsyncMock(spec=Request)
    request.method = method
    request.url.path = path
    request.headers = headers or {}
    request.state = MagicMock()
    return request


class TestLogfireMiddlewareDispatch:
    """Test LogfireMiddleware.dispatch method."""

    async def test_middleware_processes_successful_request(self):
        """Test that middleware logs the request and tags the response."""

        async def call_next(request):
            return Response(content="ok", status_code=200)

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch("akari.server.middleware.logfire_middleware.log_api_request") as mock_log:
            response = await middleware.dispatch(mock_request(), call_next)

        assert response.status_code == 200
        mock_log.assert_called_once()
        assert mock_log.call_args[1]["method"] == "GET"
        assert mock_log.call_args[1]["path"] == "/api/wheel"
        assert mock_log.call_args[1]["status_code"] == 200
        assert float(response.headers["X-Process-Time"]) >= 0
        assert len(response.headers["X-Request-ID"]) == 32

    async def test_middleware_keeps_incoming_request_id(self):
        """Test that a caller supplied request id is echoed back."""

        async def call_next(request):
            return Response(status_code=204)

        middleware = LogfireMiddleware(app=AsyncMock())
        request = mock_request(headers={"x-request-id": "req-123"})

        with patch("akari.server.middleware.logfire_middleware.log_api_request"):
            response = await middleware.dispatch(request, call_next)

        assert response.headers["X-Request-ID"] == "req-123"
        assert request.state.request_id == "req-123"

    async def test_middleware_logs_and_reraises_errors(self):
        """Test that failures are logged as 500s and propagated."""

        async def call_next(request):
            raise RuntimeError("handler failed")

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch("akari.server.middleware.logfire_middleware.log_api_request") as mock_log, patch(
            "akari.server.middleware.logfire_middleware.logger"
        ) as mock_logger:
            with pytest.raises(RuntimeError):
                await middleware.dispatch(mock_request(method="POST", path="/api/wheel/spin"), call_next)

        assert mock_log.call_args[1]["status_code"] == 500
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args[1]["extra"]["error"] == "handler failed"

    async def test_middleware_warns_about_slow_requests(self):
        """Test that requests slower than the threshold are reported."""

        async def call_next(request):
            return Response(status_code=200)

        middleware = LogfireMiddleware(app=AsyncMock())

        with patch("akari.server.middleware.logfire_middleware.time.perf_counter", side_effect=[100.0] + [102.5] * 10), patch(
            "akari.server.middleware.logfire_middleware.log_api_request"
        ), patch("akari.server.middleware.logfire_middleware.logger") as mock_logger:
            await middleware.dispatch(mock_request(), call_next)

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args[1]["extra"]["duration_ms"] == pytest.approx(2500)

    async def test_threshold_is_configurable(self):
        """Test that a lower threshold flags faster requests."""

        async def call_next(request):
            return Response(status_code=200)

        middleware = LogfireMiddleware(app=AsyncMock(), slow_request_ms=100)

        with patch("akari.server.middleware.logfire_middleware.time.perf_counter", side_effect=[10.0] + [10.25] * 10), patch(
            "akari.server.middleware.logfire_middleware.log_api_request"
        ), patch("akari.server.middleware.logfire_middleware.logger") as mock_logger:
            response = await middleware.dispatch(mock_request(), call_next)

        mock_logger.warning.assert_called_once()
        assert response.headers["X-Process-Time"] == "250.00"
