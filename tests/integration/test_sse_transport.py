#!/usr/bin/env python3
"""
Integration tests for SSE transport implementation.
"""

import errno
import socket

import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, patch
from starlette.testclient import TestClient

from mcp_sentry.config import Config, MCPConfig, SentryConfig, TransportConfig
from mcp_sentry.sentry.client import SentryClient
from mcp_sentry.server import create_server
from mcp_sentry.transport.sse import bind_with_retry, create_starlette_app, start_sse_server


def _port_in_use():
    return OSError(errno.EADDRINUSE, "Address already in use")


class TestSSEApp:
    """Test the Starlette app serving the SSE transport."""

    def setup_method(self):
        """Set up test fixtures."""
        config = Config(
            sentry=SentryConfig(auth_token="token"),
            transport=TransportConfig(transport="sse"),
            mcp=MCPConfig(),
        )
        self.mcp_server = create_server(config, client=Mock(spec=SentryClient))
        self.app = create_starlette_app(self.mcp_server)

    def test_health_endpoint(self):
        """Test the health check endpoint."""
        with TestClient(self.app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "server": "mcp-sentry"}

    def test_post_without_open_stream(self):
        """Test that messages are rejected while no SSE stream is open."""
        message = {"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}}

        with TestClient(self.app) as client:
            response = client.post("/messages/?session_id=abc", json=message)

        assert response.status_code == 400
        assert response.text == "SSE transport not initialized"

    def test_post_without_trailing_slash(self):
        """Test that /messages is served directly instead of redirecting."""
        with TestClient(self.app, follow_redirects=False) as client:
            response = client.post("/messages", json={})

        assert response.status_code == 400
        assert response.text == "SSE transport not initialized"

    def test_get_messages_not_allowed(self):
        with TestClient(self.app, follow_redirects=False) as client:
            response = client.get("/messages")

        assert response.status_code == 405

    def test_unknown_route(self):
        with TestClient(self.app) as client:
            response = client.get("/unknown")

        assert response.status_code == 404


class TestBindWithRetry:
    """Test port selection for the SSE server."""

    def test_first_port_free(self):
        sock = Mock()
        with patch("mcp_sentry.transport.sse._bind_socket", return_value=sock) as mock_bind:
            assert bind_with_retry("127.0.0.1", 3579) == (sock, 3579)

        mock_bind.assert_called_once_with("127.0.0.1", 3579)

    def test_increments_port_on_conflict(self):
        """Test that a taken port moves on to the next one."""
        sock = Mock()
        with patch("mcp_sentry.transport.sse._bind_socket",
                   side_effect=[_port_in_use(), _port_in_use(), sock]) as mock_bind:
            assert bind_with_retry("127.0.0.1", 3579) == (sock, 3581)

        assert [c.args[1] for c in mock_bind.call_args_list] == [3579, 3580, 3581]

    def test_gives_up_after_three_attempts(self):
        with patch("mcp_sentry.transport.sse._bind_socket",
                   side_effect=[_port_in_use()] * 3) as mock_bind:
            with pytest.raises(RuntimeError, match="after 3 attempts.*Last attempted port: 3581"):
                bind_with_retry("127.0.0.1", 3579)

        assert mock_bind.call_count == 3

    def test_other_errors_are_not_retried(self):
        error = OSError(errno.EACCES, "Permission denied")
        with patch("mcp_sentry.transport.sse._bind_socket", side_effect=error) as mock_bind:
            with pytest.raises(OSError, match="Permission denied"):
                bind_with_retry("127.0.0.1", 80)

        mock_bind.assert_called_once()

    def test_real_port_conflict(self):
        """Test against an actually occupied port."""
        taken = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        taken.bind(("127.0.0.1", 0))
        taken.listen()
        port = taken.getsockname()[1]
        try:
            with pytest.raises(RuntimeError, match="port conflicts"):
                bind_with_retry("127.0.0.1", port, max_retries=1)
        finally:
            taken.close()


class TestStartSSEServer:
    """Test running the SSE server."""

    @pytest.mark.asyncio
    async def test_serves_on_bound_socket(self):
        sock = Mock()
        mock_server = MagicMock()
        mock_server.serve = AsyncMock()

        with patch("mcp_sentry.transport.sse.bind_with_retry", return_value=(sock, 3580)) as mock_bind, \
             patch("mcp_sentry.transport.sse.uvicorn.Server", return_value=mock_server):
            await start_sse_server(Mock(), "0.0.0.0", 3579, 3)

        mock_bind.assert_called_once_with("0.0.0.0", 3579, 3)
        mock_server.serve.assert_awaited_once_with(sockets=[sock])
