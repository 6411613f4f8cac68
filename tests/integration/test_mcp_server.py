"""Integration tests for the MCP server handlers."""

from importlib.metadata import version

import pytest
from unittest.mock import Mock

from mcp import types

from mcp_sentry.config import Config, MCPConfig, SentryConfig, TransportConfig
from mcp_sentry.sentry.client import SentryClient
from mcp_sentry.sentry.errors import SentryAuthenticationError
from mcp_sentry.server import create_server


class TestSentryMCPServer:
    """Test the registered MCP request handlers."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = Mock(spec=SentryClient)
        self.client.get_issue.return_value = {
            "title": "Test Error",
            "status": "unresolved",
            "level": "error",
            "firstSeen": "2023-01-01T00:00:00Z",
            "lastSeen": "2023-01-02T00:00:00Z",
            "count": "10",
        }
        self.client.get_issue_hashes.return_value = [{"latestEvent": {"entries": []}}]
        self.client.list_issues.return_value = [
            {"id": "1", "title": "A", "issueType": "error", "level": "error",
             "userCount": "3", "lastSeen": "2024-01-01T00:00:00Z", "count": "8"},
        ]
        config = Config(
            sentry=SentryConfig(auth_token="token"),
            transport=TransportConfig(),
            mcp=MCPConfig(),
        )
        self.server = create_server(config, client=self.client)

    async def _request(self, request_type, request):
        result = await self.server.request_handlers[request_type](request)
        return result.root

    def test_server_name(self):
        assert self.server.name == "sentry"

    def test_installed_sdk_has_low_level_decorators(self):
        """Test that the installed mcp release is the 1.x line this server is written for."""
        assert int(version("mcp").split(".")[0]) < 2
        for decorator in ("list_prompts", "get_prompt", "list_tools", "call_tool"):
            assert callable(getattr(self.server, decorator))

    @pytest.mark.asyncio
    async def test_list_tools(self):
        """Test that both tools are advertised."""
        result = await self._request(types.ListToolsRequest, types.ListToolsRequest(method="tools/list"))

        assert sorted(tool.name for tool in result.tools) == ["get_sentry_issue", "get_sentry_issues_list"]

    @pytest.mark.asyncio
    async def test_list_prompts(self):
        """Test that both prompts are advertised."""
        result = await self._request(types.ListPromptsRequest, types.ListPromptsRequest(method="prompts/list"))

        prompts = {prompt.name: prompt for prompt in result.prompts}
        assert sorted(prompts) == ["most-triggered-issue", "sentry-issue"]
        assert "Retrieve a Sentry issue" in prompts["sentry-issue"].description

    @pytest.mark.asyncio
    async def test_get_prompt(self):
        """Test rendering the sentry-issue prompt."""
        result = await self._request(
            types.GetPromptRequest,
            types.GetPromptRequest(
                method="prompts/get",
                params=types.GetPromptRequestParams(
                    name="sentry-issue", arguments={"issue_id_or_url": "12345"}
                ),
            ),
        )

        assert result.description == "Sentry Issue: Test Error"
        assert result.messages[0].role == "user"
        assert "No stacktrace found" in result.messages[0].content.text

    @pytest.mark.asyncio
    async def test_get_most_triggered_prompt(self):
        result = await self._request(
            types.GetPromptRequest,
            types.GetPromptRequest(
                method="prompts/get",
                params=types.GetPromptRequestParams(
                    name="most-triggered-issue",
                    arguments={"url": "https://sentry.io/organizations/org/projects/proj/"},
                ),
            ),
        )

        assert result.description == "Most Triggered Issue: A"

    @pytest.mark.asyncio
    async def test_get_prompt_failure_raises(self):
        """Test that prompt failures surface as errors."""
        self.client.get_issue.side_effect = SentryAuthenticationError()

        with pytest.raises(SentryAuthenticationError):
            await self.server.request_handlers[types.GetPromptRequest](
                types.GetPromptRequest(
                    method="prompts/get",
                    params=types.GetPromptRequestParams(
                        name="sentry-issue", arguments={"issue_id_or_url": "12345"}
                    ),
                )
            )

    @pytest.mark.asyncio
    async def test_unknown_prompt(self):
        with pytest.raises(ValueError, match="Unknown prompt"):
            await self.server.request_handlers[types.GetPromptRequest](
                types.GetPromptRequest(
                    method="prompts/get",
                    params=types.GetPromptRequestParams(name="nope", arguments={}),
                )
            )

    @pytest.mark.asyncio
    async def test_call_tool(self):
        """Test calling the issues list tool."""
        result = await self._request(
            types.CallToolRequest,
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(
                    name="get_sentry_issues_list",
                    arguments={"url": "https://sentry.io/organizations/org/projects/proj/"},
                ),
            ),
        )

        assert not result.isError
        assert result.content[0].text.startswith("Sentry Issues List (Top 1):")

    @pytest.mark.asyncio
    async def test_call_tool_failure_is_error_result(self):
        """Test that tool failures become error results instead of crashing."""
        self.client.get_issue_hashes.return_value = []

        result = await self._request(
            types.CallToolRequest,
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(
                    name="get_sentry_issue", arguments={"issue_id_or_url": "12345"}
                ),
            ),
        )

        assert result.isError
        assert "No events found" in result.content[0].text
