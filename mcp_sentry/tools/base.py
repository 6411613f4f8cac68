"""Base tool implementation shared by the Sentry MCP tools."""

import asyncio
from typing import Any, Dict, List, Optional

import structlog
from mcp.types import GetPromptResult, Prompt, PromptArgument, TextContent, Tool

from ..sentry.client import SentryClient
from ..sentry.errors import InvalidInputError

logger = structlog.get_logger(__name__)


class BaseSentryTool:
    """Base class for a Sentry lookup exposed both as an MCP tool and a prompt.

    Subclasses implement ``fetch`` and the two projections of its result.
    """

    tool_name: str
    tool_description: str
    prompt_name: str
    prompt_description: str
    argument_name: str
    argument_description: str

    def __init__(self, client: SentryClient):
        """Initialize the tool.

        Args:
            client: Sentry API client
        """
        self.client = client

    def get_tool_definition(self) -> Tool:
        """Get the MCP tool definition."""
        return Tool(
            name=self.tool_name,
            description=self.tool_description,
            inputSchema={
                "type": "object",
                "properties": {
                    self.argument_name: {
                        "type": "string",
                        "description": self.argument_description,
                    }
                },
                "required": [self.argument_name],
            },
        )

    def get_prompt_definition(self) -> Prompt:
        """Get the MCP prompt definition."""
        return Prompt(
            name=self.prompt_name,
            description=self.prompt_description,
            arguments=[
                PromptArgument(
                    name=self.argument_name,
                    description=self.argument_description,
                    required=True,
                )
            ],
        )

    def _argument(self, arguments: Optional[Dict[str, Any]]) -> str:
        value = (arguments or {}).get(self.argument_name)
        if value is not None and not isinstance(value, str):
            raise InvalidInputError(f"{self.argument_name} must be a string")
        return value

    async def _call(self, func, *args):
        """Run a blocking client call without blocking the event loop."""
        return await asyncio.to_thread(func, *args)

    async def fetch(self, value: str):
        raise NotImplementedError

    def _tool_result(self, data) -> List[TextContent]:
        raise NotImplementedError

    def _prompt_result(self, data) -> GetPromptResult:
        raise NotImplementedError

    async def execute(self, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
        """Execute the tool.

        Raises:
            SentryError: If the lookup fails
        """
        value = self._argument(arguments)
        logger.info("Executing Sentry tool", tool=self.tool_name, argument=value)
        return self._tool_result(await self.fetch(value))

    async def render_prompt(self, arguments: Optional[Dict[str, Any]]) -> GetPromptResult:
        """Render the prompt.

        Raises:
            SentryError: If the lookup fails
        """
        value = self._argument(arguments)
        logger.info("Rendering Sentry prompt", prompt=self.prompt_name, argument=value)
        return self._prompt_result(await self.fetch(value))
