"""Sentry issues list tool implementation for MCP."""

import requests
import structlog

from ..sentry.errors import SentryError, SentryTransportError, SentryUpstreamError
from ..sentry.models import SentryIssueListItem, SentryIssuesListData
from ..sentry.utils import extract_issues_api_url
from .base import BaseSentryTool

logger = structlog.get_logger(__name__)

ERROR_PREFIX = "Error fetching Sentry issues list"


class SentryIssuesListTool(BaseSentryTool):
    """MCP tool listing top issues, and prompt naming the most triggered one."""

    tool_name = "get_sentry_issues_list"
    tool_description = (
        "Retrieve a list of Sentry issues from any Sentry URL format. Use this tool when you need to:\n"
        "  - Get a list of recent issues with their details\n"
        "  - View issues sorted by frequency or other criteria\n"
        "  - Access information about issue types, levels, and affected users\n"
        "  - Works with API URLs or web interface URLs (automatically extracts organization & project)"
    )
    prompt_name = "most-triggered-issue"
    prompt_description = "Find the issue affecting the most users from any Sentry URL format"
    argument_name = "url"
    argument_description = "Any Sentry URL containing organization and project information"

    async def fetch(self, url: str) -> SentryIssuesListData:
        """Fetch the top issues for the organization/project named by a URL.

        Raises:
            InvalidInputError: If organization or project cannot be extracted
            SentryAuthenticationError: If Sentry answers 401
            SentryUpstreamError: If the response is not a non-empty list
            SentryTransportError: On any other request failure
        """
        api_url = extract_issues_api_url(url)

        try:
            issues = await self._call(self.client.list_issues, api_url)
        except SentryError:
            raise
        except requests.RequestException as e:
            logger.error("Failed to fetch Sentry issues list", api_url=api_url, error=str(e))
            raise SentryTransportError(f"{ERROR_PREFIX}: {e}") from e

        if not isinstance(issues, list) or not issues or not all(isinstance(i, dict) for i in issues):
            logger.warning("Invalid Sentry issues list response", api_url=api_url)
            raise SentryUpstreamError(
                f"{ERROR_PREFIX}: No issues found or invalid response format"
            )

        logger.info("Sentry issues list retrieved successfully", count=len(issues))
        return SentryIssuesListData(
            issues=tuple(SentryIssueListItem.from_api(issue) for issue in issues)
        )

    def _tool_result(self, data: SentryIssuesListData):
        return data.to_tool_result()

    def _prompt_result(self, data: SentryIssuesListData):
        return data.to_most_triggered_prompt_result()
