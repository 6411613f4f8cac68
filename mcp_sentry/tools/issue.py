"""Sentry issue tool implementation for MCP."""

import requests
import structlog

from ..sentry.errors import SentryError, SentryTransportError, SentryUpstreamError
from ..sentry.models import SentryIssueData
from ..sentry.utils import create_stacktrace, extract_issue_id
from .base import BaseSentryTool

logger = structlog.get_logger(__name__)

ERROR_PREFIX = "Error fetching Sentry issue"


class SentryIssueTool(BaseSentryTool):
    """MCP tool and prompt for retrieving a single Sentry issue."""

    tool_name = "get_sentry_issue"
    tool_description = (
        "Retrieve and analyze a Sentry issue by ID or URL. Use this tool when you need to:\n"
        "  - Investigate production errors and crashes\n"
        "  - Access detailed stacktraces from Sentry\n"
        "  - Analyze error patterns and frequencies\n"
        "  - Get information about when issues first/last occurred\n"
        "  - Review error counts and status"
    )
    prompt_name = "sentry-issue"
    prompt_description = "Retrieve a Sentry issue by ID or URL"
    argument_name = "issue_id_or_url"
    argument_description = "Sentry issue ID or URL to analyze"

    async def fetch(self, issue_id_or_url: str) -> SentryIssueData:
        """Fetch an issue and the stacktrace of its latest event.

        Args:
            issue_id_or_url: Sentry issue ID or URL

        Returns:
            SentryIssueData: The formatted issue

        Raises:
            InvalidInputError: If the ID or URL is invalid
            SentryAuthenticationError: If Sentry answers 401
            SentryUpstreamError: If the issue has no events or a body is malformed
            SentryTransportError: On any other request failure
        """
        issue_id = extract_issue_id(issue_id_or_url)

        try:
            issue = await self._call(self.client.get_issue, issue_id)
            hashes = await self._call(self.client.get_issue_hashes, issue_id)
        except SentryError:
            raise
        except requests.RequestException as e:
            logger.error("Failed to fetch Sentry issue", issue_id=issue_id, error=str(e))
            raise SentryTransportError(f"{ERROR_PREFIX}: {e}") from e

        if not isinstance(hashes, list) or not hashes:
            logger.warning("No events found for Sentry issue", issue_id=issue_id)
            raise SentryUpstreamError(f"{ERROR_PREFIX}: No events found for this issue")
        if not isinstance(issue, dict) or not isinstance(hashes[0], dict):
            logger.warning("Unexpected Sentry response format", issue_id=issue_id)
            raise SentryUpstreamError(f"{ERROR_PREFIX}: Invalid response format")

        stacktrace = create_stacktrace(hashes[0].get("latestEvent"))
        logger.info("Sentry issue retrieved successfully", issue_id=issue_id)

        return SentryIssueData(
            title=issue.get("title"),
            issue_id=issue_id,
            status=issue.get("status"),
            level=issue.get("level"),
            first_seen=issue.get("firstSeen"),
            last_seen=issue.get("lastSeen"),
            count=issue.get("count"),
            stacktrace=stacktrace,
        )

    def _tool_result(self, data: SentryIssueData):
        return data.to_tool_result()

    def _prompt_result(self, data: SentryIssueData):
        return data.to_prompt_result()
