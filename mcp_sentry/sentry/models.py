"""Sentry issue models and their MCP renderings."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from mcp.types import GetPromptResult, PromptMessage, TextContent

from .utils import parse_count


def _user_prompt(description: str, text: str) -> GetPromptResult:
    return GetPromptResult(
        description=description,
        messages=[
            PromptMessage(
                role="user",
                content=TextContent(type="text", text=text),
            )
        ],
    )


def _tool_content(text: str) -> List[TextContent]:
    return [TextContent(type="text", text=text)]


@dataclass(frozen=True)
class SentryIssueData:
    """A single Sentry issue with the stacktrace of its latest event."""
    title: str
    issue_id: str
    status: str
    level: str
    first_seen: str
    last_seen: str
    count: Any
    stacktrace: str

    def to_text(self) -> str:
        """Render the issue as human-readable text."""
        return (
            f"Sentry Issue: {self.title}\n"
            f"Issue ID: {self.issue_id}\n"
            f"Status: {self.status}\n"
            f"Level: {self.level}\n"
            f"First Seen: {self.first_seen}\n"
            f"Last Seen: {self.last_seen}\n"
            f"Event Count: {self.count}\n"
            f"\n"
            f"{self.stacktrace}"
        )

    def to_prompt_result(self) -> GetPromptResult:
        return _user_prompt(f"Sentry Issue: {self.title}", self.to_text())

    def to_tool_result(self) -> List[TextContent]:
        return _tool_content(self.to_text())


@dataclass(frozen=True)
class SentryIssueListItem:
    """One entry of a Sentry issues list."""
    id: str
    title: str
    issue_type: str
    level: str
    user_count: int
    last_seen: str
    count: int

    @classmethod
    def from_api(cls, issue: Dict[str, Any]) -> "SentryIssueListItem":
        """Build a list item from a raw issue object of the issues API."""
        return cls(
            id=issue.get("id"),
            title=issue.get("title"),
            issue_type=issue.get("issueType"),
            level=issue.get("level"),
            user_count=parse_count(issue.get("userCount")),
            last_seen=issue.get("lastSeen"),
            count=parse_count(issue.get("count")),
        )


def find_most_affected(issues: Sequence[SentryIssueListItem]) -> Optional[SentryIssueListItem]:
    """Return the issue with the highest user count.

    On ties the first issue in input order wins.
    """
    if not issues:
        return None

    most_affected = issues[0]
    for issue in issues[1:]:
        if issue.user_count > most_affected.user_count:
            most_affected = issue
    return most_affected


@dataclass(frozen=True)
class SentryIssuesListData:
    """An ordered list of Sentry issues, as returned by the issues API."""
    issues: Tuple[SentryIssueListItem, ...]

    def to_text(self) -> str:
        """Render the issues list as human-readable text."""
        blocks = [
            f"{index}. [{issue.id}] {issue.title}\n"
            f"   Type: {issue.issue_type}, Level: {issue.level}\n"
            f"   Users Affected: {issue.user_count}, Events: {issue.count}\n"
            f"   Last Seen: {issue.last_seen}\n"
            for index, issue in enumerate(self.issues, start=1)
        ]
        return f"Sentry Issues List (Top {len(self.issues)}):\n\n" + "\n".join(blocks)

    def find_most_triggered_issue(self) -> Optional[SentryIssueListItem]:
        return find_most_affected(self.issues)

    def to_prompt_result(self) -> GetPromptResult:
        return _user_prompt(f"Sentry Issues List ({len(self.issues)} issues)", self.to_text())

    def to_most_triggered_prompt_result(self) -> GetPromptResult:
        """Render the issue affecting the most users as a prompt."""
        issue = self.find_most_triggered_issue()
        if issue is None:
            return _user_prompt("No issues found", "No issues were found in the list.")

        text = (
            f"The issue affecting the most users ({issue.user_count} users) is:\n\n"
            f"ID: {issue.id}\n"
            f"Title: {issue.title}\n"
            f"Type: {issue.issue_type}, Level: {issue.level}\n"
            f"Last Seen: {issue.last_seen}\n"
            f"Event Count: {issue.count}"
        )
        return _user_prompt(f"Most Triggered Issue: {issue.title}", text)

    def to_tool_result(self) -> List[TextContent]:
        return _tool_content(self.to_text())
