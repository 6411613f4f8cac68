"""Sentry utility functions module."""

import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

import structlog

from .errors import InvalidInputError

logger = structlog.get_logger(__name__)

NO_STACKTRACE = "No stacktrace found"

DEFAULT_ISSUES_QUERY = "error.unhandled:true is:unresolved"

ISSUES_LIST_PARAMS = {
    "limit": "5",
    "sort": "freq",
    "statsPeriod": "14d",
}

_NUMERIC_ID = re.compile(r"[0-9]+")
_LEADING_INT = re.compile(r"^\s*([+-]?[0-9]+)")


def _split_url(url: str):
    """Parse an absolute URL, raising ValueError when it has no scheme or host."""
    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"'{url}' is not an absolute URL")
    # Accessing the port validates it
    parsed.port
    return parsed


def _host_port(parsed) -> str:
    """Rebuild the network location without any user:password part."""
    host = parsed.hostname
    if ":" in host:
        host = f"[{host}]"
    if parsed.port is not None:
        return f"{host}:{parsed.port}"
    return host


def _path_segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _segment_after(segments: List[str], token: str) -> Optional[str]:
    if token not in segments:
        return None
    index = segments.index(token)
    if index + 1 < len(segments):
        return segments[index + 1]
    return None


def _query_param(query: str, name: str) -> Optional[str]:
    values = parse_qs(query).get(name)
    return values[0] if values else None


def extract_issue_id(issue_id_or_url: Optional[str]) -> str:
    """Extract the Sentry issue ID from either a full URL or a standalone ID.

    Only strings starting with ``http://`` or ``https://`` are parsed as URLs;
    everything else is taken as the ID itself.

    Args:
        issue_id_or_url: Sentry issue ID or URL

    Returns:
        str: The numeric issue ID

    Raises:
        InvalidInputError: If the input is missing, malformed or not numeric
    """
    if not issue_id_or_url:
        raise InvalidInputError("Missing issue_id_or_url argument")

    if issue_id_or_url.startswith(("http://", "https://")):
        try:
            parsed = _split_url(issue_id_or_url)
        except ValueError as e:
            raise InvalidInputError(f"Invalid URL: {e}") from e

        segments = _path_segments(parsed.path)
        if len(segments) < 2 or segments[-2] != "issues":
            raise InvalidInputError(
                "Invalid Sentry issue URL. Path must contain '/issues/{issue_id}'"
            )
        issue_id = segments[-1]
    else:
        issue_id = issue_id_or_url

    if not _NUMERIC_ID.fullmatch(issue_id):
        raise InvalidInputError("Invalid Sentry issue ID. Must be a numeric value.")

    return issue_id


def extract_issues_api_url(url: Optional[str]) -> str:
    """Build the canonical issues list API URL from any Sentry URL.

    Works with API URLs (``/api/0/organizations/{org}/issues/?project=..``)
    as well as web interface URLs (``/organizations/{org}/projects/{project}/``).
    Feeding the result back in yields the same URL.

    Args:
        url: Sentry URL containing organization and project information

    Returns:
        str: Absolute issues list URL with the standard query parameters

    Raises:
        InvalidInputError: If the URL is malformed or lacks organization/project
    """
    if not url:
        raise InvalidInputError("Missing URL argument")

    try:
        parsed = _split_url(url)
    except ValueError as e:
        raise InvalidInputError(f"Invalid URL or URL format: {e}") from e

    segments = _path_segments(parsed.path)
    organization = _segment_after(segments, "organizations")
    project = _query_param(parsed.query, "project") or _segment_after(segments, "projects")

    if not organization:
        raise InvalidInputError("Could not extract organization from URL")
    if not project:
        raise InvalidInputError("Could not extract project ID from URL")

    params = {"project": project}
    params.update(ISSUES_LIST_PARAMS)
    params["query"] = _query_param(parsed.query, "query") or DEFAULT_ISSUES_QUERY

    api_url = urlunsplit((
        parsed.scheme,
        _host_port(parsed),
        f"/api/0/organizations/{organization}/issues/",
        urlencode(params),
        "",
    ))
    logger.debug("Normalized issues list URL", url=url, api_url=api_url)
    return api_url


def _format_frame(frame: Dict[str, Any]) -> str:
    filename = frame.get("filename") or "Unknown"
    lineno = frame.get("lineNo")
    if lineno is None:
        lineno = frame.get("lineno")
    if lineno is None:
        lineno = "?"
    function = frame.get("function") or "Unknown"

    text = f"{filename}:{lineno}:{function}\n"
    for context_line in frame.get("context") or []:
        # Sentry sends context as [lineno, source] pairs
        text += f"    {context_line[1]}\n"
    return text + "\n"


def create_stacktrace(latest_event: Optional[Dict[str, Any]]) -> str:
    """Create a formatted stacktrace string from the latest Sentry event.

    Args:
        latest_event: Latest event payload as returned by Sentry

    Returns:
        str: Formatted stacktrace, or ``"No stacktrace found"``
    """
    stacktraces = []

    for entry in (latest_event or {}).get("entries") or []:
        if entry.get("type") != "exception":
            continue

        for exception in (entry.get("data") or {}).get("values") or []:
            exception_type = exception.get("type") or "Unknown"
            exception_value = exception.get("value") or ""
            stacktrace = exception.get("stacktrace")

            text = f"Exception: {exception_type}: {exception_value}\n\n"
            if stacktrace:
                text += "Stacktrace:\n"
                for frame in stacktrace.get("frames") or []:
                    text += _format_frame(frame)

            stacktraces.append(text)

    return "\n".join(stacktraces) if stacktraces else NO_STACKTRACE


def parse_count(value: Any) -> int:
    """Parse a count field that Sentry sends as a string or a number.

    Leading integer prefixes are honored (``"12abc"`` -> 12); anything
    unparsable or negative becomes 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        try:
            return max(int(value), 0)
        except (OverflowError, ValueError):
            return 0

    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return max(int(match.group(1)), 0)
