"""Sentry API client module."""

from typing import Any, Dict
from urllib.parse import urljoin

import requests
import structlog

from ..config import SentryConfig
from .errors import SentryAuthenticationError

logger = structlog.get_logger(__name__)


class SentryClient:
    """Sentry REST API client authenticated with a bearer token.

    Holds no connection state; every call issues a standalone request so
    concurrent lookups from worker threads never share cookies or pools.
    """

    def __init__(self, config: SentryConfig):
        """Initialize Sentry client.

        Args:
            config: Sentry configuration
        """
        self.config = config
        self.api_base = config.api_base if config.api_base.endswith("/") else config.api_base + "/"
        self.headers: Dict[str, str] = {"Authorization": f"Bearer {config.auth_token}"}

    def get(self, path_or_url: str) -> Any:
        """GET a Sentry resource and return the decoded JSON body.

        Args:
            path_or_url: Path relative to the API base, or an absolute URL

        Returns:
            Any: Decoded JSON response

        Raises:
            SentryAuthenticationError: If Sentry answers 401
            requests.RequestException: On any other HTTP or network failure
        """
        url = urljoin(self.api_base, path_or_url)
        logger.debug("Requesting Sentry resource", url=url)

        response = requests.get(url, headers=dict(self.headers))
        if response.status_code == 401:
            logger.error("Sentry rejected the auth token", url=url)
            raise SentryAuthenticationError()
        response.raise_for_status()
        return response.json()

    def get_issue(self, issue_id: str) -> Any:
        """Get an issue summary."""
        return self.get(f"issues/{issue_id}/")

    def get_issue_hashes(self, issue_id: str) -> Any:
        """Get the hashes of an issue, each embedding its latest event."""
        return self.get(f"issues/{issue_id}/hashes/")

    def list_issues(self, api_url: str) -> Any:
        """Get an issues list from an absolute issues API URL."""
        return self.get(api_url)
