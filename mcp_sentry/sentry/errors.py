"""Sentry error types."""

from enum import Enum


UNAUTHORIZED_MESSAGE = "Error: Unauthorized. Please check your SENTRY_TOKEN."


class ErrorKind(str, Enum):
    """Kind tag carried by every Sentry error."""
    INVALID_INPUT = "invalid_input"
    AUTH = "auth"
    UPSTREAM = "upstream"
    TRANSPORT = "transport"


class SentryError(Exception):
    """Base exception for Sentry related errors."""
    kind: ErrorKind


class InvalidInputError(SentryError):
    """Exception raised when an issue ID or URL cannot be parsed."""
    kind = ErrorKind.INVALID_INPUT


class SentryAuthenticationError(SentryError):
    """Exception raised when Sentry rejects the auth token."""
    kind = ErrorKind.AUTH

    def __init__(self, message: str = UNAUTHORIZED_MESSAGE):
        super().__init__(message)


class SentryUpstreamError(SentryError):
    """Exception raised when Sentry answers with an empty or invalid result."""
    kind = ErrorKind.UPSTREAM


class SentryTransportError(SentryError):
    """Exception raised when a request to Sentry fails."""
    kind = ErrorKind.TRANSPORT
