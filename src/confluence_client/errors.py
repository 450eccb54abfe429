"""Typed exception hierarchy for Confluence MCP server errors.

This module defines all custom exceptions used by the server. Every exception
inherits from ConfluenceMCPError so the request dispatcher can catch the whole
family at its boundary and render it into a tool result. Each exception carries
the context needed to build a readable message for the calling agent.
"""

from typing import Any, Optional


class ConfluenceMCPError(Exception):
    """Base exception for all confluence-mcp-server errors.

    Use this to catch any application-level error from the server.
    """
    pass


class ConfigurationError(ConfluenceMCPError):
    """Raised when the persisted configuration is missing or invalid."""

    def __init__(self, message: str, config_field: Optional[str] = None):
        if config_field:
            full_message = f"Configuration error in field '{config_field}': {message}"
        else:
            full_message = message
        super().__init__(full_message)
        self.config_field = config_field


class ValidationError(ConfluenceMCPError):
    """Raised when tool arguments fail local validation or the API answers 400."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ContentFormatError(ValidationError):
    """Raised when a page body is not in Confluence storage format."""

    def __init__(self, message: str, detected_format: Optional[str] = None):
        super().__init__(message)
        self.detected_format = detected_format


class ClientRateLimitError(ConfluenceMCPError):
    """Raised by the client-side limiter before any request is sent."""

    def __init__(self, max_requests: int, window_ms: int):
        super().__init__(
            f"Client-side rate limit exceeded ({max_requests} requests per "
            f"{window_ms} ms). Please wait a moment."
        )
        self.max_requests = max_requests
        self.window_ms = window_ms


class ConfluenceError(ConfluenceMCPError):
    """Base exception for errors returned by the Confluence API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Any = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class RemoteRateLimitError(ConfluenceError):
    """Raised when Confluence answers 429 Too Many Requests."""

    def __init__(self, message: str = "Rate limit exceeded. Please wait a moment."):
        super().__init__(message, status_code=429)


class AuthenticationError(ConfluenceError):
    """Raised when Confluence answers 403 Forbidden."""

    def __init__(self, message: str = "Access denied. Check your permissions."):
        super().__init__(message, status_code=403)


class TokenExpiredError(ConfluenceError):
    """Raised when Confluence answers 401 and the token may be stale."""

    def __init__(self, message: str = "API token is expired or invalid"):
        super().__init__(message, status_code=401)


class RenewalFailedError(TokenExpiredError):
    """Raised when a 401 could not be recovered by renewing the token."""

    def __init__(self, reason: str):
        super().__init__(f"Token renewal failed: {reason}")
        self.reason = reason


class VersionConflictError(ConfluenceError):
    """Raised when a page update is rejected with 409 Conflict."""

    def __init__(self, page_id: str, submitted_version: int):
        super().__init__(
            f"Version conflict: page {page_id} was modified concurrently "
            f"(submitted version {submitted_version} is stale). "
            f"Fetch the page again and retry the update.",
            status_code=409
        )
        self.page_id = page_id
        self.submitted_version = submitted_version


class GenericAPIError(ConfluenceError):
    """Raised for any other non-2xx answer from Confluence."""
    pass


class PageNotFoundError(GenericAPIError):
    """Raised when a requested page does not exist."""

    def __init__(self, page_id: str):
        super().__init__(f"Page {page_id} not found", status_code=404)
        self.page_id = page_id


class APIUnreachableError(GenericAPIError):
    """Raised when the Confluence API times out or cannot be reached."""

    def __init__(self, endpoint: str, reason: str = "unreachable"):
        super().__init__(f"API is not available at {endpoint} ({reason})")
        self.endpoint = endpoint
        self.reason = reason
