"""Confluence client library for the MCP server.

This package provides a rate-limited, self-renewing wrapper over the
Confluence Cloud REST API and the typed exceptions it raises.
"""

from .errors import (
    ConfluenceMCPError,
    ConfigurationError,
    ValidationError,
    ContentFormatError,
    ClientRateLimitError,
    ConfluenceError,
    RemoteRateLimitError,
    AuthenticationError,
    TokenExpiredError,
    RenewalFailedError,
    VersionConflictError,
    GenericAPIError,
    PageNotFoundError,
    APIUnreachableError,
)

__all__ = [
    "ConfluenceMCPError",
    "ConfigurationError",
    "ValidationError",
    "ContentFormatError",
    "ClientRateLimitError",
    "ConfluenceError",
    "RemoteRateLimitError",
    "AuthenticationError",
    "TokenExpiredError",
    "RenewalFailedError",
    "VersionConflictError",
    "GenericAPIError",
    "PageNotFoundError",
    "APIUnreachableError",
]
