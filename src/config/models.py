"""Data model for the persisted server configuration.

The configuration record is an immutable snapshot. Token renewal and setup
produce a new snapshot with dataclasses.replace() instead of mutating the
live one, so readers never observe a half-updated record.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_LOG_LEVEL = "info"
DEFAULT_RATE_LIMIT_REQUESTS = 100
DEFAULT_RATE_LIMIT_WINDOW_MS = 60000
LOG_LEVELS = ("debug", "info", "warn", "error")


@dataclass(frozen=True)
class ConfluenceConfig:
    """Credentials and settings for one Confluence Cloud site.

    Attributes:
        confluence_base_url: Site URL without the /wiki suffix
            (e.g., https://example.atlassian.net)
        confluence_email: Atlassian account email
        confluence_api_token: Atlassian API token (stored in clear text)
        log_level: One of debug, info, warn, error
        rate_limit_requests: Client-side quota per window
        rate_limit_window_ms: Length of the rate-limit window in milliseconds
        token_expiry_date: Optional ISO 8601 expiry of the API token
        last_validated: ISO 8601 timestamp of the last successful live check

    Example:
        >>> config = ConfluenceConfig(
        ...     confluence_base_url="https://example.atlassian.net",
        ...     confluence_email="user@example.com",
        ...     confluence_api_token="token123",
        ... )
    """
    confluence_base_url: str
    confluence_email: str
    confluence_api_token: str
    log_level: str = DEFAULT_LOG_LEVEL
    rate_limit_requests: int = DEFAULT_RATE_LIMIT_REQUESTS
    rate_limit_window_ms: int = DEFAULT_RATE_LIMIT_WINDOW_MS
    token_expiry_date: Optional[str] = None
    last_validated: Optional[str] = None

    @property
    def api_base_url(self) -> str:
        """Root of the REST API, e.g. https://example.atlassian.net/wiki."""
        return f"{self.confluence_base_url.rstrip('/')}/wiki"
