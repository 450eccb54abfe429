"""API wrapper for the Confluence Cloud REST API.

This module wraps the atlassian-python-api Confluence client and provides:
1. A client-side fixed-window rate limit checked before every request
2. Error translation from HTTP exceptions to our typed exception hierarchy
3. Token renewal on 401 followed by exactly one resubmission of the request

The wrapper builds its client lazily from the config store and rebuilds it
after a renewal, so the new Authorization header is used for the retry.
"""

import logging
import re
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import requests
from atlassian import Confluence
from requests.exceptions import Timeout, ConnectionError

from src.config.config_store import ConfigStore
from .auth import build_auth_headers
from .errors import (
    ConfluenceMCPError,
    ValidationError,
    RemoteRateLimitError,
    AuthenticationError,
    TokenExpiredError,
    RenewalFailedError,
    VersionConflictError,
    GenericAPIError,
    PageNotFoundError,
    APIUnreachableError,
)
from .rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Returns a fresh API token, or raises if none can be obtained
TokenRenewer = Callable[[], str]

REQUEST_TIMEOUT_SECONDS = 30
DEFAULT_PAGE_EXPAND = "body.storage,version,space"
RECENT_PAGES_CQL = "type=page ORDER BY lastModified DESC"

NO_RENEWAL_CHANNEL = (
    "no interactive channel is available to enter a new token. "
    "Create a new token at https://id.atlassian.com/manage-profile/security/api-tokens "
    "and call setup_confluence with action 'update_token'"
)


def sanitize_credentials(text: str) -> str:
    """Mask credentials in error text before it is logged or returned.

    Example:
        >>> sanitize_credentials("Authorization: Basic dXNlcjp0b2tlbg==")
        'Authorization: ***REDACTED***'
    """
    if not text:
        return text

    sanitized = re.sub(r'://([\w.-]+):([\w.-]+)@', r'://***:***@', text)
    sanitized = re.sub(
        r'Authorization:\s*[^\n\r]+',
        'Authorization: ***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )
    sanitized = re.sub(
        r'(Basic|Bearer)\s+[A-Za-z0-9+/=._-]{8,}',
        r'\1 ***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )
    sanitized = re.sub(
        r'(api_?token|token)["\']?\s*[:=]\s*["\']?([^"\'\s&,}]+)',
        r'\1=***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )
    return sanitized


def build_search_pages_cql(query: str) -> str:
    """CQL matching pages whose title or text contains the query."""
    escaped = query.replace('\\', '\\\\').replace('"', '\\"')
    return f'type=page AND (title ~ "{escaped}" OR text ~ "{escaped}")'


def _page_params(limit: int, cursor: Optional[str]) -> Dict[str, Any]:
    params: Dict[str, Any] = {"limit": limit}
    if cursor:
        params["cursor"] = cursor
    return params


class APIWrapper:
    """Rate-limited, self-renewing wrapper around the Confluence REST API.

    Every public method goes through _execute(), which counts the attempt
    against the client-side rate limit, translates failures into typed
    exceptions and, on a 401, renews the token and resubmits once.

    Example:
        >>> store = ConfigStore()
        >>> store.load()
        >>> api = APIWrapper(store)
        >>> page = api.get_page("123456")
    """

    def __init__(
        self,
        config_store: ConfigStore,
        token_renewer: Optional[TokenRenewer] = None,
        rate_limiter: Optional[FixedWindowRateLimiter] = None
    ):
        """Initialize the wrapper.

        Args:
            config_store: Store holding the current configuration snapshot
            token_renewer: Callable returning a fresh token after a 401.
                None means no interactive channel is available.
            rate_limiter: Optional limiter (built from the config when omitted)
        """
        self._config_store = config_store
        self._token_renewer = token_renewer
        self._rate_limiter = rate_limiter
        self._client: Optional[Confluence] = None
        self._client_lock = threading.Lock()

    def _get_rate_limiter(self) -> FixedWindowRateLimiter:
        if self._rate_limiter is None:
            config = self._config_store.get_config()
            self._rate_limiter = FixedWindowRateLimiter(
                max_requests=config.rate_limit_requests,
                window_ms=config.rate_limit_window_ms,
            )
        return self._rate_limiter

    def _get_client(self) -> Confluence:
        """Get or create the Confluence API client.

        Returns:
            Confluence: Client whose session carries the Basic-Auth header

        Raises:
            ConfigurationError: If no configuration is loaded
        """
        with self._client_lock:
            if self._client is None:
                config = self._config_store.get_config()
                session = requests.Session()
                session.headers.update(build_auth_headers(config))
                self._client = Confluence(
                    url=config.api_base_url,
                    session=session,
                    cloud=True,
                    timeout=REQUEST_TIMEOUT_SECONDS,
                )
            return self._client

    def reset_client(self) -> None:
        """Drop the live client so the next call rebuilds it from the current config."""
        config = self._config_store.get_config()
        with self._client_lock:
            self._client = None
        if self._rate_limiter is not None:
            self._rate_limiter.reconfigure(
                config.rate_limit_requests,
                config.rate_limit_window_ms,
            )

    def _validate_page_id(self, page_id: str) -> None:
        """Validate that a page ID is numeric.

        Raises:
            ValidationError: If page_id is empty or not numeric
        """
        if not page_id or not str(page_id).strip():
            raise ValidationError("pageId cannot be empty")

        if not re.match(r'^\d+$', str(page_id).strip()):
            raise ValidationError(
                f"Invalid pageId format: '{page_id}'. "
                f"Page IDs must contain only numeric characters."
            )

    def _validate_space_key(self, space_key: str) -> None:
        if not space_key or not re.match(r'^[A-Za-z0-9_~-]+$', space_key):
            raise ValidationError(f"Invalid spaceKey: '{space_key}'")

    def _remote_message(self, exception: Exception) -> Tuple[str, Any]:
        """Extract the remote error message and body from an HTTP exception."""
        response = getattr(exception, 'response', None)
        if response is not None:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get('message') or body.get('errorMessage')
                if message:
                    return str(message), body
        return str(exception), None

    def _translate_error(
        self,
        exception: Exception,
        operation: str,
        page_id: Optional[str] = None,
        submitted_version: Optional[int] = None
    ) -> Exception:
        """Translate HTTP exceptions to typed Confluence exceptions.

        Args:
            exception: The original exception from the API client
            operation: Description of the operation that failed (for logging)
            page_id: Page the operation targets, if any
            submitted_version: Version sent by an update, if any

        Returns:
            Exception: Translated exception (one of our typed exceptions)
        """
        endpoint = self._config_store.get_config().api_base_url

        if isinstance(exception, Timeout):
            return APIUnreachableError(
                endpoint, f"timeout after {REQUEST_TIMEOUT_SECONDS}s"
            )
        if isinstance(exception, ConnectionError):
            return APIUnreachableError(endpoint, "connection failed")

        status_code = getattr(getattr(exception, 'response', None), 'status_code', None)
        if not isinstance(status_code, int):
            status_code = getattr(exception, 'status_code', None)
            if not isinstance(status_code, int):
                status_code = None

        message, body = self._remote_message(exception)
        safe_message = sanitize_credentials(message)

        if status_code == 401:
            return TokenExpiredError()
        if status_code == 403:
            return AuthenticationError()
        if status_code == 429:
            return RemoteRateLimitError()
        if status_code == 409 and page_id is not None and submitted_version is not None:
            return VersionConflictError(page_id, submitted_version)
        if status_code == 404 and page_id is not None:
            return PageNotFoundError(page_id)
        if status_code == 400:
            return ValidationError(
                f"Confluence rejected the request: {safe_message}",
                status_code=400
            )

        logger.error(f"API operation failed: {operation} - {safe_message}")
        if status_code is None:
            return GenericAPIError(
                f"Confluence API failure during {operation}: {safe_message}"
            )
        return GenericAPIError(
            f"Confluence API error during {operation} (HTTP {status_code}): {safe_message}",
            status_code=status_code,
            response=body
        )

    def _attempt(self, operation: str, call: Callable[[Confluence], T], **context) -> T:
        self._get_rate_limiter().acquire()
        client = self._get_client()
        try:
            return call(client)
        except Exception as e:
            raise self._translate_error(e, operation, **context) from e

    def _renew_token(self, cause: TokenExpiredError) -> None:
        """Obtain, validate and persist a new token, then rebuild the client.

        Raises:
            RenewalFailedError: If no token could be obtained or it is invalid
        """
        if self._token_renewer is None:
            raise RenewalFailedError(NO_RENEWAL_CHANNEL) from cause

        try:
            new_token = self._token_renewer()
            self._config_store.update_token(new_token)
        except Exception as e:
            raise RenewalFailedError(str(e) or type(e).__name__) from e

        self.reset_client()
        logger.info("Token renewed, client rebuilt")

    def _execute(self, operation: str, call: Callable[[Confluence], T], **context) -> T:
        """Run one API call with rate limiting, error translation and 401 renewal.

        Args:
            operation: Description of the call for logs and messages
            call: Function performing the request on the Confluence client
            **context: page_id / submitted_version used for error translation

        Returns:
            The value returned by the call

        Raises:
            ConfluenceMCPError: Typed failure; RenewalFailedError after a 401
                that renewal could not recover
        """
        try:
            return self._attempt(operation, call, **context)
        except TokenExpiredError as e:
            logger.warning(
                f"Authentication error during {operation}. Token may have expired."
            )
            self._renew_token(e)

        try:
            return self._attempt(operation, call, **context)
        except ConfluenceMCPError as retry_error:
            raise RenewalFailedError(
                f"request failed again after renewal: {retry_error}"
            ) from retry_error

    def get_current_user(self) -> Dict[str, Any]:
        """Fetch the user the credentials belong to."""
        return self._execute(
            "get_current_user",
            lambda client: client.get("rest/api/user/current")
        )

    def get_page(
        self,
        page_id: str,
        expand: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Fetch a page by its ID.

        Args:
            page_id: The Confluence page ID
            expand: Properties to expand (default: body.storage, version, space)

        Returns:
            Dict containing page data from Confluence API

        Raises:
            ValidationError: If page_id is not numeric
            PageNotFoundError: If page doesn't exist
            TokenExpiredError / RenewalFailedError: On unrecoverable 401
            APIUnreachableError: If API is unreachable
        """
        self._validate_page_id(page_id)
        expand_param = ",".join(expand) if expand else DEFAULT_PAGE_EXPAND
        return self._execute(
            f"get_page({page_id})",
            lambda client: client.get(
                f"rest/api/content/{page_id}",
                params={"expand": expand_param}
            ),
            page_id=page_id
        )

    def get_space(self, space_key: str) -> Dict[str, Any]:
        """Fetch a space by key."""
        self._validate_space_key(space_key)
        return self._execute(
            f"get_space({space_key})",
            lambda client: client.get(f"rest/api/space/{space_key}")
        )

    def get_spaces(self, limit: int = 25, cursor: Optional[str] = None) -> Dict[str, Any]:
        """List spaces visible to the user.

        Args:
            limit: Maximum number of spaces to return (default: 25)
            cursor: Pagination cursor from a previous response's '_links.next'

        Returns:
            Dict with 'results' and '_links' as returned by Confluence
        """
        params = _page_params(limit, cursor)
        return self._execute(
            "get_spaces",
            lambda client: client.get("rest/api/space", params=params)
        )

    def search_content(
        self,
        cql: str,
        limit: int = 25,
        cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        """Search content using Confluence Query Language (CQL).

        Args:
            cql: The CQL query string (e.g., "type=page AND space=DEV")
            limit: Maximum number of results to return (default: 25)
            cursor: Pagination cursor from a previous response's '_links.next'

        Returns:
            Dict containing 'results' and pagination metadata
        """
        params = {"cql": cql, **_page_params(limit, cursor)}
        return self._execute(
            f"search_content({cql[:50]})",
            lambda client: client.get("rest/api/content/search", params=params)
        )

    def search_pages(self, query: str, limit: int = 25) -> Dict[str, Any]:
        """Free-text search over page titles and bodies."""
        return self.search_content(build_search_pages_cql(query), limit)

    def get_recent_pages(self, limit: int = 10) -> Dict[str, Any]:
        """Pages ordered by last modification, newest first."""
        return self.search_content(RECENT_PAGES_CQL, limit)

    def create_page(
        self,
        space_key: str,
        title: str,
        body: str,
        parent_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a new page.

        Args:
            space_key: The space key where page will be created
            title: The page title
            body: The page content in storage format (XHTML)
            parent_id: Optional parent page ID, sent as the page's ancestor

        Returns:
            Dict containing created page data
        """
        self._validate_space_key(space_key)
        if parent_id is not None:
            self._validate_page_id(parent_id)

        payload: Dict[str, Any] = {
            "type": "page",
            "title": title,
            "space": {"key": space_key},
            "body": {
                "storage": {
                    "value": body,
                    "representation": "storage",
                }
            },
        }
        if parent_id:
            payload["ancestors"] = [{"id": parent_id}]

        return self._execute(
            f"create_page({space_key}, {title})",
            lambda client: client.post("rest/api/content", data=payload)
        )

    def update_page(
        self,
        page_id: str,
        title: str,
        body: str,
        version: int,
        space_key: Optional[str] = None
    ) -> Dict[str, Any]:
        """Update a page's content.

        Args:
            page_id: The Confluence page ID
            title: The page title
            body: The page content in storage format (XHTML)
            version: The current version number; version + 1 is submitted
            space_key: Space of the page, sent along when known

        Returns:
            Dict containing updated page data

        Raises:
            VersionConflictError: If the page changed since it was read (409)
            ValidationError: If Confluence rejects the payload (400)
        """
        self._validate_page_id(page_id)
        new_version = version + 1

        payload: Dict[str, Any] = {
            "id": page_id,
            "type": "page",
            "title": title,
            "version": {"number": new_version},
            "body": {
                "storage": {
                    "value": body,
                    "representation": "storage",
                }
            },
        }
        if space_key:
            payload["space"] = {"key": space_key}

        return self._execute(
            f"update_page({page_id})",
            lambda client: client.put(f"rest/api/content/{page_id}", data=payload),
            page_id=page_id,
            submitted_version=new_version
        )
