"""Unit tests for confluence_client.errors module."""

import pytest

from src.confluence_client.errors import (
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


class TestExceptionHierarchy:
    """Every error can be caught through the common base class."""

    @pytest.mark.parametrize("error", [
        ConfigurationError("bad"),
        ValidationError("bad"),
        ContentFormatError("bad", "Markdown"),
        ClientRateLimitError(100, 60000),
        RemoteRateLimitError(),
        AuthenticationError(),
        TokenExpiredError(),
        RenewalFailedError("no channel"),
        VersionConflictError("123", 6),
        GenericAPIError("boom"),
        PageNotFoundError("123"),
        APIUnreachableError("https://test.atlassian.net/wiki"),
    ])
    def test_all_errors_inherit_from_base(self, error):
        assert isinstance(error, ConfluenceMCPError)

    def test_renewal_failed_is_a_token_expired_error(self):
        """Callers catching TokenExpiredError also see failed renewals."""
        assert issubclass(RenewalFailedError, TokenExpiredError)

    def test_content_format_error_is_a_validation_error(self):
        assert issubclass(ContentFormatError, ValidationError)

    def test_remote_errors_are_confluence_errors(self):
        assert issubclass(RemoteRateLimitError, ConfluenceError)
        assert issubclass(VersionConflictError, ConfluenceError)
        assert issubclass(PageNotFoundError, GenericAPIError)


class TestErrorMessages:
    """Messages carry the context an agent needs to react."""

    def test_configuration_error_names_field(self):
        error = ConfigurationError("cannot be empty", "confluenceApiToken")

        assert str(error) == "Configuration error in field 'confluenceApiToken': cannot be empty"
        assert error.config_field == "confluenceApiToken"

    def test_configuration_error_without_field(self):
        error = ConfigurationError("New token is invalid")

        assert str(error) == "New token is invalid"
        assert error.config_field is None

    def test_version_conflict_message_names_page_and_version(self):
        error = VersionConflictError("98765", 8)

        assert "98765" in str(error)
        assert "8" in str(error)
        assert error.status_code == 409
        assert error.page_id == "98765"
        assert error.submitted_version == 8

    def test_renewal_failed_keeps_reason(self):
        error = RenewalFailedError("New token is invalid")

        assert str(error) == "Token renewal failed: New token is invalid"
        assert error.reason == "New token is invalid"
        assert error.status_code == 401

    def test_authentication_error_default_message(self):
        error = AuthenticationError()

        assert str(error) == "Access denied. Check your permissions."
        assert error.status_code == 403

    def test_remote_rate_limit_status(self):
        assert RemoteRateLimitError().status_code == 429

    def test_client_rate_limit_reports_quota(self):
        error = ClientRateLimitError(100, 60000)

        assert "100" in str(error)
        assert "60000" in str(error)
        assert error.max_requests == 100
        assert error.window_ms == 60000

    def test_page_not_found(self):
        error = PageNotFoundError("42")

        assert str(error) == "Page 42 not found"
        assert error.status_code == 404

    def test_api_unreachable_includes_endpoint_and_reason(self):
        error = APIUnreachableError("https://test.atlassian.net/wiki", "timeout after 30s")

        assert str(error) == (
            "API is not available at https://test.atlassian.net/wiki (timeout after 30s)"
        )
        assert error.endpoint == "https://test.atlassian.net/wiki"
