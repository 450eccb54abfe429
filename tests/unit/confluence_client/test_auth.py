"""Unit tests for confluence_client.auth module."""

import base64

import pytest

from src.confluence_client.auth import Credentials, build_auth_headers, get_credentials
from tests.fixtures.sample_config import make_config


class TestCredentials:
    """Test cases for Credentials NamedTuple."""

    def test_credentials_are_immutable(self):
        """Credentials fields cannot be modified after creation."""
        creds = Credentials(
            url="https://test.atlassian.net/wiki",
            user="test@example.com",
            api_token="token123"
        )
        with pytest.raises(AttributeError):
            creds.url = "different-url"

    def test_get_credentials_uses_api_base_url(self):
        """get_credentials points at the /wiki REST root."""
        creds = get_credentials(make_config())

        assert creds.url == "https://test.atlassian.net/wiki"
        assert creds.user == "test@example.com"
        assert creds.api_token == "token123"


class TestBuildAuthHeaders:
    """Test cases for build_auth_headers."""

    def test_basic_auth_header_encodes_email_and_token(self):
        headers = build_auth_headers(make_config())

        expected = base64.b64encode(b"test@example.com:token123").decode("ascii")
        assert headers["Authorization"] == f"Basic {expected}"

    def test_json_content_headers(self):
        headers = build_auth_headers(make_config())

        assert headers["Content-Type"] == "application/json"
        assert headers["Accept"] == "application/json"

    def test_header_changes_with_token(self):
        """A renewed token produces a different Authorization header."""
        old = build_auth_headers(make_config())
        new = build_auth_headers(make_config(confluence_api_token="renewed"))

        assert old["Authorization"] != new["Authorization"]
