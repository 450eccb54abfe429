"""Unit tests for mcp_server.context module."""

import pytest
from unittest.mock import Mock, patch

from src.confluence_client.errors import ConfigurationError
from src.mcp_server.context import ServerContext
from tests.fixtures.sample_config import make_config, make_config_store


class TestEnsureConfigured:
    """Test cases for ServerContext.ensure_configured."""

    @patch('src.mcp_server.context.APIWrapper')
    def test_builds_wrapper_once(self, mock_wrapper):
        store = make_config_store()
        context = ServerContext(store)

        first = context.ensure_configured()
        second = context.ensure_configured()

        assert first is second
        store.load.assert_called_once()
        mock_wrapper.assert_called_once_with(store, None)

    @patch('src.mcp_server.context.APIWrapper')
    def test_passes_token_renewer(self, mock_wrapper):
        store = make_config_store()
        renewer = Mock()

        ServerContext(store, token_renewer=renewer).ensure_configured()

        mock_wrapper.assert_called_once_with(store, renewer)

    @patch('src.mcp_server.context.APIWrapper')
    def test_unconfigured_raises_and_retries_later(self, mock_wrapper):
        store = make_config_store()
        store.load.side_effect = [ConfigurationError("not configured"), make_config()]
        context = ServerContext(store)

        with pytest.raises(ConfigurationError):
            context.ensure_configured()
        context.ensure_configured()

        assert store.load.call_count == 2
        mock_wrapper.assert_called_once()


class TestReconfiguration:
    """setup and update_token activate the new credentials."""

    @patch('src.mcp_server.context.APIWrapper')
    def test_setup_creates_wrapper_when_none(self, mock_wrapper):
        store = make_config_store()
        context = ServerContext(store)

        context.setup('https://test.atlassian.net', 'test@example.com', 'token123')

        store.setup.assert_called_once_with(
            'https://test.atlassian.net', 'test@example.com', 'token123'
        )
        mock_wrapper.assert_called_once()

    @patch('src.mcp_server.context.APIWrapper')
    def test_update_token_resets_existing_client(self, mock_wrapper):
        store = make_config_store()
        context = ServerContext(store)
        api = context.ensure_configured()

        context.update_token('fresh')

        store.update_token.assert_called_once_with('fresh')
        api.reset_client.assert_called_once()

    @patch('src.mcp_server.context.APIWrapper')
    def test_failed_setup_keeps_old_client(self, mock_wrapper):
        store = make_config_store()
        store.setup.side_effect = ConfigurationError("Configuration invalid - please check your inputs")
        context = ServerContext(store)
        api = context.ensure_configured()

        with pytest.raises(ConfigurationError):
            context.setup('https://test.atlassian.net', 'test@example.com', 'bad')

        api.reset_client.assert_not_called()


class TestValidate:
    """Test cases for ServerContext.validate."""

    def test_valid_marks_validated(self):
        store = make_config_store()
        store.validate_live.return_value = True

        assert ServerContext(store).validate() is True
        store.mark_validated.assert_called_once()

    def test_invalid_does_not_mark(self):
        store = make_config_store()
        store.validate_live.return_value = False

        assert ServerContext(store).validate() is False
        store.mark_validated.assert_not_called()
