"""Owning context for the live configuration and API client.

The dispatcher receives one ServerContext at construction time instead of
reaching for process-wide globals. The context creates the API wrapper on
first use and swaps in new credentials under a lock, so a concurrent tool
call never sees a half-rebuilt client.
"""

import logging
import threading
from typing import Optional

from src.config.config_store import ConfigStore
from src.config.models import ConfluenceConfig
from src.confluence_client.api_wrapper import APIWrapper, TokenRenewer

logger = logging.getLogger(__name__)


class ServerContext:
    """Holds the config store and the API wrapper built from it.

    Example:
        >>> context = ServerContext(ConfigStore())
        >>> api = context.ensure_configured()
    """

    def __init__(
        self,
        config_store: ConfigStore,
        token_renewer: Optional[TokenRenewer] = None
    ):
        """Initialize the context.

        Args:
            config_store: Store for the persisted configuration
            token_renewer: Passed to the API wrapper; None on the STDIO
                server, where no interactive channel exists
        """
        self.config_store = config_store
        self._token_renewer = token_renewer
        self._api: Optional[APIWrapper] = None
        self._lock = threading.Lock()

    def ensure_configured(self) -> APIWrapper:
        """Return the API wrapper, loading the configuration on first use.

        Raises:
            ConfigurationError: If no valid configuration is available
        """
        with self._lock:
            if self._api is None:
                self.config_store.load()
                self._api = APIWrapper(self.config_store, self._token_renewer)
            return self._api

    def _apply_new_config(self) -> None:
        with self._lock:
            if self._api is None:
                self._api = APIWrapper(self.config_store, self._token_renewer)
            else:
                self._api.reset_client()

    def setup(self, base_url: str, email: str, api_token: str) -> ConfluenceConfig:
        """Validate, persist and activate a complete set of credentials."""
        config = self.config_store.setup(base_url, email, api_token)
        self._apply_new_config()
        logger.info(f"Configured Confluence connection to {config.confluence_base_url}")
        return config

    def update_token(self, api_token: str) -> ConfluenceConfig:
        """Validate, persist and activate a new API token."""
        config = self.config_store.update_token(api_token)
        self._apply_new_config()
        return config

    def validate(self) -> bool:
        """Live-check the stored credentials.

        Raises:
            ConfigurationError: If no valid configuration is available
        """
        config = self.config_store.load()
        is_valid = self.config_store.validate_live(config)
        if is_valid:
            self.config_store.mark_validated()
        return is_valid
