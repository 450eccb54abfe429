"""JSON configuration loading, validation and persistence.

This module owns the single config.json file that holds the Confluence
credentials and rate-limit settings. The file lives in a per-user directory
(~/.confluence-mcp by default) and is written with owner-only permissions
because the API token is stored in clear text.

Configuration file structure:
    {
      "confluenceBaseUrl": "https://example.atlassian.net",
      "confluenceEmail": "user@example.com",
      "confluenceApiToken": "...",
      "logLevel": "info",
      "rateLimitRequests": 100,
      "rateLimitWindowMs": 60000,
      "lastValidated": "2024-01-15T10:30:00+00:00"
    }
"""

import json
import logging
import os
import re
from dataclasses import replace
from datetime import datetime, UTC, timedelta
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests
from dotenv import load_dotenv

from src.confluence_client.auth import build_auth_headers
from src.confluence_client.errors import ConfigurationError
from .models import ConfluenceConfig, LOG_LEVELS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".confluence-mcp"
CONFIG_FILE_NAME = "config.json"
CONFIG_DIR_ENV = "CONFLUENCE_MCP_CONFIG_DIR"

# Warn this long before tokenExpiryDate
TOKEN_EXPIRY_WARNING = timedelta(days=7)
# Re-check credentials when the last live check is older than this
REVALIDATION_INTERVAL = timedelta(hours=24)
VALIDATION_TIMEOUT_SECONDS = 10

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

# JSON key -> dataclass field
FIELD_NAMES = {
    'confluenceBaseUrl': 'confluence_base_url',
    'confluenceEmail': 'confluence_email',
    'confluenceApiToken': 'confluence_api_token',
    'logLevel': 'log_level',
    'rateLimitRequests': 'rate_limit_requests',
    'rateLimitWindowMs': 'rate_limit_window_ms',
    'tokenExpiryDate': 'token_expiry_date',
    'lastValidated': 'last_validated',
}

NOT_CONFIGURED_MESSAGE = (
    "No valid configuration found. Please use the setup_confluence tool "
    "to configure the connection."
)


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(UTC).isoformat()


def _parse_timestamp(value: str, field_name: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ConfigurationError(
            f"must be an ISO 8601 timestamp, got '{value}'",
            field_name
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def validate_config(config: ConfluenceConfig) -> None:
    """Check the invariants of a configuration record.

    Args:
        config: Record to check

    Raises:
        ConfigurationError: Naming the first invalid field
    """
    parsed = urlparse(config.confluence_base_url or '')
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ConfigurationError(
            f"must be a URL starting with http:// or https://, "
            f"got '{config.confluence_base_url}'",
            'confluenceBaseUrl'
        )

    if not EMAIL_PATTERN.match(config.confluence_email or ''):
        raise ConfigurationError(
            f"must be a valid email address, got '{config.confluence_email}'",
            'confluenceEmail'
        )

    if not config.confluence_api_token or not config.confluence_api_token.strip():
        raise ConfigurationError("cannot be empty", 'confluenceApiToken')

    if config.log_level not in LOG_LEVELS:
        raise ConfigurationError(
            f"must be one of {', '.join(LOG_LEVELS)}, got '{config.log_level}'",
            'logLevel'
        )

    for json_key, value in (
        ('rateLimitRequests', config.rate_limit_requests),
        ('rateLimitWindowMs', config.rate_limit_window_ms),
    ):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigurationError(
                f"must be a positive integer, got {value!r}",
                json_key
            )

    if config.token_expiry_date is not None:
        _parse_timestamp(config.token_expiry_date, 'tokenExpiryDate')
    if config.last_validated is not None:
        _parse_timestamp(config.last_validated, 'lastValidated')


def config_from_dict(data: Dict[str, Any]) -> ConfluenceConfig:
    """Build and validate a configuration record from its JSON form.

    Unknown keys are ignored. Missing optional keys take their defaults.

    Raises:
        ConfigurationError: If a required key is missing or a value is invalid
    """
    for required in ('confluenceBaseUrl', 'confluenceEmail', 'confluenceApiToken'):
        if not data.get(required):
            raise ConfigurationError("is required", required)

    kwargs = {
        field_name: data[json_key]
        for json_key, field_name in FIELD_NAMES.items()
        if data.get(json_key) is not None
    }
    config = ConfluenceConfig(**kwargs)
    validate_config(config)
    return config


def config_to_dict(config: ConfluenceConfig) -> Dict[str, Any]:
    """JSON form of a configuration record; unset optional fields are omitted."""
    data = {}
    for json_key, field_name in FIELD_NAMES.items():
        value = getattr(config, field_name)
        if value is not None:
            data[json_key] = value
    return data


class ConfigStore:
    """Loads, validates and persists the Confluence configuration.

    The store keeps the current snapshot in memory after the first load.
    Writes replace the snapshot with a new immutable record; nothing is
    written before the new credentials pass a live check against
    /wiki/rest/api/user/current.

    When no config file exists, the store falls back to the CONFLUENCE_URL,
    CONFLUENCE_USER and CONFLUENCE_API_TOKEN environment variables (a .env
    file is honoured). That record is used as-is and is not persisted.

    Example:
        >>> store = ConfigStore()
        >>> config = store.setup("https://example.atlassian.net",
        ...                      "user@example.com", "token123")
        >>> store.get_config().last_validated is not None
        True
    """

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the store.

        Args:
            config_dir: Directory holding config.json. Defaults to
                $CONFLUENCE_MCP_CONFIG_DIR, then ~/.confluence-mcp
        """
        load_dotenv()
        directory = config_dir or os.getenv(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR
        self.config_path = Path(directory) / CONFIG_FILE_NAME
        self._config: Optional[ConfluenceConfig] = None

    @property
    def is_loaded(self) -> bool:
        return self._config is not None

    def load(self) -> ConfluenceConfig:
        """Load the configuration, reading the file only once.

        Returns:
            ConfluenceConfig: Current snapshot

        Raises:
            ConfigurationError: If no valid configuration is available
        """
        if self._config is not None:
            return self._config

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ConfigurationError(
                        f"Configuration must be a JSON object, got {type(data).__name__}"
                    )
                self._config = config_from_dict(data)
                logger.debug(f"Loaded configuration from {self.config_path}")
                return self._config
            except (OSError, json.JSONDecodeError, ConfigurationError) as e:
                logger.error(f"Error loading configuration from {self.config_path}: {e}")
                raise ConfigurationError(f"{NOT_CONFIGURED_MESSAGE} ({e})") from e

        env_config = self._load_from_env()
        if env_config is not None:
            logger.info("Using Confluence credentials from environment variables")
            self._config = env_config
            return self._config

        raise ConfigurationError(NOT_CONFIGURED_MESSAGE)

    def _load_from_env(self) -> Optional[ConfluenceConfig]:
        url = os.getenv('CONFLUENCE_URL')
        user = os.getenv('CONFLUENCE_USER')
        api_token = os.getenv('CONFLUENCE_API_TOKEN')
        if not (url and user and api_token):
            return None
        # Accept URLs copied with the /wiki suffix
        if url.rstrip('/').endswith('/wiki'):
            url = url.rstrip('/')[:-len('/wiki')]
        return config_from_dict({
            'confluenceBaseUrl': url,
            'confluenceEmail': user,
            'confluenceApiToken': api_token,
        })

    def get_config(self) -> ConfluenceConfig:
        """Return the loaded snapshot.

        Raises:
            ConfigurationError: If load() has not succeeded yet
        """
        if self._config is None:
            raise ConfigurationError(
                "Configuration not loaded. Call load() first."
            )
        return self._config

    def save(self, config: ConfluenceConfig) -> None:
        """Validate and write the configuration with owner-only permissions.

        Raises:
            ConfigurationError: If the record is invalid or cannot be written
        """
        validate_config(config)
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(
                self.config_path,
                os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
                0o600
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(config_to_dict(config), f, indent=2)
                f.write('\n')
            # O_CREAT mode is ignored for an existing file
            os.chmod(self.config_path, 0o600)
        except OSError as e:
            raise ConfigurationError(
                f"Could not write configuration to {self.config_path}: {e}"
            ) from e

        self._config = config
        logger.info(f"Configuration saved to {self.config_path}")

    def validate_live(self, config: ConfluenceConfig) -> bool:
        """Check the credentials against the current-user endpoint.

        Args:
            config: Record whose credentials are checked

        Returns:
            True if Confluence answered 200, False otherwise
        """
        url = f"{config.api_base_url}/rest/api/user/current"
        try:
            response = requests.get(
                url,
                headers=build_auth_headers(config),
                timeout=VALIDATION_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Validation request failed: {type(e).__name__}")
            return False

        if response.status_code != 200:
            logger.error(
                f"Validation failed for {config.confluence_base_url}: "
                f"HTTP {response.status_code}"
            )
            return False
        return True

    def setup(self, base_url: str, email: str, api_token: str) -> ConfluenceConfig:
        """Create a configuration from scratch, persisting it only if valid.

        Rate-limit and log settings are carried over from the existing
        configuration file when it can be read.

        Raises:
            ConfigurationError: If a field is malformed or the live check fails
        """
        base = self._existing_settings()
        candidate = replace(
            base,
            confluence_base_url=base_url.strip().rstrip('/'),
            confluence_email=email.strip(),
            confluence_api_token=api_token.strip(),
            token_expiry_date=None,
            last_validated=None,
        )
        validate_config(candidate)

        if not self.validate_live(candidate):
            raise ConfigurationError(
                "Configuration invalid - please check your inputs"
            )

        validated = replace(candidate, last_validated=utc_now_iso())
        self.save(validated)
        return validated

    def _existing_settings(self) -> ConfluenceConfig:
        try:
            return self.load()
        except ConfigurationError as e:
            logger.debug(f"Starting setup from default settings: {e}")
            return ConfluenceConfig('', '', '')

    def update_token(self, new_token: str) -> ConfluenceConfig:
        """Swap in a new API token after checking it live.

        Raises:
            ConfigurationError: If no configuration is loaded or the token is invalid
        """
        current = self.load()
        if not new_token or not new_token.strip():
            raise ConfigurationError("cannot be empty", 'confluenceApiToken')

        candidate = replace(
            current,
            confluence_api_token=new_token.strip(),
            token_expiry_date=None,
        )

        logger.info("Testing new API token...")
        if not self.validate_live(candidate):
            raise ConfigurationError("New token is invalid")

        validated = replace(candidate, last_validated=utc_now_iso())
        self.save(validated)
        logger.info("API token successfully updated")
        return validated

    def mark_validated(self) -> ConfluenceConfig:
        """Record a successful live check on the current snapshot."""
        validated = replace(self.get_config(), last_validated=utc_now_iso())
        if self.config_path.exists():
            self.save(validated)
        else:
            self._config = validated
        return validated

    def is_token_expired(self, now: Optional[datetime] = None) -> bool:
        """True when the token is within 7 days of its expiry date."""
        config = self._config
        if config is None or not config.token_expiry_date:
            return False
        now = now or datetime.now(UTC)
        expiry = _parse_timestamp(config.token_expiry_date, 'tokenExpiryDate')
        return now >= expiry - TOKEN_EXPIRY_WARNING

    def needs_revalidation(self, now: Optional[datetime] = None) -> bool:
        """True when the last live check is missing or older than 24 hours."""
        config = self._config
        if config is None:
            return False
        if not config.last_validated:
            return True
        now = now or datetime.now(UTC)
        last = _parse_timestamp(config.last_validated, 'lastValidated')
        return now - last > REVALIDATION_INTERVAL
