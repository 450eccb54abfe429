"""Main CLI entry point for the confluence-mcp command.

This module provides the Typer application that starts the MCP server over
STDIO and the operator commands that manage its configuration outside an MCP
session.
"""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.cli.token_prompt import prompt_for_token
from src.config.config_store import ConfigStore
from src.confluence_client.api_wrapper import APIWrapper
from src.confluence_client.auth import get_credentials
from src.confluence_client.errors import (
    APIUnreachableError,
    AuthenticationError,
    ConfigurationError,
    ConfluenceMCPError,
    TokenExpiredError,
)
from src.mcp_server import RequestDispatcher, ServerContext, run_stdio

app = typer.Typer(
    name="confluence-mcp",
    help="""MCP server giving AI assistants access to Confluence Cloud.

QUICK START:
  confluence-mcp setup          # Store and validate credentials
  confluence-mcp serve          # Run the MCP server on stdin/stdout
  confluence-mcp validate       # Check the stored credentials
  confluence-mcp renew-token    # Replace an expired API token""",
    add_completion=False,
    rich_markup_mode=None,  # Disable Rich markup to avoid compatibility issues
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# Config file values (logLevel) to logging levels
CONFIG_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

CONFIG_DIR_HELP = "Directory holding config.json (default: ~/.confluence-mcp)"


def _verbosity_to_level(verbosity: int) -> int:
    if verbosity == 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def _configure_logging(level: int, logdir: Optional[str] = None) -> None:
    """Configure logging for the 'src' namespace.

    Log records always go to stderr; stdout carries the MCP transport. The
    root logger is left unchanged and the atlassian library is capped at
    WARNING.

    Args:
        level: Logging level for the application loggers
        logdir: Optional directory for log files (creates timestamped log file)
    """
    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    logging.getLogger("atlassian").setLevel(max(level, logging.WARNING))

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"confluence-mcp_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_formatter = logging.Formatter(file_format, datefmt=date_format)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _exit_code_for(error: Exception) -> ExitCode:
    if isinstance(error, (TokenExpiredError, AuthenticationError)):
        return ExitCode.AUTH_ERROR
    if isinstance(error, APIUnreachableError):
        return ExitCode.NETWORK_ERROR
    return ExitCode.GENERAL_ERROR


@app.command()
def serve(
    config_dir: Optional[str] = typer.Option(
        None,
        "--config-dir",
        help=CONFIG_DIR_HELP,
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    verbosity: Optional[int] = typer.Option(
        None,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=warning, 1=info, 2=debug (default: logLevel from config)",
    ),
) -> None:
    """Run the MCP server on stdin/stdout.

    The server starts even without a configuration; the setup_confluence
    tool can then supply one.
    """
    config_store = ConfigStore(config_dir)

    config = None
    try:
        config = config_store.load()
    except ConfigurationError as e:
        config_error = e
    else:
        config_error = None

    if verbosity is not None:
        level = _verbosity_to_level(verbosity)
    elif config is not None:
        level = CONFIG_LOG_LEVELS.get(config.log_level, logging.INFO)
    else:
        level = logging.INFO
    _configure_logging(level, logdir)

    if config_error is not None:
        logger.warning(
            f"Confluence is not configured yet ({config_error}). "
            "Use the setup_confluence tool or 'confluence-mcp setup'."
        )
    else:
        if config_store.is_token_expired():
            logger.warning(
                "API token expires within 7 days. "
                "Run 'confluence-mcp renew-token' if requests start failing."
            )
        if config_store.needs_revalidation():
            logger.warning("Configuration has not been validated in the last 24 hours")

    context = ServerContext(config_store)
    dispatcher = RequestDispatcher(context)

    try:
        asyncio.run(run_stdio(dispatcher))
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except Exception as e:
        logger.exception(f"MCP server failed: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.command()
def setup(
    base_url: str = typer.Option(
        ...,
        "--url",
        prompt="Confluence URL (e.g. https://company.atlassian.net)",
        help="Confluence Cloud base URL",
    ),
    email: str = typer.Option(
        ...,
        "--email",
        prompt="Atlassian account email",
        help="Atlassian account email",
    ),
    api_token: str = typer.Option(
        ...,
        "--token",
        prompt="API token",
        hide_input=True,
        help="Atlassian API token",
    ),
    config_dir: Optional[str] = typer.Option(
        None,
        "--config-dir",
        help=CONFIG_DIR_HELP,
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """Validate credentials against Confluence and store them."""
    _configure_logging(_verbosity_to_level(verbosity))
    output = OutputHandler(verbosity=verbosity, no_color=no_color)
    config_store = ConfigStore(config_dir)

    try:
        with output.spinner("Validating credentials with Confluence..."):
            config = config_store.setup(base_url, email, api_token)
    except ConfigurationError as e:
        logger.error(f"Setup failed: {e}")
        output.error(f"Setup failed: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    output.success("Confluence configuration successfully saved and validated")
    output.info(f"Config file: {config_store.config_path}")
    output.details("Configuration", [
        ("Confluence", config.api_base_url),
        ("Account", config.confluence_email),
        ("Rate limit", f"{config.rate_limit_requests} requests / {config.rate_limit_window_ms} ms"),
    ])


@app.command("renew-token")
def renew_token(
    config_dir: Optional[str] = typer.Option(
        None,
        "--config-dir",
        help=CONFIG_DIR_HELP,
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """Prompt for a new API token, validate it and store it."""
    _configure_logging(_verbosity_to_level(verbosity))
    output = OutputHandler(verbosity=verbosity, no_color=no_color)
    config_store = ConfigStore(config_dir)

    try:
        config_store.load()
        new_token = prompt_for_token()
        with output.spinner("Validating new token..."):
            config_store.update_token(new_token)
    except ConfigurationError as e:
        logger.error(f"Token renewal failed: {e}")
        output.error(f"Token renewal failed: {e}")
        raise typer.Exit(ExitCode.AUTH_ERROR)

    output.success("API token successfully updated")


@app.command()
def validate(
    config_dir: Optional[str] = typer.Option(
        None,
        "--config-dir",
        help=CONFIG_DIR_HELP,
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
) -> None:
    """Check the stored credentials against Confluence.

    An expired token is renewed interactively and the check retried once.
    """
    _configure_logging(_verbosity_to_level(verbosity))
    output = OutputHandler(verbosity=verbosity, no_color=no_color)
    config_store = ConfigStore(config_dir)

    try:
        credentials = get_credentials(config_store.load())
        api = APIWrapper(config_store, token_renewer=prompt_for_token)
        user = api.get_current_user()
        validated = config_store.mark_validated()
    except ConfluenceMCPError as e:
        logger.error(f"Validation failed: {e}")
        output.error(f"Configuration is invalid: {e}")
        raise typer.Exit(_exit_code_for(e))

    name = user.get("displayName") or user.get("email") or credentials.user
    output.success(f"Configuration is valid (connected to {credentials.url} as {name})")
    output.details("Configuration", [
        ("Confluence", credentials.url),
        ("Account", credentials.user),
        ("Last validated", validated.last_validated or "never"),
    ])
    if config_store.is_token_expired():
        output.warning("API token expires within 7 days; consider 'confluence-mcp renew-token'")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
