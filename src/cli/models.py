"""Data models for CLI operations."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): Configuration problems, startup failures
    - AUTH_ERROR (3): Credentials rejected or token renewal failed
    - NETWORK_ERROR (4): Confluence unreachable or timed out

    Example:
        >>> raise typer.Exit(ExitCode.AUTH_ERROR)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 3
    NETWORK_ERROR = 4
