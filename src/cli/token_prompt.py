"""Interactive API token prompt.

Used as the token renewer of the operator commands. The STDIO server has no
interactive channel, so it never installs this prompt.
"""

import typer

from src.confluence_client.errors import ConfigurationError

TOKEN_MANAGEMENT_URL = "https://id.atlassian.com/manage-profile/security/api-tokens"


def prompt_for_token() -> str:
    """Ask the operator for a new API token.

    Returns:
        The token as typed, stripped

    Raises:
        ConfigurationError: If the operator enters nothing
    """
    typer.echo("⚠  Your API token has expired or is about to expire.", err=True)
    typer.echo("Please create a new token in your Atlassian account:", err=True)
    typer.echo(f"{TOKEN_MANAGEMENT_URL}\n", err=True)

    token = typer.prompt("New API token", hide_input=True).strip()
    if not token:
        raise ConfigurationError("cannot be empty", 'confluenceApiToken')
    return token
