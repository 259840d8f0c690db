"""
Config CLI commands.

Shows and updates the client configuration file.
"""

import click

from examnotify.config import ClientConfig, ConfigError
from examnotify.endpoint import resolve_api_base_url, socket_url_from_api_base


@click.group()
@click.pass_context
def config(ctx: click.Context) -> None:
    """
    Manage client configuration.

    Values set here are saved to the configuration file. Environment
    variables (EXAMNOTIFY_API_URL, EXAMNOTIFY_PAGE_URL,
    EXAMNOTIFY_LOG_LEVEL) take precedence.
    """
    ctx.ensure_object(dict)


@config.command("show")
def show() -> None:
    """Display the effective configuration and resolved endpoints."""
    client_config = ClientConfig()

    click.echo(f"Config file: {client_config.config_path}")
    click.echo()
    for key, value in client_config.to_dict().items():
        click.echo(f"  {key}: {value}")

    api_base = resolve_api_base_url(client_config.api_url, client_config.page_url)
    click.echo()
    click.echo(f"Resolved API URL: {api_base}")
    click.echo(f"Resolved real-time URL: {socket_url_from_api_base(api_base)}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_value(ctx: click.Context, key: str, value: str) -> None:
    """
    Set a configuration value.

    Example:

        examnotify config set api_url https://exams.example.com/api
    """
    client_config = ClientConfig()

    try:
        client_config.set_value(key, value)
        client_config.validate()
    except ConfigError as e:
        click.echo(click.style("Error: ", fg="red", bold=True) + str(e))
        ctx.exit(1)

    client_config.save()
    click.echo(click.style(f"{key} updated.", fg="green"))


@config.command("path")
def path() -> None:
    """Print the configuration file path."""
    click.echo(str(ClientConfig().config_path))
