"""CLI commands for calauth."""

import logging
from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from calauth import __logo__, __version__
from calauth.auth.google import (
    CalauthError,
    build_authorization_url,
    get_token,
    get_token_path,
    load_client_config,
    load_token,
)
from calauth.auth.google.constants import CALLBACK_TIMEOUT_SEC

app = typer.Typer(
    name="calauth",
    help=f"{__logo__} calauth - Google Calendar OAuth helper",
    no_args_is_help=True,
)

console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} calauth v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """calauth - Google Calendar OAuth helper."""
    configure_logging(verbose)


# ============================================================================
# Authorization
# ============================================================================


@app.command()
def login(
    token_file: Path = typer.Option(None, "--token-file", "-t", help="Token file (default: ~/token.json)"),
    timeout: float = typer.Option(CALLBACK_TIMEOUT_SEC, "--timeout", help="Seconds to wait for the browser callback (0 waits forever)"),
    no_browser: bool = typer.Option(False, "--no-browser", help="Print the authorization URL instead of opening it"),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore the cached token and authorize again"),
):
    """Authorize calauth against Google Calendar."""
    path = token_file or get_token_path()

    def _print_url(url: str) -> None:
        console.print("Open this URL in your browser to authorize:\n")
        console.print(url, soft_wrap=True)
        console.print()

    try:
        config = load_client_config()
        token = get_token(
            config,
            path,
            on_auth=_print_url if no_browser else None,
            on_progress=lambda message: console.print(f"[dim]{message}[/dim]"),
            timeout=timeout or None,
            force=force,
        )
    except CalauthError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Authorized ({token.token_type} token at {path})")


@app.command()
def url():
    """Print the authorization URL for the configured client."""
    try:
        config = load_client_config()
    except CalauthError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(build_authorization_url(config), soft_wrap=True)


@app.command()
def status(
    token_file: Path = typer.Option(None, "--token-file", "-t", help="Token file (default: ~/token.json)"),
):
    """Show the cached token."""
    path = token_file or get_token_path()

    console.print(f"{__logo__} calauth Status\n")

    token = load_token(path)
    if token is None:
        console.print(f"Token: {path} [red]✗[/red]")
        console.print("Run [cyan]calauth login[/cyan] to authorize.")
        raise typer.Exit(1)

    console.print(f"Token: {path} [green]✓[/green]")

    table = Table(title="Cached Token")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Type", token.token_type)
    if token.expiry is None:
        expiry = "unknown"
    else:
        state = "[red]expired[/red]" if token.expiry <= datetime.now(timezone.utc) else "[green]valid[/green]"
        expiry = f"{token.expiry.isoformat()} ({state})"
    table.add_row("Expiry", expiry)
    table.add_row("Refresh token", "[green]yes[/green]" if token.refresh_token else "[dim]no[/dim]")

    console.print(table)


if __name__ == "__main__":
    app()
