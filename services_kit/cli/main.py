"""Main CLI entry point for services-kit."""

import typer
from rich.console import Console

from services_kit.cli.commands import config, messages, tokens
from services_kit.core.config import ConfigError, load_config
from services_kit.core.logging import configure_root_logging

app = typer.Typer(
    name="services-kit",
    help="Services Kit CLI - inspect tokens and evaluate remote messaging configs",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(messages.app, name="messages", help="Remote messaging tools")
app.add_typer(tokens.app, name="tokens", help="Token inspection")
app.add_typer(config.app, name="config", help="Configuration management")


@app.command()
def version() -> None:
    """Show version information."""
    from services_kit import __version__

    console = Console()
    console.print(f"[bold cyan]services-kit[/bold cyan] version [green]{__version__}[/green]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    env_file: str = typer.Option(None, "--env-file", "-e", help="Path to a .env file"),
) -> None:
    """Services Kit CLI."""
    log_level = "INFO"
    try:
        log_level = load_config(env_file).log_level
    except ConfigError as e:
        # Still start, so that `config validate` can report every problem
        Console(stderr=True).print(f"[yellow]Configuration error: {e}[/yellow]")
    configure_root_logging("DEBUG" if verbose else log_level)


if __name__ == "__main__":
    app()
