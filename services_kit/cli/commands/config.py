"""Configuration management commands."""

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from services_kit.core.config import ConfigError, ConfigSchema, load_config, validate_all

app = typer.Typer(help="Configuration management")


@app.command()
def show() -> None:
    """Show the effective configuration."""
    console = Console()
    try:
        settings = load_config()
    except ConfigError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1) from None

    table = Table(title="Current Configuration")
    table.add_column("Variable", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Source")

    for name, value in settings.as_dict().items():
        spec = ConfigSchema.get_spec(name)
        source = "default" if spec is not None and value == spec.default else "environment"
        table.add_row(name, str(value), source)

    console.print(table)


@app.command()
def validate() -> None:
    """Validate all configuration variables."""
    console = Console()
    errors = validate_all()
    if errors:
        for error in errors:
            console.print(f"[red]❌ {error}[/red]")
        raise typer.Exit(1) from None
    console.print("[green]✅ Configuration is valid[/green]")


@app.command()
def docs() -> None:
    """Print the environment variable reference."""
    Console().print(Markdown(ConfigSchema.generate_markdown_docs()))
