"""Remote messaging commands."""

import datetime
import json
import uuid
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from services_kit.core.logging import correlation_context
from services_kit.remote_messaging import (
    AppAttributeMatcher,
    DefaultSurveyURLBuilder,
    DeviceAttributeMatcher,
    InMemoryPercentileStore,
    RemoteConfigModel,
    RemoteMessageModel,
    RemoteMessagingConfigMatcher,
    UserAttributeMatcher,
    load_remote_config,
)

app = typer.Typer(help="Remote messaging tools")

_DEFAULT_APP = {"bundle_id": "com.duckduckgo.mobile.ios", "app_version": "1.0.0"}
_DEFAULT_DEVICE = {"os_version": "17.0", "locale": "en_US"}
_USER_ID_SETS = (
    "dismissed_message_ids",
    "shown_message_ids",
    "dismissed_deprecated_mac_message_ids",
)
_USER_DATES = ("install_date", "today")


def _read_json(path: Path, console: Console) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(1) from None


def _load_config(
    path: Path, locale: str | None, survey: dict[str, Any], console: Console
) -> RemoteConfigModel:
    try:
        payload = path.read_text(encoding="utf-8")
        return load_remote_config(payload, DefaultSurveyURLBuilder(**survey), locale)
    except (OSError, ValueError, TypeError) as e:
        console.print(f"[red]Cannot load remote config {path}: {e}[/red]")
        raise typer.Exit(1) from None


def _user_matcher(data: dict[str, Any]) -> UserAttributeMatcher:
    values = dict(data)
    for name in _USER_ID_SETS:
        if name in values:
            values[name] = frozenset(values[name])
    for name in _USER_DATES:
        if values.get(name):
            values[name] = datetime.date.fromisoformat(values[name])
    return UserAttributeMatcher(**values)


def _build_matcher(
    attributes: dict[str, Any], dismissed: list[str]
) -> RemoteMessagingConfigMatcher:
    return RemoteMessagingConfigMatcher(
        app_matcher=AppAttributeMatcher(**{**_DEFAULT_APP, **attributes.get("app", {})}),
        device_matcher=DeviceAttributeMatcher(
            **{**_DEFAULT_DEVICE, **attributes.get("device", {})}
        ),
        user_matcher=_user_matcher(attributes.get("user", {})),
        percentile_store=InMemoryPercentileStore(attributes.get("percentiles")),
        dismissed_message_ids=dismissed,
    )


def _describe(message: RemoteMessageModel) -> str:
    content = message.content
    lines = [
        f"[bold]{content.title_text}[/bold]",
        content.description_text,
        "",
        f"Type: {type(content).__name__}",
    ]
    placeholder = getattr(content, "placeholder", None)
    if placeholder is not None:
        lines.append(f"Placeholder: {placeholder.value}")
    for label in ("primary_action", "secondary_action", "action"):
        action = getattr(content, label, None)
        if action is not None:
            lines.append(f"{label.replace('_', ' ').capitalize()}: {action}")
    lines.append(f"Metrics enabled: {message.is_metrics_enabled}")
    return "\n".join(lines)


@app.command()
def evaluate(
    config_file: Path = typer.Argument(..., help="Remote messaging config JSON"),
    attributes_file: Path = typer.Option(
        None, "--attributes", "-a", help="JSON with app/device/user/percentiles/survey sections"
    ),
    dismissed: list[str] = typer.Option(
        [], "--dismissed", "-d", help="Dismissed message id (repeatable)"
    ),
    locale: str = typer.Option(None, "--locale", "-l", help="Apply translations for this locale"),
) -> None:
    """Show the message that would be displayed.

    Example:
        services-kit messages evaluate config.json --attributes user.json -d 26780792
    """
    console = Console()
    attributes: dict[str, Any] = _read_json(attributes_file, console) if attributes_file else {}
    if not isinstance(attributes, dict):
        console.print("[red]Attributes file must contain a JSON object[/red]")
        raise typer.Exit(1) from None

    with correlation_context(uuid.uuid4().hex):
        config = _load_config(config_file, locale, attributes.get("survey", {}), console)
        try:
            matcher = _build_matcher(attributes, dismissed)
        except (TypeError, ValueError) as e:
            console.print(f"[red]Invalid attributes: {e}[/red]")
            raise typer.Exit(1) from None
        message = matcher.evaluate(config)

    if message is None:
        console.print(
            Panel(
                "[yellow]No message matches the given attributes.[/yellow]",
                title=f"Remote config v{config.version}",
                border_style="yellow",
            )
        )
        raise typer.Exit(1) from None

    console.print(
        Panel(_describe(message), title=f"Message {message.id}", border_style="green")
    )


@app.command("list")
def list_messages(
    config_file: Path = typer.Argument(..., help="Remote messaging config JSON"),
    locale: str = typer.Option(None, "--locale", "-l", help="Apply translations for this locale"),
) -> None:
    """List the messages that survive mapping, in document order."""
    console = Console()
    config = _load_config(config_file, locale, {}, console)

    table = Table(title=f"Remote config v{config.version}")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Matching rules")
    table.add_column("Exclusion rules")
    for message in config.messages:
        table.add_row(
            message.id,
            type(message.content).__name__,
            message.content.title_text,
            ", ".join(str(rule) for rule in message.matching_rules) or "-",
            ", ".join(str(rule) for rule in message.exclusion_rules) or "-",
        )
    console.print(table)
    console.print(f"{len(config.rules)} rules defined")
