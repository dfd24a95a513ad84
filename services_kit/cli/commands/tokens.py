"""Token inspection commands."""

import datetime
import time

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from services_kit.core.oauth import (
    JWTAccessToken,
    TokenPayloadError,
    parse_jwt_claims,
)
from services_kit.core.oauth.constants import JwtProtocol

app = typer.Typer(help="Token inspection")


def _timestamp(value: object) -> str:
    if not isinstance(value, (int, float)):
        return str(value)
    moment = datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
    return f"{value} ({moment.isoformat()})"


@app.command()
def inspect(
    token: str = typer.Argument(..., help="JWT access or refresh token"),
) -> None:
    """Show the claims of a token. The signature is NOT verified.

    Example:
        services-kit tokens inspect eyJhbGciOi...
    """
    console = Console()

    try:
        claims = parse_jwt_claims(token.strip())
    except TokenPayloadError as e:
        console.print(Panel(f"[red]{e}[/red]", title="Invalid token", border_style="red"))
        raise typer.Exit(1) from None

    table = Table(title="Token claims (unverified)")
    table.add_column("Claim", style="cyan")
    table.add_column("Value")
    for name, value in sorted(claims.items()):
        if name in ("exp", "iat"):
            table.add_row(name, _timestamp(value))
        elif name != "entitlements":
            table.add_row(name, str(value))
    console.print(table)

    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        remaining = int(exp - time.time())
        if remaining > 0:
            console.print(f"[green]Valid for another {remaining}s[/green]")
        else:
            console.print(f"[yellow]Expired {-remaining}s ago[/yellow]")

    if claims.get("scope") == JwtProtocol.ACCESS_TOKEN_SCOPE:
        try:
            access = JWTAccessToken.from_claims(claims)
        except TokenPayloadError as e:
            console.print(f"[red]Malformed access token: {e}[/red]")
            raise typer.Exit(1) from None
        entitlements = ", ".join(e.product.value for e in access.entitlements) or "none"
        console.print(f"Account: {access.email or 'anonymous'}")
        console.print(f"Entitlements: {entitlements}")
