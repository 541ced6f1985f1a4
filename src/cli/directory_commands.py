"""Remote directory operator commands."""

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.federation.core.adapters import ReadOnlyUserAdapter
from src.federation.core.errors import ConfigurationError, FederationError
from src.federation.core.services import FederationProviderFactory
from src.federation.runtime.settings import load_settings

console = Console()

directory_app = typer.Typer(help="Query the remote account API through the bridge")


def get_factory() -> FederationProviderFactory:
    """Build a provider factory from the environment, exiting on bad configuration."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e
    return FederationProviderFactory(settings)


def _users_table(title: str, users: list[ReadOnlyUserAdapter]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Username", style="green")
    table.add_column("Email", style="blue")
    table.add_column("First Name", style="magenta")
    table.add_column("Last Name", style="magenta")
    table.add_column("Enabled", style="yellow")
    for user in users:
        table.add_row(
            user.id,
            user.username,
            user.email or "",
            user.first_name or "",
            user.last_name or "",
            "✅" if user.enabled else "❌",
        )
    return table


@directory_app.command("check")
def check() -> None:
    """Log in to the remote API with the admin credentials."""
    factory = get_factory()
    try:
        provider = factory.create()
        if not provider.test_connection():
            console.print("[red]❌ Could not obtain an admin token from the remote API[/red]")
            raise typer.Exit(code=1)
        console.print(
            Panel.fit(
                f"[bold green]Remote API reachable[/bold green]\n"
                f"Tenant scope: {factory.settings.tenant_scope}",
                border_style="green",
            )
        )
    finally:
        factory.close()


@directory_app.command("lookup")
def lookup(
    username: str = typer.Argument(..., help="Username to look up"),
) -> None:
    """Look up one user within the configured tenant."""
    factory = get_factory()
    try:
        user = factory.create().get_user_by_username(username)
        if user is None:
            console.print(f"[yellow]User '{username}' not found[/yellow]")
            raise typer.Exit(code=1)
        console.print(_users_table(f"User '{username}'", [user]))
    except FederationError as e:
        console.print(f"[red]❌ Lookup failed: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        factory.close()


@directory_app.command("list")
def list_users(
    offset: int = typer.Option(0, "--offset", "-o", help="In-tenant users to skip"),
    limit: int = typer.Option(100, "--limit", "-l", help="Maximum number of users to show"),
) -> None:
    """List users within the configured tenant."""
    factory = get_factory()
    try:
        users = factory.create().list_users(first=offset, max_results=limit)
        if not users:
            console.print("[yellow]No users found in the configured tenant[/yellow]")
            return
        console.print(_users_table(f"Users in tenant '{factory.settings.tenant_scope}'", users))
        console.print(f"\n[green]Found {len(users)} users[/green]")
    except FederationError as e:
        console.print(f"[red]❌ Failed to list users: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        factory.close()


@directory_app.command("providers")
def providers() -> None:
    """Show the provider ids known to the remote API."""
    factory = get_factory()
    try:
        ids = factory.directory.get_providers()
        if not ids:
            console.print("[yellow]No providers reported[/yellow]")
            return
        for provider_id in ids:
            marker = " [green](configured)[/green]" if provider_id == factory.settings.tenant_scope else ""
            console.print(f"• {provider_id}{marker}")
    except FederationError as e:
        console.print(f"[red]❌ Failed to list providers: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        factory.close()


@directory_app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind the server to"),
    port: int = typer.Option(8000, help="Port to bind the server to"),
) -> None:
    """Serve the federation HTTP API with uvicorn."""
    import uvicorn

    get_factory().close()
    uvicorn.run(
        "src.federation.api.http.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_config=None,
    )
