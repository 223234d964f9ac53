"""Local user inspection commands."""

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from src.login_broker.core.services.database import DbSessionService
from src.login_broker.entities import ProvisioningLinkRepository, UserRepository

console = Console()

users_app = typer.Typer(help="Inspect local users and their provisioning links")


@users_app.command("list")
def list_users(
    limit: int = typer.Option(100, "--limit", "-l", help="Maximum number of users to show"),
) -> None:
    """List local users, oldest first."""
    db_service = DbSessionService()
    try:
        with db_service.get_session() as session:
            users = UserRepository(session).list_users(limit=limit)
    except SQLAlchemyError as e:
        console.print(f"[red]❌ Failed to list users: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        db_service.close()

    if not users:
        console.print("[yellow]No users found[/yellow]")
        return

    table = Table(title="Local users")
    table.add_column("Subject ID", style="cyan")
    table.add_column("Username", style="green")
    table.add_column("Claims", style="blue")
    table.add_column("Created", style="magenta")

    for user in users:
        table.add_row(
            user.subject_id,
            user.username,
            str(len(user.claims)),
            user.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)
    console.print(f"\n[green]Found {len(users)} users[/green]")


@users_app.command("links")
def list_links(
    subject_id: str = typer.Argument(..., help="Local subject identifier"),
) -> None:
    """Show the external identities linked to a local user."""
    db_service = DbSessionService()
    try:
        with db_service.get_session() as session:
            user = UserRepository(session).get(subject_id)
            links = ProvisioningLinkRepository(session).list_for_user(subject_id)
    except SQLAlchemyError as e:
        console.print(f"[red]❌ Failed to read links: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        db_service.close()

    if user is None:
        console.print(f"[red]❌ User '{subject_id}' not found[/red]")
        raise typer.Exit(code=1)

    table = Table(title=f"Provisioning links for '{user.username}'")
    table.add_column("Provider", style="cyan")
    table.add_column("External subject", style="green")
    table.add_column("Linked", style="magenta")

    for link in links:
        table.add_row(
            link.provider,
            link.external_subject_id,
            link.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)
