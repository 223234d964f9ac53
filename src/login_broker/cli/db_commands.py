"""Database management commands."""

import typer
from rich.console import Console
from sqlalchemy.exc import SQLAlchemyError

from src.login_broker.core.services.database import DbSessionService
from src.login_broker.runtime.context import get_config
from src.login_broker.runtime.init_db import init_db

console = Console()

db_app = typer.Typer(help="Manage the identity store database")


@db_app.command("init")
def init() -> None:
    """Create the user and provisioning link tables."""
    db_service = DbSessionService()
    try:
        init_db(db_service)
    except SQLAlchemyError as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(code=1) from e
    finally:
        db_service.close()

    console.print(f"[green]✅ Database initialized at {get_config().database.url}[/green]")
