import typer
from rich.console import Console

from src.jellybridge.runtime.init_db import init_db

console = Console()

db_app = typer.Typer(help="Database management")


@db_app.command("init")
def init() -> None:
    """Create all database tables."""
    init_db()
    console.print("[green]✅ Database initialized[/green]")
