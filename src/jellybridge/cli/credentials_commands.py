"""Shadow credential migration for IdP users without a stored password."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from . import _deps

console = Console()

credentials_app = typer.Typer(help="Shadow credential maintenance")


@credentials_app.command("status")
def status() -> None:
    """List IdP users that have no shadow password yet."""
    deps = _deps.get_dependencies()
    try:
        with deps.database_service.session_scope() as session:
            pending = deps.credential_migration_service(session).pending()
    finally:
        asyncio.run(deps.aclose())

    if not pending:
        console.print("[green]All IdP users have a shadow password[/green]")
        return

    table = Table(title="Users needing migration")
    table.add_column("ID", style="cyan")
    table.add_column("Username", style="green")
    table.add_column("Email", style="blue")
    table.add_column("Provider", style="magenta")
    for user in pending:
        table.add_row(
            user.id,
            user.downstream_username or "",
            user.email or "",
            user.external_provider_name or "",
        )
    console.print(table)
    console.print(f"\n[yellow]{len(pending)} users need migration[/yellow]")


@credentials_app.command("migrate")
def migrate(
    confirm: bool = typer.Option(
        False, "--confirm", help="Required: downstream passwords of affected users are reset"
    ),
    user_id: str | None = typer.Option(None, "--user-id", "-u", help="Only migrate this user"),
) -> None:
    """Generate and store shadow passwords, resetting them downstream."""
    if not confirm:
        console.print("[red]❌ Refusing to reset downstream passwords without --confirm[/red]")
        raise typer.Exit(code=2)

    deps = _deps.get_dependencies()

    async def _run():
        try:
            with deps.database_service.session_scope() as session:
                return await deps.credential_migration_service(session).migrate(True, user_id=user_id)
        finally:
            await deps.aclose()

    report = asyncio.run(_run())

    for outcome in report.succeeded:
        console.print(f"[green]✅ {outcome.email or outcome.user_id}[/green]")
    for outcome in report.failed:
        console.print(f"[red]❌ {outcome.email or outcome.user_id}: {outcome.error}[/red]")
    console.print(
        f"\nMigration complete: {len(report.succeeded)} succeeded, {len(report.failed)} failed"
    )
    if report.failed:
        raise typer.Exit(code=1)
