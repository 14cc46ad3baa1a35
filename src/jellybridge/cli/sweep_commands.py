"""Run the account expiry sweep on demand."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from . import _deps

console = Console()

sweep_app = typer.Typer(help="Account expiry sweeps")


@sweep_app.command("run")
def run_sweep(
    window: int | None = typer.Option(None, "--window", "-w", help="Warning window in days"),
) -> None:
    """Warn expiring users and disable expired ones, once."""
    deps = _deps.get_dependencies()
    warn_window = window or deps.config.lifecycle.warn_window_days

    async def _run():
        try:
            with deps.database_service.session_scope() as session:
                return await deps.lifecycle_service(session).run_sweep(warn_window)
        finally:
            await deps.aclose()

    report = asyncio.run(_run())

    table = Table(title=f"Expiry sweep ({warn_window} day window)")
    table.add_column("Examined", style="cyan")
    table.add_column("Warned", style="yellow")
    table.add_column("Disabled", style="red")
    table.add_column("Skipped", style="blue")
    table.add_column("Failed", style="magenta")
    table.add_row(
        str(report.examined),
        str(report.warned),
        str(report.disabled),
        str(report.skipped),
        str(report.failed),
    )
    console.print(table)

    if report.failed:
        raise typer.Exit(code=1)
