"""Preview the role and policy that group claims map to."""

import typer
from rich.console import Console
from rich.table import Table

from src.jellybridge.core.services import map_groups_to_role, policy_for_role

console = Console()

roles_app = typer.Typer(help="Inspect the group to role mapping")


@roles_app.command("preview")
def preview(
    groups: list[str] | None = typer.Argument(None, help="Group claim values, as sent by the identity provider"),
) -> None:
    """Show the role and downstream policy for a set of groups."""
    role = map_groups_to_role(groups or [])
    console.print(f"Role: [bold green]{role}[/bold green]")

    table = Table(title=f"Policy for role '{role}'")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")
    for field, value in policy_for_role(role).to_downstream().items():
        table.add_row(field, str(value))
    console.print(table)
