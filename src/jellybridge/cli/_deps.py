import typer
from rich.console import Console

from src.jellybridge.api.http.app_data import ApplicationDependencies, build_application_dependencies
from src.jellybridge.core.exceptions import ConfigurationError

console = Console()


def get_dependencies() -> ApplicationDependencies:
    """Build the services for a one-shot command; no scheduler is started."""
    try:
        return build_application_dependencies(with_scheduler=False)
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e
