"""Main CLI application module."""

import typer

from .credentials_commands import credentials_app
from .db_commands import db_app
from .roles_commands import roles_app
from .sweep_commands import sweep_app

app = typer.Typer(
    help="jellybridge: OIDC identities to media server accounts",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(roles_app, name="roles")
app.add_typer(sweep_app, name="sweep")
app.add_typer(credentials_app, name="credentials")
app.add_typer(db_app, name="db")


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (defaults to app.host)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (defaults to app.port)"),
) -> None:
    """Run the internal HTTP API with uvicorn."""
    import uvicorn

    from src.jellybridge.api.http.app import create_app
    from src.jellybridge.api.utils.app_startup import configure_logging
    from src.jellybridge.runtime.context import get_config

    config = get_config()
    configure_logging(config)
    uvicorn.run(
        create_app(),
        host=host or config.app.host,
        port=port or config.app.port,
        log_config=None,
    )


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
