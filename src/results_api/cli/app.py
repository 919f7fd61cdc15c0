"""Typer CLI root: ``serve`` plus the ``db`` and ``results`` command groups."""

import typer

from results_api.core.config import get_settings
from results_api.core.logging import setup_logging

app = typer.Typer(name="results-api", help="Election results snapshot service CLI")


@app.callback()
def _main_callback(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this command"),
) -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level, log_dir=settings.log_dir, json_format=settings.log_json)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Serve the results API (and run the refresh loop) with uvicorn."""
    import uvicorn

    uvicorn.run("results_api.main:create_app", factory=True, host=host, port=port, reload=reload)


def _register_subcommands() -> None:
    from results_api.cli.db_cmd import db_app
    from results_api.cli.results_cmd import results_app

    app.add_typer(db_app, name="db", help="Snapshot store migration commands")
    app.add_typer(results_app, name="results", help="Results ingestion and inspection commands")


_register_subcommands()
