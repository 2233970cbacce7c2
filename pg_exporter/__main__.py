"""Command-line entry point.

RUN:  python -m pg_exporter HOST DATABASE USER PASSWORD

Serves GET /metrics on LISTEN_HOST:PORT (127.0.0.1:8080 by default).
"""

from __future__ import annotations

from typing import Annotated

import typer
import uvicorn

from pg_exporter.core.config import load_settings
from pg_exporter.core.logging import setup_logging
from pg_exporter.main import create_app

cli = typer.Typer(add_completion=False)


@cli.command()
def serve(
    host: Annotated[str, typer.Argument(help="Database server host")],
    database: Annotated[str, typer.Argument(help="Database name")],
    user: Annotated[str, typer.Argument(help="Database user")],
    password: Annotated[str, typer.Argument(help="Database password")],
    db_port: Annotated[
        int | None,
        typer.Option("--db-port", help="Database port (default: PGPORT or 5432)"),
    ] = None,
    listen: Annotated[
        str | None,
        typer.Option(
            "--listen", help="Address to bind (default: LISTEN_HOST or 127.0.0.1)"
        ),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", help="Port to serve on (default: PORT or 8080)"),
    ] = None,
) -> None:
    """Serve PostgreSQL statistics for scraping on GET /metrics."""
    try:
        settings = load_settings(
            host,
            database,
            user,
            password,
            db_port=db_port,
            listen_host=listen,
            port=port,
        )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2) from None

    setup_logging(settings.log_level, json_format=settings.log_json)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.listen_host,
        port=settings.port,
        log_config=None,
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
