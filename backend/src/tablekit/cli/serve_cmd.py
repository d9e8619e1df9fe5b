"""API server CLI command."""

import logging

import click

from tablekit.settings import Settings


@click.command("serve")
@click.option("--host", default="127.0.0.1", help="Interface to bind.")
@click.option("--port", default=None, type=int, help="Port (default: TABLEKIT_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes.")
def serve(host: str, port: int | None, reload: bool):
    """Start the Tablekit API server."""
    import uvicorn

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "tablekit.api.app:app",
        host=host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level,
    )
