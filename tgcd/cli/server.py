"""Command line entry point for running the tgcd service."""

import logging
from typing import Annotated

import typer
import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from tgcd.api.server import create_app
from tgcd.core.config import ServerSettings
from tgcd.core.database import DatabaseManager
from tgcd.core.logging_config import setup_logging
from tgcd.utils.async_typer import AsyncTyper

logger = logging.getLogger(__name__)

app = AsyncTyper(
    name="tgcd-server",
    help="Serve the tgcd tag store.",
    no_args_is_help=True,
)


@app.command()
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Address to listen on. Overrides TGCD_HOST.")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Port to listen on. Overrides TGCD_PORT.")] = None,
) -> None:
    """Run the service until interrupted."""
    settings = ServerSettings()
    if host is not None:
        settings.host = host
    if port is not None:
        settings.port = port

    setup_logging(settings.log_level)
    logger.info("Starting tgcd on %s:%d", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


@app.command(name="init-db")
async def init_db() -> None:
    """Create the database schema and exit."""
    settings = ServerSettings()
    setup_logging(settings.log_level)
    db_manager = DatabaseManager(settings.database_url)
    try:
        await db_manager.create_db_and_tables()
    except SQLAlchemyError as e:
        typer.secho(f"Failed creating schema: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e
    finally:
        await db_manager.dispose()
    typer.secho("Database schema is ready.", fg=typer.colors.GREEN)
