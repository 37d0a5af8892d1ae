# src/greenplace/cli/start.py
"""
Start command for the GreenPlace CLI.

Runs the API together with the background refresh workers and the periodic
jobs (cache warm-up and snapshot rebuild), all managed by the API lifespan.
"""

import logging
import traceback
from typing import Optional

import typer
import uvicorn
from typing_extensions import Annotated

from ..core.config import config

logger = logging.getLogger(__name__)

app = typer.Typer(name="start", help="Start the GreenPlace placement engine service.")


@app.callback(invoke_without_command=True)
def start(
    ctx: typer.Context,
    host: Annotated[Optional[str], typer.Option("--host", help="Interface to bind the API to.")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Port to serve the API on.")] = None,
    telemetry: Annotated[
        bool, typer.Option("--telemetry/--no-telemetry", help="Export traces and metrics over OTLP.")
    ] = True,
) -> None:
    """
    Start the API, the background refresh workers and the scheduler.
    """
    if ctx.invoked_subcommand is not None:
        return

    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logger.info("Initializing GreenPlace...")

    try:
        if telemetry:
            from ..core.telemetry import initialize_telemetry

            initialize_telemetry()

        from ..api.app import create_app

        api = create_app(use_lifespan=True)
        logger.info("GreenPlace is running. Press CTRL+C to exit.")
        uvicorn.run(api, host=host or config.API_HOST, port=port or config.API_PORT)
        logger.info("Shutting down GreenPlace service gracefully.")
    except KeyboardInterrupt:
        logger.info("Shutting down GreenPlace service.")
        raise typer.Exit()
    except Exception as e:
        logger.error(f"An unexpected error occurred during startup: {e}")
        logger.error("Startup failed: %s", traceback.format_exc())
        raise typer.Exit(code=1)
