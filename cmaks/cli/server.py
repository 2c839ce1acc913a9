from __future__ import annotations

import logging
from typing import Optional

import typer
import uvicorn

from cmaks.config import load_config
from cmaks.logger import logger
from cmaks.server.app import create_app


def serve(
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        "-f",
        help="Path to the server config file. Defaults to $CMAKS_CONFIG.",
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Overrides the address to listen on."
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Overrides the port to listen on."
    ),
) -> None:
    """
    Starts the cluster API server.
    """
    config = load_config(config_file)
    if host is not None:
        config.host = host
    if port is not None:
        config.port = port

    logger.setLevel(getattr(logging, config.logLevel))
    logger.info(f"Serving cluster API on {config.host}:{config.port}")

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.logLevel.lower(),
    )
