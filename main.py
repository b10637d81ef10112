"""
POS Order Service Entry Point
=============================
Loads configuration, sets up logging, wires the gateway and services,
and serves the HTTP API with uvicorn.
"""

import logging
import sys

import structlog
import uvicorn

from api import create_app
from config import get_config, validate_configuration, ConfigurationError
from db import create_database
from discount import EventDiscountSettings
from storage import JsonFileStorage


logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO", debug: bool = False):
    """Route stdlib logging and structlog through the same handler."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    renderer = (
        structlog.dev.ConsoleRenderer() if debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def build_app(config):
    """Create the API app from a loaded Config."""
    gateway = create_database(config.database)
    storage = JsonFileStorage(config.storage.directory)

    return create_app(
        gateway,
        event_discounts=EventDiscountSettings(storage=storage),
        restaurant=config.restaurant,
        enable_daily_serial=config.features.enable_daily_serial,
        enable_customer_tracking=config.features.enable_customer_tracking,
        cors_origins=config.server.cors_origins,
    )


def main():
    """Run the API server."""
    try:
        config = get_config()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Cannot start: {str(e)}")
        sys.exit(1)

    configure_logging(config.server.log_level, config.features.debug_mode)

    validate_configuration()

    app = build_app(config)

    logger.info(f"Starting server on {config.server.host}:{config.server.port}")

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
