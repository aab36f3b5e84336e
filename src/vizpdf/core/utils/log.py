"""Logging configuration shared by the CLI entry points"""

import logging


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Route vizpdf loggers to stderr at the given level; asyncio is held at WARNING."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
