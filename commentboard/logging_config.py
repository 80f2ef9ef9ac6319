"""Logging configuration."""

import logging

from flask import Flask


def configure_logging(app: Flask) -> None:
    """Configure plain-text logs at the level named by ``LOG_LEVEL``."""

    level_name = str(app.config.get('LOG_LEVEL', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
    )
    logging.getLogger('commentboard').setLevel(level)

    # Connection pool chatter from requests
    logging.getLogger('urllib3').setLevel(logging.WARNING)
