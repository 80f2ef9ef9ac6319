"""
Comment Board - Application Factory

This module provides the Flask application factory pattern for creating
and configuring the application instance.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import Flask

from commentboard.config import Config
from commentboard.errors import ConfigurationError
from commentboard.extensions import init_backend
from commentboard.logging_config import configure_logging


def _display_zone(name):
    if name.upper() == 'UTC':
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(['DISPLAY_TIMEZONE'],
                                 f'Unknown DISPLAY_TIMEZONE {name!r}') from e


def create_app(config_class=Config, backend=None):
    """Create and configure the Flask application.

    Args:
        config_class: Configuration class to use (default: Config)
        backend: Prebuilt ``BackendClient``; built from the config when omitted

    Returns:
        Configured Flask application instance

    Raises:
        ConfigurationError: the backend URL or public key is missing, or
            DISPLAY_TIMEZONE names no known timezone
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    missing = [key for key in app.config.get('REQUIRED_KEYS', ()) if not app.config.get(key)]
    if missing:
        raise ConfigurationError(missing)

    display_zone = _display_zone(app.config.get('DISPLAY_TIMEZONE') or 'UTC')

    init_backend(app, backend)

    # Register blueprints
    from commentboard.auth import auth_bp
    from commentboard.admin import admin_bp
    from commentboard.feed import feed_bp

    app.register_blueprint(feed_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(admin_bp, url_prefix='/delete')

    @app.template_filter('format_timestamp')
    def format_timestamp(value):
        """Render a comment timestamp in the display timezone."""
        if not isinstance(value, datetime):
            return value or ''
        if value.tzinfo is not None:
            value = value.astimezone(display_zone)
        return value.strftime('%Y/%m/%d %H:%M:%S')

    return app
