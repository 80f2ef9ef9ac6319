"""
Flask Extensions

The backend client is built once per application and handed to each request
through ``get_client()``, bound to that browser's cookie session.
"""

from flask import current_app, flash, g, session

from commentboard.services import BackendClient


def init_backend(app, backend=None):
    """Attach the process-wide backend client to ``app``."""
    if backend is None:
        backend = BackendClient(
            app.config['SUPABASE_URL'],
            app.config['SUPABASE_ANON_KEY'],
            timeout=app.config.get('BACKEND_TIMEOUT', 10),
        )
    app.extensions['backend'] = backend
    return backend


def get_backend():
    return current_app.extensions['backend']


def get_client():
    """Backend client bound to the current request's session."""
    client = getattr(g, 'backend_client', None)
    if client is None:
        # The real session object, so worker threads share it with the request
        client = get_backend().bind(session._get_current_object())
        g.backend_client = client
    return client


def flash_alert(message, category='info'):
    """Show ``message`` to the user on the next rendered page."""
    flash(message, category)
