"""
Admin Blueprint

Deletion is gated by the backend's row-level security, not by this app.
"""

from flask import Blueprint

admin_bp = Blueprint('admin', __name__)

from commentboard.admin import routes  # noqa: E402, F401
