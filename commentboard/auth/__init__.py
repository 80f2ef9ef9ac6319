"""
Auth Blueprint

Form targets for the login widget shown on the feed page.
"""

from flask import Blueprint

auth_bp = Blueprint('auth', __name__)

from commentboard.auth import routes  # noqa: E402, F401
