"""
Feed Blueprint
"""

from flask import Blueprint

feed_bp = Blueprint('feed', __name__)

from commentboard.feed import routes  # noqa: E402, F401
