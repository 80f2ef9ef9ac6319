"""
Pages Package

Request-independent state for the feed and admin views.
"""

from commentboard.pages.base import CommentListPage, call_in_thread, run_page
from commentboard.pages.feed import FeedPage, LOGIN_REQUIRED_MESSAGE
from commentboard.pages.admin import AdminPage, CONFIRM_DELETE_MESSAGE, DELETE_FAILED_MESSAGE

__all__ = [
    'CommentListPage',
    'call_in_thread',
    'run_page',
    'FeedPage',
    'AdminPage',
    'LOGIN_REQUIRED_MESSAGE',
    'CONFIRM_DELETE_MESSAGE',
    'DELETE_FAILED_MESSAGE',
]
