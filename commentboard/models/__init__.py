"""
Models Package

Exports all models for easy importing.
"""

from commentboard.models.comment import Comment, newest_first, parse_timestamp
from commentboard.models.user import User, Session

__all__ = ['Comment', 'newest_first', 'parse_timestamp', 'User', 'Session']
