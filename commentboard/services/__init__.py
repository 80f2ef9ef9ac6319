"""
Services Package

Exports the backend client and its result types.
"""

from commentboard.services.backend import (
    AuthClient,
    AuthResult,
    BackendClient,
    BoundClient,
    QueryBuilder,
    QueryResult,
    SESSION_KEY,
    SIGNED_IN,
    SIGNED_OUT,
    TOKEN_REFRESHED,
    Subscription,
)

__all__ = [
    'AuthClient',
    'AuthResult',
    'BackendClient',
    'BoundClient',
    'QueryBuilder',
    'QueryResult',
    'SESSION_KEY',
    'SIGNED_IN',
    'SIGNED_OUT',
    'TOKEN_REFRESHED',
    'Subscription',
]
