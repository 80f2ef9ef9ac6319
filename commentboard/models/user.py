"""
User and Session Models

Read-only mirrors of what the hosted auth service reports. Nothing here is
persisted by the application.
"""

import time
from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """Authenticated user as reported by the auth service"""
    id: str
    email: str | None = None
    email_confirmed_at: str | None = None

    @classmethod
    def from_payload(cls, payload):
        if not payload or not payload.get('id'):
            return None
        return cls(
            id=str(payload['id']),
            email=payload.get('email'),
            email_confirmed_at=payload.get('email_confirmed_at') or payload.get('confirmed_at'),
        )


@dataclass(frozen=True)
class Session:
    """Tokens issued by a successful sign-in"""
    access_token: str
    refresh_token: str | None
    user: User | None = None
    token_type: str = 'bearer'
    expires_in: int | None = None
    expires_at: int | None = None

    @classmethod
    def from_payload(cls, payload):
        if not payload or not payload.get('access_token'):
            return None
        expires_at = payload.get('expires_at')
        if expires_at is None and payload.get('expires_in'):
            expires_at = int(time.time()) + int(payload['expires_in'])
        return cls(
            access_token=payload['access_token'],
            refresh_token=payload.get('refresh_token'),
            user=User.from_payload(payload.get('user')),
            token_type=payload.get('token_type') or 'bearer',
            expires_in=payload.get('expires_in'),
            expires_at=expires_at,
        )

    def to_dict(self):
        user = None
        if self.user is not None:
            user = {
                'id': self.user.id,
                'email': self.user.email,
                'email_confirmed_at': self.user.email_confirmed_at,
            }
        return {
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'token_type': self.token_type,
            'expires_in': self.expires_in,
            'expires_at': self.expires_at,
            'user': user,
        }

    def expires_within(self, seconds):
        """True when the access token is past, or within ``seconds`` of, its expiry."""
        if self.expires_at is None:
            return False
        return self.expires_at - seconds <= time.time()
