"""
Backend Client

Thin wrapper over the hosted backend's REST surface: the table API under
``/rest/v1`` and the auth API under ``/auth/v1``. One ``BackendClient`` is
built per process by the application factory; each browser session gets a
``BoundClient`` that carries its own auth tokens.

Every call is made once. A request whose access token has lapsed is the one
exception: the session is refreshed and the request sent again with the new
token. Failures come back as a ``BackendError`` value on the result object
and are never raised to the caller.
"""

import logging
import threading
from collections import namedtuple
from dataclasses import dataclass, replace

import requests

from commentboard.errors import BackendError, ConfigurationError
from commentboard.models import Session, User

logger = logging.getLogger(__name__)

SESSION_KEY = 'backend_session'

SIGNED_IN = 'SIGNED_IN'
SIGNED_OUT = 'SIGNED_OUT'
TOKEN_REFRESHED = 'TOKEN_REFRESHED'

# Seconds before expiry at which a stored access token is renewed
EXPIRY_MARGIN = 30

HTTPResult = namedtuple('HTTPResult', ['payload', 'error', 'status_code'])


@dataclass
class QueryResult:
    """Rows returned by a table query, or the error that replaced them."""
    data: list | None = None
    error: BackendError | None = None
    status_code: int | None = None


@dataclass
class AuthResult:
    user: User | None = None
    session: Session | None = None
    error: BackendError | None = None


def _error_from_response(status_code, payload, reason=None):
    """Build a BackendError from an error body of either API."""
    message = code = details = None
    if isinstance(payload, dict):
        message = (payload.get('message') or payload.get('msg')
                   or payload.get('error_description') or payload.get('error'))
        code = payload.get('error_code') or payload.get('code') or payload.get('error')
        details = payload.get('details') or payload.get('hint')
    elif isinstance(payload, str) and payload:
        message = payload
    return BackendError(
        message=str(message or reason or f'HTTP {status_code}'),
        status_code=status_code,
        code=str(code) if code is not None else None,
        details=details,
    )


def _is_transient(error):
    """Whether a failed auth call says nothing about the session itself."""
    return error.code in ('timeout', 'network') or (error.status_code or 0) >= 500


class BackendClient:
    """Process-wide connection to the hosted backend.

    Args:
        url: Project URL, e.g. ``https://xyz.supabase.co``
        key: Public (anon) API key
        timeout: Seconds before a request is abandoned and reported as an error
        http: Optional ``requests.Session``-compatible object
    """

    def __init__(self, url, key, timeout=10, http=None):
        missing = [name for name, value in (('SUPABASE_URL', url), ('SUPABASE_ANON_KEY', key)) if not value]
        if missing:
            raise ConfigurationError(missing)
        self.url = url.rstrip('/')
        self.key = key
        self.timeout = timeout
        self.http = http if http is not None else requests.Session()

    def __repr__(self):
        return f'<BackendClient {self.url}>'

    def bind(self, store=None):
        """Return a client bound to one session store (a mutable mapping)."""
        return BoundClient(self, store if store is not None else {})

    def close(self):
        self.http.close()

    def request(self, method, path, token=None, params=None, json=None, headers=None):
        """Issue one HTTP call and return an ``HTTPResult``."""
        merged = {
            'apikey': self.key,
            'Authorization': f'Bearer {token or self.key}',
        }
        if headers:
            merged.update(headers)

        try:
            resp = self.http.request(
                method,
                self.url + path,
                params=params,
                json=json,
                headers=merged,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning('%s %s timed out', method, path)
            return HTTPResult(None, BackendError('Request timed out', code='timeout'), None)
        except requests.exceptions.RequestException as e:
            logger.warning('%s %s failed: %s', method, path, e)
            return HTTPResult(None, BackendError(str(e) or 'Connection failed', code='network'), None)

        payload = None
        if resp.content:
            try:
                payload = resp.json()
            except ValueError:
                if resp.ok:
                    return HTTPResult(None, BackendError('Invalid JSON in response',
                                                         status_code=resp.status_code,
                                                         code='invalid_json'), resp.status_code)
                payload = resp.text

        if not resp.ok:
            return HTTPResult(None, _error_from_response(resp.status_code, payload, resp.reason),
                              resp.status_code)
        return HTTPResult(payload, None, resp.status_code)


class BoundClient:
    """Backend access on behalf of one browser session."""

    def __init__(self, backend, store):
        self.backend = backend
        self.auth = AuthClient(backend, store)

    def table(self, name):
        return QueryBuilder(self.backend, name, auth=self.auth)

    from_ = table


class QueryBuilder:
    """Chainable table query; nothing is sent until ``execute()``.

    >>> client.table('comments').select('*').order('created_at', ascending=False).execute()
    """

    def __init__(self, backend, table, auth=None):
        self._backend = backend
        self.table = table
        self._auth = auth
        self.method = 'GET'
        self.params = []
        self.body = None
        self.prefer = None
        self._filtered = False

    def select(self, columns='*'):
        self.params.append(('select', columns))
        return self

    def order(self, column, ascending=True):
        self.params.append(('order', f'{column}.{"asc" if ascending else "desc"}'))
        return self

    def eq(self, column, value):
        self.params.append((column, f'eq.{value}'))
        self._filtered = True
        return self

    def limit(self, count):
        self.params.append(('limit', int(count)))
        return self

    def insert(self, rows, returning='minimal'):
        self.method = 'POST'
        self.body = rows if isinstance(rows, list) else [rows]
        self.prefer = f'return={returning}'
        return self

    def delete(self, returning='minimal'):
        self.method = 'DELETE'
        self.prefer = f'return={returning}'
        return self

    def execute(self):
        if self.method == 'DELETE' and not self._filtered:
            return QueryResult(error=BackendError('DELETE requires a filter', code='missing_filter'))

        token = self._auth.access_token() if self._auth else None
        result = self._send(token)

        if token is not None and result.status_code == 401:
            # Lapsed token: renew the session, then send once more
            logger.info('Access token rejected on %s; refreshing the session', self.table)
            refreshed = self._auth.refresh_session(stale_token=token)
            if refreshed.error is None or self._auth.get_session() is None:
                result = self._send(refreshed.session.access_token if refreshed.session else None)

        if result.error is not None:
            return QueryResult(error=result.error, status_code=result.status_code)

        data = result.payload
        if data is None:
            data = []
        elif isinstance(data, dict):
            data = [data]
        return QueryResult(data=data, status_code=result.status_code)

    def _send(self, token):
        headers = {}
        if self.prefer:
            headers['Prefer'] = self.prefer
        return self._backend.request(
            self.method,
            f'/rest/v1/{self.table}',
            token=token,
            params=list(self.params),
            json=self.body,
            headers=headers,
        )


class Subscription:
    """Registration handle returned by ``on_auth_state_change``."""

    def __init__(self, listeners, callback):
        self._listeners = listeners
        self.callback = callback
        self.active = True
        listeners.append(callback)

    def unsubscribe(self):
        if not self.active:
            return
        self.active = False
        try:
            self._listeners.remove(self.callback)
        except ValueError:
            pass


class AuthClient:
    """Email/password auth against the hosted auth service.

    The session (tokens and user) lives in ``store`` under ``SESSION_KEY``.
    Listeners registered with ``on_auth_state_change`` are called with
    ``(event, session)`` whenever this client signs in or out, and with
    ``TOKEN_REFRESHED`` when renewed tokens replace the stored ones.
    """

    def __init__(self, backend, store):
        self._backend = backend
        self._store = store
        self._listeners = []
        self._refresh_lock = threading.Lock()

    def get_session(self):
        return Session.from_payload(self._store.get(SESSION_KEY))

    def access_token(self):
        """Current bearer token, renewed first when it is about to expire."""
        session = self.get_session()
        if session is None:
            return None
        if session.expires_within(EXPIRY_MARGIN):
            refreshed = self.refresh_session(stale_token=session.access_token)
            if refreshed.session is not None:
                return refreshed.session.access_token
            session = self.get_session()
        return session.access_token if session else None

    def on_auth_state_change(self, callback):
        return Subscription(self._listeners, callback)

    def sign_in_with_password(self, email, password):
        result = self._backend.request(
            'POST', '/auth/v1/token',
            params={'grant_type': 'password'},
            json={'email': email, 'password': password},
        )
        if result.error is not None:
            return AuthResult(error=result.error)

        session = Session.from_payload(result.payload)
        if session is None:
            return AuthResult(error=BackendError('Sign-in returned no session',
                                                 status_code=result.status_code))
        self._save(session)
        logger.info('Signed in %s', session.user.email if session.user else 'user')
        self._emit(SIGNED_IN, session)
        return AuthResult(user=session.user, session=session)

    def sign_up(self, email, password, redirect_to=None):
        """Register a new account.

        Projects with email confirmation enabled return only the user; the
        account cannot sign in until the emailed link is followed. Projects
        without it return a full session, which is stored and announced.
        """
        params = {'redirect_to': redirect_to} if redirect_to else None
        result = self._backend.request(
            'POST', '/auth/v1/signup',
            params=params,
            json={'email': email, 'password': password},
        )
        if result.error is not None:
            return AuthResult(error=result.error)

        session = Session.from_payload(result.payload)
        if session is not None:
            self._save(session)
            self._emit(SIGNED_IN, session)
            return AuthResult(user=session.user, session=session)
        return AuthResult(user=User.from_payload(result.payload))

    def sign_out(self):
        session = self.get_session()
        error = None
        if session is not None:
            result = self._backend.request('POST', '/auth/v1/logout', token=session.access_token)
            # An expired token still ends the local session
            if result.error is not None and result.error.status_code not in (401, 403, 404):
                error = result.error
        self._clear()
        self._emit(SIGNED_OUT, None)
        return AuthResult(error=error)

    def get_user(self):
        session = self.get_session()
        if session is None:
            return AuthResult()

        result = self._backend.request('GET', '/auth/v1/user', token=session.access_token)
        if result.status_code == 401:
            refreshed = self.refresh_session(stale_token=session.access_token)
            if refreshed.session is None:
                return AuthResult(error=result.error)
            session = refreshed.session
            result = self._backend.request('GET', '/auth/v1/user', token=session.access_token)

        if result.error is not None:
            if result.error.status_code in (401, 403):
                logger.info('Stored session rejected (%s); clearing it', result.error.status_code)
                self._clear()
                self._emit(SIGNED_OUT, None)
            return AuthResult(error=result.error)
        return AuthResult(user=User.from_payload(result.payload), session=session)

    def refresh_session(self, stale_token=None):
        """Exchange the stored refresh token for a new session.

        ``stale_token`` is the access token the caller saw rejected. When
        another call has already replaced it, the newer session is returned
        without asking the auth service again. A refresh token the service
        refuses ends the session with ``SIGNED_OUT``; a timeout, network
        failure or server error leaves it stored.
        """
        with self._refresh_lock:
            session = self.get_session()
            if session is None:
                return AuthResult(error=BackendError('No session to refresh', code='no_session'))
            if stale_token is not None and session.access_token != stale_token:
                return AuthResult(user=session.user, session=session)

            error = None
            refreshed = None
            if not session.refresh_token:
                error = BackendError('Session has no refresh token', code='no_refresh_token')
            else:
                result = self._backend.request(
                    'POST', '/auth/v1/token',
                    params={'grant_type': 'refresh_token'},
                    json={'refresh_token': session.refresh_token},
                )
                error = result.error
                if error is None:
                    refreshed = Session.from_payload(result.payload)
                    if refreshed is None:
                        error = BackendError('Token refresh returned no session',
                                             status_code=result.status_code)

            if refreshed is not None:
                if refreshed.user is None:
                    refreshed = replace(refreshed, user=session.user)
                self._save(refreshed)
            elif not _is_transient(error):
                self._clear()

        if refreshed is not None:
            logger.debug('Session refreshed')
            self._emit(TOKEN_REFRESHED, refreshed)
            return AuthResult(user=refreshed.user, session=refreshed)
        if _is_transient(error):
            logger.warning('Session refresh failed, keeping the stored session: %s', error)
        else:
            logger.info('Session refresh refused (%s); signing out', error)
            self._emit(SIGNED_OUT, None)
        return AuthResult(error=error)

    def _save(self, session):
        self._store[SESSION_KEY] = session.to_dict()

    def _clear(self):
        self._store.pop(SESSION_KEY, None)

    def _emit(self, event, session):
        for callback in list(self._listeners):
            try:
                callback(event, session)
            except Exception:
                logger.exception('Auth listener failed on %s', event)
