import asyncio
import itertools
import json
from datetime import datetime, timedelta, timezone
from urllib.parse import urlsplit

import pytest

from commentboard import create_app
from commentboard.config import TestConfig
from commentboard.services import BackendClient


class FakeResponse:
    def __init__(self, status_code=200, payload=None, reason='OK', raw=None):
        self.status_code = status_code
        self.reason = reason
        if raw is not None:
            self.content = raw
        else:
            self.content = b'' if payload is None else json.dumps(payload).encode()

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def text(self):
        return self.content.decode()

    def json(self):
        return json.loads(self.content)


class FakeSupabase:
    """In-memory stand-in for the hosted table and auth APIs.

    Plugs into ``BackendClient(http=...)`` in place of ``requests.Session``.
    """

    def __init__(self):
        self.rows = []
        self.users = {}
        self.tokens = {}
        self.refresh_tokens = {}
        self.calls = []
        self.failures = {}
        self.autoconfirm = False
        self.closed = False
        self._ids = itertools.count(1)
        self._tokens = itertools.count(1)
        self._clock = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    # -- test helpers -------------------------------------------------------

    def add_user(self, email, password, confirmed=True):
        user = {'id': f'user-{len(self.users) + 1}', 'email': email,
                'password': password, 'confirmed': confirmed}
        self.users[email] = user
        return user

    def add_comment(self, content, user_id=None, created_at=None):
        if created_at is None:
            self._clock += timedelta(minutes=1)
            created_at = self._clock
        row = {'id': next(self._ids), 'content': content,
               'created_at': created_at.isoformat(), 'user_id': user_id}
        self.rows.append(row)
        return row

    def fail(self, method, path, status=400, payload=None):
        self.failures[(method, path)] = (status, payload or {'message': 'forced failure'})

    def count(self, method, path):
        return sum(1 for c in self.calls if c['method'] == method and c['path'] == path)

    def expire_tokens(self):
        """Let every issued access token lapse; refresh tokens stay valid."""
        self.tokens.clear()

    def revoke_sessions(self):
        self.tokens.clear()
        self.refresh_tokens.clear()

    def close(self):
        self.closed = True

    # -- transport ----------------------------------------------------------

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        if isinstance(params, dict):
            params = list(params.items())
        params = list(params or [])
        self.calls.append({'method': method, 'path': path, 'params': params,
                           'json': json, 'headers': dict(headers or {}), 'timeout': timeout})

        failure = self.failures.pop((method, path), None)
        if failure is not None:
            return FakeResponse(*failure)

        if path == '/rest/v1/comments':
            bearer = (headers or {}).get('Authorization', '').removeprefix('Bearer ')
            if bearer != (headers or {}).get('apikey') and bearer not in self.tokens:
                return FakeResponse(401, {'code': 'PGRST301', 'message': 'JWT expired'},
                                    'Unauthorized')
            return self._comments(method, params, json)
        handler = {
            ('POST', '/auth/v1/token'): self._token,
            ('POST', '/auth/v1/signup'): self._signup,
            ('POST', '/auth/v1/logout'): self._logout,
            ('GET', '/auth/v1/user'): self._user,
        }.get((method, path))
        if handler is None:
            return FakeResponse(404, {'message': 'not found'}, 'Not Found')
        return handler(json or {}, headers or {}, params)

    def _matches(self, row, params):
        for key, value in params:
            if key in ('select', 'order', 'limit'):
                continue
            if str(value).startswith('eq.') and str(row.get(key)) != str(value)[3:]:
                return False
        return True

    def _comments(self, method, params, body):
        if method == 'GET':
            rows = [dict(r) for r in self.rows if self._matches(r, params)]
            for key, value in params:
                if key == 'order':
                    column, direction = value.rsplit('.', 1)
                    rows.sort(key=lambda r: r[column], reverse=direction == 'desc')
            return FakeResponse(200, rows)
        if method == 'POST':
            for row in body:
                self.add_comment(row['content'], user_id=row.get('user_id'))
            return FakeResponse(201, None, 'Created')
        if method == 'DELETE':
            self.rows = [r for r in self.rows if not self._matches(r, params)]
            return FakeResponse(204, None, 'No Content')
        return FakeResponse(405, {'message': 'method not allowed'})

    def _public_user(self, user):
        return {'id': user['id'], 'email': user['email'],
                'email_confirmed_at': '2024-01-01T00:00:00Z' if user['confirmed'] else None}

    def _issue_session(self, user):
        token = f'access-{next(self._tokens)}'
        self.tokens[token] = user['email']
        self.refresh_tokens[f'refresh-{token}'] = user['email']
        return {'access_token': token, 'refresh_token': f'refresh-{token}',
                'token_type': 'bearer', 'expires_in': 3600, 'user': self._public_user(user)}

    def _bearer_email(self, headers):
        token = headers.get('Authorization', '').removeprefix('Bearer ')
        return self.tokens.get(token)

    def _token(self, body, headers, params):
        if ('grant_type', 'refresh_token') in params:
            return self._refresh(body)
        user = self.users.get(body.get('email'))
        if user is None or user['password'] != body.get('password'):
            return FakeResponse(400, {'error': 'invalid_grant',
                                      'error_description': 'Invalid login credentials'})
        if not user['confirmed']:
            return FakeResponse(400, {'code': 400, 'error_code': 'email_not_confirmed',
                                      'msg': 'Email not confirmed'})
        return FakeResponse(200, self._issue_session(user))

    def _refresh(self, body):
        # Refresh tokens are single use
        email = self.refresh_tokens.pop(body.get('refresh_token'), None)
        if email is None:
            return FakeResponse(400, {'code': 400, 'error_code': 'refresh_token_not_found',
                                      'msg': 'Invalid Refresh Token: Refresh Token Not Found'})
        return FakeResponse(200, self._issue_session(self.users[email]))

    def _signup(self, body, headers, params):
        if body.get('email') in self.users:
            return FakeResponse(422, {'code': 422, 'error_code': 'user_already_exists',
                                      'msg': 'User already registered'})
        if len(body.get('password') or '') < 6:
            return FakeResponse(422, {'code': 422, 'error_code': 'weak_password',
                                      'msg': 'Password should be at least 6 characters.'})
        user = self.add_user(body['email'], body['password'], confirmed=self.autoconfirm)
        if self.autoconfirm:
            return FakeResponse(200, self._issue_session(user))
        return FakeResponse(200, self._public_user(user))

    def _logout(self, body, headers, params):
        token = headers.get('Authorization', '').removeprefix('Bearer ')
        email = self.tokens.pop(token, None)
        if email is None:
            return FakeResponse(401, {'code': 401, 'msg': 'invalid JWT'}, 'Unauthorized')
        self.refresh_tokens = {k: v for k, v in self.refresh_tokens.items() if v != email}
        return FakeResponse(204, None, 'No Content')

    def _user(self, body, headers, params):
        email = self._bearer_email(headers)
        if email is None:
            return FakeResponse(401, {'code': 401, 'error_code': 'bad_jwt', 'msg': 'invalid JWT'},
                                'Unauthorized')
        return FakeResponse(200, self._public_user(self.users[email]))


_UNSET = object()


class ManualCalls:
    """Call runner for pages whose results the test releases, in any order."""

    def __init__(self):
        self.pending = []

    async def __call__(self, fn, *args, **kwargs):
        future = asyncio.get_running_loop().create_future()
        self.pending.append((future, fn, args, kwargs))
        return await future

    def indexes(self, name):
        return [i for i, (_, fn, _, _) in enumerate(self.pending) if fn.__name__ == name]

    def run(self, index):
        _, fn, args, kwargs = self.pending[index]
        return fn(*args, **kwargs)

    def resolve(self, index, result=_UNSET):
        future = self.pending[index][0]
        if result is _UNSET:
            result = self.run(index)
        future.set_result(result)

    async def wait_for(self, count):
        for _ in range(100):
            if len(self.pending) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f'expected {count} backend calls, saw {len(self.pending)}')


async def flush():
    """Let callbacks scheduled on the loop run."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture()
def fake_supabase():
    return FakeSupabase()


@pytest.fixture()
def backend(fake_supabase):
    return BackendClient(TestConfig.SUPABASE_URL, TestConfig.SUPABASE_ANON_KEY, http=fake_supabase)


@pytest.fixture()
def bound(backend):
    return backend.bind({})


@pytest.fixture()
def manual_calls():
    return ManualCalls()


@pytest.fixture()
def alerts():
    collected = []

    def alert(message, category='info'):
        collected.append((category, message))

    alert.messages = collected
    return alert


@pytest.fixture()
def app(backend):
    app = create_app(TestConfig, backend=backend)
    with app.app_context():
        yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def member(fake_supabase):
    return fake_supabase.add_user('member@example.com', 'secret123')


@pytest.fixture()
def drain():
    return flush
