"""
Auth Widget

Login, sign-up and logout controls. The widget never decides who is signed
in: it shows whatever ``user`` the owning page passes in, and session
changes reach the page through its auth subscription.
"""

import logging

logger = logging.getLogger(__name__)

CONFIRMATION_SENT_MESSAGE = 'A confirmation email has been sent. Follow the link in it, then log in.'


def _ignore_alert(message, category='info'):
    logger.info('Alert (%s): %s', category, message)


class AuthWidget:
    """Two-field (email + password) auth form.

    Args:
        auth: ``AuthClient`` for the current browser session
        user: Signed-in user as known to the page, or None
        alert: ``alert(message, category)`` for user-visible messages
        redirect_to: URL the sign-up confirmation link should open
    """

    def __init__(self, auth, user=None, alert=None, redirect_to=None):
        self.auth = auth
        self.user = user
        self.email = ''
        self.password = ''
        self.loading = False
        self._alert = alert or _ignore_alert
        self.redirect_to = redirect_to

    @property
    def is_authenticated(self):
        return self.user is not None

    def _fill(self, email, password):
        self.email = (email or '').strip()
        self.password = password or ''
        return bool(self.email and self.password)

    def login(self, email, password):
        if not self._fill(email, password):
            return False

        self.loading = True
        try:
            result = self.auth.sign_in_with_password(self.email, self.password)
        finally:
            self.loading = False

        if result.error is not None:
            self._alert(f'Login failed: {result.error.message}', 'danger')
            return False
        self.password = ''
        return True

    def signup(self, email, password):
        if not self._fill(email, password):
            return False

        self.loading = True
        try:
            result = self.auth.sign_up(self.email, self.password, redirect_to=self.redirect_to)
        finally:
            self.loading = False

        if result.error is not None:
            self._alert(f'Sign-up failed: {result.error.message}', 'danger')
            return False
        self.password = ''
        if result.session is None:
            self._alert(CONFIRMATION_SENT_MESSAGE, 'success')
        return True

    def logout(self):
        result = self.auth.sign_out()
        if result.error is not None:
            logger.warning('Sign-out reported an error: %s', result.error)
        return True
