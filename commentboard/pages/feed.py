"""
Feed Page

Comment list, posting form and the signed-in user's mirror.
"""

import asyncio
import logging

from commentboard.pages.base import CommentListPage

logger = logging.getLogger(__name__)

LOGIN_REQUIRED_MESSAGE = 'You need to log in to post.'


class FeedPage(CommentListPage):
    """Main page: list comments and post new ones.

    ``user`` mirrors the auth service. It is filled by one lookup at mount
    and then by every auth-state event until the page is unmounted.
    """

    def __init__(self, client, **kwargs):
        super().__init__(client, **kwargs)
        self.text = ''
        self.user = None
        self._subscription = None
        self._loop = None
        self._auth_event_seen = False

    def on_mount(self):
        self._loop = asyncio.get_running_loop()
        self._auth_event_seen = False
        self._subscription = self.client.auth.on_auth_state_change(self._on_auth_change)
        self.spawn(self._load_user())

    def on_unmount(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def _load_user(self):
        result = await self._call(self.client.auth.get_user)
        # A newer auth event already decided who is signed in
        if not self.mounted or self._auth_event_seen:
            return
        if result.error is not None:
            logger.warning('Current user lookup failed: %s', result.error)
        self.user = result.user

    def _on_auth_change(self, event, session):
        # Auth calls may run on a worker thread; state changes happen on the loop
        self._loop.call_soon_threadsafe(self._apply_auth_change, event, session)

    def _apply_auth_change(self, event, session):
        if not self.mounted:
            return
        self._auth_event_seen = True
        self.user = session.user if session is not None else None
        logger.debug('Auth event %s on feed page', event)

    def insert_comment(self, content, user_id):
        return (
            self.client.table(self.table_name)
            .insert([{'content': content, 'user_id': user_id}])
            .execute()
        )

    async def handle_submit(self, text=None, refetch=True):
        """Post the draft as a new comment.

        Returns True when the comment was stored and the refresh signal
        moved. ``refetch=False`` skips the fetch that would normally follow.
        """
        if text is not None:
            self.text = text

        if self.user is None:
            self._alert(LOGIN_REQUIRED_MESSAGE, 'danger')
            return False
        if not self.text:
            return False

        result = await self._call(self.insert_comment, self.text, self.user.id)
        if result.error is not None:
            # No user-facing message; the draft stays for another try
            logger.warning('Posting comment failed: %s', result.error)
            return False

        self.text = ''
        self.bump_refresh(fetch=refetch)
        return True
