"""
Page State

Shared machinery for pages that show the comment list. A page is mounted,
fetches its snapshot, reacts to user actions and is finally unmounted. All
work runs on one asyncio event loop; blocking backend calls are handed to a
worker thread and their results are applied back on the loop.

Each fetch records the generation that started it. Starting another fetch,
or unmounting, moves the generation on, and a fetch that finishes for an
older generation is discarded. The most recently started fetch always wins,
whatever order the responses arrive in.
"""

import asyncio
import logging

from commentboard.models import Comment, newest_first

logger = logging.getLogger(__name__)


async def call_in_thread(fn, *args, **kwargs):
    """Run a blocking backend call off the event loop."""
    return await asyncio.to_thread(fn, *args, **kwargs)


def _ignore_alert(message, category='info'):
    logger.info('Alert (%s): %s', category, message)


def _decline(message):
    return False


class CommentListPage:
    """Base class for pages that display the comments table newest first.

    Args:
        client: ``BoundClient`` used for every backend call
        table_name: Table holding the comments
        call: Coroutine function used to run blocking calls
        alert: ``alert(message, category)`` for user-visible messages
        confirm: ``confirm(message) -> bool`` for yes/no prompts
    """

    table_name = 'comments'

    def __init__(self, client, table_name=None, call=None, alert=None, confirm=None):
        self.client = client
        if table_name:
            self.table_name = table_name
        self.comments = []
        self.refresh_signal = 0
        self.mounted = False
        self._call = call or call_in_thread
        self._alert = alert or _ignore_alert
        self._confirm = confirm or _decline
        self._generation = 0
        self._tasks = set()

    async def __aenter__(self):
        self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.unmount()

    def mount(self):
        """Start the page. Must be called from a running event loop."""
        if self.mounted:
            return
        self.mounted = True
        self.on_mount()
        self._start_fetch()

    def unmount(self):
        if not self.mounted:
            return
        self.mounted = False
        # In-flight fetches keep running but can no longer commit
        self._generation += 1
        self.on_unmount()

    def on_mount(self):
        pass

    def on_unmount(self):
        pass

    def bump_refresh(self, fetch=True):
        """Advance the refresh signal, which starts exactly one new fetch.

        With ``fetch=False`` the signal still moves but the new snapshot is
        left to whoever renders next, e.g. the page behind a redirect.
        """
        self.refresh_signal += 1
        if self.mounted and fetch:
            self._start_fetch()

    async def settled(self):
        """Wait until every task the page started has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def list_comments(self):
        return (
            self.client.table(self.table_name)
            .select('*')
            .order('created_at', ascending=False)
            .execute()
        )

    def spawn(self, coro):
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _start_fetch(self):
        self._generation += 1
        return self.spawn(self._fetch(self._generation))

    async def _fetch(self, generation):
        result = await self._call(self.list_comments)

        if result.error is not None:
            logger.error('Fetching %s failed: %s', self.table_name, result.error)
            return
        if generation != self._generation:
            logger.debug('Discarding stale %s snapshot (generation %d, now %d)',
                         self.table_name, generation, self._generation)
            return

        try:
            snapshot = newest_first(Comment.from_row(row) for row in result.data or [])
        except (KeyError, TypeError, ValueError) as e:
            logger.error('Malformed row in %s: %s', self.table_name, e)
            return
        self.comments = snapshot


def run_page(page, action=None):
    """Drive a page through one request.

    Mounts the page, waits for its initial fetches, runs ``action(page)``
    if given, waits again, then unmounts. Returns whatever the action
    returned; the page itself holds the state to render.
    """
    async def _drive():
        outcome = None
        async with page:
            await page.settled()
            if action is not None:
                outcome = await action(page)
                await page.settled()
        return outcome

    return asyncio.run(_drive())
