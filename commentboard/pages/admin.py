"""
Admin Page

Lists every comment and deletes them by id. Access to deletion is decided
by the backend's row-level security policies, not by this page.
"""

import logging

from commentboard.pages.base import CommentListPage

logger = logging.getLogger(__name__)

CONFIRM_DELETE_MESSAGE = 'Permanently delete this post?'
DELETE_FAILED_MESSAGE = ('Delete failed. Check the row-level security policies '
                         'for the comments table.')


class AdminPage(CommentListPage):
    """Admin view with its own snapshot and refresh signal."""

    def delete_comment(self, comment_id):
        return (
            self.client.table(self.table_name)
            .delete()
            .eq('id', comment_id)
            .execute()
        )

    async def handle_delete(self, comment_id, refetch=True):
        if not self._confirm(CONFIRM_DELETE_MESSAGE):
            return False

        result = await self._call(self.delete_comment, comment_id)
        if result.error is not None:
            self._alert(DELETE_FAILED_MESSAGE, 'danger')
            logger.error('Deleting comment %s failed: %s', comment_id, result.error)
            return False

        logger.info('Deleted comment %s', comment_id)
        self.bump_refresh(fetch=refetch)
        return True
