"""
Feed Routes

Main page: post form, auth widget and the comment list.
"""

from flask import current_app, redirect, render_template, request, url_for

from commentboard.auth.widget import AuthWidget
from commentboard.extensions import flash_alert, get_client
from commentboard.feed import feed_bp
from commentboard.pages import FeedPage, run_page


def _page():
    return FeedPage(
        get_client(),
        table_name=current_app.config.get('COMMENTS_TABLE'),
        alert=flash_alert,
    )


def _render(page):
    widget = AuthWidget(page.client.auth, user=page.user)
    return render_template('feed/index.html', page=page, widget=widget,
                           comments=page.comments, user=page.user)


@feed_bp.route('/', methods=['GET'])
def index():
    """Show the feed"""
    page = _page()
    run_page(page)
    return _render(page)


@feed_bp.route('/', methods=['POST'])
def submit():
    """Post a comment; on failure the draft is shown again"""
    page = _page()
    text = request.form.get('text', '')
    # The redirected GET fetches the list, so the page skips its own refetch
    if run_page(page, lambda p: p.handle_submit(text, refetch=False)):
        return redirect(url_for('feed.index'))
    return _render(page)
