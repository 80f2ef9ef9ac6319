"""
Admin Routes

Comment list with a delete button per row.
"""

from flask import current_app, redirect, render_template, request, url_for

from commentboard.admin import admin_bp
from commentboard.extensions import flash_alert, get_client
from commentboard.pages import AdminPage, run_page


def _form_confirmed(message):
    # The browser asks the question; the form records the answer
    return request.form.get('confirm', '').lower() in ('1', 'yes', 'true', 'on')


@admin_bp.route('/', methods=['GET'])
def index():
    """List every comment"""
    page = AdminPage(get_client(), table_name=current_app.config.get('COMMENTS_TABLE'))
    run_page(page)
    return render_template('admin/index.html', page=page, comments=page.comments)


@admin_bp.route('/<int:comment_id>', methods=['POST'])
def delete_comment(comment_id):
    """Delete one comment after confirmation"""
    page = AdminPage(
        get_client(),
        table_name=current_app.config.get('COMMENTS_TABLE'),
        alert=flash_alert,
        confirm=_form_confirmed,
    )
    run_page(page, lambda p: p.handle_delete(comment_id, refetch=False))
    return redirect(url_for('admin.index'))
