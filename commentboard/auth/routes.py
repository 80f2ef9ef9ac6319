"""
Auth Routes

Each action hands the form fields to the widget and returns to the feed,
which picks up the new session when it next loads.
"""

from flask import current_app, redirect, request, url_for

from commentboard.auth import auth_bp
from commentboard.auth.widget import AuthWidget
from commentboard.extensions import flash_alert, get_client


def _widget():
    return AuthWidget(get_client().auth, alert=flash_alert,
                      redirect_to=current_app.config.get('SIGNUP_REDIRECT_URL'))


@auth_bp.route('/login', methods=['POST'])
def login():
    """Sign in with email and password"""
    _widget().login(request.form.get('email', ''), request.form.get('password', ''))
    return redirect(url_for('feed.index'))


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """Register a new account"""
    _widget().signup(request.form.get('email', ''), request.form.get('password', ''))
    return redirect(url_for('feed.index'))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Sign out"""
    _widget().logout()
    return redirect(url_for('feed.index'))
