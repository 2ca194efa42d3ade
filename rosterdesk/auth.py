"""
Authentication helpers for RosterDesk
Admin routes use HTTP Basic credentials from the environment; team officials
log in with a username/password stored in the roster store.
"""

import hmac
from functools import wraps

from flask import current_app, jsonify, request

ADMIN_REALM = 'Basic realm="Admin Area"'


def is_admin_credentials(username: str, password: str) -> bool:
    """Compare against ADMIN_USER / ADMIN_PASS; never matches when unset"""
    admin_user = current_app.config.get('ADMIN_USER', '')
    admin_pass = current_app.config.get('ADMIN_PASS', '')
    if not admin_user or not admin_pass:
        return False
    return (hmac.compare_digest(username or '', admin_user)
            and hmac.compare_digest(password or '', admin_pass))


def _unauthorized(message: str):
    response = jsonify({'success': False, 'errors': [message]})
    response.status_code = 401
    response.headers['WWW-Authenticate'] = ADMIN_REALM
    return response


def admin_required(f):
    """Decorator guarding admin routes with HTTP Basic credentials"""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth = request.authorization
        if auth is None or auth.type != 'basic':
            return _unauthorized('Authentication required')
        if not is_admin_credentials(auth.username, auth.password):
            current_app.logger.warning(f"Rejected admin credentials from {request.remote_addr}")
            return _unauthorized('Invalid credentials')
        return f(*args, **kwargs)
    return decorated
