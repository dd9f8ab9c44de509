"""Decorators for authenticated views."""

from functools import wraps

from flask import abort, g, session

from .permissions import Permissions


def login_required(f=None, admin_required=False):
    """Reject the request with 401 if the user is not logged in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session or g.get("user") is None:
                abort(401)
            if admin_required and not Permissions.from_user(g.user).is_admin:
                abort(403)
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
