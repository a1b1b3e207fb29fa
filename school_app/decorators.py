from functools import wraps

from flask_login import current_user

from .errors import Forbidden, Unauthenticated
from .models import Role


def check_access(user, roles=()):
    """
    Raise unless ``user`` is signed in and, when ``roles`` is non-empty,
    holds one of them. Returns the user.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        raise Unauthenticated()
    allowed = {Role(r) for r in roles}
    if allowed and user.role not in allowed:
        raise Forbidden()
    return user


def role_required(*roles):
    """
    Decorator to ensure the current user is signed in and has one of the
    allowed roles. With no roles, any signed-in user passes.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            check_access(current_user, roles)
            return func(*args, **kwargs)
        return wrapper
    return decorator


def guard_blueprint(blueprint, *roles):
    """Apply the role check to every route of ``blueprint``."""
    @blueprint.before_request
    def _require_roles():
        check_access(current_user, roles)
