import logging
from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from library_api.errors import ForbiddenError, InvalidCredentialError
from library_api.models.user import User

logger = logging.getLogger(__name__)


def login_required(f):
    """Decorator to require a valid bearer token.

    Loads the token's user into ``g.user``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        try:
            user_id = int(get_jwt_identity())
        except (TypeError, ValueError):
            raise InvalidCredentialError('Invalid token')
        user = User.get_by_id(user_id)
        if not user:
            raise InvalidCredentialError('User not found')
        g.user = user
        return f(*args, **kwargs)
    return decorated_function


def role_required(*roles):
    """Decorator to require specific roles. Implies login_required."""
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            # Admin has all permissions
            if not g.user.is_admin() and g.user.role not in roles:
                logger.warning('User %s (%s) denied access to %s',
                               g.user.id, g.user.role, f.__name__)
                raise ForbiddenError('Admin access required')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
