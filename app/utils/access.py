"""
Actor identity and role checks

The upstream auth gateway authenticates the caller and forwards the identity
in the ``X-User-Id`` and ``X-User-Role`` headers.
"""
from functools import wraps

from flask_login import UserMixin, current_user

from app.utils.error_handlers import api_error_response

USER_ID_HEADER = 'X-User-Id'
USER_ROLE_HEADER = 'X-User-Role'
ADMIN_ROLE = 'admin'


class Actor(UserMixin):
    """Caller identity resolved for the current request"""

    def __init__(self, user_id, role='user'):
        self.id = user_id
        self.role = role

    @property
    def is_admin(self):
        return self.role == ADMIN_ROLE

    def __repr__(self):
        return f'<Actor {self.id} ({self.role})>'


def load_actor_from_request(req):
    """Flask-Login request loader"""
    user_id = (req.headers.get(USER_ID_HEADER) or '').strip()
    if not user_id or len(user_id) > 64:
        return None
    role = (req.headers.get(USER_ROLE_HEADER) or 'user').strip().lower()
    return Actor(user_id, role)


def unauthorized_response():
    return api_error_response('Authentication required', 401, 'UNAUTHORIZED')


def require_user(f):
    """Decorator to require an authenticated caller"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return unauthorized_response()
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Decorator to require the admin role"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return unauthorized_response()
        if not current_user.is_admin:
            return api_error_response('Admin access required', 403, 'PERMISSION_DENIED')
        return f(*args, **kwargs)

    return decorated_function
