"""Password hashing and the Admin/Operator route guards."""
from functools import wraps

from flask import has_request_context, jsonify, session
from werkzeug.security import check_password_hash, generate_password_hash

from app.logging_config import get_logger
from app.models import User, db

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    return generate_password_hash(password, method='pbkdf2:sha256')


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def get_current_user():
    """
    The active user bound to the session, or None.

    Always None outside a request (scheduler thread, cron script), so
    background runs never record a ``marked_by``.
    """
    if not has_request_context():
        return None

    user_id = session.get('user_id')
    if not user_id:
        return None

    user = db.session.get(User, user_id)
    return user if user and user.is_active else None


def _guard(require_admin):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = get_current_user()
            if not user:
                return jsonify({'success': False, 'error': 'Authentication required'}), 401
            if require_admin and not user.is_admin:
                logger.warning("Operator attempted an admin-only action", username=user.username)
                return jsonify({'success': False, 'error': 'Admin privileges required'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


# 401 when nobody is logged in
login_required = _guard(require_admin=False)

# 401 when nobody is logged in, 403 for operators
admin_required = _guard(require_admin=True)
