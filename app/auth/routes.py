"""Session login/logout so routes know the caller and their role (Admin/Operator)."""
from datetime import datetime

from flask import Blueprint, jsonify, request, session

from app.auth.utils import get_current_user, verify_password
from app.logging_config import get_logger
from app.models import User, db

logger = get_logger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _failure(message, status_code):
    return jsonify({'success': False, 'error': message}), status_code


@auth_bp.route('/login', methods=['POST'])
def login():
    """Check username/password and start a session."""
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return _failure('Username and password are required', 400)

    try:
        user = User.query.filter_by(username=username).first()

        if user is None or not verify_password(user.password_hash, password):
            logger.warning("Failed login attempt", username=username)
            return _failure('Invalid username or password', 401)

        if not user.is_active:
            logger.warning("Login attempt for inactive user", username=username)
            return _failure('Account is inactive', 403)

        user.last_login = datetime.utcnow()
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Error during login", error=str(e), exc_info=True)
        return _failure('An error occurred during login', 500)

    session.clear()
    session['user_id'] = user.id
    session.permanent = True
    logger.info("User logged in", username=username, role=user.role.value)

    return jsonify({'success': True, 'user': user.to_dict()}), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    user = get_current_user()
    session.clear()
    logger.info("User logged out", username=user.username if user else None)
    return jsonify({'success': True, 'message': 'Logged out successfully'}), 200


@auth_bp.route('/me', methods=['GET'])
def get_current_user_info():
    user = get_current_user()
    if not user:
        return _failure('Not authenticated', 401)

    info = user.to_dict()
    info['last_login'] = user.last_login.isoformat() if user.last_login else None
    return jsonify({'success': True, 'user': info}), 200
