import logging
from datetime import timedelta
from functools import wraps

import jwt
from flask import current_app, g, request
from flask_login import current_user

from backend.models.user import User
from backend.utils.errors import error_response, field_error
from backend.utils.serialization import utcnow

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'


def generate_token(user_id):
    """Issue a signed bearer token for ``user_id``"""
    now = utcnow()
    payload = {
        'id': str(user_id),
        'iat': now,
        'exp': now + timedelta(days=current_app.config['JWT_EXPIRES_DAYS'])
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm=JWT_ALGORITHM)


def decode_token(token):
    return jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=[JWT_ALGORITHM])


def bearer_token(req):
    header = req.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def load_user_from_request(req):
    """Flask-Login request loader: resolve the bearer token to an active user.

    On failure the reason is kept on ``g.auth_error`` for the unauthorized
    handler.
    """
    token = bearer_token(req)
    if not token:
        g.auth_error = 'Not authorized, no token provided'
        return None

    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        g.auth_error = 'Token expired, please login again'
        return None
    except jwt.InvalidTokenError as e:
        logger.info("Token verification failed: %s", e)
        g.auth_error = 'Not authorized, token failed'
        return None

    user = User.find_by_id(payload.get('id'))
    if user is None:
        g.auth_error = 'User not found'
        return None
    if not user.is_active:
        g.auth_error = 'User account is deactivated'
        return None

    return user


def unauthorized():
    return error_response(g.get('auth_error', 'Not authorized'), 401)


def roles_required(*roles):
    """Allow the view only for users holding one of ``roles``; use after login_required"""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return error_response('Not authorized', 401)
            if current_user.role not in roles:
                logger.info("User %s with role %s not authorized for %s",
                            current_user.email, current_user.role, request.path)
                return error_response(
                    f"User role '{current_user.role}' is not authorized to access this route", 403
                )
            return view(*args, **kwargs)
        return wrapper
    return decorator


def validate_json_data(required_fields):
    """Reject requests whose JSON body is missing or lacks ``required_fields``"""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return error_response('Request body must be a JSON object', 400)

            missing = [
                field_error(field, f'{field} is required')
                for field in required_fields
                if data.get(field) is None or (isinstance(data.get(field), str) and not data[field].strip())
            ]
            if missing:
                return error_response('Validation failed', 400, missing)
            return view(*args, **kwargs)
        return wrapper
    return decorator
