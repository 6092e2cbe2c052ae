import logging

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from backend.models.user import ROLES, MIN_PASSWORD_LENGTH, User
from backend.utils.auth_middleware import generate_token, roles_required, validate_json_data
from backend.utils.errors import error_response, success_response
from backend.utils.pagination import get_pagination, pagination_meta

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/signup', methods=['POST'])
@validate_json_data(['name', 'email', 'password'])
def signup():
    """Register a new user"""
    data = request.get_json()
    email = str(data['email']).strip().lower()
    role = data.get('role') or 'student'
    logger.info("Signup attempt: %s", email)

    if role not in ROLES:
        return error_response('Validation failed', 400,
                              [{'field': 'role', 'message': f"Role must be one of: {', '.join(ROLES)}"}])
    if role != 'student' and not current_app.config['ALLOW_PRIVILEGED_SIGNUP']:
        return error_response(f"Signing up as '{role}' is not allowed", 403)

    if User.find_by_email(email):
        return error_response('User already exists with this email', 400)

    user = User(email=email, name=str(data['name']), role=role)
    user.set_password(str(data['password']))
    user.save()
    logger.info("User created: %s", user.email)

    return success_response(
        {'user': user.to_dict(), 'token': generate_token(user.id)},
        message='User registered successfully',
        status_code=201
    )


@auth_bp.route('/login', methods=['POST'])
@validate_json_data(['email', 'password'])
def login():
    """Login user"""
    data = request.get_json()
    user = User.find_by_email(str(data['email']))

    if not user or not user.check_password(str(data['password'])):
        logger.info("Failed login for %s", str(data['email']).strip().lower())
        return error_response('Invalid email or password', 401)

    if not user.is_active:
        return error_response('Your account has been deactivated', 401)

    logger.info("Login successful: %s", user.email)
    return success_response(
        {'user': user.to_dict(), 'token': generate_token(user.id)},
        message='Login successful'
    )


@auth_bp.route('/me', methods=['GET'])
@login_required
def get_current_user():
    """Get current logged in user"""
    return success_response({'user': current_user.to_dict(include_status=True)})


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    """Update user profile"""
    data = request.get_json(silent=True) or {}
    user = User.find_by_id(current_user.id)
    if not user:
        return error_response('User not found', 404)

    if data.get('name'):
        user.name = str(data['name']).strip()

    if data.get('email'):
        new_email = str(data['email']).strip().lower()
        if new_email != user.email:
            if User.email_taken(new_email, exclude_id=user.id):
                return error_response('Email already in use', 400)
            user.email = new_email

    user.save()
    logger.info("Profile updated: %s", user.email)
    return success_response({'user': user.to_dict(include_status=True)},
                            message='Profile updated successfully')


@auth_bp.route('/change-password', methods=['POST'])
@login_required
@validate_json_data(['currentPassword', 'newPassword'])
def change_password():
    """Change user password"""
    data = request.get_json()
    user = User.find_by_id(current_user.id)

    if not user.check_password(str(data['currentPassword'])):
        return error_response('Current password is incorrect', 400)

    if len(str(data['newPassword'])) < MIN_PASSWORD_LENGTH:
        return error_response(f'New password must be at least {MIN_PASSWORD_LENGTH} characters', 400)

    user.set_password(str(data['newPassword']))
    user.save()
    return success_response(message='Password changed successfully')


@auth_bp.route('/users', methods=['GET'])
@login_required
@roles_required('admin')
def list_users():
    """List users for administration"""
    page, limit = get_pagination()
    role = request.args.get('role')
    if role and role not in ROLES:
        return error_response('Invalid role filter', 400)

    users, total = User.find_page(role=role, page=page, limit=limit)
    return success_response({
        'users': [u.to_dict(include_status=True) for u in users],
        'pagination': pagination_meta(total, page, limit)
    })


@auth_bp.route('/users/<user_id>/status', methods=['PATCH'])
@login_required
@roles_required('admin')
def set_user_status(user_id):
    """Activate or deactivate a user account"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get('isActive'), bool):
        return error_response('isActive must be a boolean', 400)

    user = User.find_by_id(user_id)
    if not user:
        return error_response('User not found', 404)
    if user.id == current_user.id and not data['isActive']:
        return error_response('You cannot deactivate your own account', 400)

    user.active = data['isActive']
    user.save()
    logger.info("User %s %s by %s", user.email,
                'activated' if user.active else 'deactivated', current_user.email)
    return success_response({'user': user.to_dict(include_status=True)},
                            message='User status updated')
