import math

from flask import request

from backend.utils.errors import ValidationError, field_error

MAX_LIMIT = 100


def _int_arg(name, default):
    raw = request.args.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return None


def get_pagination(default_limit=20):
    """Read ``page`` and ``limit`` query parameters"""
    page = _int_arg('page', 1)
    limit = _int_arg('limit', default_limit)

    errors = []
    if page is None or page < 1:
        errors.append(field_error('page', 'Page must be a positive integer'))
    if limit is None or not 1 <= limit <= MAX_LIMIT:
        errors.append(field_error('limit', f'Limit must be between 1 and {MAX_LIMIT}'))
    if errors:
        raise ValidationError(errors, message='Invalid pagination parameters')
    return page, limit


def pagination_meta(total, page, limit):
    return {
        'total': total,
        'page': page,
        'limit': limit,
        'pages': math.ceil(total / limit)
    }
