from flask import jsonify


class APIError(Exception):
    """Error that is rendered as a JSON failure envelope"""

    status_code = 500

    def __init__(self, message, status_code=None, errors=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors

    def to_response(self):
        return error_response(self.message, self.status_code, self.errors)


class ValidationError(APIError):
    status_code = 400

    def __init__(self, errors, message='Validation failed'):
        super().__init__(message, errors=errors)


class NotFoundError(APIError):
    status_code = 404


def field_error(field, message):
    return {'field': field, 'message': message}


def success_response(data=None, message=None, status_code=200):
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return jsonify(body), status_code


def error_response(message, status_code, errors=None):
    body = {'success': False, 'message': message}
    if errors:
        body['errors'] = errors
    return jsonify(body), status_code
