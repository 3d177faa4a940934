"""
JSON response helpers shared by the API blueprints
"""
from functools import wraps
import logging

from flask import jsonify

from services.errors import ServiceError, ValidationError

logger = logging.getLogger(__name__)


def error_response(code, message, status, **extra):
    body = {'success': False, 'error': code, 'message': message}
    body.update(extra)
    return jsonify(body), status


def api_endpoint(func):
    """Map service errors to JSON responses and log unexpected failures"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ValidationError as e:
            return error_response(e.code, e.message, e.status_code, fields=e.field_errors)
        except ServiceError as e:
            return error_response(e.code, e.message, e.status_code)
        except Exception as e:
            logger.error(f"Error in {func.__name__}: {str(e)}")
            return error_response('INTERNAL_ERROR', 'Internal server error', 500)
    return wrapper


def parse_flag(value) -> bool:
    """Interpret checkbox-style form values"""
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in ('true', '1', 'on', 'yes')
