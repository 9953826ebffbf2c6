"""
Error handling utilities for consistent error responses
"""
import logging
from functools import wraps

from flask import jsonify, request
from pydantic import BaseModel, ValidationError
from werkzeug.exceptions import RequestEntityTooLarge

from app.utils.errors import ModerationError

logger = logging.getLogger(__name__)


def api_error_response(message, status_code=400, error_code=None, details=None):
    """Generate standardized API error response"""
    response_data = {
        'success': False,
        'error': message
    }

    if error_code:
        response_data['error_code'] = error_code

    if details:
        response_data['details'] = details

    return jsonify(response_data), status_code


def api_success_response(data=None, message=None, status_code=200):
    """Generate standardized API success response"""
    response_data = {'success': True}

    if message:
        response_data['message'] = message

    if data:
        response_data.update(data)

    return jsonify(response_data), status_code


def handle_api_error(f):
    """Decorator to handle API errors consistently"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except RequestEntityTooLarge:
            logger.warning(f"Request body over MAX_CONTENT_LENGTH in {f.__name__}")
            return api_error_response("Upload exceeds the maximum allowed size", 413, "FILE_TOO_LARGE")
        except ModerationError as e:
            if e.status_code >= 500:
                logger.error(f"{e.error_code} in {f.__name__}: {e.message}")
                # Internal details stay in the logs
                return api_error_response("Content processing failed", e.status_code, e.error_code)
            logger.warning(f"{e.error_code} in {f.__name__}: {e.message}")
            return api_error_response(e.message, e.status_code, e.error_code, e.details)
        except Exception as e:
            logger.exception(f"Unexpected error in {f.__name__}: {str(e)}")
            return api_error_response("Internal server error", 500)

    return decorated_function


def _format_validation_errors(error):
    error_details = []
    for item in error.errors():
        field = '.'.join(str(loc) for loc in item['loc'])
        error_details.append(f"{field}: {item['msg']}")
    return error_details


def validate_json_request(schema_class: BaseModel):
    """
    Decorator to validate JSON request data against a Pydantic schema
    Adds 'validated_data' to the route function's keyword arguments
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            json_data = request.get_json(silent=True)
            if json_data is None or not isinstance(json_data, dict):
                return api_error_response(
                    "JSON data required",
                    400,
                    "MISSING_JSON_DATA"
                )

            try:
                validated_data = schema_class(**json_data)
            except ValidationError as e:
                return api_error_response(
                    "Invalid input data",
                    400,
                    "VALIDATION_ERROR",
                    {"field_errors": _format_validation_errors(e)}
                )

            kwargs['validated_data'] = validated_data
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def validate_query_params(schema_class: BaseModel):
    """
    Decorator to validate query parameters against a Pydantic schema
    Adds 'validated_params' to the route function's keyword arguments
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            query_data = request.args.to_dict()

            # Convert common query param types
            for key, value in query_data.items():
                if value.isdigit():
                    query_data[key] = int(value)
                elif value.lower() in ('true', 'false'):
                    query_data[key] = value.lower() == 'true'

            try:
                validated_params = schema_class(**query_data)
            except ValidationError as e:
                return api_error_response(
                    "Invalid query parameters",
                    400,
                    "VALIDATION_ERROR",
                    {"field_errors": _format_validation_errors(e)}
                )

            kwargs['validated_params'] = validated_params
            return f(*args, **kwargs)

        return decorated_function
    return decorator
