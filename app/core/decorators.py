import json
from functools import wraps
from flask import request
from marshmallow import ValidationError
from app.core.exceptions import PlanNotFound, SchedulerError
from app.core.logger import logger
from app.core.responses import validation_error_response, error_response
from app.extensions import db


def validate_json_request(f):
    """Reject non-JSON bodies; an empty body is allowed."""

    @wraps(f)
    def decorated(*args, **kwargs):
        if request.method in ["POST", "PUT", "PATCH"] and request.data:
            if not request.is_json:
                return error_response(
                    "Request must be in JSON format. Please set the Content-Type header to application/json.",
                    415,
                )
            try:
                json.loads(request.data)
            except json.JSONDecodeError:
                return error_response(
                    "Invalid JSON in request body. Please provide a valid JSON payload.",
                    400,
                )
        return f(*args, **kwargs)

    return decorated


def handle_errors(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValidationError as err:
            return validation_error_response(err)
        except PlanNotFound as err:
            return error_response(err.message, 404)
        except SchedulerError as err:
            db.session.rollback()
            return error_response(err.message, 409)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Unexpected error in {f.__name__}: {str(e)}", exc_info=True)
            return error_response(f"An error occurred: {str(e)}", 500)

    return wrapper
