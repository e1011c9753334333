"""
Domain errors and their translation to JSON responses.

Services raise these; the handlers registered in ``register_error_handlers``
turn them into ``{"message": ...}`` bodies with the matching status code.
"""
import logging

from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(APIError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(APIError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(APIError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(APIError):
    status_code = 404
    default_message = "Not found"


class Conflict(APIError):
    status_code = 409
    default_message = "Conflict"


class LimitExceeded(Conflict):
    default_message = "Maximum attempts exceeded"


class ServerError(APIError):
    pass


def register_error_handlers(app):
    from . import db

    @app.errorhandler(APIError)
    def handle_api_error(err):
        if err.status_code >= 500:
            db.session.rollback()
        return {"message": err.message}, err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return {"message": err.description}, err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        logger.error("Unhandled error: %s", err, exc_info=True)
        db.session.rollback()
        return {"message": ServerError.default_message}, 500
