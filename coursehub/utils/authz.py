from functools import wraps

from flask_jwt_extended import verify_jwt_in_request, get_jwt

from .. import db
from ..errors import Forbidden
from ..models import Role, User

AUTHOR_ROLES = (Role.TEACHER, Role.ADMIN)


def owns_or_admin(user, course) -> bool:
    return user.role == Role.ADMIN or course.instructor_id == user.id


def ensure_owner(user, course, message="Not authorized to modify this course"):
    if not owns_or_admin(user, course):
        raise Forbidden(message)


def require_role(*roles):
    """
    Usage:
      @bp.post("")
      @require_role(Role.TEACHER, Role.ADMIN)
      def create_course(): ...
    """
    def wrapper(fn):
        @wraps(fn)
        def inner(*args, **kwargs):
            verify_jwt_in_request()
            claims = get_jwt() or {}
            if claims.get("role") not in roles:
                raise Forbidden("Insufficient permissions")
            return fn(*args, **kwargs)
        return inner
    return wrapper


def instructor_required(fn):
    return require_role(*AUTHOR_ROLES)(fn)


def register_jwt_callbacks(jwt):
    @jwt.user_lookup_loader
    def load_user(_jwt_header, jwt_data):
        user = db.session.get(User, int(jwt_data["sub"]))
        if user is None or not user.is_active:
            return None
        return user

    @jwt.user_lookup_error_loader
    def user_lookup_error(_jwt_header, _jwt_data):
        return {"message": "Invalid token"}, 401

    @jwt.unauthorized_loader
    def missing_token(_reason):
        return {"message": "Access token required"}, 401

    @jwt.invalid_token_loader
    def invalid_token(_reason):
        return {"message": "Invalid or expired token"}, 401

    @jwt.expired_token_loader
    def expired_token(_jwt_header, _jwt_data):
        return {"message": "Invalid or expired token"}, 401
