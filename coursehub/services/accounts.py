import logging

from flask_jwt_extended import create_access_token

from .. import db
from ..errors import Conflict, Unauthenticated, ValidationError
from ..models import Role, User
from ..utils.security import MIN_PASSWORD_LENGTH, hash_password, verify_password
from ..utils.validation import required_text

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = (Role.STUDENT, Role.TEACHER)


def issue_token(user):
    # identity as string; role travels as an extra claim
    return create_access_token(identity=str(user.id), additional_claims={"role": user.role.value})


def _password(data, name):
    pwd = data.get(name)
    if not isinstance(pwd, str) or len(pwd) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"'{name}' must be at least {MIN_PASSWORD_LENGTH} characters")
    return pwd


def register(data):
    name = required_text(data, "name")
    email = required_text(data, "email").lower()
    if "@" not in email:
        raise ValidationError("'email' is not a valid address")
    pwd = _password(data, "password")
    try:
        role = Role(data.get("role", Role.STUDENT.value))
    except ValueError:
        raise ValidationError("'role' must be student or teacher")
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("'role' must be student or teacher")
    if User.query.filter_by(email=email).first():
        raise Conflict("Email already registered")

    user = User(name=name, email=email, password_hash=hash_password(pwd), role=role)
    db.session.add(user)
    db.session.commit()
    logger.info("registered user %s (%s)", user.id, role.value)
    return {"token": issue_token(user), "user": user.to_dict()}


def login(data):
    raw_email = data.get("email")
    email = raw_email.strip().lower() if isinstance(raw_email, str) else ""
    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(data.get("password"), user.password_hash):
        logger.warning("failed login for %r", email)
        raise Unauthenticated("Invalid credentials")
    if not user.is_active:
        raise Unauthenticated("Account is disabled")
    return {"token": issue_token(user), "user": user.to_dict()}


def update_profile(user, data):
    if "name" in data:
        user.name = required_text(data, "name")
    if "bio" in data:
        bio = data["bio"]
        if bio is not None and (not isinstance(bio, str) or len(bio) > 500):
            raise ValidationError("'bio' must be a string of at most 500 characters")
        user.bio = bio
    if "avatarUrl" in data:
        avatar = data["avatarUrl"]
        if avatar is not None and not isinstance(avatar, str):
            raise ValidationError("'avatarUrl' must be a string")
        user.avatar_url = avatar
    db.session.commit()
    return user


def change_password(user, data):
    if not verify_password(data.get("currentPassword"), user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = hash_password(_password(data, "newPassword"))
    db.session.commit()
    logger.info("user %s changed password", user.id)
