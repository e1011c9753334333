from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user

from ..services import accounts
from ..utils.validation import json_body

bp = Blueprint("users", __name__)


@bp.get("/profile")
@jwt_required()
def profile():
    return current_user.to_dict()


@bp.put("/profile")
@jwt_required()
def update_profile():
    user = accounts.update_profile(current_user, json_body())
    return {"message": "Profile updated successfully", "user": user.to_dict()}


@bp.put("/change-password")
@jwt_required()
def change_password():
    accounts.change_password(current_user, json_body())
    return {"message": "Password changed successfully"}
