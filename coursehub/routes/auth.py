from flask import Blueprint

from ..services import accounts
from ..utils.validation import json_body

bp = Blueprint("auth", __name__)


@bp.post("/register")
def register():
    return accounts.register(json_body()), 201


@bp.post("/login")
def login():
    return accounts.login(json_body())
