# Utils/auth_decorator.py
from functools import wraps
from flask import request
from Utils.appError import Unauthorized
from Utils.db import find_by_id
from Utils.jwt_utils import decode_token
from Models.userModel import User


def _read_token():
    auth_header = request.headers.get("Authorization")
    token = None

    # Prefer Authorization header if present and well-formed
    if auth_header:
        try:
            token_type, token_val = auth_header.split(" ")
            if token_type.lower() == "bearer" and token_val:
                token = token_val
        except ValueError:
            pass

    # Fallback to cookies
    if not token:
        token = request.cookies.get("access_token")
    return token


def resolve_user():
    """Resolve the bearer token to a User.

    Raises Unauthorized when the token is missing, invalid, expired or
    points at a user that no longer exists.
    """
    token = _read_token()
    if not token:
        raise Unauthorized("Authorization token missing")

    decoded = decode_token(token)
    if not decoded:
        raise Unauthorized("Invalid or expired token")

    user = find_by_id(User, decoded.get("user_id"))
    if not user:
        raise Unauthorized("User for this token no longer exists")
    return user


def token_required(f):
    """Ensure that a valid JWT is present and pass the user to the view."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user = resolve_user()
        return f(user, *args, **kwargs)

    return decorated


def optional_token(f):
    """Pass the user when a valid JWT is present, otherwise None."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            user = resolve_user()
        except Unauthorized:
            user = None
        return f(user, *args, **kwargs)

    return decorated
