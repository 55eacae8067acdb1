import logging

from flask import jsonify

from Models.userModel import User
from Utils.appError import InvalidRequest, Unauthorized, NotFound, Conflict
from Utils.auth_decorator import token_required
from Utils.db import find_by_id
from Utils.jwt_utils import create_access_token
from Utils.request_utils import json_body

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {
    'username': 'username',
    'email': 'email',
    'location': 'location',
    'bio': 'bio',
    'profilePicture': 'profile_picture',
}


def _ensure_unique(email=None, username=None, exclude_id=None):
    """Raise Conflict naming the field when email or username is taken."""
    if email:
        query = User.objects(email=email.strip().lower())
        if exclude_id:
            query = query.filter(id__ne=exclude_id)
        if query.first():
            raise Conflict("email already exists")
    if username:
        query = User.objects(username=username.strip())
        if exclude_id:
            query = query.filter(id__ne=exclude_id)
        if query.first():
            raise Conflict("username already exists")


def _with_token(user):
    data = user.to_json()
    data['token'] = create_access_token(user.id)
    return data


# =====================================================
# REGISTER
# =====================================================
def register():
    data = json_body()
    username = data.get("username")
    email = data.get("email")
    password = data.get("password")

    if not all([username, email, password]):
        raise InvalidRequest("Username, email and password are required.")

    _ensure_unique(email=email, username=username)

    user = User(
        username=username,
        email=email,
        password=password,
        location=data.get("location") or "",
        bio=data.get("bio") or ""
    )
    user.save()

    logger.info(f"New user registered: {user.email}")
    return jsonify(_with_token(user)), 201


# =====================================================
# LOGIN
# =====================================================
def login():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password")

    if not email or not password:
        raise InvalidRequest("Email and password are required.")

    user = User.objects(email=email).first()
    if not user or not user.correct_password(password):
        logger.warning(f"Failed login for {email}")
        raise Unauthorized("Invalid email or password")

    logger.info(f"Login successful for {email}")
    return jsonify(_with_token(user)), 200


# =====================================================
# PROFILE
# =====================================================
@token_required
def get_profile(current_user):
    return jsonify(current_user.to_json()), 200


@token_required
def update_profile(current_user):
    data = json_body()

    _ensure_unique(
        email=data.get("email"),
        username=data.get("username"),
        exclude_id=current_user.id
    )

    # Empty values leave the field unchanged
    for json_name, attr in PROFILE_FIELDS.items():
        if data.get(json_name):
            setattr(current_user, attr, data[json_name])
    if data.get("password"):
        current_user.password = data["password"]

    current_user.save()

    logger.info(f"Profile updated for {current_user.email}")
    return jsonify(_with_token(current_user)), 200


# =====================================================
# PUBLIC LOOKUPS
# =====================================================
def get_user_by_id(user_id):
    user = find_by_id(User, user_id)
    if not user:
        raise NotFound("User not found")
    return jsonify(user.to_json()), 200


@token_required
def get_users(current_user):
    users = User.objects.order_by('-created_at')
    return jsonify([u.to_json() for u in users]), 200
