from flask import Blueprint, current_app
from Controllers.userController import (
    register, login, get_profile, update_profile, get_user_by_id, get_users
)
from Utils.limiter import limiter

# ----------------------------
# User API routes
# ----------------------------
user_routes = Blueprint('user_routes', __name__, url_prefix='/api/users')


def _login_limit():
    return current_app.config["LOGIN_RATE_LIMIT"]


# Public routes
user_routes.add_url_rule('/register', view_func=limiter.limit(_login_limit)(register), methods=['POST'])
user_routes.add_url_rule('/login', view_func=limiter.limit(_login_limit)(login), methods=['POST'])

# Protected routes
user_routes.add_url_rule('/profile', view_func=get_profile, methods=['GET'])
user_routes.add_url_rule('/profile', view_func=update_profile, methods=['PUT'])
user_routes.add_url_rule('', view_func=get_users, methods=['GET'])

# Parameterized routes
user_routes.add_url_rule('/<user_id>', view_func=get_user_by_id, methods=['GET'])
