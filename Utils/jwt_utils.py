import jwt
from datetime import datetime, timedelta
from flask import current_app

JWT_ALGORITHM = "HS256"


def create_access_token(user_id, expires_in_days=None):
    """
    Generate a JWT access token for a user.
    """
    if expires_in_days is None:
        expires_in_days = current_app.config["JWT_EXPIRES_IN_DAYS"]
    now = datetime.utcnow()
    payload = {
        "user_id": str(user_id),
        "exp": now + timedelta(days=expires_in_days),
        "iat": now
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=JWT_ALGORITHM)


def decode_token(token):
    """
    Verify and decode a JWT token.
    Returns payload dict if valid, or None if invalid/expired.
    """
    try:
        return jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
