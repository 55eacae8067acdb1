import re

from mongoengine import ValidationError
from mongoengine.base.document import NON_FIELD_ERRORS


class AppError(Exception):
    def __init__(self, message: str, status_code: int, errors=None):
        """
        Custom exception class for application errors.

        Args:
            message (str): The error message.
            status_code (int): The HTTP status code associated with the error.
            errors (list[str] | None): Individual messages when several checks failed.
        """
        super().__init__(message)

        self.status_code = status_code
        self.status = "fail" if str(status_code).startswith("4") else "error"
        self.errors = errors or []
        self.is_operational = True

    def to_dict(self):
        payload = {"status": self.status, "message": str(self)}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class InvalidRequest(AppError):
    def __init__(self, message: str, errors=None):
        super().__init__(message, 400, errors)


class Unauthorized(AppError):
    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, 401)


class NotFound(AppError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, 404)


class Conflict(AppError):
    def __init__(self, message: str):
        super().__init__(message, 409)


# ==================================================
# DATABASE ERROR TRANSLATION
# ==================================================
def _label(path, message):
    return f"{path}: {message}" if path else str(message)


def flatten_validation_errors(errors, prefix=""):
    """Flatten mongoengine's nested error dict into "field: message" strings."""
    messages = []
    for field, error in (errors or {}).items():
        if field == NON_FIELD_ERRORS:
            path = prefix
        else:
            path = f"{prefix}.{field}" if prefix else str(field)
        if isinstance(error, ValidationError):
            if error.errors:
                messages.extend(flatten_validation_errors(error.errors, path))
            else:
                messages.append(_label(path, error.message))
        elif isinstance(error, dict):
            messages.extend(flatten_validation_errors(error, path))
        else:
            messages.append(_label(path, error))
    return messages


def from_validation_error(err: ValidationError) -> InvalidRequest:
    messages = flatten_validation_errors(err.errors)
    if not messages:
        messages = [err.message or str(err)]
    return InvalidRequest("; ".join(messages), errors=messages)


DUPLICATE_KEY_PATTERNS = [
    re.compile(r"index:\s*(?:[\w.]+\.\$)?([A-Za-z_]+?)_-?1"),
    re.compile(r"dup key:\s*\{\s*:?\s*\"?([A-Za-z_]+)\"?\s*:"),
    re.compile(r"'keyValue':\s*\{'([A-Za-z_]+)'"),
]


def duplicate_key_field(message: str):
    for pattern in DUPLICATE_KEY_PATTERNS:
        match = pattern.search(message or "")
        if match:
            return match.group(1)
    return None


def from_not_unique_error(err) -> Conflict:
    field = duplicate_key_field(str(err))
    if field:
        return Conflict(f"{field} already exists")
    return Conflict("A record with that value already exists")
