from flask import Blueprint, current_app, jsonify, request
from mongoengine import NotUniqueError, ValidationError
from werkzeug.exceptions import HTTPException

from Utils.appError import AppError, from_not_unique_error, from_validation_error

error_bp = Blueprint('errors', __name__)


def _respond(err: AppError):
    return jsonify(err.to_dict()), err.status_code


@error_bp.app_errorhandler(AppError)
def handle_app_error(err):
    current_app.logger.warning(f"AppError {err.status_code} at {request.method} {request.path}: {err}")
    return _respond(err)


@error_bp.app_errorhandler(ValidationError)
def handle_validation_error(err):
    translated = from_validation_error(err)
    current_app.logger.warning(f"Validation failed at {request.path}: {translated}")
    return _respond(translated)


@error_bp.app_errorhandler(NotUniqueError)
def handle_not_unique_error(err):
    translated = from_not_unique_error(err)
    current_app.logger.warning(f"Duplicate key at {request.path}: {translated}")
    return _respond(translated)


@error_bp.app_errorhandler(429)
def ratelimit_handler(err):
    current_app.logger.warning(f"Rate limit hit: {request.remote_addr} {request.method} {request.path}")
    return jsonify({
        "status": "fail",
        "message": "Rate limit exceeded. Please slow down."
    }), 429


@error_bp.app_errorhandler(HTTPException)
def handle_http_error(err):
    # 404 / 405 / 413 and friends, as JSON
    if err.code == 404:
        current_app.logger.warning(
            f"404 Not Found | URL: {request.url} | Method: {request.method} | IP: {request.remote_addr}"
        )
    return jsonify({
        "status": "fail" if 400 <= (err.code or 500) < 500 else "error",
        "message": err.description or err.name
    }), err.code or 500


@error_bp.app_errorhandler(Exception)
def handle_unexpected_error(err):
    """
    Catch-all for unexpected server errors.
    """
    # This includes traceback automatically
    current_app.logger.exception(
        f"Unexpected Application Error: {err} | URL: {request.url} | Method: {request.method} | IP: {request.remote_addr}"
    )
    return jsonify({
        "status": "error",
        "message": "Something went wrong on the server."
    }), 500
