from functools import wraps
from flask import current_app, jsonify, flash, redirect, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException
from schooldesk.extensions import db
from utils.responses import fail, wants_json

INVALID_MESSAGE = "The given data was invalid."


class ValidationFailed(Exception):
    """Field errors raised outside of a pydantic schema."""

    def __init__(self, errors):
        super().__init__(INVALID_MESSAGE)
        self.errors = {field: [messages] if isinstance(messages, str) else list(messages)
                       for field, messages in errors.items()}


def pydantic_errors(exc):
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors


def validate(schema, data):
    """Parse ``data`` with a pydantic ``schema``; failures surface as 422."""
    return schema.model_validate(data)


def guarded(message, redirect_to=None):
    """
    Wrap an action so unexpected failures roll back, get logged and turn into a
    generic error: 500 JSON for API clients, a flashed redirect for pages.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except (HTTPException, ValidationError, ValidationFailed):
                db.session.rollback()
                raise
            except Exception as e:
                db.session.rollback()
                current_app.logger.error("%s: %s", message, e, exc_info=True)
                return fail(message, 500, redirect_to)
        return wrapper
    return decorator


def _validation_response(errors):
    if wants_json():
        return jsonify({"message": INVALID_MESSAGE, "errors": errors}), 422
    for field, messages in errors.items():
        flash(f"{field}: {'; '.join(messages)}", "error")
    return redirect(request.referrer or "/")


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_pydantic_error(exc):
        return _validation_response(pydantic_errors(exc))

    @app.errorhandler(ValidationFailed)
    def handle_validation_failed(exc):
        return _validation_response(exc.errors)

    @app.errorhandler(PermissionError)
    def handle_permission_error(exc):
        return jsonify({"error": str(exc) or "Access forbidden"}), 403

    @app.errorhandler(404)
    def handle_not_found(exc):
        return jsonify({"error": "Resource not found"}), 404
