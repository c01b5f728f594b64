from __future__ import annotations

from functools import wraps

from flask import jsonify, request, session

from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    SubmissionLockedError,
    TransportError,
    ValidationError,
)

# Checked in order; the first matching class wins.
_STATUS_BY_ERROR: tuple[tuple[type, int], ...] = (
    (SubmissionLockedError, 423),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (TransportError, 503),
    (ValidationError, 400),
)


def status_for(exc: DomainError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 400


def error_response(exc: DomainError):
    return jsonify({"error": str(exc), "code": exc.code.value if exc.code else None}), status_for(exc)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": "Authentication required", "code": None}), 401
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> str:
    return str(session["user_id"])


def current_user_name():
    return session.get("name")


def json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body
