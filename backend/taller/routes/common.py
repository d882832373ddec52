# Overview: Commit and error-response helpers shared by the API blueprints.

from flask import current_app, jsonify, request

from ..errors import DomainError, InvariantViolation
from ..extensions import db
from ..services import notification_service
from ..services.concurrency import commit_or_rollback


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def commit_and_notify() -> None:
    """Commit the transition, then deliver its notifications best-effort."""
    commit_or_rollback()
    notification_service.dispatch_pending()


def domain_error(exc: DomainError):
    db.session.rollback()
    if isinstance(exc, InvariantViolation):
        current_app.logger.error("Invariant violation on %s %s: %s", request.method, request.path, exc)
    return jsonify(exc.to_dict()), exc.status_code


def unexpected_error(action: str):
    db.session.rollback()
    current_app.logger.exception("Unexpected error while %s", action)
    return jsonify({"error": "Internal server error"}), 500
