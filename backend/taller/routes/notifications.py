# Overview: Flask API routes for the per-user notification inbox.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError
from ..extensions import db
from ..services import notification_service
from .common import domain_error, unexpected_error


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications():
    """
    Query params:
    - unread: only unread entries (default false)
    - limit: max entries (default 100)
    """
    unread_only = request.args.get("unread", "false").lower() == "true"
    limit = min(request.args.get("limit", 100, type=int) or 100, 500)
    user_id = g.current_user.id

    notifications = notification_service.list_for_user(user_id, unread_only=unread_only, limit=limit)
    return jsonify({
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": notification_service.unread_count(user_id),
    })


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read(notification_id: int):
    try:
        notification = notification_service.mark_read(notification_id, g.current_user)
        db.session.commit()
        return jsonify(notification.to_dict())
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("marking notification read")


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read():
    try:
        count = notification_service.mark_all_read(g.current_user)
        db.session.commit()
        return jsonify({"updated": count})
    except Exception:
        return unexpected_error("marking notifications read")
