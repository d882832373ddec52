# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for user management and reposition oversight.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_area, require_auth
from ..enums import Area
from ..errors import DomainError
from ..services import auth_service, reposition_service
from .common import commit_and_notify, domain_error, json_body, unexpected_error

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_area(Area.ADMIN)
def list_users():
    """
    Query params:
    - area: only users of this area
    - include_inactive: bool (default false)
    """
    try:
        users = auth_service.list_users(area=request.args.get("area") or None)
    except DomainError as e:
        return domain_error(e)
    if request.args.get("include_inactive", "false").lower() != "true":
        users = [u for u in users if u.is_active]
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@admin_bp.post("/users")
@require_auth
@require_area(Area.ADMIN)
def create_user():
    """
    Request body:
    {
        "username": str,
        "password": str,
        "name": str,
        "area": str,
        "can_approve_completion": bool (optional)
    }
    """
    data = json_body()
    try:
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            name=data.get("name"),
            area=data.get("area"),
            can_approve_completion=data.get("can_approve_completion", False),
        )
        commit_and_notify()
        return jsonify(user.to_dict()), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("creating user")


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_area(Area.ADMIN)
def deactivate_user(user_id: int):
    """
    Deactivate a user account and revoke its sessions.

    The row is kept so history stays attributed; the user can no longer log in.
    """
    try:
        user, revoked = auth_service.deactivate_user(user_id, g.current_user)
        commit_and_notify()
        return jsonify({"message": f"User {user.username} deactivated", "sessions_revoked": revoked})
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("deactivating user")


@admin_bp.post("/users/<int:user_id>/reset-password")
@require_auth
@require_area(Area.ADMIN)
def reset_user_password(user_id: int):
    """
    Request body:
    {
        "new_password": str
    }

    Revokes every existing session of the user.
    """
    data = json_body()
    try:
        user, revoked = auth_service.reset_user_password(user_id, data.get("new_password"))
        commit_and_notify()
        return jsonify({"message": f"Password reset for {user.username}", "sessions_revoked": revoked})
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("resetting password")


@admin_bp.get("/repositions/pending-approval")
@require_auth
@require_area(Area.OPERACIONES, Area.ENVIOS)
def pending_approval():
    repositions = reposition_service.list_pending_approval()
    return jsonify({"repositions": [r.to_dict() for r in repositions], "count": len(repositions)})

