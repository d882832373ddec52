# Overview: Flask API routes for repositions; parses input and returns JSON responses.

"""
Reposition API routes: ticket lifecycle, area transfers and tracking.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError, ValidationError
from ..services import (
    reposition_service,
    reposition_transfer_service,
    tracking_service,
)
from .common import commit_and_notify, domain_error, json_body, unexpected_error


repositions_bp = Blueprint("repositions", __name__, url_prefix="/api/repositions")


def _flag(name: str) -> bool:
    return request.args.get(name, "false").lower() == "true"


@repositions_bp.post("")
@require_auth
def create_reposition():
    """
    Open a reposition in the caller's area.

    Request body: reposition fields plus
    {
        "pieces": [{"talla": str, "cantidad": int, "folio_original": str?}, ...]
    }
    """
    data = json_body()
    try:
        reposition = reposition_service.create_reposition(
            {k: v for k, v in data.items() if k != "pieces"},
            data.get("pieces"),
            g.current_user,
        )
        commit_and_notify()
        return jsonify(reposition_service.serialize_reposition(reposition)), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("creating reposition")


@repositions_bp.get("")
@require_auth
def list_repositions():
    """
    Query params:
    - area: only tickets currently in this area
    - include_closed: include completado/eliminado tickets
    """
    try:
        repositions = reposition_service.list_repositions(
            g.current_user,
            area=request.args.get("area") or None,
            include_closed=_flag("include_closed"),
        )
        return jsonify({
            "repositions": [r.to_dict() for r in repositions],
            "count": len(repositions),
        })
    except DomainError as e:
        return domain_error(e)


@repositions_bp.get("/all")
@require_auth
def list_all_repositions():
    repositions = reposition_service.get_all_repositions(include_deleted=_flag("include_deleted"))
    return jsonify({"repositions": [r.to_dict() for r in repositions], "count": len(repositions)})


@repositions_bp.get("/<int:reposition_id>")
@require_auth
def get_reposition(reposition_id: int):
    try:
        reposition = reposition_service.get_reposition(reposition_id)
        return jsonify(reposition_service.serialize_reposition(reposition))
    except DomainError as e:
        return domain_error(e)


@repositions_bp.get("/<int:reposition_id>/pieces")
@require_auth
def get_reposition_pieces(reposition_id: int):
    try:
        reposition = reposition_service.get_reposition(reposition_id)
        return jsonify({"pieces": [p.to_dict() for p in reposition.pieces]})
    except DomainError as e:
        return domain_error(e)


@repositions_bp.get("/<int:reposition_id>/history")
@require_auth
def get_reposition_history(reposition_id: int):
    try:
        entries = reposition_service.get_reposition_history(reposition_id)
        return jsonify({"history": [entry.to_dict() for entry in entries]})
    except DomainError as e:
        return domain_error(e)


@repositions_bp.get("/<int:reposition_id>/tracking")
@require_auth
def get_reposition_tracking(reposition_id: int):
    try:
        return jsonify(tracking_service.get_tracking(reposition_id))
    except DomainError as e:
        return domain_error(e)


@repositions_bp.get("/<int:reposition_id>/transfers")
@require_auth
def get_reposition_transfers(reposition_id: int):
    try:
        reposition_service.get_reposition(reposition_id)
        transfers = reposition_transfer_service.list_reposition_transfers(reposition_id)
        return jsonify({"transfers": [t.to_dict() for t in transfers]})
    except DomainError as e:
        return domain_error(e)


@repositions_bp.post("/<int:reposition_id>/approval")
@require_auth
def approve_reposition(reposition_id: int):
    """
    Request body:
    {
        "action": "aprobado" | "rechazado",
        "notes": str (optional)
    }
    """
    data = json_body()
    try:
        if not data.get("action"):
            raise ValidationError("Missing required field: action")
        reposition = reposition_service.approve_reposition(
            reposition_id, data["action"], g.current_user, notes=data.get("notes")
        )
        commit_and_notify()
        return jsonify(reposition.to_dict())
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("approving reposition")


@repositions_bp.post("/<int:reposition_id>/request-completion")
@require_auth
def request_completion(reposition_id: int):
    data = json_body()
    try:
        reposition = reposition_service.request_completion(
            reposition_id, g.current_user, notes=data.get("notes")
        )
        commit_and_notify()
        return jsonify(reposition.to_dict())
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("requesting reposition completion")


@repositions_bp.post("/<int:reposition_id>/complete")
@require_auth
def complete_reposition(reposition_id: int):
    data = json_body()
    try:
        reposition = reposition_service.complete_reposition(
            reposition_id, g.current_user, notes=data.get("notes")
        )
        commit_and_notify()
        return jsonify(reposition.to_dict())
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("completing reposition")


@repositions_bp.delete("/<int:reposition_id>")
@require_auth
def delete_reposition(reposition_id: int):
    """
    Soft delete. Request body: {"reason": str (at least 10 characters)}
    """
    data = json_body()
    try:
        reposition = reposition_service.delete_reposition(
            reposition_id, g.current_user, data.get("reason")
        )
        commit_and_notify()
        return jsonify(reposition.to_dict())
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("deleting reposition")


@repositions_bp.post("/<int:reposition_id>/transfer")
@require_auth
def request_reposition_transfer(reposition_id: int):
    """
    Request body:
    {
        "to_area": str,
        "notes": str (optional)
    }
    """
    data = json_body()
    try:
        if not data.get("to_area"):
            raise ValidationError("Missing required field: to_area")
        transfer = reposition_transfer_service.request_reposition_transfer(
            reposition_id, g.current_user, data["to_area"], notes=data.get("notes")
        )
        commit_and_notify()
        return jsonify(transfer.to_dict()), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("requesting reposition transfer")


@repositions_bp.get("/transfers/pending")
@require_auth
def list_pending_reposition_transfers():
    transfers = reposition_transfer_service.list_pending_reposition_transfers(g.current_user)
    return jsonify({"transfers": [t.to_dict() for t in transfers], "count": len(transfers)})


@repositions_bp.post("/transfers/<int:transfer_id>/process")
@require_auth
def process_reposition_transfer(transfer_id: int):
    """
    Request body: {"action": "accepted" | "rejected"}
    """
    data = json_body()
    try:
        transfer = reposition_transfer_service.process_reposition_transfer(
            transfer_id, data.get("action"), g.current_user
        )
        commit_and_notify()
        return jsonify(transfer.to_dict())
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("processing reposition transfer")
