# backend/taller/routes/transfers.py
"""
Piece transfer API routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..errors import DomainError, ValidationError
from ..services import transfer_service
from ..validation import strict_int
from .common import commit_and_notify, domain_error, json_body, unexpected_error


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.route("", methods=["POST"])
@require_auth
def create_transfer():
    """
    Request a piece transfer out of the caller's area.

    Request body:
    {
        "order_id": int,
        "to_area": str,
        "pieces": int,
        "notes": str (optional),
        "from_area": str (optional, admin only)
    }

    Returns:
        201: Transfer created (pending)
        400: Invalid request
        404: Order not found
        409: Insufficient pieces in the source area
    """
    data = json_body()

    try:
        if data.get("order_id") is None:
            raise ValidationError("Missing required field: order_id")
        if data.get("to_area") is None:
            raise ValidationError("Missing required field: to_area")

        transfer = transfer_service.request_transfer(
            order_id=strict_int(data["order_id"], "order_id"),
            actor=g.current_user,
            to_area=data["to_area"],
            pieces=data.get("pieces"),
            notes=data.get("notes"),
            from_area=data.get("from_area"),
        )

        commit_and_notify()

        return jsonify(transfer.to_dict()), 201

    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("requesting transfer")


@transfers_bp.route("/pending", methods=["GET"])
@require_auth
def list_pending():
    transfers = transfer_service.list_pending_for_user(g.current_user)
    return jsonify({"transfers": [t.to_dict() for t in transfers], "count": len(transfers)})


@transfers_bp.route("", methods=["GET"])
@require_auth
def list_transfers():
    """Transfers into or out of an area (default: the caller's area)."""
    try:
        area = request.args.get("area") or g.current_user.area
        transfers = transfer_service.list_transfers_by_area(area)
        return jsonify({"transfers": [t.to_dict() for t in transfers], "count": len(transfers)})
    except DomainError as e:
        return domain_error(e)


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
@require_auth
def get_transfer(transfer_id: int):
    try:
        return jsonify(transfer_service.get_transfer(transfer_id).to_dict())
    except DomainError as e:
        return domain_error(e)


@transfers_bp.route("/<int:transfer_id>/accept", methods=["POST"])
@require_auth
def accept_transfer(transfer_id: int):
    """
    Accept a pending transfer into the caller's area.

    Returns:
        200: Transfer accepted, pieces moved
        403: Caller is not in the destination area
        404: Transfer not found
        409: Already processed, or source no longer holds enough pieces
    """
    try:
        transfer = transfer_service.accept_transfer(transfer_id, g.current_user)
        commit_and_notify()
        return jsonify(transfer.to_dict())
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("accepting transfer")


@transfers_bp.route("/<int:transfer_id>/reject", methods=["POST"])
@require_auth
def reject_transfer(transfer_id: int):
    try:
        transfer = transfer_service.reject_transfer(transfer_id, g.current_user)
        commit_and_notify()
        return jsonify(transfer.to_dict())
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("rejecting transfer")
