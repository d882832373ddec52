# Overview: Flask API routes for production orders; parses input and returns JSON responses.

"""
Order API routes.

DELETE /api/orders/<id> is a hard delete: the order, its piece ledger,
transfers, history and notifications are removed permanently.
"""
from flask import Blueprint, g, jsonify, request

from ..errors import DomainError
from ..services import ledger_service, order_service, transfer_service
from ..decorators import require_auth
from .common import commit_and_notify, domain_error, json_body, unexpected_error


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.route("", methods=["POST"])
@require_auth
def create_order():
    """
    Create a new order with every piece in the intake area.

    Request body:
    {
        "folio": str,
        "cliente_hotel": str,
        "no_solicitud": str,
        "no_hoja": str (optional),
        "modelo": str,
        "tipo_prenda": str,
        "color": str,
        "tela": str,
        "total_piezas": int
    }

    Returns:
        201: Order created
        400: Invalid request
        403: Area cannot create orders
        409: Folio already exists
    """
    try:
        order = order_service.create_order(json_body(), g.current_user)
        commit_and_notify()
        return jsonify(order_service.serialize_order(order)), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("creating order")


@orders_bp.route("", methods=["GET"])
@require_auth
def list_orders():
    """
    List orders, newest first.

    Query params:
    - area: only orders with pieces in this area
    - status: active | completed
    """
    try:
        orders = order_service.list_orders(
            area=request.args.get("area") or None,
            status=request.args.get("status") or None,
        )
        return jsonify({"orders": [order_service.serialize_order(o) for o in orders], "count": len(orders)})
    except DomainError as e:
        return domain_error(e)


@orders_bp.route("/<int:order_id>", methods=["GET"])
@require_auth
def get_order(order_id: int):
    try:
        order = order_service.get_order(order_id)
        return jsonify(order_service.serialize_order(order))
    except DomainError as e:
        return domain_error(e)


@orders_bp.route("/<int:order_id>/pieces", methods=["GET"])
@require_auth
def get_order_pieces(order_id: int):
    try:
        order_service.get_order(order_id)
        rows = ledger_service.ledger_rows(order_id)
        return jsonify({"pieces": [row.to_dict() for row in rows]})
    except DomainError as e:
        return domain_error(e)


@orders_bp.route("/<int:order_id>/history", methods=["GET"])
@require_auth
def get_order_history(order_id: int):
    try:
        entries = order_service.get_order_history(order_id)
        return jsonify({"history": [entry.to_dict() for entry in entries]})
    except DomainError as e:
        return domain_error(e)


@orders_bp.route("/<int:order_id>/transfers", methods=["GET"])
@require_auth
def get_order_transfers(order_id: int):
    try:
        order_service.get_order(order_id)
        transfers = transfer_service.list_transfers_for_order(order_id)
        return jsonify({"transfers": [t.to_dict() for t in transfers]})
    except DomainError as e:
        return domain_error(e)


@orders_bp.route("/<int:order_id>/complete", methods=["POST"])
@require_auth
def complete_order(order_id: int):
    """
    Close an order.

    Returns:
        200: Order completed
        403: Area cannot complete orders
        404: Order not found
        409: Order already completed
    """
    try:
        order = order_service.complete_order(order_id, g.current_user)
        commit_and_notify()
        return jsonify(order_service.serialize_order(order))
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("completing order")


@orders_bp.route("/<int:order_id>", methods=["DELETE"])
@require_auth
def delete_order(order_id: int):
    """
    IRREVERSIBLE. Permanently delete an order and everything attached to it.

    Returns:
        200: Summary of removed rows
        403: Area cannot delete orders
        404: Order not found
    """
    try:
        summary = order_service.delete_order(order_id, g.current_user)
        commit_and_notify()
        return jsonify({"deleted": summary, "irreversible": True})
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("deleting order")
