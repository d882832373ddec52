# backend/taller/services/order_service.py
"""
Order lifecycle: intake, completion and deletion.

LIFECYCLE:
1. active: created with every piece in the intake area
2. completed: closed by the shipping area; pieces stay where they are

Deletion is a hard delete. It removes the ledger rows, transfers, history and
notifications of the order and cannot be undone (contrast with repositions,
which are soft deleted).
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..enums import Area, NotificationType, OrderHistoryAction, OrderStatus, parse_enum
from ..errors import AlreadyProcessed, DuplicateFolio, NotFoundError, ValidationError
from ..models import Notification, Order, OrderHistory, OrderPiece, Transfer
from ..permissions import require_areas
from ..time_utils import utcnow
from ..validation import FieldPolicy, clean_payload
from . import history_service, ledger_service, notification_service
from .concurrency import lock_for_update, run_with_retry


ORDER_FIELDS = FieldPolicy(
    required=(
        "folio",
        "cliente_hotel",
        "no_solicitud",
        "modelo",
        "tipo_prenda",
        "color",
        "tela",
        "total_piezas",
    ),
    optional=("no_hoja",),
)


def get_order(order_id: int) -> Order:
    order = db.session.query(Order).filter_by(id=order_id).first()
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def get_order_by_folio(folio: str) -> Order:
    order = db.session.query(Order).filter_by(folio=folio).first()
    if not order:
        raise NotFoundError(f"Order {folio!r} not found")
    return order


def list_orders(area: Area | None = None, status: OrderStatus | None = None) -> list[Order]:
    """
    Orders newest first. With `area`, only orders holding pieces there.

    The area filter reads the ledger, not the denormalized current_area, so
    split orders show up in every area they occupy.
    """
    query = db.session.query(Order)
    if area is not None:
        area = parse_enum(Area, area, "area")
        holders = db.session.query(OrderPiece.order_id).filter(OrderPiece.area == area)
        query = query.filter(Order.id.in_(holders))
    if status is not None:
        query = query.filter(Order.status == parse_enum(OrderStatus, status, "status"))
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order_history(order_id: int) -> list:
    get_order(order_id)
    return history_service.order_history(order_id)


def order_location(order: Order) -> dict:
    """
    Where the pieces of an order are, as a tri-state.

    - single: every piece sits in one area (current_area is accurate)
    - split: pieces are spread across several areas (current_area is last-known)
    - unknown: the ledger has no rows, which only happens if it was tampered with
    """
    held = ledger_service.balances(order.id)
    if not held:
        return {"state": "unknown", "areas": []}
    areas = [{"area": area.value, "pieces": pieces} for area, pieces in held.items()]
    return {"state": "single" if len(held) == 1 else "split", "areas": areas}


def serialize_order(order: Order) -> dict:
    data = order.to_dict()
    data["location"] = order_location(order)
    return data


def create_order(data: dict, actor) -> Order:
    """
    Register a new order with every piece in the intake area.

    Args:
        data: order fields; folio is caller supplied and must be unique
        actor: the authenticated User creating the order

    Raises:
        ValidationError: missing or malformed fields
        AuthorizationError: actor's area cannot create orders
        DuplicateFolio: another order already uses the folio
    """
    require_areas(actor, "ORDER_CREATOR_AREAS", "create orders")
    fields = clean_payload(model=Order, payload=data, policy=ORDER_FIELDS)
    if fields["total_piezas"] < 1:
        raise ValidationError("total_piezas must be at least 1")

    intake = Area(current_app.config["ORDER_INTAKE_AREA"])

    def _op() -> Order:
        if db.session.query(Order.id).filter_by(folio=fields["folio"]).first():
            raise DuplicateFolio(fields["folio"])

        order = Order(
            **fields,
            current_area=intake,
            status=OrderStatus.ACTIVE,
            created_by=actor.id,
        )
        db.session.add(order)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateFolio(fields["folio"])

        ledger_service.initialize(order, intake)
        history_service.append_order_history(
            order_id=order.id,
            action=OrderHistoryAction.CREATED,
            description=f"Pedido creado con {order.total_piezas} piezas",
            user_id=actor.id,
            to_area=intake,
            pieces=order.total_piezas,
        )
        return order

    return run_with_retry(_op)


def complete_order(order_id: int, actor) -> Order:
    """
    Close an active order. Only the shipping area (configurable) may do it.

    Completing an order twice raises AlreadyProcessed.
    """
    require_areas(actor, "ORDER_COMPLETION_AREAS", "complete orders")

    def _op() -> Order:
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.status == OrderStatus.COMPLETED:
            raise AlreadyProcessed(f"Order {order.folio} is already completed")

        order.status = OrderStatus.COMPLETED
        order.completed_at = utcnow()
        db.session.flush()

        history_service.append_order_history(
            order_id=order.id,
            action=OrderHistoryAction.COMPLETED,
            description="Pedido finalizado",
            user_id=actor.id,
        )
        notification_service.notify(
            order.created_by,
            NotificationType.ORDER_COMPLETED,
            "Pedido finalizado",
            f"El pedido {order.folio} ha sido finalizado",
            order_id=order.id,
        )
        return order

    return run_with_retry(_op)


def delete_order(order_id: int, actor) -> dict:
    """
    IRREVERSIBLE. Remove an order and everything that references it.

    Returns a summary of what was removed.
    """
    require_areas(actor, "ORDER_DELETE_AREAS", "delete orders")

    def _op() -> dict:
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        summary = {"id": order.id, "folio": order.folio}
        for label, model in (
            ("notifications", Notification),
            ("history", OrderHistory),
            ("transfers", Transfer),
            ("ledger_rows", OrderPiece),
        ):
            result = db.session.execute(
                delete(model)
                .where(model.order_id == order.id)
                .execution_options(synchronize_session="fetch")
            )
            summary[label] = result.rowcount

        db.session.delete(order)
        db.session.flush()
        return summary

    summary = run_with_retry(_op)
    current_app.logger.warning(
        "Order %s (%s) deleted by user %s", summary["folio"], summary["id"], actor.id
    )
    return summary
