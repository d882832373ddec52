# Overview: Aggregate counters for the workshop dashboard.

from __future__ import annotations

from datetime import datetime, timedelta

from ..extensions import db
from ..enums import OrderStatus, RepositionStatus, TransferStatus
from ..models import Order, OrderPiece, Reposition, RepositionTransfer, Transfer
from ..permissions import is_admin
from ..time_utils import utcnow


def get_stats(actor, now: datetime | None = None) -> dict:
    """
    Counters scoped to the actor's area.

    - active_orders: every active order
    - my_area_orders: active orders holding pieces in the actor's area
    - pending_transfers: order and reposition transfers waiting on the actor's area
    - today_completed: orders completed since 00:00 UTC
    - pending_repositions: repositions awaiting approval
    """
    now = now or utcnow()
    start_of_day = datetime(now.year, now.month, now.day)

    active_orders = db.session.query(Order).filter(Order.status == OrderStatus.ACTIVE).count()

    my_area_orders = (
        db.session.query(Order)
        .filter(
            Order.status == OrderStatus.ACTIVE,
            Order.id.in_(
                db.session.query(OrderPiece.order_id).filter(OrderPiece.area == actor.area)
            ),
        )
        .count()
    )

    transfer_query = db.session.query(Transfer).filter(Transfer.status == TransferStatus.PENDING)
    reposition_transfer_query = db.session.query(RepositionTransfer).filter(
        RepositionTransfer.status == TransferStatus.PENDING
    )
    if not is_admin(actor):
        transfer_query = transfer_query.filter(Transfer.to_area == actor.area)
        reposition_transfer_query = reposition_transfer_query.filter(RepositionTransfer.to_area == actor.area)

    today_completed = (
        db.session.query(Order)
        .filter(
            Order.status == OrderStatus.COMPLETED,
            Order.completed_at >= start_of_day,
            Order.completed_at < start_of_day + timedelta(days=1),
        )
        .count()
    )

    pending_repositions = (
        db.session.query(Reposition)
        .filter(Reposition.status == RepositionStatus.PENDIENTE)
        .count()
    )

    return {
        "active_orders": active_orders,
        "my_area_orders": my_area_orders,
        "pending_transfers": transfer_query.count() + reposition_transfer_query.count(),
        "today_completed": today_completed,
        "pending_repositions": pending_repositions,
    }
