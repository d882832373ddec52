# Overview: Append-only audit history for orders and repositions.

from __future__ import annotations

from ..extensions import db
from ..enums import Area, OrderHistoryAction, RepositionHistoryAction
from ..models import OrderHistory, RepositionHistory
"""
History Invariants (authoritative)

- Append-only: no updates, no deletes (order deletion cascades are the only
  exception and remove the whole trail).
- Entries are written inside the same DB transaction as the transition they
  record, so a rolled back transition leaves no entry behind.
- Reads are ordered by created_at, then id (ties within the same second).
"""


def append_order_history(
    *,
    order_id: int,
    action: OrderHistoryAction,
    description: str,
    user_id: int,
    from_area: Area | None = None,
    to_area: Area | None = None,
    pieces: int | None = None,
) -> OrderHistory:
    entry = OrderHistory(
        order_id=order_id,
        action=OrderHistoryAction(action).value,
        description=description,
        user_id=user_id,
        from_area=from_area,
        to_area=to_area,
        pieces=pieces,
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def append_reposition_history(
    *,
    reposition_id: int,
    action: RepositionHistoryAction,
    description: str,
    user_id: int,
    from_area: Area | None = None,
    to_area: Area | None = None,
) -> RepositionHistory:
    entry = RepositionHistory(
        reposition_id=reposition_id,
        action=RepositionHistoryAction(action).value,
        description=description,
        user_id=user_id,
        from_area=from_area,
        to_area=to_area,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def order_history(order_id: int) -> list[OrderHistory]:
    return (
        db.session.query(OrderHistory)
        .filter_by(order_id=order_id)
        .order_by(OrderHistory.created_at.asc(), OrderHistory.id.asc())
        .all()
    )


def reposition_history(reposition_id: int) -> list[RepositionHistory]:
    return (
        db.session.query(RepositionHistory)
        .filter_by(reposition_id=reposition_id)
        .order_by(RepositionHistory.created_at.asc(), RepositionHistory.id.asc())
        .all()
    )
