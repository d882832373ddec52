# Overview: Piece ledger; where every piece of an order currently sits.

from __future__ import annotations

from sqlalchemy import delete, func, update

from ..extensions import db
from ..enums import Area
from ..errors import InsufficientBalance, InvariantViolation, ValidationError
from ..models import Order, OrderPiece
"""
Piece Ledger Invariants (authoritative)

- For every order, sum(order_pieces.pieces) == orders.total_piezas, always.
- An area holding zero pieces has no row (rows are removed, never zeroed).
- Only transfer acceptance moves pieces, through apply_transfer().
- The source check and the source decrement are a single conditional
  statement, so two accepts racing on the same source cannot overdraw it.
"""


def initialize(order: Order, seed_area: Area) -> OrderPiece:
    """
    Seed the ledger with a single row holding every piece of the order.

    Not idempotent: a second call for the same order is an invariant
    violation, the caller must call it exactly once at order creation.
    """
    existing = db.session.query(OrderPiece.id).filter_by(order_id=order.id).first()
    if existing:
        raise InvariantViolation(f"Piece ledger for order {order.id} is already initialized")

    if order.total_piezas is None or order.total_piezas < 1:
        raise ValidationError("total_piezas must be at least 1")

    row = OrderPiece(order_id=order.id, area=Area(seed_area), pieces=order.total_piezas)
    db.session.add(row)
    db.session.flush()
    return row


def balance(order_id: int, area: Area) -> int:
    """Live balance of one area. 0 when the area holds nothing."""
    pieces = (
        db.session.query(OrderPiece.pieces)
        .filter_by(order_id=order_id, area=Area(area))
        .scalar()
    )
    return pieces or 0


def balances(order_id: int) -> dict[Area, int]:
    rows = (
        db.session.query(OrderPiece.area, OrderPiece.pieces)
        .filter_by(order_id=order_id)
        .order_by(OrderPiece.id)
        .all()
    )
    return {area: pieces for area, pieces in rows}


def ledger_rows(order_id: int) -> list[OrderPiece]:
    return (
        db.session.query(OrderPiece)
        .filter_by(order_id=order_id)
        .order_by(OrderPiece.id)
        .populate_existing()
        .all()
    )


def total(order_id: int) -> int:
    value = (
        db.session.query(func.coalesce(func.sum(OrderPiece.pieces), 0))
        .filter(OrderPiece.order_id == order_id)
        .scalar()
    )
    return int(value or 0)


def _withdraw(order_id: int, area: Area, pieces: int) -> None:
    """
    Remove `pieces` from one area in a single guarded statement.

    Exact drains delete the row; partial withdrawals decrement it only while
    the live balance still covers them. Anything else is InsufficientBalance.
    """
    drained = db.session.execute(
        delete(OrderPiece)
        .where(
            OrderPiece.order_id == order_id,
            OrderPiece.area == area,
            OrderPiece.pieces == pieces,
        )
        .execution_options(synchronize_session="fetch")
    )
    if drained.rowcount == 1:
        return

    decremented = db.session.execute(
        update(OrderPiece)
        .where(
            OrderPiece.order_id == order_id,
            OrderPiece.area == area,
            OrderPiece.pieces > pieces,
        )
        .values(pieces=OrderPiece.pieces - pieces)
        .execution_options(synchronize_session="fetch")
    )
    if decremented.rowcount == 1:
        return

    raise InsufficientBalance(area.value, pieces, balance(order_id, area))


def _deposit(order_id: int, area: Area, pieces: int) -> None:
    incremented = db.session.execute(
        update(OrderPiece)
        .where(OrderPiece.order_id == order_id, OrderPiece.area == area)
        .values(pieces=OrderPiece.pieces + pieces)
        .execution_options(synchronize_session="fetch")
    )
    if incremented.rowcount == 1:
        return

    db.session.add(OrderPiece(order_id=order_id, area=area, pieces=pieces))
    db.session.flush()


def apply_transfer(order: Order, from_area: Area, to_area: Area, pieces: int) -> dict[Area, int]:
    """
    Move `pieces` of `order` from one area to another.

    Checked against the live balance at commit time, not the balance seen
    when the transfer was requested. Returns the resulting balances.

    Raises:
        ValidationError: non-positive count or same source and destination
        InsufficientBalance: source area holds fewer pieces than requested
        InvariantViolation: the ledger no longer sums to the order total
    """
    from_area = Area(from_area)
    to_area = Area(to_area)

    if pieces is None or pieces < 1:
        raise ValidationError("pieces must be at least 1")
    if from_area == to_area:
        raise ValidationError("Source and destination area must differ")

    _withdraw(order.id, from_area, pieces)
    _deposit(order.id, to_area, pieces)

    verify_conservation(order)
    return balances(order.id)


def resident_area(order_id: int) -> Area | None:
    """The single area holding 100% of the pieces, or None when split."""
    areas = (
        db.session.query(OrderPiece.area)
        .filter_by(order_id=order_id)
        .limit(2)
        .all()
    )
    if len(areas) != 1:
        return None
    return areas[0][0]


def verify_conservation(order: Order) -> None:
    """Raise InvariantViolation unless the ledger sums to the order total."""
    held = total(order.id)
    if held != order.total_piezas:
        raise InvariantViolation(
            f"Piece ledger for order {order.folio} holds {held} pieces, expected {order.total_piezas}"
        )


def find_conservation_violations() -> list[dict]:
    """Every order whose ledger does not sum to its total. Used by the CLI check."""
    held = (
        db.session.query(OrderPiece.order_id, func.sum(OrderPiece.pieces).label("held"))
        .group_by(OrderPiece.order_id)
        .subquery()
    )
    rows = (
        db.session.query(Order.id, Order.folio, Order.total_piezas, func.coalesce(held.c.held, 0))
        .outerjoin(held, held.c.order_id == Order.id)
        .filter(func.coalesce(held.c.held, 0) != Order.total_piezas)
        .order_by(Order.id)
        .all()
    )
    return [
        {"order_id": order_id, "folio": folio, "expected": expected, "held": int(actual)}
        for order_id, folio, expected, actual in rows
    ]
