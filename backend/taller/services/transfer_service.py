# backend/taller/services/transfer_service.py
"""
Piece transfers between work areas.

LIFECYCLE:
1. pending: requested by the area holding the pieces (balance checked live)
2. accepted: destination took the pieces; ledger moved in the same transaction
3. rejected: destination refused; ledger untouched, pieces stay at the source

A transfer is resolved exactly once. The pending -> resolved move is a
compare-and-set on the status column, so a second accept or reject of the
same transfer raises AlreadyProcessed even when both race.

The balance seen at request time is advisory. Acceptance re-checks the live
balance through ledger_service.apply_transfer(), so two pending transfers
whose combined count exceeds the source can never both be accepted.
"""
from __future__ import annotations

from flask import current_app

from ..areas import WORK_AREAS, is_legal_transfer
from ..extensions import db
from ..enums import Area, NotificationType, OrderHistoryAction, OrderStatus, TransferStatus, parse_enum
from ..errors import AlreadyProcessed, InsufficientBalance, NotFoundError, ValidationError
from ..models import Order, Transfer
from ..permissions import is_admin, require_area_match
from ..validation import optional_text, strict_int
from . import history_service, ledger_service, notification_service
from .concurrency import lock_for_update, resolve_pending, run_with_retry


def get_transfer(transfer_id: int) -> Transfer:
    transfer = db.session.query(Transfer).filter_by(id=transfer_id).first()
    if not transfer:
        raise NotFoundError(f"Transfer {transfer_id} not found")
    return transfer


def _source_area(order: Order, actor, from_area) -> Area:
    """Requester's own area; admin may name any area, defaulting to the order's current area."""
    if is_admin(actor):
        if from_area is None:
            return order.current_area
        return parse_enum(Area, from_area, "from_area")
    if from_area is not None and parse_enum(Area, from_area, "from_area") != actor.area:
        raise ValidationError("Transfers can only be sent from your own area")
    return actor.area


def request_transfer(
    order_id: int,
    actor,
    to_area,
    pieces,
    notes: str | None = None,
    from_area=None,
) -> Transfer:
    """
    Ask the destination area to take `pieces` of an order.

    Raises:
        NotFoundError: order does not exist
        ValidationError: bad destination, completed order, non-positive count
        InsufficientBalance: source area holds fewer pieces right now
    """
    to_area = parse_enum(Area, to_area, "to_area")
    pieces = strict_int(pieces, "pieces", minimum=1)

    def _op() -> Transfer:
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        if order.status != OrderStatus.ACTIVE:
            raise ValidationError(f"Order {order.folio} is {order.status.value}; transfers are closed")

        source = _source_area(order, actor, from_area)
        if to_area not in WORK_AREAS:
            raise ValidationError(f"{to_area.value} cannot hold pieces")
        if to_area == source:
            raise ValidationError("Source and destination area must differ")
        if (
            current_app.config["ENFORCE_AREA_FLOW"]
            and not is_admin(actor)
            and not is_legal_transfer(source, to_area)
        ):
            raise ValidationError(f"{source.value} cannot send pieces to {to_area.value}")

        available = ledger_service.balance(order.id, source)
        if pieces > available:
            raise InsufficientBalance(source.value, pieces, available)

        transfer = Transfer(
            order_id=order.id,
            from_area=source,
            to_area=to_area,
            pieces=pieces,
            status=TransferStatus.PENDING,
            notes=optional_text(notes),
            created_by=actor.id,
        )
        db.session.add(transfer)
        db.session.flush()

        history_service.append_order_history(
            order_id=order.id,
            action=OrderHistoryAction.TRANSFER_CREATED,
            description=f"{pieces} piezas enviadas a {to_area.value}",
            user_id=actor.id,
            from_area=source,
            to_area=to_area,
            pieces=pieces,
        )
        notification_service.notify_areas(
            [to_area],
            NotificationType.TRANSFER_REQUEST,
            "Nueva transferencia",
            f"Pedido {order.folio}: {pieces} piezas desde {source.value}",
            exclude_user_id=actor.id,
            order_id=order.id,
            transfer_id=transfer.id,
        )
        return transfer

    return run_with_retry(_op)


def _claim_pending(transfer_id: int, actor, resolved: TransferStatus, verb: str) -> tuple[Transfer, Order]:
    transfer = lock_for_update(db.session.query(Transfer).filter_by(id=transfer_id)).first()
    if not transfer:
        raise NotFoundError(f"Transfer {transfer_id} not found")

    require_area_match(actor, transfer.to_area, f"{verb} this transfer")
    if transfer.status != TransferStatus.PENDING:
        raise AlreadyProcessed(f"Transfer {transfer.id} was already {transfer.status.value}")

    order = lock_for_update(db.session.query(Order).filter_by(id=transfer.order_id)).first()
    if not order:
        raise NotFoundError(f"Order {transfer.order_id} not found")

    won = resolve_pending(
        Transfer,
        transfer.id,
        pending=TransferStatus.PENDING,
        resolved=resolved,
        processed_by=actor.id,
    )
    if not won:
        raise AlreadyProcessed(f"Transfer {transfer.id} was already processed")
    return transfer, order


def accept_transfer(transfer_id: int, actor) -> Transfer:
    """
    Destination takes the pieces.

    Moves the ledger, refreshes current_area when the order has consolidated
    into a single area and logs the move, all in the caller's transaction.
    """
    def _op() -> Transfer:
        transfer, order = _claim_pending(transfer_id, actor, TransferStatus.ACCEPTED, "accept")

        ledger_service.apply_transfer(order, transfer.from_area, transfer.to_area, transfer.pieces)
        resident = ledger_service.resident_area(order.id)
        if resident is not None:
            order.current_area = resident
        db.session.flush()

        history_service.append_order_history(
            order_id=order.id,
            action=OrderHistoryAction.TRANSFER_ACCEPTED,
            description=(
                f"Transferencia aceptada - {transfer.pieces} piezas movidas de "
                f"{transfer.from_area.value} a {transfer.to_area.value}"
            ),
            user_id=actor.id,
            from_area=transfer.from_area,
            to_area=transfer.to_area,
            pieces=transfer.pieces,
        )
        notification_service.notify(
            transfer.created_by,
            NotificationType.TRANSFER_ACCEPTED,
            "Transferencia aceptada",
            f"Pedido {order.folio}: {transfer.to_area.value} aceptó {transfer.pieces} piezas",
            order_id=order.id,
            transfer_id=transfer.id,
        )
        return transfer

    return run_with_retry(_op)


def reject_transfer(transfer_id: int, actor) -> Transfer:
    """Destination refuses the pieces. The ledger is not touched."""
    def _op() -> Transfer:
        transfer, order = _claim_pending(transfer_id, actor, TransferStatus.REJECTED, "reject")

        history_service.append_order_history(
            order_id=order.id,
            action=OrderHistoryAction.TRANSFER_REJECTED,
            description=(
                f"Transferencia rechazada - {transfer.pieces} piezas devueltas a "
                f"{transfer.from_area.value}"
            ),
            user_id=actor.id,
            from_area=transfer.from_area,
            to_area=transfer.to_area,
            pieces=transfer.pieces,
        )
        notification_service.notify(
            transfer.created_by,
            NotificationType.TRANSFER_REJECTED,
            "Transferencia rechazada",
            f"Pedido {order.folio}: {transfer.to_area.value} rechazó {transfer.pieces} piezas",
            order_id=order.id,
            transfer_id=transfer.id,
        )
        return transfer

    return run_with_retry(_op)


def process_transfer(transfer_id: int, action: str, actor) -> Transfer:
    if action == "accept":
        return accept_transfer(transfer_id, actor)
    if action == "reject":
        return reject_transfer(transfer_id, actor)
    raise ValidationError("action must be 'accept' or 'reject'")


# =============================================================================
# Reads
# =============================================================================

def list_pending_for_user(actor) -> list[Transfer]:
    """Pending transfers waiting on the actor's area (every area for admin)."""
    query = db.session.query(Transfer).filter(Transfer.status == TransferStatus.PENDING)
    if not is_admin(actor):
        query = query.filter(Transfer.to_area == actor.area)
    return query.order_by(Transfer.created_at.asc(), Transfer.id.asc()).all()


def list_transfers_by_area(area) -> list[Transfer]:
    area = parse_enum(Area, area, "area")
    return (
        db.session.query(Transfer)
        .filter(db.or_(Transfer.from_area == area, Transfer.to_area == area))
        .order_by(Transfer.created_at.desc(), Transfer.id.desc())
        .all()
    )


def list_transfers_for_order(order_id: int) -> list[Transfer]:
    return (
        db.session.query(Transfer)
        .filter_by(order_id=order_id)
        .order_by(Transfer.created_at.asc(), Transfer.id.asc())
        .all()
    )
