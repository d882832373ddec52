# backend/taller/services/reposition_transfer_service.py
"""
Moves an approved reposition between areas as a whole.

LIFECYCLE:
1. pending: requested from the ticket's current area (or a privileged area)
2. accepted: destination takes the ticket; current_area := to_area
3. rejected: ticket stays where it is

Same resolve-once compare-and-set as order transfers, without quantities.
Only one transfer per reposition may be pending at a time.
"""
from __future__ import annotations

from ..areas import WORK_AREAS
from ..extensions import db
from ..enums import Area, NotificationType, RepositionHistoryAction, RepositionStatus, TransferStatus, parse_enum
from ..errors import AlreadyProcessed, AuthorizationError, NotFoundError, ValidationError
from ..models import Reposition, RepositionTransfer
from ..permissions import in_areas, is_admin, require_area_match
from ..validation import optional_text
from . import history_service, notification_service
from .concurrency import lock_for_update, resolve_pending, run_with_retry
from .reposition_service import require_operation


def get_reposition_transfer(transfer_id: int) -> RepositionTransfer:
    transfer = db.session.query(RepositionTransfer).filter_by(id=transfer_id).first()
    if not transfer:
        raise NotFoundError(f"Reposition transfer {transfer_id} not found")
    return transfer


def request_reposition_transfer(reposition_id: int, actor, to_area, notes: str | None = None) -> RepositionTransfer:
    """
    Ask `to_area` to take a reposition.

    Raises:
        ValidationError: reposition is not aprobado, bad destination, or a
            transfer is already pending
        AuthorizationError: actor is neither in the ticket's area nor privileged
    """
    to_area = parse_enum(Area, to_area, "to_area")
    notes = optional_text(notes)

    def _op() -> RepositionTransfer:
        reposition = lock_for_update(db.session.query(Reposition).filter_by(id=reposition_id)).first()
        if not reposition:
            raise NotFoundError(f"Reposition {reposition_id} not found")
        require_operation(reposition, "transfer")

        if actor.area != reposition.current_area and not in_areas(actor, "REPOSITION_PRIVILEGED_AREAS"):
            raise AuthorizationError(f"Only {reposition.current_area.value} users can transfer {reposition.folio}")
        if to_area not in WORK_AREAS:
            raise ValidationError(f"{to_area.value} cannot receive repositions")
        if to_area == reposition.current_area:
            raise ValidationError(f"Reposition {reposition.folio} is already in {to_area.value}")

        pending = (
            db.session.query(RepositionTransfer.id)
            .filter_by(reposition_id=reposition.id, status=TransferStatus.PENDING)
            .first()
        )
        if pending:
            raise ValidationError(f"Reposition {reposition.folio} already has a pending transfer")

        from_area = reposition.current_area
        transfer = RepositionTransfer(
            reposition_id=reposition.id,
            from_area=from_area,
            to_area=to_area,
            notes=notes,
            status=TransferStatus.PENDING,
            created_by=actor.id,
        )
        db.session.add(transfer)
        db.session.flush()

        history_service.append_reposition_history(
            reposition_id=reposition.id,
            action=RepositionHistoryAction.TRANSFER_REQUESTED,
            description=f"Transferencia solicitada de {from_area.value} a {to_area.value}",
            user_id=actor.id,
            from_area=from_area,
            to_area=to_area,
        )
        notification_service.notify_areas(
            [to_area],
            NotificationType.REPOSITION_TRANSFER,
            "Transferencia de reposición",
            f"Reposición {reposition.folio} enviada desde {from_area.value}",
            exclude_user_id=actor.id,
            reposition_id=reposition.id,
            transfer_id=transfer.id,
        )
        return transfer

    return run_with_retry(_op)


def _claim_pending(transfer_id: int, actor, resolved: TransferStatus, verb: str):
    transfer = lock_for_update(db.session.query(RepositionTransfer).filter_by(id=transfer_id)).first()
    if not transfer:
        raise NotFoundError(f"Reposition transfer {transfer_id} not found")

    require_area_match(actor, transfer.to_area, f"{verb} this transfer")
    if transfer.status != TransferStatus.PENDING:
        raise AlreadyProcessed(f"Reposition transfer {transfer.id} was already {transfer.status.value}")

    reposition = lock_for_update(db.session.query(Reposition).filter_by(id=transfer.reposition_id)).first()
    if not reposition:
        raise NotFoundError(f"Reposition {transfer.reposition_id} not found")
    if resolved == TransferStatus.ACCEPTED and reposition.status != RepositionStatus.APROBADO:
        raise ValidationError(
            f"Reposition {reposition.folio} is {reposition.status.value}; the transfer can only be rejected"
        )

    won = resolve_pending(
        RepositionTransfer,
        transfer.id,
        pending=TransferStatus.PENDING,
        resolved=resolved,
        processed_by=actor.id,
    )
    if not won:
        raise AlreadyProcessed(f"Reposition transfer {transfer.id} was already processed")
    return transfer, reposition


def _notify_parties(transfer: RepositionTransfer, reposition: Reposition, actor, type: NotificationType, title: str, message: str) -> None:
    notification_service.notify_users(
        [transfer.created_by, reposition.created_by],
        type,
        title,
        message,
        exclude_user_id=actor.id,
        reposition_id=reposition.id,
        transfer_id=transfer.id,
    )


def accept_reposition_transfer(transfer_id: int, actor) -> RepositionTransfer:
    def _op() -> RepositionTransfer:
        transfer, reposition = _claim_pending(transfer_id, actor, TransferStatus.ACCEPTED, "accept")

        reposition.current_area = transfer.to_area
        db.session.flush()

        history_service.append_reposition_history(
            reposition_id=reposition.id,
            action=RepositionHistoryAction.TRANSFER_ACCEPTED,
            description=f"Transferencia aceptada de {transfer.from_area.value} a {transfer.to_area.value}",
            user_id=actor.id,
            from_area=transfer.from_area,
            to_area=transfer.to_area,
        )
        _notify_parties(
            transfer,
            reposition,
            actor,
            NotificationType.REPOSITION_TRANSFER_ACCEPTED,
            "Transferencia aceptada",
            f"La reposición {reposition.folio} fue recibida en {transfer.to_area.value}",
        )
        return transfer

    return run_with_retry(_op)


def reject_reposition_transfer(transfer_id: int, actor) -> RepositionTransfer:
    def _op() -> RepositionTransfer:
        transfer, reposition = _claim_pending(transfer_id, actor, TransferStatus.REJECTED, "reject")

        history_service.append_reposition_history(
            reposition_id=reposition.id,
            action=RepositionHistoryAction.TRANSFER_REJECTED,
            description=f"Transferencia rechazada por {transfer.to_area.value}",
            user_id=actor.id,
            from_area=transfer.from_area,
            to_area=transfer.to_area,
        )
        _notify_parties(
            transfer,
            reposition,
            actor,
            NotificationType.REPOSITION_TRANSFER_REJECTED,
            "Transferencia rechazada",
            f"{transfer.to_area.value} rechazó la reposición {reposition.folio}",
        )
        return transfer

    return run_with_retry(_op)


_PROCESSORS = {
    "accept": accept_reposition_transfer,
    "accepted": accept_reposition_transfer,
    "reject": reject_reposition_transfer,
    "rejected": reject_reposition_transfer,
}


def process_reposition_transfer(transfer_id: int, action: str, actor) -> RepositionTransfer:
    processor = _PROCESSORS.get(action)
    if processor is None:
        raise ValidationError("action must be 'accepted' or 'rejected'")
    return processor(transfer_id, actor)


# =============================================================================
# Reads
# =============================================================================

def list_pending_reposition_transfers(actor) -> list[RepositionTransfer]:
    query = db.session.query(RepositionTransfer).filter(RepositionTransfer.status == TransferStatus.PENDING)
    if not is_admin(actor):
        query = query.filter(RepositionTransfer.to_area == actor.area)
    return query.order_by(RepositionTransfer.created_at.asc(), RepositionTransfer.id.asc()).all()


def list_reposition_transfers(reposition_id: int) -> list[RepositionTransfer]:
    return (
        db.session.query(RepositionTransfer)
        .filter_by(reposition_id=reposition_id)
        .order_by(RepositionTransfer.created_at.asc(), RepositionTransfer.id.asc())
        .all()
    )
