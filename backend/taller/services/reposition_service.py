# backend/taller/services/reposition_service.py
"""
Reposition (rework / replacement ticket) lifecycle.

STATE MACHINE:
    pendiente --approve--> aprobado | rechazado
    aprobado  --(area transfers, see reposition_transfer_service)--> aprobado
    aprobado | en_proceso --complete (privileged)--> completado
    any non-terminal --delete (privileged, reason >= 10 chars)--> eliminado

completado and eliminado are absorbing. request_completion() only logs and
notifies; it never changes status. Every transition is a compare-and-set on
the status the reposition was read with, so two approvers racing on the same
ticket cannot both win.
"""
from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..enums import (
    Area,
    NotificationType,
    RepositionHistoryAction,
    RepositionStatus,
    parse_enum,
    require_exhaustive,
)
from ..errors import AlreadyProcessed, AuthorizationError, NotFoundError, ValidationError
from ..models import Reposition, RepositionPiece
from ..permissions import in_areas, is_admin, require_areas
from ..time_utils import utcnow
from ..validation import FieldPolicy, clean_payload, optional_text, strict_int
from . import history_service, notification_service, sequence_service
from .concurrency import compare_and_set, lock_for_update, run_with_retry


MIN_DELETION_REASON_LENGTH = 10

TERMINAL_STATUSES = frozenset({RepositionStatus.COMPLETADO, RepositionStatus.ELIMINADO})
CLOSED_STATUSES = TERMINAL_STATUSES

# Operations each status admits
ALLOWED_OPERATIONS: dict[RepositionStatus, frozenset[str]] = require_exhaustive(
    {
        RepositionStatus.PENDIENTE: frozenset({"approve", "delete"}),
        RepositionStatus.APROBADO: frozenset({"transfer", "request_completion", "complete", "delete"}),
        RepositionStatus.RECHAZADO: frozenset({"delete"}),
        RepositionStatus.EN_PROCESO: frozenset({"request_completion", "complete", "delete"}),
        RepositionStatus.COMPLETADO: frozenset(),
        RepositionStatus.ELIMINADO: frozenset(),
    },
    RepositionStatus,
    "reposition operations",
)

APPROVAL_OUTCOMES = {
    RepositionStatus.APROBADO: (
        RepositionHistoryAction.APPROVED,
        NotificationType.REPOSITION_APPROVED,
        "aprobada",
    ),
    RepositionStatus.RECHAZADO: (
        RepositionHistoryAction.REJECTED,
        NotificationType.REPOSITION_REJECTED,
        "rechazada",
    ),
}

REPOSITION_FIELDS = FieldPolicy(
    required=(
        "type",
        "solicitante_nombre",
        "no_solicitud",
        "causante_dano",
        "descripcion_suceso",
        "modelo_prenda",
        "tela",
        "color",
        "tipo_pieza",
        "urgencia",
    ),
    optional=("no_hoja", "observaciones", "solicitante_area"),
)


def require_operation(reposition: Reposition, operation: str) -> None:
    """
    Raise unless `operation` is legal from the reposition's current status.

    Terminal tickets and second approvals are AlreadyProcessed; any other
    illegal move is a ValidationError.
    """
    if operation in ALLOWED_OPERATIONS[reposition.status]:
        return
    if reposition.status in TERMINAL_STATUSES or operation == "approve":
        raise AlreadyProcessed(f"Reposition {reposition.folio} is already {reposition.status.value}")
    raise ValidationError(f"Cannot {operation.replace('_', ' ')} a reposition in status {reposition.status.value}")


def get_reposition(reposition_id: int) -> Reposition:
    reposition = db.session.query(Reposition).filter_by(id=reposition_id).first()
    if not reposition:
        raise NotFoundError(f"Reposition {reposition_id} not found")
    return reposition


def _locked(reposition_id: int) -> Reposition:
    reposition = lock_for_update(db.session.query(Reposition).filter_by(id=reposition_id)).first()
    if not reposition:
        raise NotFoundError(f"Reposition {reposition_id} not found")
    return reposition


def _set_status(reposition: Reposition, new: RepositionStatus, **values) -> None:
    won = compare_and_set(
        Reposition,
        reposition.id,
        column="status",
        expected=reposition.status,
        new=new,
        **values,
    )
    if not won:
        raise AlreadyProcessed(f"Reposition {reposition.folio} was changed concurrently")


def serialize_reposition(reposition: Reposition) -> dict:
    data = reposition.to_dict()
    data["pieces"] = [piece.to_dict() for piece in reposition.pieces]
    return data


def _clean_pieces(pieces) -> list[dict]:
    if not isinstance(pieces, list) or not pieces:
        raise ValidationError("At least one piece line is required")
    cleaned = []
    for index, line in enumerate(pieces, start=1):
        if not isinstance(line, dict):
            raise ValidationError(f"Piece line {index} must be an object")
        talla = optional_text(line.get("talla"))
        if not talla:
            raise ValidationError(f"Piece line {index}: talla is required")
        cleaned.append(
            {
                "talla": talla,
                "cantidad": strict_int(line.get("cantidad"), f"pieces[{index}].cantidad", minimum=1),
                "folio_original": optional_text(line.get("folio_original")),
            }
        )
    return cleaned


def create_reposition(data: dict, pieces, actor, now: datetime | None = None) -> Reposition:
    """
    Open a rework ticket in the creator's area, pending approval.

    Args:
        data: ticket fields
        pieces: list of {talla, cantidad, folio_original?} lines
        actor: the authenticated User opening the ticket
        now: request time; picks the folio month (defaults to utcnow)
    """
    if actor is None or not actor.is_active:
        raise AuthorizationError("Authenticated active user required")
    fields = clean_payload(model=Reposition, payload=data, policy=REPOSITION_FIELDS)
    lines = _clean_pieces(pieces)
    now = now or utcnow()

    def _op() -> Reposition:
        folio = sequence_service.next_reposition_folio(now)

        reposition = Reposition(
            **{**fields, "solicitante_area": fields.get("solicitante_area") or actor.area},
            folio=folio,
            fecha_solicitud=now,
            current_area=actor.area,
            status=RepositionStatus.PENDIENTE,
            created_by=actor.id,
        )
        db.session.add(reposition)
        db.session.flush()

        for line in lines:
            db.session.add(RepositionPiece(reposition_id=reposition.id, **line))
        db.session.flush()

        history_service.append_reposition_history(
            reposition_id=reposition.id,
            action=RepositionHistoryAction.CREATED,
            description=f"Reposición {folio} creada en {actor.area.value}",
            user_id=actor.id,
            to_area=actor.area,
        )
        notification_service.notify_areas(
            [Area.ADMIN, Area.OPERACIONES],
            NotificationType.NEW_REPOSITION,
            "Nueva reposición",
            f"{actor.name} creó la reposición {folio}",
            reposition_id=reposition.id,
        )
        return reposition

    return run_with_retry(_op)


def approve_reposition(reposition_id: int, action, actor, notes: str | None = None) -> Reposition:
    """Approve or reject a pending reposition. action is 'aprobado' or 'rechazado'."""
    require_areas(actor, "REPOSITION_APPROVER_AREAS", "approve repositions")
    outcome = parse_enum(RepositionStatus, action, "action")
    if outcome not in APPROVAL_OUTCOMES:
        raise ValidationError("action must be 'aprobado' or 'rechazado'")
    history_action, notification_type, verb = APPROVAL_OUTCOMES[outcome]
    notes = optional_text(notes)

    def _op() -> Reposition:
        reposition = _locked(reposition_id)
        require_operation(reposition, "approve")

        _set_status(reposition, outcome, approved_by=actor.id, approved_at=utcnow())

        description = f"Reposición {verb}"
        if notes:
            description = f"{description}: {notes}"
        history_service.append_reposition_history(
            reposition_id=reposition.id,
            action=history_action,
            description=description,
            user_id=actor.id,
        )
        notification_service.notify(
            reposition.created_by,
            notification_type,
            f"Reposición {verb}",
            f"La reposición {reposition.folio} fue {verb} por {actor.name}",
            reposition_id=reposition.id,
        )
        return reposition

    return run_with_retry(_op)


def request_completion(reposition_id: int, actor, notes: str | None = None) -> Reposition:
    """
    Ask the completion approvers to close a ticket. Status is unchanged.

    Intended for areas that cannot complete directly; the ticket's own area
    or a privileged area may ask.
    """
    notes = optional_text(notes)

    def _op() -> Reposition:
        reposition = _locked(reposition_id)
        if actor.area != reposition.current_area and not in_areas(actor, "REPOSITION_PRIVILEGED_AREAS"):
            raise AuthorizationError(
                f"Only {reposition.current_area.value} users can request completion of {reposition.folio}"
            )
        require_operation(reposition, "request_completion")

        description = "Solicitud de finalización"
        if notes:
            description = f"{description}: {notes}"
        history_service.append_reposition_history(
            reposition_id=reposition.id,
            action=RepositionHistoryAction.COMPLETION_REQUESTED,
            description=description,
            user_id=actor.id,
        )
        notification_service.notify_users(
            (user.id for user in notification_service.completion_approvers()),
            NotificationType.COMPLETION_APPROVAL_NEEDED,
            "Solicitud de finalización",
            f"{actor.name} solicita finalizar la reposición {reposition.folio}",
            exclude_user_id=actor.id,
            reposition_id=reposition.id,
        )
        return reposition

    return run_with_retry(_op)


def complete_reposition(reposition_id: int, actor, notes: str | None = None) -> Reposition:
    require_areas(actor, "REPOSITION_PRIVILEGED_AREAS", "complete repositions")
    notes = optional_text(notes)

    def _op() -> Reposition:
        reposition = _locked(reposition_id)
        require_operation(reposition, "complete")

        _set_status(
            reposition,
            RepositionStatus.COMPLETADO,
            completed_at=utcnow(),
            approved_by=actor.id,
        )

        description = "Reposición finalizada"
        if notes:
            description = f"{description}: {notes}"
        history_service.append_reposition_history(
            reposition_id=reposition.id,
            action=RepositionHistoryAction.COMPLETED,
            description=description,
            user_id=actor.id,
        )
        notification_service.notify(
            reposition.created_by,
            NotificationType.REPOSITION_COMPLETED,
            "Reposición finalizada",
            f"La reposición {reposition.folio} fue finalizada",
            reposition_id=reposition.id,
        )
        return reposition

    return run_with_retry(_op)


def delete_reposition(reposition_id: int, actor, reason) -> Reposition:
    """
    Soft delete. The ticket stays readable with status eliminado.

    Raises:
        ValidationError: reason missing or shorter than 10 characters after trimming
        AlreadyProcessed: ticket is already completado or eliminado
    """
    require_areas(actor, "REPOSITION_PRIVILEGED_AREAS", "delete repositions")
    if reason is not None and not isinstance(reason, str):
        raise ValidationError("reason must be text")
    reason = (reason or "").strip()
    if len(reason) < MIN_DELETION_REASON_LENGTH:
        raise ValidationError(
            f"A deletion reason of at least {MIN_DELETION_REASON_LENGTH} characters is required"
        )

    def _op() -> Reposition:
        reposition = _locked(reposition_id)
        require_operation(reposition, "delete")

        _set_status(
            reposition,
            RepositionStatus.ELIMINADO,
            deleted_at=utcnow(),
            deleted_by=actor.id,
            deletion_reason=reason,
        )
        history_service.append_reposition_history(
            reposition_id=reposition.id,
            action=RepositionHistoryAction.DELETED,
            description=f"Reposición eliminada. Motivo: {reason}",
            user_id=actor.id,
        )
        if reposition.created_by != actor.id:
            notification_service.notify(
                reposition.created_by,
                NotificationType.REPOSITION_DELETED,
                "Reposición eliminada",
                f"La reposición {reposition.folio} fue eliminada. Motivo: {reason}",
                reposition_id=reposition.id,
            )
        return reposition

    return run_with_retry(_op)


# =============================================================================
# Reads
# =============================================================================

def list_repositions(actor, area=None, include_closed: bool = False) -> list[Reposition]:
    """
    Tickets visible to the actor, newest first.

    Scoped to `area` (or the actor's own area; admin sees every area).
    completado and eliminado tickets are hidden unless the actor is in a
    privileged area or include_closed is set.
    """
    query = db.session.query(Reposition)
    if area is not None:
        query = query.filter(Reposition.current_area == parse_enum(Area, area, "area"))
    elif not is_admin(actor):
        query = query.filter(Reposition.current_area == actor.area)

    if not include_closed and not in_areas(actor, "REPOSITION_PRIVILEGED_AREAS"):
        query = query.filter(Reposition.status.notin_(CLOSED_STATUSES))
    return query.order_by(Reposition.created_at.desc(), Reposition.id.desc()).all()


def get_all_repositions(include_deleted: bool = False) -> list[Reposition]:
    query = db.session.query(Reposition)
    if not include_deleted:
        query = query.filter(Reposition.status != RepositionStatus.ELIMINADO)
    return query.order_by(Reposition.created_at.desc(), Reposition.id.desc()).all()


def list_pending_approval() -> list[Reposition]:
    return (
        db.session.query(Reposition)
        .filter(Reposition.status == RepositionStatus.PENDIENTE)
        .order_by(Reposition.created_at.asc(), Reposition.id.asc())
        .all()
    )


def get_reposition_history(reposition_id: int) -> list:
    get_reposition(reposition_id)
    return history_service.reposition_history(reposition_id)
