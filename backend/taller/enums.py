# Overview: Closed value sets for areas, statuses and tags stored on the models.

"""
Every string union of the workshop domain is a closed Enum here.

Transition tables elsewhere are keyed by these enums and checked with
require_exhaustive() at import time, so a new member fails fast until
every table that consumes it has been revisited.
"""

from __future__ import annotations

from enum import Enum


class Area(str, Enum):
    PATRONAJE = "patronaje"
    CORTE = "corte"
    BORDADO = "bordado"
    ENSAMBLE = "ensamble"
    PLANCHA = "plancha"
    CALIDAD = "calidad"
    OPERACIONES = "operaciones"
    ENVIOS = "envios"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class TransferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RepositionType(str, Enum):
    REPOSICION = "repocision"
    REPROCESO = "reproceso"


class Urgency(str, Enum):
    URGENTE = "urgente"
    INTERMEDIO = "intermedio"
    POCO_URGENTE = "poco_urgente"


class RepositionStatus(str, Enum):
    PENDIENTE = "pendiente"
    APROBADO = "aprobado"
    RECHAZADO = "rechazado"
    EN_PROCESO = "en_proceso"
    COMPLETADO = "completado"
    ELIMINADO = "eliminado"


class OrderHistoryAction(str, Enum):
    CREATED = "created"
    TRANSFER_CREATED = "transfer_created"
    TRANSFER_ACCEPTED = "transfer_accepted"
    TRANSFER_REJECTED = "transfer_rejected"
    COMPLETED = "completed"


class RepositionHistoryAction(str, Enum):
    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"
    TRANSFER_REQUESTED = "transfer_requested"
    TRANSFER_ACCEPTED = "transfer_accepted"
    TRANSFER_REJECTED = "transfer_rejected"
    COMPLETION_REQUESTED = "completion_requested"
    COMPLETED = "completed"
    DELETED = "deleted"


class NotificationType(str, Enum):
    TRANSFER_REQUEST = "transfer_request"
    TRANSFER_ACCEPTED = "transfer_accepted"
    TRANSFER_REJECTED = "transfer_rejected"
    ORDER_COMPLETED = "order_completed"
    NEW_REPOSITION = "new_reposition"
    REPOSITION_APPROVED = "reposition_approved"
    REPOSITION_REJECTED = "reposition_rejected"
    REPOSITION_TRANSFER = "reposition_transfer"
    REPOSITION_TRANSFER_ACCEPTED = "reposition_transfer_accepted"
    REPOSITION_TRANSFER_REJECTED = "reposition_transfer_rejected"
    COMPLETION_APPROVAL_NEEDED = "completion_approval_needed"
    REPOSITION_COMPLETED = "reposition_completed"
    REPOSITION_DELETED = "reposition_deleted"


def enum_values(enum_cls) -> list[str]:
    """Stored values for a SQLAlchemy Enum column (values, not member names)."""
    return [member.value for member in enum_cls]


def require_exhaustive(table: dict, enum_cls, name: str) -> dict:
    """Fail at import time if a table keyed by enum_cls misses a member."""
    missing = set(enum_cls) - set(table)
    if missing:
        names = ", ".join(sorted(m.value for m in missing))
        raise RuntimeError(f"{name} has no entry for: {names}")
    return table


def parse_enum(enum_cls, value, field: str):
    """Coerce user input into enum_cls, raising ValidationError on unknown values."""
    from .errors import ValidationError

    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(enum_values(enum_cls))
        raise ValidationError(f"Invalid {field} {value!r}. Must be one of: {allowed}")
