from __future__ import annotations

from ..extensions import db
from ..enums import Area, RepositionStatus, RepositionType, TransferStatus, Urgency
from ..time_utils import to_utc_z
from .types import enum_type


class Reposition(db.Model):
    """
    Rework / replacement ticket, independent of orders.

    STATE MACHINE:
        pendiente -> aprobado | rechazado
        aprobado  -> (transfers between areas) -> completado
        any non-terminal -> eliminado (soft delete, reason required)

    completado and eliminado are terminal. Deletion writes deleted_at and
    leaves completed_at untouched.
    """
    __tablename__ = "repositions"
    __table_args__ = (
        db.Index("ix_repositions_area_status", "current_area", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    folio = db.Column(db.String(32), nullable=False, unique=True, index=True)
    type = db.Column(enum_type(RepositionType, "reposition_type"), nullable=False)

    solicitante_nombre = db.Column(db.String(255), nullable=False)
    solicitante_area = db.Column(enum_type(Area, "reposition_solicitante_area"), nullable=False)
    fecha_solicitud = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    no_solicitud = db.Column(db.String(64), nullable=False)
    no_hoja = db.Column(db.String(64), nullable=True)

    causante_dano = db.Column(db.String(255), nullable=False)
    descripcion_suceso = db.Column(db.Text, nullable=False)

    modelo_prenda = db.Column(db.String(255), nullable=False)
    tela = db.Column(db.String(128), nullable=False)
    color = db.Column(db.String(128), nullable=False)
    tipo_pieza = db.Column(db.String(128), nullable=False)

    urgencia = db.Column(enum_type(Urgency, "reposition_urgency"), nullable=False)
    observaciones = db.Column(db.Text, nullable=True)

    current_area = db.Column(enum_type(Area, "reposition_current_area"), nullable=False)
    status = db.Column(
        enum_type(RepositionStatus, "reposition_status"),
        nullable=False,
        default=RepositionStatus.PENDIENTE,
        index=True,
    )

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    deleted_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deletion_reason = db.Column(db.Text, nullable=True)

    creator = db.relationship("User", foreign_keys=[created_by])
    pieces = db.relationship(
        "RepositionPiece",
        backref="reposition",
        lazy=True,
        order_by="RepositionPiece.id",
    )

    def __repr__(self) -> str:
        return f"<Reposition id={self.id} folio={self.folio!r} status={self.status.value if self.status else None}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "folio": self.folio,
            "type": self.type.value,
            "solicitante_nombre": self.solicitante_nombre,
            "solicitante_area": self.solicitante_area.value,
            "fecha_solicitud": to_utc_z(self.fecha_solicitud),
            "no_solicitud": self.no_solicitud,
            "no_hoja": self.no_hoja,
            "causante_dano": self.causante_dano,
            "descripcion_suceso": self.descripcion_suceso,
            "modelo_prenda": self.modelo_prenda,
            "tela": self.tela,
            "color": self.color,
            "tipo_pieza": self.tipo_pieza,
            "urgencia": self.urgencia.value,
            "observaciones": self.observaciones,
            "current_area": self.current_area.value,
            "status": self.status.value,
            "created_by": self.created_by,
            "approved_by": self.approved_by,
            "deleted_by": self.deleted_by,
            "created_at": to_utc_z(self.created_at),
            "approved_at": to_utc_z(self.approved_at),
            "completed_at": to_utc_z(self.completed_at),
            "deleted_at": to_utc_z(self.deleted_at),
            "deletion_reason": self.deletion_reason,
        }


class RepositionPiece(db.Model):
    """Size/quantity line of a reposition. Informational, not a ledger."""
    __tablename__ = "reposition_pieces"
    __table_args__ = (
        db.CheckConstraint("cantidad > 0", name="ck_reposition_pieces_cantidad_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reposition_id = db.Column(db.Integer, db.ForeignKey("repositions.id"), nullable=False, index=True)
    talla = db.Column(db.String(32), nullable=False)
    cantidad = db.Column(db.Integer, nullable=False)
    folio_original = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reposition_id": self.reposition_id,
            "talla": self.talla,
            "cantidad": self.cantidad,
            "folio_original": self.folio_original,
            "created_at": to_utc_z(self.created_at),
        }


class RepositionTransfer(db.Model):
    """Moves a whole reposition between areas. No quantities involved."""
    __tablename__ = "reposition_transfers"
    __table_args__ = (
        db.Index("ix_reposition_transfers_to_area_status", "to_area", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reposition_id = db.Column(db.Integer, db.ForeignKey("repositions.id"), nullable=False, index=True)
    from_area = db.Column(enum_type(Area, "reposition_transfer_from_area"), nullable=False)
    to_area = db.Column(enum_type(Area, "reposition_transfer_to_area"), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(
        enum_type(TransferStatus, "reposition_transfer_status"),
        nullable=False,
        default=TransferStatus.PENDING,
        index=True,
    )

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    reposition = db.relationship("Reposition", backref=db.backref("transfers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reposition_id": self.reposition_id,
            "from_area": self.from_area.value,
            "to_area": self.to_area.value,
            "notes": self.notes,
            "status": self.status.value,
            "created_by": self.created_by,
            "processed_by": self.processed_by,
            "created_at": to_utc_z(self.created_at),
            "processed_at": to_utc_z(self.processed_at),
        }


class RepositionHistory(db.Model):
    """Append-only audit trail per reposition."""
    __tablename__ = "reposition_history"
    __table_args__ = (
        db.Index("ix_reposition_history_reposition_created", "reposition_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reposition_id = db.Column(db.Integer, db.ForeignKey("repositions.id"), nullable=False, index=True)
    action = db.Column(db.String(32), nullable=False)
    description = db.Column(db.Text, nullable=False)
    from_area = db.Column(enum_type(Area, "reposition_history_from_area"), nullable=True)
    to_area = db.Column(enum_type(Area, "reposition_history_to_area"), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reposition_id": self.reposition_id,
            "action": self.action,
            "description": self.description,
            "from_area": self.from_area.value if self.from_area else None,
            "to_area": self.to_area.value if self.to_area else None,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "created_at": to_utc_z(self.created_at),
        }


class FolioSequence(db.Model):
    """
    Atomic per-prefix counters for human-readable folios.

    One row per monthly prefix (e.g. "JN-REQ-03-25-"); next_number is bumped
    with a single UPDATE so concurrent creators never share a number.
    """
    __tablename__ = "folio_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(32), nullable=False, unique=True, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prefix": self.prefix,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
