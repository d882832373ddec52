from __future__ import annotations

from ..extensions import db
from ..enums import Area, OrderStatus, TransferStatus
from ..time_utils import to_utc_z
from .types import enum_type


class Order(db.Model):
    """
    One production job.

    total_piezas is fixed at creation. Where those pieces currently sit is
    the OrderPiece ledger; current_area is a denormalized copy that is only
    refreshed when every piece has consolidated into a single area.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("total_piezas > 0", name="ck_orders_total_piezas_positive"),
        db.Index("ix_orders_status_area", "status", "current_area"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    folio = db.Column(db.String(64), nullable=False, unique=True, index=True)

    cliente_hotel = db.Column(db.String(255), nullable=False)
    no_solicitud = db.Column(db.String(64), nullable=False)
    no_hoja = db.Column(db.String(64), nullable=True)
    modelo = db.Column(db.String(255), nullable=False)
    tipo_prenda = db.Column(db.String(255), nullable=False)
    color = db.Column(db.String(128), nullable=False)
    tela = db.Column(db.String(128), nullable=False)

    total_piezas = db.Column(db.Integer, nullable=False)
    current_area = db.Column(enum_type(Area, "order_current_area"), nullable=False, default=Area.CORTE)
    status = db.Column(enum_type(OrderStatus, "order_status"), nullable=False, default=OrderStatus.ACTIVE, index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    creator = db.relationship("User", foreign_keys=[created_by])

    def __repr__(self) -> str:
        return f"<Order id={self.id} folio={self.folio!r} pieces={self.total_piezas}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "folio": self.folio,
            "cliente_hotel": self.cliente_hotel,
            "no_solicitud": self.no_solicitud,
            "no_hoja": self.no_hoja,
            "modelo": self.modelo,
            "tipo_prenda": self.tipo_prenda,
            "color": self.color,
            "tela": self.tela,
            "total_piezas": self.total_piezas,
            "current_area": self.current_area.value,
            "status": self.status.value,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
        }


class OrderPiece(db.Model):
    """
    Piece ledger row: how many pieces of an order sit in one area.

    Rows are deleted when they reach zero, never kept at zero. For every
    order the rows sum to Order.total_piezas.
    """
    __tablename__ = "order_pieces"
    __table_args__ = (
        db.UniqueConstraint("order_id", "area", name="uq_order_pieces_order_area"),
        db.CheckConstraint("pieces > 0", name="ck_order_pieces_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    area = db.Column(enum_type(Area, "order_piece_area"), nullable=False)
    pieces = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "area": self.area.value,
            "pieces": self.pieces,
            "updated_at": to_utc_z(self.updated_at),
        }


class Transfer(db.Model):
    """
    Request to move part of an order from one area to another.

    LIFECYCLE:
    1. pending: requested by the area holding the pieces
    2. accepted: destination took the pieces (ledger moved)
    3. rejected: destination refused; ledger untouched
    Resolved exactly once.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.CheckConstraint("pieces > 0", name="ck_transfers_pieces_positive"),
        db.Index("ix_transfers_to_area_status", "to_area", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    from_area = db.Column(enum_type(Area, "transfer_from_area"), nullable=False)
    to_area = db.Column(enum_type(Area, "transfer_to_area"), nullable=False)
    pieces = db.Column(db.Integer, nullable=False)
    status = db.Column(enum_type(TransferStatus, "transfer_status"), nullable=False, default=TransferStatus.PENDING, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    order = db.relationship("Order", backref=db.backref("transfers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "from_area": self.from_area.value,
            "to_area": self.to_area.value,
            "pieces": self.pieces,
            "status": self.status.value,
            "notes": self.notes,
            "created_by": self.created_by,
            "processed_by": self.processed_by,
            "created_at": to_utc_z(self.created_at),
            "processed_at": to_utc_z(self.processed_at),
        }


class OrderHistory(db.Model):
    """Append-only audit trail per order. Removed only with the order itself."""
    __tablename__ = "order_history"
    __table_args__ = (
        db.Index("ix_order_history_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    action = db.Column(db.String(32), nullable=False)
    description = db.Column(db.Text, nullable=False)
    from_area = db.Column(enum_type(Area, "order_history_from_area"), nullable=True)
    to_area = db.Column(enum_type(Area, "order_history_to_area"), nullable=True)
    pieces = db.Column(db.Integer, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "action": self.action,
            "description": self.description,
            "from_area": self.from_area.value if self.from_area else None,
            "to_area": self.to_area.value if self.to_area else None,
            "pieces": self.pieces,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "created_at": to_utc_z(self.created_at),
        }
