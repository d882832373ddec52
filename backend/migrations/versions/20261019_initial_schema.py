"""Initial taller schema: users, orders with piece ledger, repositions, notifications

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


AREAS = ("patronaje", "corte", "bordado", "ensamble", "plancha", "calidad", "operaciones", "envios", "admin")
ORDER_STATUSES = ("active", "completed")
TRANSFER_STATUSES = ("pending", "accepted", "rejected")
REPOSITION_TYPES = ("repocision", "reproceso")
URGENCIES = ("urgente", "intermedio", "poco_urgente")
REPOSITION_STATUSES = ("pendiente", "aprobado", "rechazado", "en_proceso", "completado", "eliminado")
NOTIFICATION_TYPES = (
    "transfer_request",
    "transfer_accepted",
    "transfer_rejected",
    "order_completed",
    "new_reposition",
    "reposition_approved",
    "reposition_rejected",
    "reposition_transfer",
    "reposition_transfer_accepted",
    "reposition_transfer_rejected",
    "completion_approval_needed",
    "reposition_completed",
    "reposition_deleted",
)


def _enum(values, name):
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True, length=32)


def _now():
    return sa.text("(CURRENT_TIMESTAMP)")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("area", _enum(AREAS, "user_area"), nullable=False),
        sa.Column("can_approve_completion", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_username", ["username"], unique=True)
        batch_op.create_index("ix_users_area", ["area"], unique=False)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(255), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_session_tokens_token_hash", ["token_hash"], unique=True)
        batch_op.create_index("ix_session_tokens_expires_at", ["expires_at"], unique=False)
        batch_op.create_index("ix_session_tokens_is_revoked", ["is_revoked"], unique=False)
        batch_op.create_index("ix_session_tokens_user_active", ["user_id", "is_revoked"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("folio", sa.String(64), nullable=False),
        sa.Column("cliente_hotel", sa.String(255), nullable=False),
        sa.Column("no_solicitud", sa.String(64), nullable=False),
        sa.Column("no_hoja", sa.String(64), nullable=True),
        sa.Column("modelo", sa.String(255), nullable=False),
        sa.Column("tipo_prenda", sa.String(255), nullable=False),
        sa.Column("color", sa.String(128), nullable=False),
        sa.Column("tela", sa.String(128), nullable=False),
        sa.Column("total_piezas", sa.Integer(), nullable=False),
        sa.Column("current_area", _enum(AREAS, "order_current_area"), nullable=False),
        sa.Column("status", _enum(ORDER_STATUSES, "order_status"), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("total_piezas > 0", name="ck_orders_total_piezas_positive"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_folio", ["folio"], unique=True)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_orders_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_orders_status_area", ["status", "current_area"], unique=False)

    op.create_table(
        "order_pieces",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("area", _enum(AREAS, "order_piece_area"), nullable=False),
        sa.Column("pieces", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.CheckConstraint("pieces > 0", name="ck_order_pieces_positive"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", "area", name="uq_order_pieces_order_area"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_pieces", schema=None) as batch_op:
        batch_op.create_index("ix_order_pieces_order_id", ["order_id"], unique=False)

    op.create_table(
        "transfers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("from_area", _enum(AREAS, "transfer_from_area"), nullable=False),
        sa.Column("to_area", _enum(AREAS, "transfer_to_area"), nullable=False),
        sa.Column("pieces", sa.Integer(), nullable=False),
        sa.Column("status", _enum(TRANSFER_STATUSES, "transfer_status"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("processed_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("pieces > 0", name="ck_transfers_pieces_positive"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["processed_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("transfers", schema=None) as batch_op:
        batch_op.create_index("ix_transfers_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_transfers_status", ["status"], unique=False)
        batch_op.create_index("ix_transfers_to_area_status", ["to_area", "status"], unique=False)

    op.create_table(
        "order_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("from_area", _enum(AREAS, "order_history_from_area"), nullable=True),
        sa.Column("to_area", _enum(AREAS, "order_history_to_area"), nullable=True),
        sa.Column("pieces", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_history", schema=None) as batch_op:
        batch_op.create_index("ix_order_history_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_order_history_order_created", ["order_id", "created_at"], unique=False)

    op.create_table(
        "repositions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("folio", sa.String(32), nullable=False),
        sa.Column("type", _enum(REPOSITION_TYPES, "reposition_type"), nullable=False),
        sa.Column("solicitante_nombre", sa.String(255), nullable=False),
        sa.Column("solicitante_area", _enum(AREAS, "reposition_solicitante_area"), nullable=False),
        sa.Column("fecha_solicitud", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("no_solicitud", sa.String(64), nullable=False),
        sa.Column("no_hoja", sa.String(64), nullable=True),
        sa.Column("causante_dano", sa.String(255), nullable=False),
        sa.Column("descripcion_suceso", sa.Text(), nullable=False),
        sa.Column("modelo_prenda", sa.String(255), nullable=False),
        sa.Column("tela", sa.String(128), nullable=False),
        sa.Column("color", sa.String(128), nullable=False),
        sa.Column("tipo_pieza", sa.String(128), nullable=False),
        sa.Column("urgencia", _enum(URGENCIES, "reposition_urgency"), nullable=False),
        sa.Column("observaciones", sa.Text(), nullable=True),
        sa.Column("current_area", _enum(AREAS, "reposition_current_area"), nullable=False),
        sa.Column("status", _enum(REPOSITION_STATUSES, "reposition_status"), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("deleted_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deletion_reason", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["approved_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["deleted_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("repositions", schema=None) as batch_op:
        batch_op.create_index("ix_repositions_folio", ["folio"], unique=True)
        batch_op.create_index("ix_repositions_status", ["status"], unique=False)
        batch_op.create_index("ix_repositions_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_repositions_area_status", ["current_area", "status"], unique=False)

    op.create_table(
        "reposition_pieces",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("reposition_id", sa.Integer(), nullable=False),
        sa.Column("talla", sa.String(32), nullable=False),
        sa.Column("cantidad", sa.Integer(), nullable=False),
        sa.Column("folio_original", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.CheckConstraint("cantidad > 0", name="ck_reposition_pieces_cantidad_positive"),
        sa.ForeignKeyConstraint(["reposition_id"], ["repositions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("reposition_pieces", schema=None) as batch_op:
        batch_op.create_index("ix_reposition_pieces_reposition_id", ["reposition_id"], unique=False)

    op.create_table(
        "reposition_transfers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("reposition_id", sa.Integer(), nullable=False),
        sa.Column("from_area", _enum(AREAS, "reposition_transfer_from_area"), nullable=False),
        sa.Column("to_area", _enum(AREAS, "reposition_transfer_to_area"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", _enum(TRANSFER_STATUSES, "reposition_transfer_status"), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("processed_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["reposition_id"], ["repositions.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["processed_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("reposition_transfers", schema=None) as batch_op:
        batch_op.create_index("ix_reposition_transfers_reposition_id", ["reposition_id"], unique=False)
        batch_op.create_index("ix_reposition_transfers_status", ["status"], unique=False)
        batch_op.create_index("ix_reposition_transfers_to_area_status", ["to_area", "status"], unique=False)

    op.create_table(
        "reposition_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("reposition_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("from_area", _enum(AREAS, "reposition_history_from_area"), nullable=True),
        sa.Column("to_area", _enum(AREAS, "reposition_history_to_area"), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["reposition_id"], ["repositions.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("reposition_history", schema=None) as batch_op:
        batch_op.create_index("ix_reposition_history_reposition_id", ["reposition_id"], unique=False)
        batch_op.create_index(
            "ix_reposition_history_reposition_created", ["reposition_id", "created_at"], unique=False
        )

    op.create_table(
        "folio_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("prefix", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("folio_sequences", schema=None) as batch_op:
        batch_op.create_index("ix_folio_sequences_prefix", ["prefix"], unique=True)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", _enum(NOTIFICATION_TYPES, "notification_type"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("transfer_id", sa.Integer(), nullable=True),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("reposition_id", sa.Integer(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("notifications", schema=None) as batch_op:
        batch_op.create_index("ix_notifications_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_notifications_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_notifications_reposition_id", ["reposition_id"], unique=False)
        batch_op.create_index("ix_notifications_user_read", ["user_id", "read"], unique=False)


def downgrade():
    op.drop_table("notifications")
    op.drop_table("folio_sequences")
    op.drop_table("reposition_history")
    op.drop_table("reposition_transfers")
    op.drop_table("reposition_pieces")
    op.drop_table("repositions")
    op.drop_table("order_history")
    op.drop_table("transfers")
    op.drop_table("order_pieces")
    op.drop_table("orders")
    op.drop_table("session_tokens")
    op.drop_table("users")
