# backend/taller/config.py
from __future__ import annotations
import os


def _areas_from_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///taller.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Orders enter the ledger here, all pieces at once
    ORDER_INTAKE_AREA = os.environ.get("ORDER_INTAKE_AREA", "corte")
    ORDER_CREATOR_AREAS = _areas_from_env("ORDER_CREATOR_AREAS", ("corte", "admin", "envios"))
    ORDER_COMPLETION_AREAS = _areas_from_env("ORDER_COMPLETION_AREAS", ("envios",))
    ORDER_DELETE_AREAS = _areas_from_env("ORDER_DELETE_AREAS", ("admin",))

    # Areas allowed to approve/reject new repositions
    REPOSITION_APPROVER_AREAS = _areas_from_env(
        "REPOSITION_APPROVER_AREAS", ("operaciones", "admin", "envios")
    )
    # Areas allowed to complete or delete repositions directly
    REPOSITION_PRIVILEGED_AREAS = _areas_from_env(
        "REPOSITION_PRIVILEGED_AREAS", ("admin", "envios")
    )

    # Order transfers must follow the downstream area flow
    ENFORCE_AREA_FLOW = os.environ.get("ENFORCE_AREA_FLOW", "true").lower() == "true"

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    SESSION_ABSOLUTE_HOURS = int(os.environ.get("SESSION_ABSOLUTE_HOURS", "24"))
    SESSION_IDLE_HOURS = int(os.environ.get("SESSION_IDLE_HOURS", "8"))

    REALTIME_QUEUE_SIZE = int(os.environ.get("REALTIME_QUEUE_SIZE", "100"))
    REALTIME_HEARTBEAT_SECONDS = int(os.environ.get("REALTIME_HEARTBEAT_SECONDS", "25"))
