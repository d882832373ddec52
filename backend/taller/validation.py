from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Enum, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .enums import parse_enum
from .errors import ValidationError


@dataclass(frozen=True)
class FieldPolicy:
    """
    Which payload keys a create operation accepts.

    - required: must be present and non-blank
    - optional: may be omitted or null
    Anything else is ignored by clean_payload().
    """
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def strict_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Coerce to int, rejecting floats, bools and scientific notation.

    Strings of plain digits are accepted since form clients send them.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            number = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return number


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_value(col, value: Any):
    coltype = col.type

    if isinstance(coltype, Enum) and coltype.enum_class is not None:
        return parse_enum(coltype.enum_class, value, col.key)

    if isinstance(coltype, Integer):
        return strict_int(value, col.key)

    if isinstance(coltype, (String, Text)):
        val = str(value).strip()
        if isinstance(coltype, String) and coltype.length and len(val) > coltype.length:
            raise ValidationError(f"{col.key} exceeds max length {coltype.length}")
        return val

    return value


def clean_payload(*, model: DeclarativeMeta, payload: Any, policy: FieldPolicy) -> dict:
    """
    Validate and normalize an incoming JSON object against model columns.

    Returns only the policy's fields, coerced to the column types. Blank
    required strings and missing required keys are ValidationError.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    missing = [
        key for key in policy.required
        if payload.get(key) is None or (isinstance(payload.get(key), str) and not payload[key].strip())
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    cleaned: dict = {}

    for key in policy.required + policy.optional:
        if key not in payload:
            continue
        raw = payload[key]
        if raw is None or (isinstance(raw, str) and not raw.strip() and key in policy.optional):
            cleaned[key] = None
            continue
        cleaned[key] = _coerce_value(cols[key], raw)

    return cleaned
