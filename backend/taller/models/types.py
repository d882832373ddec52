# Overview: Column type helpers shared by the model modules.

from __future__ import annotations

from ..extensions import db
from ..enums import enum_values


def enum_type(enum_cls, name: str):
    """
    Store an Enum by value as a bounded VARCHAR with a CHECK constraint.

    Loaded attributes come back as enum members.
    """
    return db.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=32,
        values_callable=enum_values,
        validate_strings=True,
    )
