# Overview: Area-claim checks the services apply to the actor they receive.

from __future__ import annotations

from flask import current_app

from .enums import Area
from .errors import AuthorizationError


def configured_areas(key: str) -> frozenset[Area]:
    """Area set from a config knob such as REPOSITION_APPROVER_AREAS."""
    return frozenset(Area(value) for value in current_app.config[key])


def is_admin(actor) -> bool:
    return actor.area == Area.ADMIN


def in_areas(actor, key: str) -> bool:
    return actor.area in configured_areas(key)


def require_areas(actor, key: str, action: str) -> None:
    """Raise AuthorizationError unless the actor's area is listed under config[key]."""
    if actor is None or not getattr(actor, "is_active", True):
        raise AuthorizationError("Authenticated active user required")
    if not in_areas(actor, key):
        allowed = ", ".join(sorted(a.value for a in configured_areas(key)))
        raise AuthorizationError(f"Area {actor.area.value} cannot {action} (allowed: {allowed})")


def require_area_match(actor, area: Area, action: str) -> None:
    """Actor must belong to `area`; admin acts on behalf of every area."""
    if is_admin(actor):
        return
    if actor.area != Area(area):
        raise AuthorizationError(f"Only {Area(area).value} users can {action}")
