# Overview: Read-only progress view of a reposition across the workshop areas.

from __future__ import annotations

from ..enums import Area, RepositionHistoryAction, RepositionStatus
from ..time_utils import to_utc_z
from . import history_service
from .reposition_service import get_reposition


TRACKING_SEQUENCE: tuple[Area, ...] = (
    Area.PATRONAJE,
    Area.CORTE,
    Area.BORDADO,
    Area.ENSAMBLE,
    Area.PLANCHA,
    Area.CALIDAD,
    Area.OPERACIONES,
)

# History actions that put the ticket physically in their to_area
_ARRIVALS = frozenset({RepositionHistoryAction.CREATED.value, RepositionHistoryAction.TRANSFER_ACCEPTED.value})


def compute_progress(completed: int, has_current: bool, total: int = len(TRACKING_SEQUENCE)) -> int:
    """Integer percentage of (completed + 0.5 * has_current) / total."""
    if total <= 0:
        return 0
    return int((completed + (0.5 if has_current else 0)) / total * 100)


def get_tracking(reposition_id: int) -> dict:
    """
    Step-by-step view over TRACKING_SEQUENCE, projected from history.

    A step is current when the ticket sits in that area, completed when the
    ticket arrived there before (creation or accepted transfer) and has since
    moved on, pending otherwise. A completado ticket reports 100%.
    """
    reposition = get_reposition(reposition_id)
    history = history_service.reposition_history(reposition.id)

    last_arrival = {}
    for entry in history:
        if entry.action in _ARRIVALS and entry.to_area is not None:
            last_arrival[entry.to_area] = entry

    finished = reposition.status == RepositionStatus.COMPLETADO
    steps = []
    completed = 0
    has_current = False
    for index, area in enumerate(TRACKING_SEQUENCE, start=1):
        arrival = last_arrival.get(area)
        if area == reposition.current_area and not finished:
            status = "current"
            has_current = True
        elif arrival is not None:
            status = "completed"
            completed += 1
        else:
            status = "pending"

        steps.append(
            {
                "id": index,
                "area": area.value,
                "status": status,
                "timestamp": to_utc_z(arrival.created_at) if arrival else None,
                "user": arrival.user.name if arrival and arrival.user else None,
                "notes": arrival.description if arrival else None,
            }
        )

    progress = 100 if finished else compute_progress(completed, has_current)
    return {
        "reposition": {
            "id": reposition.id,
            "folio": reposition.folio,
            "status": reposition.status.value,
            "current_area": reposition.current_area.value,
            "progress": progress,
        },
        "steps": steps,
        "history": [entry.to_dict() for entry in history],
    }
