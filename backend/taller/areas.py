# Overview: Static area topology for order transfers.

from __future__ import annotations

from .enums import Area, require_exhaustive


# Physical production line, upstream first. Operaciones reviews work but is
# not a station pieces flow through; admin is a privileged pseudo-area.
PRODUCTION_SEQUENCE: tuple[Area, ...] = (
    Area.PATRONAJE,
    Area.CORTE,
    Area.BORDADO,
    Area.ENSAMBLE,
    Area.PLANCHA,
    Area.CALIDAD,
    Area.ENVIOS,
)

# Areas that can physically hold pieces or tickets
WORK_AREAS: frozenset[Area] = frozenset(a for a in Area if a is not Area.ADMIN)

TERMINAL_AREA = Area.ENVIOS


def _downstream(area: Area) -> frozenset[Area]:
    index = PRODUCTION_SEQUENCE.index(area)
    return frozenset(PRODUCTION_SEQUENCE[index + 1:])


_LEGAL_DESTINATIONS: dict[Area, frozenset[Area]] = require_exhaustive(
    {
        Area.PATRONAJE: _downstream(Area.PATRONAJE),
        Area.CORTE: _downstream(Area.CORTE),
        Area.BORDADO: _downstream(Area.BORDADO),
        Area.ENSAMBLE: _downstream(Area.ENSAMBLE),
        Area.PLANCHA: _downstream(Area.PLANCHA),
        Area.CALIDAD: _downstream(Area.CALIDAD),
        Area.ENVIOS: frozenset(),
        Area.OPERACIONES: frozenset(),
        Area.ADMIN: WORK_AREAS,
    },
    Area,
    "legal destinations",
)


def legal_destinations(area: Area) -> frozenset[Area]:
    """
    Destinations a user of `area` may pick when sending order pieces.

    This is guidance for the client. Piece conservation never depends on it;
    the ledger enforces balances on its own.
    """
    return _LEGAL_DESTINATIONS[Area(area)]


def is_legal_transfer(from_area: Area, to_area: Area) -> bool:
    return Area(to_area) in legal_destinations(from_area)


def topology() -> dict[str, list[str]]:
    """Serializable view of the topology, ordered along the production line."""
    order = {area: i for i, area in enumerate(PRODUCTION_SEQUENCE)}

    def _key(area: Area) -> tuple[int, str]:
        return (order.get(area, len(order)), area.value)

    return {
        area.value: [dest.value for dest in sorted(dests, key=_key)]
        for area, dests in sorted(_LEGAL_DESTINATIONS.items(), key=lambda item: _key(item[0]))
    }
