# Overview: Atomic monthly folio sequences for repositions.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import FolioSequence, Reposition
from ..time_utils import utcnow
from .concurrency import run_with_retry


REPOSITION_FOLIO_BASE = "JN-REQ"
REPOSITION_FOLIO_PAD = 3


def reposition_prefix(now: datetime | None = None) -> str:
    """Monthly prefix, e.g. JN-REQ-03-25- for March 2025."""
    now = now or utcnow()
    return f"{REPOSITION_FOLIO_BASE}-{now.month:02d}-{now.year % 100:02d}-"


def format_folio(prefix: str, number: int) -> str:
    return f"{prefix}{number:0{REPOSITION_FOLIO_PAD}d}"


def _existing_high_water(prefix: str) -> int:
    """Highest counter already used under prefix by stored repositions."""
    folios = (
        db.session.query(Reposition.folio)
        .filter(Reposition.folio.like(f"{prefix}%"))
        .all()
    )
    highest = 0
    for (folio,) in folios:
        suffix = folio[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest


def _current_next(prefix: str) -> int:
    return (
        db.session.query(FolioSequence.next_number)
        .filter_by(prefix=prefix)
        .scalar()
    )


def next_reposition_folio(now: datetime | None = None) -> str:
    """
    Atomically allocate the next reposition folio for the month of `now`.

    The counter row for the month is bumped with a single UPDATE, so two
    concurrent creators never receive the same number. The first folio of a
    month creates the row, starting after any folio already stored under
    that prefix.

    Must be the first write of its transaction: a lost race on the month row
    rolls the session back before retrying the UPDATE.
    """
    prefix = reposition_prefix(now)

    def _op() -> str:
        stmt = (
            update(FolioSequence)
            .where(FolioSequence.prefix == prefix)
            .values(next_number=FolioSequence.next_number + 1)
        )

        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            return format_folio(prefix, _current_next(prefix) - 1)

        number = _existing_high_water(prefix) + 1
        db.session.add(FolioSequence(prefix=prefix, next_number=number + 1))
        try:
            db.session.flush()
            return format_folio(prefix, number)
        except IntegrityError:
            # Another creator inserted the month row first
            db.session.rollback()
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            db.session.flush()
            return format_folio(prefix, _current_next(prefix) - 1)

    return run_with_retry(_op)


def peek_next_reposition_folio(now: datetime | None = None) -> str:
    """The folio the next creation would receive. Allocates nothing."""
    prefix = reposition_prefix(now)
    current = _current_next(prefix)
    if current is None:
        current = _existing_high_water(prefix) + 1
    return format_folio(prefix, current)
