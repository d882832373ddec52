# Overview: Notification sink; queued during a transition, delivered after commit.

"""
Fire-and-forget notifications.

Services call notify()/notify_users()/notify_areas() while a transition is
in flight. Nothing is written at that point: the intent is queued on the
session and dropped automatically if the transaction rolls back.

After the route commits the transition it calls dispatch_pending(), which
persists the inbox rows in their own transaction and then publishes realtime
invalidation events. A failure there is logged and swallowed so it never
undoes the transition that triggered it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app
from sqlalchemy import event, update

from ..extensions import db
from ..enums import Area, NotificationType
from ..errors import NotFoundError
from ..models import Notification, User


PENDING_KEY = "taller.pending_notifications"


@dataclass(frozen=True)
class PendingNotification:
    user_id: int
    type: NotificationType
    title: str
    message: str
    order_id: int | None = None
    reposition_id: int | None = None
    transfer_id: int | None = None

    @property
    def topics(self) -> set[str]:
        topics = {"notifications"}
        if self.order_id is not None:
            topics.update({"orders", "transfers"})
        if self.reposition_id is not None:
            topics.add("repositions")
        return topics


@event.listens_for(db.session, "after_soft_rollback")
def _drop_pending_on_rollback(session, previous_transaction):
    session.info.pop(PENDING_KEY, None)


def _queue() -> list[PendingNotification]:
    return db.session.info.setdefault(PENDING_KEY, [])


def notify(
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    *,
    order_id: int | None = None,
    reposition_id: int | None = None,
    transfer_id: int | None = None,
) -> None:
    """Queue one notification for delivery after the current transaction commits."""
    _queue().append(
        PendingNotification(
            user_id=user_id,
            type=NotificationType(type),
            title=title,
            message=message,
            order_id=order_id,
            reposition_id=reposition_id,
            transfer_id=transfer_id,
        )
    )


def notify_users(user_ids: Iterable[int | None], type: NotificationType, title: str, message: str, *, exclude_user_id: int | None = None, **refs) -> int:
    """Queue the same notification for several users, once each."""
    seen: set[int] = set()
    for user_id in user_ids:
        if user_id is None or user_id == exclude_user_id or user_id in seen:
            continue
        seen.add(user_id)
        notify(user_id, type, title, message, **refs)
    return len(seen)


def users_in_areas(areas: Iterable[Area]) -> list[User]:
    areas = [Area(a) for a in areas]
    if not areas:
        return []
    return (
        db.session.query(User)
        .filter(User.area.in_(areas), User.is_active.is_(True))
        .order_by(User.id)
        .all()
    )


def notify_areas(areas: Iterable[Area], type: NotificationType, title: str, message: str, *, exclude_user_id: int | None = None, **refs) -> int:
    return notify_users(
        (u.id for u in users_in_areas(areas)),
        type,
        title,
        message,
        exclude_user_id=exclude_user_id,
        **refs,
    )


def completion_approvers() -> list[User]:
    """Admins plus anyone explicitly flagged to sign off reposition completion."""
    return (
        db.session.query(User)
        .filter(
            User.is_active.is_(True),
            db.or_(User.area == Area.ADMIN, User.can_approve_completion.is_(True)),
        )
        .order_by(User.id)
        .all()
    )


def pending() -> list[PendingNotification]:
    return list(db.session.info.get(PENDING_KEY, []))


def discard_pending() -> int:
    return len(db.session.info.pop(PENDING_KEY, []))


def dispatch_pending() -> list[Notification]:
    """
    Persist queued notifications and broadcast them. Call after commit.

    Returns the stored rows; an empty list when nothing was queued or the
    delivery failed.
    """
    items: list[PendingNotification] = db.session.info.pop(PENDING_KEY, [])
    if not items:
        return []

    try:
        rows = [
            Notification(
                user_id=item.user_id,
                type=item.type,
                title=item.title,
                message=item.message,
                order_id=item.order_id,
                reposition_id=item.reposition_id,
                transfer_id=item.transfer_id,
            )
            for item in items
        ]
        db.session.add_all(rows)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.warning("Failed to store %d notifications", len(items), exc_info=True)
        return []

    _broadcast(items, rows)
    return rows


def _broadcast(items: list[PendingNotification], rows: list[Notification]) -> None:
    registry = current_app.extensions.get("realtime")
    if registry is None:
        return
    try:
        topics: set[str] = set()
        for item, row in zip(items, rows):
            topics |= item.topics
            registry.publish(
                {"type": "notification", "notification": row.to_dict()},
                user_ids={item.user_id},
            )
        registry.publish({"type": "invalidate", "topics": sorted(topics)})
    except Exception:
        current_app.logger.warning("Realtime broadcast failed", exc_info=True)


# =============================================================================
# Inbox reads
# =============================================================================

def list_for_user(user_id: int, *, unread_only: bool = False, limit: int = 100) -> list[Notification]:
    query = db.session.query(Notification).filter_by(user_id=user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(user_id: int) -> int:
    return (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .count()
    )


def mark_read(notification_id: int, user: User) -> Notification:
    notification = db.session.query(Notification).filter_by(id=notification_id, user_id=user.id).first()
    if not notification:
        raise NotFoundError(f"Notification {notification_id} not found")
    notification.read = True
    db.session.flush()
    return notification


def mark_all_read(user: User) -> int:
    result = db.session.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount
