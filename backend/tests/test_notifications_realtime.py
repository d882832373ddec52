"""
Notification delivery and realtime broadcast tests.

Verifies:
- Notifications queue during a transition and persist only after commit
- A rollback drops queued notifications
- Stored notifications are pushed to the recipient's live connections
- The connection registry drops events for full queues and ends streams on close
"""

import pytest

from taller.enums import Area, NotificationType
from taller.errors import NotFoundError
from taller.models import Notification
from taller.realtime import ConnectionRegistry
from taller.routes.common import commit_and_notify
from taller.services import notification_service, transfer_service


# =============================================================================
# QUEUE AND DISPATCH
# =============================================================================


class TestNotificationQueue:

    def test_nothing_stored_before_dispatch(self, db_session, users):
        notification_service.notify(users["corte"].id, NotificationType.ORDER_COMPLETED, "t", "m", order_id=1)
        db_session.commit()

        assert db_session.query(Notification).count() == 0
        assert len(notification_service.pending()) == 1

        rows = notification_service.dispatch_pending()
        assert [r.user_id for r in rows] == [users["corte"].id]
        assert notification_service.pending() == []
        assert db_session.query(Notification).count() == 1

    def test_rollback_drops_queue(self, db_session, users, make_order):
        order = make_order()
        transfer_service.request_transfer(order.id, users["corte"], Area.BORDADO, 10)
        assert len(notification_service.pending()) == 1

        db_session.rollback()

        assert notification_service.pending() == []
        assert notification_service.dispatch_pending() == []
        assert db_session.query(Notification).count() == 0

    def test_notify_users_dedupes_and_excludes(self, db_session, users):
        a, b = users["corte"].id, users["bordado"].id
        count = notification_service.notify_users(
            [a, b, a, None], NotificationType.NEW_REPOSITION, "t", "m", exclude_user_id=b, reposition_id=3
        )
        assert count == 1
        assert [(n.user_id, n.reposition_id) for n in notification_service.pending()] == [(a, 3)]

    def test_inactive_users_are_skipped(self, db_session, users):
        users["plancha"].is_active = False
        db_session.commit()
        assert notification_service.users_in_areas([Area.PLANCHA]) == []

    def test_completion_approvers(self, db_session, users, approver):
        ids = {u.id for u in notification_service.completion_approvers()}
        assert ids == {users["admin"].id, approver.id}

    def test_topics(self):
        item = notification_service.PendingNotification(
            user_id=1, type=NotificationType.TRANSFER_REQUEST, title="t", message="m", order_id=2, transfer_id=3
        )
        assert item.topics == {"notifications", "orders", "transfers"}


# =============================================================================
# INBOX
# =============================================================================


class TestInbox:

    def test_mark_read(self, db_session, users):
        notification_service.notify(users["corte"].id, NotificationType.ORDER_COMPLETED, "t", "m")
        notification_service.notify(users["corte"].id, NotificationType.ORDER_COMPLETED, "t2", "m2")
        rows = notification_service.dispatch_pending()

        assert notification_service.unread_count(users["corte"].id) == 2
        notification_service.mark_read(rows[0].id, users["corte"])
        db_session.commit()
        assert notification_service.unread_count(users["corte"].id) == 1
        assert len(notification_service.list_for_user(users["corte"].id, unread_only=True)) == 1

        assert notification_service.mark_all_read(users["corte"]) == 1
        db_session.commit()
        assert notification_service.unread_count(users["corte"].id) == 0

    def test_cannot_read_someone_elses(self, db_session, users):
        notification_service.notify(users["corte"].id, NotificationType.ORDER_COMPLETED, "t", "m")
        rows = notification_service.dispatch_pending()
        with pytest.raises(NotFoundError):
            notification_service.mark_read(rows[0].id, users["bordado"])


# =============================================================================
# REALTIME
# =============================================================================


class TestBroadcast:

    def test_dispatch_pushes_to_recipient(self, app, db_session, users, make_order):
        registry = app.extensions["realtime"]
        bordado_sub = registry.subscribe(users["bordado"].id, "bordado")
        corte_sub = registry.subscribe(users["corte"].id, "corte")
        try:
            order = make_order()
            transfer_service.request_transfer(order.id, users["corte"], Area.BORDADO, 10)
            commit_and_notify()

            event = bordado_sub.queue.get_nowait()
            assert event["type"] == "notification"
            assert event["notification"]["type"] == "transfer_request"
            assert event["notification"]["order_id"] == order.id

            invalidate = bordado_sub.queue.get_nowait()
            assert invalidate == {"type": "invalidate", "topics": ["notifications", "orders", "transfers"]}

            # corte only sees the invalidation
            assert corte_sub.queue.get_nowait()["type"] == "invalidate"
            assert corte_sub.queue.empty()
        finally:
            registry.unsubscribe(bordado_sub)
            registry.unsubscribe(corte_sub)

    def test_rolled_back_transition_is_never_broadcast(self, app, db_session, users, make_order):
        registry = app.extensions["realtime"]
        order = make_order()
        sub = registry.subscribe(users["bordado"].id, "bordado")
        try:
            transfer_service.request_transfer(order.id, users["corte"], Area.BORDADO, 10)
            db_session.rollback()
            notification_service.dispatch_pending()
            assert sub.queue.empty()
        finally:
            registry.unsubscribe(sub)


class TestConnectionRegistry:

    def test_publish_filters_by_user(self):
        registry = ConnectionRegistry()
        registry.open()
        one = registry.subscribe(1, "corte")
        two = registry.subscribe(2, "bordado")

        assert registry.publish({"type": "x"}, user_ids={2}) == 1
        assert one.queue.empty()
        assert two.queue.get_nowait() == {"type": "x"}
        assert registry.publish({"type": "y"}) == 2
        assert registry.connection_count() == 2

    def test_full_queue_drops_event(self):
        registry = ConnectionRegistry(queue_size=1)
        registry.open()
        registry.subscribe(1, "corte")

        assert registry.publish({"n": 1}) == 1
        assert registry.publish({"n": 2}) == 0
        assert registry.dropped == 1

    def test_close_ends_streams(self):
        registry = ConnectionRegistry()
        registry.open()
        sub = registry.subscribe(1, "corte")
        registry.publish({"n": 1})

        registry.close()

        assert list(sub.events(heartbeat_seconds=0.01)) == [{"n": 1}]
        assert registry.connection_count() == 0
        assert registry.publish({"n": 2}) == 0
        with pytest.raises(RuntimeError):
            registry.subscribe(1, "corte")

    def test_heartbeat_when_idle(self):
        registry = ConnectionRegistry()
        registry.open()
        sub = registry.subscribe(1, "corte")
        events = sub.events(heartbeat_seconds=0.01)
        assert next(events) is None

        registry.unsubscribe(sub)
        assert list(events) == []

    def test_init_app_registers_and_opens(self, app):
        registry = app.extensions["realtime"]
        assert isinstance(registry, ConnectionRegistry)
        assert registry.is_open
