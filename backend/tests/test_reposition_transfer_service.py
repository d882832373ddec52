"""
Reposition transfer tests: whole-ticket moves between areas.
"""

import pytest

from taller.enums import Area, NotificationType, RepositionStatus, TransferStatus
from taller.errors import AlreadyProcessed, AuthorizationError, NotFoundError, ValidationError
from taller.models import RepositionTransfer
from taller.routes.common import commit_and_notify
from taller.services import notification_service, reposition_service, reposition_transfer_service


def _request(reposition, actor, to_area, **kwargs):
    transfer = reposition_transfer_service.request_reposition_transfer(reposition.id, actor, to_area, **kwargs)
    commit_and_notify()
    return transfer


class TestRequestRepositionTransfer:

    def test_transfer_before_approval_fails(self, db_session, users, make_reposition):
        reposition = make_reposition()
        with pytest.raises(ValidationError):
            reposition_transfer_service.request_reposition_transfer(reposition.id, users["corte"], Area.BORDADO)
        db_session.rollback()

    @pytest.mark.parametrize("actor_key", ["corte", "admin"])
    @pytest.mark.parametrize(
        "status,error",
        [
            (RepositionStatus.RECHAZADO, ValidationError),
            (RepositionStatus.COMPLETADO, AlreadyProcessed),
            (RepositionStatus.ELIMINADO, AlreadyProcessed),
        ],
    )
    def test_only_approved_tickets_move(self, db_session, users, make_reposition, status, error, actor_key):
        if status == RepositionStatus.RECHAZADO:
            reposition = make_reposition()
            reposition_service.approve_reposition(reposition.id, status, users["operaciones"])
        elif status == RepositionStatus.COMPLETADO:
            reposition = make_reposition(approved=True)
            reposition_service.complete_reposition(reposition.id, users["admin"])
        else:
            reposition = make_reposition(approved=True)
            reposition_service.delete_reposition(reposition.id, users["admin"], "Pedido duplicado por error")
        commit_and_notify()
        assert reposition.status == status

        with pytest.raises(error):
            reposition_transfer_service.request_reposition_transfer(reposition.id, users[actor_key], Area.BORDADO)
        db_session.rollback()

        assert db_session.query(RepositionTransfer).filter_by(reposition_id=reposition.id).count() == 0

    def test_request_notifies_destination(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        transfer = reposition_transfer_service.request_reposition_transfer(
            reposition.id, users["corte"], "bordado", notes="Urge"
        )
        queued = notification_service.pending()
        commit_and_notify()

        assert transfer.status == TransferStatus.PENDING
        assert transfer.from_area == Area.CORTE
        assert transfer.notes == "Urge"
        assert [(n.user_id, n.type) for n in queued] == [
            (users["bordado"].id, NotificationType.REPOSITION_TRANSFER)
        ]

    def test_only_one_pending_transfer(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        _request(reposition, users["corte"], Area.BORDADO)
        with pytest.raises(ValidationError):
            reposition_transfer_service.request_reposition_transfer(reposition.id, users["corte"], Area.PLANCHA)
        db_session.rollback()

    def test_same_area_refused(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        with pytest.raises(ValidationError):
            reposition_transfer_service.request_reposition_transfer(reposition.id, users["corte"], Area.CORTE)
        db_session.rollback()

    def test_admin_pseudo_area_refused(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        with pytest.raises(ValidationError):
            reposition_transfer_service.request_reposition_transfer(reposition.id, users["admin"], Area.ADMIN)
        db_session.rollback()

    def test_outsider_cannot_request(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        with pytest.raises(AuthorizationError):
            reposition_transfer_service.request_reposition_transfer(reposition.id, users["plancha"], Area.CALIDAD)
        db_session.rollback()

    def test_privileged_area_may_request(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        transfer = _request(reposition, users["envios"], Area.CALIDAD)
        assert transfer.from_area == Area.CORTE


class TestResolveRepositionTransfer:

    def test_accept_moves_ticket(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        transfer = _request(reposition, users["corte"], Area.BORDADO)

        accepted = reposition_transfer_service.accept_reposition_transfer(transfer.id, users["bordado"])
        queued = notification_service.pending()
        commit_and_notify()

        assert accepted.status == TransferStatus.ACCEPTED
        assert reposition_service.get_reposition(reposition.id).current_area == Area.BORDADO
        # requester and creator are the same corte user: one notice
        assert [(n.user_id, n.type) for n in queued] == [
            (users["corte"].id, NotificationType.REPOSITION_TRANSFER_ACCEPTED)
        ]

    def test_accept_twice(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        transfer = _request(reposition, users["corte"], Area.BORDADO)
        reposition_transfer_service.accept_reposition_transfer(transfer.id, users["bordado"])
        commit_and_notify()

        with pytest.raises(AlreadyProcessed):
            reposition_transfer_service.accept_reposition_transfer(transfer.id, users["bordado"])
        db_session.rollback()

    def test_reject_keeps_area(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        transfer = _request(reposition, users["corte"], Area.BORDADO)

        rejected = reposition_transfer_service.process_reposition_transfer(transfer.id, "rejected", users["bordado"])
        commit_and_notify()

        assert rejected.status == TransferStatus.REJECTED
        assert reposition_service.get_reposition(reposition.id).current_area == Area.CORTE
        # a new transfer can be requested once the previous one is resolved
        assert _request(reposition, users["corte"], Area.PLANCHA).to_area == Area.PLANCHA

    def test_wrong_area_cannot_accept(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        transfer = _request(reposition, users["corte"], Area.BORDADO)
        with pytest.raises(AuthorizationError):
            reposition_transfer_service.accept_reposition_transfer(transfer.id, users["ensamble"])
        db_session.rollback()

    def test_deleted_reposition_transfer_can_only_be_rejected(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        transfer = _request(reposition, users["corte"], Area.BORDADO)
        reposition_service.delete_reposition(reposition.id, users["admin"], "Cancelada por cliente")
        commit_and_notify()

        with pytest.raises(ValidationError):
            reposition_transfer_service.accept_reposition_transfer(transfer.id, users["bordado"])
        db_session.rollback()

        rejected = reposition_transfer_service.reject_reposition_transfer(transfer.id, users["bordado"])
        commit_and_notify()
        assert rejected.status == TransferStatus.REJECTED
        assert reposition_service.get_reposition(reposition.id).status == RepositionStatus.ELIMINADO

    def test_unknown_action_and_transfer(self, db_session, users):
        with pytest.raises(ValidationError):
            reposition_transfer_service.process_reposition_transfer(1, "later", users["bordado"])
        with pytest.raises(NotFoundError):
            reposition_transfer_service.process_reposition_transfer(999, "accepted", users["bordado"])
        db_session.rollback()

    def test_pending_listing(self, db_session, users, make_reposition):
        first = make_reposition(approved=True)
        second = make_reposition(approved=True)
        to_bordado = _request(first, users["corte"], Area.BORDADO)
        to_plancha = _request(second, users["corte"], Area.PLANCHA)

        assert [t.id for t in reposition_transfer_service.list_pending_reposition_transfers(users["bordado"])] == [
            to_bordado.id
        ]
        assert len(reposition_transfer_service.list_pending_reposition_transfers(users["admin"])) == 2
        assert [t.id for t in reposition_transfer_service.list_reposition_transfers(second.id)] == [to_plancha.id]
