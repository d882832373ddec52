"""
Reposition lifecycle tests.

Verifies:
- Creation allocates a monthly folio and notifies approvers
- Approval happens once, from pendiente only
- completado and eliminado are terminal
- Deletion is soft and needs a reason of at least 10 characters
- Completion requests reach admins and flagged approvers
"""

import pytest

from taller.enums import Area, NotificationType, RepositionHistoryAction, RepositionStatus
from taller.errors import AlreadyProcessed, AuthorizationError, NotFoundError, ValidationError
from taller.models import Notification
from taller.routes.common import commit_and_notify
from taller.services import notification_service, reposition_service
from taller.services.reposition_service import ALLOWED_OPERATIONS, TERMINAL_STATUSES


# =============================================================================
# CREATION
# =============================================================================


class TestCreateReposition:

    def test_opens_pending_in_creator_area(self, db_session, users, reposition_data):
        reposition = reposition_service.create_reposition(
            reposition_data,
            [{"talla": "CH", "cantidad": "3"}, {"talla": "M", "cantidad": 1, "folio_original": "OP-1"}],
            users["bordado"],
        )
        queued = notification_service.pending()
        commit_and_notify()

        assert reposition.folio.startswith("JN-REQ-")
        assert reposition.folio.endswith("-001")
        assert reposition.status == RepositionStatus.PENDIENTE
        assert reposition.current_area == Area.BORDADO
        assert reposition.solicitante_area == Area.BORDADO

        data = reposition_service.serialize_reposition(reposition)
        assert [(p["talla"], p["cantidad"]) for p in data["pieces"]] == [("CH", 3), ("M", 1)]

        assert {n.user_id for n in queued} == {users["admin"].id, users["operaciones"].id}
        assert {n.type for n in queued} == {NotificationType.NEW_REPOSITION}

        history = reposition_service.get_reposition_history(reposition.id)
        assert history[0].action == RepositionHistoryAction.CREATED.value
        assert history[0].to_area == Area.BORDADO

    def test_folios_increase(self, make_reposition):
        first = make_reposition()
        second = make_reposition()
        assert first.folio[:-3] == second.folio[:-3]
        assert int(second.folio[-3:]) == int(first.folio[-3:]) + 1

    def test_explicit_solicitante_area(self, db_session, users, reposition_data):
        reposition = reposition_service.create_reposition(
            dict(reposition_data, solicitante_area="calidad"),
            [{"talla": "M", "cantidad": 1}],
            users["corte"],
        )
        commit_and_notify()
        assert reposition.solicitante_area == Area.CALIDAD
        assert reposition.current_area == Area.CORTE

    @pytest.mark.parametrize(
        "pieces",
        [None, [], [{"cantidad": 1}], [{"talla": "M", "cantidad": 0}], ["M"]],
    )
    def test_piece_lines_validated(self, db_session, users, reposition_data, pieces):
        with pytest.raises(ValidationError):
            reposition_service.create_reposition(reposition_data, pieces, users["corte"])

    @pytest.mark.parametrize("field,value", [("urgencia", "ya"), ("type", "otro"), ("color", "")])
    def test_field_validation(self, db_session, users, reposition_data, field, value):
        with pytest.raises(ValidationError):
            reposition_service.create_reposition(
                dict(reposition_data, **{field: value}), [{"talla": "M", "cantidad": 1}], users["corte"]
            )


# =============================================================================
# APPROVAL
# =============================================================================


class TestApproval:

    def test_approve_notifies_creator(self, db_session, users, make_reposition):
        reposition = make_reposition()
        approved = reposition_service.approve_reposition(
            reposition.id, "aprobado", users["operaciones"], notes="Procede"
        )
        commit_and_notify()

        assert approved.status == RepositionStatus.APROBADO
        assert approved.approved_by == users["operaciones"].id
        assert approved.approved_at is not None
        history = reposition_service.get_reposition_history(reposition.id)
        assert history[-1].description == "Reposición aprobada: Procede"
        inbox = notification_service.list_for_user(users["corte"].id)
        assert inbox[0].type == NotificationType.REPOSITION_APPROVED

    def test_reject(self, db_session, users, make_reposition):
        reposition = make_reposition()
        rejected = reposition_service.approve_reposition(reposition.id, "rechazado", users["envios"])
        commit_and_notify()
        assert rejected.status == RepositionStatus.RECHAZADO

    def test_second_approval_is_already_processed(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        with pytest.raises(AlreadyProcessed):
            reposition_service.approve_reposition(reposition.id, "rechazado", users["admin"])
        db_session.rollback()

    def test_only_approver_areas(self, db_session, users, make_reposition):
        reposition = make_reposition()
        with pytest.raises(AuthorizationError):
            reposition_service.approve_reposition(reposition.id, "aprobado", users["corte"])

    @pytest.mark.parametrize("action", ["completado", "eliminado", "pendiente", "sure"])
    def test_action_must_be_an_outcome(self, db_session, users, make_reposition, action):
        reposition = make_reposition()
        with pytest.raises(ValidationError):
            reposition_service.approve_reposition(reposition.id, action, users["operaciones"])

    def test_missing_reposition(self, db_session, users):
        with pytest.raises(NotFoundError):
            reposition_service.approve_reposition(404, "aprobado", users["operaciones"])
        db_session.rollback()


# =============================================================================
# COMPLETION
# =============================================================================


class TestCompletion:

    def test_request_completion_notifies_approvers(self, db_session, users, approver, make_reposition):
        reposition = make_reposition(approved=True)
        notification_service.discard_pending()

        result = reposition_service.request_completion(reposition.id, users["corte"], notes="Listo")
        queued = notification_service.pending()
        commit_and_notify()

        assert result.status == RepositionStatus.APROBADO
        assert {n.user_id for n in queued} == {users["admin"].id, approver.id}
        assert {n.type for n in queued} == {NotificationType.COMPLETION_APPROVAL_NEEDED}

    def test_request_completion_from_other_area(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        with pytest.raises(AuthorizationError):
            reposition_service.request_completion(reposition.id, users["plancha"])
        db_session.rollback()

    def test_privileged_area_may_also_request(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        notification_service.discard_pending()

        result = reposition_service.request_completion(reposition.id, users["envios"])
        queued = notification_service.pending()
        commit_and_notify()

        assert result.status == RepositionStatus.APROBADO
        assert users["envios"].id not in {n.user_id for n in queued}
        assert users["admin"].id in {n.user_id for n in queued}

    def test_request_completion_before_approval(self, db_session, users, make_reposition):
        reposition = make_reposition()
        with pytest.raises(ValidationError):
            reposition_service.request_completion(reposition.id, users["corte"])
        db_session.rollback()

    def test_privileged_area_completes(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        completed = reposition_service.complete_reposition(reposition.id, users["envios"])
        commit_and_notify()

        assert completed.status == RepositionStatus.COMPLETADO
        assert completed.completed_at is not None
        assert completed.approved_by == users["envios"].id

    def test_pending_cannot_complete(self, db_session, users, make_reposition):
        reposition = make_reposition()
        with pytest.raises(ValidationError):
            reposition_service.complete_reposition(reposition.id, users["admin"])
        db_session.rollback()

    def test_non_privileged_cannot_complete(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        with pytest.raises(AuthorizationError):
            reposition_service.complete_reposition(reposition.id, users["operaciones"])


# =============================================================================
# DELETION AND TERMINAL STATES
# =============================================================================


class TestDeletion:

    def test_reason_of_nine_characters_refused(self, db_session, users, make_reposition):
        reposition = make_reposition()
        with pytest.raises(ValidationError):
            reposition_service.delete_reposition(reposition.id, users["admin"], "123456789")
        assert reposition_service.get_reposition(reposition.id).status == RepositionStatus.PENDIENTE

    def test_reason_is_trimmed(self, db_session, users, make_reposition):
        reposition = make_reposition()
        with pytest.raises(ValidationError):
            reposition_service.delete_reposition(reposition.id, users["admin"], "   corto    ")

    def test_soft_delete(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        deleted = reposition_service.delete_reposition(reposition.id, users["admin"], "  Duplicado del folio anterior ")
        commit_and_notify()

        assert deleted.status == RepositionStatus.ELIMINADO
        assert deleted.deleted_at is not None
        assert deleted.deleted_by == users["admin"].id
        assert deleted.deletion_reason == "Duplicado del folio anterior"
        assert deleted.completed_at is None

        notices = db_session.query(Notification).filter_by(
            reposition_id=reposition.id, type=NotificationType.REPOSITION_DELETED
        ).all()
        assert [n.user_id for n in notices] == [users["corte"].id]

    def test_deleted_is_terminal(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        reposition_service.delete_reposition(reposition.id, users["envios"], "Se canceló el pedido")
        commit_and_notify()

        for attempt in (
            lambda: reposition_service.complete_reposition(reposition.id, users["admin"]),
            lambda: reposition_service.delete_reposition(reposition.id, users["admin"], "Otra vez borrar"),
            lambda: reposition_service.approve_reposition(reposition.id, "aprobado", users["admin"]),
            lambda: reposition_service.request_completion(reposition.id, users["admin"]),
        ):
            with pytest.raises(AlreadyProcessed):
                attempt()
            db_session.rollback()

    def test_completed_is_terminal(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        reposition_service.complete_reposition(reposition.id, users["admin"])
        commit_and_notify()

        with pytest.raises(AlreadyProcessed):
            reposition_service.delete_reposition(reposition.id, users["admin"], "Borrar tras finalizar")
        db_session.rollback()

    def test_rejected_can_be_deleted(self, db_session, users, make_reposition):
        reposition = make_reposition()
        reposition_service.approve_reposition(reposition.id, "rechazado", users["operaciones"])
        commit_and_notify()

        deleted = reposition_service.delete_reposition(reposition.id, users["admin"], "Rechazada, se archiva")
        commit_and_notify()
        assert deleted.status == RepositionStatus.ELIMINADO

    def test_only_privileged_deletes(self, db_session, users, make_reposition):
        reposition = make_reposition()
        with pytest.raises(AuthorizationError):
            reposition_service.delete_reposition(reposition.id, users["corte"], "No la necesito ya")

    def test_terminal_statuses_admit_nothing(self):
        for status in TERMINAL_STATUSES:
            assert ALLOWED_OPERATIONS[status] == frozenset()


# =============================================================================
# LISTINGS
# =============================================================================


class TestListings:

    def test_area_scoped_and_closed_hidden(self, db_session, users, make_reposition):
        open_one = make_reposition()
        closed = make_reposition()
        reposition_service.delete_reposition(closed.id, users["admin"], "Captura duplicada")
        commit_and_notify()
        make_reposition(actor=users["plancha"])

        assert [r.id for r in reposition_service.list_repositions(users["corte"])] == [open_one.id]
        with_closed = reposition_service.list_repositions(users["corte"], include_closed=True)
        assert {r.id for r in with_closed} == {open_one.id, closed.id}
        assert len(reposition_service.list_repositions(users["admin"])) == 3

    def test_all_and_pending_approval(self, db_session, users, make_reposition):
        pending = make_reposition()
        approved = make_reposition(approved=True)
        deleted = make_reposition()
        reposition_service.delete_reposition(deleted.id, users["admin"], "Captura duplicada")
        commit_and_notify()

        assert [r.id for r in reposition_service.list_pending_approval()] == [pending.id]
        assert {r.id for r in reposition_service.get_all_repositions()} == {pending.id, approved.id}
        assert len(reposition_service.get_all_repositions(include_deleted=True)) == 3
