"""
Reposition tracking view tests.
"""

import pytest

from taller.enums import Area
from taller.errors import NotFoundError
from taller.routes.common import commit_and_notify
from taller.services import reposition_service, reposition_transfer_service, tracking_service
from taller.services.tracking_service import TRACKING_SEQUENCE, compute_progress


def _move(reposition, from_user, to_user):
    transfer = reposition_transfer_service.request_reposition_transfer(reposition.id, from_user, to_user.area)
    commit_and_notify()
    reposition_transfer_service.accept_reposition_transfer(transfer.id, to_user)
    commit_and_notify()


class TestComputeProgress:

    @pytest.mark.parametrize(
        "completed,has_current,expected",
        [
            (0, False, 0),
            (0, True, 7),
            (1, True, 21),
            (3, True, 50),
            (6, True, 92),
            (7, False, 100),
        ],
    )
    def test_formula(self, completed, has_current, expected):
        assert compute_progress(completed, has_current) == expected

    def test_empty_sequence(self):
        assert compute_progress(0, True, total=0) == 0


class TestGetTracking:

    def test_new_ticket_sits_in_creator_area(self, db_session, users, make_reposition):
        reposition = make_reposition()
        tracking = tracking_service.get_tracking(reposition.id)

        statuses = {step["area"]: step["status"] for step in tracking["steps"]}
        assert statuses["corte"] == "current"
        assert statuses["patronaje"] == "pending"
        assert [step["id"] for step in tracking["steps"]] == list(range(1, len(TRACKING_SEQUENCE) + 1))
        assert tracking["reposition"]["progress"] == 7
        assert tracking["reposition"]["folio"] == reposition.folio
        assert tracking["history"][0]["action"] == "created"

    def test_progress_after_moving_on(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        _move(reposition, users["corte"], users["bordado"])

        tracking = tracking_service.get_tracking(reposition.id)
        steps = {step["area"]: step for step in tracking["steps"]}

        assert steps["corte"]["status"] == "completed"
        assert steps["corte"]["user"] == "Corte User"
        assert steps["corte"]["timestamp"].endswith("Z")
        assert steps["bordado"]["status"] == "current"
        assert steps["bordado"]["user"] == "Bordado User"
        assert steps["ensamble"]["status"] == "pending"
        assert steps["ensamble"]["timestamp"] is None
        assert tracking["reposition"]["current_area"] == "bordado"
        assert tracking["reposition"]["progress"] == 21

    def test_completed_ticket_reports_full_progress(self, db_session, users, make_reposition):
        reposition = make_reposition(approved=True)
        _move(reposition, users["corte"], users["bordado"])
        reposition_service.complete_reposition(reposition.id, users["admin"])
        commit_and_notify()

        tracking = tracking_service.get_tracking(reposition.id)
        steps = {step["area"]: step["status"] for step in tracking["steps"]}
        assert tracking["reposition"]["progress"] == 100
        assert tracking["reposition"]["status"] == "completado"
        assert steps["bordado"] == "completed"
        assert "current" not in steps.values()

    def test_ticket_outside_sequence(self, db_session, users, make_reposition):
        reposition = make_reposition(actor=users["envios"])
        tracking = tracking_service.get_tracking(reposition.id)
        assert {step["status"] for step in tracking["steps"]} == {"pending"}
        assert tracking["reposition"]["progress"] == 0

    def test_missing_reposition(self, db_session):
        with pytest.raises(NotFoundError):
            tracking_service.get_tracking(404)

    def test_sequence_shape(self):
        assert TRACKING_SEQUENCE[0] == Area.PATRONAJE
        assert TRACKING_SEQUENCE[-1] == Area.OPERACIONES
        assert len(TRACKING_SEQUENCE) == 7
