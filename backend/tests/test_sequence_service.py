"""
Folio sequence tests: monthly JN-REQ-MM-YY-NNN numbering.
"""

from datetime import datetime

from taller.models import FolioSequence
from taller.routes.common import commit_and_notify
from taller.services import reposition_service, sequence_service


MARCH = datetime(2025, 3, 14, 10, 30)
APRIL = datetime(2025, 4, 1, 0, 5)


class TestFormatting:

    def test_prefix_is_month_and_two_digit_year(self):
        assert sequence_service.reposition_prefix(MARCH) == "JN-REQ-03-25-"
        assert sequence_service.reposition_prefix(datetime(2031, 11, 2)) == "JN-REQ-11-31-"

    def test_counter_is_zero_padded(self):
        assert sequence_service.format_folio("JN-REQ-03-25-", 7) == "JN-REQ-03-25-007"
        assert sequence_service.format_folio("JN-REQ-03-25-", 1234) == "JN-REQ-03-25-1234"


class TestAllocation:

    def test_consecutive_numbers_within_month(self, db_session):
        first = sequence_service.next_reposition_folio(MARCH)
        second = sequence_service.next_reposition_folio(MARCH)
        db_session.commit()

        assert (first, second) == ("JN-REQ-03-25-001", "JN-REQ-03-25-002")

    def test_new_month_restarts(self, db_session):
        sequence_service.next_reposition_folio(MARCH)
        sequence_service.next_reposition_folio(MARCH)
        db_session.commit()

        assert sequence_service.next_reposition_folio(APRIL) == "JN-REQ-04-25-001"
        db_session.commit()
        assert db_session.query(FolioSequence).count() == 2

    def test_peek_allocates_nothing(self, db_session):
        assert sequence_service.peek_next_reposition_folio(MARCH) == "JN-REQ-03-25-001"
        assert sequence_service.peek_next_reposition_folio(MARCH) == "JN-REQ-03-25-001"
        assert db_session.query(FolioSequence).count() == 0

        sequence_service.next_reposition_folio(MARCH)
        db_session.commit()
        assert sequence_service.peek_next_reposition_folio(MARCH) == "JN-REQ-03-25-002"

    def test_rolled_back_allocation_is_not_consumed(self, db_session):
        sequence_service.next_reposition_folio(MARCH)
        db_session.commit()

        sequence_service.next_reposition_folio(MARCH)
        db_session.rollback()

        assert sequence_service.next_reposition_folio(MARCH) == "JN-REQ-03-25-002"
        db_session.commit()

    def test_counter_row_seeded_from_stored_folios(self, db_session, users, reposition_data):
        reposition_service.create_reposition(
            reposition_data, [{"talla": "M", "cantidad": 1}], users["corte"], now=MARCH
        )
        reposition_service.create_reposition(
            reposition_data, [{"talla": "M", "cantidad": 1}], users["corte"], now=MARCH
        )
        commit_and_notify()

        # counter rows lost (e.g. restored from a backup without them)
        db_session.query(FolioSequence).delete()
        db_session.commit()

        assert sequence_service.peek_next_reposition_folio(MARCH) == "JN-REQ-03-25-003"
        assert sequence_service.next_reposition_folio(MARCH) == "JN-REQ-03-25-003"
        db_session.commit()
