"""
Entitlement resolver tests - ticket state by date window and visit balance
"""
from datetime import date, timedelta

import pytest

from entitlement import Entitlement, EntitlementStatus, remaining_days, resolve, resolve_member

TODAY = date(2026, 10, 18)


class TestNoTicket:
    """No ticket assigned"""

    def test_none_ticket_type(self):
        assert resolve(None, None, None, None, TODAY) == Entitlement(EntitlementStatus.NO_TICKET)

    def test_empty_ticket_type(self):
        assert resolve("", None, None, None, TODAY).status is EntitlementStatus.NO_TICKET

    def test_no_ticket_ignores_stale_fields(self):
        """Leftover dates/counts do not matter without a ticket type"""
        ent = resolve(None, TODAY, TODAY - timedelta(days=5), 0, TODAY)
        assert ent.status is EntitlementStatus.NO_TICKET
        assert ent.remaining_days is None
        assert ent.remaining_count is None


class TestPeriodTicket:
    """end_date only, no visit balance"""

    def test_ends_tomorrow(self):
        """Ends tomorrow: valid with one day left"""
        ent = resolve("30-day unlimited", TODAY, TODAY + timedelta(days=1), None, TODAY)
        assert ent.status is EntitlementStatus.VALID
        assert ent.remaining_days == 1
        assert ent.remaining_count is None

    def test_expires_on_end_date(self):
        """No whole day left on the end date itself"""
        ent = resolve("30-day unlimited", None, TODAY, None, TODAY)
        assert ent.status is EntitlementStatus.EXPIRED
        assert ent.remaining_days == 0

    def test_end_date_expiry_beats_visits_left(self):
        ent = resolve("10-visit pass", None, TODAY, 3, TODAY)
        assert ent.status is EntitlementStatus.EXPIRED

    def test_ended_yesterday_is_expired(self):
        ent = resolve("30-day unlimited", None, TODAY - timedelta(days=1), None, TODAY)
        assert ent.status is EntitlementStatus.EXPIRED
        assert ent.remaining_days == 0

    @pytest.mark.parametrize("offset", [-30, -1, 0, 1, 2, 45])
    def test_expired_iff_no_day_left(self, offset):
        end = TODAY + timedelta(days=offset)
        ent = resolve("plan", None, end, None, TODAY)
        assert (ent.status is EntitlementStatus.EXPIRED) == (end <= TODAY)
        assert ent.remaining_days == max(0, offset)


class TestCountTicket:
    """remain_count only, no end date"""

    def test_visits_left(self):
        ent = resolve("10-visit pass", TODAY, None, 3, TODAY)
        assert ent.status is EntitlementStatus.VALID
        assert ent.remaining_count == 3
        assert ent.remaining_days is None

    def test_zero_is_exhausted(self):
        ent = resolve("10-visit pass", TODAY, None, 0, TODAY)
        assert ent.status is EntitlementStatus.EXHAUSTED
        assert ent.remaining_days is None

    def test_negative_is_exhausted(self):
        assert resolve("10-visit pass", None, None, -2, TODAY).status is EntitlementStatus.EXHAUSTED


class TestBothAxes:
    """end_date and remain_count together"""

    def test_both_ok(self):
        ent = resolve("10-visit pass", None, TODAY + timedelta(days=10), 4, TODAY)
        assert ent.status is EntitlementStatus.VALID
        assert ent.remaining_days == 10
        assert ent.remaining_count == 4

    def test_expired_with_visits_left(self):
        ent = resolve("10-visit pass", None, TODAY - timedelta(days=1), 4, TODAY)
        assert ent.status is EntitlementStatus.EXPIRED

    def test_exhausted_before_end(self):
        ent = resolve("10-visit pass", None, TODAY + timedelta(days=10), 0, TODAY)
        assert ent.status is EntitlementStatus.EXHAUSTED

    def test_expiry_wins_over_exhaustion(self):
        """Both axes failing reports EXPIRED"""
        ent = resolve("10-visit pass", None, TODAY - timedelta(days=3), 0, TODAY)
        assert ent.status is EntitlementStatus.EXPIRED


class TestUnboundedTicket:
    def test_neither_axis_is_valid(self):
        ent = resolve("open plan", None, None, None, TODAY)
        assert ent.status is EntitlementStatus.VALID
        assert ent.remaining_days is None
        assert ent.remaining_count is None


class TestPurity:
    def test_same_inputs_same_result(self):
        args = ("10-visit pass", TODAY, TODAY + timedelta(days=3), 2, TODAY)
        assert resolve(*args) == resolve(*args)

    def test_start_date_does_not_gate(self):
        future_start = TODAY + timedelta(days=5)
        assert resolve("plan", future_start, None, 1, TODAY).status is EntitlementStatus.VALID


class TestHelpers:
    def test_remaining_days_none_without_end(self):
        assert remaining_days(None, TODAY) is None

    def test_remaining_days_floored(self):
        assert remaining_days(TODAY - timedelta(days=10), TODAY) == 0

    def test_resolve_member(self, make_member):
        member = make_member(ticket_type="10-visit pass", remain_count=0)
        assert resolve_member(member, TODAY).status is EntitlementStatus.EXHAUSTED

    def test_is_valid(self):
        assert Entitlement(EntitlementStatus.VALID).is_valid
        assert not Entitlement(EntitlementStatus.EXPIRED).is_valid
