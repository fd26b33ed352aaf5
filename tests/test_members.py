"""
Member CRUD, listing and ticket issuance tests
"""
from datetime import date, timedelta

import pytest

import db
import members
import tickets


class TestMemberCrud:
    def test_create(self, temp_db):
        m = members.create_member(" Hong Gildong ", "010-1234-5678", email="hong@example.com", join_date=date(2026, 10, 1))
        assert m.id is not None
        assert m.name == "Hong Gildong"
        assert m.ticket_type is None
        assert m.visit_count == 0
        assert m.join_date == date(2026, 10, 1)
        row = db.fetch_one("SELECT phone_digits FROM members WHERE id = ?", (m.id,))
        assert row["phone_digits"] == "01012345678"

    def test_create_invalid(self, temp_db):
        with pytest.raises(members.MemberValidationError) as exc:
            members.create_member("", "", email="not-an-email")
        assert exc.value.errors == ["Name is required.", "Phone is required.", "Email address is not valid."]

    def test_update(self, temp_db):
        m = members.create_member("Hong", "010-1234-5678")
        updated = members.update_member(m.id, "Hong Gildong", "010 9999 0000", memo="VIP")
        assert updated.name == "Hong Gildong"
        assert updated.memo == "VIP"
        assert db.fetch_one("SELECT phone_digits FROM members")["phone_digits"] == "01099990000"

    def test_update_missing(self, temp_db):
        with pytest.raises(members.MemberNotFoundError):
            members.update_member(42, "Name", "010")

    def test_delete_cascades(self, temp_db):
        tickets.create_ticket("10-visit pass", count=10, price=100)
        m = members.create_member("Hong", "010-1234-5678")
        members.assign_ticket(m.id, "10-visit pass")

        members.delete_member(m.id)

        with pytest.raises(members.MemberNotFoundError):
            members.get_member(m.id)
        assert db.fetch_one("SELECT COUNT(*) AS c FROM payments")["c"] == 0

    def test_delete_missing(self, temp_db):
        with pytest.raises(members.MemberNotFoundError):
            members.delete_member(42)


class TestListMembers:
    @pytest.fixture
    def roster(self, temp_db):
        members.create_member("Hong Gildong", "010-1234-5678", join_date=date(2026, 1, 1))
        members.create_member("Kim Chulsoo", "010-2345-6789", join_date=date(2026, 3, 1))
        members.create_member("Lee Younghee", "010-3456-7890", join_date=date(2026, 2, 1))

    def test_default_newest_first(self, roster):
        page = members.list_members()
        assert [m.name for m in page.members] == ["Lee Younghee", "Kim Chulsoo", "Hong Gildong"]
        assert page.total == 3
        assert page.total_pages == 1

    def test_search_name(self, roster):
        page = members.list_members(search="kim")
        assert [m.name for m in page.members] == ["Kim Chulsoo"]

    def test_search_phone_ignores_hyphens(self, roster):
        assert [m.name for m in members.list_members(search="2345-6789").members] == ["Kim Chulsoo"]
        assert [m.name for m in members.list_members(search="23456789").members] == ["Kim Chulsoo"]

    def test_sort(self, roster):
        page = members.list_members(sort_by="join_date", sort_order="asc")
        assert [m.name for m in page.members] == ["Hong Gildong", "Lee Younghee", "Kim Chulsoo"]

    def test_unknown_sort_key_falls_back(self, roster):
        page = members.list_members(sort_by="name; DROP TABLE members")
        assert page.total == 3

    def test_pagination(self, roster):
        page = members.list_members(page=2, limit=2)
        assert len(page.members) == 1
        assert page.total == 3
        assert page.total_pages == 2
        assert page.page == 2


class TestListMembersByStatus:
    """Filtering on the entitlement state resolved for today"""

    TODAY = date(2026, 10, 18)

    @pytest.fixture
    def mixed(self, temp_db):
        tickets.create_ticket("10-visit pass", count=10, duration_days=90, price=150000)
        members.create_member("Hong Gildong", "010-1234-5678")
        for name, phone in [("Kim Chulsoo", "010-2345-6789"), ("Lee Younghee", "010-3456-7890"), ("Park Minsu", "010-4567-8901")]:
            m = members.create_member(name, phone)
            members.assign_ticket(m.id, "10-visit pass", start_date=self.TODAY - timedelta(days=30))
        db.execute("UPDATE members SET remain_count = 0 WHERE name = ?", ("Lee Younghee",))
        # Ends today: already expired
        db.execute("UPDATE members SET end_date = ? WHERE name = ?", (self.TODAY.isoformat(), "Park Minsu"))

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("no_ticket", ["Hong Gildong"]),
            ("valid", ["Kim Chulsoo"]),
            ("exhausted", ["Lee Younghee"]),
            ("expired", ["Park Minsu"]),
        ],
    )
    def test_each_state(self, mixed, status, expected):
        page = members.list_members(status=status, today=self.TODAY)
        assert [m.name for m in page.members] == expected
        assert page.total == 1
        assert page.total_pages == 1

    def test_without_status_lists_everyone(self, mixed):
        assert members.list_members(today=self.TODAY).total == 4

    def test_combines_with_search(self, mixed):
        assert members.list_members(search="kim", status="expired", today=self.TODAY).total == 0
        assert members.list_members(search="park", status="expired", today=self.TODAY).total == 1

    def test_paginates_filtered_rows(self, mixed):
        db.execute("UPDATE members SET remain_count = 0 WHERE name = ?", ("Kim Chulsoo",))
        first = members.list_members(status="exhausted", page=1, limit=1, today=self.TODAY)
        second = members.list_members(status="exhausted", page=2, limit=1, today=self.TODAY)
        assert [m.name for m in first.members] == ["Lee Younghee"]
        assert [m.name for m in second.members] == ["Kim Chulsoo"]
        assert first.total == 2
        assert first.total_pages == 2

    def test_unknown_status_rejected(self, mixed):
        with pytest.raises(ValueError):
            members.list_members(status="frozen")


class TestAssignTicket:
    def test_period_and_count(self, temp_db):
        tickets.create_ticket("10-visit pass", count=10, duration_days=90, price=150000)
        m = members.create_member("Hong", "010-1234-5678")

        updated, payment = members.assign_ticket(m.id, "10-visit pass", start_date=date(2026, 10, 1), method="card")

        assert updated.ticket_type == "10-visit pass"
        assert updated.start_date == date(2026, 10, 1)
        assert updated.end_date == date(2026, 10, 1) + timedelta(days=90)
        assert updated.remain_count == 10
        assert payment.amount == 150000.0
        assert payment.method == "card"
        assert payment.notes == "10-visit pass issued"

    def test_period_only(self, temp_db):
        tickets.create_ticket("30-day unlimited", duration_days=30, price=200000)
        m = members.create_member("Hong", "010-1234-5678")
        updated, _ = members.assign_ticket(m.id, "30-day unlimited", start_date=date(2026, 10, 1))
        assert updated.end_date == date(2026, 10, 31)
        assert updated.remain_count is None

    def test_count_only(self, temp_db):
        tickets.create_ticket("5-visit pass", count=5, price=80000)
        m = members.create_member("Hong", "010-1234-5678")
        updated, _ = members.assign_ticket(m.id, "5-visit pass")
        assert updated.end_date is None
        assert updated.remain_count == 5

    def test_reissue_replaces_balance(self, temp_db):
        tickets.create_ticket("5-visit pass", count=5, price=80000)
        m = members.create_member("Hong", "010-1234-5678")
        members.assign_ticket(m.id, "5-visit pass")
        db.execute("UPDATE members SET remain_count = 0 WHERE id = ?", (m.id,))
        updated, _ = members.assign_ticket(m.id, "5-visit pass")
        assert updated.remain_count == 5
        assert db.fetch_one("SELECT COUNT(*) AS c FROM payments")["c"] == 2

    def test_bad_method(self, temp_db):
        tickets.create_ticket("5-visit pass", count=5, price=80000)
        m = members.create_member("Hong", "010-1234-5678")
        with pytest.raises(members.MemberValidationError):
            members.assign_ticket(m.id, "5-visit pass", method="bitcoin")

    def test_unknown_ticket(self, temp_db):
        m = members.create_member("Hong", "010-1234-5678")
        with pytest.raises(tickets.TicketNotFound):
            members.assign_ticket(m.id, "nope")


class TestSampleData:
    def test_idempotent(self, temp_db):
        members.insert_sample_data()
        members.insert_sample_data()
        assert len(tickets.list_tickets()) == 3
        assert members.list_members().total == 4
