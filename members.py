"""
members.py
Member CRUD, listing, ticket issuance and sample data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta

from loguru import logger

import db
import tickets
import utils
from entitlement import EntitlementStatus, resolve_member
from models import MEMBER_SORT_KEYS, PAYMENT_METHODS, Member, Payment


class MemberNotFoundError(Exception):
    pass


class MemberValidationError(ValueError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class MemberPage:
    members: list[Member]
    total: int
    page: int
    limit: int
    total_pages: int


def get_member(member_id: int) -> Member:
    row = db.fetch_one("SELECT * FROM members WHERE id = ?", (member_id,))
    if not row:
        raise MemberNotFoundError(member_id)
    return Member.from_row(row)


def create_member(
    name: str,
    phone: str,
    email: str | None = None,
    memo: str | None = None,
    join_date: date | None = None,
) -> Member:
    errors = utils.validate_member_inputs(name, phone, email)
    if errors:
        raise MemberValidationError(errors)

    join = join_date or date.today()
    member_id = db.execute(
        """
        INSERT INTO members(name, phone, phone_digits, email, memo, join_date)
        VALUES(?,?,?,?,?,?)
        """,
        (
            name.strip(),
            phone.strip(),
            utils.normalize_phone(phone),
            (email or "").strip() or None,
            (memo or "").strip() or None,
            join.isoformat(),
        ),
    )
    logger.info(f"Member created: id={member_id}")
    return get_member(member_id)


def update_member(
    member_id: int,
    name: str,
    phone: str,
    email: str | None = None,
    memo: str | None = None,
) -> Member:
    errors = utils.validate_member_inputs(name, phone, email)
    if errors:
        raise MemberValidationError(errors)

    changed = db.execute_count(
        "UPDATE members SET name=?, phone=?, phone_digits=?, email=?, memo=? WHERE id=?",
        (
            name.strip(),
            phone.strip(),
            utils.normalize_phone(phone),
            (email or "").strip() or None,
            (memo or "").strip() or None,
            member_id,
        ),
    )
    if not changed:
        raise MemberNotFoundError(member_id)
    return get_member(member_id)


def delete_member(member_id: int) -> None:
    if db.execute_count("DELETE FROM members WHERE id = ?", (member_id,)) == 0:
        raise MemberNotFoundError(member_id)
    logger.info(f"Member deleted: id={member_id}")


def list_members(
    search: str = "",
    sort_by: str | None = None,
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    today: date | None = None,
) -> MemberPage:
    """
    One page of members. `status` keeps only members whose ticket currently
    resolves to that entitlement state (valid / expired / exhausted / no_ticket).
    """
    if status is not None:
        status = EntitlementStatus(status)

    sql = " FROM members WHERE 1=1"
    params: list = []

    if search.strip():
        term = search.strip()
        digits = utils.normalize_phone(term)
        if digits:
            sql += " AND (name LIKE ? OR phone_digits LIKE ?)"
            params.extend([f"%{term}%", f"%{digits}%"])
        else:
            sql += " AND name LIKE ?"
            params.append(f"%{term}%")

    if sort_by in MEMBER_SORT_KEYS:
        direction = "ASC" if sort_order == "asc" else "DESC"
        # NULLs last regardless of direction
        order = f" ORDER BY {sort_by} IS NULL, {sort_by} {direction}, id ASC"
    else:
        order = " ORDER BY id DESC"

    page = max(1, page)
    limit = max(1, limit)
    offset = (page - 1) * limit

    if status is None:
        total = int(db.fetch_one("SELECT COUNT(*) AS c" + sql, tuple(params))["c"])
        rows = db.fetch_all("SELECT *" + sql + order + " LIMIT ? OFFSET ?", tuple(params) + (limit, offset))
        found = [Member.from_row(r) for r in rows]
    else:
        # State depends on today's date, so it is derived per row rather than stored
        today = today or date.today()
        rows = db.fetch_all("SELECT *" + sql + order, tuple(params))
        matching = [m for m in map(Member.from_row, rows) if resolve_member(m, today).status is status]
        total = len(matching)
        found = matching[offset : offset + limit]

    return MemberPage(
        members=found,
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


def assign_ticket(
    member_id: int,
    ticket_type: str,
    start_date: date | None = None,
    method: str = "cash",
    notes: str | None = None,
) -> tuple[Member, Payment]:
    """
    Issue a catalog ticket to a member, replacing the current assignment, and record
    the sale as a payment.
    """
    if method not in PAYMENT_METHODS:
        raise MemberValidationError([f"Payment method must be one of {', '.join(PAYMENT_METHODS)}."])

    member = get_member(member_id)
    ticket = tickets.get_ticket(ticket_type)

    start = start_date or date.today()
    end = utils.calc_end_date(start, ticket.duration_days)
    paid_on = date.today().isoformat()
    note = (notes or "").strip() or f"{ticket.ticket_type} issued"

    with db.transaction() as conn:
        conn.execute(
            "UPDATE members SET ticket_type=?, start_date=?, end_date=?, remain_count=? WHERE id=?",
            (ticket.ticket_type, start.isoformat(), end.isoformat() if end else None, ticket.count, member.id),
        )
        cur = conn.execute(
            "INSERT INTO payments(member_id, amount, date, method, notes) VALUES(?,?,?,?,?)",
            (member.id, ticket.price, paid_on, method, note),
        )
        payment = Payment(cur.lastrowid, member.id, ticket.price, paid_on, method, note)

    logger.info(f"Ticket {ticket.ticket_type!r} issued to member {member.id} (ends {end}, count {ticket.count})")
    return get_member(member_id), payment


def insert_sample_data() -> None:
    """
    Insert a small catalog and a few members covering each entitlement state
    (safe to run multiple times: existing tickets and phone numbers are skipped).
    """
    today = date.today()

    catalog = [
        ("10-visit pass", 10, 90, 150000.0, "10 visits within 3 months."),
        ("30-day unlimited", None, 30, 200000.0, "Unlimited visits for 30 days."),
        ("1-day trial", 1, 1, 20000.0, "One trial visit for first-time guests."),
    ]
    for ticket_type, count, duration, price, desc in catalog:
        try:
            tickets.create_ticket(ticket_type, count, duration, price, desc)
        except tickets.DuplicateTicketError:
            pass

    samples = [
        # period ticket, active
        ("Hong Gildong", "010-1234-5678", 20, "30-day unlimited", 20, "card"),
        # count ticket, visits left
        ("Kim Chulsoo", "010-2345-6789", 10, "10-visit pass", 10, "cash"),
        # no ticket
        ("Lee Younghee", "010-3456-7890", 0, None, None, None),
        # period ticket, expired
        ("Park Minsoo", "010-4567-8901", 60, "30-day unlimited", 45, "transfer"),
    ]
    for name, phone, joined_ago, ticket_type, started_ago, method in samples:
        exists = db.fetch_one("SELECT id FROM members WHERE phone_digits = ?", (utils.normalize_phone(phone),))
        if exists:
            continue
        m = create_member(name, phone, join_date=today - timedelta(days=joined_ago))
        if ticket_type:
            assign_ticket(m.id, ticket_type, start_date=today - timedelta(days=started_ago), method=method)
