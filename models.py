"""
models.py
Lightweight domain records (members, catalog tickets, payments, check-in results).
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Mapping

PAYMENT_METHODS = ("cash", "card", "transfer")

# Columns accepted by list_members(sort_by=...)
MEMBER_SORT_KEYS = ("join_date", "last_visit_date", "end_date")


def _as_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Member:
    id: int | None
    name: str
    phone: str
    email: str | None = None
    memo: str | None = None
    join_date: date | None = None
    # Current ticket assignment (None ticket_type => never assigned)
    ticket_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    remain_count: int | None = None  # None => not bounded by count
    visit_count: int = 0
    last_visit_date: date | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Member":
        return cls(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            email=row["email"],
            memo=row["memo"],
            join_date=_as_date(row["join_date"]),
            ticket_type=row["ticket_type"],
            start_date=_as_date(row["start_date"]),
            end_date=_as_date(row["end_date"]),
            remain_count=row["remain_count"],
            visit_count=row["visit_count"] or 0,
            last_visit_date=_as_date(row["last_visit_date"]),
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        for key in ("join_date", "start_date", "end_date", "last_visit_date"):
            d[key] = _iso(d[key])
        return d


@dataclass(frozen=True)
class Ticket:
    ticket_type: str  # unique plan name, acts as the key
    count: int | None
    duration_days: int | None
    price: float
    description: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Ticket":
        return cls(
            ticket_type=row["ticket_type"],
            count=row["count"],
            duration_days=row["duration_days"],
            price=float(row["price"]),
            description=row["description"],
        )


@dataclass(frozen=True)
class Payment:
    id: int | None
    member_id: int
    amount: float
    date: str
    method: str  # cash/card/transfer
    notes: str | None


@dataclass(frozen=True)
class CheckInResult:
    member_id: int
    member_name: str
    phone: str
    ticket_type: str | None
    start_date: date | None
    end_date: date | None
    remain_count: int | None  # after this check-in
    remain_days: int | None  # computed before this check-in
    visit_count: int
    last_visit_date: date
    message: str
    status: str  # EntitlementStatus value at check-in time
    repeat_visit: bool = False

    def to_dict(self) -> dict:
        """Kiosk/API payload shape."""
        return {
            "memberId": self.member_id,
            "memberName": self.member_name,
            "phone": self.phone,
            "ticketType": self.ticket_type,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "remainCount": self.remain_count,
            "remainDays": self.remain_days,
            "visitCount": self.visit_count,
            "lastVisitDate": _iso(self.last_visit_date),
            "message": self.message,
        }
