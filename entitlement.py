"""
entitlement.py
Membership entitlement rules: is a member's current ticket usable on a given day?

A ticket can be bounded by time (end_date), by visits (remain_count), by both,
or (data-entry edge case) by neither. Both axes are checked; the date axis wins
when both fail, so an expired ticket with visits left still reports EXPIRED.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from models import Member


class EntitlementStatus(str, Enum):
    NO_TICKET = "no_ticket"
    VALID = "valid"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Entitlement:
    status: EntitlementStatus
    remaining_days: int | None = None
    remaining_count: int | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is EntitlementStatus.VALID


def remaining_days(end_date: date | None, today: date) -> int | None:
    """
    Whole days left until end_date, never negative. None for tickets without an end date.
    """
    if end_date is None:
        return None
    return max(0, (end_date - today).days)


def resolve(
    ticket_type: str | None,
    start_date: date | None,
    end_date: date | None,
    remain_count: int | None,
    today: date,
) -> Entitlement:
    """
    Derive the entitlement state for a ticket assignment as of `today`.

    A ticket expires on its end date (no whole day left). start_date is part
    of the assignment but does not gate usage.
    """
    if not ticket_type:
        return Entitlement(EntitlementStatus.NO_TICKET)

    days = remaining_days(end_date, today)

    if end_date is not None and end_date <= today:
        status = EntitlementStatus.EXPIRED
    elif remain_count is not None and remain_count <= 0:
        status = EntitlementStatus.EXHAUSTED
    else:
        status = EntitlementStatus.VALID

    return Entitlement(status, remaining_days=days, remaining_count=remain_count)


def resolve_member(member: Member, today: date) -> Entitlement:
    return resolve(member.ticket_type, member.start_date, member.end_date, member.remain_count, today)
