"""
attendance.py
Kiosk check-in: find the member by phone, record the visit, consume a visit from
count-bounded tickets.

A check-in always records the visit (footfall is tracked even without a usable
ticket). Only a VALID count-bounded ticket loses a visit. The one hard failure is
an unknown phone number.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Callable, ContextManager, Iterator, Protocol

from loguru import logger

import utils
from entitlement import EntitlementStatus, resolve_member
from models import CheckInResult, Member

MESSAGES = {
    EntitlementStatus.VALID: "Check-in complete.",
    EntitlementStatus.NO_TICKET: "Check-in complete. (no active ticket)",
    EntitlementStatus.EXPIRED: "Check-in complete. (ticket expired)",
    EntitlementStatus.EXHAUSTED: "Check-in complete. (no remaining count)",
}


class MemberNotFound(Exception):
    """No member is registered under the given phone number."""

    def __init__(self, phone: str):
        super().__init__(f"No member registered with phone {phone!r}")
        self.phone = phone


class MemberStore(Protocol):
    def atomic(self) -> ContextManager["MemberStore"]: ...

    def find_by_phone(self, digits: str) -> Member | None: ...

    def save_check_in(self, member: Member, status: str, checked_in_at: datetime) -> None: ...


class InMemoryMemberStore:
    """
    List-backed store; atomic() serializes check-ins with a lock.
    """

    def __init__(self, members: list[Member] | None = None):
        self.members: list[Member] = list(members or [])
        self.visits: list[tuple[int, datetime, str]] = []
        self._lock = threading.RLock()

    @contextmanager
    def atomic(self) -> Iterator["InMemoryMemberStore"]:
        with self._lock:
            yield self

    def find_by_phone(self, digits: str) -> Member | None:
        for m in self.members:
            if utils.normalize_phone(m.phone) == digits:
                return m
        return None

    def get(self, member_id: int) -> Member | None:
        return next((m for m in self.members if m.id == member_id), None)

    def save_check_in(self, member: Member, status: str, checked_in_at: datetime) -> None:
        self.members = [member if m.id == member.id else m for m in self.members]
        self.visits.append((member.id, checked_in_at, status))


class CheckInProcessor:
    def __init__(self, store: MemberStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    def check_in(self, raw_phone: str) -> CheckInResult:
        digits = utils.normalize_phone(raw_phone)
        if not digits:
            raise MemberNotFound(raw_phone)

        with self.store.atomic() as store:
            member = store.find_by_phone(digits)
            if member is None:
                logger.info(f"Check-in rejected: unknown phone {raw_phone!r}")
                raise MemberNotFound(raw_phone)

            now = self.clock()
            today = now.date()
            entitlement = resolve_member(member, today)
            repeat_visit = member.last_visit_date == today

            remain_count = member.remain_count
            if entitlement.is_valid and remain_count is not None:
                remain_count = max(0, remain_count - 1)

            updated = replace(
                member,
                visit_count=member.visit_count + 1,
                last_visit_date=today,
                remain_count=remain_count,
            )
            store.save_check_in(updated, entitlement.status.value, now)

        if repeat_visit:
            logger.info(f"Member {member.id} checked in again today")
        logger.info(
            f"Check-in member={member.id} status={entitlement.status.value} "
            f"remain_count={remain_count} visits={updated.visit_count}"
        )

        return CheckInResult(
            member_id=member.id,
            member_name=member.name,
            phone=member.phone,
            ticket_type=member.ticket_type,
            start_date=member.start_date,
            end_date=member.end_date,
            remain_count=remain_count,
            remain_days=entitlement.remaining_days,
            visit_count=updated.visit_count,
            last_visit_date=today,
            message=MESSAGES[entitlement.status],
            status=entitlement.status.value,
            repeat_visit=repeat_visit,
        )
