"""
tickets.py
Ticket (membership plan) catalog CRUD.
"""

from __future__ import annotations

import sqlite3

from loguru import logger

import db
import utils
from models import Ticket


class TicketNotFound(Exception):
    pass


class DuplicateTicketError(Exception):
    pass


class TicketValidationError(ValueError):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def _to_int(value) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return int(value)


def list_tickets() -> list[Ticket]:
    rows = db.fetch_all("SELECT * FROM tickets ORDER BY ticket_type ASC")
    return [Ticket.from_row(r) for r in rows]


def get_ticket(ticket_type: str) -> Ticket:
    row = db.fetch_one("SELECT * FROM tickets WHERE ticket_type = ?", (ticket_type,))
    if not row:
        raise TicketNotFound(ticket_type)
    return Ticket.from_row(row)


def create_ticket(
    ticket_type: str,
    count=None,
    duration_days=None,
    price=0,
    description: str | None = None,
) -> Ticket:
    errors = utils.validate_ticket_inputs(ticket_type, count, duration_days, price)
    if errors:
        raise TicketValidationError(errors)

    ticket = Ticket(
        ticket_type=ticket_type.strip(),
        count=_to_int(count),
        duration_days=_to_int(duration_days),
        price=float(price),
        description=(description or "").strip() or None,
    )
    try:
        db.execute(
            "INSERT INTO tickets(ticket_type, count, duration_days, price, description) VALUES(?,?,?,?,?)",
            (ticket.ticket_type, ticket.count, ticket.duration_days, ticket.price, ticket.description),
        )
    except sqlite3.IntegrityError as e:
        raise DuplicateTicketError(f"Ticket {ticket.ticket_type!r} already exists.") from e

    logger.info(f"Ticket created: {ticket.ticket_type}")
    return ticket


def update_ticket(ticket_type: str, **fields) -> Ticket:
    """
    Update count/duration_days/price/description. The name is the key and cannot change.
    """
    unknown = set(fields) - {"count", "duration_days", "price", "description"}
    if unknown:
        raise TypeError(f"Unknown ticket fields: {sorted(unknown)}")

    current = get_ticket(ticket_type)
    count = fields.get("count", current.count)
    duration_days = fields.get("duration_days", current.duration_days)
    price = fields.get("price", current.price)
    description = fields.get("description", current.description)

    errors = utils.validate_ticket_inputs(ticket_type, count, duration_days, price)
    if errors:
        raise TicketValidationError(errors)

    updated = Ticket(
        ticket_type=ticket_type,
        count=_to_int(count),
        duration_days=_to_int(duration_days),
        price=float(price),
        description=(description or "").strip() or None,
    )
    db.execute(
        "UPDATE tickets SET count=?, duration_days=?, price=?, description=? WHERE ticket_type=?",
        (updated.count, updated.duration_days, updated.price, updated.description, ticket_type),
    )
    logger.info(f"Ticket updated: {ticket_type}")
    return updated


def ticket_delete_info(ticket_type: str) -> dict:
    """How many members currently hold this ticket type."""
    get_ticket(ticket_type)
    row = db.fetch_one("SELECT COUNT(*) AS c FROM members WHERE ticket_type = ?", (ticket_type,))
    return {"ticket_type": ticket_type, "affected_member_count": int(row["c"])}


def delete_ticket(ticket_type: str) -> None:
    # Members keep their issued snapshot; only the catalog entry goes away
    if db.execute_count("DELETE FROM tickets WHERE ticket_type = ?", (ticket_type,)) == 0:
        raise TicketNotFound(ticket_type)
    logger.info(f"Ticket deleted: {ticket_type}")
