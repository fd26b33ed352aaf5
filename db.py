"""
db.py
SQLite helpers + initialization (creates DB/tables) and the SQLite-backed member store
used by the check-in processor.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from loguru import logger

from config import settings
from models import Member

DB_FILE = settings.db_file


def _connect(**kwargs) -> sqlite3.Connection:
    conn = sqlite3.connect(DB_FILE, check_same_thread=False, **kwargs)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_conn():
    conn = _connect()
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """
    One write-locked unit of work. BEGIN IMMEDIATE takes the write lock before the
    first read, so a read-modify-write of a member cannot interleave with another one.
    """
    conn = _connect(isolation_level=None)
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def execute_count(sql: str, params: tuple = ()) -> int:
    """Run an UPDATE/DELETE and return the number of affected rows."""
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS tickets (
            ticket_type TEXT PRIMARY KEY,
            count INTEGER CHECK(count IS NULL OR count > 0),
            duration_days INTEGER CHECK(duration_days IS NULL OR duration_days > 0),
            price REAL NOT NULL,
            description TEXT,
            CHECK(count IS NOT NULL OR duration_days IS NOT NULL)
        )
        """
    )

    # Ticket fields are a snapshot of the issued plan, not a reference to the catalog
    execute(
        """
        CREATE TABLE IF NOT EXISTS members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            phone_digits TEXT NOT NULL,
            email TEXT,
            memo TEXT,
            join_date TEXT NOT NULL,
            ticket_type TEXT,
            start_date TEXT,
            end_date TEXT,
            remain_count INTEGER CHECK(remain_count IS NULL OR remain_count >= 0),
            visit_count INTEGER NOT NULL DEFAULT 0,
            last_visit_date TEXT
        )
        """
    )
    execute("CREATE INDEX IF NOT EXISTS idx_members_phone_digits ON members(phone_digits)")

    execute(
        """
        CREATE TABLE IF NOT EXISTS payments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER NOT NULL,
            amount REAL NOT NULL,
            date TEXT NOT NULL,
            method TEXT NOT NULL CHECK(method IN ('cash','card','transfer')),
            notes TEXT,
            FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
        )
        """
    )

    execute(
        """
        CREATE TABLE IF NOT EXISTS visits (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER NOT NULL,
            visited_at TEXT NOT NULL,
            status TEXT NOT NULL,
            FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
        )
        """
    )
    execute("CREATE INDEX IF NOT EXISTS idx_visits_visited_at ON visits(visited_at)")


def init_db() -> None:
    """
    Initialize the database (idempotent).
    """
    _create_tables()
    logger.debug(f"Database ready at {DB_FILE}")


class SqliteMemberStore:
    """
    Member store for the check-in processor.

    Outside atomic() every call opens its own connection; inside, lookup and save
    share one write-locked transaction.
    """

    def __init__(self, conn: sqlite3.Connection | None = None):
        self._conn = conn

    @contextmanager
    def atomic(self) -> Iterator["SqliteMemberStore"]:
        if self._conn is not None:
            yield self
            return
        with transaction() as conn:
            yield SqliteMemberStore(conn)

    def _fetch_all(self, sql: str, params: tuple) -> list[sqlite3.Row]:
        if self._conn is not None:
            return self._conn.execute(sql, params).fetchall()
        return fetch_all(sql, params)

    def _execute(self, sql: str, params: tuple) -> None:
        if self._conn is not None:
            self._conn.execute(sql, params)
        else:
            execute(sql, params)

    def find_by_phone(self, digits: str) -> Member | None:
        rows = self._fetch_all("SELECT * FROM members WHERE phone_digits = ? ORDER BY id ASC", (digits,))
        if not rows:
            return None
        if len(rows) > 1:
            logger.warning(f"Phone {digits} matches {len(rows)} members; using id {rows[0]['id']}")
        return Member.from_row(rows[0])

    def save_check_in(self, member: Member, status: str, checked_in_at: datetime) -> None:
        self._execute(
            "UPDATE members SET visit_count=?, remain_count=?, last_visit_date=? WHERE id=?",
            (
                member.visit_count,
                member.remain_count,
                member.last_visit_date.isoformat() if member.last_visit_date else None,
                member.id,
            ),
        )
        self._execute(
            "INSERT INTO visits(member_id, visited_at, status) VALUES(?,?,?)",
            (member.id, checked_in_at.isoformat(timespec="seconds"), status),
        )
