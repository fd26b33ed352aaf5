"""
Pytest configuration and fixtures for the gym admin tests
"""

import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import db  # noqa: E402
from models import Member  # noqa: E402


@pytest.fixture
def clock():
    """Fixed check-in time: 2026-10-18 09:30"""
    return lambda: datetime(2026, 10, 18, 9, 30)


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Fresh SQLite database per test"""
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "gym.db")
    db.init_db()
    return tmp_path / "gym.db"


@pytest.fixture
def make_member():
    def _make(**overrides):
        fields = dict(id=1, name="Hong Gildong", phone="010-1234-5678", join_date=date(2026, 1, 1))
        fields.update(overrides)
        return Member(**fields)

    return _make
