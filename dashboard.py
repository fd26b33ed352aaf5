"""
dashboard.py
Read-only statistics for the dashboard and reports pages.
"""

from __future__ import annotations

from datetime import date, timedelta

import pandas as pd

import db
from config import settings
from entitlement import EntitlementStatus, resolve_member
from models import Member

VISIT_DETAILS = {
    EntitlementStatus.VALID.value: "Checked in",
    EntitlementStatus.NO_TICKET.value: "Checked in without an active ticket",
    EntitlementStatus.EXPIRED.value: "Checked in with an expired ticket",
    EntitlementStatus.EXHAUSTED.value: "Checked in with no visits left",
}


def _month_bounds(today: date) -> tuple[str, str]:
    month_start = today.replace(day=1)
    next_month = (month_start.replace(day=28) + timedelta(days=4)).replace(day=1)
    return month_start.isoformat(), next_month.isoformat()


def membership_kind(member: Member) -> str:
    if member.remain_count is not None:
        return "count"
    if member.end_date is not None:
        return "period"
    return "custom"


def today_attendance(today: date | None = None) -> dict:
    day = (today or date.today()).isoformat()
    row = db.fetch_one(
        """
        SELECT COUNT(*) AS total,
               COUNT(DISTINCT v.member_id) AS unique_members,
               COALESCE(SUM(CASE WHEN m.join_date = ? THEN 1 ELSE 0 END), 0) AS new_members
        FROM visits v
        JOIN members m ON m.id = v.member_id
        WHERE date(v.visited_at) = ?
        """,
        (day, day),
    )
    return {
        "total": int(row["total"]),
        "new_members": int(row["new_members"]),
        "unique_members": int(row["unique_members"]),
    }


def attendance_by_hour(today: date | None = None) -> pd.DataFrame:
    day = (today or date.today()).isoformat()
    rows = db.fetch_all(
        """
        SELECT CAST(strftime('%H', visited_at) AS INTEGER) AS hour, COUNT(*) AS count
        FROM visits
        WHERE date(visited_at) = ?
        GROUP BY hour
        """,
        (day,),
    )
    counts = {r["hour"]: r["count"] for r in rows}
    return pd.DataFrame(
        {
            "hour": list(range(24)),
            "count": [int(counts.get(h, 0)) for h in range(24)],
            "label": [f"{h:02d}:00" for h in range(24)],
        }
    )


def expiring_memberships(today: date | None = None, window_days: int | None = None) -> dict:
    """
    Usable tickets ending within the window, soonest first.
    """
    today = today or date.today()
    window = settings.expiring_window_days if window_days is None else window_days
    rows = db.fetch_all(
        """
        SELECT * FROM members
        WHERE ticket_type IS NOT NULL AND end_date BETWEEN ? AND ?
        ORDER BY end_date ASC, id ASC
        """,
        (today.isoformat(), (today + timedelta(days=window)).isoformat()),
    )

    items = []
    for r in rows:
        member = Member.from_row(r)
        ent = resolve_member(member, today)
        if not ent.is_valid:
            continue
        items.append(
            {
                "id": member.id,
                "member_name": member.name,
                "membership_type": membership_kind(member),
                "ticket_type": member.ticket_type,
                "expiry_date": member.end_date.isoformat(),
                "days_remaining": ent.remaining_days,
                "phone": member.phone,
            }
        )

    return {
        "within_7_days": sum(1 for i in items if i["days_remaining"] <= 7),
        "within_3_days": sum(1 for i in items if i["days_remaining"] <= 3),
        "within_1_day": sum(1 for i in items if i["days_remaining"] <= 1),
        "list": items,
    }


def monthly_stats(today: date | None = None, active_window_days: int | None = None) -> dict:
    today = today or date.today()
    window = settings.active_window_days if active_window_days is None else active_window_days
    month_start, month_end = _month_bounds(today)

    new_members = db.fetch_one(
        "SELECT COUNT(*) AS c FROM members WHERE join_date >= ? AND join_date < ?",
        (month_start, month_end),
    )["c"]
    revenue = db.fetch_one(
        "SELECT COALESCE(SUM(amount),0) AS s FROM payments WHERE date >= ? AND date < ?",
        (month_start, month_end),
    )["s"]
    total_members = db.fetch_one("SELECT COUNT(*) AS c FROM members")["c"]
    active_members = db.fetch_one(
        "SELECT COUNT(DISTINCT member_id) AS c FROM visits WHERE date(visited_at) > ?",
        ((today - timedelta(days=window)).isoformat(),),
    )["c"]

    return {
        "new_members": int(new_members),
        "revenue": float(revenue),
        "total_members": int(total_members),
        "active_members": int(active_members),
    }


def attendance_trend(today: date | None = None, days: int | None = None) -> pd.DataFrame:
    """Daily check-in counts for the last `days` days (today included), zero-filled."""
    today = today or date.today()
    days = settings.trend_days if days is None else days
    first = today - timedelta(days=days - 1)
    rows = db.fetch_all(
        """
        SELECT date(visited_at) AS day, COUNT(*) AS count
        FROM visits
        WHERE date(visited_at) BETWEEN ? AND ?
        GROUP BY day
        """,
        (first.isoformat(), today.isoformat()),
    )
    counts = pd.Series({r["day"]: r["count"] for r in rows}, dtype="int64")
    index = [d.date().isoformat() for d in pd.date_range(first, today, freq="D")]
    counts = counts.reindex(index, fill_value=0)
    return pd.DataFrame({"date": index, "count": counts.astype(int).tolist()})


def recent_activities(limit: int | None = None) -> list[dict]:
    limit = settings.recent_activity_limit if limit is None else limit

    visits = db.fetch_all(
        """
        SELECT v.id, v.visited_at AS ts, v.status, m.name
        FROM visits v JOIN members m ON m.id = v.member_id
        ORDER BY v.visited_at DESC, v.id DESC LIMIT ?
        """,
        (limit,),
    )
    issued = db.fetch_all(
        """
        SELECT p.id, p.date AS ts, p.notes, m.name
        FROM payments p JOIN members m ON m.id = p.member_id
        ORDER BY p.date DESC, p.id DESC LIMIT ?
        """,
        (limit,),
    )
    joined = db.fetch_all(
        "SELECT id, join_date AS ts, name FROM members ORDER BY join_date DESC, id DESC LIMIT ?",
        (limit,),
    )

    activities = [
        {
            "id": f"visit-{r['id']}",
            "type": "check-in",
            "member_name": r["name"],
            "timestamp": r["ts"],
            "details": VISIT_DETAILS.get(r["status"], "Checked in"),
        }
        for r in visits
    ]
    activities += [
        {
            "id": f"payment-{r['id']}",
            "type": "membership-issued",
            "member_name": r["name"],
            "timestamp": r["ts"],
            "details": r["notes"] or "Ticket issued",
        }
        for r in issued
    ]
    activities += [
        {
            "id": f"member-{r['id']}",
            "type": "new-member",
            "member_name": r["name"],
            "timestamp": r["ts"],
            "details": "New member registered",
        }
        for r in joined
    ]
    # ISO strings: a bare date sorts before any time on that date
    activities.sort(key=lambda a: a["timestamp"], reverse=True)
    return activities[:limit]


def revenue_summary_by_month() -> pd.DataFrame:
    rows = db.fetch_all(
        """
        SELECT strftime('%Y-%m', date) AS month, SUM(amount) AS revenue
        FROM payments
        GROUP BY strftime('%Y-%m', date)
        ORDER BY month DESC
        """
    )
    df = pd.DataFrame([dict(r) for r in rows])
    if df.empty:
        return pd.DataFrame(columns=["month", "revenue"])
    return df


def dashboard_stats(today: date | None = None) -> dict:
    today = today or date.today()
    return {
        "today_attendance": today_attendance(today),
        "expiring_memberships": expiring_memberships(today),
        "monthly_stats": monthly_stats(today),
        "attendance_trend": attendance_trend(today),
        "recent_activities": recent_activities(),
    }
