"""
app.py
Streamlit Gym Membership Admin (members, tickets, check-in kiosk, dashboard).
Run: streamlit run app.py
"""

from __future__ import annotations

import sys
from dataclasses import asdict
from datetime import date

import pandas as pd
import streamlit as st
from loguru import logger

import dashboard
import db
import members
import tickets
import utils
from attendance import CheckInProcessor, MemberNotFound
from config import settings
from entitlement import EntitlementStatus, resolve_member
from models import MEMBER_SORT_KEYS, PAYMENT_METHODS

st.set_page_config(page_title="Gym Membership Admin", layout="wide")


@st.cache_resource
def init_once():
    # Logging sinks + DB schema, once per server process
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.log_level,
    )
    if settings.log_file:
        logger.add(settings.log_file, rotation="1 day", retention="30 days", level="DEBUG")
    db.init_db()
    return True


def _blank(value) -> str:
    return "" if value is None else str(value)


def dashboard_page():
    st.header("📊 Dashboard")

    today = date.today()
    stats = dashboard.dashboard_stats(today)
    attendance = stats["today_attendance"]
    expiring = stats["expiring_memberships"]
    monthly = stats["monthly_stats"]

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Check-ins today", attendance["total"], help=f"{attendance['new_members']} by new members")
    c2.metric("Expiring in 7 days", expiring["within_7_days"], help=f"{expiring['within_1_day']} within 1 day")
    c3.metric("Active members (30d)", monthly["active_members"], help=f"{monthly['total_members']} total")
    c4.metric("Revenue this month", f"{monthly['revenue']:,.0f}", help=f"{monthly['new_members']} new members")

    st.divider()

    left, right = st.columns(2)
    with left:
        st.subheader("Attendance trend")
        st.bar_chart(stats["attendance_trend"], x="date", y="count")
    with right:
        st.subheader("Today by hour")
        st.bar_chart(dashboard.attendance_by_hour(today), x="label", y="count")

    st.subheader("Expiring soon")
    if expiring["list"]:
        st.dataframe(pd.DataFrame(expiring["list"]), use_container_width=True, hide_index=True)
    else:
        st.caption("No memberships expiring soon.")

    st.subheader("Recent activity")
    if stats["recent_activities"]:
        st.dataframe(pd.DataFrame(stats["recent_activities"]), use_container_width=True, hide_index=True)
    else:
        st.caption("No activity yet.")


def checkin_page():
    st.header("✅ Check-in")

    with st.form("checkin", clear_on_submit=True):
        phone = st.text_input("Phone number", placeholder="010-1234-5678")
        submitted = st.form_submit_button("Check in", type="primary")

    if not submitted:
        return

    processor = CheckInProcessor(db.SqliteMemberStore())
    try:
        result = processor.check_in(phone)
    except MemberNotFound:
        st.error("This phone number is not registered.")
        return

    if result.status == EntitlementStatus.VALID.value:
        st.success(result.message)
    else:
        st.warning(result.message)

    c1, c2, c3 = st.columns(3)
    c1.metric("Member", result.member_name)
    c2.metric("Ticket", result.ticket_type or "None")
    c3.metric("Total visits", result.visit_count)

    c4, c5, c6 = st.columns(3)
    c4.metric("Visits left", "-" if result.remain_count is None else result.remain_count)
    c5.metric("Days left", "-" if result.remain_days is None else result.remain_days)
    c6.metric("Valid until", _blank(result.end_date) or "-")
    if result.repeat_visit:
        st.caption("Already checked in earlier today.")


def member_form(existing=None):
    if existing:
        st.subheader(f"✏️ Edit Member (ID: {existing.id})")
    else:
        st.subheader("➕ Add Member")

    col1, col2 = st.columns(2)
    with col1:
        name = st.text_input("Name", value=(existing.name if existing else ""))
        phone = st.text_input("Phone", value=(existing.phone if existing else ""))
    with col2:
        email = st.text_input("Email (optional)", value=(_blank(existing.email) if existing else ""))
        memo = st.text_input("Memo (optional)", value=(_blank(existing.memo) if existing else ""))

    if st.button("Save", type="primary"):
        try:
            if existing:
                members.update_member(existing.id, name, phone, email, memo)
                st.success("Member updated.")
            else:
                members.create_member(name, phone, email, memo)
                st.success("Member added.")
        except members.MemberValidationError as e:
            for err in e.errors:
                st.error(err)
            return
        st.session_state.edit_member_id = None
        st.rerun()


def ticket_assignment(member):
    st.subheader("🎫 Issue ticket")
    catalog = tickets.list_tickets()
    if not catalog:
        st.caption("No tickets in the catalog yet.")
        return

    col1, col2, col3 = st.columns(3)
    with col1:
        ticket_type = st.selectbox("Ticket", [t.ticket_type for t in catalog])
    with col2:
        start_date = st.date_input("Start date", value=date.today())
    with col3:
        method = st.selectbox("Payment method", list(PAYMENT_METHODS))

    if st.button("Issue ticket"):
        _, payment = members.assign_ticket(member.id, ticket_type, start_date=start_date, method=method)
        st.success(f"{ticket_type} issued (paid {payment.amount:,.0f}).")
        st.rerun()


def members_page():
    st.header("👥 Members")

    with st.sidebar:
        st.subheader("Search & Sort")
        search = st.text_input("Search (name/phone)")
        sort_by = st.selectbox("Sort by", ["(newest)"] + list(MEMBER_SORT_KEYS))
        sort_order = st.radio("Order", ["desc", "asc"], horizontal=True)
        status = st.selectbox("Status", ["All"] + [s.value for s in EntitlementStatus])
        limit = st.selectbox("Per page", [10, 20, 50])

    page = st.number_input("Page", min_value=1, value=1, step=1)
    today = date.today()
    result = members.list_members(
        search=search,
        sort_by=None if sort_by == "(newest)" else sort_by,
        sort_order=sort_order,
        page=int(page),
        limit=int(limit),
        status=None if status == "All" else status,
        today=today,
    )

    rows = []
    for m in result.members:
        row = m.to_dict()
        row["entitlement"] = resolve_member(m, today).status.value
        rows.append(row)
    df = pd.DataFrame(rows)
    st.dataframe(df, use_container_width=True, hide_index=True)
    st.caption(f"{result.total} members · page {result.page} of {max(result.total_pages, 1)}")

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        member_ids = [m.id for m in result.members]
        selected_id = st.selectbox("Member ID", options=["(none)"] + [str(i) for i in member_ids])

    selected = None
    with colB:
        if selected_id != "(none)":
            selected = members.get_member(int(selected_id))
            st.subheader("Member actions")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Edit"):
                    st.session_state.edit_member_id = selected.id
                    st.rerun()
            with c2:
                delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    members.delete_member(selected.id)
                    st.success("Member deleted.")
                    st.rerun()

    if selected:
        ticket_assignment(selected)

    st.divider()

    if st.session_state.get("edit_member_id"):
        try:
            existing = members.get_member(st.session_state.edit_member_id)
        except members.MemberNotFoundError:
            existing = None
        if existing:
            member_form(existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_member_id = None
            st.rerun()
    else:
        member_form(existing=None)


def tickets_page():
    st.header("🎫 Tickets")

    catalog = tickets.list_tickets()
    if catalog:
        st.dataframe(pd.DataFrame([asdict(t) for t in catalog]), use_container_width=True, hide_index=True)
    else:
        st.caption("No tickets yet.")

    st.divider()

    st.subheader("➕ Add / ✏️ Edit ticket")
    names = [t.ticket_type for t in catalog]
    editing = st.selectbox("Ticket", ["(new)"] + names)
    existing = tickets.get_ticket(editing) if editing != "(new)" else None

    col1, col2, col3 = st.columns(3)
    with col1:
        ticket_type = st.text_input("Name", value=(existing.ticket_type if existing else ""), disabled=bool(existing))
        price = st.text_input("Price", value=(str(existing.price) if existing else "0"))
    with col2:
        count = st.text_input("Visit count (blank = unlimited)", value=(_blank(existing.count) if existing else ""))
        duration = st.text_input("Duration in days (blank = none)", value=(_blank(existing.duration_days) if existing else ""))
    with col3:
        description = st.text_area("Description", value=(_blank(existing.description) if existing else ""))

    if st.button("Save ticket", type="primary"):
        try:
            if existing:
                tickets.update_ticket(existing.ticket_type, count=count, duration_days=duration, price=price, description=description)
                st.success("Ticket updated.")
            else:
                tickets.create_ticket(ticket_type, count, duration, price, description)
                st.success("Ticket created.")
            st.rerun()
        except tickets.TicketValidationError as e:
            for err in e.errors:
                st.error(err)
        except tickets.DuplicateTicketError as e:
            st.error(str(e))

    if existing:
        info = tickets.ticket_delete_info(existing.ticket_type)
        st.caption(f"{info['affected_member_count']} member(s) currently hold this ticket; they keep it after deletion.")
        confirm = st.checkbox("Confirm delete", value=False, key="ticket_del_confirm")
        if st.button("Delete ticket", disabled=not confirm):
            tickets.delete_ticket(existing.ticket_type)
            st.success("Ticket deleted.")
            st.rerun()


def reports_page():
    st.header("🧾 Reports")

    st.subheader("Export members to CSV")
    rows = db.fetch_all("SELECT * FROM members ORDER BY id DESC")
    if rows:
        st.download_button(
            "Download members.csv",
            data=utils.members_to_csv_bytes(rows),
            file_name="members.csv",
            mime="text/csv",
        )
    else:
        st.caption("No members to export.")

    st.divider()

    st.subheader("Export payments to CSV")
    payments = db.fetch_all(
        """
        SELECT p.id, p.member_id, m.name, p.amount, p.date, p.method, p.notes
        FROM payments p
        JOIN members m ON m.id = p.member_id
        ORDER BY p.date DESC, p.id DESC
        """
    )
    if payments:
        st.download_button(
            "Download payments.csv",
            data=utils.payments_to_csv_bytes(payments),
            file_name="payments.csv",
            mime="text/csv",
        )
    else:
        st.caption("No payments to export.")

    st.divider()

    st.subheader("Revenue summary by month")
    st.dataframe(dashboard.revenue_summary_by_month(), use_container_width=True, hide_index=True)


def settings_page():
    st.header("⚙️ Settings")

    st.write(f"Database: `{db.DB_FILE}`")

    st.subheader("Sample data")
    st.caption("Insert a sample ticket catalog and members in each ticket state.")
    if st.button("Insert sample data"):
        members.insert_sample_data()
        st.success("Sample data inserted.")
        st.rerun()


def main_app():
    st.sidebar.title("🏋️ Gym Admin")

    pages = ["Dashboard", "Check-in", "Members", "Tickets", "Reports", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Check-in"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Check-in":
        checkin_page()
    elif st.session_state.page == "Members":
        members_page()
    elif st.session_state.page == "Tickets":
        tickets_page()
    elif st.session_state.page == "Reports":
        reports_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    main_app()


if __name__ == "__main__":
    run()
