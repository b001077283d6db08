"""
app.py
Streamlit Dojo Membership Manager (staff login + member portal).
Run: streamlit run app.py
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
import pandas as pd
import streamlit as st

import attendance
import auth
import bulletin
import catalog
import config
import content
import db
import directory
import portal
import progression
import schedule
import utils
from models import (
    ANNOUNCEMENT_AUDIENCES,
    BELT_RANKS,
    CLASS_TYPES,
    DAYS_OF_WEEK,
    EVENT_TYPES,
    MAX_STRIPES,
    MEMBERSHIP_STATUSES,
    VIDEO_CATEGORIES,
)

st.set_page_config(page_title="Dojo Membership Manager", layout="wide")


def init_once():
    config.setup_logging()
    # Initialize DB + default admin if needed
    if not db.is_initialized():
        db.init_db(auth.hash_password(config.DEFAULT_ADMIN_PASSWORD))
    else:
        db.ensure_schema()
    content.install_default_templates()


def require_login():
    if "logged_in" not in st.session_state:
        st.session_state.logged_in = False
    if "username" not in st.session_state:
        st.session_state.username = None


def logout():
    st.session_state.logged_in = False
    st.session_state.username = None
    st.success("Logged out.")


def login_screen():
    st.title("🥋 Dojo Staff Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value="admin")
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            if auth.login(username.strip(), password):
                st.session_state.logged_in = True
                st.session_state.username = username.strip()
                st.rerun()
            else:
                st.error("Invalid username or password.")

    with col2:
        st.info(
            "First run creates a default admin:\n\n"
            "- username: **admin**\n"
            "- password: set by `DOJO_DEFAULT_ADMIN_PASSWORD` (default **admin123**)\n\n"
            "You will be forced to change it on first login."
        )


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")

    if st.button("Update password", type="primary"):
        if len(new1) < 6:
            st.error("Password must be at least 6 characters.")
            return
        if new1 != new2:
            st.error("Passwords do not match.")
            return
        auth.change_password(st.session_state.username, new1)
        st.success("Password updated. You can continue.")
        st.rerun()


# ---------- Shared widgets ----------

def member_picker(label: str, members, key: str):
    if not members:
        return None
    options = {f"{m.display_name} - ID {m.id}": m.id for m in members}
    chosen = st.selectbox(label, list(options.keys()), key=key)
    return options[chosen]


def location_picker(label: str, key: str, active_only: bool = True):
    locations = directory.list_locations(active_only=active_only)
    if not locations:
        return None
    options = {loc.name: loc.id for loc in locations}
    chosen = st.selectbox(label, list(options.keys()), key=key)
    return options[chosen]


def instances_frame(instances) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "date": i.date_string,
                "day": DAYS_OF_WEEK[i.day_of_week],
                "class": i.name,
                "time": f"{i.start_time[:5]}-{i.end_time[:5]}",
                "location": i.location_name or "No location",
                "instructor": i.instructor_name or "",
                "attended": i.attended,
            }
            for i in instances
        ]
    )


def events_frame(events) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": e.id,
                "title": e.title,
                "type": e.event_type,
                "from": e.start_date.isoformat(),
                "to": e.last_day.isoformat(),
                "location": e.location_name or "All locations",
                "price": utils.format_price(e.price or 0),
                "active": e.is_active,
            }
            for e in events
        ]
    )


# ---------- Pages ----------

def dashboard_page():
    st.header("📊 Dashboard")

    today = date.today()
    active = directory.list_memberships(status="active")
    pending = directory.list_memberships(status="pending")
    todays_classes = [
        c for c in catalog.list_classes(active_only=True)
        if c.day_of_week == utils.sunday_weekday(today)
    ]

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Active memberships", len(active))
    c2.metric("Pending memberships", len(pending))
    c3.metric("Classes today", len(todays_classes))
    c4.metric("Check-ins today", attendance.check_ins_on(today))

    st.divider()

    st.subheader(f"Today's classes ({DAYS_OF_WEEK[utils.sunday_weekday(today)]})")
    if todays_classes:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "class": c.name,
                        "time": f"{c.start_time}-{c.end_time}",
                        "location": c.location_name or "No location",
                        "instructor": c.instructor_name or "",
                    }
                    for c in todays_classes
                ]
            ),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No classes scheduled today.")

    st.divider()

    left, right = st.columns(2)
    with left:
        st.subheader("📣 Announcements")
        announcements = bulletin.current_announcements(today=today)
        if not announcements:
            st.caption("No current announcements.")
        for a in announcements:
            st.markdown(f"**{a.title}** ({a.location_name or 'All locations'})")
            st.write(a.message)
    with right:
        st.subheader("📅 Upcoming events")
        events = bulletin.upcoming_events(today=today)
        if events:
            st.dataframe(events_frame(events), use_container_width=True, hide_index=True)
        else:
            st.caption("No upcoming events.")


def member_form(existing=None):
    if existing:
        st.subheader(f"✏️ Edit Member (ID: {existing.id})")
    else:
        st.subheader("➕ Add Member")

    col1, col2, col3 = st.columns(3)
    with col1:
        first_name = st.text_input("First name", value=(existing.first_name if existing else ""))
        last_name = st.text_input("Last name", value=(existing.last_name if existing else ""))
    with col2:
        dob = st.date_input(
            "Date of birth",
            value=(existing.date_of_birth if existing and existing.date_of_birth else date(2000, 1, 1)),
            min_value=date(1920, 1, 1),
        ).isoformat()
        email = st.text_input("Email", value=((existing.email or "") if existing else ""))
    with col3:
        phone = st.text_input("Phone", value=((existing.phone or "") if existing else ""))
        is_instructor = st.checkbox("Instructor", value=(existing.is_instructor if existing else False))
        parent_id = None
        is_child = False
        if not existing:
            is_child = st.checkbox("Child (under 16)", value=False)
            if is_child:
                parent_id = member_picker(
                    "Parent / guardian", [m for m in directory.list_members() if not m.is_child], key="parent_pick"
                )

    errors = utils.validate_member_inputs(first_name, last_name, dob, email)
    if errors:
        for e in errors:
            st.error(e)

    if st.button("Save", type="primary", disabled=bool(errors)):
        if existing:
            directory.update_member(existing.id, first_name, last_name, dob, email, phone, is_instructor)
            st.success("Member updated.")
        else:
            directory.create_member(
                first_name, last_name, dob, email, phone,
                is_child=is_child, parent_id=parent_id,
                is_instructor=is_instructor,
            )
            st.success("Member added.")
        st.rerun()


def members_page():
    st.header("👥 Members")

    with st.sidebar:
        st.subheader("Search")
        search = st.text_input("Search (name/email/phone)")

    members = directory.list_members(search=search)
    df = pd.DataFrame(
        [
            {
                "id": m.id,
                "name": m.display_name,
                "date_of_birth": m.date_of_birth.isoformat() if m.date_of_birth else "",
                "email": m.email or "",
                "phone": m.phone or "",
                "child": m.is_child,
                "belt": f"{m.belt_rank} ({m.stripes})",
                "instructor": m.is_instructor,
            }
            for m in members
        ]
    )
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        selected_id = st.selectbox("Member ID", options=["(none)"] + [str(m.id) for m in members])

    with colB:
        if selected_id != "(none)":
            member_id = int(selected_id)
            st.subheader("Member actions")
            c1, c2, c3 = st.columns(3)
            with c1:
                if st.button("Edit"):
                    st.session_state.edit_member_id = member_id
                    st.rerun()
            with c2:
                if st.button("Open portal"):
                    st.session_state.portal_member_id = member_id
                    st.session_state.page = "Member Portal"
                    st.rerun()
            with c3:
                delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    directory.delete_member(member_id)
                    st.success("Member deleted (memberships and attendance removed).")
                    st.rerun()

            children = directory.list_children(member_id)
            if children:
                st.caption("Children: " + ", ".join(c.display_name for c in children))

    st.divider()

    if st.session_state.get("edit_member_id"):
        existing = directory.get_member(st.session_state.edit_member_id)
        if existing:
            member_form(existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_member_id = None
            st.rerun()
    else:
        member_form(existing=None)


def memberships_page():
    st.header("🎫 Memberships")

    df = directory.memberships_frame()
    if df.empty:
        st.caption("No memberships yet.")
    else:
        status_filter = st.selectbox("Status", ["All", *MEMBERSHIP_STATUSES])
        if status_filter != "All":
            df = df[df["status"] == status_filter]
        st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    st.subheader("Change status")
    c1, c2, c3 = st.columns([1, 1, 1])
    with c1:
        membership_id = st.number_input("Membership ID", min_value=1, step=1)
    with c2:
        new_status = st.selectbox("New status", MEMBERSHIP_STATUSES)
    with c3:
        st.write("")
        if st.button("Update status"):
            try:
                directory.set_membership_status(int(membership_id), new_status)
                st.success("Membership updated.")
                st.rerun()
            except directory.MembershipError as e:
                st.error(str(e))

    st.divider()

    st.subheader("➕ New membership")
    members = directory.list_members()
    member_id = member_picker("Member", members, key="ms_member")
    location_id = location_picker("Location", key="ms_location")
    if member_id is None or location_id is None:
        st.info("Add a member and a location first.")
        return

    member = directory.get_member(member_id)
    tiers = directory.eligible_membership_types(member, location_id)
    if not tiers:
        st.warning("No membership types at this location suit this member's age.")
        return
    tier_options = {f"{t.name} ({utils.format_price(t.price)})": t.id for t in tiers}
    tier_label = st.selectbox("Membership type", list(tier_options.keys()))

    c1, c2, c3 = st.columns(3)
    with c1:
        status = st.selectbox("Status", MEMBERSHIP_STATUSES, key="ms_status")
    with c2:
        start_date = st.date_input("Start date", value=date.today())
    with c3:
        subscription_ref = st.text_input("External subscription ref (optional)")

    if not directory.location_has_capacity(location_id):
        st.warning("This location is at full capacity.")

    if st.button("Create membership", type="primary"):
        try:
            directory.create_membership(
                member_id, location_id, tier_options[tier_label],
                status=status, start_date=start_date,
                subscription_ref=subscription_ref.strip() or None,
            )
            st.success("Membership created.")
            st.rerun()
        except directory.MembershipError as e:
            st.error(str(e))


def locations_page():
    st.header("📍 Locations")

    locations = directory.list_locations()
    if locations:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "id": loc.id,
                        "name": loc.name,
                        "city": loc.city or "",
                        "capacity": loc.max_capacity if loc.max_capacity is not None else "unlimited",
                        "active members": directory.active_membership_count(loc.id),
                        "active": loc.is_active,
                    }
                    for loc in locations
                ]
            ),
            use_container_width=True,
            hide_index=True,
        )

        loc_options = {f"{loc.name} - ID {loc.id}": loc for loc in locations}
        chosen = loc_options[st.selectbox("Location", list(loc_options.keys()))]
        label = "Deactivate" if chosen.is_active else "Activate"
        if st.button(label):
            directory.set_location_active(chosen.id, not chosen.is_active)
            st.rerun()

    st.divider()

    st.subheader("➕ Add location")
    name = st.text_input("Name")
    city = st.text_input("City")
    capacity = st.number_input("Max capacity (0 = unlimited)", min_value=0, step=1, value=0)
    if st.button("Add location", type="primary", disabled=not name.strip()):
        directory.create_location(name, city.strip() or None, int(capacity) or None)
        st.success("Location added.")
        st.rerun()


def membership_types_page():
    st.header("🏷️ Membership Types")

    location_id = location_picker("Location", key="mt_location", active_only=False)
    if location_id is None:
        st.info("Add a location first.")
        return

    tiers = directory.list_membership_types(location_id)
    if tiers:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "id": t.id,
                        "name": t.name,
                        "price": utils.format_price(t.price),
                        "ages": f"{t.age_min if t.age_min is not None else '-'} to "
                                f"{t.age_max if t.age_max is not None else '-'}",
                        "active": t.is_active,
                    }
                    for t in tiers
                ]
            ),
            use_container_width=True,
            hide_index=True,
        )
        tier_options = {f"{t.name} - ID {t.id}": t for t in tiers}
        chosen = tier_options[st.selectbox("Membership type", list(tier_options.keys()))]
        if st.button("Deactivate" if chosen.is_active else "Activate"):
            directory.set_membership_type_active(chosen.id, not chosen.is_active)
            st.rerun()

    st.divider()

    st.subheader("➕ Add membership type")
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        name = st.text_input("Name", key="mt_name")
    with c2:
        price = st.number_input("Price (pence, 0 = free)", min_value=0, step=100, value=0)
    with c3:
        age_min = st.number_input("Min age (0 = none)", min_value=0, step=1, value=0)
    with c4:
        age_max = st.number_input("Max age (0 = none)", min_value=0, step=1, value=0)
    description = st.text_input("Description", key="mt_desc")

    age_min = int(age_min) or None
    age_max = int(age_max) or None
    errors = utils.validate_membership_type_inputs(name, price, age_min, age_max)
    for e in errors:
        st.error(e)
    if st.button("Add membership type", type="primary", disabled=bool(errors)):
        directory.create_membership_type(location_id, name, int(price), age_min, age_max, description or None)
        st.success("Membership type added.")
        st.rerun()


def classes_page():
    st.header("📅 Classes")

    location_id = location_picker("Location", key="cls_location", active_only=False)
    if location_id is None:
        st.info("Add a location first.")
        return

    tiers = {t.id: t.name for t in directory.list_membership_types(location_id)}
    classes = catalog.list_classes(location_id, active_only=False)
    if classes:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "id": c.id,
                        "name": c.name,
                        "day": DAYS_OF_WEEK[c.day_of_week],
                        "time": f"{c.start_time}-{c.end_time}",
                        "instructor": c.instructor_name or "",
                        "tiers": ", ".join(tiers.get(t, str(t)) for t in sorted(c.tier_ids)) or "All",
                        "active": c.is_active,
                    }
                    for c in classes
                ]
            ),
            use_container_width=True,
            hide_index=True,
        )

        class_options = {f"{c.name} ({DAYS_OF_WEEK[c.day_of_week]} {c.start_time}) - ID {c.id}": c for c in classes}
        chosen = class_options[st.selectbox("Class", list(class_options.keys()))]
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Deactivate" if chosen.is_active else "Activate"):
                catalog.set_class_active(chosen.id, not chosen.is_active)
                st.rerun()
        with c2:
            picked = st.multiselect(
                "Restrict to membership types (empty = all)",
                options=list(tiers.keys()),
                default=sorted(chosen.tier_ids),
                format_func=lambda t: tiers[t],
                key=f"tiers_{chosen.id}",
            )
            if st.button("Save tiers"):
                catalog.set_class_tiers(chosen.id, picked)
                st.success("Tier restrictions saved.")
                st.rerun()

        st.subheader("Today's roster")
        st.dataframe(attendance.class_roster(chosen.id), use_container_width=True, hide_index=True)

    st.divider()

    st.subheader("➕ Add class")
    c1, c2, c3 = st.columns(3)
    with c1:
        name = st.text_input("Class name")
        class_type = st.selectbox("Type", CLASS_TYPES)
    with c2:
        day = st.selectbox("Day", range(7), format_func=lambda d: DAYS_OF_WEEK[d])
        start_time = st.text_input("Start (HH:MM)", value="18:00")
        end_time = st.text_input("End (HH:MM)", value="19:00")
    with c3:
        instructors = directory.list_instructors()
        instructor_id = member_picker("Instructor", instructors, key="cls_instructor") if instructors else None
        tier_ids = st.multiselect(
            "Membership types (empty = all)", options=list(tiers.keys()), format_func=lambda t: tiers[t]
        )

    errors = utils.validate_class_inputs(name, class_type, day, start_time, end_time)
    for e in errors:
        st.error(e)
    if st.button("Add class", type="primary", disabled=bool(errors)):
        try:
            catalog.create_class(location_id, name, day, start_time, end_time, class_type, instructor_id, tier_ids)
            st.success("Class added.")
            st.rerun()
        except catalog.ClassDefinitionError as e:
            st.error(str(e))


def _render_today(instance, member_id: int):
    decision = schedule.can_check_in(instance, datetime.now())
    c1, c2 = st.columns([3, 1])
    with c1:
        st.markdown(
            f"**{instance.name}** · {instance.start_time[:5]}-{instance.end_time[:5]} · "
            f"{instance.location_name or 'No location'}"
            + (f" · {instance.instructor_name}" if instance.instructor_name else "")
        )
    with c2:
        if instance.attended:
            st.success("Checked in ✅")
        elif decision.allowed:
            if st.button("Check in", key=f"checkin_{instance.class_id}", type="primary"):
                result = attendance.check_in(instance.class_id, member_id)
                if result.success:
                    st.success("Already checked in!" if result.already_checked_in else "Successfully checked in!")
                    st.rerun()
                else:
                    st.error(result.error or "Failed to check in")
        elif decision.reason:
            st.caption(decision.reason)


def member_portal_page():
    st.header("🥋 Member Portal")

    members = [m for m in directory.list_members() if not m.is_child]
    if not members:
        st.info("No members yet.")
        return

    default_id = st.session_state.get("portal_member_id")
    options = {f"{m.display_name} - ID {m.id}": m.id for m in members}
    labels = list(options.keys())
    index = next((i for i, k in enumerate(labels) if options[k] == default_id), 0)
    member_id = options[st.selectbox("Member", labels, index=index)]
    st.session_state.portal_member_id = member_id

    profiles = portal.switchable_profiles(directory.get_member(member_id))
    if len(profiles) > 1:
        profile_options = {p.display_name: p.id for p in profiles}
        member_id = profile_options[st.radio("Profile", list(profile_options.keys()), horizontal=True)]

    memberships = directory.list_memberships(member_id=member_id, status="active")
    location_id = None
    if len(memberships) > 1:
        names = {directory.get_location(ms.location_id).name: ms.location_id for ms in memberships}
        location_id = names[st.selectbox("Location", list(names.keys()))]

    data = portal.load_member_schedule(member_id, location_id=location_id)
    if not data.has_active_membership:
        st.warning("No active membership. Classes appear here once a membership is active.")
        return

    for a in bulletin.current_announcements(data.membership.location_id, audience="members"):
        st.info(f"**{a.title}**: {a.message}")

    stats = data.stats
    c1, c2, c3 = st.columns(3)
    c1.metric(
        "This month",
        f"{stats.this_month.attended}/{stats.this_month.total}",
        delta=f"{stats.this_month.rate}%",
    )
    c2.metric(
        "Last month",
        f"{stats.last_month.attended}/{stats.last_month.total}",
        delta=f"{stats.last_month.rate}%",
    )
    c3.metric("Trend", "Improving 📈" if stats.improved else "Keep going")

    st.subheader("Today")
    if data.today:
        for instance in data.today:
            _render_today(instance, member_id)
    else:
        st.caption("No classes today.")

    upcoming_tab, past_tab = st.tabs(["Upcoming (4 weeks)", "Past"])
    with upcoming_tab:
        df = instances_frame([i for i in data.upcoming if not i.is_today])
        if df.empty:
            st.caption("Nothing scheduled.")
        else:
            st.dataframe(df, use_container_width=True, hide_index=True)
    with past_tab:
        df = instances_frame(data.past)
        if df.empty:
            st.caption("No past classes since your membership started.")
        else:
            st.dataframe(df, use_container_width=True, hide_index=True)


def attendance_page():
    st.header("✅ Attendance")

    members = directory.list_members()
    member_id = member_picker("Member", members, key="att_member")
    if member_id is not None:
        df = attendance.history_frame(member_id)
        c1, c2 = st.columns(2)
        c1.metric("Total sessions (last 50)", len(df))
        c2.metric("This month", attendance.this_month_count(df))
        groups = attendance.group_by_month(df)
        if not groups:
            st.caption("No attendance recorded yet.")
        for label, rows in groups:
            with st.expander(f"{label} ({len(rows)})"):
                st.dataframe(rows.drop(columns=["id"]), use_container_width=True, hide_index=True)

    st.divider()

    st.subheader("Staff check-in")
    classes = catalog.list_classes(active_only=True)
    today_classes = [c for c in classes if c.day_of_week == utils.sunday_weekday(date.today())]
    if today_classes and member_id is not None:
        class_options = {f"{c.name} {c.start_time} ({c.location_name})": c.id for c in today_classes}
        class_id = class_options[st.selectbox("Class", list(class_options.keys()))]
        if st.button("Check in member", type="primary"):
            staff = auth.get_staff_user(st.session_state.username)
            result = attendance.check_in(class_id, member_id, checked_in_by=staff["id"] if staff else None)
            if result.success:
                st.success(result.message)
            else:
                st.error(result.error)
    else:
        st.caption("No classes running today.")

    st.divider()

    st.subheader("Attendance report")
    c1, c2 = st.columns(2)
    with c1:
        start = st.date_input("From", value=date.today() - timedelta(days=28))
    with c2:
        end = st.date_input("To", value=date.today())
    report = attendance.attendance_report(start=start, end=end)
    st.dataframe(report, use_container_width=True, hide_index=True)


def progression_page():
    st.header("🎖️ Belt Progress")

    members = directory.list_members()
    member_id = member_picker("Member", members, key="prog_member")
    if member_id is None:
        st.info("No members yet.")
        return
    member = directory.get_member(member_id)
    st.write(f"Current rank: **{member.belt_rank}** belt, **{member.stripes}** stripe(s)")

    belts = utils.valid_belts(member.is_child)
    c1, c2 = st.columns(2)
    with c1:
        new_belt = st.selectbox("New belt", belts, index=belts.index(member.belt_rank) if member.belt_rank in belts else 0)
    with c2:
        new_stripes = st.number_input("Stripes", min_value=0, max_value=MAX_STRIPES, value=member.stripes, step=1)
    comments = st.text_area("Comments")

    if st.button("Record promotion", type="primary"):
        try:
            progression.promote(member_id, new_belt, int(new_stripes), st.session_state.username, comments=comments)
            st.success("Promotion recorded.")
            st.rerun()
        except progression.PromotionError as e:
            st.error(str(e))

    st.divider()
    history = progression.list_promotions(member_id)
    if history:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "date": p.promotion_date.isoformat(),
                        "from": f"{p.previous_belt} ({p.previous_stripes})",
                        "to": f"{p.new_belt} ({p.new_stripes})",
                        "by": p.promoted_by or "",
                        "comments": p.comments or "",
                    }
                    for p in history
                ]
            ),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No promotions recorded.")


def videos_page():
    st.header("🎬 Videos")

    belt_filter = st.selectbox("Belt level", ["All", *BELT_RANKS])
    videos = content.list_videos(active_only=False, belt_level=None if belt_filter == "All" else belt_filter)
    if videos:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "id": v.id, "title": v.title, "category": v.category,
                        "belt": v.belt_level or "all", "url": v.url, "active": v.is_active,
                    }
                    for v in videos
                ]
            ),
            use_container_width=True,
            hide_index=True,
        )
        video_options = {f"{v.title} - ID {v.id}": v for v in videos}
        chosen = video_options[st.selectbox("Video", list(video_options.keys()))]
        if st.button("Hide" if chosen.is_active else "Publish"):
            content.set_video_active(chosen.id, not chosen.is_active)
            st.rerun()

    st.divider()

    st.subheader("➕ Add video")
    title = st.text_input("Title")
    url = st.text_input("URL")
    c1, c2 = st.columns(2)
    with c1:
        category = st.selectbox("Category", VIDEO_CATEGORIES)
    with c2:
        belt = st.selectbox("Belt level", ["(all)", *BELT_RANKS], key="video_belt")
    description = st.text_area("Description", key="video_desc")
    if st.button("Add video", type="primary", disabled=not (title.strip() and url.strip())):
        content.create_video(title, url, category, None if belt == "(all)" else belt, description)
        st.success("Video added.")
        st.rerun()


def announcements_page():
    st.header("📣 Announcements")

    announcements = bulletin.list_announcements()
    if announcements:
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "id": a.id, "title": a.title, "audience": a.target_audience,
                        "location": a.location_name or "All locations",
                        "expires": a.expires_at.isoformat() if a.expires_at else "",
                        "active": a.is_active,
                    }
                    for a in announcements
                ]
            ),
            use_container_width=True,
            hide_index=True,
        )
        options = {f"{a.title} - ID {a.id}": a for a in announcements}
        chosen = options[st.selectbox("Announcement", list(options.keys()))]
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Hide" if chosen.is_active else "Show", key="ann_toggle"):
                bulletin.set_announcement_active(chosen.id, not chosen.is_active)
                st.rerun()
        with c2:
            if st.button("🗑️ Delete", key="ann_delete"):
                bulletin.delete_announcement(chosen.id)
                st.rerun()

    st.divider()

    st.subheader("➕ New announcement")
    title = st.text_input("Title", key="ann_title")
    message = st.text_area("Message", key="ann_message")
    c1, c2, c3 = st.columns(3)
    with c1:
        locations = {"All locations": None, **{loc.name: loc.id for loc in directory.list_locations(active_only=True)}}
        location_id = locations[st.selectbox("Location", list(locations.keys()), key="ann_location")]
    with c2:
        audience = st.selectbox("Audience", ANNOUNCEMENT_AUDIENCES)
    with c3:
        expires = st.date_input("Expires", value=None, key="ann_expires")
    if st.button("Post announcement", type="primary"):
        try:
            bulletin.create_announcement(title, message, location_id, audience, expires)
        except bulletin.BulletinError as e:
            st.error(str(e))
        else:
            st.success("Announcement posted.")
            st.rerun()


def events_page():
    st.header("📅 Events")

    events = bulletin.list_events()
    if events:
        st.dataframe(events_frame(events), use_container_width=True, hide_index=True)
        options = {f"{e.title} ({e.start_date.isoformat()}) - ID {e.id}": e for e in events}
        chosen = options[st.selectbox("Event", list(options.keys()))]
        if st.button("Deactivate" if chosen.is_active else "Activate", key="event_toggle"):
            bulletin.set_event_active(chosen.id, not chosen.is_active)
            st.rerun()

    st.divider()

    st.subheader("➕ New event")
    title = st.text_input("Title", key="event_title")
    c1, c2, c3 = st.columns(3)
    with c1:
        event_type = st.selectbox("Type", EVENT_TYPES, index=EVENT_TYPES.index("seminar"))
        locations = {"All locations": None, **{loc.name: loc.id for loc in directory.list_locations(active_only=True)}}
        location_id = locations[st.selectbox("Location", list(locations.keys()), key="event_location")]
    with c2:
        start = st.date_input("Start date", value=date.today(), key="event_start")
        end = st.date_input("End date", value=None, key="event_end")
    with c3:
        price_pounds = st.number_input("Price (£, 0 = free)", min_value=0.0, step=1.0, key="event_price")
        capacity = st.number_input("Capacity (0 = unlimited)", min_value=0, step=1, key="event_capacity")
    members_only = st.checkbox("Members only")
    description = st.text_area("Description", key="event_desc")
    if st.button("Create event", type="primary"):
        try:
            bulletin.create_event(
                title, start, end, location_id, event_type, description,
                max_capacity=int(capacity) or None,
                price=int(round(price_pounds * 100)) or None,
                is_members_only=members_only,
            )
        except bulletin.BulletinError as e:
            st.error(str(e))
        else:
            st.success("Event created.")
            st.rerun()


def email_templates_page():
    st.header("✉️ Email Templates")

    templates = content.list_email_templates()
    if not templates:
        st.info("No email templates yet.")
        return

    options = {f"{t.name} ({t.template_key})": t for t in templates}
    t = options[st.selectbox("Template", list(options.keys()))]
    st.caption("Placeholders like {{firstName}} are filled in when the email is sent. Use **text** for bold.")

    subject = st.text_input("Subject", value=t.subject, key=f"tpl_subject_{t.id}")
    greeting = st.text_input("Greeting", value=t.greeting, key=f"tpl_greeting_{t.id}")
    body_intro = st.text_area("Introduction", value=t.body_intro, key=f"tpl_intro_{t.id}")
    body_details = st.text_area("Details", value=t.body_details or "", key=f"tpl_details_{t.id}")
    body_action = st.text_area("Call to action", value=t.body_action or "", key=f"tpl_action_{t.id}")
    body_closing = st.text_area("Closing", value=t.body_closing, key=f"tpl_closing_{t.id}")
    c1, c2, c3 = st.columns(3)
    with c1:
        signature = st.text_input("Signature", value=t.signature, key=f"tpl_sig_{t.id}")
    with c2:
        button_text = st.text_input("Button text", value=t.button_text or "", key=f"tpl_btn_{t.id}")
    with c3:
        button_url = st.text_input("Button URL", value=t.button_url or "", key=f"tpl_url_{t.id}")
    active = st.checkbox("Active", value=t.is_active, key=f"tpl_active_{t.id}")

    if st.button("Save template", type="primary"):
        content.update_email_template(
            t.id,
            subject=subject,
            greeting=greeting,
            body_intro=body_intro,
            body_details=body_details or None,
            body_action=body_action or None,
            body_closing=body_closing,
            signature=signature,
            button_text=button_text or None,
            button_url=button_url or None,
        )
        if active != t.is_active:
            content.set_email_template_active(t.id, active)
        st.success("Template saved.")
        st.rerun()

    with st.expander("Preview with sample data"):
        rendered = content.render_email(t.template_key, SAMPLE_EMAIL_DATA)
        if rendered is None:
            st.caption("Template is inactive.")
        else:
            st.markdown(f"**Subject:** {rendered[0]}")
            st.html(rendered[1])


SAMPLE_EMAIL_DATA = {
    "firstName": "Amir",
    "locationName": "Main Academy",
    "membershipType": "Adult Membership",
    "price": "£60/month",
    "startDate": "5th January",
    "announcementTitle": "Important Class Update",
    "announcementMessage": "Thursday's class moves to 19:30 this week.",
}


def reports_page():
    st.header("🧾 Reports")

    st.subheader("Export members to CSV")
    members = db.fetch_all("SELECT * FROM members ORDER BY id DESC")
    if members:
        st.download_button(
            "Download members.csv",
            data=utils.rows_to_csv_bytes(members),
            file_name="members.csv",
            mime="text/csv",
        )
    else:
        st.caption("No members to export.")

    st.divider()

    st.subheader("Export memberships to CSV")
    df = directory.memberships_frame()
    if not df.empty:
        st.download_button(
            "Download memberships.csv",
            data=utils.frame_to_csv_bytes(df),
            file_name="memberships.csv",
            mime="text/csv",
        )
    else:
        st.caption("No memberships to export.")

    st.divider()

    st.subheader("Export attendance to CSV")
    report = attendance.attendance_report()
    if not report.empty:
        st.download_button(
            "Download attendance.csv",
            data=utils.frame_to_csv_bytes(report),
            file_name="attendance.csv",
            mime="text/csv",
        )
    else:
        st.caption("No attendance to export.")


def settings_page():
    st.header("⚙️ Settings")

    st.subheader("Change password")
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        if len(p1) < 6:
            st.error("Password must be at least 6 characters.")
        elif p1 != p2:
            st.error("Passwords do not match.")
        else:
            auth.change_password(st.session_state.username, p1)
            st.success("Password updated.")

    # Staff management and sample data are admin-only
    if not auth.is_admin(st.session_state.username):
        return

    st.divider()
    st.subheader("Staff users")
    st.dataframe(
        pd.DataFrame([dict(r) for r in auth.list_staff_users()]),
        use_container_width=True,
        hide_index=True,
    )
    c1, c2, c3 = st.columns(3)
    with c1:
        new_user = st.text_input("Username", key="staff_user")
    with c2:
        new_pw = st.text_input("Password", type="password", key="staff_pw")
    with c3:
        role = st.selectbox("Role", ["instructor", "admin"])
    if st.button("Add staff user", disabled=not new_user.strip() or len(new_pw) < 6):
        try:
            auth.create_staff_user(new_user, new_pw, role)
        except ValueError as e:
            st.error(str(e))
        else:
            st.success("Staff user added.")
            st.rerun()

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert a sample location, tiers, members and weekly timetable (adds new rows each run).")
    if st.button("Insert sample data"):
        utils.insert_sample_data()
        st.success("Sample data inserted.")
        st.rerun()


PAGES = {
    "Dashboard": dashboard_page,
    "Members": members_page,
    "Memberships": memberships_page,
    "Locations": locations_page,
    "Membership Types": membership_types_page,
    "Classes": classes_page,
    "Member Portal": member_portal_page,
    "Attendance": attendance_page,
    "Belt Progress": progression_page,
    "Videos": videos_page,
    "Announcements": announcements_page,
    "Events": events_page,
    "Email Templates": email_templates_page,
    "Reports": reports_page,
    "Settings": settings_page,
}

# Instructors see the day-to-day pages only
INSTRUCTOR_PAGES = ["Dashboard", "Classes", "Member Portal", "Attendance", "Belt Progress", "Videos", "Settings"]


def main_app():
    st.sidebar.title("🥋 Dojo Manager")
    st.sidebar.caption(f"Logged in as: {st.session_state.username}")

    pages = list(PAGES) if auth.is_admin(st.session_state.username) else INSTRUCTOR_PAGES
    if st.session_state.get("page") not in pages:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    PAGES[st.session_state.page]()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not st.session_state.logged_in:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
