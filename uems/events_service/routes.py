"""
Events service routes: browsing, event detail, the registration window,
registrations, attendance, and deletion of events.

Proposal authoring lives in `proposals.py`; approval lives in the admin service.
"""

import logging
import math
from typing import Tuple

from flask import Blueprint, request, Response

from uems.database.db_connection import get_db
from uems.auth_service.utils import optional_auth, require_auth
from uems.core.actor import ROLE_ADMIN, ROLE_ORGANIZER
from uems.core.errors import AuthorizationError
from uems.core.responses import success
from uems.events_service import lifecycle
from uems.events_service.filters import EventFilter
from uems.events_service.queries import (
    apply_event_update,
    count_active,
    delete_event_cascade,
    load_event,
)
from uems.events_service.registrations import (
    WAITLISTED,
    attendee_counts,
    build_roster,
    cancel_registration,
    create_registration,
    mark_attended,
)
from uems.notifications_service.outbox import (
    ATTENDANCE_CHECKED,
    EVENT_CANCELLED,
    REGISTRATION_CONFIRMED,
    notify,
    notify_many,
)

events_bp = Blueprint("events", __name__)

# Browse omits approval notes and videos
BROWSE_COLUMNS = """
    e.event_id, e.title, e.description, e.category, e.event_date, e.location,
    e.max_attendees, e.creator_id, e.organizer_id, e.status, e.registration_closed,
    e.banner_image, e.images, e.shareable_link, e.tags, e.created_at,
    c.first_name AS creator_first_name, c.last_name AS creator_last_name,
    c.student_id AS creator_student_id,
    o.first_name AS organizer_first_name, o.last_name AS organizer_last_name,
    o.student_id AS organizer_student_id
"""

PEOPLE_JOINS = """
    LEFT JOIN users c ON e.creator_id = c.user_id
    LEFT JOIN users o ON e.organizer_id = o.user_id
"""

SEAT_COUNT = """
    (SELECT COUNT(*) FROM registrations r
     WHERE r.event_id = e.event_id AND r.status IN ('registered', 'attended')) AS current_attendees
"""


@events_bp.route("/", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Browse approved, public events, soonest first.

    Query params: category, search, page, limit.
    Each event carries current_attendees and available_slots.
    """
    event_filter = EventFilter.from_args(request.args)
    conditions, params = event_filter.predicates()
    where = " AND ".join(conditions)

    sql = f"""
        SELECT {BROWSE_COLUMNS}, {SEAT_COUNT}
        FROM events e
        {PEOPLE_JOINS}
        WHERE {where}
        ORDER BY e.event_date ASC
        LIMIT %s OFFSET %s;
    """

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, params + [event_filter.limit, event_filter.offset])
            rows = [dict(row) for row in cur.fetchall()]

            cur.execute(f"SELECT COUNT(*) AS count FROM events e WHERE {where};", params)
            total = cur.fetchone()["count"]

    for row in rows:
        row.update(attendee_counts(row["max_attendees"], row["current_attendees"]))

    return success({
        "events": rows,
        "current_page": event_filter.page,
        "total_pages": math.ceil(total / event_filter.limit),
        "total_events": total,
    })


@events_bp.route("/active-count", methods=["GET"])
def active_count() -> Tuple[Response, int]:
    """Caller's own upcoming events that are not rejected or cancelled."""
    actor = require_auth([ROLE_ORGANIZER, ROLE_ADMIN])

    sql = """
        SELECT COUNT(*) AS count FROM events
        WHERE creator_id = %s
          AND event_date > CURRENT_TIMESTAMP
          AND status NOT IN ('rejected', 'cancelled');
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (actor.user_id,))
            count = cur.fetchone()["count"]

    return success({"active_event_count": count})


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int) -> Tuple[Response, int]:
    """
    Event detail.

    Approved events are public. Anything else is only visible to its
    creator, organizer, or an admin. A signed-in caller also gets their
    own registration (if any) under `user_registration`.
    """
    actor = optional_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)

            if event["status"] != lifecycle.APPROVED and not lifecycle.can_manage(actor, event):
                raise AuthorizationError("Access denied")

            cur.execute(
                """
                SELECT u.user_id, u.first_name, u.last_name, u.student_id, u.profile_picture
                FROM users u WHERE u.user_id IN (%s, %s);
                """,
                (event["creator_id"], event["organizer_id"]),
            )
            people = {row["user_id"]: dict(row) for row in cur.fetchall()}

            active = count_active(cur, event_id)

            user_registration = None
            if actor is not None:
                cur.execute(
                    """
                    SELECT registration_id, status, registered_at, source
                    FROM registrations WHERE user_id = %s AND event_id = %s;
                    """,
                    (actor.user_id, event_id),
                )
                row = cur.fetchone()
                user_registration = dict(row) if row else None

    event["creator"] = people.get(event["creator_id"])
    event["organizer"] = people.get(event["organizer_id"])
    event.update(attendee_counts(event["max_attendees"], active))

    return success({"event": event, "user_registration": user_registration})


# --- REGISTRATION WINDOW ---
@events_bp.route("/<int:event_id>/close-registration", methods=["PATCH"])
def close_registration(event_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id, for_update=True)
            updates = lifecycle.close_registration(event, actor)
            event = apply_event_update(cur, event_id, updates, expected_status=lifecycle.APPROVED)

    logging.info(f"[Events] Registration closed for event {event_id} by user {actor.user_id}")
    return success(
        {"event": {
            "event_id": event["event_id"],
            "title": event["title"],
            "registration_closed": event["registration_closed"],
            "closed_at": event["closed_at"],
        }},
        message="Registration closed successfully",
    )


@events_bp.route("/<int:event_id>/open-registration", methods=["PATCH"])
def open_registration(event_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id, for_update=True)
            updates = lifecycle.open_registration(event, actor)
            event = apply_event_update(cur, event_id, updates, expected_status=lifecycle.APPROVED)

    logging.info(f"[Events] Registration opened for event {event_id} by user {actor.user_id}")
    return success(
        {"event": {
            "event_id": event["event_id"],
            "title": event["title"],
            "registration_closed": event["registration_closed"],
            "closed_at": event["closed_at"],
        }},
        message="Registration opened successfully",
    )


# --- REGISTRATIONS ---
@events_bp.route("/<int:event_id>/register", methods=["POST"])
def register_for_event(event_id: int) -> Tuple[Response, int]:
    """
    Register the caller for an approved, open event.

    Body (optional): {"source": "direct" | "shared_link" | "recommendation"}

    Returns:
        201: Registered, or waitlisted when the event is full.
        404: Event not found.
        409: Not approved, registration closed, or already registered.
    """
    actor = require_auth()
    data = request.get_json(silent=True) or {}
    source = data.get("source", "direct")

    with get_db() as conn:
        with conn.cursor() as cur:
            registration = create_registration(cur, actor.user_id, event_id, source)

    event = registration.pop("event")
    active = registration.pop("active_count")
    waitlisted = registration["status"] == WAITLISTED

    if waitlisted:
        message = "Event is full. You have been added to the waitlist"
        note = f"You are on the waitlist for \"{event['title']}\"."
    else:
        message = "Successfully registered for event"
        note = f"You are registered for \"{event['title']}\"."

    notify(
        actor.user_id,
        REGISTRATION_CONFIRMED,
        "Registration Confirmed",
        note,
        related_event_id=event_id,
        action_url=f"/events/{event_id}",
    )

    return success(
        {"registration": registration, **attendee_counts(event["max_attendees"], active)},
        message=message,
        status=201,
    )


@events_bp.route("/<int:event_id>/register", methods=["DELETE"])
def unregister_from_event(event_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            cancel_registration(cur, actor.user_id, event_id)

    return success(message="Successfully unregistered from event")


# --- ATTENDANCE ---
@events_bp.route("/<int:event_id>/attendance", methods=["GET"])
def get_attendance(event_id: int) -> Tuple[Response, int]:
    """Roster of seat holders grouped by gender; creator, organizer or admin only."""
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)
            lifecycle.require_manager(actor, event)

            cur.execute(
                """
                SELECT r.registration_id, r.user_id, r.status, r.registered_at,
                       u.student_id, u.first_name, u.last_name, u.email, u.gender
                FROM registrations r
                JOIN users u ON r.user_id = u.user_id
                WHERE r.event_id = %s AND r.status IN ('registered', 'attended');
                """,
                (event_id,),
            )
            roster = build_roster(cur.fetchall())

    roster["event"] = {
        "event_id": event["event_id"],
        "title": event["title"],
        "event_date": event["event_date"],
        "location": event["location"],
        "max_attendees": event["max_attendees"],
    }
    return success(roster)


@events_bp.route("/<int:event_id>/attendance/<int:registration_id>", methods=["PUT"])
def check_in(event_id: int, registration_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)
            lifecycle.require_manager(actor, event)
            registration = mark_attended(cur, event_id, registration_id)

    notify(
        registration["user_id"],
        ATTENDANCE_CHECKED,
        "Attendance Recorded",
        f"Your attendance at \"{event['title']}\" has been recorded.",
        related_event_id=event_id,
        action_url=f"/events/{event_id}",
    )

    return success({"registration": registration}, message="Attendance marked")


# --- DELETION ---
@events_bp.route("/<int:event_id>", methods=["DELETE"])
def delete_event(event_id: int) -> Tuple[Response, int]:
    """
    Delete an event in any status, with all its registrations.

    Admins may delete any event; creators and organizers their own.
    Registrants of an approved event are told it was cancelled.
    """
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id, for_update=True)
            lifecycle.check_deletable(event, actor)
            registrants = delete_event_cascade(cur, event_id)

    if event["status"] == lifecycle.APPROVED:
        notify_many(
            registrants,
            EVENT_CANCELLED,
            "Event Cancelled",
            f"\"{event['title']}\" has been cancelled by its organizers.",
        )

    return success(
        {"deleted_registrations": len(registrants)},
        message="Event and all related data deleted successfully",
    )
