"""
Registration ledger: capacity-gated enrollment for approved events.

Seats are counted from registrations in `registered` or `attended` status.
When the event is full a new registration is still recorded, but as
`waitlisted`. Cancelling a seat does not promote anyone off the waitlist.

`create_registration` locks the event row (SELECT ... FOR UPDATE) before it
counts, so two registrations for the same event are serialized and the last
seat cannot be handed out twice.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping

import psycopg2.errors

from uems.core.errors import (
    DuplicateRegistration,
    EventNotApproved,
    NotFoundError,
    RegistrationClosed,
    ValidationError,
)
from uems.events_service import lifecycle
from uems.events_service.queries import count_active, load_event

REGISTERED = "registered"
ATTENDED = "attended"
CANCELLED = "cancelled"
WAITLISTED = "waitlisted"
VALID_REGISTRATION_STATUSES = (REGISTERED, ATTENDED, CANCELLED, WAITLISTED)

VALID_SOURCES = ("direct", "shared_link", "recommendation")

ROSTER_GROUPS = ("male", "female", "other", "prefer-not-to-say")

REGISTRATION_COLUMNS = """
    registration_id, user_id, event_id, status, registered_at,
    cancellation_reason, source, created_at, updated_at
"""


def initial_status(active_count: int, max_attendees: int) -> str:
    """Status for a new registration given the seats already taken."""
    return WAITLISTED if active_count >= max_attendees else REGISTERED


def attendee_counts(max_attendees: int, active: int) -> Dict[str, int]:
    return {
        "current_attendees": active,
        "available_slots": max(max_attendees - active, 0),
    }


def ensure_open_for_registration(event: Mapping[str, Any]) -> None:
    if event["status"] != lifecycle.APPROVED:
        raise EventNotApproved("Event not available for registration")
    if event["registration_closed"]:
        raise RegistrationClosed("Registration for this event is closed")


def create_registration(cur, user_id: int, event_id: int, source: str = "direct") -> Dict[str, Any]:
    """
    Register a user for an event.

    Returns:
        dict: the new registration row, plus the locked event as `event`
              and the seat count after insertion as `active_count`.

    Raises:
        NotFoundError, EventNotApproved, RegistrationClosed,
        DuplicateRegistration, ValidationError
    """
    if source not in VALID_SOURCES:
        raise ValidationError(f"source must be one of: {', '.join(VALID_SOURCES)}")

    event = load_event(cur, event_id, for_update=True)
    ensure_open_for_registration(event)

    # Any existing record blocks a new one, whatever its status
    cur.execute(
        "SELECT registration_id FROM registrations WHERE user_id = %s AND event_id = %s;",
        (user_id, event_id),
    )
    if cur.fetchone():
        raise DuplicateRegistration("Already registered for this event")

    active = count_active(cur, event_id)
    status = initial_status(active, event["max_attendees"])

    try:
        cur.execute(
            f"""
            INSERT INTO registrations (user_id, event_id, status, source)
            VALUES (%s, %s, %s, %s)
            RETURNING {REGISTRATION_COLUMNS};
            """,
            (user_id, event_id, status, source),
        )
    except psycopg2.errors.UniqueViolation:
        raise DuplicateRegistration("Already registered for this event")

    registration = dict(cur.fetchone())
    logging.info(f"[Registrations] User {user_id} -> event {event_id}: {status}")

    registration["event"] = event
    registration["active_count"] = active + 1 if status == REGISTERED else active
    return registration


def cancel_registration(cur, user_id: int, event_id: int) -> Dict[str, Any]:
    """
    Remove the user's registration.

    Raises:
        NotFoundError: The user had no registration for this event.
    """
    cur.execute(
        f"DELETE FROM registrations WHERE user_id = %s AND event_id = %s RETURNING {REGISTRATION_COLUMNS};",
        (user_id, event_id),
    )
    row = cur.fetchone()
    if not row:
        raise NotFoundError("You are not registered for this event")
    logging.info(f"[Registrations] User {user_id} unregistered from event {event_id}")
    return dict(row)


def mark_attended(cur, event_id: int, registration_id: int) -> Dict[str, Any]:
    """Check a registrant in; applies whatever the previous status was."""
    cur.execute(
        f"""
        UPDATE registrations
        SET status = %s, updated_at = CURRENT_TIMESTAMP
        WHERE registration_id = %s AND event_id = %s
        RETURNING {REGISTRATION_COLUMNS};
        """,
        (ATTENDED, registration_id, event_id),
    )
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Registration not found")
    return dict(row)


def _sort_key(entry: Mapping[str, Any]):
    return ((entry.get("last_name") or "").lower(), (entry.get("first_name") or "").lower())


def build_roster(rows: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Partition seat-holding registrations by the registrant's gender.

    Args:
        rows: registration rows joined with the user's name, student id,
              email and gender.

    Returns:
        dict: {"attendance": {group: [entries]}, "summary": {...}}
              with each group sorted by last name, then first name,
              ignoring case.
    """
    groups: Dict[str, List[Dict[str, Any]]] = {group: [] for group in ROSTER_GROUPS}
    total = 0

    for row in rows:
        if row["status"] not in (REGISTERED, ATTENDED):
            continue
        gender = row.get("gender")
        group = gender if gender in groups else "prefer-not-to-say"
        groups[group].append({
            "user_id": row["user_id"],
            "student_id": row["student_id"],
            "first_name": row["first_name"],
            "last_name": row["last_name"],
            "email": row["email"],
            "gender": gender,
            "registration_id": row["registration_id"],
            "registration_status": row["status"],
            "registered_at": row["registered_at"],
        })
        total += 1

    for entries in groups.values():
        entries.sort(key=_sort_key)

    summary = {"total": total}
    summary.update({group: len(entries) for group, entries in groups.items()})
    return {"attendance": groups, "summary": summary}
