"""
SQL helpers shared by the events, proposals, admin, share and upload routes.

All helpers take an open cursor so callers control the transaction.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from uems.core.errors import ConflictError, NotFoundError

EVENT_COLUMNS = """
    event_id, title, description, category, event_date, location, max_attendees,
    creator_id, organizer_id, status, registration_closed, closed_at,
    approval_notes, approved_by, approved_at, banner_image, images, videos,
    shareable_link, tags, is_public, created_at, updated_at
"""

ACTIVE_STATUSES = ("registered", "attended")


def load_event(cur, event_id: int, for_update: bool = False) -> Dict[str, Any]:
    """
    Fetch one event row.

    Args:
        for_update: Lock the row until the transaction ends.

    Raises:
        NotFoundError: If the event does not exist.
    """
    sql = f"SELECT {EVENT_COLUMNS} FROM events WHERE event_id = %s"
    if for_update:
        sql += " FOR UPDATE"
    cur.execute(sql + ";", (event_id,))
    event = cur.fetchone()
    if not event:
        raise NotFoundError("Event not found")
    return dict(event)


def apply_event_update(
    cur,
    event_id: int,
    updates: Mapping[str, Any],
    expected_status: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Persist column updates on an event and return the new row.

    With `expected_status` the UPDATE only applies while the event is still in
    that status, so two racing transitions cannot both succeed.

    Raises:
        ConflictError: The status changed underneath us.
        NotFoundError: The event vanished.
    """
    columns = list(updates)
    set_clause = ", ".join(f"{column} = %s" for column in columns)
    set_clause += ", updated_at = CURRENT_TIMESTAMP"
    values: List[Any] = [updates[column] for column in columns]

    sql = f"UPDATE events SET {set_clause} WHERE event_id = %s"
    values.append(event_id)
    if expected_status is not None:
        sql += " AND status = %s"
        values.append(expected_status)
    sql += f" RETURNING {EVENT_COLUMNS};"

    cur.execute(sql, values)
    row = cur.fetchone()
    if not row:
        if expected_status is not None:
            raise ConflictError("Event status changed; please reload and try again")
        raise NotFoundError("Event not found")
    return dict(row)


def count_active(cur, event_id: int) -> int:
    """Registrations that hold a seat (registered + attended)."""
    cur.execute(
        "SELECT COUNT(*) AS count FROM registrations WHERE event_id = %s AND status IN %s;",
        (event_id, ACTIVE_STATUSES),
    )
    return cur.fetchone()["count"]


def delete_event_cascade(cur, event_id: int) -> List[int]:
    """
    Delete an event together with all of its registrations.

    Returns:
        list: user ids that held a registration (any status), so the caller
              can tell them after commit.
    """
    cur.execute("DELETE FROM registrations WHERE event_id = %s RETURNING user_id;", (event_id,))
    registrants = [row["user_id"] for row in cur.fetchall()]

    cur.execute("DELETE FROM events WHERE event_id = %s;", (event_id,))
    if cur.rowcount == 0:
        raise NotFoundError("Event not found or already deleted")

    logging.info(f"[Events] Deleted event {event_id} and {len(registrants)} registration(s)")
    return registrants
