"""
Event proposal routes: authoring an event up to the point an admin decides.

    create (draft) -> submit (pending) -> [cancel-submission back to draft]

Fields can be edited while the event is a draft or pending. Approval and
rejection live in the admin service.
"""

import logging
import math
from typing import Tuple

from flask import Blueprint, request, Response

from uems.database.db_connection import get_db
from uems.auth_service.utils import require_auth
from uems.core.errors import ValidationError
from uems.core.responses import parse_paging, success
from uems.events_service import lifecycle
from uems.events_service.queries import EVENT_COLUMNS, apply_event_update, delete_event_cascade, load_event
from uems.events_service.registrations import attendee_counts
from uems.events_service.validation import clean_event_fields

proposals_bp = Blueprint("proposals", __name__)


@proposals_bp.route("/", methods=["POST"])
def create_proposal() -> Tuple[Response, int]:
    """
    Create an event proposal as a draft. Any signed-in user may propose.

    Body: title, description, category, date, location, max_attendees,
          tags (optional), is_public (optional)

    Returns:
        201: {"event": {...}}
        400: Validation error.
    """
    actor = require_auth()
    data = request.get_json(silent=True) or {}

    fields = clean_event_fields(data)
    fields["creator_id"] = actor.user_id
    fields["status"] = lifecycle.DRAFT

    columns = list(fields)
    placeholders = ", ".join(["%s"] * len(columns))

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"INSERT INTO events ({', '.join(columns)}) VALUES ({placeholders}) RETURNING {EVENT_COLUMNS};",
                [fields[column] for column in columns],
            )
            event = dict(cur.fetchone())

    logging.info(f"[Proposals] User {actor.user_id} created draft event {event['event_id']}")
    return success({"event": event}, message="Event proposal created as draft", status=201)


@proposals_bp.route("/<int:event_id>/submit", methods=["POST"])
def submit_proposal(event_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)
            updates = lifecycle.submit(event, actor)
            event = apply_event_update(cur, event_id, updates, expected_status=lifecycle.DRAFT)

    logging.info(f"[Proposals] Event {event_id} submitted for approval")
    return success({"event": event}, message="Event proposal submitted for admin approval")


@proposals_bp.route("/<int:event_id>/cancel-submission", methods=["PUT"])
def cancel_submission(event_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)
            updates = lifecycle.cancel_submission(event, actor)
            event = apply_event_update(cur, event_id, updates, expected_status=lifecycle.PENDING)

    return success({"event": event}, message="Event submission cancelled and returned to draft")


@proposals_bp.route("/my-events", methods=["GET"])
def my_events() -> Tuple[Response, int]:
    """
    Events the caller created, newest first.

    Query params: status, page, limit.
    """
    actor = require_auth()
    page, limit = parse_paging(request.args)

    status = request.args.get("status")
    if status and status not in lifecycle.VALID_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(lifecycle.VALID_STATUSES)}")

    where = "e.creator_id = %s"
    params = [actor.user_id]
    if status:
        where += " AND e.status = %s"
        params.append(status)

    sql = f"""
        SELECT e.*,
               (SELECT COUNT(*) FROM registrations r
                WHERE r.event_id = e.event_id AND r.status IN ('registered', 'attended')) AS current_attendees,
               a.first_name AS approved_by_first_name, a.last_name AS approved_by_last_name
        FROM events e
        LEFT JOIN users a ON e.approved_by = a.user_id
        WHERE {where}
        ORDER BY e.created_at DESC
        LIMIT %s OFFSET %s;
    """

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, params + [limit, (page - 1) * limit])
            events = [dict(row) for row in cur.fetchall()]

            cur.execute(f"SELECT COUNT(*) AS count FROM events e WHERE {where};", params)
            total = cur.fetchone()["count"]

    for event in events:
        event.update(attendee_counts(event["max_attendees"], event["current_attendees"]))

    return success({
        "events": events,
        "current_page": page,
        "total_pages": math.ceil(total / limit),
        "total_events": total,
    })


@proposals_bp.route("/<int:event_id>", methods=["PUT"])
def update_proposal(event_id: int) -> Tuple[Response, int]:
    """
    Edit a draft or pending proposal. Only the keys present are changed.

    Returns:
        200: {"event": {...}}
        400: Validation error or empty body.
        403: Not the creator, organizer, or an admin.
        409: Event already approved or rejected.
    """
    actor = require_auth()
    data = request.get_json(silent=True) or {}
    if not data:
        raise ValidationError("No update data provided")

    fields = clean_event_fields(data, partial=True)
    if not fields:
        raise ValidationError("No valid fields to update")

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id, for_update=True)
            lifecycle.check_editable(event, actor)
            event = apply_event_update(cur, event_id, fields, expected_status=event["status"])

    return success({"event": event}, message="Event proposal updated successfully")


@proposals_bp.route("/<int:event_id>", methods=["DELETE"])
def delete_proposal(event_id: int) -> Tuple[Response, int]:
    """Delete a draft, pending, or rejected proposal."""
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id, for_update=True)
            lifecycle.check_deletable(event, actor, proposals_only=True)
            delete_event_cascade(cur, event_id)

    return success(message="Event deleted successfully")
