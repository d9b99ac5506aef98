"""
Admin routes: the approval queue, approve/reject decisions and the
comprehensive analytics report.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Tuple

from flask import Blueprint, current_app, request, Response

from uems.database.db_connection import get_db
from uems.auth_service.utils import require_auth
from uems.analytics_service.metrics import summarize_system
from uems.core.actor import ROLE_ADMIN
from uems.core.responses import parse_paging, success
from uems.core.signals import event_approved
from uems.events_service import lifecycle
from uems.events_service.queries import apply_event_update, load_event
from uems.notifications_service.outbox import EVENT_APPROVED, EVENT_REJECTED, notify

admin_bp = Blueprint("admin", __name__)


@admin_bp.before_request
def before_request() -> None:
    logging.info(f"[Admin] Incoming {request.method} {request.path}")


@admin_bp.route("/pending-events", methods=["GET"])
def pending_events() -> Tuple[Response, int]:
    """Pending proposals, oldest first, with the creator's contact details."""
    require_auth([ROLE_ADMIN])
    page, limit = parse_paging(request.args)

    sql = """
        SELECT e.event_id, e.title, e.description, e.category, e.event_date, e.location,
               e.max_attendees, e.status, e.banner_image, e.images, e.tags,
               e.is_public, e.created_at, e.creator_id,
               u.first_name AS creator_first_name, u.last_name AS creator_last_name,
               u.student_id AS creator_student_id, u.email AS creator_email
        FROM events e
        JOIN users u ON e.creator_id = u.user_id
        WHERE e.status = 'pending'
        ORDER BY e.created_at ASC
        LIMIT %s OFFSET %s;
    """

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (limit, (page - 1) * limit))
            events = [dict(row) for row in cur.fetchall()]

            cur.execute("SELECT COUNT(*) AS count FROM events WHERE status = 'pending';")
            total = cur.fetchone()["count"]

    return success({
        "events": events,
        "current_page": page,
        "total_pages": math.ceil(total / limit),
        "total_pending": total,
    })


@admin_bp.route("/events/<int:event_id>/approve", methods=["PUT"])
def approve_event(event_id: int) -> Tuple[Response, int]:
    """
    Approve a pending proposal.

    The creator becomes the organizer and, if still a student, is promoted
    to the organizer role in the same transaction.

    Returns:
        200: {"event": {...}}
        404: Event not found.
        409: Event is not pending (including a second approval).
    """
    actor = require_auth([ROLE_ADMIN])

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)
            updates = lifecycle.approve(event, actor)
            event = apply_event_update(cur, event_id, updates, expected_status=lifecycle.PENDING)

        results = event_approved.send(
            current_app._get_current_object(),
            conn=conn,
            event_id=event_id,
            creator_id=event["creator_id"],
        )

    promoted = any(result for _, result in results)

    logging.info(f"[Admin] Event {event_id} approved by user {actor.user_id}")

    message = f"Your event \"{event['title']}\" has been approved!"
    if promoted:
        message += " You are now an Organizer."

    notify(
        event["creator_id"],
        EVENT_APPROVED,
        "Event Proposal Approved",
        message,
        related_event_id=event_id,
        action_url=f"/events/{event_id}",
    )

    return success({"event": event}, message="Event approved successfully")


@admin_bp.route("/events/<int:event_id>/reject", methods=["PUT"])
def reject_event(event_id: int) -> Tuple[Response, int]:
    """
    Reject a pending proposal.

    Body: {"rejection_notes": "..."} (`rejectionNotes` is also accepted)

    Returns:
        200: {"event": {...}}
        400: Notes missing or too long; nothing is written.
        404: Event not found.
        409: Event is not pending.
    """
    actor = require_auth([ROLE_ADMIN])
    data = request.get_json(silent=True) or {}
    notes = lifecycle.clean_rejection_notes(data.get("rejection_notes", data.get("rejectionNotes")))

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)
            updates = lifecycle.reject(event, actor, notes)
            event = apply_event_update(cur, event_id, updates, expected_status=lifecycle.PENDING)

    logging.info(f"[Admin] Event {event_id} rejected by user {actor.user_id}")

    notify(
        event["creator_id"],
        EVENT_REJECTED,
        "Event Proposal Rejected",
        f"Your event \"{event['title']}\" was rejected. Reason: {notes}",
        related_event_id=event_id,
        action_url=f"/events/proposals/{event_id}",
    )

    return success({"event": event}, message="Event rejected successfully")


@admin_bp.route("/analytics/comprehensive", methods=["GET"])
def comprehensive_analytics() -> Tuple[Response, int]:
    """
    System health report for the admin dashboard.

    Combines status and role counts, top events by fill rate, daily
    registrations over the last 30 days, approval and user activity rates,
    and a health score with recommendations.
    """
    require_auth([ROLE_ADMIN])

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT status, COUNT(*) AS count FROM events GROUP BY status ORDER BY status;")
            event_stats = [dict(row) for row in cur.fetchall()]

            cur.execute(
                """
                SELECT role, COUNT(*) AS count, COUNT(*) FILTER (WHERE is_active) AS active_count
                FROM users GROUP BY role ORDER BY role;
                """
            )
            user_stats = [dict(row) for row in cur.fetchall()]

            cur.execute(
                """
                SELECT category, COUNT(*) AS count FROM events
                WHERE status = 'approved'
                GROUP BY category
                ORDER BY count DESC, category ASC
                LIMIT 5;
                """
            )
            popular_categories = [dict(row) for row in cur.fetchall()]

            cur.execute(
                """
                SELECT e.event_id, e.title, e.status, e.event_date, e.location, e.category,
                       e.max_attendees,
                       (SELECT COUNT(*) FROM registrations r
                        WHERE r.event_id = e.event_id
                          AND r.status IN ('registered', 'attended')) AS current_attendees
                FROM events e
                WHERE e.status = 'approved';
                """
            )
            approved_events = [dict(row) for row in cur.fetchall()]

            cur.execute(
                """
                SELECT to_char(created_at::date, 'YYYY-MM-DD') AS date, COUNT(*) AS count
                FROM registrations
                WHERE created_at >= CURRENT_TIMESTAMP - INTERVAL '30 days'
                GROUP BY 1
                ORDER BY 1
                LIMIT 30;
                """
            )
            registration_trends = [dict(row) for row in cur.fetchall()]

            cur.execute(
                "SELECT COUNT(*) AS count FROM events WHERE created_at >= CURRENT_TIMESTAMP - INTERVAL '7 days';"
            )
            recent_events = cur.fetchone()["count"]

            cur.execute(
                "SELECT COUNT(*) AS count FROM registrations "
                "WHERE created_at >= CURRENT_TIMESTAMP - INTERVAL '7 days';"
            )
            recent_registrations = cur.fetchone()["count"]

    report = summarize_system(
        event_stats,
        user_stats,
        popular_categories,
        approved_events,
        registration_trends,
        {"events": recent_events, "registrations": recent_registrations},
        datetime.now(timezone.utc),
    )
    return success(report)
