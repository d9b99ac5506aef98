"""
Analytics routes: read-only system and organizer dashboards.
"""

from datetime import datetime, timezone
from typing import Tuple

from flask import Blueprint, Response

from uems.database.db_connection import get_db
from uems.auth_service.utils import require_auth
from uems.core.actor import ROLE_ADMIN
from uems.core.errors import AuthorizationError, NotFoundError
from uems.core.responses import success
from uems.analytics_service.metrics import summarize_events

analytics_bp = Blueprint("analytics", __name__)


@analytics_bp.route("/statistics", methods=["GET"])
def statistics() -> Tuple[Response, int]:
    """
    System-wide counts for the admin dashboard.

    Returns events by status, users by role, events and registrations
    created in the last 7 days, and the 5 most common approved categories.
    """
    require_auth([ROLE_ADMIN])

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT status, COUNT(*) AS count FROM events GROUP BY status ORDER BY status;")
            event_stats = [dict(row) for row in cur.fetchall()]

            cur.execute("SELECT role, COUNT(*) AS count FROM users GROUP BY role ORDER BY role;")
            user_stats = [dict(row) for row in cur.fetchall()]

            cur.execute(
                "SELECT COUNT(*) AS count FROM events WHERE created_at >= CURRENT_TIMESTAMP - INTERVAL '7 days';"
            )
            recent_events = cur.fetchone()["count"]

            cur.execute(
                "SELECT COUNT(*) AS count FROM registrations "
                "WHERE created_at >= CURRENT_TIMESTAMP - INTERVAL '7 days';"
            )
            recent_registrations = cur.fetchone()["count"]

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

    return success({
        "event_stats": event_stats,
        "user_stats": user_stats,
        "recent_activity": {"events": recent_events, "registrations": recent_registrations},
        "popular_categories": popular_categories,
    })


def _organizer_analytics(organizer_id: int) -> Tuple[Response, int]:
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT user_id, first_name, last_name, student_id, email, role FROM users WHERE user_id = %s;",
                (organizer_id,),
            )
            organizer = cur.fetchone()
            if not organizer:
                raise NotFoundError("User not found")

            cur.execute(
                """
                SELECT e.event_id, e.title, e.status, e.event_date, e.location,
                       e.max_attendees, e.created_at, e.banner_image, e.images, e.videos,
                       (SELECT COUNT(*) FROM registrations r
                        WHERE r.event_id = e.event_id
                          AND r.status IN ('registered', 'attended')) AS current_attendees
                FROM events e
                WHERE e.creator_id = %s OR e.organizer_id = %s
                ORDER BY e.event_date ASC;
                """,
                (organizer_id, organizer_id),
            )
            events = [dict(row) for row in cur.fetchall()]

    report = summarize_events(events, datetime.now(timezone.utc))
    report["organizer"] = dict(organizer)
    return success(report)


@analytics_bp.route("/organizer", methods=["GET"])
def my_analytics() -> Tuple[Response, int]:
    actor = require_auth()
    return _organizer_analytics(actor.user_id)


@analytics_bp.route("/organizer/<int:organizer_id>", methods=["GET"])
def organizer_analytics(organizer_id: int) -> Tuple[Response, int]:
    """Admins can read anyone's dashboard; everyone else only their own."""
    actor = require_auth()
    if not actor.is_admin and actor.user_id != organizer_id:
        raise AuthorizationError("Access denied")
    return _organizer_analytics(organizer_id)
