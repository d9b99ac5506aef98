"""
Notification routes: a user's inbox.

Every route only ever touches the caller's own notifications.
"""

import math
from typing import Tuple

from flask import Blueprint, request, Response

from uems.database.db_connection import get_db
from uems.auth_service.utils import require_auth
from uems.core.errors import NotFoundError
from uems.core.responses import parse_paging, success

notifications_bp = Blueprint("notifications", __name__)


def _unread_count(cur, user_id: int) -> int:
    cur.execute(
        "SELECT COUNT(*) AS count FROM notifications WHERE user_id = %s AND is_read = FALSE;",
        (user_id,),
    )
    return cur.fetchone()["count"]


@notifications_bp.route("/", methods=["GET"])
def list_notifications() -> Tuple[Response, int]:
    """
    Newest-first page of the caller's notifications.

    Query params: page, limit (default 20), unread_only=true.
    """
    actor = require_auth()
    page, limit = parse_paging(request.args, default_limit=20)
    unread_only = request.args.get("unread_only", "false").lower() == "true"

    where = "n.user_id = %s"
    if unread_only:
        where += " AND n.is_read = FALSE"

    sql = f"""
        SELECT n.notification_id, n.type, n.title, n.message, n.related_event_id,
               n.is_read, n.read_at, n.action_url, n.action_text, n.created_at,
               e.title AS event_title, e.banner_image AS event_banner,
               e.event_date, e.status AS event_status
        FROM notifications n
        LEFT JOIN events e ON n.related_event_id = e.event_id
        WHERE {where}
        ORDER BY n.created_at DESC
        LIMIT %s OFFSET %s;
    """

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (actor.user_id, limit, (page - 1) * limit))
            notifications = [dict(row) for row in cur.fetchall()]

            cur.execute(f"SELECT COUNT(*) AS count FROM notifications n WHERE {where};", (actor.user_id,))
            total = cur.fetchone()["count"]

            unread = _unread_count(cur, actor.user_id)

    return success({
        "notifications": notifications,
        "current_page": page,
        "total_pages": math.ceil(total / limit),
        "total_notifications": total,
        "unread_count": unread,
    })


@notifications_bp.route("/unread-count", methods=["GET"])
def unread_count() -> Tuple[Response, int]:
    actor = require_auth()
    with get_db() as conn:
        with conn.cursor() as cur:
            unread = _unread_count(cur, actor.user_id)
    return success({"unread_count": unread})


@notifications_bp.route("/<int:notification_id>/read", methods=["PUT"])
def mark_as_read(notification_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    sql = """
        UPDATE notifications
        SET is_read = TRUE, read_at = COALESCE(read_at, CURRENT_TIMESTAMP)
        WHERE notification_id = %s AND user_id = %s
        RETURNING notification_id, is_read, read_at;
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, (notification_id, actor.user_id))
            notification = cur.fetchone()

    if not notification:
        raise NotFoundError("Notification not found")

    return success({"notification": dict(notification)}, message="Notification marked as read")


@notifications_bp.route("/read-all", methods=["PUT"])
def mark_all_as_read() -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "UPDATE notifications SET is_read = TRUE, read_at = CURRENT_TIMESTAMP "
                "WHERE user_id = %s AND is_read = FALSE;",
                (actor.user_id,),
            )
            modified = cur.rowcount

    return success({"modified_count": modified}, message=f"Marked {modified} notifications as read")


@notifications_bp.route("/<int:notification_id>", methods=["DELETE"])
def delete_notification(notification_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM notifications WHERE notification_id = %s AND user_id = %s;",
                (notification_id, actor.user_id),
            )
            deleted = cur.rowcount

    if not deleted:
        raise NotFoundError("Notification not found")

    return success(message="Notification deleted successfully")


@notifications_bp.route("/", methods=["DELETE"])
def clear_all() -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM notifications WHERE user_id = %s;", (actor.user_id,))
            deleted = cur.rowcount

    return success({"deleted_count": deleted}, message="All notifications cleared successfully")
