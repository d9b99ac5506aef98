"""
Notification outbox.

Services call `notify` after their own transaction has committed. Delivery is
best effort: a failure here is logged and never undoes or fails the caller's
operation.
"""

import logging
from typing import Iterable, Optional

import psycopg2

from uems.database.db_connection import get_db

EVENT_APPROVED = "event_approved"
EVENT_REJECTED = "event_rejected"
EVENT_CANCELLED = "event_cancelled"
REGISTRATION_CONFIRMED = "registration_confirmed"
EVENT_REMINDER = "event_reminder"
ATTENDANCE_CHECKED = "attendance_checked"
ADMIN_ANNOUNCEMENT = "admin_announcement"
VALID_TYPES = (
    EVENT_APPROVED,
    EVENT_REJECTED,
    EVENT_CANCELLED,
    REGISTRATION_CONFIRMED,
    EVENT_REMINDER,
    ATTENDANCE_CHECKED,
    ADMIN_ANNOUNCEMENT,
)

TITLE_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 500

INSERT_SQL = """
    INSERT INTO notifications (user_id, type, title, message, related_event_id, action_url)
    VALUES (%s, %s, %s, %s, %s, %s);
"""


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def notify_many(
    user_ids: Iterable[int],
    type: str,
    title: str,
    message: str,
    related_event_id: Optional[int] = None,
    action_url: Optional[str] = None,
) -> int:
    """
    Send the same notification to several users.

    Returns:
        int: number of notifications stored (0 on failure).
    """
    if type not in VALID_TYPES:
        raise ValueError(f"Unknown notification type: {type}")

    recipients = list(dict.fromkeys(user_ids))
    if not recipients:
        return 0

    title = _truncate(title, TITLE_MAX_LENGTH)
    message = _truncate(message, MESSAGE_MAX_LENGTH)
    rows = [(user_id, type, title, message, related_event_id, action_url) for user_id in recipients]

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.executemany(INSERT_SQL, rows)
    except psycopg2.Error as e:
        logging.error(f"[Notifications] Failed to store {type} for {recipients}: {e}")
        return 0

    return len(rows)


def notify(
    user_id: int,
    type: str,
    title: str,
    message: str,
    related_event_id: Optional[int] = None,
    action_url: Optional[str] = None,
) -> bool:
    """Send one notification. Returns True when it was stored."""
    return notify_many([user_id], type, title, message, related_event_id, action_url) == 1
