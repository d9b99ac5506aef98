"""
Share routes: social share links, admin bulk campaigns and click tracking.

The tracked link handed out on approval points at `/redirect`, which counts
the click in `event_analytics` and forwards the visitor to the client app.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

from flask import Blueprint, redirect, request, Response
from dotenv import load_dotenv

from uems.database.db_connection import get_db
from uems.auth_service.utils import optional_auth, require_auth
from uems.core.actor import ROLE_ADMIN
from uems.core.errors import AuthorizationError, NotFoundError, ValidationError
from uems.core.responses import success
from uems.events_service import lifecycle
from uems.events_service.queries import EVENT_COLUMNS, load_event
from uems.notifications_service.outbox import ADMIN_ANNOUNCEMENT, notify

load_dotenv()

CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:3000")
SERVER_URL = os.getenv("SERVER_URL", "http://localhost:5000")

PLATFORMS = ("direct", "facebook", "twitter", "whatsapp", "linkedin", "email")
PREVIEW_LENGTH = 150
ANALYTICS_WINDOW_DAYS = 30
DEFAULT_BULK_PLATFORMS = ("facebook", "twitter", "whatsapp")
MAX_BULK_EVENTS = 50

share_bp = Blueprint("share", __name__)


def build_share_links(event: Mapping[str, Any], share_url: str, message: Optional[str] = None) -> Dict[str, str]:
    """
    Pre-filled share URLs for each supported platform.

    A custom `message` replaces the default Twitter and WhatsApp text.
    """
    title = event["title"]
    date = event["event_date"].strftime("%Y-%m-%d") if event.get("event_date") else ""
    body = (
        f"You're invited to {title}!\n\n{event['description']}\n\n"
        f"Date: {date}\nLocation: {event['location']}\n\nJoin here: {share_url}"
    )
    url = quote(share_url, safe="")
    tweet = message or f"{title} - Do not miss out!"
    return {
        "direct": share_url,
        "facebook": f"https://www.facebook.com/sharer/sharer.php?u={url}&quote={quote(f'Check out this event: {title}')}",
        "twitter": f"https://twitter.com/intent/tweet?url={url}&text={quote(tweet)}",
        "whatsapp": f"https://wa.me/?text={quote(f'{message or title} - {share_url}', safe='')}",
        "linkedin": f"https://www.linkedin.com/sharing/share-offsite/?url={url}",
        "email": f"mailto:?subject={quote(f'Event Invitation: {title}')}&body={quote(body, safe='')}",
    }


def _preview(description: str) -> str:
    if len(description) <= PREVIEW_LENGTH:
        return description
    return description[:PREVIEW_LENGTH] + "..."


@share_bp.route("/events/<int:event_id>", methods=["GET"])
def share_links(event_id: int) -> Tuple[Response, int]:
    """
    Share links for an event.

    Approved events are shareable by anyone; admins and the creator can
    also preview links for events that are not approved yet.
    """
    actor = optional_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)
            cur.execute(
                "SELECT first_name, last_name FROM users WHERE user_id = %s;",
                (event["organizer_id"],),
            )
            organizer = cur.fetchone()

    previewer = actor is not None and (actor.is_admin or lifecycle.is_creator(actor, event))
    if event["status"] != lifecycle.APPROVED and not previewer:
        raise AuthorizationError("Only approved events can be shared publicly")

    share_url = event["shareable_link"] or lifecycle.shareable_link(event_id)

    return success(
        {
            "event": {"event_id": event["event_id"], "title": event["title"], "status": event["status"]},
            "share_url": share_url,
            "share_links": build_share_links(event, share_url),
            "share_content": {
                "title": event["title"],
                "description": _preview(event["description"]),
                "image": f"{SERVER_URL}{event['banner_image']}" if event["banner_image"] else None,
                "event_date": event["event_date"],
                "location": event["location"],
                "organizer": f"{organizer['first_name']} {organizer['last_name']}" if organizer else None,
            },
        },
        message="Share links generated successfully",
    )


@share_bp.route("/events/<int:event_id>/redirect", methods=["GET"])
def track_share_click(event_id: int) -> Response:
    """
    Count a click on a shared link and send the visitor to the event page.

    Unknown or unapproved events go to the client's not-found page.
    """
    platform = request.args.get("platform", "direct")
    if platform not in PLATFORMS:
        platform = "direct"

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT status FROM events WHERE event_id = %s;", (event_id,))
            event = cur.fetchone()
            if not event or event["status"] != lifecycle.APPROVED:
                return redirect(f"{CLIENT_URL}/events/not-found")

            cur.execute(
                """
                INSERT INTO event_analytics (event_id, day, share_count, page_views)
                VALUES (%s, CURRENT_DATE, 1, 1)
                ON CONFLICT (event_id, day) DO UPDATE
                SET share_count = event_analytics.share_count + 1,
                    page_views = event_analytics.page_views + 1;
                """,
                (event_id,),
            )

    logging.info(f"[Share] Click tracked for event {event_id} via {platform}")
    return redirect(f"{CLIENT_URL}/events/{event_id}?source=shared&platform={platform}")


@share_bp.route("/events/<int:event_id>/analytics", methods=["GET"])
def share_analytics(event_id: int) -> Tuple[Response, int]:
    """Share clicks and page views over the last 30 days; owner or admin only."""
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)
            lifecycle.require_manager(actor, event, "Not authorized to view share analytics for this event")

            cur.execute(
                """
                SELECT day, share_count, page_views
                FROM event_analytics
                WHERE event_id = %s AND day >= CURRENT_DATE - %s
                ORDER BY day ASC;
                """,
                (event_id, ANALYTICS_WINDOW_DAYS),
            )
            daily = [dict(row) for row in cur.fetchall()]

    return success({
        "event": {
            "event_id": event["event_id"],
            "title": event["title"],
            "shareable_link": event["shareable_link"],
        },
        "overview": {
            "total_shares": sum(row["share_count"] for row in daily),
            "page_views": sum(row["page_views"] for row in daily),
        },
        "daily_trend": daily,
        "time_period": f"{ANALYTICS_WINDOW_DAYS}days",
    })


@share_bp.route("/bulk", methods=["POST"])
def bulk_share() -> Tuple[Response, int]:
    """
    Admin promotion campaign: share links for several approved events at once.

    Body: {"event_ids": [int], "platforms": [str] (optional), "message": str (optional)}

    Each event's organizer receives an `admin_announcement` notification.
    Unapproved or unknown ids are skipped.
    """
    require_auth([ROLE_ADMIN])

    data = request.get_json(silent=True) or {}
    event_ids = data.get("event_ids")
    if (
        not isinstance(event_ids, list)
        or not event_ids
        or not all(isinstance(i, int) and not isinstance(i, bool) for i in event_ids)
    ):
        raise ValidationError("event_ids must be a non-empty list of event ids")
    if len(event_ids) > MAX_BULK_EVENTS:
        raise ValidationError(f"At most {MAX_BULK_EVENTS} events can be shared at once")

    platforms = data.get("platforms") or list(DEFAULT_BULK_PLATFORMS)
    if not isinstance(platforms, list) or not all(p in PLATFORMS for p in platforms):
        raise ValidationError(f"platforms must be a list drawn from: {', '.join(PLATFORMS)}")

    message = data.get("message")
    if message is not None and not isinstance(message, str):
        raise ValidationError("message must be a string")

    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(
                f"SELECT {EVENT_COLUMNS} FROM events "
                "WHERE event_id = ANY(%s) AND status = 'approved' ORDER BY event_id;",
                (event_ids,),
            )
            events = [dict(row) for row in cur.fetchall()]

    if not events:
        raise NotFoundError("No approved events found for sharing")

    results = []
    for event in events:
        share_url = event["shareable_link"] or lifecycle.shareable_link(event["event_id"])
        links = build_share_links(event, share_url, message)
        results.append({
            "event_id": event["event_id"],
            "title": event["title"],
            "share_links": {platform: links[platform] for platform in platforms},
        })

        if event["organizer_id"]:
            notify(
                event["organizer_id"],
                ADMIN_ANNOUNCEMENT,
                "Admin Promotion Campaign",
                f"Your event \"{event['title']}\" is included in an admin promotion campaign.",
                related_event_id=event["event_id"],
                action_url=f"/events/{event['event_id']}/analytics",
            )

    logging.info(f"[Share] Bulk share generated for events {[e['event_id'] for e in events]}")

    return success(
        {
            "campaign": {
                "total_events": len(events),
                "platforms": platforms,
                "message": message or "Default promotion message",
            },
            "results": results,
        },
        message=f"Generated share links for {len(events)} events",
    )
