"""
Upload routes: banner, image, and video media attached to an event.

Media can be attached in any event status; these writes skip the proposal
field validation.
"""

import os
from typing import Any, Dict, List, Mapping, Tuple

from flask import Blueprint, request, Response
from psycopg2.extras import Json

from uems.database.db_connection import get_db
from uems.auth_service.utils import require_auth
from uems.core.errors import NotFoundError
from uems.core.responses import success
from uems.events_service import lifecycle
from uems.events_service.queries import apply_event_update, load_event
from uems.upload_service import storage

upload_bp = Blueprint("upload", __name__)

SERVER_URL = lifecycle.SERVER_URL


def _with_full_url(entry: Mapping[str, Any]) -> Dict[str, Any]:
    item = dict(entry)
    item["filename"] = os.path.basename(item["url"])
    item["full_url"] = f"{SERVER_URL}{item['url']}"
    return item


def media_info(event: Mapping[str, Any]) -> Dict[str, Any]:
    banner = event.get("banner_image")
    images = event.get("images") or []
    videos = event.get("videos") or []
    return {
        "media": {
            "banner": _with_full_url({"url": banner}) if banner else None,
            "images": [_with_full_url(img) for img in images],
            "videos": [_with_full_url(vid) for vid in videos],
        },
        "counts": {
            "banner": 1 if banner else 0,
            "images": len(images),
            "videos": len(videos),
        },
    }


@upload_bp.route("/events/<int:event_id>/media", methods=["POST"])
def upload_event_media(event_id: int) -> Tuple[Response, int]:
    """
    Attach media to an event.

    Form fields:
        media_type: banner | images | videos
        banner / images / videos: the file field matching media_type
        caption (images), title (videos): optional labels

    Returns:
        200: {"uploaded_files": [...], "media": {...}, "counts": {...}}
        400: Bad media type, no files, too many, or disallowed type.
        403: Not the creator, organizer, or an admin.
        404: Event not found.
    """
    actor = require_auth()
    media_type = storage.normalize_media_type(request.form.get("media_type", ""))
    files = [f for f in request.files.getlist(media_type) if f and f.filename]

    saved: List[Dict[str, Any]] = []
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                event = load_event(cur, event_id, for_update=True)
                lifecycle.require_manager(actor, event, "Not authorized to upload media for this event")
                storage.check_files(media_type, files)
                previous_banner = event["banner_image"]

                for f in files:
                    saved.append(storage.save_file(f, media_type, event_id))

                if media_type == storage.BANNER:
                    updates = {"banner_image": saved[0]["url"]}
                elif media_type == storage.IMAGES:
                    caption = request.form.get("caption", "")
                    entries = [{"url": s["url"], "caption": caption, "uploaded_at": s["uploaded_at"]} for s in saved]
                    updates = {"images": Json(list(event["images"] or []) + entries)}
                else:
                    entries = [
                        {
                            "url": s["url"],
                            "title": request.form.get("title") or os.path.splitext(f.filename)[0],
                            "uploaded_at": s["uploaded_at"],
                        }
                        for s, f in zip(saved, files)
                    ]
                    updates = {"videos": Json(list(event["videos"] or []) + entries)}

                event = apply_event_update(cur, event_id, updates)
    except Exception:
        # The transaction rolled back, so nothing references these files
        for s in saved:
            storage.remove_file(media_type, s["filename"])
        raise

    if media_type == storage.BANNER and previous_banner:
        storage.remove_file(storage.BANNER, os.path.basename(previous_banner))

    uploaded = [{"type": media_type, "url": s["url"], "filename": s["filename"]} for s in saved]
    return success(
        {"event_id": event_id, "uploaded_files": uploaded, **media_info(event)},
        message="Event media uploaded successfully",
    )


@upload_bp.route("/events/<int:event_id>/media", methods=["GET"])
def get_event_media(event_id: int) -> Tuple[Response, int]:
    actor = require_auth()

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id)

    lifecycle.require_manager(actor, event, "Not authorized to view media for this event")
    return success({"event_id": event_id, **media_info(event)})


@upload_bp.route("/events/<int:event_id>/media/<media_type>/<filename>", methods=["DELETE"])
def delete_event_media(event_id: int, media_type: str, filename: str) -> Tuple[Response, int]:
    """Detach one media file from the event and remove it from disk."""
    actor = require_auth()
    media_type = storage.normalize_media_type(media_type)
    filename = os.path.basename(filename)

    with get_db() as conn:
        with conn.cursor() as cur:
            event = load_event(cur, event_id, for_update=True)
            lifecycle.require_manager(actor, event, "Not authorized to delete media from this event")

            if media_type == storage.BANNER:
                banner = event["banner_image"]
                if not banner or os.path.basename(banner) != filename:
                    raise NotFoundError("Media not found on this event")
                updates = {"banner_image": None}
            else:
                entries = list(event[media_type] or [])
                kept = [e for e in entries if os.path.basename(e["url"]) != filename]
                if len(kept) == len(entries):
                    raise NotFoundError("Media not found on this event")
                updates = {media_type: Json(kept)}

            event = apply_event_update(cur, event_id, updates)

    file_deleted = storage.remove_file(media_type, filename)

    return success(
        {"event_id": event_id, "file_deleted": file_deleted, **media_info(event)},
        message="Event media deleted successfully",
    )
