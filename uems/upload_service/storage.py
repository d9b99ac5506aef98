"""
Disk storage for event media.

Files live under UPLOAD_FOLDER in one sub-folder per media type and are
referenced from the events table as `/uploads/<folder>/<name>`.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from dotenv import load_dotenv
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from uems.core.errors import ValidationError

load_dotenv()

UPLOAD_FOLDER = os.path.abspath(os.getenv("UPLOAD_FOLDER", "uploads"))

BANNER = "banner"
IMAGES = "images"
VIDEOS = "videos"
MEDIA_TYPES = (BANNER, IMAGES, VIDEOS)

MEDIA_FOLDERS = {
    BANNER: "event-banners",
    IMAGES: "event-images",
    VIDEOS: "event-videos",
}

MAX_FILES = {BANNER: 1, IMAGES: 10, VIDEOS: 5}

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
ALLOWED_VIDEO_TYPES = ("video/mp4", "video/webm", "video/ogg", "video/quicktime")

# Singular forms used by older clients on delete
MEDIA_TYPE_ALIASES = {"image": IMAGES, "video": VIDEOS}


def normalize_media_type(media_type: str) -> str:
    media_type = MEDIA_TYPE_ALIASES.get(media_type, media_type)
    if media_type not in MEDIA_TYPES:
        raise ValidationError(f"media_type must be one of: {', '.join(MEDIA_TYPES)}")
    return media_type


def allowed_types(media_type: str) -> tuple:
    return ALLOWED_VIDEO_TYPES if media_type == VIDEOS else ALLOWED_IMAGE_TYPES


def check_files(media_type: str, files: List[FileStorage]) -> None:
    """
    Raises:
        ValidationError: No files, too many files, or a disallowed content type.
    """
    files = [f for f in files if f and f.filename]
    if not files:
        raise ValidationError("No files uploaded")
    if len(files) > MAX_FILES[media_type]:
        raise ValidationError(f"At most {MAX_FILES[media_type]} file(s) allowed for {media_type}")

    allowed = allowed_types(media_type)
    for f in files:
        if f.mimetype not in allowed:
            raise ValidationError(f"File type {f.mimetype} is not allowed for {media_type}")


def stored_name(event_id: int, original_filename: str) -> str:
    """`event-<id>-<random hex><ext>`, keeping only the original extension."""
    _, ext = os.path.splitext(secure_filename(original_filename))
    return f"event-{event_id}-{uuid.uuid4().hex}{ext.lower()}"


def media_url(media_type: str, filename: str) -> str:
    return f"/uploads/{MEDIA_FOLDERS[media_type]}/{filename}"


def file_path(media_type: str, filename: str) -> str:
    return os.path.join(UPLOAD_FOLDER, MEDIA_FOLDERS[media_type], secure_filename(filename))


def save_file(f: FileStorage, media_type: str, event_id: int) -> Dict[str, Any]:
    """Write one upload to disk and return its media entry."""
    folder = os.path.join(UPLOAD_FOLDER, MEDIA_FOLDERS[media_type])
    os.makedirs(folder, exist_ok=True)

    name = stored_name(event_id, f.filename)
    f.save(os.path.join(folder, name))
    logging.info(f"[Upload] Saved {f.filename} as {name}")

    return {
        "url": media_url(media_type, name),
        "filename": name,
        "uploaded_at": datetime.now(timezone.utc).isoformat(),
    }


def remove_file(media_type: str, filename: str) -> bool:
    """Delete a stored file. Returns False when it was already gone."""
    path = file_path(media_type, filename)
    if not os.path.exists(path):
        logging.warning(f"[Upload] File not found on disk: {path}")
        return False
    os.remove(path)
    return True
