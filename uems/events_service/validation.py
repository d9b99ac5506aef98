"""
Validation of event proposal fields.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from uems.core.errors import ValidationError

# --- CONSTANTS FOR VALIDATION ---
TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 2000
LOCATION_MAX_LENGTH = 255
VALID_CATEGORIES = ['academic', 'cultural', 'sports', 'workshop', 'seminar', 'social', 'other']


def parse_dt(val: Optional[str]) -> Optional[datetime]:
    """
    Safely parse an ISO-8601 or datetime-local string to an aware datetime.

    Naive values are taken as UTC.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        # Handles 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith('Z'):
            val = val[:-1] + '+00:00'
        parsed = datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_tags(value: Any) -> List[str]:
    """Accept a list of strings or a comma separated string."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = value
    else:
        raise ValidationError("tags must be a list or a comma separated string")
    return [str(tag).strip() for tag in items if str(tag).strip()]


def _clean_text(data: Mapping[str, Any], key: str, label: str, max_length: int) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{label} cannot exceed {max_length} characters")
    return value


def clean_event_fields(data: Mapping[str, Any], partial: bool = False, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Validate proposal fields and map them onto event columns.

    Args:
        data: Request JSON.
        partial: When True only the keys present are validated (updates);
                 otherwise every required field must be present (creation).
        now: Reference time for the "date must be in the future" rule.

    Returns:
        dict: column -> cleaned value.

    Raises:
        ValidationError: On the first invalid field.
    """
    now = now or datetime.now(timezone.utc)
    fields: Dict[str, Any] = {}

    def wanted(key: str) -> bool:
        return not partial or key in data

    if wanted("title"):
        fields["title"] = _clean_text(data, "title", "Event title", TITLE_MAX_LENGTH)

    if wanted("description"):
        fields["description"] = _clean_text(data, "description", "Event description", DESCRIPTION_MAX_LENGTH)

    if wanted("category"):
        category = data.get("category")
        if category not in VALID_CATEGORIES:
            raise ValidationError(f"category must be one of: {', '.join(VALID_CATEGORIES)}")
        fields["category"] = category

    if wanted("date"):
        event_date = parse_dt(data.get("date"))
        if not event_date:
            raise ValidationError("Event date is required in ISO-8601 format")
        if event_date <= now:
            raise ValidationError("Event date must be in the future")
        fields["event_date"] = event_date

    if wanted("location"):
        fields["location"] = _clean_text(data, "location", "Event location", LOCATION_MAX_LENGTH)

    if wanted("max_attendees"):
        raw = data.get("max_attendees")
        try:
            # 2.9 must not silently become 2
            if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
                raise TypeError
            max_attendees = int(raw)
        except (TypeError, ValueError):
            raise ValidationError("Maximum attendees is required and must be a whole number")
        if max_attendees < 1:
            raise ValidationError("Must have at least 1 attendee")
        fields["max_attendees"] = max_attendees

    if "tags" in data:
        fields["tags"] = parse_tags(data.get("tags"))

    if "is_public" in data:
        if not isinstance(data["is_public"], bool):
            raise ValidationError("is_public must be true or false")
        fields["is_public"] = data["is_public"]

    return fields
