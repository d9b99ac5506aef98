"""
Event lifecycle state machine.

    draft --submit--> pending --approve--> approved
      ^                  |    --reject---> rejected
      +--cancel_submission

Approved events additionally toggle `registration_closed`. The `cancelled`
status is accepted by the schema but nothing in the system moves an event
into it.

Every function here is pure: it takes the current event row and the actor,
checks the guards, and returns the column updates to persist. The caller
writes them with a `WHERE status = <expected>` guard (see queries.py) so a
concurrent transition cannot be applied twice.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from uems.core.actor import Actor
from uems.core.errors import AuthorizationError, ConflictError, ValidationError

load_dotenv()

SERVER_URL = os.getenv("SERVER_URL", "http://localhost:5000")

# --- STATUSES ---
DRAFT = "draft"
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
CANCELLED = "cancelled"
VALID_STATUSES = (DRAFT, PENDING, APPROVED, REJECTED, CANCELLED)

EDITABLE_STATUSES = (DRAFT, PENDING)
PROPOSAL_DELETABLE_STATUSES = (DRAFT, PENDING, REJECTED)

APPROVAL_NOTES_MAX_LENGTH = 500

# operation -> (allowed source statuses, target status)
TRANSITIONS = {
    "submit": ((DRAFT,), PENDING),
    "cancel_submission": ((PENDING,), DRAFT),
    "approve": ((PENDING,), APPROVED),
    "reject": ((PENDING,), REJECTED),
}

Event = Mapping[str, Any]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --- OWNERSHIP ---
def is_creator(actor: Actor, event: Event) -> bool:
    return event["creator_id"] == actor.user_id


def is_organizer(actor: Actor, event: Event) -> bool:
    return event.get("organizer_id") is not None and event["organizer_id"] == actor.user_id


def is_owner(actor: Actor, event: Event) -> bool:
    return is_creator(actor, event) or is_organizer(actor, event)


def can_manage(actor: Optional[Actor], event: Event) -> bool:
    """Admin, creator, or organizer of the event."""
    if actor is None:
        return False
    return actor.is_admin or is_owner(actor, event)


def require_manager(actor: Actor, event: Event, message: str = "Access denied. Not authorized for this event.") -> None:
    if not can_manage(actor, event):
        raise AuthorizationError(message)


def _transition(operation: str, event: Event) -> str:
    sources, target = TRANSITIONS[operation]
    if event["status"] not in sources:
        allowed = ", ".join(sources)
        raise ConflictError(
            f"Cannot {operation.replace('_', ' ')} event with status: {event['status']}. "
            f"Only {allowed} events allowed."
        )
    return target


# --- TRANSITIONS ---
def submit(event: Event, actor: Actor) -> Dict[str, Any]:
    """draft -> pending, by the creator or organizer."""
    if not is_owner(actor, event):
        raise AuthorizationError("Not authorized to submit this proposal")
    return {"status": _transition("submit", event)}


def cancel_submission(event: Event, actor: Actor) -> Dict[str, Any]:
    """pending -> draft, by the creator only."""
    if not is_creator(actor, event):
        raise AuthorizationError("Not authorized to cancel this submission")
    return {"status": _transition("cancel_submission", event)}


def shareable_link(event_id: int) -> str:
    """Permanent, click-tracked link handed out once the event is approved."""
    return f"{SERVER_URL}/api/share/events/{event_id}/redirect"


def approve(event: Event, actor: Actor, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    pending -> approved, admin only.

    The creator becomes the organizer and the shareable link is fixed.
    Promoting the creator's account is left to the `event_approved` signal.
    """
    if not actor.is_admin:
        raise AuthorizationError("Access denied. Admin privileges required.")
    status = _transition("approve", event)
    return {
        "status": status,
        "organizer_id": event["creator_id"],
        "approved_by": actor.user_id,
        "approved_at": now or _now(),
        "shareable_link": event.get("shareable_link") or shareable_link(event["event_id"]),
    }


def clean_rejection_notes(notes: Any) -> str:
    if not isinstance(notes, str) or not notes.strip():
        raise ValidationError("Rejection notes are required")
    notes = notes.strip()
    if len(notes) > APPROVAL_NOTES_MAX_LENGTH:
        raise ValidationError(f"Rejection notes cannot exceed {APPROVAL_NOTES_MAX_LENGTH} characters")
    return notes


def reject(event: Event, actor: Actor, notes: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
    """pending -> rejected, admin only, notes required."""
    if not actor.is_admin:
        raise AuthorizationError("Access denied. Admin privileges required.")
    notes = clean_rejection_notes(notes)
    status = _transition("reject", event)
    return {
        "status": status,
        "approval_notes": notes,
        "approved_by": actor.user_id,
        "approved_at": now or _now(),
    }


# --- REGISTRATION WINDOW (sub-state of approved) ---
def close_registration(event: Event, actor: Actor, now: Optional[datetime] = None) -> Dict[str, Any]:
    require_manager(actor, event, "Only organizers can close registration")
    if event["status"] != APPROVED:
        raise ConflictError("Only approved events can have registration closed")
    if event["registration_closed"]:
        raise ConflictError("Registration is already closed for this event")
    return {"registration_closed": True, "closed_at": now or _now()}


def open_registration(event: Event, actor: Actor) -> Dict[str, Any]:
    require_manager(actor, event, "Only organizers can open registration")
    if event["status"] != APPROVED:
        raise ConflictError("Only approved events can have registration opened")
    if not event["registration_closed"]:
        raise ConflictError("Registration is already open for this event")
    return {"registration_closed": False, "closed_at": None}


# --- EDITS AND DELETION ---
def check_editable(event: Event, actor: Actor) -> None:
    """Field edits are only allowed while the event is still a proposal."""
    require_manager(actor, event, "Not authorized to update this proposal")
    if event["status"] not in EDITABLE_STATUSES:
        raise ConflictError("Cannot update approved or rejected events")


def check_deletable(event: Event, actor: Actor, proposals_only: bool = False) -> None:
    """
    Admins may delete any event; creator/organizer may delete their own.

    With `proposals_only`, approved (and cancelled) events are refused; that
    is the proposals endpoint's narrower contract.
    """
    require_manager(actor, event, "Access denied. You can only delete events you created or organized.")
    if proposals_only and event["status"] not in PROPOSAL_DELETABLE_STATUSES:
        raise ConflictError("Only draft, pending, or rejected events can be deleted")
