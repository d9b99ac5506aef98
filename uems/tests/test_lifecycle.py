import pytest

from uems.core.actor import Actor
from uems.core.errors import AuthorizationError, ConflictError, ValidationError
from uems.events_service import lifecycle

ADMIN = Actor(user_id=99, role="admin")
CREATOR = Actor(user_id=1, role="student")
ORGANIZER = Actor(user_id=2, role="organizer")
STRANGER = Actor(user_id=3, role="organizer")


def test_submit_then_cancel_round_trip(event_row):
    draft = event_row(status="draft")
    assert lifecycle.submit(draft, CREATOR) == {"status": "pending"}

    pending = event_row(status="pending")
    assert lifecycle.cancel_submission(pending, CREATOR) == {"status": "draft"}


def test_submit_by_organizer_allowed(event_row):
    event = event_row(status="draft", organizer_id=2)
    assert lifecycle.submit(event, ORGANIZER)["status"] == "pending"


@pytest.mark.parametrize("status", ["pending", "approved", "rejected", "cancelled"])
def test_submit_requires_draft(event_row, status):
    with pytest.raises(ConflictError):
        lifecycle.submit(event_row(status=status), CREATOR)


def test_submit_by_stranger_forbidden(event_row):
    with pytest.raises(AuthorizationError):
        lifecycle.submit(event_row(status="draft"), STRANGER)


def test_cancel_submission_creator_only(event_row):
    event = event_row(status="pending", organizer_id=2)
    with pytest.raises(AuthorizationError):
        lifecycle.cancel_submission(event, ORGANIZER)


def test_cancel_submission_requires_pending(event_row):
    with pytest.raises(ConflictError):
        lifecycle.cancel_submission(event_row(status="draft"), CREATOR)


def test_approve_sets_organizer_and_link(event_row):
    updates = lifecycle.approve(event_row(status="pending", event_id=10), ADMIN)

    assert updates["status"] == "approved"
    assert updates["organizer_id"] == 1
    assert updates["approved_by"] == 99
    assert updates["approved_at"] is not None
    assert updates["shareable_link"].endswith("/api/share/events/10/redirect")


def test_approve_twice_conflicts(event_row):
    with pytest.raises(ConflictError):
        lifecycle.approve(event_row(status="approved"), ADMIN)


def test_approve_requires_admin(event_row):
    with pytest.raises(AuthorizationError):
        lifecycle.approve(event_row(status="pending"), CREATOR)


@pytest.mark.parametrize("notes", [None, "", "   ", 42])
def test_reject_requires_notes(event_row, notes):
    with pytest.raises(ValidationError):
        lifecycle.reject(event_row(status="pending"), ADMIN, notes)


def test_reject_notes_length_limit(event_row):
    with pytest.raises(ValidationError):
        lifecycle.reject(event_row(status="pending"), ADMIN, "x" * 501)


def test_reject_stores_trimmed_notes(event_row):
    updates = lifecycle.reject(event_row(status="pending"), ADMIN, "  Venue unavailable  ")
    assert updates["status"] == "rejected"
    assert updates["approval_notes"] == "Venue unavailable"
    assert updates["approved_by"] == 99


def test_close_and_open_registration(event_row):
    open_event = event_row(status="approved", organizer_id=1)
    updates = lifecycle.close_registration(open_event, CREATOR)
    assert updates["registration_closed"] is True
    assert updates["closed_at"] is not None

    closed_event = event_row(status="approved", registration_closed=True)
    assert lifecycle.open_registration(closed_event, ADMIN) == {"registration_closed": False, "closed_at": None}


def test_close_registration_guards(event_row):
    with pytest.raises(ConflictError):
        lifecycle.close_registration(event_row(status="pending"), CREATOR)
    with pytest.raises(ConflictError):
        lifecycle.close_registration(event_row(status="approved", registration_closed=True), CREATOR)
    with pytest.raises(ConflictError):
        lifecycle.open_registration(event_row(status="approved"), CREATOR)
    with pytest.raises(AuthorizationError):
        lifecycle.close_registration(event_row(status="approved"), STRANGER)


@pytest.mark.parametrize("status", ["approved", "rejected"])
def test_edits_only_for_proposals(event_row, status):
    with pytest.raises(ConflictError):
        lifecycle.check_editable(event_row(status=status), CREATOR)


def test_proposal_delete_refuses_approved(event_row):
    approved = event_row(status="approved")
    with pytest.raises(ConflictError):
        lifecycle.check_deletable(approved, CREATOR, proposals_only=True)
    # The general delete accepts any status
    lifecycle.check_deletable(approved, CREATOR)
    lifecycle.check_deletable(approved, ADMIN)


def test_can_manage(event_row):
    event = event_row(creator_id=1, organizer_id=2)
    assert lifecycle.can_manage(ADMIN, event)
    assert lifecycle.can_manage(CREATOR, event)
    assert lifecycle.can_manage(ORGANIZER, event)
    assert not lifecycle.can_manage(STRANGER, event)
    assert not lifecycle.can_manage(None, event)
