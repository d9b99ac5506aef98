import pytest
from datetime import datetime, timedelta, timezone

from uems.core.errors import ValidationError
from uems.events_service.filters import EventFilter
from uems.events_service.validation import clean_event_fields, parse_dt, parse_tags


def test_filter_defaults():
    event_filter = EventFilter.from_args({})
    conditions, params = event_filter.predicates()

    assert conditions == ["e.status = 'approved'", "e.is_public = TRUE"]
    assert params == []
    assert event_filter.offset == 0


def test_filter_category_and_search():
    event_filter = EventFilter.from_args({"category": "sports", "search": "100%_fun", "page": "3", "limit": "5"})
    conditions, params = event_filter.predicates()

    assert "e.category = %s" in conditions
    assert params[0] == "sports"
    # LIKE wildcards in user input are escaped
    assert params[1] == "%100\\%\\_fun%"
    assert len(params) == 4
    assert event_filter.offset == 10


def test_filter_rejects_unknown_category():
    with pytest.raises(ValidationError):
        EventFilter.from_args({"category": "parties"})


def test_filter_rejects_bad_paging():
    with pytest.raises(ValidationError):
        EventFilter.from_args({"page": "zero"})
    with pytest.raises(ValidationError):
        EventFilter.from_args({"limit": "0"})


def test_parse_dt():
    assert parse_dt("2030-05-01T09:00:00Z") == datetime(2030, 5, 1, 9, tzinfo=timezone.utc)
    assert parse_dt("2030-05-01T09:00").tzinfo is not None
    assert parse_dt("tomorrow") is None
    assert parse_dt(None) is None


def test_parse_tags():
    assert parse_tags("ai, robots ,,") == ["ai", "robots"]
    assert parse_tags(["ai", " ml "]) == ["ai", "ml"]
    assert parse_tags(None) == []
    with pytest.raises(ValidationError):
        parse_tags(5)


def _payload(**overrides):
    payload = {
        "title": "Hackathon",
        "description": "24 hours of code.",
        "category": "academic",
        "date": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
        "location": "Main Library",
        "max_attendees": "50",
        "tags": "code,pizza",
    }
    payload.update(overrides)
    return payload


def test_clean_event_fields_maps_columns():
    fields = clean_event_fields(_payload())

    assert fields["title"] == "Hackathon"
    assert fields["max_attendees"] == 50
    assert fields["tags"] == ["code", "pizza"]
    assert "event_date" in fields and "date" not in fields


@pytest.mark.parametrize("overrides", [
    {"title": ""},
    {"title": "x" * 101},
    {"description": "x" * 2001},
    {"category": "party"},
    {"date": "2001-01-01T00:00:00Z"},
    {"date": "not a date"},
    {"location": "   "},
    {"max_attendees": 0},
    {"max_attendees": "many"},
    {"max_attendees": True},
    {"max_attendees": 2.9},
    {"is_public": "yes"},
])
def test_clean_event_fields_rejects(overrides):
    with pytest.raises(ValidationError):
        clean_event_fields(_payload(**overrides))


def test_clean_event_fields_partial():
    assert clean_event_fields({"location": "Gym"}, partial=True) == {"location": "Gym"}
    assert clean_event_fields({}, partial=True) == {}


def test_clean_event_fields_accepts_integral_float_capacity():
    assert clean_event_fields({"max_attendees": 30.0}, partial=True) == {"max_attendees": 30}
