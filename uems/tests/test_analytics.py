from datetime import datetime, timedelta, timezone

from uems.analytics_service.metrics import (
    fill_rate,
    health_score,
    percent,
    round_half_up,
    summarize_events,
    summarize_system,
    top_events,
)

NOW = datetime(2030, 6, 1, tzinfo=timezone.utc)
ANALYTICS = "uems.analytics_service.routes"


def _event(event_id, status, max_attendees=10, attendees=0, days_ahead=5, **extra):
    event = {
        "event_id": event_id,
        "title": f"Event {event_id}",
        "status": status,
        "event_date": NOW + timedelta(days=days_ahead),
        "location": "Hall",
        "max_attendees": max_attendees,
        "current_attendees": attendees,
        "created_at": NOW - timedelta(days=30),
        "banner_image": None,
        "images": [],
        "videos": [],
    }
    event.update(extra)
    return event


def test_fill_rate():
    assert fill_rate(7, 10) == 70
    assert fill_rate(3, 0) == 0


def test_summarize_events():
    events = [
        _event(1, "approved", 10, 8, banner_image="/uploads/event-banners/a.png"),
        _event(2, "approved", 10, 2, days_ahead=-3, images=[{"url": "x"}, {"url": "y"}]),
        _event(3, "approved", 20, 10, days_ahead=1),
        _event(4, "pending", 50, 0, created_at=NOW - timedelta(days=2)),
        _event(5, "draft", videos=[{"url": "v"}]),
        _event(6, "rejected"),
    ]

    report = summarize_events(events, NOW)
    summary = report["summary"]

    assert summary["total_events"] == 6
    assert summary["approved_events"] == 3
    assert summary["pending_events"] == 1
    assert summary["draft_events"] == 1
    assert summary["rejected_events"] == 1
    assert summary["total_registrations"] == 20
    assert summary["total_capacity"] == 40
    assert summary["avg_fill_rate"] == 50
    assert summary["recent_events"] == 1

    assert report["performance"] == {
        "high_performance_count": 1,
        "low_performance_count": 1,
        "average_performance": 1,
    }
    assert report["media"] == {"banners": 1, "images": 2, "videos": 1}

    # Past events are not upcoming; soonest first
    assert [e["event_id"] for e in report["upcoming_events"]] == [3, 1]
    assert summary["upcoming_events"] == 2


def test_summarize_no_events():
    report = summarize_events([], NOW)
    assert report["summary"]["avg_fill_rate"] == 0
    assert report["upcoming_events"] == []


def test_avg_fill_rate_rounds_halves_up():
    # 1 of 8 seats is 12.5%
    report = summarize_events([_event(1, "approved", max_attendees=8, attendees=1)], NOW)
    assert report["summary"]["avg_fill_rate"] == 13


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2
    assert percent(1, 8) == 13
    assert percent(5, 0) == 0


def test_top_events_threshold_and_order():
    events = [
        _event(1, "approved", 10, 7),
        _event(2, "approved", 10, 10),
        _event(3, "approved", 10, 6),
        _event(4, "pending", 10, 10),
        _event(5, "approved", 0, 0),
    ]

    top = top_events(events)

    assert [e["event_id"] for e in top] == [2, 1]
    assert top[0]["fill_rate"] == 100


def test_health_score_caps_at_100():
    assert health_score(100, 100, 9) == 100
    assert health_score(50, 50, 3) == 50
    assert health_score(75, 90, 0) == 66


def test_summarize_system():
    report = summarize_system(
        event_stats=[{"status": "approved", "count": 2}, {"status": "pending", "count": 2}],
        user_stats=[{"role": "student", "count": 3, "active_count": 1}],
        popular_categories=[],
        approved_events=[_event(1, "approved", 8, 7), _event(2, "approved", 8, 1)],
        registration_trends=[{"date": "2030-05-30", "count": 3}, {"date": "2030-05-31", "count": 2}],
        recent_activity={"events": 1, "registrations": 5},
        now=NOW,
    )

    summary = report["summary"]
    assert summary["total_events"] == 4
    assert summary["approval_rate"] == 50
    assert summary["user_activity_rate"] == 33
    assert summary["system_health_score"] == 33
    assert summary["weekly_growth"] == 1

    # 7/8 is 87.5%
    assert report["performance"]["top_events"][0]["fill_rate"] == 88
    assert report["performance"]["high_performance_events"] == 1
    assert report["trends"] == {
        "registration_trends": [{"date": "2030-05-30", "count": 3}, {"date": "2030-05-31", "count": 2}],
        "daily_average": 3,
        "peak_day": {"date": "2030-05-30", "count": 3},
        "total_registrations": 5,
    }
    assert report["insights"]["health_level"] == "Needs Attention"
    assert report["insights"]["growth_trend"] == "Slow"
    assert len(report["insights"]["recommendations"]) == 4


def test_summarize_system_empty():
    report = summarize_system([], [], [], [], [], {"events": 0, "registrations": 0}, NOW)
    assert report["summary"]["approval_rate"] == 0
    assert report["performance"]["average_fill_rate"] == 0
    assert report["trends"]["peak_day"] == {"date": "", "count": 0}


def test_statistics_admin_only(client, auth_header):
    response = client.get("/api/analytics/statistics", headers=auth_header(1, "organizer"))
    assert response.status_code == 403


def test_statistics(client, mock_db, auth_header):
    _, mock_cursor = mock_db(ANALYTICS)
    mock_cursor.fetchall.side_effect = [
        [{"status": "approved", "count": 4}],
        [{"role": "student", "count": 20}],
        [{"category": "sports", "count": 3}],
    ]
    mock_cursor.fetchone.side_effect = [{"count": 2}, {"count": 9}]

    response = client.get("/api/analytics/statistics", headers=auth_header(99, "admin"))

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["recent_activity"] == {"events": 2, "registrations": 9}
    assert data["popular_categories"][0]["category"] == "sports"


def test_organizer_analytics_self_or_admin(client, mock_db, auth_header):
    _, mock_cursor = mock_db(ANALYTICS)
    mock_cursor.fetchone.return_value = {
        "user_id": 5, "first_name": "Ana", "last_name": "Lim",
        "student_id": "S5", "email": "ana@gmail.com", "role": "organizer",
    }
    mock_cursor.fetchall.return_value = []

    assert client.get("/api/analytics/organizer/5", headers=auth_header(6, "organizer")).status_code == 403

    response = client.get("/api/analytics/organizer", headers=auth_header(5, "organizer"))
    assert response.status_code == 200
    assert response.get_json()["data"]["organizer"]["user_id"] == 5

    assert client.get("/api/analytics/organizer/5", headers=auth_header(99, "admin")).status_code == 200
