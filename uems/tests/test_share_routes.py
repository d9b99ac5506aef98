from datetime import date

SHARE = "uems.share_service.routes"


def test_share_links_for_approved_event(client, mock_db, event_row):
    _, mock_cursor = mock_db(SHARE)
    link = "http://localhost:5000/api/share/events/10/redirect"
    mock_cursor.fetchone.side_effect = [
        event_row(status="approved", organizer_id=1, shareable_link=link),
        {"first_name": "Juan", "last_name": "Dela Cruz"},
    ]

    response = client.get("/api/share/events/10")

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["share_url"] == link
    assert data["share_links"]["direct"] == link
    assert data["share_links"]["facebook"].startswith("https://www.facebook.com/sharer/sharer.php?u=http%3A%2F%2F")
    assert data["share_content"]["organizer"] == "Juan Dela Cruz"


def test_share_links_draft_hidden_from_public(client, mock_db, event_row, auth_header):
    _, mock_cursor = mock_db(SHARE)
    mock_cursor.fetchone.side_effect = [event_row(status="draft"), None]

    assert client.get("/api/share/events/10").status_code == 403


def test_share_links_draft_preview_for_creator(client, mock_db, event_row, auth_header):
    _, mock_cursor = mock_db(SHARE)
    mock_cursor.fetchone.side_effect = [event_row(status="draft", creator_id=1), None]

    response = client.get("/api/share/events/10", headers=auth_header(1))

    assert response.status_code == 200
    assert response.get_json()["data"]["share_url"].endswith("/api/share/events/10/redirect")


def test_redirect_tracks_click(client, mock_db):
    _, mock_cursor = mock_db(SHARE)
    mock_cursor.fetchone.return_value = {"status": "approved"}

    response = client.get("/api/share/events/10/redirect?platform=facebook")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/events/10?source=shared&platform=facebook")
    assert "ON CONFLICT (event_id, day)" in mock_cursor.execute.call_args[0][0]


def test_redirect_unknown_platform_counts_as_direct(client, mock_db):
    _, mock_cursor = mock_db(SHARE)
    mock_cursor.fetchone.return_value = {"status": "approved"}

    response = client.get("/api/share/events/10/redirect?platform=myspace")
    assert response.headers["Location"].endswith("platform=direct")


def test_redirect_unapproved_goes_to_not_found(client, mock_db):
    _, mock_cursor = mock_db(SHARE)
    mock_cursor.fetchone.return_value = {"status": "pending"}

    response = client.get("/api/share/events/10/redirect")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/events/not-found")
    assert mock_cursor.execute.call_count == 1


def test_share_analytics(client, mock_db, event_row, auth_header):
    _, mock_cursor = mock_db(SHARE)
    mock_cursor.fetchone.return_value = event_row(status="approved", organizer_id=1)
    mock_cursor.fetchall.return_value = [
        {"day": date(2030, 1, 1), "share_count": 2, "page_views": 2},
        {"day": date(2030, 1, 2), "share_count": 3, "page_views": 4},
    ]

    response = client.get("/api/share/events/10/analytics", headers=auth_header(1))

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["overview"] == {"total_shares": 5, "page_views": 6}
    assert data["daily_trend"][0]["day"] == "2030-01-01"


def test_share_analytics_forbidden(client, mock_db, event_row, auth_header):
    _, mock_cursor = mock_db(SHARE)
    mock_cursor.fetchone.return_value = event_row(status="approved")

    response = client.get("/api/share/events/10/analytics", headers=auth_header(3))
    assert response.status_code == 403


def test_bulk_share_requires_admin(client, auth_header):
    response = client.post("/api/share/bulk", json={"event_ids": [10]}, headers=auth_header(1, "organizer"))
    assert response.status_code == 403


def test_bulk_share_validates_ids(client, auth_header):
    for body in ({}, {"event_ids": []}, {"event_ids": ["10"]}, {"event_ids": [10], "platforms": ["myspace"]}):
        response = client.post("/api/share/bulk", json=body, headers=auth_header(99, "admin"))
        assert response.status_code == 400


def test_bulk_share_notifies_organizers(client, mock_db, event_row, auth_header, mocker):
    _, mock_cursor = mock_db(SHARE)
    notify = mocker.patch(f"{SHARE}.notify")
    mock_cursor.fetchall.return_value = [
        event_row(event_id=10, status="approved", organizer_id=1),
        event_row(event_id=11, title="Chess Open", status="approved", organizer_id=None),
    ]

    response = client.post(
        "/api/share/bulk",
        json={"event_ids": [10, 11, 12], "platforms": ["twitter", "whatsapp"], "message": "Join us"},
        headers=auth_header(99, "admin"),
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["campaign"] == {"total_events": 2, "platforms": ["twitter", "whatsapp"], "message": "Join us"}
    assert set(data["results"][0]["share_links"]) == {"twitter", "whatsapp"}
    assert "text=Join%20us" in data["results"][0]["share_links"]["twitter"]

    assert mock_cursor.execute.call_args[0][1] == ([10, 11, 12],)

    # Only the event with an organizer gets the announcement
    notify.assert_called_once()
    assert notify.call_args[0][:2] == (1, "admin_announcement")
    assert notify.call_args[1]["related_event_id"] == 10


def test_bulk_share_no_approved_events(client, mock_db, auth_header, mocker):
    _, mock_cursor = mock_db(SHARE)
    notify = mocker.patch(f"{SHARE}.notify")
    mock_cursor.fetchall.return_value = []

    response = client.post("/api/share/bulk", json={"event_ids": [10]}, headers=auth_header(99, "admin"))

    assert response.status_code == 404
    notify.assert_not_called()
