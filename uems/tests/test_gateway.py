def test_root_and_health(client):
    assert client.get("/").get_json()["success"] is True

    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_unknown_route_uses_envelope(client):
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_unexpected_error_is_500(client, mocker, auth_header):
    mocker.patch("uems.notifications_service.routes.get_db", side_effect=RuntimeError("boom"))

    response = client.get("/api/notifications/unread-count", headers=auth_header())

    assert response.status_code == 500
    body = response.get_json()
    assert body["message"] == "Internal Server Error"


def test_serves_uploaded_media(client, mocker, tmp_path):
    folder = tmp_path / "event-banners"
    folder.mkdir()
    (folder / "b.png").write_bytes(b"png")
    mocker.patch("uems.upload_service.storage.UPLOAD_FOLDER", str(tmp_path))

    response = client.get("/uploads/event-banners/b.png")

    assert response.status_code == 200
    assert response.data == b"png"
    response.close()

    assert client.get("/uploads/event-banners/missing.png").status_code == 404
