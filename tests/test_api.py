from __future__ import annotations

from fastapi.testclient import TestClient


def _create_video(client: TestClient, headers: dict[str, str], **fields) -> str:
    payload = {
        "title": "Chill Lofi Beats",
        "videoUrl": "https://cdn.test/lofi.mp4",
        "duration": "1:00:00",
    }
    payload.update(fields)
    response = client.post("/api/v1/videos", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]["id"]


def test_health(client: TestClient) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == 0
    assert body["data"]["status"] == "ok"
    assert response.headers["X-Request-Id"] == body["traceId"]


def test_auth_sync_requires_shared_secret(client: TestClient) -> None:
    response = client.post("/api/v1/auth/sync", json={"uid": "alice"})

    assert response.status_code == 401
    assert response.json()["code"] == 40105


def test_auth_states(client: TestClient, auth_headers) -> None:
    anonymous = client.get("/api/v1/auth/me").json()["data"]
    assert anonymous["state"] == "unauthenticated"

    broken = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"}).json()
    assert broken["data"]["state"] == "auth_error"
    assert broken["data"]["error"] == "AUTH_TOKEN_INVALID"

    headers = auth_headers(client, "alice", "Alice")
    me = client.get("/api/v1/auth/me", headers=headers).json()["data"]
    assert me["state"] == "authenticated"
    assert me["uid"] == "alice"
    assert me["displayName"] == "Alice"

    assert client.post("/api/v1/auth/sign-out", headers=headers).status_code == 200
    after = client.get("/api/v1/auth/me", headers=headers).json()["data"]
    assert after["state"] == "auth_error"
    assert after["error"] == "AUTH_TOKEN_REVOKED"


def test_protected_route_without_token(client: TestClient) -> None:
    response = client.get("/api/v1/me/history")

    assert response.status_code == 401
    assert response.json()["code"] == 40101


def test_video_lifecycle(client: TestClient, auth_headers, settings) -> None:
    alice = auth_headers(client, "alice", "Alice")
    bob = auth_headers(client, "bob", "Bob")
    video_id = _create_video(client, alice)

    video = client.get(f"/api/v1/videos/{video_id}").json()["data"]
    assert video["title"] == "Chill Lofi Beats"
    assert video["uploaderName"] == "Alice"
    assert video["thumbnailUrl"] == settings.THUMBNAIL_PLACEHOLDER_URL
    assert video["views"] == 0

    listing = client.get("/api/v1/videos").json()["data"]
    assert [item["id"] for item in listing["items"]] == [video_id]
    found = client.get("/api/v1/videos/search", params={"q": "LOFI"}).json()["data"]
    assert found["total"] == 1

    denied = client.patch(f"/api/v1/videos/{video_id}", json={"title": "Mine"}, headers=bob)
    assert denied.status_code == 403
    assert denied.json()["code"] == 40301

    renamed = client.patch(
        f"/api/v1/videos/{video_id}", json={"title": "Lofi Radio"}, headers=alice
    )
    assert renamed.json()["data"]["title"] == "Lofi Radio"

    assert client.delete(f"/api/v1/videos/{video_id}", headers=bob).status_code == 403
    assert client.delete(f"/api/v1/videos/{video_id}", headers=alice).status_code == 200
    assert client.get(f"/api/v1/videos/{video_id}").status_code == 404


def test_missing_video_envelope_and_locale(client: TestClient) -> None:
    english = client.get("/api/v1/videos/nope")
    chinese = client.get("/api/v1/videos/nope", headers={"Accept-Language": "zh-CN,zh;q=0.9"})

    assert english.status_code == 404
    assert english.json()["code"] == 40401
    assert english.json()["message"] == "Video not found"
    assert chinese.json()["message"] == "视频不存在"


def test_private_video_visible_to_owner_only(client: TestClient, auth_headers) -> None:
    alice = auth_headers(client, "alice")
    bob = auth_headers(client, "bob")
    video_id = _create_video(client, alice, visibility="private")

    assert client.get(f"/api/v1/videos/{video_id}", headers=alice).status_code == 200
    assert client.get(f"/api/v1/videos/{video_id}", headers=bob).status_code == 404
    assert client.get("/api/v1/videos").json()["data"]["items"] == []


def test_views_are_deduplicated_per_session(client: TestClient, auth_headers) -> None:
    video_id = _create_video(client, auth_headers(client, "alice"))
    url = f"/api/v1/videos/{video_id}/views"

    first = client.post(url, headers={"X-Session-Id": "tab-1"}).json()["data"]
    repeat = client.post(url, headers={"X-Session-Id": "tab-1"}).json()["data"]
    other = client.post(url, json={"sessionId": "tab-2"}).json()["data"]
    anonymous = client.post(url).json()["data"]

    assert (first["counted"], first["views"]) == (True, 1)
    assert (repeat["counted"], repeat["views"]) == (False, 1)
    assert (other["counted"], other["views"]) == (True, 2)
    assert anonymous["counted"] is True
    assert anonymous["sessionId"]


def test_vote_round_trip(client: TestClient, auth_headers) -> None:
    video_id = _create_video(client, auth_headers(client, "alice"))
    bob = auth_headers(client, "bob")
    url = f"/api/v1/videos/{video_id}/vote"

    liked = client.put(url, json={"vote": "liked"}, headers=bob).json()["data"]
    assert (liked["vote"], liked["likes"], liked["dislikes"]) == ("liked", 1, 0)

    flipped = client.put(url, json={"vote": "disliked"}, headers=bob).json()["data"]
    assert (flipped["likes"], flipped["dislikes"]) == (0, 1)

    current = client.get(url, headers=bob).json()["data"]
    assert current["vote"] == "disliked"

    invalid = client.put(url, json={"vote": "love"}, headers=bob)
    assert invalid.status_code == 400
    assert invalid.json()["code"] == 40001


def test_engagement_routes(client: TestClient, auth_headers) -> None:
    video_id = _create_video(client, auth_headers(client, "alice"))
    bob = auth_headers(client, "bob")

    recorded = client.post(f"/api/v1/me/history/{video_id}", headers=bob).json()["data"]
    assert recorded["key"] == video_id
    assert recorded["snapshot"]["title"] == "Chill Lofi Beats"

    client.post(f"/api/v1/me/watch-later/{video_id}", headers=bob)
    saved = client.get("/api/v1/me/watch_later", headers=bob).json()["data"]
    assert saved["total"] == 1

    client.post(f"/api/v1/me/liked/{video_id}", headers=bob)
    assert client.get(f"/api/v1/videos/{video_id}").json()["data"]["likes"] == 1

    assert client.delete(f"/api/v1/me/history/{video_id}", headers=bob).status_code == 200
    missing = client.delete(f"/api/v1/me/history/{video_id}", headers=bob)
    assert missing.status_code == 404
    assert missing.json()["code"] == 40403

    cleared = client.delete("/api/v1/me/watch-later", headers=bob).json()["data"]
    assert cleared["deleted"] == 1

    unknown = client.get("/api/v1/me/favourites", headers=bob)
    assert unknown.status_code == 400
    assert unknown.json()["code"] == 40009


def test_subscription_routes(client: TestClient, auth_headers) -> None:
    alice = auth_headers(client, "alice", "Alice")
    bob = auth_headers(client, "bob", "Bob")
    _create_video(client, alice)

    subscribed = client.post("/api/v1/channels/alice/subscription", headers=bob).json()["data"]
    assert subscribed == {"channelUid": "alice", "subscribed": True, "subscribers": 1}
    again = client.post("/api/v1/channels/alice/subscription", headers=bob).json()["data"]
    assert again["subscribers"] == 1

    feed = client.get("/api/v1/videos/feed", headers=bob).json()["data"]
    assert feed["total"] == 1
    mine = client.get("/api/v1/channels/me/subscriptions", headers=bob).json()["data"]
    assert [item["channelName"] for item in mine["items"]] == ["Alice"]

    left = client.delete("/api/v1/channels/alice/subscription", headers=bob).json()["data"]
    assert left == {"channelUid": "alice", "subscribed": False, "subscribers": 0}

    own = client.post("/api/v1/channels/alice/subscription", headers=alice)
    assert own.status_code == 400
    assert own.json()["code"] == 40007


def test_channel_page_and_studio(client: TestClient, auth_headers) -> None:
    alice = auth_headers(client, "alice", "Alice")
    bob = auth_headers(client, "bob")
    _create_video(client, alice, title="Public")
    _create_video(client, alice, title="Draft", visibility="private")

    public_view = client.get("/api/v1/channels/alice", headers=bob).json()["data"]
    assert [video["title"] for video in public_view["videos"]] == ["Public"]
    assert public_view["profile"]["email"] is None

    owner_view = client.get("/api/v1/channels/alice", headers=alice).json()["data"]
    assert len(owner_view["videos"]) == 2
    assert owner_view["profile"]["email"] == "alice@test"

    customized = client.patch(
        "/api/v1/channels/me",
        json={"displayName": "Alice Cooks", "description": "Recipes"},
        headers=alice,
    ).json()["data"]
    assert customized["displayName"] == "Alice Cooks"
    videos = client.get("/api/v1/channels/alice/videos").json()["data"]["items"]
    assert videos[0]["uploaderName"] == "Alice Cooks"

    content = client.get("/api/v1/channels/me/content", headers=alice).json()["data"]
    assert content["total"] == 2

    status = client.get("/api/v1/channels/me/monetization", headers=alice).json()["data"]
    assert status["subscribersRequired"] == 1000
    assert status["watchHoursRequired"] == 4000
    assert status["eligible"] is False

    assert client.get("/api/v1/channels/ghost").status_code == 404


def test_comments_and_live_feed(client: TestClient, auth_headers) -> None:
    alice = auth_headers(client, "alice", "Alice")
    video_id = _create_video(client, alice)
    url = f"/api/v1/videos/{video_id}/comments"

    posted = client.post(url, json={"text": " nice! "}, headers=alice).json()["data"]
    assert posted["text"] == "nice!"
    assert posted["authorName"] == "Alice"

    blank = client.post(url, json={"text": "   "}, headers=alice)
    assert blank.status_code == 400
    assert blank.json()["code"] == 40005

    listing = client.get(url).json()["data"]
    assert [item["text"] for item in listing["items"]] == ["nice!"]
    assert client.get(f"/api/v1/videos/{video_id}").json()["data"]["comments"] == 1

    with client.websocket_connect(f"/api/v1/ws/videos/{video_id}/comments") as websocket:
        snapshot = websocket.receive_json()

    assert snapshot["type"] == "comments"
    assert snapshot["total"] == 1
    assert snapshot["items"][0]["text"] == "nice!"
    assert snapshot["items"][0]["authorName"] == "Alice"


def test_comment_feed_for_missing_video(client: TestClient) -> None:
    with client.websocket_connect("/api/v1/ws/videos/missing/comments") as websocket:
        message = websocket.receive_json()

    assert message["code"] == 40401


def test_publish_multipart(client: TestClient, auth_headers, settings, fake_storage) -> None:
    alice = auth_headers(client, "alice", "Alice")

    response = client.post(
        "/api/v1/videos/publish",
        data={"title": "Holiday", "duration": "0:30", "visibility": "unlisted"},
        files={"video": ("holiday.mp4", b"\x00" * 2048, "video/mp4")},
        headers=alice,
    )

    assert response.status_code == 200, response.text
    video = response.json()["data"]
    assert video["thumbnailUrl"] == settings.THUMBNAIL_PLACEHOLDER_URL
    assert video["visibility"] == "unlisted"
    assert video["videoUrl"].startswith("https://storage.test/videos/videos/alice/")
    assert len(fake_storage.objects) == 1

    rejected = client.post(
        "/api/v1/videos/publish",
        data={"title": "Virus"},
        files={"video": ("setup.exe", b"MZ", "application/octet-stream")},
        headers=alice,
    )
    assert rejected.status_code == 400
    assert rejected.json()["code"] == 40003


def test_upload_presign_and_asset(client: TestClient, auth_headers, fake_storage) -> None:
    alice = auth_headers(client, "alice")

    presigned = client.post(
        "/api/v1/upload/presign",
        json={"filename": "banner.png", "sizeBytes": 1000, "kind": "image"},
        headers=alice,
    ).json()["data"]
    assert presigned["fileKey"].startswith("images/alice/")
    assert presigned["uploadUrl"].startswith("https://storage.test/upload/")

    asset = client.post(
        "/api/v1/upload/asset",
        data={"kind": "image"},
        files={"file": ("avatar.jpg", b"\xff\xd8" * 64, "image/jpeg")},
        headers=alice,
    ).json()["data"]
    assert asset["sizeBytes"] == 128
    assert asset["fileKey"] in fake_storage.objects


def test_private_video_side_routes_hide_it_from_others(client: TestClient, auth_headers) -> None:
    alice = auth_headers(client, "alice", "Alice")
    bob = auth_headers(client, "bob")
    video_id = _create_video(client, alice, title="Secret draft", visibility="private")
    calls = [
        ("post", f"/api/v1/me/history/{video_id}", {}),
        ("post", f"/api/v1/me/watch-later/{video_id}", {}),
        ("post", f"/api/v1/me/liked/{video_id}", {}),
        ("get", f"/api/v1/videos/{video_id}/comments", {}),
        ("post", f"/api/v1/videos/{video_id}/comments", {"json": {"text": "hi"}}),
        ("get", f"/api/v1/videos/{video_id}/vote", {}),
        ("put", f"/api/v1/videos/{video_id}/vote", {"json": {"vote": "liked"}}),
        ("post", f"/api/v1/videos/{video_id}/views", {}),
        ("patch", f"/api/v1/videos/{video_id}", {"json": {"title": "Mine"}}),
        ("delete", f"/api/v1/videos/{video_id}", {}),
    ]

    for method, url, kwargs in calls:
        response = client.request(method, url, headers=bob, **kwargs)
        assert response.status_code == 404, (method, url)
        assert response.json()["code"] == 40401
        assert "Secret draft" not in response.text

    anonymous = client.get(f"/api/v1/videos/{video_id}/comments")
    assert anonymous.status_code == 404
    assert client.post(f"/api/v1/videos/{video_id}/views").status_code == 404

    with client.websocket_connect(
        f"/api/v1/ws/videos/{video_id}/comments", headers=bob
    ) as websocket:
        assert websocket.receive_json()["code"] == 40401

    video = client.get(f"/api/v1/videos/{video_id}", headers=alice).json()["data"]
    assert (video["views"], video["likes"], video["comments"]) == (0, 0, 0)
    assert client.get("/api/v1/me/history", headers=bob).json()["data"]["total"] == 0


def test_private_video_side_routes_work_for_owner(client: TestClient, auth_headers) -> None:
    alice = auth_headers(client, "alice", "Alice")
    video_id = _create_video(client, alice, visibility="private")

    recorded = client.post(f"/api/v1/me/history/{video_id}", headers=alice)
    assert recorded.status_code == 200
    posted = client.post(
        f"/api/v1/videos/{video_id}/comments", json={"text": "note to self"}, headers=alice
    )
    assert posted.status_code == 200
    viewed = client.post(f"/api/v1/videos/{video_id}/views", headers=alice).json()["data"]
    assert viewed["counted"] is True

    with client.websocket_connect(
        f"/api/v1/ws/videos/{video_id}/comments", headers=alice
    ) as websocket:
        snapshot = websocket.receive_json()
    assert [item["text"] for item in snapshot["items"]] == ["note to self"]


def test_comment_feed_rejects_bad_token(client: TestClient, auth_headers) -> None:
    video_id = _create_video(client, auth_headers(client, "alice"))

    with client.websocket_connect(
        f"/api/v1/ws/videos/{video_id}/comments", headers={"Authorization": "Bearer nope"}
    ) as websocket:
        assert websocket.receive_json()["code"] == 40102
