from uuid import uuid4


def _create(client, headers, payload):
    return client.post("/v1/posts", json=payload, headers={**headers, "Idempotency-Key": str(uuid4())})


def test_editor_new_post_without_status_is_draft(client, make_user, post_payload):
    _, editor = make_user("editor")
    resp = _create(client, editor, post_payload())
    assert resp.status_code == 200
    body = resp.json()["data"]
    assert body["status"] == "draft"
    assert body["author_role"] == "editor"
    assert body["genres"] == ["Fantasy", "Romance"]


def test_editor_publish_request_is_downgraded_to_review(client, make_user, post_payload):
    _, editor = make_user("editor")
    resp = _create(client, editor, post_payload(status="published"))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "review"
    assert resp.json()["data"]["published_at"] is None


def test_admin_can_publish_directly(client, make_user, post_payload):
    _, admin = make_user("admin")
    resp = _create(client, admin, post_payload(status="published"))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "published"
    assert resp.json()["data"]["published_at"] is not None


def test_reader_cannot_create_posts(client, make_user, post_payload):
    _, reader = make_user("reader")
    resp = _create(client, reader, post_payload())
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "FORBIDDEN"


def test_anonymous_cannot_create_posts(client, post_payload):
    resp = client.post("/v1/posts", json=post_payload(), headers={"Idempotency-Key": "anon"})
    assert resp.status_code == 401


def test_create_requires_idempotency_key(client, make_user, post_payload):
    _, editor = make_user("editor")
    resp = client.post("/v1/posts", json=post_payload(), headers=editor)
    assert resp.status_code == 422


def test_create_replay_returns_same_post(client, make_user, post_payload):
    _, editor = make_user("editor")
    payload = post_payload()
    headers = {**editor, "Idempotency-Key": "post-replay-1"}
    first = client.post("/v1/posts", json=payload, headers=headers)
    second = client.post("/v1/posts", json=payload, headers=headers)
    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["data"]["id"] == second.json()["data"]["id"]

    conflict = client.post("/v1/posts", json=post_payload(), headers=headers)
    assert conflict.status_code == 409


def test_duplicate_titles_get_distinct_slugs(client, make_user, post_payload):
    _, admin = make_user("admin")
    payload = post_payload(title=f"Dune {uuid4().hex[:6]}")
    first = _create(client, admin, payload).json()["data"]
    second = _create(client, admin, payload).json()["data"]
    assert second["slug"] == f"{first['slug']}-2"


def test_short_generated_slug_is_rejected(client, make_user, post_payload):
    _, admin = make_user("admin")
    resp = _create(client, admin, post_payload(title="!!"))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_REQUEST"


def test_invalid_payload_uses_validation_envelope(client, make_user, post_payload):
    _, admin = make_user("admin")
    resp = _create(client, admin, post_payload(rating=9))
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_editor_submit_then_admin_approve_then_unpublish(client, make_user, post_payload):
    _, editor = make_user("editor")
    _, admin = make_user("admin")
    post = _create(client, editor, post_payload()).json()["data"]

    submitted = client.post(f"/v1/posts/{post['id']}/publish", headers=editor)
    assert submitted.status_code == 200
    assert submitted.json()["data"]["status"] == "review"

    approved = client.post(f"/v1/posts/{post['id']}/publish", headers=admin)
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "published"

    unpublished = client.post(f"/v1/posts/{post['id']}/unpublish", headers=admin)
    assert unpublished.status_code == 200
    assert unpublished.json()["data"]["status"] == "draft"
    assert unpublished.json()["data"]["published_at"] is None


def test_editor_cannot_publish_through_patch(client, make_user, post_payload):
    _, editor = make_user("editor")
    post = _create(client, editor, post_payload()).json()["data"]

    resp = client.patch(f"/v1/posts/{post['id']}", json={"status": "published"}, headers=editor)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "review"


def test_patch_with_null_status_is_rejected(client, make_user, post_payload):
    _, editor = make_user("editor")
    post = _create(client, editor, post_payload()).json()["data"]

    resp = client.patch(f"/v1/posts/{post['id']}", json={"title": "Renamed", "status": None}, headers=editor)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_REQUEST"
    assert client.get(f"/v1/posts/{post['slug']}", headers=editor).json()["data"]["title"] == post["title"]


def test_editor_cannot_publish_through_transition(client, make_user, post_payload):
    _, editor = make_user("editor")
    post = _create(client, editor, post_payload()).json()["data"]

    resp = client.post(f"/v1/posts/{post['id']}/transition", json={"status": "published"}, headers=editor)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "review"


def test_editor_cannot_touch_published_post(client, make_user, post_payload):
    editor_id, editor = make_user("editor")
    _, admin = make_user("admin")
    post = _create(client, editor, post_payload()).json()["data"]
    client.post(f"/v1/posts/{post['id']}/publish", headers=admin)

    edit = client.patch(f"/v1/posts/{post['id']}", json={"title": "Changed"}, headers=editor)
    assert edit.status_code == 403
    unpublish = client.post(f"/v1/posts/{post['id']}/unpublish", headers=editor)
    assert unpublish.status_code == 403


def test_editor_cannot_edit_someone_elses_post(client, make_user, post_payload):
    _, author = make_user("editor")
    _, other = make_user("editor")
    post = _create(client, author, post_payload()).json()["data"]
    resp = client.patch(f"/v1/posts/{post['id']}", json={"title": "Hijacked"}, headers=other)
    assert resp.status_code == 403


def test_published_to_review_is_rejected(client, make_user, post_payload):
    _, admin = make_user("admin")
    post = _create(client, admin, post_payload(status="published")).json()["data"]
    resp = client.post(f"/v1/posts/{post['id']}/transition", json={"status": "review"}, headers=admin)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_REQUEST"

    still = client.get(f"/v1/posts/{post['slug']}")
    assert still.json()["data"]["status"] == "published"


def test_patch_updates_content_and_genres(client, make_user, post_payload):
    _, editor = make_user("editor")
    post = _create(client, editor, post_payload()).json()["data"]
    new_content = "Rereading this one, the structure holds up and the ending still lands. " * 6
    resp = client.patch(
        f"/v1/posts/{post['id']}",
        json={"content": new_content, "genres": ["Romance", "Classics"], "rating": 3},
        headers=editor,
    )
    assert resp.status_code == 200
    body = resp.json()["data"]
    assert body["genres"] == ["Romance", "Classics"]
    assert body["rating"] == 3
    assert body["excerpt"].endswith("...")
    assert body["status"] == "draft"


def test_unpublished_posts_hidden_from_public(client, make_user, post_payload):
    _, editor = make_user("editor")
    _, other_editor = make_user("editor")
    _, admin = make_user("admin")
    post = _create(client, editor, post_payload()).json()["data"]

    assert client.get(f"/v1/posts/{post['slug']}").status_code == 404
    assert client.get(f"/v1/posts/{post['slug']}", headers=other_editor).status_code == 404
    assert client.get(f"/v1/posts/{post['slug']}", headers=editor).status_code == 200
    assert client.get(f"/v1/posts/{post['slug']}", headers=admin).status_code == 200


def test_public_listing_filters_and_sorts(client, make_user, post_payload):
    _, admin = make_user("admin")
    genre = f"Genre{uuid4().hex[:8]}"
    low = _create(client, admin, post_payload(status="published", genres=[genre], rating=2)).json()["data"]
    high = _create(client, admin, post_payload(status="published", genres=[genre], rating=5)).json()["data"]
    _create(client, admin, post_payload(status="draft", genres=[genre]))

    resp = client.get(f"/v1/posts?genre={genre.lower()}&sort=rating")
    assert resp.status_code == 200
    ids = [item["id"] for item in resp.json()["data"]]
    assert ids == [high["id"], low["id"]]
    assert resp.json()["meta"]["total"] == 2


def test_public_search_matches_book_author(client, make_user, post_payload):
    _, admin = make_user("admin")
    author = f"Ursula {uuid4().hex[:8]}"
    post = _create(client, admin, post_payload(status="published", book_author=author)).json()["data"]
    resp = client.get("/v1/posts", params={"q": author.upper()})
    assert [item["id"] for item in resp.json()["data"]] == [post["id"]]


def test_editor_listing_is_scoped_to_author(client, make_user, post_payload):
    _, editor = make_user("editor")
    _, other = make_user("editor")
    mine = _create(client, editor, post_payload()).json()["data"]
    _create(client, other, post_payload())

    resp = client.get("/v1/editor/posts", headers=editor)
    assert resp.status_code == 200
    assert [item["id"] for item in resp.json()["data"]] == [mine["id"]]
    assert resp.json()["meta"]["status_counts"] == {"draft": 1, "review": 0, "published": 0}


def test_reader_cannot_use_editor_listing(client, make_user):
    _, reader = make_user("reader")
    assert client.get("/v1/editor/posts", headers=reader).status_code == 403


def test_delete_rules(client, make_user, post_payload):
    _, editor = make_user("editor")
    _, admin = make_user("admin")
    draft = _create(client, editor, post_payload()).json()["data"]
    submitted = _create(client, editor, post_payload(status="review")).json()["data"]

    assert client.delete(f"/v1/posts/{submitted['id']}", headers=editor).status_code == 403
    assert client.delete(f"/v1/posts/{draft['id']}", headers=editor).status_code == 200
    assert client.delete(f"/v1/posts/{submitted['id']}", headers=admin).status_code == 200
    assert client.delete(f"/v1/posts/{submitted['id']}", headers=admin).status_code == 404


def test_deactivated_user_token_is_rejected(client, make_user):
    _, inactive = make_user("editor", active=False)
    assert client.get("/v1/editor/posts", headers=inactive).status_code == 401
