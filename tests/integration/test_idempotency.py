from datetime import timedelta

from app.core.time import now_utc
from app.db.session import get_session_maker
from app.models.entities import IdempotencyKey
from app.services.idempotency import cleanup_expired_keys
from app.utils.hashing import payload_fingerprint


def test_cleanup_removes_only_expired_keys(client):
    db = get_session_maker()()
    try:
        db.add(
            IdempotencyKey(
                key="stale",
                endpoint="/v1/posts#user:0",
                request_hash="0" * 64,
                response_json={},
                created_at=now_utc() - timedelta(days=30),
            )
        )
        db.add(IdempotencyKey(key="fresh", endpoint="/v1/posts#user:0", request_hash="0" * 64, response_json={}))
        db.commit()

        assert cleanup_expired_keys(db) >= 1
        db.commit()
        remaining = {row.key for row in db.query(IdempotencyKey).filter(IdempotencyKey.endpoint == "/v1/posts#user:0")}
        assert remaining == {"fresh"}
    finally:
        db.close()


def test_same_key_from_two_users_creates_two_posts(client, make_user, post_payload):
    _, first_editor = make_user("editor")
    _, second_editor = make_user("editor")
    payload = post_payload()

    first = client.post("/v1/posts", json=payload, headers={**first_editor, "Idempotency-Key": "shared-key"})
    second = client.post("/v1/posts", json=payload, headers={**second_editor, "Idempotency-Key": "shared-key"})
    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["data"]["id"] != second.json()["data"]["id"]


def test_create_without_key_is_rejected(client, make_user, post_payload):
    _, editor = make_user("editor")
    resp = client.post("/v1/posts", json=post_payload(), headers=editor)
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_fingerprint_ignores_key_order():
    assert payload_fingerprint({"a": 1, "b": [1, 2]}) == payload_fingerprint({"b": [1, 2], "a": 1})
    assert payload_fingerprint({"a": 1}) != payload_fingerprint({"a": 2})
