from datetime import datetime, timedelta

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.time import now_utc
from app.models.entities import IdempotencyKey, User
from app.utils.hashing import payload_fingerprint


def _scope(endpoint: str, actor: User) -> str:
    # Keys are per user so two accounts never replay each other's responses.
    return f"{endpoint}#user:{actor.id}"


def resolve_cached_response(
    db: Session, key: str, endpoint: str, actor: User, payload: dict
) -> dict | None:
    """Return the stored response for a replayed create, or None for a new key.

    A key reused by the same user with a different payload is a 409.
    """
    existing = (
        db.query(IdempotencyKey)
        .filter(IdempotencyKey.key == key, IdempotencyKey.endpoint == _scope(endpoint, actor))
        .one_or_none()
    )
    if existing is None:
        return None
    if existing.request_hash != payload_fingerprint(payload):
        raise HTTPException(status_code=409, detail="Idempotency key reused with different payload")
    return existing.response_json


def store_response(
    db: Session, key: str, endpoint: str, actor: User, payload: dict, response_json: dict
) -> None:
    db.add(
        IdempotencyKey(
            key=key,
            endpoint=_scope(endpoint, actor),
            request_hash=payload_fingerprint(payload),
            response_json=response_json,
        )
    )
    try:
        db.flush()
    except IntegrityError:
        # Same key stored by a concurrent request; drop this one's writes.
        db.rollback()
        raise HTTPException(status_code=409, detail="Idempotency key is already in use") from None


def cleanup_expired_keys(db: Session, now: datetime | None = None) -> int:
    cutoff = (now or now_utc()) - timedelta(hours=get_settings().idempotency_ttl_hours)
    return (
        db.query(IdempotencyKey).filter(IdempotencyKey.created_at < cutoff).delete(synchronize_session=False)
    )
