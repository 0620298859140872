from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from app.core.auth import get_optional_user, require_staff
from app.core.responses import page_meta, success_response
from app.db.session import get_db
from app.models.entities import PostStatus, User
from app.schemas import PostCardOut, PostCreate, PostOut, PostTransition, PostUpdate, SortOrder
from app.services import posts as post_service
from app.services.idempotency import resolve_cached_response, store_response

router = APIRouter(prefix="/v1", tags=["posts"])


def _post_out(post) -> dict:
    return PostOut.model_validate(post).model_dump(mode="json")


@router.get("/posts")
def list_posts(
    genre: str | None = Query(default=None, max_length=100),
    author_id: int | None = Query(default=None),
    q: str | None = Query(default=None, max_length=200),
    sort: SortOrder = Query(default="latest"),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    items, total = post_service.list_published(
        db, genre=genre, author_id=author_id, q=q, sort=sort, limit=limit, offset=offset
    )
    return success_response(
        [PostCardOut.model_validate(post).model_dump(mode="json") for post in items],
        meta=page_meta(limit, offset, total, sort=sort),
    )


@router.get("/posts/{slug}")
def get_post(slug: str, db: Session = Depends(get_db), user: User | None = Depends(get_optional_user)):
    return success_response(_post_out(post_service.get_visible_post(db, slug, user)))


@router.get("/editor/posts")
def list_editor_posts(
    status: PostStatus | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: User = Depends(require_staff),
):
    items, total, counts = post_service.list_staff_posts(db, actor, status=status, limit=limit, offset=offset)
    return success_response(
        [_post_out(post) for post in items],
        meta=page_meta(limit, offset, total, status_counts=counts),
    )


@router.post("/posts")
def create_post(
    payload: PostCreate,
    idempotency_key: str = Header(alias="Idempotency-Key"),
    db: Session = Depends(get_db),
    actor: User = Depends(require_staff),
):
    body = payload.model_dump(mode="json")
    cached = resolve_cached_response(db, idempotency_key, "/v1/posts", actor, body)
    if cached:
        return success_response(cached)

    post = post_service.create_post(db, actor, payload)
    response = _post_out(post)
    store_response(db, idempotency_key, "/v1/posts", actor, body, response)
    db.commit()
    return success_response(response)


@router.patch("/posts/{post_id}")
def update_post(
    post_id: int,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_staff),
):
    post = post_service.get_post(db, post_id)
    post_service.update_post(db, actor, post, payload)
    db.commit()
    return success_response(_post_out(post))


def _transition(db: Session, actor: User, post_id: int, requested: PostStatus) -> dict:
    post = post_service.get_post(db, post_id)
    post_service.change_status(db, actor, post, requested)
    db.commit()
    return success_response(_post_out(post))


@router.post("/posts/{post_id}/transition")
def transition_post(
    post_id: int,
    payload: PostTransition,
    db: Session = Depends(get_db),
    actor: User = Depends(require_staff),
):
    return _transition(db, actor, post_id, payload.status)


@router.post("/posts/{post_id}/publish")
def publish_post(post_id: int, db: Session = Depends(get_db), actor: User = Depends(require_staff)):
    # Editors land in review: this is their "submit for review" action.
    return _transition(db, actor, post_id, PostStatus.published)


@router.post("/posts/{post_id}/unpublish")
def unpublish_post(post_id: int, db: Session = Depends(get_db), actor: User = Depends(require_staff)):
    return _transition(db, actor, post_id, PostStatus.draft)


@router.delete("/posts/{post_id}")
def delete_post(post_id: int, db: Session = Depends(get_db), actor: User = Depends(require_staff)):
    post = post_service.get_post(db, post_id)
    post_service.delete_post(db, actor, post)
    db.commit()
    return success_response({"id": post_id, "deleted": True})
