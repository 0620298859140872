import logging
import re

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from app.core.errors import Forbidden, InvalidRequest
from app.core.observability import POST_TRANSITIONS
from app.core.time import now_utc
from app.models.entities import Post, PostGenre, PostStatus, Role, User
from app.schemas.common import PostCreate, PostUpdate, SortOrder
from app.services.audit import record_audit
from app.state_machine.post_status import apply_gate, resolve_status

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 297
MIN_SLUG_LENGTH = 3
_NON_NULLABLE_FIELDS = {"title", "book_author", "content", "rating", "tags"}


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def make_excerpt(content: str) -> str:
    if len(content) <= EXCERPT_LENGTH:
        return content
    return content[:EXCERPT_LENGTH].rstrip() + "..."


def _slug_taken(db: Session, slug: str) -> bool:
    return db.query(Post.id).filter(Post.slug == slug).first() is not None


def _unique_slug(db: Session, base: str) -> str:
    candidate = base
    suffix = 2
    while _slug_taken(db, candidate):
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def _set_genres(post: Post, genres: list[str]) -> None:
    # Reuse rows by name so a reorder never re-inserts an existing (post, genre) pair.
    existing = {row.name: row for row in post.genre_rows}
    rows = []
    for position, name in enumerate(genres):
        row = existing.get(name) or PostGenre(name=name)
        row.position = position
        rows.append(row)
    post.genre_rows = rows


def can_view(post: Post, user: User | None) -> bool:
    if post.status == PostStatus.published:
        return True
    if user is None:
        return False
    if user.role == Role.admin:
        return True
    return user.role == Role.editor and post.author_id == user.id


def ensure_can_edit(post: Post, actor: User) -> None:
    if actor.role == Role.admin:
        return
    if actor.role != Role.editor or post.author_id != actor.id:
        raise Forbidden("You can only edit your own posts")
    if post.status == PostStatus.published:
        raise Forbidden("Published posts can only be changed by an admin")


def get_post(db: Session, post_id: int) -> Post:
    post = db.query(Post).filter(Post.id == post_id).one_or_none()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def get_visible_post(db: Session, slug: str, user: User | None) -> Post:
    query = db.query(Post)
    post = query.filter(Post.slug == slug).one_or_none()
    if not post and slug.isdigit():
        post = query.filter(Post.id == int(slug)).one_or_none()
    # Hidden posts look missing to callers who cannot see them.
    if not post or not can_view(post, user):
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def get_published_post(db: Session, post_id: int) -> Post:
    post = db.query(Post).filter(Post.id == post_id, Post.status == PostStatus.published).one_or_none()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def _record_status_change(actor: User, post: Post, source: str) -> None:
    POST_TRANSITIONS.labels(actor.role.value, source, post.status.value).inc()
    if post.status == PostStatus.published and post.published_at is None:
        post.published_at = now_utc()


def create_post(db: Session, actor: User, payload: PostCreate) -> Post:
    status = resolve_status(actor.role, payload.status, is_new_post=True)

    if payload.slug:
        if _slug_taken(db, payload.slug):
            raise HTTPException(status_code=409, detail="Slug already in use")
        slug = payload.slug
    else:
        base = slugify(payload.title)
        if len(base) < MIN_SLUG_LENGTH:
            raise InvalidRequest("Generated slug is too short")
        slug = _unique_slug(db, base)

    post = Post(
        slug=slug,
        title=payload.title,
        book_author=payload.book_author,
        content=payload.content,
        excerpt=make_excerpt(payload.content),
        rating=payload.rating,
        cover_image=str(payload.cover_image) if payload.cover_image else None,
        publication_year=payload.publication_year,
        tags_json=list(payload.tags),
        status=status,
        author_id=actor.id,
        author_role=actor.role,
    )
    _set_genres(post, payload.genres)
    _record_status_change(actor, post, "new")
    db.add(post)
    db.flush()

    if payload.status is not None and status != payload.status:
        logger.info("post %s requested %s, stored as %s", post.id, payload.status.value, status.value)
    record_audit(db, actor, "create", "post", post.id, {"slug": slug, "status": status.value})
    return post


def change_status(db: Session, actor: User, post: Post, requested: PostStatus | str | None) -> Post:
    ensure_can_edit(post, actor)
    source = post.status
    target = apply_gate(actor.role, source, requested)
    if target == source:
        return post

    post.status = target
    if target != PostStatus.published:
        post.published_at = None
    _record_status_change(actor, post, source.value)
    record_audit(
        db,
        actor,
        "transition",
        "post",
        post.id,
        {"from": source.value, "to": target.value, "requested": str(getattr(requested, "value", requested))},
    )
    return post


def update_post(db: Session, actor: User, post: Post, payload: PostUpdate) -> Post:
    ensure_can_edit(post, actor)
    changes = payload.model_dump(exclude_unset=True, mode="json")
    requested_status = changes.pop("status", None)
    if "status" in payload.model_fields_set and requested_status is None:
        raise InvalidRequest("A target status is required")
    genres = changes.pop("genres", None)

    for key, value in changes.items():
        if value is None and key in _NON_NULLABLE_FIELDS:
            continue
        if key == "tags":
            post.tags_json = list(value)
        else:
            setattr(post, key, value)
    if "content" in changes and changes["content"] is not None:
        post.excerpt = make_excerpt(changes["content"])
    if genres is not None:
        _set_genres(post, genres)

    record_audit(db, actor, "update", "post", post.id, {**changes, **({"genres": genres} if genres else {})})
    # A status field is gated like every other status change.
    if requested_status is not None:
        change_status(db, actor, post, requested_status)
    return post


def delete_post(db: Session, actor: User, post: Post) -> None:
    if actor.role != Role.admin:
        if post.author_id != actor.id or post.status != PostStatus.draft:
            raise Forbidden("Editors can only delete their own drafts")
    record_audit(db, actor, "delete", "post", post.id, {"slug": post.slug, "status": post.status.value})
    db.delete(post)


def _apply_sort(query: Query, sort: SortOrder) -> Query:
    if sort == "popular":
        return query.order_by(Post.likes_count.desc(), Post.created_at.desc())
    if sort == "rating":
        return query.order_by(Post.rating.desc(), Post.created_at.desc())
    return query.order_by(Post.created_at.desc(), Post.id.desc())


def list_published(
    db: Session,
    *,
    genre: str | None = None,
    author_id: int | None = None,
    q: str | None = None,
    sort: SortOrder = "latest",
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[Post], int]:
    query = db.query(Post).filter(Post.status == PostStatus.published)
    if genre:
        query = query.filter(Post.genre_rows.any(func.lower(PostGenre.name) == genre.strip().lower()))
    if author_id is not None:
        query = query.filter(Post.author_id == author_id)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(Post.title.ilike(pattern), Post.book_author.ilike(pattern)))

    total = query.count()
    items = _apply_sort(query, sort).offset(offset).limit(limit).all()
    return items, total


def list_staff_posts(
    db: Session, actor: User, *, status: PostStatus | None = None, limit: int = 50, offset: int = 0
) -> tuple[list[Post], int, dict[str, int]]:
    query = db.query(Post)
    if actor.role != Role.admin:
        query = query.filter(Post.author_id == actor.id)

    counts = {item.value: 0 for item in PostStatus}
    for value, count in query.with_entities(Post.status, func.count(Post.id)).group_by(Post.status).all():
        counts[value.value] = count

    if status:
        query = query.filter(Post.status == status)
    total = query.count()
    items = query.order_by(Post.updated_at.desc(), Post.id.desc()).offset(offset).limit(limit).all()
    return items, total, counts
