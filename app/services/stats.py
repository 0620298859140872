import math
from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.observability import PAGE_VIEWS
from app.core.time import today_utc
from app.models.entities import Comment, PageView, Post, PostGenre, PostStatus, User

HOME_PAGE = "home"


def _todays_row(db: Session, page: str) -> PageView | None:
    return db.query(PageView).filter(PageView.page == page, PageView.view_date == today_utc()).one_or_none()


def record_page_view(db: Session, page: str) -> int:
    row = _todays_row(db, page)
    if row is None:
        row = PageView(page=page, view_date=today_utc(), views=1)
        db.add(row)
        try:
            db.flush()
        except IntegrityError:
            # A concurrent request created today's row first.
            db.rollback()
            row = _todays_row(db, page)
            row.views = PageView.views + 1
            db.flush()
    else:
        row.views = PageView.views + 1
        db.flush()
    db.refresh(row)
    PAGE_VIEWS.labels(page).inc()
    return row.views


def _active_readers(db: Session) -> int:
    settings = get_settings()
    today = today_utc()
    rows = (
        db.query(PageView.view_date, PageView.views)
        .filter(
            PageView.page == HOME_PAGE,
            PageView.view_date >= today - timedelta(days=settings.home_stats_fallback_days),
        )
        .all()
    )
    for view_date, views in rows:
        if view_date == today and views:
            return views
    if not rows:
        return 0
    return math.floor(sum(views for _, views in rows) / len(rows) + 0.5)


def _genre_counts(db: Session, published_only: bool) -> dict[str, int]:
    query = db.query(PostGenre.name, func.count(PostGenre.id)).join(Post, Post.id == PostGenre.post_id)
    if published_only:
        query = query.filter(Post.status == PostStatus.published)
    return {name: count for name, count in query.group_by(PostGenre.name).all()}


def home_stats(db: Session) -> dict:
    settings = get_settings()
    total, average = (
        db.query(func.count(Post.id), func.avg(Post.rating))
        .filter(Post.status == PostStatus.published)
        .one()
    )
    genres = _genre_counts(db, published_only=True)
    top = sorted(genres.items(), key=lambda item: (-item[1], item[0]))[: settings.top_genres_limit]
    return {
        "total_reviews": total,
        "active_readers": _active_readers(db),
        "average_rating": f"{average:.1f}" if average is not None else None,
        "total_genres": len(genres),
        "top_genres": [{"name": name, "count": count} for name, count in top],
    }


def admin_stats(db: Session) -> dict:
    total_posts, total_likes, average = db.query(
        func.count(Post.id), func.coalesce(func.sum(Post.likes_count), 0), func.avg(Post.rating)
    ).one()
    by_status = {status.value: 0 for status in PostStatus}
    for status, count in db.query(Post.status, func.count(Post.id)).group_by(Post.status).all():
        by_status[status.value] = count

    return {
        "total_posts": total_posts,
        "total_users": db.query(func.count(User.id)).scalar(),
        "total_comments": db.query(func.count(Comment.id)).scalar(),
        "total_likes": int(total_likes),
        "average_rating": f"{average:.2f}" if average is not None else "0",
        "genre_counts": _genre_counts(db, published_only=False),
        "posts_by_status": by_status,
    }
