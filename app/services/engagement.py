from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Forbidden
from app.models.entities import Comment, Favorite, Post, PostStatus, Rating, Role, User


def list_comments(db: Session, post: Post) -> list[Comment]:
    return (
        db.query(Comment)
        .filter(Comment.post_id == post.id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )


def add_comment(db: Session, user: User, post: Post, content: str) -> Comment:
    comment = Comment(post_id=post.id, user_id=user.id, user_name=user.name or "Anonymous", content=content)
    db.add(comment)
    post.comments_count = (post.comments_count or 0) + 1
    db.flush()
    return comment


def delete_comment(db: Session, user: User, comment_id: int) -> Comment:
    comment = db.query(Comment).filter(Comment.id == comment_id).one_or_none()
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    if comment.user_id != user.id and user.role != Role.admin:
        raise Forbidden("You can only delete your own comments")

    post = db.query(Post).filter(Post.id == comment.post_id).one()
    post.comments_count = max(0, (post.comments_count or 0) - 1)
    db.delete(comment)
    return comment


def add_favorite(db: Session, user: User, post: Post) -> Favorite:
    existing = (
        db.query(Favorite).filter(Favorite.post_id == post.id, Favorite.user_id == user.id).one_or_none()
    )
    if existing:
        raise HTTPException(status_code=409, detail="Already favorited")

    favorite = Favorite(post_id=post.id, user_id=user.id)
    db.add(favorite)
    try:
        db.flush()
    except IntegrityError:
        # A concurrent request inserted the same pair first.
        db.rollback()
        raise HTTPException(status_code=409, detail="Already favorited") from None
    post.likes_count = (post.likes_count or 0) + 1
    return favorite


def remove_favorite(db: Session, user: User, post: Post) -> None:
    favorite = (
        db.query(Favorite).filter(Favorite.post_id == post.id, Favorite.user_id == user.id).one_or_none()
    )
    if not favorite:
        raise HTTPException(status_code=404, detail="Favorite not found")
    db.delete(favorite)
    post.likes_count = max(0, (post.likes_count or 0) - 1)


def list_favorite_posts(db: Session, user: User) -> list[Post]:
    return (
        db.query(Post)
        .join(Favorite, Favorite.post_id == Post.id)
        .filter(Favorite.user_id == user.id, Post.status == PostStatus.published)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        .all()
    )


def rate_post(db: Session, user: User, post: Post, value: int) -> Rating:
    rating = db.query(Rating).filter(Rating.post_id == post.id, Rating.user_id == user.id).one_or_none()
    if rating:
        rating.rating = value
    else:
        rating = Rating(post_id=post.id, user_id=user.id, rating=value)
        db.add(rating)
    db.flush()
    return rating
