from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.responses import success_response
from app.db.session import get_db
from app.models.entities import User
from app.schemas import CommentCreate, CommentOut, FavoriteOut, PostCardOut, RatingOut, RatingRequest
from app.services import engagement
from app.services.posts import get_published_post

router = APIRouter(prefix="/v1", tags=["engagement"])


@router.get("/posts/{post_id}/comments")
def list_comments(post_id: int, db: Session = Depends(get_db)):
    post = get_published_post(db, post_id)
    comments = engagement.list_comments(db, post)
    return success_response([CommentOut.model_validate(item).model_dump(mode="json") for item in comments])


@router.post("/posts/{post_id}/comments")
def create_comment(
    post_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    post = get_published_post(db, post_id)
    comment = engagement.add_comment(db, user, post, payload.content)
    db.commit()
    return success_response(CommentOut.model_validate(comment).model_dump(mode="json"))


@router.delete("/comments/{comment_id}")
def delete_comment(comment_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    engagement.delete_comment(db, user, comment_id)
    db.commit()
    return success_response({"id": comment_id, "deleted": True})


@router.post("/posts/{post_id}/favorite")
def add_favorite(post_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    post = get_published_post(db, post_id)
    favorite = engagement.add_favorite(db, user, post)
    db.commit()
    return success_response(
        FavoriteOut.model_validate(favorite).model_dump(mode="json"),
        meta={"likes_count": post.likes_count},
    )


@router.delete("/posts/{post_id}/favorite")
def remove_favorite(post_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    post = get_published_post(db, post_id)
    engagement.remove_favorite(db, user, post)
    db.commit()
    return success_response({"post_id": post_id, "deleted": True}, meta={"likes_count": post.likes_count})


@router.get("/me/favorites")
def my_favorites(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    posts = engagement.list_favorite_posts(db, user)
    return success_response([PostCardOut.model_validate(post).model_dump(mode="json") for post in posts])


@router.post("/posts/{post_id}/rating")
def rate_post(
    post_id: int,
    payload: RatingRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    post = get_published_post(db, post_id)
    rating = engagement.rate_post(db, user, post, payload.rating)
    db.commit()
    return success_response(RatingOut.model_validate(rating).model_dump(mode="json"))
