import pytest
from pydantic import ValidationError

from app.schemas.common import CommentCreate, PostCreate, PostUpdate, SignupRequest

LONG_TEXT = "An absorbing novel with a slow start and a devastating final act. " * 2


def test_post_create_defaults_genre_and_status():
    post = PostCreate(title="Piranesi", book_author="Susanna Clarke", content=LONG_TEXT, rating=5)
    assert post.genres == ["General"]
    assert post.status is None


def test_post_create_rejects_short_content():
    with pytest.raises(ValidationError):
        PostCreate(title="Piranesi", book_author="Susanna Clarke", content="too short", rating=5)


@pytest.mark.parametrize("rating", [0, 5.5])
def test_post_create_rejects_out_of_range_rating(rating):
    with pytest.raises(ValidationError):
        PostCreate(title="Piranesi", book_author="Susanna Clarke", content=LONG_TEXT, rating=rating)


def test_post_genres_are_trimmed_and_deduplicated():
    post = PostCreate(
        title="Piranesi",
        book_author="Susanna Clarke",
        content=LONG_TEXT,
        rating=4,
        genres=[" Fantasy ", "Fantasy", "Mystery"],
    )
    assert post.genres == ["Fantasy", "Mystery"]


@pytest.mark.parametrize("genres", [[], ["a", "b", "c", "d", "e", "f"], ["  "]])
def test_post_genres_bounds(genres):
    with pytest.raises(ValidationError):
        PostUpdate(genres=genres)


def test_comment_is_trimmed():
    assert CommentCreate(content="  Loved it!  ").content == "Loved it!"


@pytest.mark.parametrize("content", ["   ", "x" * 1001])
def test_comment_length_bounds(content):
    with pytest.raises(ValidationError):
        CommentCreate(content=content)


def test_signup_rejects_bad_email():
    with pytest.raises(ValidationError):
        SignupRequest(email="not-an-email", password="long-enough")


def test_signup_password_limit_counts_utf8_bytes():
    assert SignupRequest(email="a@example.com", password="é" * 36).password == "é" * 36
    with pytest.raises(ValidationError):
        SignupRequest(email="a@example.com", password="é" * 40)
