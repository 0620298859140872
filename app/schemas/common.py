from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl, field_validator

from app.models.entities import PostStatus, Role

MIN_CONTENT_LENGTH = 50
MAX_GENRES = 5
MAX_COMMENT_LENGTH = 1000
MAX_PASSWORD_BYTES = 72


def _check_password_bytes(value: str) -> str:
    # bcrypt hashes at most 72 bytes of input.
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


class SignupRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=8, max_length=72)
    name: str | None = Field(default=None, max_length=255)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password_bytes(value)


class TokenRequest(BaseModel):
    email: str
    password: str = Field(max_length=72)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password_bytes(value)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    role: Role
    active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserAdminPatch(BaseModel):
    role: Role | None = None
    active: bool | None = None


def _clean_genres(value: list[str]) -> list[str]:
    cleaned: list[str] = []
    for item in value:
        name = item.strip()
        if not name:
            raise ValueError("Genre names must be non-empty")
        if name not in cleaned:
            cleaned.append(name)
    if not 1 <= len(cleaned) <= MAX_GENRES:
        raise ValueError(f"Genre must have between 1 and {MAX_GENRES} items")
    return cleaned


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    book_author: str = Field(min_length=2, max_length=255)
    content: str = Field(min_length=MIN_CONTENT_LENGTH)
    rating: float = Field(ge=1, le=5)
    genres: list[str] = Field(default_factory=lambda: ["General"])
    tags: list[str] = Field(default_factory=list)
    cover_image: HttpUrl | None = None
    publication_year: int | None = Field(default=None, ge=0, le=9999)
    slug: str | None = Field(default=None, min_length=3, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    status: PostStatus | None = None

    @field_validator("genres")
    @classmethod
    def validate_genres(cls, value: list[str]) -> list[str]:
        return _clean_genres(value)


class PostUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    book_author: str | None = Field(default=None, min_length=2, max_length=255)
    content: str | None = Field(default=None, min_length=MIN_CONTENT_LENGTH)
    rating: float | None = Field(default=None, ge=1, le=5)
    genres: list[str] | None = None
    tags: list[str] | None = None
    cover_image: HttpUrl | None = None
    publication_year: int | None = Field(default=None, ge=0, le=9999)
    status: PostStatus | None = None

    @field_validator("genres")
    @classmethod
    def validate_genres(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return _clean_genres(value)


class PostTransition(BaseModel):
    status: PostStatus


class PostOut(BaseModel):
    id: int
    slug: str
    title: str
    book_author: str
    content: str
    excerpt: str
    rating: float
    genres: list[str]
    tags: list[str]
    cover_image: str | None = None
    publication_year: int | None = None
    status: PostStatus
    author_id: int
    author_role: Role
    likes_count: int
    comments_count: int
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None

    model_config = {"from_attributes": True}


class PostCardOut(BaseModel):
    id: int
    slug: str
    title: str
    book_author: str
    excerpt: str
    rating: float
    genres: list[str]
    cover_image: str | None = None
    likes_count: int
    comments_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed or len(trimmed) > MAX_COMMENT_LENGTH:
            raise ValueError(f"Comment must be between 1 and {MAX_COMMENT_LENGTH} characters")
        return trimmed


class CommentOut(BaseModel):
    id: int
    post_id: int
    user_id: int
    user_name: str
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class FavoriteOut(BaseModel):
    id: int
    post_id: int
    user_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class RatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)


class RatingOut(BaseModel):
    id: int
    post_id: int
    user_id: int
    rating: int

    model_config = {"from_attributes": True}


class GalleryItemCreate(BaseModel):
    image_url: HttpUrl
    title: str = Field(default="", max_length=255)
    description: str = ""
    book_title: str = Field(default="", max_length=500)


class GalleryItemOut(BaseModel):
    id: int
    image_url: str
    title: str
    description: str
    book_title: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PageViewRequest(BaseModel):
    page: str = Field(default="home", min_length=1, max_length=100, pattern=r"^[a-z0-9_\-/]+$")


class GenreCount(BaseModel):
    name: str
    count: int


class HomeStatsOut(BaseModel):
    total_reviews: int
    active_readers: int
    average_rating: str | None
    total_genres: int
    top_genres: list[GenreCount]


class AdminStatsOut(BaseModel):
    total_posts: int
    total_users: int
    total_comments: int
    total_likes: int
    average_rating: str
    genre_counts: dict[str, int]
    posts_by_status: dict[str, int]


SortOrder = Literal["latest", "popular", "rating"]
