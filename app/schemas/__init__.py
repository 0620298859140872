from app.schemas.common import (  # noqa: F401
    AdminStatsOut,
    CommentCreate,
    CommentOut,
    FavoriteOut,
    GalleryItemCreate,
    GalleryItemOut,
    GenreCount,
    HomeStatsOut,
    PageViewRequest,
    PostCardOut,
    PostCreate,
    PostOut,
    PostTransition,
    PostUpdate,
    RatingOut,
    RatingRequest,
    SignupRequest,
    SortOrder,
    TokenOut,
    TokenRequest,
    UserAdminPatch,
    UserOut,
)
