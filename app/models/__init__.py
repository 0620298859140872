from app.models.entities import (  # noqa: F401
    AuditLog,
    Comment,
    Favorite,
    GalleryItem,
    IdempotencyKey,
    PageView,
    Post,
    PostGenre,
    PostStatus,
    Rating,
    Role,
    User,
)
