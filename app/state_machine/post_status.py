import logging

from app.core.errors import Forbidden, InvalidRequest
from app.models.entities import PostStatus, Role

logger = logging.getLogger(__name__)


_ALLOWED = {
    PostStatus.draft: {PostStatus.draft, PostStatus.review, PostStatus.published},
    PostStatus.review: {PostStatus.draft, PostStatus.review, PostStatus.published},
    PostStatus.published: {PostStatus.published, PostStatus.draft},
}


def _coerce_role(actor_role: Role | str | None) -> Role:
    if actor_role is None or actor_role == "":
        raise Forbidden("You must be signed in as staff to manage posts")
    try:
        return Role(actor_role)
    except ValueError:
        raise InvalidRequest(f"Unknown role: {actor_role!r}") from None


def _coerce_status(requested_status: PostStatus | str) -> PostStatus:
    try:
        return PostStatus(requested_status)
    except ValueError:
        raise InvalidRequest(f"Unknown post status: {requested_status!r}") from None


def resolve_status(
    actor_role: Role | str | None,
    requested_status: PostStatus | str | None = None,
    *,
    is_new_post: bool = True,
) -> PostStatus:
    """Return the status to persist for a staff request.

    Editors asking for ``published`` are moved to ``review`` instead of being
    rejected. Admin requests are returned unchanged. Readers and anonymous
    callers are rejected with :class:`Forbidden`.
    """
    role = _coerce_role(actor_role)
    if role not in (Role.admin, Role.editor):
        raise Forbidden("Only admins and editors can manage posts")

    if requested_status is None or requested_status == "":
        if not is_new_post:
            raise InvalidRequest("A target status is required")
        return PostStatus.draft
    status = _coerce_status(requested_status)

    if role == Role.editor and status == PostStatus.published:
        return PostStatus.review
    return status


def can_transition(current: PostStatus, target: PostStatus) -> bool:
    return target in _ALLOWED[current]


def enforce_transition(current: PostStatus, target: PostStatus) -> None:
    if not can_transition(current, target):
        raise InvalidRequest(f"Invalid post transition: {current.value} -> {target.value}")


def apply_gate(
    actor_role: Role | str | None,
    current: PostStatus,
    requested_status: PostStatus | str | None,
) -> PostStatus:
    """Gate an existing post's status change and check the transition."""
    target = resolve_status(actor_role, requested_status, is_new_post=False)
    enforce_transition(current, target)
    if target != current:
        logger.info("post status %s -> %s by %s", current.value, target.value, actor_role)
    return target
