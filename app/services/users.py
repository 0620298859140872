import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.auth import hash_password, verify_password
from app.core.errors import Forbidden
from app.models.entities import Role, User
from app.schemas.common import SignupRequest, UserAdminPatch
from app.services.audit import record_audit

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def register_user(db: Session, payload: SignupRequest, role: Role = Role.reader) -> User:
    email = normalize_email(payload.email)
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(
        email=email,
        name=(payload.name or "").strip() or email.split("@")[0],
        password_hash=hash_password(payload.password),
        role=role,
        active=True,
    )
    db.add(user)
    db.flush()
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == normalize_email(email)).one_or_none()
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.active:
        raise HTTPException(status_code=401, detail="Inactive or missing user")
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def update_user(db: Session, actor: User, user_id: int, payload: UserAdminPatch) -> User:
    user = db.query(User).filter(User.id == user_id).one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    changes = payload.model_dump(exclude_none=True, mode="json")
    if user.id == actor.id and (
        ("role" in changes and payload.role != actor.role) or changes.get("active") is False
    ):
        raise Forbidden("Admins cannot change their own role or deactivate themselves")

    if payload.role is not None:
        user.role = payload.role
    if payload.active is not None:
        user.active = payload.active

    if changes:
        logger.info("user %s updated by %s: %s", user.id, actor.id, changes)
        record_audit(db, actor, "update", "user", user.id, changes)
    return user


def ensure_admin(db: Session, email: str, password: str, name: str | None = None) -> tuple[User, bool]:
    """Create an admin account, or promote an existing one. Returns (user, created)."""
    user = db.query(User).filter(User.email == normalize_email(email)).one_or_none()
    if user:
        user.role = Role.admin
        user.active = True
        record_audit(db, "script", "promote", "user", user.id, {"role": Role.admin.value})
        return user, False

    user = register_user(db, SignupRequest(email=email, password=password, name=name), role=Role.admin)
    record_audit(db, "script", "create", "user", user.id, {"role": Role.admin.value})
    return user, True
