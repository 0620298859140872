from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import create_access_token, get_current_user, require_admin
from app.core.responses import success_response
from app.db.session import get_db
from app.models.entities import User
from app.schemas import SignupRequest, TokenOut, TokenRequest, UserAdminPatch, UserOut
from app.services import users as user_service

router = APIRouter(prefix="/v1", tags=["accounts"])


def _user_out(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


@router.post("/auth/signup", status_code=201)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    # Every self-service account is a reader; staff roles are granted by an admin.
    user = user_service.register_user(db, payload)
    db.commit()
    return success_response(_user_out(user))


@router.post("/auth/token")
def issue_token(payload: TokenRequest, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, payload.email, payload.password)
    return success_response(TokenOut(access_token=create_access_token(user)).model_dump())


@router.get("/auth/me")
def me(user: User = Depends(get_current_user)):
    return success_response(_user_out(user))


@router.get("/admin/users")
def list_users(db: Session = Depends(get_db), actor: User = Depends(require_admin)):
    return success_response([_user_out(user) for user in user_service.list_users(db)])


@router.patch("/admin/users/{user_id}")
def update_user(
    user_id: int,
    payload: UserAdminPatch,
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
):
    user = user_service.update_user(db, actor, user_id, payload)
    db.commit()
    return success_response(_user_out(user))
