from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realestate.core.auth import get_guard
from realestate.core.db import get_db
from realestate.core.guard import Guard
from realestate.core.response import ok
from realestate.schemas.common import Envelope, UserRef
from realestate.schemas.user import ProfileUpdateIn, PromoteIn, UserListOut, UserOut, UserProfileOut
from realestate.services import users

router = APIRouter(prefix="/api/users", tags=["users"])


def _user_list(rows) -> UserListOut:
    return UserListOut(users=[UserOut.model_validate(u) for u in rows])


@router.get("/pending", response_model=Envelope[UserListOut])
def pending_users(guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    return ok("Pending users retrieved", _user_list(users.list_pending(db, guard)))


@router.get("", response_model=Envelope[UserListOut])
def all_users(guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    return ok("All users retrieved", _user_list(users.list_all(db, guard)))


@router.get("/profile", response_model=Envelope[UserProfileOut])
def get_profile(
    user_id: Optional[int] = Query(None, alias="id", ge=1),
    guard: Guard = Depends(get_guard),
    db: Session = Depends(get_db),
):
    user = users.get_profile(db, guard, user_id)
    return ok("User profile retrieved", UserProfileOut(user=UserOut.model_validate(user)))


@router.put("/profile", response_model=Envelope[UserProfileOut])
def update_profile(payload: ProfileUpdateIn, guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    user = users.update_profile(db, guard, payload)
    return ok("Profile updated successfully", UserProfileOut(user=UserOut.model_validate(user)))


# ---------- moderation ----------

@router.post("/approve", response_model=Envelope)
def approve_user(body: UserRef, guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    users.approve(db, guard, body.user_id)
    return ok("User approved successfully")


@router.post("/reject", response_model=Envelope)
def reject_user(body: UserRef, guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    users.reject(db, guard, body.user_id)
    return ok("User rejected and deleted successfully")


@router.post("/ban", response_model=Envelope)
def ban_user(body: UserRef, guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    users.ban(db, guard, body.user_id)
    return ok("User banned successfully")


@router.post("/unban", response_model=Envelope)
def unban_user(body: UserRef, guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    users.unban(db, guard, body.user_id)
    return ok("User unbanned successfully")


@router.post("/promote", response_model=Envelope)
def promote_user(body: PromoteIn, guard: Guard = Depends(get_guard), db: Session = Depends(get_db)):
    role = users.promote(db, guard, body.user_id, body.role)
    return ok("User role updated successfully", {"userId": body.user_id, "role": role.value})
