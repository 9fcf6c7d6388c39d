# forum/routes/auth.py
"""Sign-up and sign-in for members and administrators."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from forum.db import get_db
from forum.responses import success, user_to_dict
from forum.services.accounts import sign_in, sign_up

router = APIRouter(prefix="/auth", tags=["auth"])
admin_router = APIRouter(prefix="/admin/auth", tags=["admin"])


class SignUpRequest(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    nickname: Optional[str] = None
    password: Optional[str] = None
    sex: Optional[int] = Field(None, description="0 male, 1 female, 2 unspecified")
    target_school_id: Optional[int] = None


class SignInRequest(BaseModel):
    login: Optional[str] = Field(None, description="Email or username")
    password: Optional[str] = None


@router.post("/sign_up")
def register(payload: SignUpRequest, db: Session = Depends(get_db)):
    user = sign_up(db, payload.model_dump(exclude_unset=True))
    return success("User registered.", {"user": user_to_dict(user)}, status_code=201)


@router.post("/sign_in")
def login(payload: SignInRequest, db: Session = Depends(get_db)):
    """Returns a token to send back in the ``token`` header."""
    user, token = sign_in(db, payload.login, payload.password)
    return success("Signed in.", {"token": token, "user": user_to_dict(user)})


@admin_router.post("/sign_in")
def admin_login(payload: SignInRequest, db: Session = Depends(get_db)):
    user, token = sign_in(db, payload.login, payload.password, admin=True)
    return success("Signed in to the admin console.", {"token": token, "user": user_to_dict(user)})
