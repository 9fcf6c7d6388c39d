"""
Identity resolution and authorization checks.

A request carries an opaque credential (``token`` header, or a standard
``Authorization: Bearer`` header). ``resolve_identity`` turns it into a user
row or fails with ``UnauthorizedError``; routes consume it through the
``get_current_user`` and ``require_admin`` dependencies.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, Header
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from forum.config import JWT_ALGORITHM, SECRET_KEY, TOKEN_EXPIRE_DAYS
from forum.db import get_db
from forum.errors import UnauthorizedError
from forum.models import Role, User

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(days=TOKEN_EXPIRE_DAYS))
    return jwt.encode({"sub": str(user_id), "exp": expire}, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id carried by ``token``."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedError("Token has expired.")
    except JWTError:
        raise UnauthorizedError("Token is invalid.")

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise UnauthorizedError("Token is invalid.")


def has_role(user: User, role: Role) -> bool:
    return Role(user.role) == role


def ensure_role(user: User, role: Role) -> None:
    if not has_role(user, role):
        raise UnauthorizedError("You do not have permission to access this resource.")


def ensure_owner_or_admin(user: User, owner_id: int) -> None:
    if user.id != owner_id and not has_role(user, Role.admin):
        raise UnauthorizedError("Only the author or an administrator may change this content.")


def resolve_identity(db: Session, credential: Optional[str]) -> User:
    if not credential:
        raise UnauthorizedError("This endpoint requires authentication.")

    user = db.get(User, decode_access_token(credential))
    if user is None:
        raise UnauthorizedError("User does not exist.")
    if has_role(user, Role.banned):
        logger.info("Rejected request from banned user %s", user.id)
        raise UnauthorizedError("This account has been banned.")
    return user


def _credential(token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if token:
        return token
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def get_current_user(
    db: Session = Depends(get_db),
    token: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> User:
    return resolve_identity(db, _credential(token, authorization))


def require_admin(user: User = Depends(get_current_user)) -> User:
    ensure_role(user, Role.admin)
    return user
