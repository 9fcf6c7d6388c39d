# forum/services/accounts.py
"""Sign-up, sign-in and administrative user management."""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from forum.errors import BadRequestError, NotFoundError, UnauthorizedError, ValidationError
from forum.models import Role, School, Sex, User
from forum.responses import Page, contains_pattern, user_to_dict
from forum.security import create_access_token, has_role, hash_password, verify_password
from forum.services.content import exists
from forum.services.reactions import release_user_reactions

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PROFILE_FIELDS = (
    "email", "username", "password", "nickname", "sex", "photo", "introduce",
    "original_school_id", "target_school_id",
)


def _taken(db: Session, condition, user_id: Optional[int]) -> bool:
    query = db.query(User.id).filter(condition)
    if user_id is not None:
        query = query.filter(User.id != user_id)
    return query.first() is not None


def validate_user_fields(
    db: Session, values: Dict[str, Any], creating: bool, user_id: Optional[int] = None
) -> None:
    errors: List[str] = []

    def required(field: str) -> bool:
        return creating or field in values

    email = values.get("email")
    if required("email"):
        if not email:
            errors.append("Email must not be empty.")
        elif not EMAIL_PATTERN.match(email):
            errors.append("Email format is invalid.")
        elif _taken(db, User.email == email, user_id):
            errors.append("Email is already registered, please sign in.")

    username = values.get("username")
    if required("username"):
        if not username or not 2 <= len(username) <= 45:
            errors.append("Username must be between 2 and 45 characters.")
        elif _taken(db, User.username == username, user_id):
            errors.append("Username already exists.")

    if required("nickname"):
        nickname = values.get("nickname")
        if not nickname or not 2 <= len(nickname) <= 45:
            errors.append("Nickname must be between 2 and 45 characters.")

    if required("password"):
        password = values.get("password")
        if not password or not 6 <= len(password) <= 45:
            errors.append("Password must be between 6 and 45 characters.")

    if required("sex") and values.get("sex") not in {s.value for s in Sex}:
        errors.append("Sex must be 0 (male), 1 (female) or 2 (unspecified).")

    if "role" in values and values["role"] not in {r.value for r in Role}:
        errors.append("Role must be 0 (normal), 1 (admin) or 2 (banned).")

    target_school_id = values.get("target_school_id")
    if target_school_id is not None and not exists(db, School, target_school_id):
        errors.append(f"School ID: {target_school_id} does not exist.")

    if errors:
        raise ValidationError(errors)


def create_user(db: Session, values: Dict[str, Any], allow_role: bool = False) -> User:
    fields = PROFILE_FIELDS + (("role",) if allow_role else ())
    values = {key: value for key, value in values.items() if key in fields}
    validate_user_fields(db, values, creating=True)

    values["password"] = hash_password(values["password"])
    user = User(**values)
    db.add(user)
    db.flush()
    logger.info("User %s registered as %s", user.id, user.username)
    return user


def sign_up(db: Session, values: Dict[str, Any]) -> User:
    return create_user(db, values)


def sign_in(db: Session, login: Optional[str], password: Optional[str], admin: bool = False) -> Tuple[User, str]:
    """
    Authenticate by email or username.

    Returns:
        (user, token)
    """
    if not login:
        raise BadRequestError("Email or username is required.")
    if not password:
        raise BadRequestError("Password is required.")

    user = db.query(User).filter(or_(User.email == login, User.username == login)).first()
    if user is None:
        raise NotFoundError("User does not exist, cannot sign in.")
    if not verify_password(password, user.password):
        raise UnauthorizedError("Wrong password.")
    if has_role(user, Role.banned):
        raise UnauthorizedError("This account has been banned.")
    if admin and not has_role(user, Role.admin):
        raise UnauthorizedError("You are not allowed to sign in to the admin console.")

    user.last_login = datetime.utcnow()
    db.flush()
    return user, create_access_token(user.id)


def list_users(db: Session, page: Page, username: Optional[str] = None) -> Tuple[List[Dict[str, Any]], int]:
    query = db.query(User)
    if username:
        query = query.filter(User.username.like(contains_pattern(username), escape="\\"))
    total = query.count()
    rows = query.order_by(User.id.desc()).offset(page.offset).limit(page.page_size).all()
    return [user_to_dict(row) for row in rows], total


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User ID: {user_id} not found.")
    return user


def update_user(db: Session, user_id: int, values: Dict[str, Any]) -> User:
    user = get_user(db, user_id)
    values = {key: value for key, value in values.items() if key in PROFILE_FIELDS + ("role",)}
    if values.get("password") is None:
        values.pop("password", None)
    validate_user_fields(db, values, creating=False, user_id=user.id)

    if "password" in values:
        values["password"] = hash_password(values["password"])
    for key, value in values.items():
        setattr(user, key, value)
    db.flush()
    return user


def delete_user(db: Session, user_id: int) -> None:
    """Remove a user; their content and reactions go with them."""
    user = get_user(db, user_id)
    release_user_reactions(db, user.id)
    db.delete(user)
    db.flush()
    logger.info("User %s deleted", user_id)
