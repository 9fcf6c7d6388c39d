# forum/services/content.py
"""Content tree service: posts and questions, with bounded-depth reply retrieval."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, defer, joinedload

from forum.errors import NotFoundError, ValidationError
from forum.models import Category, ContentStatus, ContentType, Post, Question, School, User
from forum.responses import Page, contains_pattern, to_dict, user_to_dict

logger = logging.getLogger(__name__)

COMMON_FIELDS = ("title", "content", "parent_id", "video", "type", "status")


@dataclass(frozen=True)
class ContentKind:
    """Describes one of the two structurally parallel content tables."""

    name: str
    label: str
    model: type
    classification_field: str
    classification_model: type
    classification_key: str
    extra_fields: Tuple[str, ...] = ()

    @property
    def writable_fields(self) -> Tuple[str, ...]:
        return COMMON_FIELDS + (self.classification_field,) + self.extra_fields

    def classification_relation(self):
        return getattr(self.model, self.classification_key)


POSTS = ContentKind(
    name="post",
    label="Post",
    model=Post,
    classification_field="school_id",
    classification_model=School,
    classification_key="school",
    extra_fields=("cover_image",),
)

QUESTIONS = ContentKind(
    name="question",
    label="Question",
    model=Question,
    classification_field="category_id",
    classification_model=Category,
    classification_key="category",
    extra_fields=("difficulty",),
)


def summarize(row) -> Optional[Dict[str, Any]]:
    """Row payload for listings: everything except the full text."""
    return to_dict(row, exclude=("content",))


def exists(db: Session, model, row_id: Optional[int]) -> bool:
    return row_id is not None and db.query(model.id).filter(model.id == row_id).first() is not None


def get_content(db: Session, kind: ContentKind, content_id: Optional[int]):
    row = db.get(kind.model, content_id) if content_id is not None else None
    if row is None:
        raise NotFoundError(f"{kind.label} ID: {content_id} not found.")
    return row


def list_contents(
    db: Session, kind: ContentKind, page: Page, keyword: Optional[str] = None
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Root items only, newest first, without the ``content`` column.

    Args:
        db: Database session
        kind: POSTS or QUESTIONS
        page: Pagination window
        keyword: Optional substring matched against title or content

    Returns:
        (rows, total) where total counts every matching root item
    """
    model = kind.model
    query = db.query(model).filter(model.parent_id.is_(None))
    if keyword:
        pattern = contains_pattern(keyword)
        query = query.filter(
            or_(model.title.like(pattern, escape="\\"), model.content.like(pattern, escape="\\"))
        )

    total = query.count()
    rows = (
        query.options(defer(model.content))
        .order_by(model.id.desc())
        .offset(page.offset)
        .limit(page.page_size)
        .all()
    )
    return [summarize(row) for row in rows], total


def list_contents_for_admin(
    db: Session, kind: ContentKind, page: Page, title: Optional[str] = None
) -> Tuple[List[Dict[str, Any]], int]:
    """Every row, replies included, with owner and classification attached."""
    model = kind.model
    query = db.query(model)
    if title:
        query = query.filter(model.title.like(contains_pattern(title), escape="\\"))

    total = query.count()
    rows = (
        query.options(
            defer(model.content),
            joinedload(model.user),
            joinedload(kind.classification_relation()),
        )
        .order_by(model.id.desc())
        .offset(page.offset)
        .limit(page.page_size)
        .all()
    )
    result = []
    for row in rows:
        item = summarize(row)
        item["user"] = user_to_dict(row.user)
        item[kind.classification_key] = to_dict(getattr(row, kind.classification_key))
        result.append(item)
    return result, total


def get_content_tree(db: Session, kind: ContentKind, content_id: int) -> Dict[str, Any]:
    """
    Fetch one row with its replies and their replies.

    Expansion stops at two levels: grandchildren are returned without a
    ``children`` key, whatever is stored beneath them.
    """
    model = kind.model
    root = (
        db.query(model)
        .options(joinedload(model.user), joinedload(kind.classification_relation()))
        .filter(model.id == content_id)
        .first()
    )
    if root is None:
        raise NotFoundError(f"{kind.label} ID: {content_id} not found.")

    children = db.query(model).filter(model.parent_id == root.id).order_by(model.id).all()
    child_ids = [child.id for child in children]

    grandchildren: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    if child_ids:
        for row in db.query(model).filter(model.parent_id.in_(child_ids)).order_by(model.id).all():
            grandchildren[row.parent_id].append(to_dict(row))

    tree = to_dict(root)
    tree["children"] = []
    for child in children:
        node = to_dict(child)
        node["children"] = grandchildren.get(child.id, [])
        tree["children"].append(node)
    tree["user"] = user_to_dict(root.user)
    tree[kind.classification_key] = to_dict(getattr(root, kind.classification_key))
    return tree


def _creates_cycle(db: Session, kind: ContentKind, content_id: int, parent_id: int) -> bool:
    model = kind.model
    seen = set()
    current = parent_id
    while current is not None and current not in seen:
        if current == content_id:
            return True
        seen.add(current)
        current = db.query(model.parent_id).filter(model.id == current).scalar()
    return False


def validate_content_fields(
    db: Session,
    kind: ContentKind,
    values: Dict[str, Any],
    creating: bool,
    content_id: Optional[int] = None,
) -> None:
    """
    Check a create/update payload before anything is written.

    Raises:
        ValidationError: with one message per rejected field
    """
    errors: List[str] = []

    for field in ("title", "content"):
        if creating or field in values:
            value = values.get(field)
            if not isinstance(value, str) or not value.strip():
                errors.append(f"{field.capitalize()} must not be empty.")

    content_type = values.get("type")
    if content_type is not None and content_type not in {t.value for t in ContentType}:
        errors.append(f"Type {content_type} is not a known content type.")

    status = values.get("status")
    if status is not None:
        try:
            ContentStatus(status)
        except ValueError:
            errors.append(f"Status '{status}' is not valid.")

    classification_id = values.get(kind.classification_field)
    if classification_id is not None and not exists(db, kind.classification_model, classification_id):
        errors.append(f"{kind.classification_model.__name__} ID: {classification_id} does not exist.")

    parent_id = values.get("parent_id")
    if parent_id is not None:
        if not exists(db, kind.model, parent_id):
            errors.append(f"Parent {kind.name} ID: {parent_id} does not exist.")
        elif content_id is not None and _creates_cycle(db, kind, content_id, parent_id):
            errors.append(f"{kind.label} cannot be nested under itself or one of its replies.")

    if errors:
        raise ValidationError(errors)


def _writable(kind: ContentKind, values: Dict[str, Any], allow_recommend: bool) -> Dict[str, Any]:
    allowed = set(kind.writable_fields)
    if allow_recommend:
        allowed.add("is_recommended")
    return {key: value for key, value in values.items() if key in allowed}


def create_content(
    db: Session,
    kind: ContentKind,
    owner_id: int,
    values: Dict[str, Any],
    allow_recommend: bool = False,
):
    """Create a root item, or a reply when ``parent_id`` is given. Counters start at zero."""
    values = _writable(kind, values, allow_recommend)
    if not exists(db, User, owner_id):
        raise ValidationError([f"User ID: {owner_id} does not exist."])
    validate_content_fields(db, kind, values, creating=True)

    if values.get("type") is None:
        values.pop("type", None)
    if values.get("status") is None:
        values["status"] = ContentStatus.published
    if values.get("is_recommended") is None:
        values["is_recommended"] = False

    row = kind.model(user_id=owner_id, likes_count=0, views_count=0, favorite_count=0, **values)
    db.add(row)
    db.flush()
    logger.info("%s %s created by user %s (parent=%s)", kind.label, row.id, owner_id, row.parent_id)
    return row


def update_content(
    db: Session,
    kind: ContentKind,
    content_id: int,
    values: Dict[str, Any],
    allow_recommend: bool = False,
):
    row = get_content(db, kind, content_id)
    values = _writable(kind, values, allow_recommend)
    validate_content_fields(db, kind, values, creating=False, content_id=row.id)

    for key, value in values.items():
        if key in ("type", "status", "is_recommended") and value is None:
            continue
        setattr(row, key, value)
    db.flush()
    return row


def delete_content(db: Session, kind: ContentKind, content_id: int) -> None:
    """Delete a row; its replies and reactions go with it through the FK cascade."""
    row = get_content(db, kind, content_id)
    db.delete(row)
    db.flush()
    logger.info("%s %s deleted", kind.label, content_id)
