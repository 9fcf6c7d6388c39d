# forum/services/reactions.py
"""
Reaction toggle service.

A reaction is a join row (content, user) plus a denormalized counter on the
content row. The join table is the source of truth; the counter is kept in
step inside the same transaction and can be rebuilt with
``reconcile_counters``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased, defer

from forum.errors import NotFoundError, ValidationError
from forum.models import PostFavorite, PostLike, QuestionFavorite, QuestionLike, User
from forum.responses import Page, to_dict, user_to_dict
from forum.services.content import POSTS, QUESTIONS, ContentKind, exists, summarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReactionKind:
    """One of the four (content type x reaction) join tables."""

    name: str
    content: ContentKind
    model: type
    counter: str
    on_message: str
    off_message: str

    @property
    def label(self) -> str:
        return self.model.__name__


POST_LIKES = ReactionKind("postlikes", POSTS, PostLike, "likes_count", "liked", "unliked")
POST_FAVORITES = ReactionKind("postfavorites", POSTS, PostFavorite, "favorite_count", "favorited", "unfavorited")
QUESTION_LIKES = ReactionKind("questionlikes", QUESTIONS, QuestionLike, "likes_count", "liked", "unliked")
QUESTION_FAVORITES = ReactionKind(
    "questionfavorites", QUESTIONS, QuestionFavorite, "favorite_count", "favorited", "unfavorited"
)

REACTION_KINDS = (POST_LIKES, POST_FAVORITES, QUESTION_LIKES, QUESTION_FAVORITES)


@dataclass
class ToggleResult:
    """Outcome of one toggle call."""
    state: str            # on_message or off_message
    active: bool          # join row exists after the call
    count: int            # counter value after the call
    changed: bool = True  # False when a racing duplicate was absorbed


def _adjust_counter(db: Session, kind: ReactionKind, content_id: int, delta: int) -> None:
    model = kind.content.model
    column = getattr(model, kind.counter)
    query = db.query(model).filter(model.id == content_id)
    if delta < 0:
        # Never below zero, even if the counter has drifted.
        query = query.filter(column > 0)
    query.update({column: column + delta}, synchronize_session="fetch")


def _lock_content(db: Session, kind: ReactionKind, content_id: Optional[int]):
    if content_id is None:
        raise NotFoundError(f"{kind.content.name}Id is required.")
    model = kind.content.model
    # Serializes concurrent toggles on the same row where the backend supports it.
    row = db.query(model).filter(model.id == content_id).with_for_update().first()
    if row is None:
        raise NotFoundError(f"{kind.content.label} ID: {content_id} not found.")
    return row


def _current_count(db: Session, kind: ReactionKind, content_id: int) -> int:
    model = kind.content.model
    return db.query(getattr(model, kind.counter)).filter(model.id == content_id).scalar() or 0


def _find_reaction(db: Session, kind: ReactionKind, content_id: int, user_id: int):
    model = kind.model
    return db.query(model).filter(model.content_id == content_id, model.user_id == user_id).first()


def toggle_reaction(db: Session, kind: ReactionKind, content_id: Optional[int], user_id: int) -> ToggleResult:
    """
    Flip the user's reaction on a content row and move the counter with it.

    Repeated calls alternate; there is no way to ask for a particular state.

    Raises:
        NotFoundError: content id missing or unknown
    """
    _lock_content(db, kind, content_id)

    existing = _find_reaction(db, kind, content_id, user_id)
    if existing is None:
        try:
            # Savepoint: a failed insert leaves the rest of the transaction intact.
            with db.begin_nested():
                db.add(kind.model(content_id=content_id, user_id=user_id))
        except IntegrityError:
            # A concurrent request inserted the same pair first: nothing to do.
            logger.warning("Duplicate %s for content %s by user %s ignored", kind.label, content_id, user_id)
            return ToggleResult(kind.on_message, True, _current_count(db, kind, content_id), changed=False)
        _adjust_counter(db, kind, content_id, +1)
        active, state = True, kind.on_message
    else:
        db.delete(existing)
        db.flush()
        _adjust_counter(db, kind, content_id, -1)
        active, state = False, kind.off_message

    count = _current_count(db, kind, content_id)
    logger.debug("%s content=%s user=%s -> %s (%s)", kind.label, content_id, user_id, state, count)
    return ToggleResult(state, active, count)


def list_reacted_contents(
    db: Session, kind: ReactionKind, user_id: int, page: Page
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Content the user has reacted to, newest first, without full text.

    Each row carries its parent (also without full text) and its
    classification, so replies can be shown in context.
    """
    content_kind = kind.content
    model = content_kind.model
    parent = aliased(model)

    base = db.query(model).join(kind.model, kind.model.content_id == model.id).filter(kind.model.user_id == user_id)
    total = base.count()
    rows = (
        db.query(model, parent)
        .join(kind.model, kind.model.content_id == model.id)
        .outerjoin(parent, parent.id == model.parent_id)
        .filter(kind.model.user_id == user_id)
        .options(defer(model.content), defer(parent.content))
        .order_by(model.id.desc())
        .offset(page.offset)
        .limit(page.page_size)
        .all()
    )

    result = []
    for row, parent_row in rows:
        item = summarize(row)
        item["parent"] = summarize(parent_row)
        item[content_kind.classification_key] = to_dict(getattr(row, content_kind.classification_key))
        result.append(item)
    return result, total


# ---------------------------------------------------------------------------
# Administrative corrections
# ---------------------------------------------------------------------------

def reaction_to_dict(db: Session, kind: ReactionKind, reaction) -> Dict[str, Any]:
    item = to_dict(reaction)
    item[kind.content.name] = summarize(db.get(kind.content.model, reaction.content_id))
    item["user"] = user_to_dict(db.get(User, reaction.user_id))
    return item


def list_reactions(db: Session, kind: ReactionKind) -> List[Dict[str, Any]]:
    rows = db.query(kind.model).order_by(kind.model.id.desc()).all()
    return [reaction_to_dict(db, kind, row) for row in rows]


def get_reaction(db: Session, kind: ReactionKind, reaction_id: int):
    reaction = db.get(kind.model, reaction_id)
    if reaction is None:
        raise NotFoundError(f"{kind.label} ID: {reaction_id} not found.")
    return reaction


def _validate_pair(db: Session, kind: ReactionKind, content_id: Optional[int], user_id: Optional[int]) -> None:
    errors = []
    if content_id is None:
        errors.append(f"{kind.content.name}_id is required.")
    elif not exists(db, kind.content.model, content_id):
        errors.append(f"{kind.content.label} ID: {content_id} does not exist.")
    if user_id is None:
        errors.append("user_id is required.")
    elif not exists(db, User, user_id):
        errors.append(f"User ID: {user_id} does not exist.")
    if errors:
        raise ValidationError(errors)


def save_reaction(db: Session, kind: ReactionKind, content_id: Optional[int], user_id: Optional[int]):
    """
    Find-or-create on (content_id, user_id).

    Returns:
        (reaction, created); an existing row is updated in place rather than
        tripping the uniqueness constraint
    """
    _validate_pair(db, kind, content_id, user_id)
    reaction = _find_reaction(db, kind, content_id, user_id)
    if reaction is not None:
        reaction.content_id = content_id
        reaction.user_id = user_id
        db.flush()
        return reaction, False

    reaction = kind.model(content_id=content_id, user_id=user_id)
    db.add(reaction)
    db.flush()
    _adjust_counter(db, kind, content_id, +1)
    logger.info("Admin created %s %s", kind.label, reaction.id)
    return reaction, True


def update_reaction(
    db: Session, kind: ReactionKind, reaction_id: int, content_id: Optional[int], user_id: Optional[int]
):
    reaction = get_reaction(db, kind, reaction_id)
    content_id = content_id if content_id is not None else reaction.content_id
    user_id = user_id if user_id is not None else reaction.user_id
    _validate_pair(db, kind, content_id, user_id)

    model = kind.model
    clash = (
        db.query(model.id)
        .filter(model.content_id == content_id, model.user_id == user_id, model.id != reaction.id)
        .first()
    )
    if clash is not None:
        raise ValidationError([f"{kind.label} for this {kind.content.name} and user already exists."])

    previous = reaction.content_id
    reaction.content_id = content_id
    reaction.user_id = user_id
    db.flush()
    if previous != content_id:
        _adjust_counter(db, kind, previous, -1)
        _adjust_counter(db, kind, content_id, +1)
    return reaction


def delete_reaction(db: Session, kind: ReactionKind, reaction_id: int) -> None:
    reaction = get_reaction(db, kind, reaction_id)
    content_id = reaction.content_id
    db.delete(reaction)
    db.flush()
    _adjust_counter(db, kind, content_id, -1)
    logger.info("Admin deleted %s %s", kind.label, reaction_id)


# ---------------------------------------------------------------------------
# Drift repair
# ---------------------------------------------------------------------------

def reconcile_counters(db: Session, kind: ReactionKind) -> List[Dict[str, int]]:
    """
    Rewrite every counter of ``kind`` from join-table counts.

    Returns:
        One entry per content row whose stored counter was wrong
    """
    model = kind.content.model
    column = getattr(model, kind.counter)
    counts = dict(
        db.query(kind.model.content_id, func.count(kind.model.id))
        .group_by(kind.model.content_id)
        .all()
    )

    repaired = []
    for content_id, stored in db.query(model.id, column).all():
        actual = counts.get(content_id, 0)
        if stored != actual:
            db.query(model).filter(model.id == content_id).update({column: actual}, synchronize_session="fetch")
            repaired.append({"id": content_id, "stored": stored, "actual": actual})

    if repaired:
        logger.warning("Repaired %d %s counters on %s", len(repaired), kind.counter, kind.content.model.__tablename__)
    return repaired


def release_user_reactions(db: Session, user_id: int) -> None:
    """Take a user's reactions off the counters before their join rows cascade away."""
    for kind in REACTION_KINDS:
        content_ids = [row[0] for row in db.query(kind.model.content_id).filter(kind.model.user_id == user_id).all()]
        for content_id in content_ids:
            _adjust_counter(db, kind, content_id, -1)
