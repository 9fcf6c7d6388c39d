# forum/services/home.py
"""Landing page aggregation: four independent, bounded post lists."""

from typing import Any, Dict, List

from sqlalchemy.orm import Session, defer

from forum.errors import NotFoundError
from forum.models import ContentStatus, ContentType, Post, User
from forum.services.content import summarize

SECTION_LIMIT = 5


def _published(db: Session):
    return db.query(Post).options(defer(Post.content)).filter(Post.status == ContentStatus.published)


def _rows(query) -> List[Dict[str, Any]]:
    return [summarize(row) for row in query.limit(SECTION_LIMIT).all()]


def landing_feed(db: Session, user_id: int) -> Dict[str, List[Dict[str, Any]]]:
    """
    Build the landing payload for a signed-in user.

    No deduplication across sections: a recommended experience post for the
    user's school may appear three times.
    """
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User ID: {user_id} not found.")

    recommended = _published(db).filter(Post.is_recommended.is_(True)).order_by(Post.likes_count.desc(), Post.id.desc())
    experience = _published(db).filter(Post.type == ContentType.experience).order_by(Post.id.desc())
    analysis = _published(db).filter(Post.type == ContentType.school_analysis).order_by(Post.id.desc())

    school_related: List[Dict[str, Any]] = []
    if user.target_school_id is not None:
        school_related = _rows(
            _published(db).filter(Post.school_id == user.target_school_id).order_by(Post.id.desc())
        )

    return {
        "recommendedPosts": _rows(recommended),
        "experiencePosts": _rows(experience),
        "analysisPosts": _rows(analysis),
        "schoolRelatedPosts": school_related,
    }
