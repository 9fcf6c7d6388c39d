# forum/services/categories.py
"""Category hierarchy queries scoped to a school."""

from collections import defaultdict
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from forum.errors import NotFoundError
from forum.models import Category, Question, SchoolCategory, User
from forum.responses import to_dict


def categories_for_school(db: Session, school_id: int) -> List[Dict[str, Any]]:
    """
    Top-level categories linked to ``school_id``, each with its linked children.

    Both levels are inner-joined against SchoolCategory: a category with a
    relevance row for another school only is left out, and so is a child
    whose parent is left out.
    """
    roots = (
        db.query(Category)
        .join(SchoolCategory, SchoolCategory.category_id == Category.id)
        .filter(Category.parent_id.is_(None), SchoolCategory.school_id == school_id)
        .order_by(Category.id)
        .all()
    )
    root_ids = [root.id for root in roots]

    children: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    if root_ids:
        linked_children = (
            db.query(Category)
            .join(SchoolCategory, SchoolCategory.category_id == Category.id)
            .filter(Category.parent_id.in_(root_ids), SchoolCategory.school_id == school_id)
            .order_by(Category.id)
            .all()
        )
        for child in linked_children:
            children[child.parent_id].append(to_dict(child))

    tree = []
    for root in roots:
        node = to_dict(root)
        node["children"] = children.get(root.id, [])
        tree.append(node)
    return tree


def target_school_categories(db: Session, user_id: int) -> List[Dict[str, Any]]:
    """Category tree for the school the user is preparing for."""
    user = db.get(User, user_id)
    if user is None or user.target_school_id is None:
        raise NotFoundError(f"User ID: {user_id} or its target school was not found.")
    return categories_for_school(db, user.target_school_id)


def questions_under_category(db: Session, category_id: int) -> List[Dict[str, Any]]:
    """Questions filed under the category or one of its direct children."""
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundError(f"Category ID: {category_id} not found.")

    child_ids = [row.id for row in db.query(Category.id).filter(Category.parent_id == category.id).all()]
    category_ids = [category.id] + child_ids

    rows = (
        db.query(Question.id, Question.title, Question.content, Question.category_id, Question.created_at)
        .filter(Question.category_id.in_(category_ids))
        .order_by(Question.id)
        .all()
    )
    return [
        {
            "id": row.id,
            "title": row.title,
            "content": row.content,
            "category_id": row.category_id,
            "created_at": row.created_at,
        }
        for row in rows
    ]
