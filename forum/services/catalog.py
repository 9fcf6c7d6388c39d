# forum/services/catalog.py
"""Administrative CRUD for schools, categories and school/category relevance rows."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from forum.errors import NotFoundError, ValidationError
from forum.models import Category, School, SchoolCategory
from forum.responses import Page, contains_pattern, to_dict
from forum.services.content import exists

logger = logging.getLogger(__name__)


def _get(db: Session, model, row_id: int, label: str):
    row = db.get(model, row_id)
    if row is None:
        raise NotFoundError(f"{label} ID: {row_id} not found.")
    return row


def _apply(db: Session, row, values: Dict[str, Any]):
    for key, value in values.items():
        setattr(row, key, value)
    db.flush()
    return row


# Schools

def _validate_school(values: Dict[str, Any], creating: bool) -> None:
    errors = []
    if creating or "name" in values:
        name = values.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append("School name must not be empty.")
    if creating or "number" in values:
        number = values.get("number")
        if not isinstance(number, int) or number < 1:
            errors.append("School number must be a positive integer.")
    if errors:
        raise ValidationError(errors)


def list_schools(db: Session, page: Page, name: Optional[str] = None) -> Tuple[List[Dict[str, Any]], int]:
    query = db.query(School)
    if name:
        query = query.filter(School.name.like(contains_pattern(name), escape="\\"))
    total = query.count()
    rows = query.order_by(School.id.desc()).offset(page.offset).limit(page.page_size).all()
    return [to_dict(row) for row in rows], total


def get_school(db: Session, school_id: int) -> School:
    return _get(db, School, school_id, "School")


def create_school(db: Session, values: Dict[str, Any]) -> School:
    _validate_school(values, creating=True)
    school = School(**values)
    db.add(school)
    db.flush()
    return school


def update_school(db: Session, school_id: int, values: Dict[str, Any]) -> School:
    school = get_school(db, school_id)
    _validate_school(values, creating=False)
    return _apply(db, school, values)


def delete_school(db: Session, school_id: int) -> None:
    """Users aiming for the school lose their target; posts lose their classification."""
    db.delete(get_school(db, school_id))
    db.flush()
    logger.info("School %s deleted", school_id)


# Categories

def _is_descendant(db: Session, category_id: int, candidate_id: int) -> bool:
    """True when ``candidate_id`` is ``category_id`` or sits somewhere beneath it."""
    seen = set()
    current = candidate_id
    while current is not None and current not in seen:
        if current == category_id:
            return True
        seen.add(current)
        current = db.query(Category.parent_id).filter(Category.id == current).scalar()
    return False


def _validate_category(db: Session, values: Dict[str, Any], creating: bool, category_id: Optional[int] = None) -> None:
    errors = []
    if creating or "name" in values:
        name = values.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append("Category name must not be empty.")
    parent_id = values.get("parent_id")
    if parent_id is not None:
        if not exists(db, Category, parent_id):
            errors.append(f"Parent category ID: {parent_id} does not exist.")
        elif category_id is not None and _is_descendant(db, category_id, parent_id):
            errors.append("A category cannot be nested under itself or one of its subcategories.")
    if errors:
        raise ValidationError(errors)


def category_to_dict(category: Category) -> Dict[str, Any]:
    item = to_dict(category)
    item["children"] = [to_dict(child) for child in category.children]
    return item


def list_categories(db: Session, parent_id: Optional[int] = None) -> List[Dict[str, Any]]:
    query = db.query(Category)
    if parent_id is not None:
        query = query.filter(Category.parent_id == parent_id)
    return [to_dict(row) for row in query.order_by(Category.id).all()]


def get_category(db: Session, category_id: int) -> Category:
    return _get(db, Category, category_id, "Category")


def create_category(db: Session, values: Dict[str, Any]) -> Category:
    _validate_category(db, values, creating=True)
    category = Category(**values)
    db.add(category)
    db.flush()
    return category


def update_category(db: Session, category_id: int, values: Dict[str, Any]) -> Category:
    category = get_category(db, category_id)
    _validate_category(db, values, creating=False, category_id=category.id)
    return _apply(db, category, values)


def delete_category(db: Session, category_id: int) -> None:
    """Child categories and relevance rows cascade; questions keep their rows with no category."""
    db.delete(get_category(db, category_id))
    db.flush()
    logger.info("Category %s deleted", category_id)


# School categories

def _validate_school_category(db: Session, values: Dict[str, Any]) -> None:
    errors = []
    category_id = values.get("category_id")
    school_id = values.get("school_id")
    if category_id is None or not exists(db, Category, category_id):
        errors.append(f"Category ID: {category_id} does not exist.")
    if school_id is None or not exists(db, School, school_id):
        errors.append(f"School ID: {school_id} does not exist.")
    frequency = values.get("exam_frequency")
    if frequency is not None and not 1 <= frequency <= 5:
        errors.append("Exam frequency must be between 1 and 5.")
    if errors:
        raise ValidationError(errors)


def school_category_to_dict(row: SchoolCategory) -> Dict[str, Any]:
    item = to_dict(row)
    item["category"] = to_dict(row.category)
    item["school"] = to_dict(row.school)
    return item


def list_school_categories(db: Session) -> List[Dict[str, Any]]:
    rows = db.query(SchoolCategory).order_by(SchoolCategory.id).all()
    return [school_category_to_dict(row) for row in rows]


def get_school_category(db: Session, school_category_id: int) -> SchoolCategory:
    return _get(db, SchoolCategory, school_category_id, "SchoolCategory")


def save_school_category(db: Session, values: Dict[str, Any]) -> Tuple[SchoolCategory, bool]:
    """Find-or-create on (category_id, school_id); an existing pair gets its frequency updated."""
    _validate_school_category(db, values)
    row = (
        db.query(SchoolCategory)
        .filter(
            SchoolCategory.category_id == values["category_id"],
            SchoolCategory.school_id == values["school_id"],
        )
        .first()
    )
    if row is not None:
        if values.get("exam_frequency") is not None:
            row.exam_frequency = values["exam_frequency"]
        db.flush()
        return row, False

    row = SchoolCategory(
        category_id=values["category_id"],
        school_id=values["school_id"],
        exam_frequency=values.get("exam_frequency") or 3,
    )
    db.add(row)
    db.flush()
    return row, True


def update_school_category(db: Session, school_category_id: int, values: Dict[str, Any]) -> SchoolCategory:
    row = get_school_category(db, school_category_id)
    merged = {
        "category_id": values.get("category_id") or row.category_id,
        "school_id": values.get("school_id") or row.school_id,
        "exam_frequency": values.get("exam_frequency"),
    }
    _validate_school_category(db, merged)

    clash = (
        db.query(SchoolCategory.id)
        .filter(
            SchoolCategory.category_id == merged["category_id"],
            SchoolCategory.school_id == merged["school_id"],
            SchoolCategory.id != row.id,
        )
        .first()
    )
    if clash is not None:
        raise ValidationError(["This category is already linked to this school."])

    if merged["exam_frequency"] is None:
        merged.pop("exam_frequency")
    return _apply(db, row, merged)


def delete_school_category(db: Session, school_category_id: int) -> None:
    db.delete(get_school_category(db, school_category_id))
    db.flush()
