# forum/routes/categories.py
"""FastAPI routes for the school-scoped category hierarchy."""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from forum.db import get_db
from forum.models import User
from forum.responses import success
from forum.security import get_current_user
from forum.services.categories import questions_under_category, target_school_categories

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
def list_target_school_categories(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Top-level categories examined by the caller's target school.

    Each carries the child categories that school examines too.
    """
    categories = target_school_categories(db, user.id)
    return success("Categories for the target school fetched.", {"categories": categories})


@router.get("/{category_id}/questions")
def list_category_questions(
    category_id: int = Path(..., description="Category whose questions to list", ge=1),
    db: Session = Depends(get_db),
):
    questions = questions_under_category(db, category_id)
    return success("Questions under the category fetched.", {"questions": questions})
