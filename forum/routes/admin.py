# forum/routes/admin.py
"""Admin console routes for schools, categories, school/category links and users."""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from forum.db import get_db
from forum.responses import Page, page_params, success, to_dict, user_to_dict
from forum.security import require_admin
from forum.services import accounts, catalog

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _values(payload: BaseModel) -> dict:
    return payload.model_dump(exclude_unset=True)


# Schools

class SchoolPayload(BaseModel):
    name: Optional[str] = None
    number: Optional[int] = Field(None, description="Official school number, positive")
    introduce: Optional[str] = None


@router.get("/schools")
def list_schools(
    page: Page = Depends(page_params),
    name: Optional[str] = Query(None, description="Substring matched against the name"),
    db: Session = Depends(get_db),
):
    rows, total = catalog.list_schools(db, page, name)
    return success("School list fetched.", {"schools": rows, "pagination": page.block(total)})


@router.get("/schools/{school_id}")
def get_school(school_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    return success("School fetched.", {"school": to_dict(catalog.get_school(db, school_id))})


@router.post("/schools")
def create_school(payload: SchoolPayload, db: Session = Depends(get_db)):
    school = catalog.create_school(db, _values(payload))
    return success("School created.", {"school": to_dict(school)}, status_code=201)


@router.put("/schools/{school_id}")
def update_school(payload: SchoolPayload, school_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    school = catalog.update_school(db, school_id, _values(payload))
    return success("School updated.", {"school": to_dict(school)})


@router.delete("/schools/{school_id}")
def delete_school(school_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    catalog.delete_school(db, school_id)
    return success("School deleted.")


# Categories

class CategoryPayload(BaseModel):
    name: Optional[str] = None
    parent_id: Optional[int] = Field(None, description="Omit or null for a top-level category")


@router.get("/categories")
def list_categories(
    parent_id: Optional[int] = Query(None, description="Only the children of this category"),
    db: Session = Depends(get_db),
):
    return success("Category list fetched.", {"categories": catalog.list_categories(db, parent_id)})


@router.get("/categories/{category_id}")
def get_category(category_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    category = catalog.get_category(db, category_id)
    return success("Category fetched.", {"category": catalog.category_to_dict(category)})


@router.post("/categories")
def create_category(payload: CategoryPayload, db: Session = Depends(get_db)):
    category = catalog.create_category(db, _values(payload))
    return success("Category created.", {"category": to_dict(category)}, status_code=201)


@router.put("/categories/{category_id}")
def update_category(payload: CategoryPayload, category_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    category = catalog.update_category(db, category_id, _values(payload))
    return success("Category updated.", {"category": to_dict(category)})


@router.delete("/categories/{category_id}")
def delete_category(category_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    catalog.delete_category(db, category_id)
    return success("Category deleted.")


# School categories

class SchoolCategoryPayload(BaseModel):
    category_id: Optional[int] = None
    school_id: Optional[int] = None
    exam_frequency: Optional[int] = Field(None, description="How often the school examines it, 1 to 5")


@router.get("/schoolcategories")
def list_school_categories(db: Session = Depends(get_db)):
    rows = catalog.list_school_categories(db)
    return success("SchoolCategory list fetched.", {"schoolCategories": rows})


@router.get("/schoolcategories/{school_category_id}")
def get_school_category(school_category_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    row = catalog.get_school_category(db, school_category_id)
    return success("SchoolCategory fetched.", {"schoolCategory": catalog.school_category_to_dict(row)})


@router.post("/schoolcategories")
def save_school_category(payload: SchoolCategoryPayload, db: Session = Depends(get_db)):
    """Creates the link, or updates the frequency of an existing one."""
    row, created = catalog.save_school_category(db, _values(payload))
    return success(
        "SchoolCategory created." if created else "SchoolCategory updated.",
        {"schoolCategory": catalog.school_category_to_dict(row)},
        status_code=201 if created else 200,
    )


@router.put("/schoolcategories/{school_category_id}")
def update_school_category(
    payload: SchoolCategoryPayload,
    school_category_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
):
    row = catalog.update_school_category(db, school_category_id, _values(payload))
    return success("SchoolCategory updated.", {"schoolCategory": catalog.school_category_to_dict(row)})


@router.delete("/schoolcategories/{school_category_id}")
def delete_school_category(school_category_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    catalog.delete_school_category(db, school_category_id)
    return success("SchoolCategory deleted.")


# Users

class UserPayload(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    nickname: Optional[str] = None
    password: Optional[str] = None
    sex: Optional[int] = None
    role: Optional[int] = Field(None, description="0 normal, 1 admin, 2 banned")
    photo: Optional[str] = None
    introduce: Optional[str] = None
    original_school_id: Optional[int] = None
    target_school_id: Optional[int] = None


@router.get("/users")
def list_users(
    page: Page = Depends(page_params),
    username: Optional[str] = Query(None, description="Substring matched against the username"),
    db: Session = Depends(get_db),
):
    rows, total = accounts.list_users(db, page, username)
    return success("User list fetched.", {"users": rows, "pagination": page.block(total)})


@router.get("/users/{user_id}")
def get_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    return success("User fetched.", {"user": user_to_dict(accounts.get_user(db, user_id))})


@router.post("/users")
def create_user(payload: UserPayload, db: Session = Depends(get_db)):
    user = accounts.create_user(db, _values(payload), allow_role=True)
    return success("User created.", {"user": user_to_dict(user)}, status_code=201)


@router.put("/users/{user_id}")
def update_user(payload: UserPayload, user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    user = accounts.update_user(db, user_id, _values(payload))
    return success("User updated.", {"user": user_to_dict(user)})


@router.delete("/users/{user_id}")
def delete_user(user_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
    """Their posts, questions and reactions are removed with them."""
    accounts.delete_user(db, user_id)
    return success("User deleted.")
