# forum/routes/content.py
"""FastAPI routes for posts and questions, public and admin."""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from forum.db import get_db
from forum.models import ContentStatus, Role, User
from forum.responses import Page, page_params, success, to_dict
from forum.security import ensure_owner_or_admin, get_current_user, has_role, require_admin
from forum.services.content import (
    POSTS,
    QUESTIONS,
    ContentKind,
    create_content,
    delete_content,
    get_content,
    get_content_tree,
    list_contents,
    list_contents_for_admin,
    update_content,
)


class ContentPayload(BaseModel):
    """Request body for creating or updating a post or question."""

    title: Optional[str] = Field(None, description="Title, required on create")
    content: Optional[str] = Field(None, description="Full text, required on create")
    parent_id: Optional[int] = Field(None, description="Set to reply to another item of the same kind")
    video: Optional[str] = Field(None, description="Media reference")
    type: Optional[int] = Field(None, description="1 experience, 2 school analysis, 3 help request, 4 study notes")
    status: Optional[ContentStatus] = Field(None, description="published, draft or archived")
    school_id: Optional[int] = Field(None, description="Posts only")
    cover_image: Optional[str] = Field(None, description="Posts only")
    category_id: Optional[int] = Field(None, description="Questions only")
    difficulty: Optional[int] = Field(None, description="Questions only")


class AdminContentPayload(ContentPayload):
    is_recommended: Optional[bool] = Field(None, description="Feature on the landing page")


def _values(payload: BaseModel) -> dict:
    return payload.model_dump(exclude_unset=True)


def build_content_router(kind: ContentKind) -> APIRouter:
    plural = f"{kind.name}s"
    router = APIRouter(prefix=f"/{plural}", tags=[plural])

    @router.get("")
    def list_items(
        page: Page = Depends(page_params),
        keyword: Optional[str] = Query(None, description="Substring matched against title or content"),
        db: Session = Depends(get_db),
    ):
        """Root items, newest first, without full text."""
        rows, total = list_contents(db, kind, page, keyword)
        return success(f"{kind.label} list fetched.", {plural: rows, "pagination": page.block(total)})

    @router.get("/{content_id}")
    def get_item(content_id: int = Path(...), db: Session = Depends(get_db)):
        """One item with two levels of replies, its author and classification."""
        return success(f"{kind.label} fetched.", {kind.name: get_content_tree(db, kind, content_id)})

    @router.post("")
    def create_item(
        payload: ContentPayload,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        row = create_content(db, kind, user.id, _values(payload))
        return success(f"{kind.label} created.", {kind.name: to_dict(row)}, status_code=201)

    @router.put("/{content_id}")
    def update_item(
        payload: AdminContentPayload,
        content_id: int = Path(...),
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        row = get_content(db, kind, content_id)
        ensure_owner_or_admin(user, row.user_id)
        row = update_content(db, kind, content_id, _values(payload), allow_recommend=has_role(user, Role.admin))
        return success(f"{kind.label} updated.", {kind.name: to_dict(row)})

    @router.delete("/{content_id}")
    def delete_item(
        content_id: int = Path(...),
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        row = get_content(db, kind, content_id)
        ensure_owner_or_admin(user, row.user_id)
        delete_content(db, kind, content_id)
        return success(f"{kind.label} deleted.")

    return router


def build_admin_content_router(kind: ContentKind) -> APIRouter:
    plural = f"{kind.name}s"
    router = APIRouter(prefix=f"/admin/{plural}", tags=["admin"], dependencies=[Depends(require_admin)])

    @router.get("")
    def list_items(
        page: Page = Depends(page_params),
        title: Optional[str] = Query(None, description="Substring matched against title"),
        db: Session = Depends(get_db),
    ):
        """Every item, replies included, with author and classification."""
        rows, total = list_contents_for_admin(db, kind, page, title)
        return success(f"{kind.label} list fetched.", {plural: rows, "pagination": page.block(total)})

    @router.get("/{content_id}")
    def get_item(content_id: int = Path(...), db: Session = Depends(get_db)):
        return success(f"{kind.label} fetched.", {kind.name: get_content_tree(db, kind, content_id)})

    @router.post("")
    def create_item(
        payload: AdminContentPayload,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        row = create_content(db, kind, user.id, _values(payload), allow_recommend=True)
        return success(f"{kind.label} created.", {kind.name: to_dict(row)}, status_code=201)

    @router.put("/{content_id}")
    def update_item(
        payload: AdminContentPayload,
        content_id: int = Path(...),
        db: Session = Depends(get_db),
    ):
        row = update_content(db, kind, content_id, _values(payload), allow_recommend=True)
        return success(f"{kind.label} updated.", {kind.name: to_dict(row)})

    @router.delete("/{content_id}")
    def delete_item(content_id: int = Path(...), db: Session = Depends(get_db)):
        delete_content(db, kind, content_id)
        return success(f"{kind.label} deleted.")

    return router


posts_router = build_content_router(POSTS)
questions_router = build_content_router(QUESTIONS)
admin_posts_router = build_admin_content_router(POSTS)
admin_questions_router = build_admin_content_router(QUESTIONS)
