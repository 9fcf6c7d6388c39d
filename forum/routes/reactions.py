# forum/routes/reactions.py
"""FastAPI routes for likes and favorites: user toggles and admin join-row CRUD."""

from typing import Optional

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from forum.db import get_db
from forum.models import User
from forum.responses import Page, page_params, success
from forum.security import get_current_user, require_admin
from forum.services.reactions import (
    POST_FAVORITES,
    POST_LIKES,
    QUESTION_FAVORITES,
    QUESTION_LIKES,
    REACTION_KINDS,
    ReactionKind,
    delete_reaction,
    get_reaction,
    list_reacted_contents,
    list_reactions,
    reaction_to_dict,
    save_reaction,
    toggle_reaction,
    update_reaction,
)

PUBLIC_PATHS = {
    POST_LIKES: "/likeposts",
    POST_FAVORITES: "/favoriteposts",
    QUESTION_LIKES: "/likequestions",
    QUESTION_FAVORITES: "/favoritequestions",
}


class ToggleRequest(BaseModel):
    postId: Optional[int] = Field(None, description="Target post, for post reactions")
    questionId: Optional[int] = Field(None, description="Target question, for question reactions")


class ReactionPayload(BaseModel):
    post_id: Optional[int] = None
    question_id: Optional[int] = None
    user_id: Optional[int] = None


def _content_id(kind: ReactionKind, payload: BaseModel, suffix: str) -> Optional[int]:
    return getattr(payload, f"{kind.content.name}{suffix}")


def build_reaction_router(kind: ReactionKind) -> APIRouter:
    router = APIRouter(prefix=PUBLIC_PATHS[kind], tags=["reactions"])
    plural = f"{kind.content.name}s"

    @router.post("")
    def toggle(
        payload: ToggleRequest,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        """Flip the caller's reaction; repeated calls alternate."""
        content_id = _content_id(kind, payload, "Id")
        result = toggle_reaction(db, kind, content_id, user.id)
        return success(
            f"{kind.content.label} {result.state}.",
            {"active": result.active, kind.counter: result.count, "changed": result.changed},
        )

    @router.get("")
    def list_reacted(
        page: Page = Depends(page_params),
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        rows, total = list_reacted_contents(db, kind, user.id, page)
        return success(
            f"{kind.content.label}s {kind.on_message} by the user fetched.",
            {plural: rows, "pagination": page.block(total)},
        )

    return router


def build_admin_reaction_router(kind: ReactionKind) -> APIRouter:
    router = APIRouter(prefix=f"/admin/{kind.name}", tags=["admin"], dependencies=[Depends(require_admin)])

    @router.get("")
    def list_items(db: Session = Depends(get_db)):
        return success(f"{kind.label} list fetched.", {kind.name: list_reactions(db, kind)})

    @router.get("/{reaction_id}")
    def get_item(reaction_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
        reaction = get_reaction(db, kind, reaction_id)
        return success(f"{kind.label} fetched.", {kind.label: reaction_to_dict(db, kind, reaction)})

    @router.post("")
    def save_item(payload: ReactionPayload, db: Session = Depends(get_db)):
        """Create the pair, or report the existing row when it is already there."""
        reaction, created = save_reaction(db, kind, _content_id(kind, payload, "_id"), payload.user_id)
        message = f"{kind.label} created." if created else f"{kind.label} updated."
        return success(
            message,
            {kind.label: reaction_to_dict(db, kind, reaction)},
            status_code=201 if created else 200,
        )

    @router.put("/{reaction_id}")
    def update_item(payload: ReactionPayload, reaction_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
        reaction = update_reaction(db, kind, reaction_id, _content_id(kind, payload, "_id"), payload.user_id)
        return success(f"{kind.label} updated.", {kind.label: reaction_to_dict(db, kind, reaction)})

    @router.delete("/{reaction_id}")
    def delete_item(reaction_id: int = Path(..., ge=1), db: Session = Depends(get_db)):
        delete_reaction(db, kind, reaction_id)
        return success(f"{kind.label} deleted.")

    return router


reaction_routers = [build_reaction_router(kind) for kind in REACTION_KINDS]
admin_reaction_routers = [build_admin_reaction_router(kind) for kind in REACTION_KINDS]
