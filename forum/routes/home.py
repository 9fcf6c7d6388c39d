# forum/routes/home.py
"""Landing page route."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from forum.db import get_db
from forum.models import User
from forum.responses import success
from forum.security import get_current_user
from forum.services.home import landing_feed

router = APIRouter(tags=["home"])


@router.get("/")
def landing(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Recommended, experience, analysis and target-school posts, five of each."""
    return success("Landing data fetched.", landing_feed(db, user.id))
