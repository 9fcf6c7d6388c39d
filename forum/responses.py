"""
Response envelope and row serialization helpers shared by every router.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from fastapi import Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from forum.config import DEFAULT_PAGE_SIZE


def success(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    body = {"status": True, "message": message, "data": data if data is not None else {}}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def failure(message: str, errors: List[str], status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": False, "message": message, "errors": [str(e) for e in errors]},
    )


def to_dict(row, exclude: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
    """Column values of an ORM row, minus ``exclude``."""
    if row is None:
        return None
    skipped = set(exclude)
    return {
        column.key: getattr(row, column.key)
        for column in row.__table__.columns
        if column.key not in skipped
    }


def user_to_dict(user) -> Optional[Dict[str, Any]]:
    return to_dict(user, exclude=("password",))


# Largest page number or size passed on to the database; keeps OFFSET within a bindable integer.
MAX_PAGE_VALUE = 2**31 - 1


def _positive(value: Optional[str], default: int) -> int:
    # Sign is dropped; garbage and zero fall back to the default.
    try:
        number = abs(int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default
    return min(number, MAX_PAGE_VALUE) or default


def contains_pattern(value: str) -> str:
    """LIKE pattern matching ``value`` as a plain substring; use with ``escape="\\"``."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class Page:
    current_page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.page_size

    def block(self, total: int) -> Dict[str, int]:
        return {"total": total, "currentPage": self.current_page, "pageSize": self.page_size}


def page_params(
    currentPage: Optional[str] = Query(None, description="Page number, defaults to 1"),
    pageSize: Optional[str] = Query(None, description="Rows per page, defaults to 10"),
) -> Page:
    """FastAPI dependency reading the pagination query parameters."""
    return Page(current_page=_positive(currentPage, 1), page_size=_positive(pageSize, DEFAULT_PAGE_SIZE))
