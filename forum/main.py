"""
Main FastAPI application for the exam forum API.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from forum.config import DEBUG, LOG_LEVEL
from forum.errors import ForumError
from forum.responses import failure
from forum.routes.admin import router as admin_router
from forum.routes.auth import admin_router as admin_auth_router
from forum.routes.auth import router as auth_router
from forum.routes.categories import router as categories_router
from forum.routes.content import (
    admin_posts_router,
    admin_questions_router,
    posts_router,
    questions_router,
)
from forum.routes.health import router as health_router
from forum.routes.home import router as home_router
from forum.routes.reactions import admin_reaction_routers, reaction_routers

logger = logging.getLogger(__name__)


def _field_messages(exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return messages


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Exam Forum API",
        description="Posts, questions, reactions and school-scoped categories for exam candidates",
        version="1.0.0",
        debug=DEBUG,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers
    @app.exception_handler(ForumError)
    async def forum_exception_handler(request: Request, exc: ForumError):
        return failure(exc.detail, exc.errors, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return failure("Request parameters are invalid.", _field_messages(exc), 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return failure(str(exc.detail), [str(exc.detail)], exc.status_code)

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        logger.info("Constraint violated on %s: %s", request.url.path, exc.orig)
        return failure("A database constraint was violated.", [str(exc.orig)], 400)

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s", request.url.path)
        detail = str(exc) if app.debug else "Database operation failed."
        return failure("Server error.", [detail], 500)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s", request.url.path)
        detail = str(exc) if app.debug else "Internal server error."
        return failure("Server error.", [detail], 500)

    # Include routers
    app.include_router(home_router)
    app.include_router(auth_router)
    app.include_router(posts_router)
    app.include_router(questions_router)
    for router in reaction_routers:
        app.include_router(router)
    app.include_router(categories_router)

    app.include_router(admin_auth_router)
    app.include_router(admin_posts_router)
    app.include_router(admin_questions_router)
    for router in admin_reaction_routers:
        app.include_router(router)
    app.include_router(admin_router)

    app.include_router(health_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("forum.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
