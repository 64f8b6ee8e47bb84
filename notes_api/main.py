from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from notes_api.auth import get_password_hash
from notes_api.config import Settings, get_settings
from notes_api.database import Database
from notes_api.errors import AppError, ErrorKind
from notes_api.logging_config import get_logger, setup_logging
from notes_api.metadata import MetadataFetcher
from notes_api.models import Bookmark, Note, User
from notes_api.responses import error_response
from notes_api.routers import auth, bookmarks, health, notes, search

logger = get_logger(__name__)

OPENAPI_TAGS = [
    {"name": "Health", "description": "Service health and status."},
    {"name": "Auth", "description": "User registration, authentication and profile."},
    {"name": "Notes", "description": "CRUD operations for notes."},
    {"name": "Bookmarks", "description": "CRUD operations and link previews for bookmarks."},
    {"name": "Search", "description": "Search, tags and suggestions across notes and bookmarks."},
]


# Seed logic for dev convenience
def seed_demo_data(db: Session) -> None:
    """Create a demo user with a few notes and bookmarks if no user exists."""
    if db.scalars(select(User)).first():
        return
    email = "demo@example.com"
    user = User(name="Demo User", email=email, password_hash=get_password_hash("Password123"))
    db.add(user)
    db.flush()
    db.add_all(
        [
            Note(
                title="Welcome to Notes App",
                content="This is your first note! Create, edit, and organize your thoughts here.",
                tags=["welcome", "getting-started"],
                is_favorite=True,
                user_id=user.id,
            ),
            Note(
                title="Project Ideas",
                content="Some project ideas:\n- Chat app\n- Todo list\n- Blog platform",
                tags=["projects", "ideas", "development"],
                user_id=user.id,
            ),
            Note(
                title="Learning Resources",
                content="Great resources for learning:\n- FastAPI docs\n- SQLAlchemy tutorial",
                tags=["learning", "resources", "web-development"],
                is_favorite=True,
                user_id=user.id,
            ),
            Bookmark(
                title="FastAPI Documentation",
                url="https://fastapi.tiangolo.com/",
                description="Official FastAPI documentation",
                tags=["documentation", "python", "fastapi"],
                is_favorite=True,
                user_id=user.id,
            ),
            Bookmark(
                title="SQLAlchemy ORM Quick Start",
                url="https://docs.sqlalchemy.org/en/20/orm/quickstart.html",
                description="Getting started with the SQLAlchemy ORM",
                tags=["database", "python", "sqlalchemy"],
                user_id=user.id,
            ),
            Bookmark(
                title="PostgreSQL Tutorial",
                url="https://www.postgresql.org/docs/current/tutorial.html",
                description="Official PostgreSQL tutorial",
                tags=["database", "postgresql", "sql"],
                is_favorite=True,
                user_id=user.id,
            ),
        ]
    )
    db.commit()
    logger.info("Seeded demo user: %s", email)


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def _validation_message(msg: str) -> str:
    return msg[len("Value error, "):] if msg.startswith("Value error, ") else msg


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure in the response envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        headers = None
        if exc.kind in (ErrorKind.UNAUTHORIZED, ErrorKind.INVALID_CREDENTIALS):
            headers = {"WWW-Authenticate": "Bearer"}
        return error_response(exc.status_code, exc.message, exc.errors, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(err.get("loc", ())), "message": _validation_message(err.get("msg", ""))}
            for err in exc.errors()
        ]
        return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            message = f"Route {request.url.path} not found"
        else:
            message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        if "unique" in str(exc.orig).lower():
            return error_response(
                status.HTTP_409_CONFLICT, "Duplicate entry. Resource already exists."
            )
        return error_response(status.HTTP_400_BAD_REQUEST, "Constraint violation")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    metadata_fetcher: Optional[MetadataFetcher] = None,
) -> FastAPI:
    """
    Build the application.

    The store and the metadata fetcher are constructed here (or injected) and
    owned by the lifespan, which connects on startup and releases both on
    shutdown.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    database = database or Database(settings.database_url, echo=settings.database_echo)
    metadata_fetcher = metadata_fetcher or MetadataFetcher(
        timeout=settings.metadata_timeout, max_redirects=settings.metadata_max_redirects
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.connect()
        try:
            if settings.seed_demo_data and settings.env == "dev":
                with database.session() as db:
                    seed_demo_data(db)
            yield
        finally:
            metadata_fetcher.close()
            database.disconnect()

    app = FastAPI(
        title="Notes & Bookmarks API",
        description="Personal notes and bookmarks with JWT auth, search and tag aggregation.",
        version="1.0.0",
        debug=settings.debug,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database
    app.state.metadata_fetcher = metadata_fetcher

    # CORS setup - allow frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    prefix = settings.api_prefix.rstrip("/")
    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Auth"])
    app.include_router(notes.router, prefix=f"{prefix}/notes", tags=["Notes"])
    app.include_router(bookmarks.router, prefix=f"{prefix}/bookmarks", tags=["Bookmarks"])
    app.include_router(search.router, prefix=prefix, tags=["Search"])
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("notes_api.main:create_app", factory=True, host="0.0.0.0", port=8000)
