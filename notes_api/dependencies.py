from fastapi import Depends, Request
from sqlalchemy.orm import Session

from notes_api.config import Settings
from notes_api.database import get_db
from notes_api.metadata import MetadataFetcher
from notes_api.search import SearchEngine


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def get_metadata_fetcher(request: Request) -> MetadataFetcher:
    """Shared link-preview fetcher built (or injected) by the app factory."""
    return request.app.state.metadata_fetcher


def get_search_engine(db: Session = Depends(get_db)) -> SearchEngine:
    """Request-scoped search engine bound to the request's session."""
    return SearchEngine(db)
