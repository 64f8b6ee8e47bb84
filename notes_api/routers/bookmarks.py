from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from notes_api.auth import get_current_user
from notes_api.database import get_db
from notes_api.dependencies import get_metadata_fetcher, get_search_engine
from notes_api.errors import Conflict, ValidationFailure
from notes_api.logging_config import get_logger
from notes_api.metadata import MetadataFetcher
from notes_api.models import Bookmark, User
from notes_api.responses import ok, paginated
from notes_api.routers.common import get_owned, parse_tags_param, pick_favorite, pick_text
from notes_api.schemas import (
    BookmarkCreateRequest,
    BookmarkData,
    BookmarkListData,
    BookmarkResponse,
    BookmarkStats,
    BookmarkUpdateRequest,
    Envelope,
    MetadataRequest,
    MetadataResponse,
    PaginatedEnvelope,
    PopularTag,
    SortField,
    SortOrder,
)
from notes_api.search import SearchCriteria, SearchEngine

logger = get_logger(__name__)

router = APIRouter()

DUPLICATE_URL = "A bookmark with this URL already exists"


def _bookmark_data(bookmark: Bookmark) -> BookmarkData:
    return BookmarkData(bookmark=BookmarkResponse.model_validate(bookmark))


def _url_taken(db: Session, owner_id: int, url: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Bookmark.id).where(Bookmark.user_id == owner_id, Bookmark.url == url)
    if exclude_id is not None:
        query = query.where(Bookmark.id != exclude_id)
    return db.scalars(query).first() is not None


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=PaginatedEnvelope[BookmarkListData],
    summary="List bookmarks with filtering, sorting and pagination",
)
def list_bookmarks(
    q: Optional[str] = Query(None, max_length=100, description="Search title/description/url"),
    tags: Optional[str] = Query(None, description="Comma-separated tags; any may match"),
    favorite: Optional[bool] = Query(None),
    is_favorite: Optional[bool] = Query(None, alias="isFavorite"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    criteria = SearchCriteria(
        text=pick_text(q),
        tags=parse_tags_param(tags),
        is_favorite=pick_favorite(is_favorite, favorite),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    bookmarks, pagination = engine.list_records("bookmark", current_user.id, criteria)
    data = BookmarkListData(bookmarks=[BookmarkResponse.model_validate(b) for b in bookmarks])
    return paginated(data, pagination, "Bookmarks retrieved successfully")


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Envelope[BookmarkData],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new bookmark",
)
def create_bookmark(
    payload: BookmarkCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    fetcher: MetadataFetcher = Depends(get_metadata_fetcher),
):
    """
    Create a bookmark. The URL is normalized; a missing title or description
    and the favicon come from the page's metadata.

    Raises:
        409 if the user already bookmarked this URL.
    """
    if _url_taken(db, current_user.id, payload.url):
        raise Conflict(DUPLICATE_URL)
    metadata = fetcher.extract(payload.url)
    bookmark = Bookmark(
        url=payload.url,
        title=payload.title or metadata["title"],
        description=payload.description or metadata["description"] or None,
        favicon=metadata["favicon"] or None,
        tags=payload.tags,
        is_favorite=payload.is_favorite,
        user_id=current_user.id,
    )
    db.add(bookmark)
    db.commit()
    db.refresh(bookmark)
    return ok(_bookmark_data(bookmark), "Bookmark created successfully")


# PUBLIC_INTERFACE
@router.get("/stats", response_model=Envelope[BookmarkStats], summary="Bookmark statistics")
def get_bookmark_stats(
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    stats = engine.stats(current_user.id, "bookmark")
    data = BookmarkStats(
        total_bookmarks=stats["total"],
        favorite_bookmarks=stats["favorites"],
        unique_tags=stats["unique_tags"],
        popular_tags=[PopularTag(**t) for t in stats["popular_tags"]],
    )
    return ok(data, "Bookmark statistics retrieved successfully")


# PUBLIC_INTERFACE
@router.post("/metadata", response_model=Envelope[MetadataResponse], summary="Fetch URL metadata")
def fetch_metadata(
    payload: MetadataRequest,
    current_user: User = Depends(get_current_user),
    fetcher: MetadataFetcher = Depends(get_metadata_fetcher),
):
    """
    Preview title, description, favicon and image of a URL.

    Unreachable pages still succeed with a hostname-derived title.
    """
    metadata = fetcher.extract(payload.url)
    return ok(MetadataResponse(**metadata), "URL metadata retrieved successfully")


# PUBLIC_INTERFACE
@router.get("/{bookmark_id}", response_model=Envelope[BookmarkData], summary="Get a bookmark by ID")
def get_bookmark(
    bookmark_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bookmark = get_owned(db, Bookmark, bookmark_id, current_user.id, "Bookmark")
    return ok(_bookmark_data(bookmark), "Bookmark retrieved successfully")


# PUBLIC_INTERFACE
@router.put("/{bookmark_id}", response_model=Envelope[BookmarkData], summary="Update a bookmark by ID")
def update_bookmark(
    payload: BookmarkUpdateRequest,
    bookmark_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    fetcher: MetadataFetcher = Depends(get_metadata_fetcher),
):
    """
    Update a bookmark. Changing the URL refreshes its favicon.

    Raises:
        409 if the new URL is already bookmarked by this user.
    """
    bookmark = get_owned(db, Bookmark, bookmark_id, current_user.id, "Bookmark")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationFailure("No fields provided for update")

    new_url = changes.get("url")
    if new_url and new_url != bookmark.url:
        if _url_taken(db, current_user.id, new_url, exclude_id=bookmark.id):
            raise Conflict(DUPLICATE_URL)
        favicon = fetcher.extract(new_url)["favicon"]
        if favicon:
            bookmark.favicon = favicon

    for field, value in changes.items():
        setattr(bookmark, field, value)
    bookmark.touch()
    db.add(bookmark)
    db.commit()
    db.refresh(bookmark)
    return ok(_bookmark_data(bookmark), "Bookmark updated successfully")


# PUBLIC_INTERFACE
@router.delete("/{bookmark_id}", response_model=Envelope[None], summary="Delete a bookmark by ID")
def delete_bookmark(
    bookmark_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bookmark = get_owned(db, Bookmark, bookmark_id, current_user.id, "Bookmark")
    db.delete(bookmark)
    db.commit()
    logger.debug("Deleted bookmark %s", bookmark_id)
    return ok(None, "Bookmark deleted successfully")


# PUBLIC_INTERFACE
@router.patch(
    "/{bookmark_id}/favorite",
    response_model=Envelope[BookmarkData],
    summary="Toggle a bookmark's favorite flag",
)
def toggle_bookmark_favorite(
    bookmark_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bookmark = get_owned(db, Bookmark, bookmark_id, current_user.id, "Bookmark")
    bookmark.is_favorite = not bookmark.is_favorite
    bookmark.touch()
    db.commit()
    db.refresh(bookmark)
    state = "added to" if bookmark.is_favorite else "removed from"
    return ok(_bookmark_data(bookmark), f"Bookmark {state} favorites")
