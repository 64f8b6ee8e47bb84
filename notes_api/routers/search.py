from typing import Optional

from fastapi import APIRouter, Depends, Query

from notes_api.auth import get_current_user
from notes_api.dependencies import get_search_engine
from notes_api.models import User
from notes_api.responses import ok, paginated
from notes_api.routers.common import parse_tags_param, pick_favorite, pick_text
from notes_api.schemas import (
    AdvancedSearchRequest,
    BookmarkResponse,
    EntityType,
    Envelope,
    NoteResponse,
    PaginatedEnvelope,
    PopularTag,
    PopularTagsData,
    SearchData,
    SortField,
    SortOrder,
    SuggestionsData,
    TagsData,
)
from notes_api.search import DateRangeFilter, SearchCriteria, SearchEngine, SearchResult

router = APIRouter()


def _search_data(result: SearchResult) -> SearchData:
    return SearchData(
        notes=[NoteResponse.model_validate(n) for n in result.notes],
        bookmarks=[BookmarkResponse.model_validate(b) for b in result.bookmarks],
    )


# PUBLIC_INTERFACE
@router.get(
    "/search",
    response_model=PaginatedEnvelope[SearchData],
    summary="Search across notes and bookmarks",
)
def global_search(
    query: Optional[str] = Query(None, max_length=100, description="Text to look for"),
    q: Optional[str] = Query(None, max_length=100),
    keyword: Optional[str] = Query(None, max_length=100),
    type: Optional[EntityType] = Query(None, description="Restrict to note or bookmark"),
    tags: Optional[str] = Query(None, description="Comma-separated tags; any may match"),
    is_favorite: Optional[bool] = Query(None, alias="isFavorite"),
    favorite: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    """
    Case-insensitive search over note title/content and bookmark title/description/url.

    Each type is paginated separately with the same page and limit.
    """
    options = SearchCriteria(
        type=type,
        tags=parse_tags_param(tags),
        is_favorite=pick_favorite(is_favorite, favorite),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = engine.global_search(current_user.id, pick_text(query, q, keyword), options)
    return paginated(_search_data(result), result.pagination, "Search results retrieved successfully")


# PUBLIC_INTERFACE
@router.post(
    "/advanced-search",
    response_model=PaginatedEnvelope[SearchData],
    summary="Search with keyword, tags, favorite flag and creation date range",
)
def advanced_search(
    payload: AdvancedSearchRequest,
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    date_range = None
    if payload.date_range is not None:
        date_range = DateRangeFilter(
            start=payload.date_range.start_date, end=payload.date_range.end_date
        )
    criteria = SearchCriteria(
        type=payload.type,
        text=pick_text(payload.keyword),
        tags=payload.tags,
        is_favorite=payload.is_favorite,
        date_range=date_range,
        page=payload.page,
        limit=payload.limit,
        sort_by=payload.sort_by,
        sort_order=payload.sort_order,
    )
    result = engine.advanced_search(current_user.id, criteria)
    return paginated(
        _search_data(result), result.pagination, "Advanced search results retrieved successfully"
    )


# PUBLIC_INTERFACE
@router.get("/tags", response_model=Envelope[TagsData], summary="All tags used by the current user")
def get_user_tags(
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    return ok(TagsData(tags=engine.user_tags(current_user.id)), "User tags retrieved successfully")


# PUBLIC_INTERFACE
@router.get(
    "/popular-tags",
    response_model=Envelope[PopularTagsData],
    summary="Most used tags of the current user",
)
def get_popular_tags(
    limit: Optional[int] = Query(None, description="Number of tags (default 10, at most 100)"),
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    tags = [PopularTag(**t) for t in engine.popular_tags(current_user.id, limit)]
    return ok(PopularTagsData(tags=tags), "Popular tags retrieved successfully")


# PUBLIC_INTERFACE
@router.get(
    "/search-suggestions",
    response_model=Envelope[SuggestionsData],
    summary="Suggestions from titles and URLs matching a partial query",
)
def get_search_suggestions(
    query: Optional[str] = Query(None, max_length=100),
    q: Optional[str] = Query(None, max_length=100),
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    suggestions = engine.suggestions(current_user.id, pick_text(query, q))
    return ok(SuggestionsData(suggestions=suggestions), "Search suggestions retrieved successfully")
