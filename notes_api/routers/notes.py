from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from notes_api.auth import get_current_user
from notes_api.database import get_db
from notes_api.dependencies import get_search_engine
from notes_api.errors import ValidationFailure
from notes_api.models import Note, User
from notes_api.responses import ok, paginated
from notes_api.routers.common import get_owned, parse_tags_param, pick_favorite, pick_text
from notes_api.schemas import (
    Envelope,
    NoteCreateRequest,
    NoteData,
    NoteListData,
    NoteResponse,
    NoteStats,
    NoteUpdateRequest,
    PaginatedEnvelope,
    PopularTag,
    SortOrder,
)
from notes_api.search import SearchCriteria, SearchEngine

router = APIRouter()


def _note_data(note: Note) -> NoteData:
    return NoteData(note=NoteResponse.model_validate(note))


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=PaginatedEnvelope[NoteListData],
    summary="List notes with filtering, sorting and pagination",
)
def list_notes(
    q: Optional[str] = Query(None, max_length=100, description="Search query for title/content"),
    tags: Optional[str] = Query(None, description="Comma-separated tags; any may match"),
    favorite: Optional[bool] = Query(None),
    is_favorite: Optional[bool] = Query(None, alias="isFavorite"),
    page: int = Query(1, ge=1, description="Page number starting at 1"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    sort_by: Literal["createdAt", "updatedAt", "title"] = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    """
    List notes belonging to the current user.

    Returns:
        Envelope with the page of notes and pagination metadata.
    """
    criteria = SearchCriteria(
        text=pick_text(q),
        tags=parse_tags_param(tags),
        is_favorite=pick_favorite(is_favorite, favorite),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    notes, pagination = engine.list_records("note", current_user.id, criteria)
    data = NoteListData(notes=[NoteResponse.model_validate(n) for n in notes])
    return paginated(data, pagination, "Notes retrieved successfully")


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=Envelope[NoteData],
    status_code=status.HTTP_201_CREATED,
    summary="Create a new note",
)
def create_note(
    payload: NoteCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a new note for the authenticated user.

    Tags are trimmed, deduplicated and capped at 10.
    """
    note = Note(
        title=payload.title,
        content=payload.content,
        tags=payload.tags,
        is_favorite=payload.is_favorite,
        user_id=current_user.id,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return ok(_note_data(note), "Note created successfully")


# PUBLIC_INTERFACE
@router.get("/stats", response_model=Envelope[NoteStats], summary="Note statistics")
def get_note_stats(
    current_user: User = Depends(get_current_user),
    engine: SearchEngine = Depends(get_search_engine),
):
    stats = engine.stats(current_user.id, "note")
    data = NoteStats(
        total_notes=stats["total"],
        favorite_notes=stats["favorites"],
        unique_tags=stats["unique_tags"],
        popular_tags=[PopularTag(**t) for t in stats["popular_tags"]],
    )
    return ok(data, "Notes statistics retrieved successfully")


# PUBLIC_INTERFACE
@router.get("/{note_id}", response_model=Envelope[NoteData], summary="Get a note by ID")
def get_note(
    note_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Retrieve a single note by ID. Only the owner can access it.
    """
    note = get_owned(db, Note, note_id, current_user.id, "Note")
    return ok(_note_data(note), "Note retrieved successfully")


# PUBLIC_INTERFACE
@router.put("/{note_id}", response_model=Envelope[NoteData], summary="Update a note by ID")
def update_note(
    payload: NoteUpdateRequest,
    note_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update a note. Only the owner can modify it.
    """
    note = get_owned(db, Note, note_id, current_user.id, "Note")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationFailure("No fields provided for update")
    for field, value in changes.items():
        setattr(note, field, value)
    note.touch()
    db.add(note)
    db.commit()
    db.refresh(note)
    return ok(_note_data(note), "Note updated successfully")


# PUBLIC_INTERFACE
@router.delete("/{note_id}", response_model=Envelope[None], summary="Delete a note by ID")
def delete_note(
    note_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Delete a note. Only the owner can delete it.
    """
    note = get_owned(db, Note, note_id, current_user.id, "Note")
    db.delete(note)
    db.commit()
    return ok(None, "Note deleted successfully")


# PUBLIC_INTERFACE
@router.patch(
    "/{note_id}/favorite",
    response_model=Envelope[NoteData],
    summary="Toggle a note's favorite flag",
)
def toggle_note_favorite(
    note_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    note = get_owned(db, Note, note_id, current_user.id, "Note")
    note.is_favorite = not note.is_favorite
    note.touch()
    db.commit()
    db.refresh(note)
    return ok(_note_data(note), "Note favorite status updated")
