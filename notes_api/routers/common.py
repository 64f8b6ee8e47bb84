from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from notes_api.errors import NotFound, ValidationFailure
from notes_api.schemas import MAX_TAG_LENGTH


def get_owned(db: Session, model, record_id: int, owner_id: int, label: str):
    """
    Fetch a record by (id, owner).

    Raises:
        NotFound when it does not exist or belongs to someone else.
    """
    record = db.scalars(
        select(model).where(model.id == record_id, model.user_id == owner_id)
    ).first()
    if record is None:
        raise NotFound(f"{label} not found or not accessible")
    return record


def parse_tags_param(tags: Optional[str]) -> List[str]:
    """Split a comma-separated tags query parameter."""
    if not tags:
        return []
    parsed = [t.strip() for t in tags.split(",") if t.strip()]
    if any(len(t) > MAX_TAG_LENGTH for t in parsed):
        raise ValidationFailure(
            errors=[{"field": "tags", "message": f"Each tag cannot exceed {MAX_TAG_LENGTH} characters"}]
        )
    return parsed


def pick_favorite(*values: Optional[bool]) -> Optional[bool]:
    """First favorite flag given among the accepted parameter spellings."""
    for value in values:
        if value is not None:
            return value
    return None


def pick_text(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None
