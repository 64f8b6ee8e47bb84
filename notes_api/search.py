"""
Search and tag aggregation over a user's notes and bookmarks.

Requests are described by a ``SearchCriteria`` value. ``build_predicates``
turns it into SQLAlchemy clauses for one entity kind; the ``SearchEngine``
runs those against a session, paginates each kind independently and merges
the results.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from itertools import chain, islice
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.orm import Session

from notes_api.errors import ValidationFailure
from notes_api.models import Bookmark, BookmarkTag, Note, NoteTag
from notes_api.schemas import Pagination

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_POPULAR_TAGS = 10
DEFAULT_SUGGESTIONS = 10
# candidates read per column, separately for prefix and interior matches
SUGGESTION_SCAN_LIMIT = 50


@dataclass(frozen=True)
class EntityKind:
    """How one searchable record type maps onto the store."""

    name: str
    model: type
    tag_model: type
    tag_owner: object
    text_columns: Tuple[object, ...]
    sort_columns: Dict[str, object]
    suggestion_columns: Tuple[object, ...]


NOTE = EntityKind(
    name="note",
    model=Note,
    tag_model=NoteTag,
    tag_owner=NoteTag.note_id,
    text_columns=(Note.title, Note.content),
    sort_columns={
        "createdAt": Note.created_at,
        "updatedAt": Note.updated_at,
        "title": Note.title,
    },
    suggestion_columns=(Note.title,),
)

BOOKMARK = EntityKind(
    name="bookmark",
    model=Bookmark,
    tag_model=BookmarkTag,
    tag_owner=BookmarkTag.bookmark_id,
    text_columns=(Bookmark.title, Bookmark.description, Bookmark.url),
    sort_columns={
        "createdAt": Bookmark.created_at,
        "updatedAt": Bookmark.updated_at,
        "title": Bookmark.title,
        "url": Bookmark.url,
    },
    suggestion_columns=(Bookmark.title, Bookmark.url),
)

KINDS: Dict[str, EntityKind] = {NOTE.name: NOTE, BOOKMARK.name: BOOKMARK}


@dataclass
class DateRangeFilter:
    """Inclusive bounds on created_at."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass
class SearchCriteria:
    type: Optional[str] = None
    text: Optional[str] = None
    tags: Sequence[str] = field(default_factory=tuple)
    is_favorite: Optional[bool] = None
    date_range: Optional[DateRangeFilter] = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    sort_by: str = "createdAt"
    sort_order: str = "desc"

    def kinds(self) -> List[EntityKind]:
        """Kinds to search; an absent or unrecognised type means all of them."""
        if self.type in KINDS:
            return [KINDS[self.type]]
        return list(KINDS.values())

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def clamped(self) -> "SearchCriteria":
        """Copy with page >= 1 and 1 <= limit <= MAX_PAGE_SIZE."""
        page = self.page if self.page and self.page > 0 else 1
        limit = self.limit if self.limit and self.limit > 0 else DEFAULT_PAGE_SIZE
        return SearchCriteria(
            type=self.type,
            text=self.text,
            tags=tuple(t.strip() for t in self.tags if t and t.strip()),
            is_favorite=self.is_favorite,
            date_range=self.date_range,
            page=int(page),
            limit=min(int(limit), MAX_PAGE_SIZE),
            sort_by=self.sort_by,
            sort_order=self.sort_order,
        )


@dataclass
class SearchResult:
    notes: List[Note]
    bookmarks: List[Bookmark]
    pagination: Pagination


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _like_pattern(text: str) -> str:
    return f"%{_escape_like(text)}%"


def _prefix_pattern(text: str) -> str:
    return f"{_escape_like(text)}%"


def build_predicates(kind: EntityKind, owner_id: int, criteria: SearchCriteria) -> list:
    """
    Filter clauses for one kind: owner AND text AND tag-overlap AND favorite AND date range.

    Optional parts are left out when the corresponding criterion is empty.
    """
    model = kind.model
    clauses = [model.user_id == owner_id]

    text = (criteria.text or "").strip()
    if text:
        pattern = _like_pattern(text)
        clauses.append(or_(*(col.ilike(pattern, escape="\\") for col in kind.text_columns)))

    if criteria.tags:
        tagged = select(kind.tag_owner).where(kind.tag_model.name.in_(list(criteria.tags)))
        clauses.append(model.id.in_(tagged))

    if criteria.is_favorite is not None:
        clauses.append(model.is_favorite == bool(criteria.is_favorite))

    if criteria.date_range is not None:
        if criteria.date_range.start is not None:
            clauses.append(model.created_at >= criteria.date_range.start)
        if criteria.date_range.end is not None:
            clauses.append(model.created_at <= criteria.date_range.end)

    return clauses


def build_ordering(kind: EntityKind, criteria: SearchCriteria) -> list:
    """Requested sort column, then id in the same direction so ties stay stable."""
    column = kind.sort_columns.get(criteria.sort_by, kind.model.created_at)
    if criteria.sort_order == "asc":
        return [column.asc(), kind.model.id.asc()]
    return [column.desc(), kind.model.id.desc()]


def build_pagination(page: int, limit: int, counts: Iterable[int]) -> Pagination:
    """
    Pagination for per-kind paging: totalCount sums the kinds, totalPages follows the largest.
    """
    counts = list(counts)
    total_pages = math.ceil(max(counts, default=0) / limit) if limit else 0
    return Pagination(
        current_page=page,
        total_pages=total_pages,
        total_count=sum(counts),
        has_next=page < total_pages,
        has_prev=page > 1,
        limit=limit,
    )


def rank_suggestions(candidates: Iterable[str], partial: str) -> Iterator[str]:
    """
    Yield candidates containing ``partial``: prefix matches first, then interior matches.

    Each group is alphabetical (case-insensitive); duplicates differing only by
    case are yielded once.
    """
    needle = partial.strip().lower()
    matching = [c for c in candidates if c and needle in c.lower()]
    prefix = sorted((c for c in matching if c.lower().startswith(needle)), key=str.lower)
    interior = sorted((c for c in matching if not c.lower().startswith(needle)), key=str.lower)
    seen = set()
    for candidate in chain(prefix, interior):
        key = candidate.lower()
        if key in seen:
            continue
        seen.add(key)
        yield candidate


class SearchEngine:
    """Read-only queries over one session."""

    def __init__(self, db: Session):
        self.db = db

    def _page(self, kind: EntityKind, owner_id: int, criteria: SearchCriteria) -> Tuple[list, int]:
        clauses = build_predicates(kind, owner_id, criteria)
        total = self.db.scalar(select(func.count()).select_from(kind.model).where(*clauses))
        items = self.db.scalars(
            select(kind.model)
            .where(*clauses)
            .order_by(*build_ordering(kind, criteria))
            .offset(criteria.offset)
            .limit(criteria.limit)
        ).all()
        return list(items), total or 0

    def list_records(
        self, kind_name: str, owner_id: int, criteria: SearchCriteria
    ) -> Tuple[list, Pagination]:
        """One kind, filtered and paginated; backs the plain list endpoints."""
        criteria = criteria.clamped()
        items, total = self._page(KINDS[kind_name], owner_id, criteria)
        return items, build_pagination(criteria.page, criteria.limit, [total])

    def global_search(
        self, owner_id: int, query_text: Optional[str], options: Optional[SearchCriteria] = None
    ) -> SearchResult:
        """
        Search notes and/or bookmarks of one user.

        Each kind is paginated on its own with the same page and limit.
        """
        criteria = (options or SearchCriteria()).clamped()
        criteria.text = query_text
        return self._search(owner_id, criteria)

    def advanced_search(self, owner_id: int, criteria: SearchCriteria) -> SearchResult:
        """Like ``global_search`` with an optional inclusive created_at range."""
        rng = criteria.date_range
        if rng is not None and rng.start is not None and rng.end is not None and rng.start > rng.end:
            raise ValidationFailure(
                errors=[{"field": "dateRange", "message": "startDate must be before or equal to endDate"}]
            )
        return self._search(owner_id, criteria.clamped())

    def _search(self, owner_id: int, criteria: SearchCriteria) -> SearchResult:
        found: Dict[str, list] = {name: [] for name in KINDS}
        counts = []
        for kind in criteria.kinds():
            items, total = self._page(kind, owner_id, criteria)
            found[kind.name] = items
            counts.append(total)
        return SearchResult(
            notes=found[NOTE.name],
            bookmarks=found[BOOKMARK.name],
            pagination=build_pagination(criteria.page, criteria.limit, counts),
        )

    def tag_counts(self, owner_id: int, kind_name: Optional[str] = None) -> Counter:
        """Number of records carrying each tag."""
        kinds = [KINDS[kind_name]] if kind_name in KINDS else list(KINDS.values())
        counts: Counter = Counter()
        for kind in kinds:
            rows = self.db.execute(
                select(kind.tag_model.name, func.count(distinct(kind.tag_owner)))
                .join(kind.model, kind.model.id == kind.tag_owner)
                .where(kind.model.user_id == owner_id)
                .group_by(kind.tag_model.name)
            ).all()
            for name, count in rows:
                counts[name] += count
        return counts

    def user_tags(self, owner_id: int) -> List[str]:
        """Distinct tags across all of the user's notes and bookmarks, alphabetical."""
        return sorted(self.tag_counts(owner_id))

    def popular_tags(
        self, owner_id: int, limit: Optional[int] = None, kind_name: Optional[str] = None
    ) -> List[Dict[str, object]]:
        """Most used tags, by count descending then tag ascending."""
        if not limit or limit <= 0:
            limit = DEFAULT_POPULAR_TAGS
        limit = min(limit, MAX_PAGE_SIZE)
        ranked = sorted(self.tag_counts(owner_id, kind_name).items(), key=lambda kv: (-kv[1], kv[0]))
        return [{"tag": tag, "count": count} for tag, count in ranked[:limit]]

    def suggestions(
        self, owner_id: int, partial_query: Optional[str], limit: int = DEFAULT_SUGGESTIONS
    ) -> List[str]:
        """Titles and bookmark URLs containing ``partial_query``; see ``rank_suggestions``."""
        if not partial_query or not partial_query.strip():
            return []
        needle = partial_query.strip()
        prefix = _prefix_pattern(needle)
        anywhere = _like_pattern(needle)
        candidates: List[str] = []
        for kind in KINDS.values():
            for column in kind.suggestion_columns:
                owned = kind.model.user_id == owner_id
                starts = column.ilike(prefix, escape="\\")
                # prefix matches get their own scan; interior ones cannot crowd them out
                candidates.extend(self._scan(column, owned, starts))
                candidates.extend(
                    self._scan(column, owned, column.ilike(anywhere, escape="\\"), ~starts)
                )
        return list(islice(rank_suggestions(candidates, needle), limit))

    def _scan(self, column, *clauses) -> List[str]:
        """Distinct values of ``column`` matching ``clauses``, case-insensitively ordered."""
        return list(
            self.db.scalars(
                select(column)
                .where(*clauses)
                .group_by(column)
                .order_by(func.lower(column), column)
                .limit(SUGGESTION_SCAN_LIMIT)
            )
        )

    def stats(self, owner_id: int, kind_name: str) -> Dict[str, object]:
        """Totals, favorites and tag usage for one kind."""
        model = KINDS[kind_name].model
        total = self.db.scalar(
            select(func.count()).select_from(model).where(model.user_id == owner_id)
        )
        favorites = self.db.scalar(
            select(func.count())
            .select_from(model)
            .where(model.user_id == owner_id, model.is_favorite.is_(True))
        )
        return {
            "total": total or 0,
            "favorites": favorites or 0,
            "unique_tags": len(self.tag_counts(owner_id, kind_name)),
            "popular_tags": self.popular_tags(owner_id, DEFAULT_POPULAR_TAGS, kind_name),
        }
