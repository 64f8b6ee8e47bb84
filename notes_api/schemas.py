import re
from datetime import datetime, timezone
from typing import Any, Generic, List, Literal, Optional, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MAX_TAGS = 10
MAX_TAG_LENGTH = 30

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

SortField = Literal["createdAt", "updatedAt", "title", "url"]
SortOrder = Literal["asc", "desc"]
EntityType = Literal["note", "bookmark"]

DataT = TypeVar("DataT")


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """
    Trim tags, drop empty ones and duplicates (first occurrence wins), keep at most MAX_TAGS.

    Raises:
        ValueError if a tag is longer than MAX_TAG_LENGTH after trimming.
    """
    cleaned: List[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Each tag cannot exceed {MAX_TAG_LENGTH} characters")
        if tag not in cleaned:
            cleaned.append(tag)
    return cleaned[:MAX_TAGS]


def normalize_url(url: str) -> str:
    """
    Trim a URL and prepend http:// when it has no scheme.

    Already-schemed http(s) URLs are returned unchanged apart from trimming.

    Raises:
        ValueError if the result is not an http(s) URL with a host.
    """
    url = (url or "").strip()
    if not url:
        raise ValueError("URL is required")
    if not _SCHEME_RE.match(url):
        url = f"http://{url}"
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc or " " in parsed.netloc:
        raise ValueError("Please provide a valid URL starting with http:// or https://")
    return url


class CamelModel(BaseModel):
    """Base for every wire model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Envelope

class Pagination(CamelModel):
    """Pagination metadata for list and search responses"""
    current_page: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool
    limit: int


class Envelope(CamelModel, Generic[DataT]):
    """Uniform response wrapper used for success and error responses"""
    success: bool = True
    message: str = "Success"
    data: Optional[DataT] = None
    errors: Optional[Any] = None
    timestamp: datetime


class PaginatedEnvelope(Envelope[DataT], Generic[DataT]):
    """Envelope with pagination metadata"""
    pagination: Pagination


# Users / Auth

class UserCreateRequest(CamelModel):
    """Request model to register a new user"""
    name: str = Field(..., min_length=2, max_length=50, description="Display name")
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=6, description="Plaintext password (min 6 chars)")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not _PASSWORD_RE.match(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return v


class LoginRequest(CamelModel):
    """Email/password login request"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(CamelModel):
    """Partial profile update"""
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class UserResponse(CamelModel):
    """User response without sensitive fields"""
    id: int
    name: str
    email: EmailStr
    created_at: datetime
    updated_at: datetime


class AuthData(CamelModel):
    """Token plus public profile returned by register and login"""
    user: UserResponse
    token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")


# Notes

class NoteCreateRequest(CamelModel):
    """Create note request"""
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field("", description="Note content")
    tags: List[str] = Field(default_factory=list)
    is_favorite: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: List[str]) -> List[str]:
        return normalize_tags(v)


class NoteUpdateRequest(CamelModel):
    """Update note request (partial)"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    is_favorite: Optional[bool] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else normalize_tags(v)


class NoteResponse(CamelModel):
    """Note response model"""
    id: int
    title: str
    content: str
    tags: List[str]
    is_favorite: bool
    created_at: datetime
    updated_at: datetime


class NoteData(CamelModel):
    note: NoteResponse


class NoteListData(CamelModel):
    notes: List[NoteResponse]


class PopularTag(CamelModel):
    tag: str
    count: int


class NoteStats(CamelModel):
    total_notes: int
    favorite_notes: int
    unique_tags: int
    popular_tags: List[PopularTag]


# Bookmarks

class BookmarkCreateRequest(CamelModel):
    """Create bookmark request; missing title/description are fetched from the page"""
    url: str = Field(..., max_length=2000)
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    tags: List[str] = Field(default_factory=list)
    is_favorite: bool = False

    @field_validator("url")
    @classmethod
    def clean_url(cls, v: str) -> str:
        return normalize_url(v)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: List[str]) -> List[str]:
        return normalize_tags(v)


class BookmarkUpdateRequest(CamelModel):
    """Update bookmark request (partial)"""
    url: Optional[str] = Field(None, max_length=2000)
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    tags: Optional[List[str]] = None
    is_favorite: Optional[bool] = None

    @field_validator("url")
    @classmethod
    def clean_url(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else normalize_url(v)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else normalize_tags(v)


class BookmarkResponse(CamelModel):
    """Bookmark response model"""
    id: int
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    favicon: Optional[str] = None
    tags: List[str]
    is_favorite: bool
    created_at: datetime
    updated_at: datetime


class BookmarkData(CamelModel):
    bookmark: BookmarkResponse


class BookmarkListData(CamelModel):
    bookmarks: List[BookmarkResponse]


class BookmarkStats(CamelModel):
    total_bookmarks: int
    favorite_bookmarks: int
    unique_tags: int
    popular_tags: List[PopularTag]


class MetadataRequest(CamelModel):
    url: str = Field(..., max_length=2000)

    @field_validator("url")
    @classmethod
    def clean_url(cls, v: str) -> str:
        return normalize_url(v)


class MetadataResponse(CamelModel):
    """Link preview extracted from a page"""
    title: str
    description: str = ""
    favicon: str = ""
    image: str = ""


# Search

class DateRange(CamelModel):
    """Inclusive bounds on creation time; either side may be omitted"""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # timestamps are stored as naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must be before or equal to endDate")
        return self


class AdvancedSearchRequest(CamelModel):
    """Advanced search body"""
    type: Optional[EntityType] = None
    keyword: Optional[str] = Field(None, max_length=100)
    tags: List[str] = Field(default_factory=list)
    is_favorite: Optional[bool] = None
    date_range: Optional[DateRange] = None
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    sort_by: SortField = "createdAt"
    sort_order: SortOrder = "desc"

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: List[str]) -> List[str]:
        tags = [t.strip() for t in v if t.strip()]
        if any(len(t) > MAX_TAG_LENGTH for t in tags):
            raise ValueError(f"Each tag cannot exceed {MAX_TAG_LENGTH} characters")
        return tags


class SearchData(CamelModel):
    notes: List[NoteResponse]
    bookmarks: List[BookmarkResponse]


class TagsData(CamelModel):
    tags: List[str]


class PopularTagsData(CamelModel):
    tags: List[PopularTag]


class SuggestionsData(CamelModel):
    suggestions: List[str]
