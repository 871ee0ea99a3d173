"""Pydantic models for search requests and responses."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MATCH_ALL_SENTINEL = "*"


class SearchType(str, Enum):
    """How the free-text part of a query is interpreted."""

    BASIC = "basic"
    EXACT = "exact"
    FUZZY = "fuzzy"
    ADVANCED = "advanced"


class DateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str | None = Field(default=None, alias="from")
    to: str | None = None


class SizeRange(BaseModel):
    min: int | None = None
    max: int | None = None


class SearchFilters(BaseModel):
    """Non-scoring filters applied on top of the free-text query."""

    department: list[str] = []
    file_type: list[str] = []
    author: list[str] = []
    tags: list[str] = []
    visibility: list[str] = []
    date_range: DateRange | None = None
    size_range: SizeRange | None = None
    folder_path: str | None = None
    has_content: bool | None = None
    ocr_confidence_min: float | None = None

    def count_applied(self) -> int:
        """Count the filter dimensions that actually restrict the result set."""
        count = 0
        for values in (self.department, self.file_type, self.author, self.tags, self.visibility):
            if values:
                count += 1
        if self.date_range and (self.date_range.from_ or self.date_range.to):
            count += 1
        if self.size_range and (self.size_range.min is not None or self.size_range.max is not None):
            count += 1
        if self.folder_path:
            count += 1
        if self.has_content is not None:
            count += 1
        if self.ocr_confidence_min is not None:
            count += 1
        return count


class SortSpec(BaseModel):
    field: str
    order: Literal["asc", "desc"] = "desc"


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: int = Field(default=0, ge=0, alias="from")
    size: int = Field(default=20, ge=1, le=500)


class SearchQuery(BaseModel):
    """One tenant-scoped search request."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    organization_id: str
    filters: SearchFilters = Field(default_factory=SearchFilters)
    sort: SortSpec | None = None
    pagination: Pagination = Field(default_factory=Pagination)
    search_type: SearchType = SearchType.BASIC
    highlight: bool = False

    def has_text_query(self) -> bool:
        """True if the query carries free text rather than the match-everything sentinel."""
        stripped = self.query.strip()
        return bool(stripped) and stripped != MATCH_ALL_SENTINEL


class SearchHighlights(BaseModel):
    title: list[str] | None = None
    content: list[str] | None = None


class SearchResult(BaseModel):
    """A single hit, from the search backend or from the database fallback.

    Attributes:
        source: "index" for backend hits, "database" for fallback rows.
    """

    file_id: str
    title: str
    content_snippet: str = ""
    author: str | None = None
    department: str | None = None
    file_type: str = "other"
    size_bytes: int = 0
    created_at: datetime | None = None
    score: float = 0.0
    highlights: SearchHighlights | None = None
    source: Literal["index", "database"] = "index"


class FacetBucket(BaseModel):
    key: str
    count: int


class SearchFacets(BaseModel):
    departments: list[FacetBucket] = []
    file_types: list[FacetBucket] = []
    authors: list[FacetBucket] = []
    tags: list[FacetBucket] = []
    visibility: list[FacetBucket] = []

    def is_empty(self) -> bool:
        return not any((self.departments, self.file_types, self.authors, self.tags, self.visibility))


class QueryInfo(BaseModel):
    parsed_query: str
    search_type: str
    filters_applied: int = 0
    hybrid_search: bool = False
    backend_count: int = 0
    db_count: int = 0


class SearchResponse(BaseModel):
    """Response of a search call.

    Attributes:
        took: Search-engine reported latency in milliseconds (0 when degraded).
        degraded: True if the backend was unreachable and results come from
                  the database only (no relevance ranking, no facets).
    """

    results: list[SearchResult]
    total: int
    took: int = 0
    facets: SearchFacets = Field(default_factory=SearchFacets)
    query_info: QueryInfo | None = None
    degraded: bool = False


class HealthStatus(BaseModel):
    status: Literal["healthy", "unhealthy"]
    message: str
