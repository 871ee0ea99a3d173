from pydantic import BaseModel

from shared.models.search import HealthStatus, SearchResponse


class PaginationInfo(BaseModel):
    page: int
    page_size: int
    total_pages: int


class SearchApiResponse(SearchResponse):
    success: bool = True
    pagination: PaginationInfo | None = None


class SuggestionsResponse(BaseModel):
    success: bool = True
    suggestions: list[str]


class ManageResponse(BaseModel):
    success: bool
    action: str
    message: str
    indexed: int | None = None
    failed: int | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    search: HealthStatus
    database: bool
