from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from shared.models.search import Pagination, SearchFilters, SearchQuery, SearchType, SortSpec

ManageAction = Literal["index_file", "remove_file", "bulk_index", "reindex_all", "health_check"]


class SearchRequest(BaseModel):
    """Body of POST /search. The tenant comes from the request headers."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)
    sort: SortSpec | None = None
    pagination: Pagination = Field(default_factory=Pagination)
    search_type: SearchType = SearchType.BASIC
    highlight: bool = False

    def to_search_query(self, organization_id: str) -> SearchQuery:
        return SearchQuery(
            query=self.query,
            organization_id=organization_id,
            filters=self.filters,
            sort=self.sort,
            pagination=self.pagination,
            search_type=self.search_type,
            highlight=self.highlight,
        )


class ManageRequest(BaseModel):
    action: ManageAction
    file_id: str | None = None
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)
