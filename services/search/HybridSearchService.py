"""Hybrid search service.

Combines the search backend with a database query over files the backend
cannot see yet (not indexed so far), and degrades to a database-only search
when the backend is unreachable. Also the single entry point for the other
tenant-scoped search operations, which are delegated to the backend client.
"""

import asyncio

from shared.clients.database.FileRepository import FileRepository
from shared.clients.search.SearchClientInterface import SearchClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentContent
from shared.models.search import HealthStatus, QueryInfo, SearchQuery, SearchResponse, SearchResult
from shared.search.QueryBuilder import SORTABLE_FIELDS
from shared.search.ResultMapper import generate_snippet, parse_datetime

DB_SCORE_TITLE = 3
DB_SCORE_CONTENT = 2
DB_SCORE_AUTHOR = 1
DB_SCORE_DEPARTMENT = 1
DB_SCORE_DIVISOR = 10
# below any plausible backend relevance score
DB_SCORE_CAP = 0.7
DB_SCORE_NO_QUERY = 0.5
DEFAULT_DB_FALLBACK_LIMIT = 100
DEGRADED_SEARCH_TYPE = "database_fallback"

def score_database_row(row: dict, search_query: SearchQuery) -> float:
    """Heuristic relevance of a database row for the free-text query.

    Args:
        row (dict): A row of FileRepository.search_files.
        search_query (SearchQuery): The request.

    Returns:
        float: Between 0 and DB_SCORE_CAP, or DB_SCORE_NO_QUERY without free text.
    """
    if not search_query.has_text_query():
        return DB_SCORE_NO_QUERY

    needle = search_query.query.strip().lower()
    score = 0
    if needle in (row.get("title") or "").lower():
        score += DB_SCORE_TITLE
    if needle in (row.get("content") or "").lower():
        score += DB_SCORE_CONTENT
    if needle in (row.get("author") or "").lower():
        score += DB_SCORE_AUTHOR
    if needle in (row.get("department") or "").lower():
        score += DB_SCORE_DEPARTMENT
    return min(score / DB_SCORE_DIVISOR, DB_SCORE_CAP)


class HybridSearchService:
    def __init__(
        self,
        helper_config: HelperConfig,
        search_client: SearchClientInterface,
        file_repository: FileRepository,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._search_client = search_client
        self._file_repository = file_repository
        self._hybrid_enabled = helper_config.get_bool_val("SEARCH_HYBRID_ENABLED", default=True)
        self._db_limit = int(helper_config.get_number_val("SEARCH_DB_FALLBACK_LIMIT", default=DEFAULT_DB_FALLBACK_LIMIT))

    ##########################################
    ################ SEARCH ##################
    ##########################################

    async def search_documents(self, search_query: SearchQuery) -> SearchResponse:
        """Search the backend and the not yet indexed files, merge and paginate.

        Backend results always win over database rows of the same file,
        whichever call finishes first. The page is cut from the merged list.
        If the backend fails, the whole filter set is answered from the
        database instead and the response is flagged as degraded.

        Args:
            search_query (SearchQuery): The tenant-scoped request.

        Returns:
            SearchResponse: Never raises for backend or database failures.
        """
        offset = search_query.pagination.from_
        size = search_query.pagination.size

        backend_call = self._search_client.do_search_documents(search_query, from_=0, size=offset + size)
        if self._hybrid_enabled:
            backend_outcome, db_results = await asyncio.gather(
                backend_call,
                self._search_unindexed(search_query),
                return_exceptions=True,
            )
        else:
            (backend_outcome,) = await asyncio.gather(backend_call, return_exceptions=True)
            db_results = []

        if isinstance(backend_outcome, Exception):
            return await self._search_degraded(search_query, backend_outcome)
        if isinstance(backend_outcome, BaseException):
            raise backend_outcome
        if isinstance(db_results, BaseException):
            # _search_unindexed absorbs errors, only cancellation ends up here
            raise db_results

        backend_response: SearchResponse = backend_outcome

        seen: set[str] = set()
        merged: list[SearchResult] = []
        for result in backend_response.results:
            if result.file_id in seen:
                continue
            seen.add(result.file_id)
            merged.append(result)

        added = 0
        for result in db_results:
            if result.file_id in seen:
                continue
            seen.add(result.file_id)
            merged.append(result)
            added += 1

        if self._is_relevance_sort(search_query):
            merged.sort(key=lambda result: result.score, reverse=True)

        query_info = backend_response.query_info or QueryInfo(
            parsed_query=search_query.query or "*", search_type=search_query.search_type.value
        )
        query_info = query_info.model_copy(
            update={
                "hybrid_search": self._hybrid_enabled,
                "backend_count": len(backend_response.results),
                "db_count": added,
            }
        )

        self.logging.info(
            "Search for organization %s: %d backend hits, %d unindexed database rows, %d returned",
            search_query.organization_id, backend_response.total, added, len(merged[offset:offset + size]),
        )
        return SearchResponse(
            results=merged[offset:offset + size],
            total=backend_response.total + added,
            took=backend_response.took,
            facets=backend_response.facets,
            query_info=query_info,
        )

    async def _search_unindexed(self, search_query: SearchQuery) -> list[SearchResult]:
        """Database rows not indexed yet. Failures yield an empty list."""
        try:
            rows = await self._file_repository.search_files(search_query, only_unindexed=True, limit=self._db_limit)
        except Exception as exc:
            self.logging.error(
                "Unindexed file search failed for organization %s: %s", search_query.organization_id, exc
            )
            return []
        return self._map_rows(rows, search_query)

    async def _search_degraded(self, search_query: SearchQuery, cause: Exception) -> SearchResponse:
        """Answer the whole request from the database after a backend failure."""
        self.logging.warning(
            "Search backend unavailable for organization %s, falling back to database search: %s",
            search_query.organization_id, cause,
        )
        try:
            rows = await self._file_repository.search_files(search_query, only_unindexed=False, limit=self._db_limit)
        except Exception as exc:
            self.logging.error(
                "Database fallback search failed for organization %s: %s", search_query.organization_id, exc
            )
            rows = []

        results = self._map_rows(rows, search_query)
        offset = search_query.pagination.from_
        size = search_query.pagination.size
        return SearchResponse(
            results=results[offset:offset + size],
            total=len(results),
            took=0,
            query_info=QueryInfo(
                parsed_query=search_query.query or "*",
                search_type=DEGRADED_SEARCH_TYPE,
                filters_applied=search_query.filters.count_applied(),
                db_count=len(results),
            ),
            degraded=True,
        )

    def _map_rows(self, rows: list[dict], search_query: SearchQuery) -> list[SearchResult]:
        results: list[SearchResult] = []
        seen: set[str] = set()
        for row in rows:
            file_id = str(row.get("file_id"))
            # one row per extracted text part can come back for the same file
            if file_id in seen:
                continue
            seen.add(file_id)
            results.append(
                SearchResult(
                    file_id=file_id,
                    title=row.get("title") or "",
                    content_snippet=generate_snippet(row.get("content") or "", search_query.query),
                    author=row.get("author") or None,
                    department=row.get("department") or None,
                    file_type=row.get("file_type") or "other",
                    size_bytes=row.get("size_bytes") or 0,
                    created_at=parse_datetime(row.get("created_at")),
                    score=score_database_row(row, search_query),
                    source="database",
                )
            )
        return results

    @staticmethod
    def _is_relevance_sort(search_query: SearchQuery) -> bool:
        """True if the backend ranked by _score, mirroring QueryBuilder._build_sort.

        A field sort (including the created_at browse order without free text)
        makes the backend return a null _score, so re-sorting by score would
        push database rows ahead of indexed ones.
        """
        if search_query.sort and search_query.sort.field in SORTABLE_FIELDS:
            return SORTABLE_FIELDS[search_query.sort.field] == "_score"
        return search_query.has_text_query()

    ##########################################
    ############## DELEGATION ################
    ##########################################

    async def index_document(self, content: DocumentContent) -> bool:
        return await self._search_client.do_index_document(content)

    async def delete_document(self, file_id: str, organization_id: str) -> bool:
        return await self._search_client.do_delete_document(file_id, organization_id)

    async def get_search_suggestions(self, prefix: str, organization_id: str) -> list[str]:
        return await self._search_client.do_get_search_suggestions(prefix, organization_id)

    async def health_check(self) -> HealthStatus:
        return await self._search_client.do_health_check()

    async def create_index(self) -> bool:
        return await self._search_client.do_create_index()
